"""Component factory for wiring the search stack from configuration."""

from dataclasses import dataclass

from loguru import logger

from ..config.settings import TaskSearchConfig
from .embeddings import EmbeddingFunction, create_embedding_function
from .exceptions import VectorIndexError
from .fusion import ScoreFusionEngine
from .lexical import LexicalSearchAdapter
from .materializer import ResultMaterializer
from .search import HybridSearchEngine
from .semantic import SemanticSearchAdapter
from .task_store import TaskStore
from .vector_index import TaskVectorIndex


@dataclass
class ComponentBundle:
    """Bundle of the components one process needs."""

    config: TaskSearchConfig
    store: TaskStore
    embedding_function: EmbeddingFunction
    vector_index: TaskVectorIndex | None
    search_engine: HybridSearchEngine

    async def close(self) -> None:
        if self.vector_index is not None:
            await self.vector_index.close()
        self.store.close()


class ComponentFactory:
    """Factory for creating commonly used components."""

    @staticmethod
    def create_store(config: TaskSearchConfig) -> TaskStore:
        return TaskStore(config.db_path).open()

    @staticmethod
    def create_embedding_function(config: TaskSearchConfig) -> EmbeddingFunction:
        return create_embedding_function(
            config.embedder, config.embedding_model, config.vector_dim
        )

    @staticmethod
    async def create_vector_index(config: TaskSearchConfig) -> TaskVectorIndex:
        index = TaskVectorIndex(
            config.vector_path, config.vector_dim, table_name=config.vector_table
        )
        await index.initialize()
        return index

    @staticmethod
    def create_search_engine(
        config: TaskSearchConfig,
        store: TaskStore,
        embedding_function: EmbeddingFunction,
        vector_index: TaskVectorIndex | None,
        source: str | None = None,
    ) -> HybridSearchEngine:
        semantic = (
            SemanticSearchAdapter(embedding_function, vector_index)
            if vector_index is not None
            else None
        )
        return HybridSearchEngine(
            lexical=LexicalSearchAdapter(store, source=source),
            semantic=semantic,
            fusion=ScoreFusionEngine(store),
            materializer=ResultMaterializer(store),
            weights=config.weights,
            timeout_ms=config.search_timeout_ms,
        )

    @staticmethod
    async def create_standard_components(
        config: TaskSearchConfig,
        include_semantic: bool = True,
        source: str | None = None,
    ) -> ComponentBundle:
        """Create store, embedder, vector index and search engine.

        If the vector index cannot be opened the engine runs lexical-only.

        Args:
            config: Runtime configuration
            include_semantic: Whether to open the vector index at all
            source: Optional restriction of lexical search to one task source

        Returns:
            ComponentBundle with all components
        """
        store = ComponentFactory.create_store(config)
        embedding_function = ComponentFactory.create_embedding_function(config)

        vector_index = None
        if include_semantic:
            try:
                vector_index = await ComponentFactory.create_vector_index(config)
            except VectorIndexError as e:
                logger.warning(f"Vector index unavailable, using lexical search only: {e}")

        engine = ComponentFactory.create_search_engine(
            config, store, embedding_function, vector_index, source=source
        )
        return ComponentBundle(
            config=config,
            store=store,
            embedding_function=embedding_function,
            vector_index=vector_index,
            search_engine=engine,
        )


class ComponentContext:
    """Async context manager for component lifecycle management."""

    def __init__(self, config: TaskSearchConfig, include_semantic: bool = True) -> None:
        self.config = config
        self.include_semantic = include_semantic
        self.bundle: ComponentBundle | None = None

    async def __aenter__(self) -> ComponentBundle:
        self.bundle = await ComponentFactory.create_standard_components(
            self.config, include_semantic=self.include_semantic
        )
        return self.bundle

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.bundle is not None:
            await self.bundle.close()
