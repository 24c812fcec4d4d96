"""Default configuration values for mcp-local-tasks."""

from pathlib import Path

# Storage locations
DEFAULT_DB_PATH = Path("tasks.db")
DEFAULT_VECTOR_PATH = Path(".mcp-local-tasks") / "vectors"
DEFAULT_VECTOR_TABLE = "tasks"

# Embeddings
DEFAULT_EMBEDDER = "stub"  # "stub" or "sentence-transformers"
DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_VECTOR_DIM = 384
DEFAULT_EMBED_BATCH_SIZE = 100

# Fusion weights (sum to 1.0, composite stays in [0, 1])
DEFAULT_SEMANTIC_WEIGHT = 0.6
DEFAULT_RECENCY_WEIGHT = 0.3
DEFAULT_PRIORITY_WEIGHT = 0.1

# Linear recency decay window
THIRTY_DAYS_MS = 30 * 24 * 60 * 60 * 1000

PRIORITY_SCORES: dict[str, float] = {
    "high": 1.0,
    "med": 0.5,
    "low": 0.2,
}
UNKNOWN_PRIORITY_SCORE = 0.5

# Each backend is asked for k * CANDIDATE_MULTIPLIER candidates before fusion
CANDIDATE_MULTIPLIER = 3

DEFAULT_RESULT_LIMIT = 10
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100
PREVIEW_MAX_CHARS = 300

# None disables the per-backend timeout
DEFAULT_SEARCH_TIMEOUT_MS: float | None = None

# Benchmark
BENCHMARK_SOURCE = "benchmark"
BENCHMARK_SEED = 12345
DEFAULT_BENCHMARK_TASKS = 10_000
BENCHMARK_WARMUP_RUNS = 5
DEFAULT_RESULTS_FILE = Path("benchmark-results.json")
DEFAULT_THRESHOLDS_FILE = Path(".mcp-local-tasks") / "thresholds.yaml"
DEFAULT_CONFIG_FILE = Path(".mcp-local-tasks") / "config.yaml"

# Environment variables
ENV_DB_PATH = "TASKS_DB_PATH"
ENV_VECTOR_PATH = "TASKS_VECTOR_PATH"
ENV_VECTOR_TABLE = "TASKS_VECTOR_TABLE"
ENV_EMBEDDER = "TASKS_EMBEDDER"
ENV_EMBEDDING_MODEL = "TASKS_EMBEDDING_MODEL"
ENV_VECTOR_DIM = "TASKS_VECTOR_DIM"
ENV_SEARCH_TIMEOUT_MS = "TASKS_SEARCH_TIMEOUT_MS"
ENV_WEIGHT_SEMANTIC = "TASKS_WEIGHT_SEMANTIC"
ENV_WEIGHT_RECENCY = "TASKS_WEIGHT_RECENCY"
ENV_WEIGHT_PRIORITY = "TASKS_WEIGHT_PRIORITY"
ENV_CONFIG_FILE = "TASKS_CONFIG"
