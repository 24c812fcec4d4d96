"""Benchmark harness for task listing and hybrid search."""
