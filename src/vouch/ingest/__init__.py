"""Front-ends that lower source files to analysis units."""

from .python_ingest import ingest_python_file, iter_test_paths, lower_source

__all__ = ["ingest_python_file", "iter_test_paths", "lower_source"]
