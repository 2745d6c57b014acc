"""File-backed tabular sources (CSV decoding lives here, not in the parser)."""

from .csv_files import CsvFileSource, csv_sources, is_csv_path, read_headers

__all__ = ["CsvFileSource", "csv_sources", "is_csv_path", "read_headers"]
