"""
Domain errors for dataset ingestion.
"""


class DatasetError(Exception):
    """Base error for bloom dataset problems."""
    pass


class MissingColumnsError(DatasetError):
    """Raised when a CSV header lacks one or more required columns."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required columns: {', '.join(missing)}")
