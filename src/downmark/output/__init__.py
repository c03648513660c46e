"""Writing results to disk."""

from downmark.output.file_writer import write_document

__all__ = [
    "write_document",
]
