"""Editor package containing the document model and fenced code block helpers."""

from . import document_model, fences, result_blocks

__all__ = ["document_model", "fences", "result_blocks"]
