"""Message and result models for the ingestion worker."""

from .messages import IngestionJobMessage, ProcessingResult

__all__ = ["IngestionJobMessage", "ProcessingResult"]
