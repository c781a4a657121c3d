"""
Batch queue: per-item lifecycle (pending -> processing -> done/error) and processing.
"""
from clipengine.batch.orchestrator import BatchOrchestrator
from clipengine.core.types import BatchItem, BatchStatus

__all__ = ["BatchOrchestrator", "BatchItem", "BatchStatus"]
