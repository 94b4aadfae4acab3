"""Batch watermarking: composite one watermark onto many photos and ZIP the results."""

from .archive import build_archive
from .config import Settings
from .core.errors import (
    BatchAborted,
    BatchTimeout,
    InputValidationError,
    ItemFailure,
    NoValidOutputs,
    PackagingError,
    WatermarkError,
)
from .core.models import BatchItem, BatchResult, FailurePolicy, ProcessedItem, WatermarkSpec
from .pipeline import BatchOutcome, Upload, categorize_uploads, process_uploads, watermark_batch
from .processors.batch import run_batch

__version__ = "0.1.0"

__all__ = [
    "watermark_batch",
    "process_uploads",
    "categorize_uploads",
    "run_batch",
    "build_archive",
    "Settings",
    "Upload",
    "BatchOutcome",
    "BatchItem",
    "BatchResult",
    "ProcessedItem",
    "WatermarkSpec",
    "FailurePolicy",
    "WatermarkError",
    "InputValidationError",
    "ItemFailure",
    "NoValidOutputs",
    "PackagingError",
    "BatchTimeout",
    "BatchAborted",
]
