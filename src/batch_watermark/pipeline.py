"""End-to-end batch: uploads in, finalized archive and timing out."""

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .archive import build_archive
from .config import Settings
from .core import (
    ARCHIVE_CONTENT_TYPE,
    ARCHIVE_NAME,
    PHOTOS_FIELD,
    PROCESS_TIME_HEADER,
    WATERMARK_FIELD,
)
from .core.errors import InputValidationError, UnsupportedFormat
from .core.models import BatchResult, WatermarkSpec
from .processors.batch import ProgressCallback, make_items, run_batch
from .processors.image import decode_image

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Upload:
    """Uploaded blob keyed by form field name; filename is advisory, never a path."""

    name: str
    filename: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class CategorizedUploads:
    photos: tuple[Upload, ...] = ()
    watermark: Upload | None = None


def categorize_uploads(uploads: Iterable[Upload]) -> CategorizedUploads:
    """
    Group uploads by role.

    Photos keep their relative order, a repeated watermark field keeps the
    last one, and unknown fields are ignored.
    """
    photos: list[Upload] = []
    watermark = None
    for upload in uploads:
        if upload.name == PHOTOS_FIELD:
            photos.append(upload)
        elif upload.name == WATERMARK_FIELD:
            watermark = upload
    return CategorizedUploads(photos=tuple(photos), watermark=watermark)


@dataclass(frozen=True)
class BatchOutcome:
    archive: bytes = field(repr=False)
    elapsed_seconds: float
    result: BatchResult

    def headers(self) -> dict[str, str]:
        """Response metadata for a transport layer."""
        return {
            "Content-Type": ARCHIVE_CONTENT_TYPE,
            "Content-Disposition": f'attachment; filename="{ARCHIVE_NAME}"',
            PROCESS_TIME_HEADER: f"{self.elapsed_seconds:.5f}",
        }


def load_watermark(data: bytes, settings: Settings) -> WatermarkSpec:
    """Decode the watermark once for the whole batch."""
    try:
        image = decode_image(data)
    except UnsupportedFormat as e:
        raise InputValidationError(f"Watermark is not a readable image: {e}") from e
    return WatermarkSpec(image=image, opacity=settings.opacity, margin=settings.margin, scale=settings.scale)


def watermark_batch(
    photos: Sequence[tuple[str, bytes]],
    watermark: bytes | None,
    settings: Settings | None = None,
    progress_callback: ProgressCallback | None = None,
) -> BatchOutcome:
    """
    Watermark every photo and bundle the results into one archive.

    Args:
        photos: (filename, bytes) pairs in submission order
        watermark: Watermark image bytes
        settings: Blending and scheduling settings, defaults from the environment
        progress_callback: Optional callback(done, total)

    Returns:
        BatchOutcome with archive bytes and total elapsed seconds

    Raises:
        InputValidationError: Missing watermark, no photos, or undecodable watermark
        NoValidOutputs: If every photo failed
        PackagingError: If the archive cannot be finalized
    """
    start = time.perf_counter()
    settings = settings or Settings.from_env()

    if not watermark:
        raise InputValidationError("Please upload a watermark image")
    if not photos:
        raise InputValidationError("Please upload at least one photo")

    spec = load_watermark(watermark, settings)
    result = run_batch(
        make_items(photos),
        spec,
        executor=settings.executor,
        max_workers=settings.max_workers,
        policy=settings.policy,
        timeout=settings.timeout,
        progress_callback=progress_callback,
    )
    archive = build_archive(result)

    elapsed = time.perf_counter() - start
    logger.info("Batch of %d photo(s) packaged in %.3fs", len(photos), elapsed)
    return BatchOutcome(archive=archive, elapsed_seconds=elapsed, result=result)


def process_uploads(
    uploads: Iterable[Upload],
    settings: Settings | None = None,
    progress_callback: ProgressCallback | None = None,
) -> BatchOutcome:
    """Categorize raw uploads and run the batch."""
    categorized = categorize_uploads(uploads)
    if categorized.watermark is None:
        raise InputValidationError("Please upload a watermark image")
    photos = [(upload.filename, upload.data) for upload in categorized.photos]
    return watermark_batch(photos, categorized.watermark.data, settings, progress_callback)
