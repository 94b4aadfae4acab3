from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from . import DEFAULT_MARGIN, DEFAULT_OPACITY, DEFAULT_SCALE

# Decoded (height, width, 4) RGBA8 pixel grid
RasterImage = NDArray[np.uint8]


def freeze(image: RasterImage) -> RasterImage:
    """Mark a raster read-only so workers cannot mutate it."""
    image.flags.writeable = False
    return image


class FailurePolicy(str, Enum):
    """How per-item failures surface to the caller."""

    REPORT = "report"  # Collected in the result and listed in the manifest
    OMIT = "omit"  # Logged, left out of the manifest
    FAIL_FAST = "fail-fast"  # First failure aborts the batch


@dataclass(frozen=True, eq=False)
class WatermarkSpec:
    """Watermark image plus the parameters shared by every item of a batch."""

    image: RasterImage
    opacity: float = DEFAULT_OPACITY
    margin: int = DEFAULT_MARGIN
    scale: float = DEFAULT_SCALE

    def __post_init__(self):
        # Out-of-range values are clamped, not rejected
        object.__setattr__(self, "opacity", min(1.0, max(0.0, float(self.opacity))))
        object.__setattr__(self, "margin", max(0, int(self.margin)))

    @property
    def size(self) -> tuple[int, int]:
        height, width = self.image.shape[:2]
        return width, height


@dataclass(frozen=True)
class BatchItem:
    """One photo submitted to a batch. The identifier is display-only."""

    identifier: str
    source_bytes: bytes = field(repr=False)
    index: int = 0


@dataclass(frozen=True)
class ProcessedItem:
    entry_name: str
    output_bytes: bytes = field(repr=False)
    duration_seconds: float
    identifier: str = ""
    index: int = 0


@dataclass(frozen=True)
class FailedItem:
    identifier: str
    reason: str
    index: int = 0


@dataclass
class BatchResult:
    """Outcome of one batch: successes keyed by entry name plus failures."""

    processed: list[ProcessedItem] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)
    policy: FailurePolicy = FailurePolicy.REPORT

    @property
    def total_duration(self) -> float:
        return sum(item.duration_seconds for item in self.processed)

    @property
    def reported_failures(self) -> list[FailedItem]:
        """Failures that belong in the manifest under the current policy."""
        if self.policy is FailurePolicy.REPORT:
            return list(self.failed)
        return []
