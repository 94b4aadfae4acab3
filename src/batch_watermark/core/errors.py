"""Error taxonomy for watermark batches.

Request-level errors (``InputValidationError``, ``PackagingError``,
``NoValidOutputs``, ``BatchTimeout``, ``BatchAborted``) abort the whole batch.
``ItemFailure`` and its subclasses describe a single photo and are recorded
by the scheduler instead of being propagated.
"""


class WatermarkError(Exception):
    """Base class for every error raised by this package."""


class InputValidationError(WatermarkError):
    """Input rejected before any processing started."""


class PackagingError(WatermarkError):
    """The archive could not be written or finalized."""


class NoValidOutputs(WatermarkError):
    """Every photo in the batch failed."""

    def __init__(self, failures: list | None = None):
        self.failures = list(failures or [])
        super().__init__(f"No photo could be watermarked ({len(self.failures)} failed)")


class BatchTimeout(WatermarkError):
    """The batch did not finish within the operator timeout."""

    def __init__(self, timeout: float, pending: int):
        self.timeout = timeout
        self.pending = pending
        super().__init__(f"Batch timed out after {timeout:g}s with {pending} item(s) unfinished")


class BatchAborted(WatermarkError):
    """An item failed while the batch runs with the fail-fast policy."""

    def __init__(self, identifier: str, reason: str):
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Batch aborted on {identifier}: {reason}")


class ItemFailure(WatermarkError):
    """A single photo could not be processed."""


class UnsupportedFormat(ItemFailure):
    """The photo bytes could not be decoded."""


class EncodeFailure(ItemFailure):
    """The composited image could not be encoded."""


class InvalidGeometry(ItemFailure):
    """Base or watermark dimensions make placement impossible."""


class WorkerExitFailure(ItemFailure):
    """An isolated worker process exited with a non-zero status."""

    def __init__(self, returncode: int, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        lines = [line.strip() for line in stderr.splitlines() if line.strip()]
        detail = lines[-1] if lines else "no output"
        super().__init__(f"Worker exited with status {returncode}: {detail}")
