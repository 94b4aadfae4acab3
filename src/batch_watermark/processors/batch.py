import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)
from concurrent.futures import TimeoutError as FuturesTimeoutError
from concurrent.futures.process import BrokenProcessPool
from functools import partial
from pathlib import Path

from ..core import ENTRY_NAME_TEMPLATE
from ..core.errors import (
    BatchAborted,
    BatchTimeout,
    InputValidationError,
    ItemFailure,
    NoValidOutputs,
)
from ..core.models import (
    BatchItem,
    BatchResult,
    FailedItem,
    FailurePolicy,
    ProcessedItem,
    WatermarkSpec,
)
from .image import process_photo
from .isolated import IsolatedRunner

logger = logging.getLogger(__name__)

THREAD_EXECUTOR = "thread"
PROCESS_EXECUTOR = "process"
ISOLATED_EXECUTOR = "isolated"
EXECUTORS = (THREAD_EXECUTOR, PROCESS_EXECUTOR, ISOLATED_EXECUTOR)

ProgressCallback = Callable[[int, int], None]


def default_workers() -> int:
    """Worker count matching available hardware concurrency."""
    return os.cpu_count() or 1


def make_items(photos: Iterable[tuple[str, bytes]]) -> list[BatchItem]:
    """Wrap (identifier, bytes) pairs as BatchItems in submission order."""
    return [BatchItem(identifier=name, source_bytes=data, index=i) for i, (name, data) in enumerate(photos)]


def entry_name(position: int) -> str:
    """Archive entry name for the 1-based position among successful items."""
    return ENTRY_NAME_TEMPLATE.format(index=position)


def assign_entry_names(completed: list[tuple[BatchItem, bytes, float]]) -> list[ProcessedItem]:
    """
    Name successful items by submission order.

    Completion order under parallel execution is arbitrary; sorting by the
    submission index keeps names deterministic and unique.
    """
    ordered = sorted(completed, key=lambda entry: entry[0].index)
    return [
        ProcessedItem(
            entry_name=entry_name(position),
            output_bytes=output,
            duration_seconds=duration,
            identifier=item.identifier,
            index=item.index,
        )
        for position, (item, output, duration) in enumerate(ordered, start=1)
    ]


def _failure_reason(error: BaseException) -> str:
    if isinstance(error, ItemFailure):
        return str(error)
    if isinstance(error, BrokenProcessPool):
        return f"Worker process died: {error}"
    return f"{type(error).__name__}: {error}"


def _make_pool(executor: str, workers: int) -> Executor:
    if executor == PROCESS_EXECUTOR:
        return ProcessPoolExecutor(max_workers=workers)
    # Isolated jobs only wait on child processes, threads are enough
    return ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"bwm-{executor}")


def _execute(
    items: list[BatchItem],
    process: Callable[[bytes], tuple[bytes, float]],
    pool: Executor,
    policy: FailurePolicy,
    timeout: float | None,
    progress_callback: ProgressCallback | None,
) -> tuple[list[tuple[BatchItem, bytes, float]], list[FailedItem]]:
    completed: list[tuple[BatchItem, bytes, float]] = []
    failed: list[FailedItem] = []
    total = len(items)
    abandon = False

    futures: dict[Future, BatchItem] = {pool.submit(process, item.source_bytes): item for item in items}
    try:
        for done, future in enumerate(as_completed(futures, timeout=timeout), start=1):
            item = futures[future]
            try:
                output, duration = future.result()
            except (ItemFailure, BrokenProcessPool) as e:
                reason = _failure_reason(e)
                logger.warning("Skipping %s: %s", item.identifier, reason)
                failed.append(FailedItem(identifier=item.identifier, reason=reason, index=item.index))
            except Exception as e:
                # Unexpected errors stay confined to their item
                reason = _failure_reason(e)
                logger.exception("Unexpected error while processing %s", item.identifier)
                failed.append(FailedItem(identifier=item.identifier, reason=reason, index=item.index))
            else:
                logger.debug("Processed %s in %.4fs", item.identifier, duration)
                completed.append((item, output, duration))

            if progress_callback:
                progress_callback(done, total)

            if failed and policy is FailurePolicy.FAIL_FAST:
                abandon = True
                raise BatchAborted(failed[-1].identifier, failed[-1].reason)
    except FuturesTimeoutError:
        abandon = True
        pending = sum(1 for f in futures if not f.done())
        raise BatchTimeout(timeout, pending) from None
    finally:
        # Abandoned workers only hold the read-only watermark
        pool.shutdown(wait=not abandon, cancel_futures=abandon)

    return completed, failed


def run_batch(
    items: Iterable[BatchItem],
    spec: WatermarkSpec,
    *,
    executor: str = THREAD_EXECUTOR,
    max_workers: int | None = None,
    policy: FailurePolicy | str = FailurePolicy.REPORT,
    timeout: float | None = None,
    progress_callback: ProgressCallback | None = None,
) -> BatchResult:
    """
    Watermark every item concurrently against one shared watermark.

    Args:
        items: Photos to process
        spec: Read-only watermark and blending parameters shared by all workers
        executor: "thread", "process" or "isolated" (one OS process per photo).
            Under "process" a crashing worker breaks the whole pool and every
            unfinished sibling is recorded as failed; use "isolated" when one
            crash must only fail its own photo.
        max_workers: Pool size, defaults to the CPU count
        policy: How item failures are surfaced
        timeout: Seconds to wait for the whole batch, None waits forever
        progress_callback: Optional callback(done, total) after each item

    Returns:
        BatchResult with successful items named watermarked_<n>.png

    Raises:
        NoValidOutputs: If no item succeeded
        BatchTimeout: If timeout elapsed before every item finished
        BatchAborted: On the first failure under FailurePolicy.FAIL_FAST
    """
    items = list(items)
    if not items:
        raise InputValidationError("No photos to process")
    if executor not in EXECUTORS:
        raise InputValidationError(f"Unknown executor {executor!r}, expected one of {', '.join(EXECUTORS)}")
    policy = FailurePolicy(policy)

    workers = max(1, min(max_workers or default_workers(), len(items)))
    logger.info("Processing %d photo(s) with %d %s worker(s)", len(items), workers, executor)

    if executor == ISOLATED_EXECUTOR:
        with tempfile.TemporaryDirectory(prefix="bwm-", ignore_cleanup_errors=True) as scratch:
            runner = IsolatedRunner(Path(scratch), spec)
            pool = _make_pool(executor, workers)
            completed, failed = _execute(items, runner, pool, policy, timeout, progress_callback)
    else:
        pool = _make_pool(executor, workers)
        process = partial(process_photo, spec=spec)
        completed, failed = _execute(items, process, pool, policy, timeout, progress_callback)

    if not completed:
        raise NoValidOutputs(failed)

    failed.sort(key=lambda f: f.index)
    result = BatchResult(processed=assign_entry_names(completed), failed=failed, policy=policy)
    logger.info("Batch finished: %d succeeded, %d failed", len(result.processed), len(result.failed))
    return result
