"""Out-of-process execution: one worker process per photo.

Jobs are plain path triples handed to ``python -m batch_watermark.worker``.
A crashing decoder only takes down its own process.
"""

import logging
import subprocess
import sys
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from ..core.errors import WorkerExitFailure
from ..core.models import WatermarkSpec
from .image import encode_png

logger = logging.getLogger(__name__)

WORKER_MODULE = "batch_watermark.worker"


@dataclass(frozen=True)
class WorkerJob:
    """Paths exchanged with a worker process."""

    input_path: Path
    watermark_path: Path
    output_path: Path

    def command(self, spec: WatermarkSpec) -> list[str]:
        return [
            sys.executable,
            "-m",
            WORKER_MODULE,
            str(self.input_path),
            str(self.watermark_path),
            str(self.output_path),
            "--opacity",
            repr(spec.opacity),
            "--margin",
            str(spec.margin),
            "--scale",
            repr(spec.scale),
        ]


@dataclass(frozen=True)
class WorkerOutcome:
    job: WorkerJob
    returncode: int
    duration_seconds: float
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def scratch_path(directory: Path, suffix: str = "") -> Path:
    """Collision-resistant scratch file name inside directory."""
    return directory / f"{uuid.uuid4().hex}{suffix}"


def run_job(job: WorkerJob, spec: WatermarkSpec) -> WorkerOutcome:
    """Spawn a worker for job and wait for it to exit."""
    start = time.perf_counter()
    completed = subprocess.run(
        job.command(spec),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )
    duration = time.perf_counter() - start
    return WorkerOutcome(job=job, returncode=completed.returncode, duration_seconds=duration, stderr=completed.stderr or "")


class IsolatedRunner:
    """
    Runs photos through worker processes using a shared scratch directory.

    The watermark is written once; each photo gets its own input and output
    file named with a random identifier.
    """

    def __init__(self, scratch_dir: Path, spec: WatermarkSpec):
        self.scratch_dir = scratch_dir
        self.spec = spec
        # Decoded watermark is re-encoded losslessly for the workers
        self.watermark_path = scratch_path(scratch_dir, ".png")
        self.watermark_path.write_bytes(encode_png(spec.image))

    def __call__(self, source_bytes: bytes) -> tuple[bytes, float]:
        """Process one photo; same contract as processors.image.process_photo."""
        input_path = scratch_path(self.scratch_dir, ".img")
        output_path = scratch_path(self.scratch_dir, ".png")
        input_path.write_bytes(source_bytes)

        job = WorkerJob(input_path=input_path, watermark_path=self.watermark_path, output_path=output_path)
        try:
            outcome = run_job(job, self.spec)
            if not outcome.ok:
                logger.debug("Worker for %s failed: %s", input_path.name, outcome.stderr.strip())
                raise WorkerExitFailure(outcome.returncode, outcome.stderr)
            if not output_path.exists():
                raise WorkerExitFailure(outcome.returncode, "worker exited without writing output")
            return output_path.read_bytes(), outcome.duration_seconds
        finally:
            input_path.unlink(missing_ok=True)
            output_path.unlink(missing_ok=True)
