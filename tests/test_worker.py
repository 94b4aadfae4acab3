import subprocess
import sys

import numpy as np
import pytest
from typer.testing import CliRunner

from batch_watermark.core.errors import WorkerExitFailure
from batch_watermark.core.models import WatermarkSpec
from batch_watermark.processors.image import decode_image, process_photo
from batch_watermark.processors.isolated import IsolatedRunner, WorkerJob, run_job
from batch_watermark.worker import app

runner = CliRunner()


@pytest.fixture
def files(tmp_path, photo_png, watermark_png, corrupt_bytes):
    (tmp_path / "photo.png").write_bytes(photo_png)
    (tmp_path / "logo.png").write_bytes(watermark_png)
    (tmp_path / "bad.png").write_bytes(corrupt_bytes)
    return tmp_path


def test_worker_cli_success(files):
    out = files / "out.png"

    result = runner.invoke(app, [str(files / "photo.png"), str(files / "logo.png"), str(out), "--opacity", "0.5"])

    assert result.exit_code == 0
    assert decode_image(out.read_bytes()).shape == (600, 800, 4)


def test_worker_cli_failure_exit_code(files):
    out = files / "out.png"

    result = runner.invoke(app, [str(files / "bad.png"), str(files / "logo.png"), str(out)])

    assert result.exit_code == 1
    assert not out.exists()


def test_worker_module_runs_as_process(files):
    out = files / "out.png"

    completed = subprocess.run(
        [sys.executable, "-m", "batch_watermark.worker", str(files / "photo.png"), str(files / "logo.png"), str(out)],
        capture_output=True,
    )

    assert completed.returncode == 0
    assert out.exists()


def test_run_job_reports_exit_status(files, spec):
    job = WorkerJob(files / "bad.png", files / "logo.png", files / "out.png")

    outcome = run_job(job, spec)

    assert not outcome.ok
    assert outcome.returncode == 1
    assert "UnsupportedFormat" in outcome.stderr


def test_isolated_runner_matches_in_process(tmp_path, photo_png, spec):
    isolated = IsolatedRunner(tmp_path, spec)

    output, duration = isolated(photo_png)
    expected, _ = process_photo(photo_png, spec)

    np.testing.assert_array_equal(decode_image(output), decode_image(expected))
    assert duration > 0
    # Only the shared watermark remains in the scratch directory
    assert list(tmp_path.iterdir()) == [isolated.watermark_path]


def test_isolated_runner_raises_on_failure(tmp_path, corrupt_bytes, watermark_array):
    isolated = IsolatedRunner(tmp_path, WatermarkSpec(image=watermark_array))

    with pytest.raises(WorkerExitFailure) as exc_info:
        isolated(corrupt_bytes)

    assert exc_info.value.returncode == 1
    assert "Cannot decode image" in str(exc_info.value)


def test_exit_failure_keeps_last_non_empty_line():
    stderr = "Traceback (most recent call last):\n  ...\nUnsupportedFormat: Cannot decode image: truncated\n\n  \n"

    error = WorkerExitFailure(2, stderr)

    assert str(error) == "Worker exited with status 2: UnsupportedFormat: Cannot decode image: truncated"
    assert str(WorkerExitFailure(3)) == "Worker exited with status 3: no output"
