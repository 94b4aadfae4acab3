import io
import zipfile

import pytest

from batch_watermark.archive import build_archive, build_manifest, read_manifest, safe_name
from batch_watermark.core.errors import PackagingError
from batch_watermark.core.models import BatchResult, FailedItem, FailurePolicy, ProcessedItem


def make_result(count: int, policy=FailurePolicy.REPORT, failures=()) -> BatchResult:
    processed = [
        ProcessedItem(
            entry_name=f"watermarked_{i}.png",
            output_bytes=f"png-{i}".encode(),
            duration_seconds=0.01 * i,
            identifier=f"photo{i}.jpg",
            index=i - 1,
        )
        for i in range(1, count + 1)
    ]
    return BatchResult(processed=processed, failed=list(failures), policy=policy)


def test_one_entry_per_item_plus_manifest():
    archive = build_archive(make_result(3))

    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        assert zf.testzip() is None
        assert zf.namelist() == [
            "watermarked_1.png",
            "watermarked_2.png",
            "watermarked_3.png",
            "manifest.json",
        ]
        assert zf.read("watermarked_2.png") == b"png-2"


def test_manifest_mirrors_entry_order():
    manifest = read_manifest(build_archive(make_result(3)))

    assert [entry["file"] for entry in manifest["files"]] == [
        "watermarked_1.png",
        "watermarked_2.png",
        "watermarked_3.png",
    ]
    assert manifest["files"][2]["duration"] == pytest.approx(0.03)
    assert "failed" not in manifest


def test_reported_failures_are_listed():
    failures = [FailedItem(identifier="../../etc/passwd", reason="Cannot decode image", index=3)]
    manifest = build_manifest(make_result(1, failures=failures))

    assert manifest["failed"] == [{"file": "passwd", "reason": "Cannot decode image"}]


def test_omit_policy_hides_failures():
    failures = [FailedItem(identifier="bad.png", reason="nope")]
    manifest = build_manifest(make_result(2, policy=FailurePolicy.OMIT, failures=failures))

    assert "failed" not in manifest
    assert len(manifest["files"]) == 2


def test_duplicate_entry_names_are_rejected():
    result = make_result(2)
    result.processed.append(result.processed[0])

    with pytest.raises(PackagingError):
        build_archive(result)


def test_entry_named_like_manifest_is_rejected():
    result = make_result(1)
    result.processed[0] = ProcessedItem(entry_name="manifest.json", output_bytes=b"x", duration_seconds=0.0)

    with pytest.raises(PackagingError):
        build_archive(result)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("photo.jpg", "photo.jpg"),
        ("C:\\Users\\me\\IMG 1.png", "IMG 1.png"),
        ("../../secret", "secret"),
        ("..", "unnamed"),
        ("weird<>|name?.png", "weird_name_.png"),
    ],
)
def test_safe_name(filename, expected):
    assert safe_name(filename) == expected
