import io
import json
import logging
import re
import zipfile

from .core import MANIFEST_NAME
from .core.errors import PackagingError
from .core.models import BatchResult

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def safe_name(filename: str) -> str:
    """Reduce an advisory upload filename to a display-safe base name."""
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE_CHARS.sub("_", base).strip(" .")
    return base or "unnamed"


def build_manifest(result: BatchResult) -> dict:
    """Manifest listing {file, duration} for every packaged entry, in entry order."""
    manifest = {
        "files": [
            {"file": item.entry_name, "duration": round(item.duration_seconds, 6)}
            for item in result.processed
        ]
    }
    failures = result.reported_failures
    if failures:
        manifest["failed"] = [{"file": safe_name(f.identifier), "reason": f.reason} for f in failures]
    return manifest


def build_archive(result: BatchResult) -> bytes:
    """
    Pack processed images and the manifest into a finalized ZIP.

    Bytes are only returned after the central directory has been written.

    Raises:
        PackagingError: If entry names collide or the archive cannot be written
    """
    names = [item.entry_name for item in result.processed]
    if len(set(names)) != len(names) or MANIFEST_NAME in names:
        raise PackagingError("Duplicate entry names in archive")

    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
            for item in result.processed:
                zf.writestr(item.entry_name, item.output_bytes)
            zf.writestr(MANIFEST_NAME, json.dumps(build_manifest(result), indent=2))
    except (OSError, ValueError, zipfile.LargeZipFile) as e:
        raise PackagingError(f"Cannot write archive: {e}") from e

    data = buffer.getvalue()
    logger.debug("Archive finalized: %d entries, %d bytes", len(names), len(data))
    return data


def read_manifest(archive: bytes) -> dict:
    """Load the manifest back from archive bytes."""
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        return json.loads(zf.read(MANIFEST_NAME))
