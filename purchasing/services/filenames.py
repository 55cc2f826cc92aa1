"""Filename helpers for uploads (Korean names mangled by multipart clients)."""

import re
import time
import unicodedata
from pathlib import Path

from purchasing.core.config import settings
from purchasing.core.exceptions import NotFoundError, ValidationError

_HANGUL = re.compile(r"[가-힣]")
_LATIN1_EXTENDED = re.compile(r"[À-ÿ]")
_UNSAFE = re.compile(r"[^\w.\-가-힣]+")


def has_korean(text: str) -> bool:
    return bool(_HANGUL.search(text or ""))


def looks_mis_decoded(filename: str) -> bool:
    """True when the name carries the latin-1 artefacts of a UTF-8 name."""
    return bool(_LATIN1_EXTENDED.search(filename or ""))


def decode_filename(filename: str) -> str:
    """Repair a UTF-8 filename that was decoded as latin-1.

    Returns the input unchanged when it is already correct or cannot be
    reinterpreted.
    """
    if not filename or has_korean(filename) or not looks_mis_decoded(filename):
        return filename
    try:
        repaired = filename.encode("latin-1").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return filename
    return unicodedata.normalize("NFC", repaired)


def stored_name(original_name: str, *, prefix: str = "") -> str:
    """``<prefix><ms timestamp>-<safe stem><suffix>`` for writing to disk."""
    path = Path(original_name)
    stem = _UNSAFE.sub("_", unicodedata.normalize("NFC", path.stem)).strip("_") or "file"
    return f"{prefix}{int(time.time() * 1000)}-{stem[:80]}{path.suffix.lower()}"

# ---------------------------------------------------------------------------
# Upload directory
# ---------------------------------------------------------------------------

def upload_root() -> Path:
    root = Path(settings.upload_dir).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def resolve_upload_path(file_path: str) -> Path:
    """Resolve a client-supplied path and require it to be an existing file inside the upload directory."""
    root = upload_root()
    candidate = Path(file_path)
    if not candidate.is_absolute():
        # Accept both "uploads/x.xlsx" and the bare stored name
        candidate = root / candidate.name if candidate.parent == Path(".") else Path.cwd() / candidate
    resolved = candidate.resolve()
    if root != resolved and root not in resolved.parents:
        raise ValidationError("File path must point inside the upload directory")
    if not resolved.is_file():
        raise NotFoundError("File", Path(file_path).name)
    return resolved


def sibling_path(path: Path, prefix: str, suffix: str) -> Path:
    """``<dir>/<prefix>-<ms timestamp><suffix>`` next to *path*."""
    return path.parent / f"{prefix}-{int(time.time() * 1000)}{suffix}"
