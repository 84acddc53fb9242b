import json
import os
import tempfile
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Tuple

from app.errors import InvalidFilename


# -------------------------------------------------
# Low-level JSON file helpers shared by both stores
# -------------------------------------------------
def atomic_write_json(path: Path, payload: Any) -> None:
    # temp file in the same directory + fsync + rename, so readers never
    # see a half-written record
    directory = str(path.parent) or "."
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
            json.dump(payload, tmp_file, indent=2, ensure_ascii=False)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def read_json_or_text(path: Path) -> Tuple[Any, bool]:
    """
    Returns (value, is_json). Content that does not parse comes back as text.
    Raises FileNotFoundError when the file is missing or unreadable.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except (FileNotFoundError, IsADirectoryError, PermissionError) as e:
        raise FileNotFoundError(str(path)) from e
    try:
        return json.loads(text), True
    except JSONDecodeError:
        return text, False


def safe_child(base_dir: Path, name: str) -> Path:
    """
    Join `name` onto `base_dir`, refusing anything that could escape it.
    """
    if not name or "../" in name or "..\\" in name:
        raise InvalidFilename(f"Invalid filename: {name!r}")
    if "/" in name or "\\" in name or "\x00" in name or name in (".", ".."):
        raise InvalidFilename(f"Invalid filename: {name!r}")

    base = base_dir.resolve()
    candidate = (base / name).resolve()
    if candidate.parent != base:
        raise InvalidFilename(f"Invalid filename: {name!r}")
    return candidate
