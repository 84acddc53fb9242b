# app/storage/payload_store.py
# =============================
# Append-only log of raw webhook bodies
# One pretty-printed JSON file per accepted delivery.
# =============================

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from json import JSONDecodeError
from pathlib import Path
from typing import Any, List, Tuple, Union

from app.config import ORDER_CREATED, ORDER_UPDATED
from app.errors import PayloadAbsent, StorageWriteFailure
from app.storage.json_files import atomic_write_json, read_json_or_text, safe_child

logger = logging.getLogger("uvicorn.error")

TIMESTAMP_RE = re.compile(r"_(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}.*)\.json")

EVENT_LABELS = {
    ORDER_CREATED: "Order Created",
    ORDER_UPDATED: "Order Updated",
}


def iso_millis(ts: datetime) -> str:
    """2024-01-01T10:20:30.123Z, always UTC."""
    ts = ts.astimezone(timezone.utc) if ts.tzinfo else ts.replace(tzinfo=timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def build_filename(event_type: str, received_at: datetime) -> str:
    stamp = iso_millis(received_at).replace(":", "-").replace(".", "-")
    return f"{event_type.replace('-', '_')}_{stamp}.json"


def timestamp_from_filename(filename: str) -> str:
    match = TIMESTAMP_RE.search(filename)
    if not match:
        return "Unknown"
    date_part, _, time_part = match.group(1).partition("T")
    clock = time_part.replace("-", ":", 2).replace("-", ".", 1)
    return f"{date_part}T{clock}"


def classify_filename(filename: str) -> str:
    if "order_created" in filename:
        return ORDER_CREATED
    return ORDER_UPDATED


def decode_body(body: Union[bytes, str, Any]) -> Any:
    """
    Turn a raw request body into the value we persist.
    JSON bodies are kept as-is, anything else is wrapped so nothing is lost.
    """
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
    elif isinstance(body, str):
        text = body
    else:
        return body
    try:
        return json.loads(text)
    except JSONDecodeError:
        return {"rawContent": text}


@dataclass
class PayloadInfo:
    filename: str
    size: int
    modified: datetime
    event_type: str
    timestamp: str

    @property
    def size_kb(self) -> str:
        return f"{self.size / 1024:.2f} KB"

    @property
    def label(self) -> str:
        return EVENT_LABELS.get(self.event_type, self.event_type)

    @property
    def formatted_date(self) -> str:
        return self.modified.strftime("%Y-%m-%d %H:%M:%S")

    def as_dict(self) -> dict:
        return {
            "filename": self.filename,
            "size": self.size,
            "size_kb": self.size_kb,
            "modified": self.modified.isoformat(),
            "type": self.event_type,
            "label": self.label,
            "timestamp": self.timestamp,
        }


class PayloadStore:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def ensure_dir(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def store(self, event_type: str, received_at: datetime, body: Union[bytes, str, Any]) -> str:
        """
        Persist one webhook body. Returns the generated filename.
        Raises PayloadAbsent for an empty body, StorageWriteFailure on I/O errors.
        """
        if body is None or (isinstance(body, (bytes, bytearray, str)) and not body.strip()):
            raise PayloadAbsent("No payload data found in request")

        filename = build_filename(event_type, received_at)
        path = self.base_dir / filename
        try:
            atomic_write_json(path, decode_body(body))
        except (OSError, TypeError, ValueError) as e:
            raise StorageWriteFailure(path, e) from e
        logger.info("[Payloads] wrote %s", filename)
        return filename

    def list_payloads(self) -> List[PayloadInfo]:
        rows: List[PayloadInfo] = []
        for path in self.base_dir.iterdir():
            if not path.is_file() or path.suffix != ".json" or path.name.startswith(".tmp_"):
                continue
            try:
                st = path.stat()
            except FileNotFoundError:
                continue
            rows.append(PayloadInfo(
                filename=path.name,
                size=st.st_size,
                modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                event_type=classify_filename(path.name),
                timestamp=timestamp_from_filename(path.name),
            ))
        rows.sort(key=lambda r: r.modified, reverse=True)
        return rows

    def read(self, filename: str) -> Tuple[Any, bool]:
        """
        Raises InvalidFilename for traversal attempts, FileNotFoundError when missing.
        """
        path = safe_child(self.base_dir, filename)
        if not path.is_file():
            raise FileNotFoundError(filename)
        return read_json_or_text(path)
