"""Local object store for uploaded files and claim evidence."""

from __future__ import annotations

import re
import uuid
from pathlib import Path
from urllib.parse import urlparse

from app.core.config import get_settings


def _clean_segment(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", value.strip())
    return cleaned or "object"


class LocalObjectStore:
    def __init__(self, base_dir: str) -> None:
        self.base = Path(base_dir)

    def put_bytes(self, *, key: str, data: bytes) -> str:
        path = self.base / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return f"file://{path.resolve().as_posix()}"

    def put_upload(self, *, owner: str, kind: str, filename: str, data: bytes) -> str:
        """Store an upload under ``{owner}/{kind}/`` with a collision-free name."""
        key = f"{_clean_segment(owner)}/{_clean_segment(kind)}/{uuid.uuid4().hex}-{_clean_segment(filename)}"
        return self.put_bytes(key=key, data=data)

    def resolve_path(self, uri: str) -> Path:
        """Resolve a ``file://`` URI or a relative key to a local path."""
        parsed = urlparse(uri)
        if parsed.scheme == "file":
            return Path(parsed.path)
        if parsed.scheme == "":
            p = Path(uri)
            return p if p.is_absolute() else self.base / p
        raise ValueError(f"Unsupported storage scheme: {parsed.scheme}")

    def delete(self, uri: str) -> bool:
        path = self.resolve_path(uri)
        if path.is_file():
            path.unlink()
            return True
        return False


def get_object_store() -> LocalObjectStore:
    return LocalObjectStore(get_settings().storage_dir)
