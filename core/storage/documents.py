"""JSON document storage for settings.

Documents are written atomically (temp file + rename) and returned with a
StoredDocument reference carrying a content hash.
"""

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from core.models.refs import StoredDocument


def _compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash of bytes."""
    return hashlib.sha256(data).hexdigest()


def put_json(obj: Any, path: Path, ensure_parent: bool = True) -> StoredDocument:
    """Store a JSON-serializable object and return a StoredDocument.

    Args:
        obj: Object to serialize to JSON (dict or Pydantic model)
        path: File path where the document will be stored
        ensure_parent: Create parent directories if they don't exist

    Returns:
        StoredDocument with metadata for retrieval
    """
    path = Path(path)
    if ensure_parent:
        path.parent.mkdir(parents=True, exist_ok=True)

    if hasattr(obj, "model_dump"):
        obj = obj.model_dump(mode="json")

    json_bytes = json.dumps(obj, indent=2, ensure_ascii=False).encode("utf-8")

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(json_bytes)
    tmp_path.replace(path)

    return StoredDocument(
        storage_uri=str(path.absolute()),
        content_hash=_compute_sha256(json_bytes),
        size_bytes=len(json_bytes),
        stored_at=datetime.now(timezone.utc),
    )


def read_json(path: Path) -> Any:
    """Read a JSON document.

    Raises:
        FileNotFoundError: If the document doesn't exist
        json.JSONDecodeError: If the file is not valid JSON
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    return json.loads(path.read_bytes().decode("utf-8"))
