"""Core storage - JSON documents and saved settings."""

from core.storage.documents import put_json, read_json
from core.storage.business_info import load_business_info, save_business_info

__all__ = [
    "put_json",
    "read_json",
    "load_business_info",
    "save_business_info",
]
