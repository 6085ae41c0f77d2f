"""Persistence for the applicant (business) info printed on certificates."""

import json
from pathlib import Path

from pydantic import ValidationError

from core.models.certificate import BusinessInfo
from core.models.refs import StoredDocument
from core.observability.logging import get_logger
from core.storage.documents import put_json, read_json


logger = get_logger(__name__)


def load_business_info(path: Path) -> BusinessInfo:
    """Load saved business info, or an empty record when none is usable.

    Missing fields in the stored document fall back to empty strings.
    """
    try:
        data = read_json(path)
    except FileNotFoundError:
        return BusinessInfo()
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring unreadable business info at {path}: {e}")
        return BusinessInfo()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring business info at {path}: expected an object")
        return BusinessInfo()

    try:
        return BusinessInfo.model_validate({**BusinessInfo().model_dump(), **data})
    except ValidationError as e:
        logger.warning(f"Ignoring invalid business info at {path}: {e}")
        return BusinessInfo()


def save_business_info(info: BusinessInfo, path: Path) -> StoredDocument:
    """Persist business info and return the stored document reference."""
    ref = put_json(info, path)
    logger.info("Business info saved", extra_fields={"path": ref.storage_uri})
    return ref
