"""Application configuration.

Settings are read from environment variables. A `.env` file at the repository
root is loaded first when present, mirroring how the deployment sets them:

- EKAPE_API_KEY: Service key for the livestock grading API
- EKAPE_ISSUE_NO_URL / EKAPE_CATTLE_URL: Stage 1 / stage 2 endpoints
- EKAPE_TIMEOUT_SECONDS: Timeout for the issue-number call
- EKAPE_DETAIL_TIMEOUT_SECONDS: Timeout for each grade-detail call
- EKAPE_MAX_RETRIES: Retries for transport errors and 429/5xx responses
- MEATDESK_DB_PATH: SQLite file holding production logs
- MEATDESK_DATA_DIR: Directory for JSON settings documents
- MEATDESK_LOG_LEVEL / MEATDESK_LOG_JSON: Logging level and format
- SCALE_PORT / SCALE_BAUD: Serial port of the floor scale
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from core.errors import ConfigurationError


REPO_ROOT = Path(__file__).resolve().parents[1]

env_path = REPO_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)


DEFAULT_ISSUE_NO_URL = "http://data.ekape.or.kr/openapi-data/service/user/grade/confirm/issueNo"
DEFAULT_CATTLE_URL = "https://data.ekape.or.kr/openapi-data/service/user/grade/confirm/cattle"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


@dataclass
class Settings:
    """Resolved application settings."""
    ekape_api_key: Optional[str] = None
    ekape_issue_no_url: str = DEFAULT_ISSUE_NO_URL
    ekape_cattle_url: str = DEFAULT_CATTLE_URL
    ekape_timeout_seconds: float = 15.0
    ekape_detail_timeout_seconds: float = 8.0
    ekape_max_retries: int = 2

    db_path: Path = REPO_ROOT / "meatdesk.db"
    data_dir: Path = REPO_ROOT / "data"

    log_level: str = "INFO"
    log_json: bool = False

    scale_port: Optional[str] = None
    scale_baud: int = 9600

    max_finished_runs: int = 20

    @property
    def business_info_path(self) -> Path:
        """Location of the applicant (business) info document."""
        return self.data_dir / "business_info.json"

    def require_api_key(self) -> str:
        """Return the grading API key or raise if it is not configured."""
        if not self.ekape_api_key:
            raise ConfigurationError(
                "EKAPE_API_KEY environment variable not set. "
                "Set it to the service key issued by the public data portal"
            )
        return self.ekape_api_key


def load_settings() -> Settings:
    """Build settings from the environment.

    Returns:
        Settings with defaults applied for unset variables

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed
    """
    db_path = os.getenv("MEATDESK_DB_PATH")
    data_dir = os.getenv("MEATDESK_DATA_DIR")

    return Settings(
        ekape_api_key=os.getenv("EKAPE_API_KEY") or None,
        ekape_issue_no_url=os.getenv("EKAPE_ISSUE_NO_URL", DEFAULT_ISSUE_NO_URL),
        ekape_cattle_url=os.getenv("EKAPE_CATTLE_URL", DEFAULT_CATTLE_URL),
        ekape_timeout_seconds=_env_float("EKAPE_TIMEOUT_SECONDS", 15.0),
        ekape_detail_timeout_seconds=_env_float("EKAPE_DETAIL_TIMEOUT_SECONDS", 8.0),
        ekape_max_retries=_env_int("EKAPE_MAX_RETRIES", 2),
        db_path=Path(db_path) if db_path else REPO_ROOT / "meatdesk.db",
        data_dir=Path(data_dir) if data_dir else REPO_ROOT / "data",
        log_level=os.getenv("MEATDESK_LOG_LEVEL", "INFO").upper(),
        log_json=_env_bool("MEATDESK_LOG_JSON"),
        scale_port=os.getenv("SCALE_PORT") or None,
        scale_baud=_env_int("SCALE_BAUD", 9600),
        max_finished_runs=_env_int("MEATDESK_MAX_FINISHED_RUNS", 20),
    )
