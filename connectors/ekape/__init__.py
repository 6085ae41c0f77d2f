"""EKAPE Grading Connector Package.

Client for the livestock grading confirmation service of the public data
portal (축산물품질평가원 등급판정 OpenAPI).
"""

from connectors.ekape.errors import (
    EkapeApiError,
    EkapeNotFoundError,
    EkapeRateLimitError,
    EkapeResponseError,
)
from connectors.ekape.ekape_client import (
    EkapeClient,
    EkapeConfig,
    RetryConfig,
    NOT_FOUND_MESSAGE,
)
from connectors.ekape.ekape_xml import parse_ekape_items, SUCCESS_CODES

__all__ = [
    # Client
    "EkapeClient",
    "EkapeConfig",
    "RetryConfig",
    "NOT_FOUND_MESSAGE",
    # Errors
    "EkapeApiError",
    "EkapeNotFoundError",
    "EkapeRateLimitError",
    "EkapeResponseError",
    # XML
    "parse_ekape_items",
    "SUCCESS_CODES",
]
