"""API Routes Package."""

from api.routes import health, records, certificates, production, settings

__all__ = [
    "health",
    "records",
    "certificates",
    "production",
    "settings",
]
