"""API Package.

FastAPI server for MeatDesk.
"""

from api.server import create_app

__all__ = [
    "create_app",
]
