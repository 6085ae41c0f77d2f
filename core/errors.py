"""Base exceptions shared across packages."""


class MeatDeskError(Exception):
    """Base exception for application errors."""
    pass


class ConfigurationError(MeatDeskError):
    """Required configuration is missing or invalid."""
    pass
