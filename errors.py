"""Exception types for vpn-catalog."""


class CatalogError(Exception):
    """Base exception for all vpn-catalog errors."""
    pass


class ConfigError(CatalogError):
    """Raised when configuration values are missing or malformed."""
    pass


class InvalidPublicKeyError(CatalogError):
    """Raised when the pinned public key cannot be decoded."""
    pass


class EmptyResponseError(CatalogError):
    """Raised when a manifest or signature response has no body."""
    pass


class CatalogParseError(CatalogError):
    """Raised when a verified manifest cannot be parsed into a catalog."""
    pass
