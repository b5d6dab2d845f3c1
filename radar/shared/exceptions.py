"""Custom exception hierarchy for Commit Radar."""


class RadarError(Exception):
    """Base exception for all service errors."""

    pass


class ConfigError(RadarError):
    """Raised when configuration validation fails."""

    pass


class GitHubAPIError(RadarError):
    """Raised when GitHub API requests fail."""

    pass


class DatabaseError(RadarError):
    """Raised when database operations fail."""

    pass


class PayloadError(RadarError):
    """Raised when a webhook body cannot be decoded into a known event shape."""

    pass
