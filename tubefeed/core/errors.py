"""Failure classes, one per scope they apply to."""


class TubefeedError(Exception):
    """Base error for the feed service."""


class QuotaExceededError(TubefeedError):
    """The active API key hit its quota or rate limit. Recover by rotating keys."""


class TransientSearchError(TubefeedError):
    """A search call failed for a retryable reason (network, 5xx, client build)."""


class InvalidVideoError(TubefeedError):
    """A single search item could not be turned into a Video. Skip the item."""


class PersistenceError(TubefeedError):
    """A store statement failed."""


class ConfigurationError(TubefeedError):
    """Missing or invalid startup configuration. Fatal."""
