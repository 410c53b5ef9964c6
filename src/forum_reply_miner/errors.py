"""
Exception types for Forum Reply Miner.

Every failure the crawl engine knows how to handle has its own type so the
caller can decide whether it is local (skip one record or page), pass-level
(treat the pass as "no new content") or fatal (refuse to start).
"""

from typing import Optional


class MinerError(Exception):
    """Base class for all errors raised by this package."""


class FetchError(MinerError):
    """A page could not be fetched, even after retrying."""

    def __init__(self, url: str, attempts: int, reason: Optional[str] = None):
        self.url = url
        self.attempts = attempts
        self.reason = reason
        message = f"Failed to fetch {url} after {attempts} attempts"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ParseError(MinerError):
    """A record or page did not have the expected structure."""


class PersistenceError(MinerError):
    """Reading or writing a day bucket or the watermark failed."""


class ConfigurationError(MinerError):
    """Required configuration is missing or invalid."""
