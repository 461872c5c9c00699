"""
Exception types for Job Alert.

Transport failures while talking to a provider are represented by
httpx.TransportError. The retry loops absorb them on early attempts, but
the final one is re-raised unchanged, so callers may see it alongside
the types below.
"""

from typing import Optional


class JobAlertError(Exception):
    """Base class for all Job Alert errors."""


class ConfigError(JobAlertError):
    """Missing or invalid static configuration. Never retried."""


class ProviderError(JobAlertError):
    """A remote provider call failed or returned malformed data."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None
    ):
        self.status = status
        self.body = body
        if status is not None:
            message = f"{message} (status {status})"
            if body:
                message = f"{message}: {body}"
        super().__init__(message)
