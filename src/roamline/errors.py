"""Error types and user-facing error classification.

Remote failures are raised as RoamError subclasses by the API client and
turned into an ErrorInfo before they reach the UI. The TUI never shows a
raw exception; it shows an ErrorInfo as a dismissible notice.
"""

from __future__ import annotations

from dataclasses import dataclass


class RoamError(Exception):
    """Base class for everything roamline raises on purpose."""


class ApiError(RoamError):
    """The remote service answered with a non-success status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"API error ({status}): {message}")
        self.status = status
        self.message = message


class TransportError(RoamError):
    """The request never produced a usable response."""


class ConfigError(RoamError):
    """Configuration is missing or invalid."""

    def __str__(self) -> str:
        return f"Config error: {self.args[0] if self.args else ''}"


@dataclass(frozen=True)
class ErrorInfo:
    """A classified error ready for display."""

    title: str
    message: str
    hint: str = ""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        if isinstance(exc, ApiError):
            return cls._from_status(exc.status, exc.message)
        if isinstance(exc, TransportError):
            return cls(
                title="Network error",
                message=str(exc),
                hint="Check your connection and try again.",
            )
        if isinstance(exc, ConfigError):
            return cls(title="Configuration error", message=str(exc))
        return cls(title="Unexpected error", message=str(exc) or type(exc).__name__)

    @classmethod
    def write_failed(cls, exc: BaseException) -> "ErrorInfo":
        base = cls.from_exception(exc)
        return cls(
            title="Write failed",
            message=base.message,
            hint="Local changes were kept. Repeat the edit to retry.",
        )

    @classmethod
    def _from_status(cls, status: int, body: str) -> "ErrorInfo":
        message = body.strip() or f"HTTP {status}"
        if status in (401, 403):
            return cls(
                title="Authentication failed",
                message=message,
                hint="Check graph.api_token or ROAM_API_TOKEN.",
            )
        if status == 404:
            return cls(
                title="Not found",
                message=message,
                hint="Check graph.name in your config.",
            )
        if status == 429:
            return cls(
                title="Rate limited",
                message=message,
                hint="Wait a moment before retrying.",
            )
        if status >= 500:
            return cls(title=f"Server error ({status})", message=message)
        return cls(title=f"API error ({status})", message=message)
