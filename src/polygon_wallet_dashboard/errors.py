"""Error taxonomy shared by every source adapter and the aggregation session."""

import asyncio
from typing import Any

import httpx


class DashboardError(Exception):
    """
    Base exception for dashboard data errors.

    Parameters
    ----------
    message : str
        Human-readable description, safe to show to the user
    source : str | None
        Upstream or adapter that produced the error (e.g., 'alchemy', 'polygonscan')
    details : dict[str, Any] | None
        Extra provider-specific context

    """

    kind = "error"

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.source = source
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize the error for JSON output.

        Returns
        -------
        dict[str, Any]
            Error kind, message, source and details

        """
        return {
            "kind": self.kind,
            "message": self.message,
            "source": self.source,
            "details": self.details,
        }


class ConfigError(DashboardError):
    """Missing or invalid credential/endpoint. Actionable by the operator, not retryable."""

    kind = "config"


class NetworkError(DashboardError):
    """Timeout, refused connection or rate limiting. Transient, safe to retry manually."""

    kind = "network"

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, source, details)
        self.retry_after = retry_after


class UpstreamError(DashboardError):
    """Provider answered with an error status or error payload."""

    kind = "upstream"

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, source, details)
        self.status_code = status_code


class ValidationError(DashboardError):
    """Malformed address or upstream record."""

    kind = "validation"


def classify_http_error(exc: BaseException, source: str) -> DashboardError:
    """
    Map an httpx (or asyncio timeout) exception onto the error taxonomy.

    Parameters
    ----------
    exc : BaseException
        Exception raised while talking to an upstream
    source : str
        Upstream name used in messages

    Returns
    -------
    DashboardError
        Classified error; already-classified errors are returned unchanged

    """
    if isinstance(exc, DashboardError):
        return exc

    if isinstance(exc, httpx.TimeoutException | asyncio.TimeoutError | TimeoutError):
        return NetworkError(f"{source} request timed out", source=source)

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429:
            retry_after = exc.response.headers.get("retry-after")
            try:
                retry_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_seconds = None
            return NetworkError(
                f"{source} rate limit exceeded, please try again later",
                source=source,
                retry_after=retry_seconds,
            )
        if status in (401, 403):
            return UpstreamError(
                f"{source} rejected the API key (HTTP {status})",
                source=source,
                status_code=status,
            )
        return UpstreamError(
            f"{source} returned HTTP {status}",
            source=source,
            status_code=status,
            details={"body": exc.response.text[:500]},
        )

    if isinstance(exc, httpx.HTTPError):
        return NetworkError(f"{source} request failed: {exc}", source=source)

    return UpstreamError(f"{source} call failed: {exc}", source=source)
