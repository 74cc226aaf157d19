"""Error taxonomy shared by the service clients, the query client and the API.

``ValidationError``, ``NetworkError`` and ``ServiceError`` reach the operator as
a visible message. ``ParseError`` never leaves the normalize package.
"""


class DashboardError(Exception):
    """Base class for every error the dashboard surfaces."""


class ValidationError(DashboardError):
    """User input rejected before any request was sent."""


class NetworkError(DashboardError):
    """Transport-level failure: connection refused, DNS, timeout."""


class ServiceError(DashboardError):
    """The service answered, but with a non-success status or a ``success: false`` body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QueryError(ServiceError):
    """The NL-SQL service could not answer the question."""


class ParseError(DashboardError):
    """Malformed protocol text or literal data. Always recovered locally."""
