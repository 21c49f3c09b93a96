"""Error types for analyzer calls.

A single AnalyzerError carries the failure kind so the orchestrator can decide
between falling back (retryable) and stopping (fatal) without inspecting
transport exceptions.
"""

from enum import StrEnum

BODY_PREVIEW_CHARS = 180
ROUTE_MISSING_STATUSES = frozenset({404, 405})


class AnalyzerErrorKind(StrEnum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    CORS = "cors"
    HTTP_4XX = "http_4xx"
    HTTP_5XX = "http_5xx"
    MALFORMED_RESPONSE = "malformed_response"
    EMPTY_OUTPUT = "empty_output"


def summarize_body(text: str | None) -> str | None:
    """Collapse whitespace and truncate a response body for error display."""
    if not text:
        return None
    normalized = " ".join(text.split())
    if len(normalized) > BODY_PREVIEW_CHARS:
        return f"{normalized[:BODY_PREVIEW_CHARS]}..."
    return normalized


class AnalyzerError(Exception):
    """Raised when an analyzer call fails or returns nothing usable."""

    def __init__(
        self,
        kind: AnalyzerErrorKind,
        message: str,
        url: str = "",
        status_code: int | None = None,
        body: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.url = url
        self.status_code = status_code
        self.body = summarize_body(body)
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether another strategy may still succeed.

        4xx means the request itself was rejected, except 404/405 where the
        endpoint is simply not deployed on this host.
        """
        if self.kind == AnalyzerErrorKind.HTTP_4XX:
            return self.status_code in ROUTE_MISSING_STATUSES
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "url": self.url,
            "status": self.status_code,
            "body": self.body,
        }


class AnalysisFailedError(Exception):
    """Raised when every fallback strategy is exhausted.

    No recommendation is produced; last_error carries the status code and URL
    for the failure panel.
    """

    def __init__(self, message: str, last_error: AnalyzerError | None = None):
        self.message = message
        self.last_error = last_error
        super().__init__(self.message)

    def to_dict(self) -> dict[str, object]:
        return {
            "message": self.message,
            "error": self.last_error.to_dict() if self.last_error else None,
        }


class MergeError(Exception):
    """Raised when no analyzer produced usable output to merge."""

    def __init__(self, message: str = "No analyzer produced usable output"):
        self.message = message
        super().__init__(self.message)
