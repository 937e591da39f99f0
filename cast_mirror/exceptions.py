"""Error taxonomy shared by the collector, services and API layers."""

from typing import Optional


class CastMirrorError(Exception):
    """Base class for all cast mirror errors.

    Every error carries a machine-readable ``kind`` and a human-readable
    ``detail`` so that callers can report failures without leaking internals.
    """

    kind = "internal_error"
    message = "An unexpected error occurred"

    def __init__(self, detail: str = ""):
        self.detail = detail or self.message
        super().__init__(self.detail)


class RateLimitExceeded(CastMirrorError):
    """The sync cycle declined to run because the upstream call budget is spent."""

    kind = "rate_limit_exceeded"
    message = "Rate limit exceeded. Please try again later."


class UpstreamUnauthorized(CastMirrorError):
    """The upstream feed rejected our API key."""

    kind = "upstream_unauthorized"
    message = "Unauthorized access to the upstream feed API"


class UpstreamFailure(CastMirrorError):
    """Any other non-2xx response or network error from the upstream feed."""

    kind = "upstream_failure"
    message = "Upstream feed request failed"

    def __init__(self, detail: str = "", status: Optional[int] = None):
        self.status = status
        super().__init__(detail)


class RecordMergeFailure(CastMirrorError):
    """A single fetched item could not be merged into the store."""

    kind = "record_merge_failure"
    message = "Failed to merge record"


class NotFound(CastMirrorError):
    """No record exists for the requested id."""

    kind = "not_found"
    message = "Cast not found"


class StoreFailure(CastMirrorError):
    """A read or write against the key-value store failed."""

    kind = "store_failure"
    message = "Key-value store operation failed"


class InvalidRequest(CastMirrorError):
    """A caller supplied a malformed request."""

    kind = "invalid_request"
    message = "Invalid request"
