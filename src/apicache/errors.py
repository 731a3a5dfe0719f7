"""Exception taxonomy for the request cache layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ApiCacheError(Exception):
    """Base exception for apicache."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class MissingFetcherError(ApiCacheError):
    """Raised by the placeholder fetcher when no real fetcher was configured."""

    def __init__(self, message: str = "Missing fetcher!", details: Optional[Dict[str, Any]] = None):
        super().__init__("MISSING_FETCHER", message, details)


class FetchError(ApiCacheError):
    """Transport or HTTP failure raised by a shipped fetcher."""

    def __init__(
        self,
        message: str = "Fetch failed",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__("FETCH_ERROR", message, details)


class UnknownOperationError(ApiCacheError, KeyError):
    """Operation identifier is not present in the operations table."""

    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        super().__init__(
            "UNKNOWN_OPERATION",
            f"Unknown operation: {operation_id!r}",
            {"operation_id": operation_id},
        )

    def __str__(self) -> str:
        return self.message
