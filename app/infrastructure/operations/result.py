"""Outcome of a single delivery attempt against an upstream transport.

Classifiers turn HTTP responses and SMTP failures into this shape so the
senders never branch on transport specifics.
"""

from typing import Optional, Any
from dataclasses import dataclass

from infrastructure.operations.status import OperationStatus


@dataclass
class OperationResult:
    """Classified transport outcome.

    Attributes:
        status: OperationStatus -- high-level outcome
        message: str -- log-friendly text, ends up in the queue item's last_error
        data: Optional[Any] -- response excerpt or message id on success
        error_code: Optional[str] -- short code such as RATE_LIMITED or SMTP_AUTH
        retry_after: Optional[int] -- upstream hint in seconds when throttled
    """

    status: OperationStatus
    message: str
    data: Optional[Any] = None
    error_code: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCESS

    @property
    def is_retryable(self) -> bool:
        return self.status.is_retryable

    def log_fields(self) -> dict[str, Any]:
        """Structured fields for a failed delivery log line."""
        fields: dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.retry_after is not None:
            fields["retry_after"] = self.retry_after
        return fields

    @classmethod
    def success(
        cls, data: Optional[Any] = None, message: str = "ok"
    ) -> "OperationResult":
        return cls(status=OperationStatus.SUCCESS, message=message, data=data)

    @classmethod
    def error(
        cls,
        status: OperationStatus,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
    ) -> "OperationResult":
        return cls(
            status=status,
            message=message,
            error_code=error_code,
            retry_after=retry_after,
        )

    @classmethod
    def transient_error(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Timeouts, connection resets, 5xx and temporary SMTP replies."""
        return cls.error(OperationStatus.TRANSIENT_ERROR, message, error_code)

    @classmethod
    def rate_limited(cls, message: str, retry_after: int) -> "OperationResult":
        """Upstream throttling; the worker waits at least ``retry_after``."""
        return cls.error(
            OperationStatus.TRANSIENT_ERROR,
            message,
            error_code="RATE_LIMITED",
            retry_after=retry_after,
        )

    @classmethod
    def permanent_error(
        cls, message: str, error_code: Optional[str] = None
    ) -> "OperationResult":
        """Rejected payloads, empty targets and refused recipients."""
        return cls.error(OperationStatus.PERMANENT_ERROR, message, error_code)

    @classmethod
    def unauthorized(cls, message: str, error_code: str = "UNAUTHORIZED") -> "OperationResult":
        return cls.error(OperationStatus.UNAUTHORIZED, message, error_code)

    @classmethod
    def not_found(cls, message: str) -> "OperationResult":
        return cls.error(OperationStatus.NOT_FOUND, message, "NOT_FOUND")
