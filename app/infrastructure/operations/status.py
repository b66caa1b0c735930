"""Operation status enumeration.

Outcome codes for outbound delivery operations, used to decide whether a
failed delivery is worth another attempt.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, 5xx)
        PERMANENT_ERROR: Non-retryable error (bad request, rejected recipient)
        UNAUTHORIZED: Credentials rejected by the upstream service
        NOT_FOUND: Target does not exist upstream
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"

    @property
    def is_retryable(self) -> bool:
        return self is OperationStatus.TRANSIENT_ERROR
