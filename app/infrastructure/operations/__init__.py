"""Operation result types and status enums.

Standardized result types for outbound operations, including status
enums, result dataclasses, and error classifiers for transport failures.
"""

from infrastructure.operations.classifiers import (
    classify_http_error,
    classify_http_response,
    classify_smtp_error,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_error",
    "classify_http_response",
    "classify_smtp_error",
]
