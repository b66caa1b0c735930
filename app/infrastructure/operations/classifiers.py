"""Error classifiers for outbound delivery failures.

Converts transport-specific failures (HTTP responses and ``requests``
exceptions, ``smtplib`` exceptions) into standardized OperationResult
objects so every sender shares one retry taxonomy.

Key Functions:
- classify_http_response(): non-2xx ``requests.Response`` -> OperationResult
- classify_http_error(): ``requests`` exceptions -> OperationResult
- classify_smtp_error(): ``smtplib`` / socket exceptions -> OperationResult

Usage:
    from infrastructure.operations.classifiers import classify_http_error

    try:
        response = session.post(url, json=body, timeout=10)
    except requests.RequestException as exc:
        return classify_http_error(exc)
"""

import smtplib
from typing import Optional

import requests

from infrastructure.operations.result import OperationResult

DEFAULT_RETRY_AFTER_SECONDS = 60


def _retry_after(response: requests.Response) -> int:
    header_value = response.headers.get("Retry-After")
    if header_value:
        try:
            return int(header_value)
        except (ValueError, TypeError):
            pass  # Use default if header is malformed
    return DEFAULT_RETRY_AFTER_SECONDS


def _body_excerpt(response: requests.Response, limit: int = 200) -> str:
    try:
        text = response.text or ""
    except (UnicodeDecodeError, RuntimeError):
        return ""
    return text[:limit]


def classify_http_response(
    response: requests.Response, service: str = "upstream"
) -> OperationResult:
    """Classify an HTTP response into OperationResult.

    Status Code Mapping:
    - 2xx: SUCCESS
    - 429: Rate limiting -> TRANSIENT_ERROR with retry_after
    - 401/403: Credentials rejected -> UNAUTHORIZED
    - 404: Target missing -> NOT_FOUND
    - 5xx: Server error -> TRANSIENT_ERROR
    - Other 4xx: Rejected request -> PERMANENT_ERROR

    Args:
        response: Response returned by ``requests``
        service: Name used in the message, e.g. "chat api"

    Returns:
        OperationResult with status, message, error_code and retry_after
    """
    status_code = response.status_code

    if 200 <= status_code < 300:
        return OperationResult.success(data=_body_excerpt(response))

    body = _body_excerpt(response)

    if status_code == 429:
        retry_after = _retry_after(response)
        return OperationResult.rate_limited(
            f"{service} rate limited (retry after {retry_after}s)", retry_after=retry_after
        )

    if status_code in (401, 403):
        return OperationResult.unauthorized(
            f"{service} rejected credentials ({status_code}): {body}",
            error_code="UNAUTHORIZED" if status_code == 401 else "FORBIDDEN",
        )

    if status_code == 404:
        return OperationResult.not_found(f"{service} target not found (404): {body}")

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{service} server error ({status_code}): {body}",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{service} client error ({status_code}): {body}",
        error_code="HTTP_ERROR",
    )


def classify_http_error(
    exc: Exception, service: str = "upstream"
) -> OperationResult:
    """Classify a ``requests`` exception into OperationResult.

    An ``HTTPError`` carrying a response is classified by its status code.
    Connection errors, timeouts and anything else raised on the wire are
    treated as transient, since network issues are usually temporary.

    Args:
        exc: Exception raised while talking to the upstream service
        service: Name used in the message

    Returns:
        OperationResult with appropriate status
    """
    response: Optional[requests.Response] = getattr(exc, "response", None)
    if isinstance(exc, requests.HTTPError) and response is not None:
        return classify_http_response(response, service=service)

    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{service} timed out: {exc}",
            error_code="TIMEOUT",
        )

    return OperationResult.transient_error(
        f"{service} connection error: {type(exc).__name__}: {exc}",
        error_code="CONNECTION_ERROR",
    )


def classify_smtp_error(exc: Exception) -> OperationResult:
    """Classify an SMTP failure into OperationResult.

    Mapping:
    - Authentication failure -> UNAUTHORIZED
    - All recipients refused, or a 5xx reply -> PERMANENT_ERROR
    - 4xx replies, disconnects and socket errors -> TRANSIENT_ERROR

    Args:
        exc: Exception raised by ``smtplib`` or the underlying socket

    Returns:
        OperationResult with appropriate status
    """
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return OperationResult.unauthorized(f"smtp authentication failed: {exc.smtp_code}")

    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        return OperationResult.permanent_error(
            f"smtp recipients refused: {', '.join(exc.recipients)}",
            error_code="RECIPIENT_REFUSED",
        )

    smtp_code = getattr(exc, "smtp_code", None)
    if isinstance(smtp_code, int):
        if 500 <= smtp_code < 600:
            return OperationResult.permanent_error(
                f"smtp rejected message ({smtp_code}): {exc}",
                error_code="SMTP_REJECTED",
            )
        return OperationResult.transient_error(
            f"smtp temporary failure ({smtp_code}): {exc}",
            error_code="SMTP_TEMPORARY",
        )

    return OperationResult.transient_error(
        f"smtp connection error: {type(exc).__name__}: {exc}",
        error_code="CONNECTION_ERROR",
    )
