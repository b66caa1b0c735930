"""Email sender using SMTP."""

import smtplib
from email.message import EmailMessage
from email.utils import parseaddr
from typing import Optional

import structlog

from infrastructure.operations import OperationResult, classify_smtp_error
from modules.notifications.channels import ChannelType
from modules.notifications.errors import SendError
from modules.notifications.senders.base import Notification, Sender

logger = structlog.get_logger()


class EmailSender(Sender):
    """SMTP email sender.

    Opens one connection per message, upgrades with STARTTLS when
    configured and offered by the server, and authenticates when
    credentials are set.
    """

    def __init__(
        self,
        host: str,
        from_address: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        if not host:
            raise ValueError("email sender: SMTP host is required")
        if not from_address:
            raise ValueError("email sender: from address is required")

        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

        logger.info(
            "initialized_email_sender",
            smtp_host=host,
            smtp_port=port,
            from_address=from_address,
            use_tls=use_tls,
        )

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.EMAIL

    def send(self, notification: Notification) -> None:
        result = self._send_smtp(notification)
        if not result.is_success:
            logger.warning(
                "email_send_failed",
                **result.log_fields(),
            )
            raise SendError.from_result(result)
        logger.debug("email_sent", subject=notification.subject)

    def health_check(self) -> OperationResult:
        try:
            with self._connect() as smtp:
                code, _ = smtp.noop()
        except (smtplib.SMTPException, OSError) as e:
            return classify_smtp_error(e)

        if code != 250:
            return OperationResult.transient_error(
                f"smtp noop returned {code}", error_code="SMTP_UNHEALTHY"
            )
        return OperationResult.success(
            message="SMTP server reachable", data={"host": self.host}
        )

    def build_message(self, notification: Notification) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = notification.to
        message["Subject"] = notification.subject
        message.set_content(notification.body)
        return message

    def _connect(self) -> smtplib.SMTP:
        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            smtp.ehlo()
            if self.use_tls and smtp.has_extn("starttls"):
                smtp.starttls()
                smtp.ehlo()
            if self.username and self.password:
                smtp.login(self.username, self.password)
        except Exception:
            smtp.close()
            raise
        return smtp

    def _send_smtp(self, notification: Notification) -> OperationResult:
        if not notification.to:
            return OperationResult.permanent_error(
                "email address is empty", error_code="MISSING_EMAIL"
            )

        try:
            message = self.build_message(notification)
        except ValueError as e:
            # CR/LF in a header value can never be delivered
            return OperationResult.permanent_error(
                f"invalid email message: {e}", error_code="INVALID_MESSAGE"
            )
        envelope_from = parseaddr(self.from_address)[1] or self.from_address

        try:
            with self._connect() as smtp:
                smtp.send_message(
                    message, from_addr=envelope_from, to_addrs=[notification.to]
                )
        except (smtplib.SMTPException, OSError) as e:
            return classify_smtp_error(e)

        return OperationResult.success(message="Email sent via SMTP")
