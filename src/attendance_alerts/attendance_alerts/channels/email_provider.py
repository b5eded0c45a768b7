from __future__ import annotations

import logging
import re
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Callable, Optional

from ..core.constants import DEFAULT_SEND_TIMEOUT_SECONDS
from ..core.enums import Channel
from ..core.exceptions import PermanentSendFailure, ProviderUnavailable, TransientSendFailure
from .base import ChannelProvider

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+$")
_TAG_RE = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class SMTPConfig:
    host: Optional[str] = None
    port: int = 587
    user: Optional[str] = None
    password: Optional[str] = None
    from_email: Optional[str] = None
    from_name: str = "School Attendance"
    use_tls: bool = True
    use_ssl: bool = False
    timeout: int = DEFAULT_SEND_TIMEOUT_SECONDS

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "SMTPConfig":
        raw = raw or {}
        return cls(
            host=raw.get("host") or None,
            port=int(raw.get("port", 587)),
            user=raw.get("user") or None,
            password=raw.get("password") or None,
            from_email=raw.get("from_email") or raw.get("user") or None,
            from_name=str(raw.get("from_name") or "School Attendance"),
            use_tls=bool(raw.get("use_tls", True)),
            use_ssl=bool(raw.get("use_ssl", False)),
            timeout=int(raw.get("timeout", DEFAULT_SEND_TIMEOUT_SECONDS)),
        )


def _plain_text(html: str) -> str:
    return re.sub(r"\n\s*\n+", "\n\n", _TAG_RE.sub("", html)).strip()


def _classify(exc: Exception) -> Exception:
    """Map smtplib/socket errors onto the delivery error taxonomy."""
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return ProviderUnavailable(f"SMTP credentials rejected: {exc.smtp_code}")
    if isinstance(exc, smtplib.SMTPConnectError):
        return TransientSendFailure(f"SMTP connect failed: {exc}")
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        return PermanentSendFailure(f"Recipient refused: {exc.recipients}")
    if isinstance(exc, smtplib.SMTPResponseException):
        code = int(exc.smtp_code or 0)
        msg = exc.smtp_error.decode("utf-8", "replace") if isinstance(exc.smtp_error, bytes) else str(exc.smtp_error)
        if 500 <= code < 600:
            return PermanentSendFailure(f"SMTP {code}: {msg}")
        return TransientSendFailure(f"SMTP {code}: {msg}")
    return TransientSendFailure(f"SMTP error: {exc}")


class SMTPEmailProvider(ChannelProvider):
    channel = Channel.EMAIL

    def __init__(self, config: SMTPConfig, *, smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None):
        self._config = config
        self._smtp_factory = smtp_factory

    def available(self) -> bool:
        return bool(self._config.host and self._config.from_email)

    def _connect(self) -> smtplib.SMTP:
        factory = self._smtp_factory or (smtplib.SMTP_SSL if self._config.use_ssl else smtplib.SMTP)
        return factory(self._config.host, self._config.port, timeout=self._config.timeout)

    def _build_message(self, to: str, content: str, subject: Optional[str]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject or "School notification"
        msg["From"] = formataddr((self._config.from_name, self._config.from_email or ""))
        msg["To"] = to
        msg["Message-ID"] = make_msgid(domain=(self._config.from_email or "localhost").split("@")[-1])
        msg.attach(MIMEText(_plain_text(content), "plain", "utf-8"))
        msg.attach(MIMEText(content, "html", "utf-8"))
        return msg

    def send(self, to: str, content: str, *, subject: Optional[str] = None) -> str:
        if not self.available():
            raise ProviderUnavailable("Email transport is not configured")

        to = (to or "").strip()
        if not _EMAIL_RE.match(to):
            raise PermanentSendFailure(f"Malformed email address: {to!r}")

        msg = self._build_message(to, content, subject)
        try:
            with self._connect() as server:
                if self._config.use_tls and not self._config.use_ssl:
                    server.starttls()
                if self._config.user:
                    server.login(self._config.user, self._config.password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise _classify(exc) from exc

        logger.debug("Email accepted by %s for %s", self._config.host, to)
        return str(msg["Message-ID"])
