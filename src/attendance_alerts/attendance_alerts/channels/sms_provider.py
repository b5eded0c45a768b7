from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from ..core.constants import DEFAULT_SEND_TIMEOUT_SECONDS, SMS_MAX_LENGTH
from ..core.enums import Channel
from ..core.exceptions import PermanentSendFailure, ProviderUnavailable, TransientSendFailure
from .base import ChannelProvider

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+\d{7,15}$")


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: Optional[str] = None
    auth_token: Optional[str] = None
    from_number: Optional[str] = None
    messaging_service_sid: Optional[str] = None
    timeout: int = DEFAULT_SEND_TIMEOUT_SECONDS

    @classmethod
    def from_dict(cls, raw: Optional[dict]) -> "TwilioConfig":
        raw = raw or {}
        return cls(
            account_sid=raw.get("account_sid") or None,
            auth_token=raw.get("auth_token") or None,
            from_number=raw.get("from_number") or None,
            messaging_service_sid=raw.get("messaging_service_sid") or None,
            timeout=int(raw.get("timeout", DEFAULT_SEND_TIMEOUT_SECONDS)),
        )


def normalize_phone(value: str) -> str:
    phone = re.sub(r"[\s\-().]", "", value or "")
    if phone and not phone.startswith("+"):
        phone = "+" + phone
    return phone


def _classify(exc: Exception) -> Exception:
    if isinstance(exc, TwilioRestException):
        status = int(exc.status or 0)
        if status in (401, 403):
            return ProviderUnavailable(f"Twilio credentials rejected ({status})")
        if status == 429 or status >= 500:
            return TransientSendFailure(f"Twilio {status}: {exc.msg}")
        return PermanentSendFailure(f"Twilio {status} (code {exc.code}): {exc.msg}")
    return TransientSendFailure(f"Twilio error: {exc}")


class TwilioSMSProvider(ChannelProvider):
    channel = Channel.SMS

    def __init__(self, config: TwilioConfig, *, client: Any = None):
        self._config = config
        self._client = client

    def available(self) -> bool:
        has_sender = bool(self._config.from_number or self._config.messaging_service_sid)
        if self._client is not None:
            return has_sender
        return bool(self._config.account_sid and self._config.auth_token and has_sender)

    def _get_client(self):
        if self._client is None:
            self._client = Client(
                self._config.account_sid,
                self._config.auth_token,
                http_client=TwilioHttpClient(timeout=self._config.timeout),
            )
        return self._client

    def send(self, to: str, content: str, *, subject: Optional[str] = None) -> str:
        if not self.available():
            raise ProviderUnavailable("SMS transport is not configured")

        phone = normalize_phone(to)
        if not _PHONE_RE.match(phone):
            raise PermanentSendFailure(f"Malformed phone number: {to!r}")

        params = {"body": (content or "").strip()[:SMS_MAX_LENGTH], "to": phone}
        if self._config.messaging_service_sid:
            params["messaging_service_sid"] = self._config.messaging_service_sid
        else:
            params["from_"] = self._config.from_number

        try:
            message = self._get_client().messages.create(**params)
        except (TwilioException, OSError) as exc:
            raise _classify(exc) from exc

        logger.debug("SMS queued by Twilio for %s (sid=%s)", phone, message.sid)
        return str(message.sid)
