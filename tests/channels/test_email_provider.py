from __future__ import annotations

import smtplib

import pytest

from src.attendance_alerts.attendance_alerts.channels.email_provider import SMTPConfig, SMTPEmailProvider
from src.attendance_alerts.attendance_alerts.core.exceptions import (
    PermanentSendFailure,
    ProviderUnavailable,
    TransientSendFailure,
)


class FakeSMTP:
    def __init__(self, host, port, timeout=None, error=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.error = error
        self.started_tls = False
        self.logged_in = None
        self.messages = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, msg):
        if self.error is not None:
            raise self.error
        self.messages.append(msg)


def _provider(error=None, **overrides):
    servers = []

    def factory(host, port, timeout=None):
        server = FakeSMTP(host, port, timeout=timeout, error=error)
        servers.append(server)
        return server

    raw = {
        "host": "smtp.example.com",
        "port": 587,
        "user": "mailer",
        "password": "secret",
        "from_email": "noreply@school.example.com",
        "timeout": 7,
    }
    raw.update(overrides)
    return SMTPEmailProvider(SMTPConfig.from_dict(raw), smtp_factory=factory), servers


def test_send_builds_multipart_message():
    provider, servers = _provider()

    ref = provider.send("maria@example.com", "<p>Ana was <b>absent</b></p>", subject="Absence Alert")

    server = servers[0]
    assert (server.host, server.port, server.timeout) == ("smtp.example.com", 587, 7)
    assert server.started_tls
    assert server.logged_in == ("mailer", "secret")
    msg = server.messages[0]
    assert msg["To"] == "maria@example.com"
    assert msg["Subject"] == "Absence Alert"
    assert ref == msg["Message-ID"]
    plain, html = msg.get_payload()
    assert plain.get_payload(decode=True).decode() == "Ana was absent"
    assert "<b>absent</b>" in html.get_payload(decode=True).decode()


def test_unconfigured_provider_is_unavailable():
    provider = SMTPEmailProvider(SMTPConfig.from_dict({}))

    assert not provider.available()
    with pytest.raises(ProviderUnavailable):
        provider.send("maria@example.com", "hi")


def test_malformed_address_is_permanent_and_never_connects():
    provider, servers = _provider()

    with pytest.raises(PermanentSendFailure):
        provider.send("not-an-address", "hi")
    assert servers == []


@pytest.mark.parametrize(
    "error, expected",
    [
        (smtplib.SMTPAuthenticationError(535, b"bad credentials"), ProviderUnavailable),
        (smtplib.SMTPRecipientsRefused({"maria@example.com": (550, b"no such user")}), PermanentSendFailure),
        (smtplib.SMTPDataError(554, b"rejected"), PermanentSendFailure),
        (smtplib.SMTPDataError(451, b"try again later"), TransientSendFailure),
        (smtplib.SMTPServerDisconnected("gone"), TransientSendFailure),
        (TimeoutError("timed out"), TransientSendFailure),
    ],
)
def test_smtp_errors_are_classified(error, expected):
    provider, _ = _provider(error=error)

    with pytest.raises(expected):
        provider.send("maria@example.com", "hi", subject="s")
