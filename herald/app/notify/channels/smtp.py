"""
smtp.py — SMTP email channel.

Delivery mechanism:
    • One SMTP session per attempt (smtplib)
    • text/plain body, plus a text/html alternative when html_body is set
    • Attachments are referenced by file name in the plain body

═══════════════════════════════════════════════════════════════════════════
PROVIDER PRESETS
═══════════════════════════════════════════════════════════════════════════

    Provider    Host                     Port    Security
    ────────    ─────────────────────    ────    ─────────────────
    QQ Mail     smtp.qq.com              587     STARTTLS
    Outlook     smtp-mail.outlook.com    465     implicit SSL
    Gmail       smtp.gmail.com           465     implicit SSL
    Custom      (explicit host/port)     —       as configured

An explicit host always wins. The preset port and security mode apply
only when the configured port is 0.

Envelope recipients are To + Cc + Bcc; Bcc never appears in headers.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass, field, replace
from email.message import EmailMessage
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from herald.app.core.errors import ConfigurationError, TransportError
from herald.app.notify.base import RetryingNotifier
from herald.app.notify.models import Message, RetryPolicy

logger = logging.getLogger(__name__)

# factory(host, port, timeout, use_ssl) → connected SMTP client
SMTPFactory = Callable[[str, int, float, bool], smtplib.SMTP]


class EmailProvider(str, Enum):
    QQ_MAIL = "qq"
    OUTLOOK = "outlook"
    GMAIL   = "gmail"
    CUSTOM  = "custom"


@dataclass(frozen=True)
class ProviderPreset:
    host: str
    port: int
    use_tls: bool = False
    use_ssl: bool = False


PROVIDER_PRESETS: Dict[EmailProvider, ProviderPreset] = {
    EmailProvider.QQ_MAIL: ProviderPreset("smtp.qq.com", 587, use_tls=True),
    EmailProvider.OUTLOOK: ProviderPreset("smtp-mail.outlook.com", 465, use_ssl=True),
    EmailProvider.GMAIL:   ProviderPreset("smtp.gmail.com", 465, use_ssl=True),
}


@dataclass(frozen=True)
class EmailConfig:
    """
    Static configuration for the SMTP channel.

    Attributes
    ----------
    provider : EmailProvider
        Preset supplying host / port / security defaults.
    host, port : str, int
        Explicit SMTP server; override the preset.
    use_tls, use_ssl : bool
        STARTTLS vs implicit TLS. SSL wins if both are set.
    username, password : str
        SMTP AUTH credentials; login is skipped without a username.
    sender : str
        From address; defaults to ``username``.
    to, cc, bcc : tuple of str
    retry : RetryPolicy
    """
    provider: EmailProvider = EmailProvider.CUSTOM
    host: str = ""
    port: int = 0
    use_tls: bool = False
    use_ssl: bool = False
    username: str = ""
    password: str = ""
    sender: str = ""
    to: Tuple[str, ...] = ()
    cc: Tuple[str, ...] = ()
    bcc: Tuple[str, ...] = ()
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        for name in ("to", "cc", "bcc"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    def with_provider_defaults(self) -> "EmailConfig":
        """Fill host / port / security from the provider preset."""
        preset = PROVIDER_PRESETS.get(self.provider)
        if preset is None:
            return self

        host = self.host or preset.host
        if self.port:
            return replace(self, host=host)
        return replace(
            self,
            host=host,
            port=preset.port,
            use_tls=self.use_tls or preset.use_tls,
            use_ssl=self.use_ssl or preset.use_ssl,
        )

    @property
    def envelope_recipients(self) -> List[str]:
        return [*self.to, *self.cc, *self.bcc]


def _default_factory(host: str, port: int, timeout: float, use_ssl: bool) -> smtplib.SMTP:
    if use_ssl:
        return smtplib.SMTP_SSL(
            host=host, port=port, timeout=timeout,
            context=ssl.create_default_context(),
        )
    return smtplib.SMTP(host=host, port=port, timeout=timeout)


class EmailNotifier(RetryingNotifier):
    """Deliver notifications through SMTP."""

    def __init__(
        self,
        config: EmailConfig,
        *,
        smtp_factory: Optional[SMTPFactory] = None,
    ) -> None:
        super().__init__(config.retry)
        self.config = replace(config.with_provider_defaults(), retry=self.retry_policy)
        self._factory = smtp_factory or _default_factory

    @property
    def name(self) -> str:
        return "email"

    def build_message(self, message: Message, sender: str) -> EmailMessage:
        """Render the RFC 5322 message (headers never include Bcc)."""
        email = EmailMessage()
        email["From"] = sender
        email["To"] = ", ".join(self.config.to)
        if self.config.cc:
            email["Cc"] = ", ".join(self.config.cc)
        # Header values cannot carry line breaks
        email["Subject"] = " ".join(message.title.splitlines())

        lines = [message.body]
        for path in message.attachments:
            lines.append(f"Attachment: {Path(path).name}")
        email.set_content("\n".join(lines))

        if message.html_body:
            email.add_alternative(message.html_body, subtype="html")
        return email

    def _attempt(self, message: Message, timeout_seconds: float) -> None:
        cfg = self.config
        if not cfg.to:
            raise ConfigurationError("no recipients specified", field="to")
        if not cfg.host:
            raise ConfigurationError("email host is required", field="host")

        sender = cfg.sender or cfg.username
        try:
            email = self.build_message(message, sender)
        except ValueError as exc:
            raise ConfigurationError(f"invalid email header: {exc}", field="headers") from exc

        try:
            client = self._factory(cfg.host, cfg.port, timeout_seconds, cfg.use_ssl)
        except OSError as exc:
            raise TransportError(
                self.name, f"dial SMTP server {cfg.host}:{cfg.port}: {exc}",
            ) from exc

        try:
            with client:
                client.ehlo()
                if cfg.use_tls and not cfg.use_ssl:
                    client.starttls(context=ssl.create_default_context())
                    client.ehlo()
                if cfg.username:
                    client.login(cfg.username, cfg.password)
                client.send_message(
                    email, from_addr=sender, to_addrs=cfg.envelope_recipients,
                )
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(self.name, f"SMTP delivery failed: {exc}") from exc

        logger.info(
            "[EMAIL] '%s' → %d recipient(s) via %s:%d",
            message.title, len(cfg.envelope_recipients), cfg.host, cfg.port,
            extra={"channel": self.name},
        )
