"""
push.py — Push-notification channels (Bark and Barker).

Delivery mechanism:
    • One HTTP POST per attempt to ``{server_url}/{key}``
    • JSON body: title, body, sound, icon, group, url, level, badge, ...
    • Server acknowledges with ``{"code": 200, "message": "success"}``

Bark is the public iOS push service (default server https://api.day.app).
Barker speaks the same protocol from a self-hosted server, so it has no
default endpoint and always sends ``title``. The two differ only in
endpoint defaults and payload shape; everything else is shared here.

═══════════════════════════════════════════════════════════════════════════
RESPONSE CLASSIFICATION
═══════════════════════════════════════════════════════════════════════════

    Transport outcome           Body                       Result
    ─────────────────           ────                       ──────
    connection error / timeout  —                          TransportError
    non-2xx status              anything                   TransportError
    2xx                         not a JSON object          delivered
    2xx                         {"code": 200, ...}         delivered
    2xx                         {"code": N != 200, ...}    TransportError

An acknowledgment body that cannot be parsed never turns a successful
HTTP delivery into a failure.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

import httpx

from herald.app.core.errors import ConfigurationError, TransportError
from herald.app.notify.base import RetryingNotifier
from herald.app.notify.models import PUSH_LEVELS, Message, RetryPolicy

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json; charset=utf-8"}


@dataclass(frozen=True)
class PushConfig:
    """
    Static configuration for a push channel.

    Attributes
    ----------
    server_url : str
        Push server endpoint (Bark defaults to https://api.day.app).
    key : str
        Device / client key that routes the notification.
    sound, icon, group, url : str
        Defaults; each may be overridden per message.
    retry : RetryPolicy
    """
    server_url: str = ""
    key: str = ""
    sound: str = ""
    icon: str = ""
    group: str = ""
    url: str = ""
    retry: RetryPolicy = field(default_factory=RetryPolicy)


class PushNotifier(RetryingNotifier):
    """Shared Bark-protocol channel. Subclasses pick endpoint and payload shape."""

    channel: str = "push"
    default_server_url: str = ""
    supports_archive: bool = False
    # Payload keys sent even when empty
    always_sent: Tuple[str, ...] = ("body",)

    def __init__(
        self,
        config: PushConfig,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(config.retry)
        if not config.server_url and self.default_server_url:
            config = replace(config, server_url=self.default_server_url)
        self.config = replace(config, retry=self.retry_policy)
        self._transport = transport

    @property
    def name(self) -> str:
        return self.channel

    @property
    def endpoint(self) -> str:
        return f"{self.config.server_url.rstrip('/')}/{self.config.key}"

    def build_payload(self, message: Message) -> Dict[str, Any]:
        """Render the JSON body, applying per-message overrides."""
        cfg = self.config
        merged = message.overrides.apply({
            "sound": cfg.sound,
            "icon": cfg.icon,
            "group": cfg.group,
            "url": cfg.url,
        })

        payload: Dict[str, Any] = {
            "title": message.title,
            "body": message.body,
            "sound": merged.get("sound"),
            "icon": merged.get("icon"),
            "group": merged.get("group"),
            "url": merged.get("url"),
            "level": PUSH_LEVELS.get(message.priority) if message.priority else None,
            "badge": merged.get("badge"),
            "autoCopy": merged.get("auto_copy"),
            "copy": merged.get("copy"),
        }
        if self.supports_archive:
            payload["isArchive"] = merged.get("is_archive")

        return {
            key: value
            for key, value in payload.items()
            if value or key in self.always_sent
        }

    def _validate(self) -> None:
        if not self.config.server_url:
            raise ConfigurationError(
                f"{self.name} server URL is required", field="server_url",
            )
        if not self.config.key:
            raise ConfigurationError(f"{self.name} key is required", field="key")

    def _attempt(self, message: Message, timeout_seconds: float) -> None:
        self._validate()
        payload = self.build_payload(message)

        try:
            with httpx.Client(timeout=timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    self.endpoint,
                    content=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                    headers=_JSON_HEADERS,
                )
        except httpx.HTTPError as exc:
            raise TransportError(self.name, f"send request: {exc}") from exc

        self._classify(response)
        logger.info(
            "[%s] Delivered '%s' via %s",
            self.name.upper(), message.title, self.config.server_url,
            extra={"channel": self.name, "status_code": response.status_code},
        )

    def _classify(self, response: httpx.Response) -> None:
        if not response.is_success:
            raise TransportError(
                self.name,
                f"{self.name} server returned status {response.status_code}: "
                f"{response.text}",
                status_code_received=response.status_code,
            )

        try:
            ack = response.json()
        except ValueError:
            logger.debug("[%s] Unparseable acknowledgment ignored", self.name.upper())
            return

        if not isinstance(ack, dict):
            return
        code = ack.get("code", 0)
        if isinstance(code, bool) or not isinstance(code, int):
            return
        if code != 200:
            raise TransportError(
                self.name,
                f"{self.name} API error (code {code}): {ack.get('message', '')}",
                status_code_received=response.status_code,
                api_code=code,
            )


class BarkNotifier(PushNotifier):
    """Bark push (https://api.day.app)."""

    channel = "bark"
    default_server_url = "https://api.day.app"
    supports_archive = True


class BarkerNotifier(PushNotifier):
    """Barker push — self-hosted Bark-compatible server."""

    channel = "barker"
    always_sent = ("title", "body")
