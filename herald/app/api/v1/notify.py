"""
FastAPI route: Multi-channel notification endpoint.

Provides endpoints to:
    POST /api/v1/notify/send       — deliver one message to every channel
    GET  /api/v1/notify/channels   — list configured channels + policies
    GET  /api/v1/notify/health     — service health

Handlers are plain ``def`` so the blocking dispatch runs in FastAPI's
threadpool. Delivery failures surface as NotifyError and are rendered by
the handlers in core.errors.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from herald.app.notify.channels import PushNotifier
from herald.app.notify.base import RetryingNotifier
from herald.app.notify.dispatcher import MultiNotifier
from herald.app.notify.factory import build_dispatcher
from herald.app.notify.models import Message, MessageOverrides, parse_priority

router = APIRouter(prefix="/api/v1/notify", tags=["notification-dispatch"])


# ---------------------------------------------------------------------------
# Request / Response Schemas
# ---------------------------------------------------------------------------

class OverridesInput(BaseModel):
    """Per-message overrides of channel defaults (null = use default)."""
    model_config = ConfigDict(populate_by_name=True)

    sound: Optional[str] = Field(None, examples=["alarm"])
    icon: Optional[str] = Field(None, examples=["https://example.com/icon.png"])
    group: Optional[str] = Field(None, examples=["deploys"])
    url: Optional[str] = Field(None, examples=["https://example.com/run/42"])
    badge: Optional[int] = Field(None, ge=0, examples=[1])
    auto_copy: Optional[str] = Field(None)
    copy_text: Optional[str] = Field(None, alias="copy")
    is_archive: Optional[int] = Field(None, ge=0, le=1)


class SendRequest(BaseModel):
    """A message to fan out."""
    title: str = Field(..., examples=["Backup finished"])
    body: str = Field(..., examples=["Nightly backup completed in 4m12s."])
    priority: Optional[str] = Field(
        None, examples=["high"],
        description="high / urgent / low / normal",
    )
    html_body: Optional[str] = Field(None)
    attachments: List[str] = Field(default_factory=list)
    overrides: OverridesInput = Field(default_factory=OverridesInput)


class SendResponse(BaseModel):
    status: str
    mode: str
    channels: List[str]


# ---------------------------------------------------------------------------
# Dependencies / Helpers
# ---------------------------------------------------------------------------

@lru_cache()
def get_dispatcher() -> MultiNotifier:
    """Dispatcher built once from Settings (overridable in tests)."""
    return build_dispatcher()


def _to_message(request: SendRequest) -> Message:
    """Convert Pydantic model to the immutable Message."""
    return Message(
        title=request.title,
        body=request.body,
        priority=parse_priority(request.priority),
        html_body=request.html_body,
        attachments=tuple(request.attachments),
        overrides=MessageOverrides(**request.overrides.model_dump(by_alias=True)),
    )


def _describe(notifier: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"name": notifier.name}
    if isinstance(notifier, RetryingNotifier):
        entry["retry_policy"] = notifier.retry_policy.to_dict()
    if isinstance(notifier, PushNotifier):
        entry["server_url"] = notifier.config.server_url
    if isinstance(notifier, MultiNotifier):
        entry["mode"] = notifier.mode.value
        entry["children"] = [_describe(child) for child in notifier.notifiers]
    return entry


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/send",
    response_model=SendResponse,
    summary="Send a notification to every configured channel",
)
def send_notification(
    request: SendRequest,
    dispatcher: MultiNotifier = Depends(get_dispatcher),
):
    """Deliver one message through the configured dispatcher."""
    dispatcher.send(_to_message(request))
    return SendResponse(
        status="sent",
        mode=dispatcher.mode.value,
        channels=[n.name for n in dispatcher.notifiers],
    )


@router.get(
    "/channels",
    summary="List configured channels",
    description="Channel names, effective retry policies and dispatch mode.",
)
def list_channels(dispatcher: MultiNotifier = Depends(get_dispatcher)):
    return {
        "mode": dispatcher.mode.value,
        "count": len(dispatcher.notifiers),
        "channels": [_describe(n) for n in dispatcher.notifiers],
    }


@router.get("/health", summary="Notification service health check")
def health(dispatcher: MultiNotifier = Depends(get_dispatcher)):
    return {
        "status": "healthy" if dispatcher.notifiers else "degraded",
        "service": "notification-dispatch",
        "channels_configured": len(dispatcher.notifiers),
    }
