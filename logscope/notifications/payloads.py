"""Boundary validation of raw notification payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ..models import (
    ClientError,
    ClientStatusChanged,
    EventRow,
    IncomingClientsUpdated,
    Notification,
    ServersUpdated,
    SettingsUpdated,
)
from ..storage import parse_json_field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ReasonPayload(_Payload):
    """Payload of servers/settings/incoming-clients updates."""

    reason: str = "update"


class ClientStatusPayload(_Payload):
    """Payload of a client status change."""

    server_name: str
    action: str = ""


class ClientErrorPayload(_Payload):
    """Payload of a client error."""

    server_name: str
    action: str = ""
    error: str = ""


class RpcEventPayload(_Payload):
    """An event row as delivered by the live channel."""

    id: str
    ts_ms: int
    session_id: str | None = None
    method: str
    server_name: str | None = None
    server_version: str | None = None
    server_protocol: str | None = None
    duration_ms: int | None = None
    ok: bool
    error: str | None = None
    request_json: Any = None
    response_json: Any = None

    @field_validator("request_json", "response_json", mode="before")
    @classmethod
    def _decode_serialized(cls, value: Any) -> Any:
        return parse_json_field(value)

    @model_validator(mode="after")
    def _error_only_on_failure(self) -> "RpcEventPayload":
        if self.ok:
            self.error = None
        return self

    def to_row(self) -> EventRow:
        return EventRow(**self.model_dump())


def parse_notification(name: Notification, raw: Any) -> Any:
    """Validate a raw payload and convert it into the model for ``name``.

    Raises pydantic.ValidationError for malformed payloads.
    """
    if name is Notification.RPC_EVENT:
        return RpcEventPayload.model_validate(raw).to_row()
    if name is Notification.SERVERS_UPDATED:
        return ServersUpdated(**ReasonPayload.model_validate(raw or {}).model_dump())
    if name is Notification.SETTINGS_UPDATED:
        return SettingsUpdated(**ReasonPayload.model_validate(raw or {}).model_dump())
    if name is Notification.INCOMING_CLIENTS_UPDATED:
        return IncomingClientsUpdated(
            **ReasonPayload.model_validate(raw or {}).model_dump()
        )
    if name is Notification.CLIENT_STATUS_CHANGED:
        return ClientStatusChanged(**ClientStatusPayload.model_validate(raw).model_dump())
    if name is Notification.CLIENT_ERROR:
        return ClientError(**ClientErrorPayload.model_validate(raw).model_dump())
    raise ValueError(f"Unknown notification: {name}")
