"""Backend notification names and payloads."""

from dataclasses import dataclass
from enum import Enum


class Notification(str, Enum):
    """Named notification channels."""

    SERVERS_UPDATED = "mcp:servers_updated"
    SETTINGS_UPDATED = "settings:updated"
    CLIENT_STATUS_CHANGED = "mcp:client_status_changed"
    CLIENT_ERROR = "mcp:client_error"
    INCOMING_CLIENTS_UPDATED = "mcp:incoming_clients_updated"
    RPC_EVENT = "logs:rpc_event"


@dataclass
class ServersUpdated:
    reason: str


@dataclass
class SettingsUpdated:
    reason: str


@dataclass
class IncomingClientsUpdated:
    reason: str


@dataclass
class ClientStatusChanged:
    server_name: str
    action: str


@dataclass
class ClientError:
    server_name: str
    action: str
    error: str
