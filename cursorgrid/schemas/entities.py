from typing import List, Optional
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ConnectionState(str, Enum):
    CREATED = "created"
    CONNECTED = "connected"
    FAILED = "failed"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"


class ConnectorVersionState(str, Enum):
    DRAFT = "draft"
    PRIMARY = "primary"
    ACTIVE = "active"
    ARCHIVED = "archived"


class RequestType(str, Enum):
    GLOBAL = "global"
    PROXY = "proxy"
    OAUTH = "oauth"
    PUBLIC = "public"


class MonitoringTaskState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SCHEDULED = "scheduled"
    RETRY = "retry"
    ARCHIVED = "archived"
    COMPLETED = "completed"


class _Row(BaseModel):
    # rows are displayed, never written back; keep unknown columns
    model_config = ConfigDict(extra="allow")


class Actor(_Row):
    id: str
    external_id: Optional[str] = None
    email: Optional[str] = None
    admin: bool = False
    super_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Connector(_Row):
    id: str
    version: Optional[int] = None
    state: Optional[ConnectorVersionState] = None
    type: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    versions: Optional[int] = None
    states: List[ConnectorVersionState] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Connection(_Row):
    id: str
    state: ConnectionState
    connector: Optional[Connector] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RequestEntryRecord(_Row):
    request_id: str
    type: RequestType
    correlation_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    duration: Optional[int] = None
    connection_id: Optional[str] = None
    connector_id: Optional[str] = None
    connector_version: Optional[int] = None
    method: Optional[str] = None
    host: Optional[str] = None
    scheme: Optional[str] = None
    path: Optional[str] = None
    response_status_code: Optional[int] = None
    response_error: Optional[str] = None


class MonitoringTaskInfo(_Row):
    id: str
    queue: str
    type: str
    state: MonitoringTaskState
    payload: Optional[str] = None
    max_retry: int = 0
    retried: int = 0
    last_err: Optional[str] = None
    last_failed_at: Optional[datetime] = None
    next_process_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_orphaned: Optional[bool] = None
    group: Optional[str] = None
