"""Data models for launch reconciliation."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class LaunchStatus(str, Enum):
    """Lifecycle status of a stored launch."""
    UPCOMING = 'Upcoming'
    CANCELLED = 'Cancelled'


class ErrorKind(str, Enum):
    """Category of a pipeline failure."""
    STORE = 'store'
    MALFORMED_INPUT = 'malformed_input'
    CONFIG = 'config'


@dataclass
class PipelineError:
    """Failure reported as a value instead of an exception."""
    kind: ErrorKind
    message: str


@dataclass
class RawLaunch:
    """Raw launch entry from the Launch Library API."""
    launch_id: str
    name: str
    net: str
    last_updated: str
    image_url: str
    provider_name: str
    location_name: str


@dataclass
class LaunchRecord:
    """Validated launch from the latest fetch."""
    launch_id: str
    name: str
    net: datetime
    last_updated: datetime
    image_url: str
    provider_name: str
    location_name: str


@dataclass
class StoredLaunch:
    """Launch row as persisted in the local store."""
    launch_id: str
    name: str
    net: datetime
    last_updated: datetime
    image_url: str
    provider_name: str
    location_name: str
    status: LaunchStatus
    changed_at: datetime


@dataclass
class ProcessResult:
    """Result of validating a raw batch."""
    records: List[LaunchRecord]
    errors: List[PipelineError] = field(default_factory=list)


@dataclass
class SyncResult:
    """Result of one reconciliation cycle."""
    added: int = 0
    updated: int = 0
    cancelled: int = 0
    pruned: int = 0
    skipped: int = 0
    expired: int = 0
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MailConfig:
    """Outgoing mail settings."""
    sender: str
    recipients: List[str]
    subject: str
    region: Optional[str] = None


@dataclass
class AppConfig:
    """Process configuration loaded at start-up."""
    db_path: str
    days_ahead: int
    timeout_seconds: int
    fetch_limit: int
    mail: MailConfig
