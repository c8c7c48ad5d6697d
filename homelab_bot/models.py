import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


# ------------------------------
# Type definitions
# ------------------------------
@dataclass(frozen=True)
class ContainerSummary:
    name: str
    started_at: Optional[datetime]
    uptime: str


@dataclass(frozen=True)
class StatusReport:
    report: str
    external_ip: str
    last_external_ip: Optional[str]
    external_ip_changed: bool


class Outcome(enum.Enum):
    OK = "ok"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ControlResult:
    """Outcome of a container operation plus the message shown to the user."""

    outcome: Outcome
    message: str
