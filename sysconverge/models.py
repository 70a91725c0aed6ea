"""
Centralized Pydantic models for the Sysconverge convergence engine.

This module contains the value types shared across the pipeline:
- Enums for resource kinds, desired states, stages and terminal statuses
- Facts returned by OS adapters when inspecting current state
- AccountContribution records fed to the mail alias aggregator
- RunReport and PlanEntry produced by the executor
"""

import json
from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidStateError


# =============================================================================
# Core Enums
# =============================================================================

class ResourceKind(str, Enum):
    """Manageable units of system state."""
    ACCOUNT = "account"
    FILE = "file"
    DIRECTORY = "directory"
    PACKAGE_SET = "package_set"
    PASSWORD_LOCK = "password_lock"
    SUDO_ENTRY = "sudo_entry"
    MAIL_ALIAS = "mail_alias"


class DesiredState(str, Enum):
    """Desired state of a resource."""
    PRESENT = "present"
    ABSENT = "absent"

    @classmethod
    def coerce(cls, value: Any) -> "DesiredState":
        """Accept an enum member or its string value, reject anything else.

        Raises:
            InvalidStateError: If value is not a recognized state
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidStateError(
            f"Invalid desired state {value!r}: expected 'present' or 'absent'"
        )


class Stage(str, Enum):
    """Execution stages, applied in declaration order of this enum."""
    MAIN = "main"
    LAST = "last"

    @property
    def rank(self) -> int:
        return list(Stage).index(self)


class ResourceStatus(str, Enum):
    """Per-resource state machine: pending, then exactly one terminal status."""
    PENDING = "pending"
    SKIPPED = "skipped"
    APPLIED = "applied"
    FAILED = "failed"
    BLOCKED = "blocked"

    @property
    def is_terminal(self) -> bool:
        return self is not ResourceStatus.PENDING

    @property
    def is_error(self) -> bool:
        return self in (ResourceStatus.FAILED, ResourceStatus.BLOCKED)


class PlanAction(str, Enum):
    """What a plan expects the executor to do with a resource."""
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"
    NO_CHANGE = "no_change"
    UNKNOWN = "unknown"


# =============================================================================
# Adapter Facts
# =============================================================================

class AccountFacts(BaseModel):
    """Current state of a local account."""
    exists: bool = False
    home: str | None = None
    shell: str | None = None
    comment: str | None = None
    groups: list[str] = Field(default_factory=list)
    locked: bool = False


class FileFacts(BaseModel):
    """Current state of a path on disk."""
    exists: bool = False
    is_dir: bool = False
    owner: str | None = None
    group: str | None = None
    mode: int | None = None
    content: bytes | None = None


# =============================================================================
# Contributions
# =============================================================================

class AccountContribution(BaseModel):
    """Email/state fact contributed by one account to the alias aggregation."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    email: str = ""
    state: DesiredState = DesiredState.PRESENT

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v):
        return DesiredState.coerce(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


# =============================================================================
# Reports
# =============================================================================

class ResourceResult(BaseModel):
    """Terminal outcome of one resource in a run."""
    resource_id: str
    kind: ResourceKind
    stage: Stage
    desired_state: DesiredState
    status: ResourceStatus = ResourceStatus.PENDING
    reason: str | None = None
    reason_chain: list[str] = Field(default_factory=list)


class RunReport(BaseModel):
    """Every resource's terminal status for a convergence run, in execution order."""
    results: list[ResourceResult] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def success(self) -> bool:
        return not any(r.status.is_error for r in self.results)

    def get(self, resource_id: str) -> ResourceResult:
        for result in self.results:
            if result.resource_id == resource_id:
                return result
        raise KeyError(f"No result for resource '{resource_id}'")

    def status_of(self, resource_id: str) -> ResourceStatus:
        return self.get(resource_id).status

    def by_status(self, status: ResourceStatus) -> list[ResourceResult]:
        return [r for r in self.results if r.status == status]

    def counts(self) -> dict[str, int]:
        """Count of resources by status."""
        counter = Counter(r.status.value for r in self.results)
        return {status.value: counter.get(status.value, 0)
                for status in ResourceStatus if status.is_terminal}

    def to_json(self) -> str:
        """Convert to JSON string for serialization."""
        return json.dumps(self.model_dump(mode="json"), indent=2)


class PlanEntry(BaseModel):
    """Expected change for one resource, computed without mutating anything."""
    resource_id: str
    kind: ResourceKind
    stage: Stage
    action: PlanAction
    detail: str | None = None


__all__ = [
    # Enums
    'ResourceKind', 'DesiredState', 'Stage', 'ResourceStatus', 'PlanAction',

    # Facts
    'AccountFacts', 'FileFacts',

    # Contributions
    'AccountContribution',

    # Reports
    'ResourceResult', 'RunReport', 'PlanEntry',
]
