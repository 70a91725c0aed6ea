"""Base resource classes for Sysconverge."""

import logging
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import DesiredState, ResourceKind, Stage

if TYPE_CHECKING:
    from ..adapters.base import OsAdapter

logger = logging.getLogger(__name__)


class Resource(BaseModel):
    """Base resource class - all resources inherit from this.

    A resource is a named assertion about system state. The executor drives
    every resource through the same cycle:

    1. resolve() lets derived resources settle their desired state
    2. inspect() reads current state through the adapter
    3. is_converged() compares current state with desired state
    4. create_or_update() or remove() mutates the system when they differ

    Subclasses must make is_converged() true right after a successful
    create_or_update()/remove(), so a second run skips them.

    Resource Ordering:
    Ordering is explicit. Use .require() to declare that another resource must
    reach a terminal state first. Declaration order never implies an edge.

    Attributes:
        id: Unique identifier, conventionally "<kind>:<target>"
        kind: Resource kind, fixed per subclass
        desired_state: present or absent
        depends_on: Ids of resources that must be terminal before this one
        stage: Execution stage; all main resources finish before any last one
    """

    model_config = ConfigDict(validate_assignment=True, arbitrary_types_allowed=True)

    id: str
    kind: ResourceKind
    desired_state: DesiredState = DesiredState.PRESENT
    depends_on: list[str] = Field(default_factory=list)
    stage: Stage = Stage.MAIN

    @field_validator("desired_state", mode="before")
    @classmethod
    def validate_desired_state(cls, v):
        return DesiredState.coerce(v)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if not v or not v.strip():
            raise ValueError("Resource id must be a non-empty string")
        return v

    @property
    def present(self) -> bool:
        return self.desired_state == DesiredState.PRESENT

    def require(self, *targets: "Resource | str") -> Self:
        """Declare that this resource runs after each target.

        Args:
            *targets: Resources or resource ids this resource depends on

        Returns:
            Self for method chaining

        Example:
            home = DirectoryResource(id="dir:/home/alice", path="/home/alice", owner="alice")
            home.require(account)

            # Chaining
            keys.require(ssh_dir).require("user:alice")
        """
        for target in targets:
            target_id = target.id if isinstance(target, Resource) else target
            if target_id == self.id:
                raise ValueError(f"Resource '{self.id}' cannot depend on itself")
            if target_id in self.depends_on:
                continue
            self.depends_on = [*self.depends_on, target_id]
            logger.debug(f"{self.id} requires {target_id}")
        return self

    def resolve(self) -> None:
        """Settle desired state before inspection. No-op for primary resources."""

    def inspect(self, adapter: "OsAdapter") -> Any:
        """Read current state for this resource through the adapter."""
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement inspect()"
        )

    def is_converged(self, current: Any) -> bool:
        """True if current state already satisfies every governed attribute."""
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement is_converged()"
        )

    def create_or_update(self, adapter: "OsAdapter") -> None:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement create_or_update()"
        )

    def remove(self, adapter: "OsAdapter") -> None:
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement remove()"
        )

    def converge(self, adapter: "OsAdapter") -> None:
        """Apply the adapter operation matching desired state."""
        if self.present:
            self.create_or_update(adapter)
        else:
            self.remove(adapter)

    def describe(self) -> str:
        """Short human-readable summary used in plans and reports."""
        return f"{self.kind.value} {self.id}"
