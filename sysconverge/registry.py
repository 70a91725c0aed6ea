"""
Per-run registry of resources and account contributions.

The registry owns every Resource and AccountContribution for the duration of
one convergence run. Nothing survives across runs.
"""

import logging
from collections.abc import Iterator

from .errors import (
    DuplicateAccountError,
    DuplicateIdError,
    InvalidStateError,
    RegistrySealedError,
)
from .models import AccountContribution, DesiredState
from .resources.base import Resource

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Resources and contributions declared for a single run.

    Registration validates eagerly and never mutates on failure. Once sealed,
    the contribution set is a fixed snapshot: the mail alias step reads it
    after the main stage, and nothing may be added from then on.
    """

    def __init__(self):
        self._resources: dict[str, Resource] = {}
        self._contributions: dict[str, AccountContribution] = {}
        self._sealed = False

    def register(self, resource: Resource) -> Resource:
        """Add a resource.

        Raises:
            DuplicateIdError: If a resource with the same id exists
            InvalidStateError: If desired_state is not present/absent
            RegistrySealedError: If the registry is sealed
        """
        self._check_open()
        if not isinstance(resource, Resource):
            raise TypeError(
                f"Can only register Resource objects, got {type(resource).__name__}"
            )
        if not isinstance(resource.desired_state, DesiredState):
            raise InvalidStateError(
                f"Invalid desired state {resource.desired_state!r} for '{resource.id}'"
            )
        if resource.id in self._resources:
            raise DuplicateIdError(f"Resource '{resource.id}' is already registered")
        self._resources[resource.id] = resource
        logger.debug(f"Registered {resource.kind.value} resource: {resource.id}")
        return resource

    def register_all(self, *resources: Resource) -> None:
        for resource in resources:
            self.register(resource)

    def register_contribution(
        self, account_id: str, email: str | None, state: DesiredState | str
    ) -> AccountContribution:
        """Record one account's email for the alias aggregation.

        Raises:
            DuplicateAccountError: If the account already contributed this run
            InvalidStateError: If state is not present/absent
            RegistrySealedError: If the registry is sealed
        """
        self._check_open()
        state = DesiredState.coerce(state)
        if account_id in self._contributions:
            raise DuplicateAccountError(
                f"Account '{account_id}' already contributed to mail aliases"
            )
        contribution = AccountContribution(
            account_id=account_id, email=email or "", state=state
        )
        self._contributions[account_id] = contribution
        logger.debug(f"Contribution from {account_id}: {state.value} {contribution.email!r}")
        return contribution

    def contributions(self) -> tuple[AccountContribution, ...]:
        """Immutable snapshot of contributions in registration order."""
        return tuple(self._contributions.values())

    def resources(self) -> list[Resource]:
        """Resources in registration order."""
        return list(self._resources.values())

    def get(self, resource_id: str) -> Resource:
        return self._resources[resource_id]

    def seal(self) -> None:
        if not self._sealed:
            logger.debug(f"Registry sealed with {len(self._contributions)} contributions")
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _check_open(self) -> None:
        if self._sealed:
            raise RegistrySealedError("Registry is sealed; no further registration allowed")

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)
