"""Mail alias resource - the terminal aggregation step of a run."""

import logging
from collections.abc import Callable, Sequence

from pydantic import PrivateAttr

from ..forge.aggregator import AliasState, MailAliasAggregator, ROOT_ALIAS
from ..models import AccountContribution, DesiredState, ResourceKind, Stage
from .base import Resource

logger = logging.getLogger(__name__)

ContributionSource = Callable[[], Sequence[AccountContribution]]


class MailAliasResource(Resource):
    """Aggregated mail aliases for every contributing account.

    Runs in the last stage. Contributions come either from the
    ``contributions`` field or from a bound source (normally the registry's
    snapshot), read when the resource is inspected, after the main stage has
    finished.

    desired_state absent withdraws every contributing account: their own
    aliases are dropped and they leave the root alias.

    Example:
        >>> aliases = MailAliasResource.from_source(registry.contributions)
        >>> packages = NotificationPackagesResource.following(aliases, ["logwatch"])
    """

    kind: ResourceKind = ResourceKind.MAIL_ALIAS
    id: str = "mail_alias:aliases"
    stage: Stage = Stage.LAST
    root_alias: str = ROOT_ALIAS
    contributions: list[AccountContribution] | None = None

    _source: ContributionSource | None = PrivateAttr(default=None)
    _current: AliasState | None = PrivateAttr(default=None)
    _next: AliasState | None = PrivateAttr(default=None)
    _effective: list[AccountContribution] = PrivateAttr(default_factory=list)

    @classmethod
    def from_source(cls, source: ContributionSource, **kwargs) -> "MailAliasResource":
        resource = cls(**kwargs)
        resource._source = source
        return resource

    @property
    def aggregator(self) -> MailAliasAggregator:
        return MailAliasAggregator(root_alias=self.root_alias)

    def effective_contributions(self) -> list[AccountContribution]:
        """Contributions this resource enforces, taking desired_state into account."""
        if self.contributions is not None:
            contributions = list(self.contributions)
        elif self._source is not None:
            contributions = list(self._source())
        else:
            contributions = []
        if not self.present:
            contributions = [
                c.model_copy(update={"state": DesiredState.ABSENT})
                for c in contributions
            ]
        return contributions

    @property
    def next_state(self) -> AliasState | None:
        """Alias state computed by the last inspect(), None before that."""
        return self._next

    def has_recipients(self) -> bool:
        return self.aggregator.has_recipients(self._effective)

    def inspect(self, adapter) -> AliasState:
        contributions = self.effective_contributions()
        aggregator = self.aggregator
        current = {
            name: adapter.read_alias_state(name)
            for name in aggregator.affected_aliases(contributions)
        }
        self._effective = contributions
        self._current = current
        self._next = aggregator.aggregate(contributions, current)
        return current

    def is_converged(self, current: AliasState) -> bool:
        return not self.aggregator.changed_aliases(self._next or {}, current)

    def _write(self, adapter) -> None:
        changed = self.aggregator.changed_aliases(self._next or {}, self._current or {})
        for name in changed:
            recipients = self._next[name]
            logger.info(f"Alias {name}: {', '.join(recipients) or '(removed)'}")
            adapter.write_alias_state(name, recipients)
        if changed:
            adapter.rebuild_aliases()

    def create_or_update(self, adapter) -> None:
        self._write(adapter)

    def remove(self, adapter) -> None:
        self._write(adapter)

    def describe(self) -> str:
        return f"mail aliases ({self.root_alias} + {len(self.effective_contributions())} accounts)"
