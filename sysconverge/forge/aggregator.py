"""
Mail alias aggregation.

Many independently declared accounts contribute to one alias table: each
account owns its own alias entry, and all of them share the ``root`` entry.
The aggregator computes the next alias state from the current state plus the
run's contributions. It never touches storage.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..errors import AggregationError
from ..models import AccountContribution, DesiredState

logger = logging.getLogger(__name__)

ROOT_ALIAS = "root"

AliasState = dict[str, list[str]]


def split_recipients(text: str) -> list[str]:
    """Split on commas that are not inside double quotes.

    >>> split_recipients('bob, "|/usr/bin/filter a, b", carol')
    ['bob', ' "|/usr/bin/filter a, b"', ' carol']
    """
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    for ch in text:
        if ch == '"':
            quoted = not quoted
        elif ch == "," and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def flatten_recipients(values: Any) -> list[str]:
    """Flatten nested or comma-joined recipients into an ordered unique list.

    >>> flatten_recipients(["alice", ["bob, carol"], "alice", ""])
    ['alice', 'bob', 'carol']
    """
    result: list[str] = []
    seen: set[str] = set()

    def visit(value: Any) -> None:
        if value is None:
            return
        if isinstance(value, str):
            for part in split_recipients(value):
                recipient = part.strip()
                if recipient and recipient not in seen:
                    seen.add(recipient)
                    result.append(recipient)
            return
        if isinstance(value, Iterable):
            for item in value:
                visit(item)
            return
        raise AggregationError(f"Unsupported recipient value: {value!r}")

    visit(values)
    return result


class MailAliasAggregator:
    """Merge account contributions into alias state.

    Per-account alias: fully replaced by the contribution. It holds the
    configured email when the account is present and has one, otherwise it
    is empty (the entry is dropped).

    Root alias: the pre-existing recipients keep their order; present
    accounts are appended once; absent accounts are removed by exact match.
    Recipients that merely share a substring with an account are untouched.
    """

    def __init__(self, root_alias: str = ROOT_ALIAS):
        self.root_alias = root_alias

    def validate(
        self, contributions: Iterable[AccountContribution]
    ) -> list[AccountContribution]:
        """Check contributions and drop exact duplicates.

        Raises:
            AggregationError: On blank ids, malformed emails, an account named
                like the root alias, or one account contributing twice with
                different values
        """
        by_account: dict[str, AccountContribution] = {}
        for contribution in contributions:
            if not isinstance(contribution, AccountContribution):
                raise AggregationError(f"Not a contribution: {contribution!r}")
            account_id = contribution.account_id
            if not account_id or account_id != account_id.strip():
                raise AggregationError(f"Malformed account id: {account_id!r}")
            if account_id == self.root_alias:
                raise AggregationError(
                    f"Account '{account_id}' collides with the {self.root_alias} alias"
                )
            email = contribution.email
            if any(ch in email for ch in ",:\n\r\t ") or email.count("@") > 1:
                raise AggregationError(
                    f"Malformed email for '{account_id}': {email!r}"
                )
            previous = by_account.get(account_id)
            if previous is not None and previous != contribution:
                raise AggregationError(
                    f"Conflicting contributions for '{account_id}': "
                    f"{previous.state.value}/{previous.email!r} vs "
                    f"{contribution.state.value}/{contribution.email!r}"
                )
            by_account[account_id] = contribution
        return list(by_account.values())

    def affected_aliases(self, contributions: Iterable[AccountContribution]) -> list[str]:
        """Alias names this set of contributions governs: root first, then accounts."""
        names = [self.root_alias]
        for contribution in contributions:
            if contribution.account_id not in names:
                names.append(contribution.account_id)
        return names

    def aggregate(
        self,
        contributions: Iterable[AccountContribution],
        current: Mapping[str, Sequence[str]],
    ) -> AliasState:
        """Compute the next state of every affected alias.

        Args:
            contributions: Snapshot of this run's account contributions
            current: Current recipients by alias name; missing names are empty

        Returns:
            New recipients for root and each contributing account. An empty
            list means the alias entry must not exist.
        """
        contributions = self.validate(contributions)

        new_state: AliasState = {}
        for contribution in contributions:
            if contribution.state == DesiredState.PRESENT and contribution.email:
                new_state[contribution.account_id] = [contribution.email]
            else:
                new_state[contribution.account_id] = []

        root = flatten_recipients(current.get(self.root_alias, []))
        for contribution in contributions:
            if contribution.state == DesiredState.PRESENT and contribution.account_id not in root:
                root.append(contribution.account_id)
        removed = {
            c.account_id for c in contributions if c.state == DesiredState.ABSENT
        }
        new_state[self.root_alias] = [r for r in root if r not in removed]

        logger.debug(
            f"Aggregated {len(contributions)} contributions: "
            f"{self.root_alias} -> {new_state[self.root_alias]}"
        )
        return {name: new_state[name] for name in self.affected_aliases(contributions)}

    @staticmethod
    def has_recipients(contributions: Iterable[AccountContribution]) -> bool:
        """True if at least one present account carries a non-empty email."""
        return any(
            c.state == DesiredState.PRESENT and c.email for c in contributions
        )

    @staticmethod
    def changed_aliases(
        new_state: Mapping[str, Sequence[str]],
        current: Mapping[str, Sequence[str]],
    ) -> list[str]:
        """Names whose recipients differ from current state."""
        return [
            name for name, recipients in new_state.items()
            if list(recipients) != list(current.get(name, []))
        ]
