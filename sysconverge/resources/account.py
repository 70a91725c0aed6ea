"""Account and password-lock resources for local system users."""

import re

from pydantic import Field, field_validator

from ..models import AccountFacts, ResourceKind
from .base import Resource

_ACCOUNT_NAME_RE = re.compile(r"[a-z_][a-z0-9_-]{0,31}")


def validate_account_name(name: str) -> str:
    if not _ACCOUNT_NAME_RE.fullmatch(name):
        raise ValueError(f"Invalid account name: {name!r}")
    return name


class AccountResource(Resource):
    """Account resource - creates, updates or removes a local user.

    Supplementary groups are appended, never pruned: membership added outside
    Sysconverge survives a run. Removing an account leaves its home directory
    on disk.

    Attributes:
        name: Login name
        home: Home directory path
        shell: Login shell
        groups: Supplementary groups the account must belong to
        comment: GECOS field, usually the full name

    Examples:
        >>> AccountResource(id="user:alice", name="alice", home="/home/alice")

        >>> AccountResource(id="user:bob", name="bob", home="/home/bob",
        ...                 desired_state="absent")
    """

    kind: ResourceKind = ResourceKind.ACCOUNT
    name: str
    home: str
    shell: str = "/bin/bash"
    groups: list[str] = Field(default_factory=list)
    comment: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_account_name(v)

    def inspect(self, adapter) -> AccountFacts:
        return adapter.inspect_account(self.name)

    def is_converged(self, current: AccountFacts) -> bool:
        if not self.present:
            return not current.exists
        if not current.exists:
            return False
        if current.home != self.home or current.shell != self.shell:
            return False
        if self.comment is not None and current.comment != self.comment:
            return False
        return set(self.groups) <= set(current.groups)

    def create_or_update(self, adapter) -> None:
        adapter.create_or_update_account(
            self.name,
            home=self.home,
            shell=self.shell,
            groups=self.groups,
            comment=self.comment,
        )

    def remove(self, adapter) -> None:
        adapter.remove_account(self.name)


class PasswordLockResource(Resource):
    """Password lock for an existing account.

    present means the password is locked, absent means it is unlocked. Both
    directions inspect the current lock state first and do nothing when it
    already matches. An absent account has nothing to unlock.
    """

    kind: ResourceKind = ResourceKind.PASSWORD_LOCK
    account: str

    @field_validator("account")
    @classmethod
    def validate_account(cls, v):
        return validate_account_name(v)

    def inspect(self, adapter) -> AccountFacts:
        return adapter.inspect_account(self.account)

    def is_converged(self, current: AccountFacts) -> bool:
        if self.present:
            return current.exists and current.locked
        return not current.exists or not current.locked

    def create_or_update(self, adapter) -> None:
        adapter.lock_password(self.account)

    def remove(self, adapter) -> None:
        adapter.unlock_password(self.account)

    def describe(self) -> str:
        verb = "lock" if self.present else "unlock"
        return f"{verb} password of {self.account}"
