"""OS primitive adapter interface consumed by resources."""

import abc
from collections.abc import Iterable

from ..models import AccountFacts, FileFacts


class OsAdapter(abc.ABC):
    """Atomic, idempotent OS primitives.

    Every mutating method either succeeds or raises AdapterError. The engine
    never retries; re-running the whole convergence is the recovery path.

    Implementations honour ``timeout`` (seconds) as the deadline for each
    underlying command. ``None`` means no deadline.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    # Accounts

    @abc.abstractmethod
    def inspect_account(self, name: str) -> AccountFacts:
        pass

    @abc.abstractmethod
    def create_or_update_account(
        self,
        name: str,
        home: str,
        shell: str,
        groups: Iterable[str] = (),
        comment: str | None = None,
    ) -> None:
        pass

    @abc.abstractmethod
    def remove_account(self, name: str) -> None:
        """Remove the account. The home directory is left in place."""

    @abc.abstractmethod
    def lock_password(self, name: str) -> None:
        pass

    @abc.abstractmethod
    def unlock_password(self, name: str) -> None:
        pass

    # Files

    @abc.abstractmethod
    def inspect_file(self, path: str) -> FileFacts:
        pass

    @abc.abstractmethod
    def write_file(
        self, path: str, owner: str, group: str, mode: int, content: bytes
    ) -> None:
        pass

    @abc.abstractmethod
    def make_directory(self, path: str, owner: str, group: str, mode: int) -> None:
        pass

    @abc.abstractmethod
    def remove_file(self, path: str) -> None:
        pass

    # Packages

    @abc.abstractmethod
    def installed_packages(self, names: Iterable[str]) -> set[str]:
        """Subset of ``names`` currently installed."""

    @abc.abstractmethod
    def install_packages(self, names: Iterable[str]) -> None:
        pass

    @abc.abstractmethod
    def remove_packages(self, names: Iterable[str]) -> None:
        pass

    # Mail aliases

    @abc.abstractmethod
    def read_alias_state(self, name: str) -> list[str]:
        """Recipients of alias ``name``, empty if the alias is not defined."""

    @abc.abstractmethod
    def write_alias_state(self, name: str, recipients: Iterable[str]) -> None:
        """Replace the recipients of ``name``. No recipients removes the entry."""

    @abc.abstractmethod
    def rebuild_aliases(self) -> None:
        """Refresh the mail system's alias database after writes."""
