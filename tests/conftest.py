"""
Pytest configuration and fixtures for Sysconverge tests.
"""

import tempfile
from pathlib import Path

import pytest

from sysconverge.adapters.base import OsAdapter
from sysconverge.errors import AdapterError
from sysconverge.models import AccountFacts, FileFacts
from sysconverge.settings import SysconvergeSettings


class RecordingAdapter(OsAdapter):
    """In-memory host that records every call.

    ``fail`` maps a method name to a set of targets (account, path, package
    or alias name) for which that method raises AdapterError.
    """

    def __init__(self):
        super().__init__(timeout=5)
        self.accounts: dict[str, AccountFacts] = {}
        self.files: dict[str, FileFacts] = {}
        self.packages: set[str] = set()
        self.aliases: dict[str, list[str]] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, set[str]] = {}
        self.rebuilds = 0

    def _record(self, method: str, target: str, *args):
        self.calls.append((method, target, *args))
        if target in self.fail.get(method, set()):
            raise AdapterError(f"{method} {target} failed")

    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if not c[0].startswith(("inspect", "read", "installed"))]

    # Accounts

    def inspect_account(self, name):
        self._record("inspect_account", name)
        facts = self.accounts.get(name)
        return facts.model_copy(deep=True) if facts else AccountFacts(exists=False)

    def create_or_update_account(self, name, home, shell, groups=(), comment=None):
        self._record("create_or_update_account", name)
        facts = self.accounts.get(name) or AccountFacts(exists=True)
        merged = list(facts.groups)
        merged += [g for g in groups if g not in merged]
        self.accounts[name] = facts.model_copy(
            update={"home": home, "shell": shell, "groups": merged,
                    "comment": comment if comment is not None else facts.comment}
        )

    def remove_account(self, name):
        self._record("remove_account", name)
        self.accounts.pop(name, None)

    def lock_password(self, name):
        self._record("lock_password", name)
        if name not in self.accounts:
            raise AdapterError(f"passwd: user '{name}' does not exist")
        self.accounts[name].locked = True

    def unlock_password(self, name):
        self._record("unlock_password", name)
        if name in self.accounts:
            self.accounts[name].locked = False

    # Files

    def inspect_file(self, path):
        self._record("inspect_file", path)
        facts = self.files.get(path)
        return facts.model_copy() if facts else FileFacts(exists=False)

    def write_file(self, path, owner, group, mode, content):
        self._record("write_file", path)
        self.files[path] = FileFacts(
            exists=True, owner=owner, group=group, mode=mode, content=content
        )

    def make_directory(self, path, owner, group, mode):
        self._record("make_directory", path)
        self.files[path] = FileFacts(
            exists=True, is_dir=True, owner=owner, group=group, mode=mode
        )

    def remove_file(self, path):
        self._record("remove_file", path)
        self.files.pop(path, None)

    # Packages

    def installed_packages(self, names):
        names = list(names)
        self._record("installed_packages", ",".join(names))
        return {n for n in names if n in self.packages}

    def install_packages(self, names):
        names = list(names)
        self._record("install_packages", ",".join(names))
        self.packages.update(names)

    def remove_packages(self, names):
        names = list(names)
        self._record("remove_packages", ",".join(names))
        self.packages.difference_update(names)

    # Mail aliases

    def read_alias_state(self, name):
        self._record("read_alias_state", name)
        return list(self.aliases.get(name, []))

    def write_alias_state(self, name, recipients):
        recipients = list(recipients)
        self._record("write_alias_state", name, tuple(recipients))
        if recipients:
            self.aliases[name] = recipients
        else:
            self.aliases.pop(name, None)

    def rebuild_aliases(self):
        self._record("rebuild_aliases", "")
        self.rebuilds += 1


@pytest.fixture
def adapter():
    """Provide an empty in-memory host."""
    return RecordingAdapter()


@pytest.fixture
def settings(temp_dir):
    """Settings isolated from the environment."""
    return SysconvergeSettings(
        _env_file=None,
        home_root="/home",
        alias_file=str(temp_dir / "aliases"),
        notification_packages=["logwatch", "mailutils"],
    )


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)
