"""Sysadmin account declarations and their expansion into resources."""

import logging
import re
from pathlib import PurePosixPath

from jinja2 import TemplateError
from pydantic import BaseModel, Field, field_validator

from .errors import ConfigurationError, DuplicateIdError
from .fragments import Fragment, FragmentFile
from .models import DesiredState
from .registry import ResourceRegistry
from .resources import (
    AccountResource,
    DirectoryResource,
    FileResource,
    PasswordLockResource,
    Resource,
    SudoEntryResource,
)
from .resources.account import validate_account_name
from .settings import SysconvergeSettings, get_settings

logger = logging.getLogger(__name__)

_SSH_KEY_RE = re.compile(r"(ssh|ecdsa|sk)-[\w@.-]+ [A-Za-z0-9+/=]+( .*)?")

PROFILE_HEADER = """\
# Managed by sysconverge for {{ name }}. Local changes are overwritten.
[ -f ~/.bashrc ] && . ~/.bashrc
"""

PROFILE_FOOTER = """\
# End of managed profile for {{ name }}
"""


class Sysadmin(BaseModel):
    """A local sysadmin account.

    A present sysadmin expands to: account, home directory, shell profile,
    ~/.ssh directory and authorized_keys, sudoers entry and password lock.
    An absent one only removes the account and its sudoers entry; home
    directory, profile and keys are left untouched.

    Every sysadmin contributes its email to the mail aliases.

    Examples:
        >>> Sysadmin(name="alice", email="alice@example.org",
        ...          ssh_keys=["ssh-ed25519 AAAAC3Nza alice@laptop"])

        >>> Sysadmin(name="bob", state="absent")
    """

    name: str
    email: str = ""
    state: DesiredState = DesiredState.PRESENT
    comment: str | None = None
    shell: str | None = None
    home: str | None = None
    groups: list[str] = Field(default_factory=list)
    ssh_keys: list[str] = Field(default_factory=list)
    sudo: bool = True
    sudo_rule: str = "ALL=(ALL:ALL) NOPASSWD: ALL"
    lock_password: bool = True
    profile_fragments: list[Fragment] = Field(default_factory=list)
    profile_variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return validate_account_name(v)

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v):
        return DesiredState.coerce(v)

    @field_validator("ssh_keys")
    @classmethod
    def validate_ssh_keys(cls, v):
        keys = []
        for key in v:
            key = key.strip()
            if not _SSH_KEY_RE.fullmatch(key):
                raise ValueError(f"Not an OpenSSH public key: {key[:40]!r}")
            if key not in keys:
                keys.append(key)
        return keys

    @property
    def present(self) -> bool:
        return self.state == DesiredState.PRESENT

    def home_dir(self, settings: SysconvergeSettings) -> str:
        return self.home or str(PurePosixPath(settings.home_root, self.name))

    def profile(self) -> FragmentFile:
        """Shell profile content: header, ordered fragments, footer."""
        variables = {**self.profile_variables, "name": self.name, "email": self.email}
        return FragmentFile(
            header=PROFILE_HEADER,
            footer=PROFILE_FOOTER,
            variables=variables,
        ).add(*self.profile_fragments)

    def resources(self, settings: SysconvergeSettings | None = None) -> list[Resource]:
        """Resources this declaration expands to, dependencies declared."""
        settings = settings or get_settings()
        name = self.name
        home = self.home_dir(settings)

        sudo = SudoEntryResource(
            id=f"sudo:{name}",
            account=name,
            rule=self.sudo_rule,
            sudoers_dir=settings.sudoers_dir,
            desired_state=DesiredState.PRESENT if self.present and self.sudo else DesiredState.ABSENT,
        )

        groups = list(self.groups)
        if settings.sudo_group and settings.sudo_group not in groups:
            groups.append(settings.sudo_group)
        account = AccountResource(
            id=f"user:{name}",
            name=name,
            home=home,
            shell=self.shell or settings.default_shell,
            groups=groups,
            comment=self.comment,
            desired_state=self.state,
        )

        if not self.present:
            # Revoke sudo before the account disappears.
            account.require(sudo)
            return [sudo, account]

        sudo.require(account)
        home_dir = DirectoryResource(
            id=f"dir:{home}", path=home, owner=name, mode=0o750
        ).require(account)
        profile = self.profile()
        profile_path = str(PurePosixPath(home, settings.profile_name))
        profile_file = FileResource(
            id=f"file:{profile_path}",
            path=profile_path,
            owner=name,
            mode=0o644,
            content_producer=profile.render,
        ).require(home_dir)
        ssh_path = str(PurePosixPath(home, ".ssh"))
        ssh_dir = DirectoryResource(
            id=f"dir:{ssh_path}", path=ssh_path, owner=name, mode=0o700
        ).require(home_dir)
        keys_path = str(PurePosixPath(ssh_path, "authorized_keys"))
        keys = FileResource(
            id=f"file:{keys_path}",
            path=keys_path,
            owner=name,
            mode=0o600,
            content="".join(f"{key}\n" for key in self.ssh_keys),
        ).require(ssh_dir)
        lock = PasswordLockResource(
            id=f"passwd:{name}",
            account=name,
            desired_state=DesiredState.PRESENT if self.lock_password else DesiredState.ABSENT,
        ).require(account)
        return [account, home_dir, profile_file, ssh_dir, keys, sudo, lock]

    def register(
        self, registry: ResourceRegistry, settings: SysconvergeSettings | None = None
    ) -> list[Resource]:
        """Register this declaration's resources and its mail contribution.

        Raises:
            ConfigurationError: If the profile does not render
            DuplicateIdError: If one of the resources is already registered
        """
        if self.present:
            try:
                self.profile().render()
            except TemplateError as e:
                raise ConfigurationError(
                    f"Profile of sysadmin '{self.name}' does not render: {e}"
                ) from e
        resources = self.resources(settings)
        for resource in resources:
            if resource.id in registry:
                raise DuplicateIdError(f"Resource '{resource.id}' is already registered")
        registry.register_contribution(self.name, self.email, self.state)
        registry.register_all(*resources)
        logger.debug(f"Sysadmin {self.name} ({self.state.value}): {len(resources)} resources")
        return resources
