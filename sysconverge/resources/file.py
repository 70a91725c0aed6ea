"""File, directory and sudoers entry resources."""

from collections.abc import Callable
from pathlib import PurePosixPath
from typing import Any

from pydantic import Field, PrivateAttr, field_validator, model_validator

from ..errors import ContentError
from ..models import FileFacts, ResourceKind
from .account import validate_account_name
from .base import Resource


def parse_mode(value: Any) -> int:
    """Accept an int or an octal string such as "644" or "0o600"."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid file mode: {value!r}")
    if isinstance(value, int):
        mode = value
    elif isinstance(value, str):
        text = value.strip().lower().removeprefix("0o")
        try:
            mode = int(text, 8)
        except ValueError:
            raise ValueError(f"Invalid file mode: {value!r}") from None
    else:
        raise ValueError(f"Invalid file mode: {value!r}")
    if not 0 <= mode <= 0o7777:
        raise ValueError(f"File mode out of range: {value!r}")
    return mode


class _PathResource(Resource):
    path: str
    owner: str = "root"
    group: str | None = None
    mode: int = 0o644

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        if not PurePosixPath(v).is_absolute():
            raise ValueError(f"Path must be absolute, got {v!r}")
        return v

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v):
        return parse_mode(v)

    @property
    def effective_group(self) -> str:
        return self.group or self.owner

    def inspect(self, adapter) -> FileFacts:
        return adapter.inspect_file(self.path)

    def _ownership_matches(self, current: FileFacts) -> bool:
        return (
            current.owner == self.owner
            and current.group == self.effective_group
            and current.mode == self.mode
        )

    def remove(self, adapter) -> None:
        adapter.remove_file(self.path)

    def describe(self) -> str:
        return f"{self.kind.value} {self.path} ({self.owner}:{self.effective_group} {self.mode:04o})"


class DirectoryResource(_PathResource):
    """Directory with fixed owner, group and mode.

    Examples:
        >>> DirectoryResource(id="dir:/home/alice/.ssh", path="/home/alice/.ssh",
        ...                   owner="alice", mode="700")
    """

    kind: ResourceKind = ResourceKind.DIRECTORY
    mode: int = 0o755

    def is_converged(self, current: FileFacts) -> bool:
        if not self.present:
            return not current.exists
        return current.exists and current.is_dir and self._ownership_matches(current)

    def create_or_update(self, adapter) -> None:
        adapter.make_directory(self.path, self.owner, self.effective_group, self.mode)


class FileResource(_PathResource):
    """File resource - a regular file with owner, group, mode and content.

    Content comes either from ``content`` or from ``content_producer``, an
    opaque callable returning the bytes to write. The producer is called at
    most once per run.

    Examples:
        >>> FileResource(id="file:/etc/motd", path="/etc/motd", content="Managed host\\n")

        >>> FileResource(
        ...     id="file:/home/alice/.bash_profile",
        ...     path="/home/alice/.bash_profile",
        ...     owner="alice",
        ...     content_producer=profile.render,
        ... )
    """

    kind: ResourceKind = ResourceKind.FILE
    content: str | bytes | None = None
    content_producer: Callable[[], str | bytes] | None = Field(default=None, exclude=True)

    _rendered: bytes | None = PrivateAttr(default=None)

    @model_validator(mode="after")
    def validate_content_source(self):
        if self.content is not None and self.content_producer is not None:
            raise ValueError(
                f"{self.id}: set either 'content' or 'content_producer', not both"
            )
        return self

    def render(self) -> bytes:
        """Bytes this file must contain.

        Raises:
            ContentError: If the content producer fails
        """
        if self._rendered is None:
            if self.content_producer is not None:
                try:
                    data = self.content_producer()
                except Exception as e:
                    raise ContentError(
                        f"Cannot render content of {self.path}: {type(e).__name__}: {e}"
                    ) from e
            else:
                data = self.content or b""
            self._rendered = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        return self._rendered

    def is_converged(self, current: FileFacts) -> bool:
        if not self.present:
            return not current.exists
        return (
            current.exists
            and not current.is_dir
            and self._ownership_matches(current)
            and current.content == self.render()
        )

    def create_or_update(self, adapter) -> None:
        adapter.write_file(
            self.path, self.owner, self.effective_group, self.mode, self.render()
        )


class SudoEntryResource(FileResource):
    """Drop-in sudoers file granting ``rule`` to ``account``.

    Path, ownership, mode and content are derived from the account:

        >>> entry = SudoEntryResource(id="sudo:alice", account="alice")
        >>> entry.path
        '/etc/sudoers.d/alice'
        >>> entry.render()
        b'alice ALL=(ALL:ALL) NOPASSWD: ALL\\n'
    """

    kind: ResourceKind = ResourceKind.SUDO_ENTRY
    account: str
    rule: str = "ALL=(ALL:ALL) NOPASSWD: ALL"
    sudoers_dir: str = "/etc/sudoers.d"

    @model_validator(mode="before")
    @classmethod
    def derive_file_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        account = data.get("account")
        if isinstance(account, str):
            validate_account_name(account)
            sudoers_dir = data.get("sudoers_dir", "/etc/sudoers.d").rstrip("/")
            rule = data.get("rule", "ALL=(ALL:ALL) NOPASSWD: ALL")
            data.setdefault("path", f"{sudoers_dir}/{account}")
            data.setdefault("content", f"{account} {rule}\n")
        data.setdefault("owner", "root")
        data.setdefault("group", "root")
        data.setdefault("mode", 0o440)
        return data

    def describe(self) -> str:
        return f"sudo entry for {self.account} ({self.path})"
