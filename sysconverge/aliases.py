"""
Reading and rewriting the system mail alias file.

Format (aliases(5)):

    # comment
    root: alice, bob
    alice: alice@example.org
    postmaster:
        root

Lines starting with whitespace continue the previous entry. Comments, blank
lines and entries that are not rewritten are kept byte for byte, including
bytes that are not valid UTF-8. Commas inside double quotes do not separate
recipients.
"""

import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .errors import AdapterError
from .forge.aggregator import flatten_recipients

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    name: str
    recipients: list[str]
    raw: list[str] = field(default_factory=list)  # original lines; empty once rewritten


@dataclass
class AliasTable:
    """Parsed alias file: raw lines interleaved with entries."""

    items: list[str | _Entry] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "AliasTable":
        """Parse aliases(5) text.

        >>> table = AliasTable.parse("# mail\\nroot: alice,\\n  bob\\n")
        >>> table.get("root")
        ['alice', 'bob']
        """
        table = cls()
        current: _Entry | None = None
        for line in text.splitlines():
            stripped = line.strip()
            if current is not None and line[:1] in (" ", "\t") and stripped and not stripped.startswith("#"):
                current.recipients.extend(flatten_recipients(stripped))
                current.raw.append(line)
                continue
            current = None
            if not stripped or stripped.startswith("#") or ":" not in stripped:
                table.items.append(line)
                continue
            name, _, value = stripped.partition(":")
            current = _Entry(name=name.strip(), recipients=flatten_recipients(value), raw=[line])
            table.items.append(current)
        return table

    def _entries(self, name: str) -> list[_Entry]:
        return [item for item in self.items if isinstance(item, _Entry) and item.name == name]

    def names(self) -> list[str]:
        return [item.name for item in self.items if isinstance(item, _Entry)]

    def get(self, name: str) -> list[str]:
        """Recipients of ``name``; duplicate entries are merged in file order."""
        return flatten_recipients([entry.recipients for entry in self._entries(name)])

    def set(self, name: str, recipients: Iterable[str]) -> None:
        """Replace ``name`` in place, append it if new, drop it if empty."""
        recipients = flatten_recipients(list(recipients))
        entries = self._entries(name)
        if not recipients:
            self.items = [item for item in self.items if item not in entries]
            return
        new_entry = _Entry(name=name, recipients=recipients, raw=[])
        if entries:
            index = self.items.index(entries[0])
            self.items = [item for item in self.items if item not in entries]
            self.items.insert(index, new_entry)
        else:
            self.items.append(new_entry)

    def render(self) -> str:
        lines: list[str] = []
        for item in self.items:
            if isinstance(item, str):
                lines.append(item)
            elif item.raw:
                lines.extend(item.raw)
            else:
                lines.append(f"{item.name}: {', '.join(item.recipients)}")
        return "\n".join(lines) + "\n" if lines else ""


class AliasFile:
    """Alias file on disk. Each write is a full atomic rewrite."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> AliasTable:
        try:
            text = self.path.read_text(encoding="utf-8", errors="surrogateescape")
        except FileNotFoundError:
            return AliasTable()
        except OSError as e:
            raise AdapterError(f"Cannot read {self.path}: {e}") from e
        return AliasTable.parse(text)

    def write(self, table: AliasTable) -> None:
        # Write to a temporary file first, then rename (atomic operation)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            mode = self.path.stat().st_mode & 0o7777 if self.path.exists() else 0o644
            fd, temp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape") as handle:
                    handle.write(table.render())
                os.chmod(temp_name, mode)
                os.replace(temp_name, self.path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise AdapterError(f"Cannot write {self.path}: {e}") from e
        logger.debug(f"Wrote {self.path}")

    def get(self, name: str) -> list[str]:
        return self.read().get(name)

    def set(self, name: str, recipients: Iterable[str]) -> None:
        table = self.read()
        table.set(name, recipients)
        self.write(table)
