"""Local Linux implementation of the OS primitives."""

import grp
import logging
import os
import pwd
import stat
import subprocess
from collections.abc import Iterable

from ..aliases import AliasFile
from ..errors import AdapterError
from ..models import AccountFacts, FileFacts
from .base import OsAdapter

logger = logging.getLogger(__name__)


class LinuxAdapter(OsAdapter):
    """Drive shadow-utils, coreutils and the distribution package manager.

    Args:
        os_family: "debian" (dpkg/apt-get) or "redhat" (rpm/yum)
        alias_file: Path of the aliases(5) file
        timeout: Deadline in seconds for each command
    """

    def __init__(
        self,
        os_family: str = "debian",
        alias_file: str = "/etc/aliases",
        timeout: float | None = None,
    ):
        super().__init__(timeout=timeout)
        if os_family not in ("debian", "redhat"):
            raise ValueError(f"Unsupported OS family: {os_family!r}")
        self.os_family = os_family
        self.aliases = AliasFile(alias_file)

    @classmethod
    def from_settings(cls, settings) -> "LinuxAdapter":
        return cls(
            os_family=settings.os_family,
            alias_file=settings.alias_file,
            timeout=settings.command_timeout,
        )

    def _run(
        self,
        command: list[str],
        input: bytes | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                input=input,
                capture_output=True,
                timeout=self.timeout,
                env={**os.environ, **env} if env else None,
            )
        except subprocess.TimeoutExpired as e:
            raise AdapterError(
                f"{command[0]} timed out after {self.timeout}s", command=command
            ) from e
        except FileNotFoundError as e:
            raise AdapterError(f"Command not found: {command[0]}", command=command) from e
        except OSError as e:
            raise AdapterError(f"Cannot run {command[0]}: {e}", command=command) from e
        if check and result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise AdapterError(
                f"{' '.join(command)} exited with {result.returncode}: {stderr}",
                command=command,
                returncode=result.returncode,
                stderr=stderr,
            )
        return result

    # Accounts

    def inspect_account(self, name: str) -> AccountFacts:
        try:
            entry = pwd.getpwnam(name)
        except KeyError:
            return AccountFacts(exists=False)
        groups = [g.gr_name for g in grp.getgrall() if name in g.gr_mem]
        try:
            primary = grp.getgrgid(entry.pw_gid).gr_name
        except KeyError:
            primary = None
        if primary and primary not in groups:
            groups.insert(0, primary)
        return AccountFacts(
            exists=True,
            home=entry.pw_dir,
            shell=entry.pw_shell,
            comment=entry.pw_gecos,
            groups=groups,
            locked=self._password_locked(name),
        )

    def _password_locked(self, name: str) -> bool:
        # passwd -S: "alice L 01/01/2024 0 99999 7 -1"; Red Hat prints "LK".
        result = self._run(["passwd", "-S", name])
        fields = result.stdout.decode(errors="replace").split()
        return len(fields) > 1 and fields[1] in ("L", "LK")

    def create_or_update_account(self, name, home, shell, groups=(), comment=None) -> None:
        groups = list(groups)
        exists = self.inspect_account(name).exists
        command = ["usermod"] if exists else ["useradd", "--no-create-home"]
        command += ["--home", home, "--shell", shell]
        if comment is not None:
            command += ["--comment", comment]
        if groups:
            if exists:
                command.append("--append")
            command += ["--groups", ",".join(groups)]
        command.append(name)
        self._run(command)
        logger.info(f"{name}: user {'updated' if exists else 'added'}")

    def remove_account(self, name: str) -> None:
        result = self._run(["userdel", name], check=False)
        if result.returncode == 0:
            logger.info(f"User deleted: {name}")
        elif b"does not exist" in result.stderr.lower():
            logger.info(f"User does not exist: {name}")
        else:
            stderr = result.stderr.decode(errors="replace").strip()
            raise AdapterError(
                f"userdel {name} failed: {stderr}",
                command=["userdel", name],
                returncode=result.returncode,
                stderr=stderr,
            )

    def lock_password(self, name: str) -> None:
        if self._password_locked(name):
            return
        self._run(["passwd", "-l", name])
        logger.info(f"{name}: password locked")

    def unlock_password(self, name: str) -> None:
        if not self._password_locked(name):
            return
        self._run(["passwd", "-u", name])
        logger.info(f"{name}: password unlocked")

    # Files

    def inspect_file(self, path: str) -> FileFacts:
        try:
            st = os.lstat(path)
        except FileNotFoundError:
            return FileFacts(exists=False)
        except OSError as e:
            raise AdapterError(f"Cannot stat {path}: {e}") from e
        try:
            owner = pwd.getpwuid(st.st_uid).pw_name
        except KeyError:
            owner = str(st.st_uid)
        try:
            group = grp.getgrgid(st.st_gid).gr_name
        except KeyError:
            group = str(st.st_gid)
        is_dir = stat.S_ISDIR(st.st_mode)
        content = None
        if stat.S_ISREG(st.st_mode):
            try:
                with open(path, "rb") as handle:
                    content = handle.read()
            except OSError as e:
                raise AdapterError(f"Cannot read {path}: {e}") from e
        return FileFacts(
            exists=True,
            is_dir=is_dir,
            owner=owner,
            group=group,
            mode=stat.S_IMODE(st.st_mode),
            content=content,
        )

    def write_file(self, path, owner, group, mode, content) -> None:
        self._run(
            ["install", "-D", "-o", owner, "-g", group, "-m", f"{mode:o}", "/dev/stdin", path],
            input=content,
        )
        logger.info(f"Wrote {path}")

    def make_directory(self, path, owner, group, mode) -> None:
        self._run(["install", "-d", "-o", owner, "-g", group, "-m", f"{mode:o}", path])
        logger.info(f"Directory ready: {path}")

    def remove_file(self, path: str) -> None:
        self._run(["rm", "-rf", "--", path])
        logger.info(f"Removed {path}")

    # Packages

    def installed_packages(self, names: Iterable[str]) -> set[str]:
        installed = set()
        for name in names:
            if self.os_family == "redhat":
                result = self._run(["rpm", "-q", name], check=False)
                if result.returncode == 0:
                    installed.add(name)
            else:
                result = self._run(
                    ["dpkg-query", "-W", "-f=${Status}", name], check=False
                )
                if result.returncode == 0 and result.stdout.strip().endswith(b"installed") \
                        and b"not-installed" not in result.stdout:
                    installed.add(name)
        return installed

    def install_packages(self, names: Iterable[str]) -> None:
        names = list(names)
        if not names:
            return
        if self.os_family == "redhat":
            self._run(["yum", "install", "-y", *names])
        else:
            self._run(
                ["apt-get", "install", "-y", *names],
                env={"DEBIAN_FRONTEND": "noninteractive"},
            )
        logger.info(f"Installed packages: {', '.join(names)}")

    def remove_packages(self, names: Iterable[str]) -> None:
        names = list(names)
        if not names:
            return
        if self.os_family == "redhat":
            self._run(["yum", "remove", "-y", *names])
        else:
            self._run(
                ["apt-get", "remove", "-y", *names],
                env={"DEBIAN_FRONTEND": "noninteractive"},
            )
        logger.info(f"Removed packages: {', '.join(names)}")

    # Mail aliases

    def read_alias_state(self, name: str) -> list[str]:
        return self.aliases.get(name)

    def write_alias_state(self, name: str, recipients: Iterable[str]) -> None:
        self.aliases.set(name, recipients)

    def rebuild_aliases(self) -> None:
        self._run(["newaliases"])
        logger.info("Alias database rebuilt")
