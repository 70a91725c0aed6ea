"""Package set resources."""

from pydantic import Field, PrivateAttr, field_validator

from ..models import DesiredState, ResourceKind, Stage
from .alias import MailAliasResource
from .base import Resource


class PackageSetResource(Resource):
    """A set of packages that must all be installed, or all be removed.

    Only the missing (or still installed) packages are handed to the adapter.

    Example:
        >>> PackageSetResource(id="packages:mail", packages=["logwatch", "mailutils"])
    """

    kind: ResourceKind = ResourceKind.PACKAGE_SET
    packages: list[str] = Field(default_factory=list)

    @field_validator("packages")
    @classmethod
    def validate_packages(cls, v):
        names = []
        for name in v:
            name = name.strip()
            if not name or name.startswith("-"):
                raise ValueError(f"Invalid package name: {name!r}")
            if name not in names:
                names.append(name)
        return names

    def inspect(self, adapter) -> set[str]:
        return adapter.installed_packages(self.packages)

    def is_converged(self, current: set[str]) -> bool:
        if self.present:
            return set(self.packages) <= current
        return not (set(self.packages) & current)

    def create_or_update(self, adapter) -> None:
        installed = adapter.installed_packages(self.packages)
        missing = [p for p in self.packages if p not in installed]
        if missing:
            adapter.install_packages(missing)

    def remove(self, adapter) -> None:
        installed = adapter.installed_packages(self.packages)
        present = [p for p in self.packages if p in installed]
        if present:
            adapter.remove_packages(present)

    def describe(self) -> str:
        return f"packages {', '.join(self.packages)}"


class NotificationPackagesResource(PackageSetResource):
    """Notification tooling installed only while alias recipients exist.

    Derived from a MailAliasResource: its desired state is settled in
    resolve(), after the alias resource has been inspected, so it must
    depend on that resource.
    """

    id: str = "packages:notification"
    stage: Stage = Stage.LAST

    _alias: MailAliasResource | None = PrivateAttr(default=None)

    @classmethod
    def following(
        cls, alias: MailAliasResource, packages: list[str], **kwargs
    ) -> "NotificationPackagesResource":
        resource = cls(packages=packages, depends_on=[alias.id], **kwargs)
        resource._alias = alias
        return resource

    def resolve(self) -> None:
        if self._alias is None or self._alias.next_state is None:
            return
        self.desired_state = (
            DesiredState.PRESENT if self._alias.has_recipients() else DesiredState.ABSENT
        )
