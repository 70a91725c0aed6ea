"""
Sysconverge errors.

Validation and cycle errors are fatal and raised before any OS mutation.
Adapter and content errors are local to the resource that hit them.
Aggregation errors fail only the mail alias step.
"""


class SysconvergeError(Exception):
    """Base exception for all Sysconverge errors."""
    pass


class ConfigurationError(SysconvergeError):
    """Errors in configuration or declaration files."""
    pass


class ValidationError(SysconvergeError):
    """Declared resources are inconsistent. Aborts the run before mutation."""
    pass


class DuplicateIdError(ValidationError):
    """A resource id was registered twice."""
    pass


class DuplicateAccountError(ValidationError):
    """An account contributed more than once in a single run."""
    pass


class InvalidStateError(ValidationError):
    """Desired state is neither 'present' nor 'absent'."""
    pass


class MissingDependencyError(ValidationError):
    """A resource depends on an id that was never registered."""
    pass


class StageOrderError(ValidationError):
    """A main-stage resource depends on a last-stage resource."""
    pass


class RegistrySealedError(ValidationError):
    """Registration attempted after the contribution snapshot was taken."""
    pass


class CycleError(SysconvergeError):
    """Dependency cycle detected while building the graph."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' → '.join(cycle)}")


class AdapterError(SysconvergeError):
    """An OS primitive reported failure."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class AggregationError(SysconvergeError):
    """Account contributions cannot be merged into alias state."""
    pass


class ContentError(SysconvergeError):
    """A file's content producer raised while rendering."""
    pass
