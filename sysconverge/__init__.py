"""
Sysconverge - Declarative convergence of local sysadmin accounts.

Declare sysadmins and resources in Python; Sysconverge orders them by their
explicit dependencies, converges each one idempotently against the host, and
merges every account's email into the system mail aliases at the end.

- Re-running is always safe: converged resources are skipped
- One failing account never stops unrelated accounts from converging
- Removing an account stops managing it; its home directory stays
"""

from .core import SysconvergeCore
from .settings import SysconvergeSettings, get_settings, reload_settings
from .sysadmin import Sysadmin

__version__ = "0.1.0"
__all__ = [
    "Sysadmin",
    "SysconvergeCore",
    "SysconvergeSettings",
    "get_settings",
    "reload_settings",
]
