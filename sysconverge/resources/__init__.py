"""
Sysconverge Resources - Pydantic models for manageable units of system state.
"""

from .account import AccountResource, PasswordLockResource
from .alias import MailAliasResource
from .base import Resource
from .file import DirectoryResource, FileResource, SudoEntryResource
from .package import NotificationPackagesResource, PackageSetResource

__all__ = [
    "AccountResource",
    "DirectoryResource",
    "FileResource",
    "MailAliasResource",
    "NotificationPackagesResource",
    "PackageSetResource",
    "PasswordLockResource",
    "Resource",
    "SudoEntryResource",
]
