"""
Sysconverge Settings - Configuration management using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find project root (where .env file is located)
PROJECT_ROOT = Path(__file__).parent.parent


class SysconvergeSettings(BaseSettings):
    """
    Sysconverge configuration settings.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="SC_",  # All Sysconverge env vars must start with SC_
    )

    # Host Configuration
    os_family: Literal["debian", "redhat"] = Field(
        default="debian",
        description="Package manager flavour of the host (env: SC_OS_FAMILY)",
    )

    alias_file: str = Field(
        default="/etc/aliases",
        description="System mail alias file (env: SC_ALIAS_FILE)",
    )

    home_root: str = Field(
        default="/home",
        description="Directory holding sysadmin home directories (env: SC_HOME_ROOT)",
    )

    default_shell: str = Field(
        default="/bin/bash",
        description="Login shell for sysadmin accounts (env: SC_DEFAULT_SHELL)",
    )

    sudoers_dir: str = Field(
        default="/etc/sudoers.d",
        description="Drop-in directory for sudoers entries (env: SC_SUDOERS_DIR)",
    )

    sudo_group: str | None = Field(
        default=None,
        description="Supplementary group granted to every sysadmin (env: SC_SUDO_GROUP)",
    )

    profile_name: str = Field(
        default=".bash_profile",
        description="Per-account profile file name under the home directory (env: SC_PROFILE_NAME)",
    )

    notification_packages: list[str] | None = Field(
        default=None,
        description="Packages installed when alias recipients exist; "
        "defaults depend on os_family (env: SC_NOTIFICATION_PACKAGES)",
    )

    # Execution Configuration
    command_timeout: float = Field(
        default=120.0,
        description="Deadline in seconds for each OS command (env: SC_COMMAND_TIMEOUT)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: SC_LOG_LEVEL)",
    )

    def resolved_notification_packages(self) -> list[str]:
        """Notification packages for this host's OS family."""
        if self.notification_packages is not None:
            return list(self.notification_packages)
        if self.os_family == "redhat":
            return ["logwatch", "mailx"]
        return ["logwatch", "mailutils"]


# Global settings instance
_settings: SysconvergeSettings | None = None


def get_settings() -> SysconvergeSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call, then returns cached instance.

    Returns:
        SysconvergeSettings instance
    """
    global _settings
    if _settings is None:
        _settings = SysconvergeSettings()
    return _settings


def reload_settings() -> SysconvergeSettings:
    """
    Reload settings from environment/files.

    Useful for testing or when .env file changes.

    Returns:
        Fresh SysconvergeSettings instance
    """
    global _settings
    _settings = SysconvergeSettings()
    return _settings
