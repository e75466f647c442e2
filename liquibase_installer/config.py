#!/usr/bin/env python3
"""
Liquibase Installer Configuration Management
Builds the immutable run configuration from defaults, a YAML file, the
environment and command-line flags (later sources win)
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Optional, Any, Mapping
from dataclasses import dataclass, replace

from liquibase_installer.output import get_reporter
from liquibase_installer.release import (
    GITHUB_API_URL,
    GITHUB_DOWNLOAD_URL,
    SECURE_REPO_URL,
    Edition,
)


TRUE_STRINGS = {'1', 'true', 'yes', 'on'}


def env_flag(value: Optional[str]) -> bool:
    """Interpret a boolean-string environment value (VERBOSE=true, DRY_RUN=1, ...)"""
    if value is None:
        return False
    return value.strip().lower() in TRUE_STRINGS


@dataclass(frozen=True)
class InstallerConfig:
    """Settings for a single installer run, passed explicitly to every stage"""

    version_selector: str = "latest"
    edition: Edition = Edition.OSS
    verbose: bool = False
    dry_run: bool = False

    # Optional inputs
    checksum: Optional[str] = None
    prefix: Optional[Path] = None
    github_token: Optional[str] = None
    use_package_manager: bool = False
    update_path: bool = True
    verify: bool = True

    # Upstream endpoints
    github_api_url: str = GITHUB_API_URL
    github_download_url: str = GITHUB_DOWNLOAD_URL
    secure_repo_url: str = SECURE_REPO_URL
    timeout: float = 60.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'InstallerConfig':
        """Create config from a YAML mapping, ignoring unknown keys"""
        config = cls()
        updates: Dict[str, Any] = {}

        for key in ('github_api_url', 'github_download_url', 'secure_repo_url'):
            if data.get(key):
                updates[key] = str(data[key]).rstrip('/')

        if 'timeout' in data:
            try:
                updates['timeout'] = max(1.0, float(data['timeout']))
            except (TypeError, ValueError):
                updates['timeout'] = config.timeout

        if data.get('prefix'):
            updates['prefix'] = Path(str(data['prefix'])).expanduser()

        for key in ('update_path', 'use_package_manager', 'verify'):
            if key in data:
                updates[key] = bool(data[key])

        return replace(config, **updates)

    def with_environment(self, environ: Optional[Mapping[str, str]] = None) -> 'InstallerConfig':
        """Apply VERBOSE, DRY_RUN and GITHUB_TOKEN overrides"""
        environ = os.environ if environ is None else environ
        return replace(
            self,
            verbose=self.verbose or env_flag(environ.get('VERBOSE')),
            dry_run=self.dry_run or env_flag(environ.get('DRY_RUN')),
            github_token=environ.get('GITHUB_TOKEN') or self.github_token,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for verbose display (token redacted)"""
        return {
            'version_selector': self.version_selector,
            'edition': self.edition.value,
            'verbose': self.verbose,
            'dry_run': self.dry_run,
            'checksum': self.checksum,
            'prefix': str(self.prefix) if self.prefix else None,
            'github_token': '***' if self.github_token else None,
            'use_package_manager': self.use_package_manager,
            'update_path': self.update_path,
            'verify': self.verify,
            'github_api_url': self.github_api_url,
            'github_download_url': self.github_download_url,
            'secure_repo_url': self.secure_repo_url,
            'timeout': self.timeout,
        }


class ConfigManager:
    """Locate and load the optional installer YAML file"""

    DEFAULT_CONFIG_NAME = ".liquibase-installer.yml"
    ENV_VAR = "LIQUIBASE_INSTALLER_CONFIG"

    @staticmethod
    def find_config(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
        """
        Find the config file

        Args:
            environ: Environment mapping (default: os.environ)

        Returns:
            Path named by LIQUIBASE_INSTALLER_CONFIG, else ~/.liquibase-installer.yml
            if it exists, else None
        """
        environ = os.environ if environ is None else environ
        explicit = environ.get(ConfigManager.ENV_VAR)
        if explicit:
            return Path(explicit).expanduser()

        candidate = Path.home() / ConfigManager.DEFAULT_CONFIG_NAME
        if candidate.exists():
            return candidate
        return None

    @staticmethod
    def load_config(config_path: Optional[Path] = None,
                    environ: Optional[Mapping[str, str]] = None) -> InstallerConfig:
        """
        Load configuration from YAML and the environment

        Args:
            config_path: Path to config file (default: search)
            environ: Environment mapping (default: os.environ)

        Returns:
            InstallerConfig with file and environment values applied
        """
        if config_path is None:
            config_path = ConfigManager.find_config(environ)

        config = InstallerConfig()
        if config_path is not None and config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    data = yaml.safe_load(f)
                if isinstance(data, dict):
                    config = InstallerConfig.from_dict(data)
            except (OSError, yaml.YAMLError) as e:
                get_reporter().warn(f"Failed to load config from {config_path}: {e}")

        return config.with_environment(environ)
