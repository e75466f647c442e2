"""
Liquibase Installer Platform Detection & Package Managers
Cross-platform OS/architecture detection and package manager call-outs
"""

from liquibase_installer.platform.detector import (
    Arch,
    OSType,
    PackageManager,
    PlatformDetector,
    PlatformTag,
    normalize_arch,
    normalize_os,
    resolve_platform,
)

__all__ = [
    'Arch',
    'OSType',
    'PackageManager',
    'PlatformDetector',
    'PlatformTag',
    'normalize_arch',
    'normalize_os',
    'resolve_platform',
]
