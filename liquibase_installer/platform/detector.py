#!/usr/bin/env python3
"""
Liquibase Installer Platform Detection
Maps the kernel-reported OS name and machine type to a normalized platform tag
"""

import fnmatch
import os
import platform
import shutil
from pathlib import Path
from typing import Optional, List
from enum import Enum
from dataclasses import dataclass

from liquibase_installer.errors import UnsupportedPlatformError
from liquibase_installer.output import Reporter, get_reporter


class OSType(Enum):
    """Operating system types"""
    DARWIN = "darwin"
    LINUX = "linux"
    WINDOWS = "windows"


class Arch(Enum):
    """CPU architectures the release archives are published for"""
    X64 = "x64"
    ARM64 = "arm64"


class PackageManager(Enum):
    """Package managers that carry a Liquibase package"""
    BREW = "brew"            # macOS Homebrew
    APT = "apt"              # Debian/Ubuntu
    YUM = "yum"              # RHEL/CentOS (old)
    DNF = "dnf"              # Fedora/RHEL 8+
    SDKMAN = "sdkman"        # cross-platform
    CHOCOLATEY = "choco"     # Windows


# Kernel names reported by MinGW, MSYS, Cygwin and native Windows
WINDOWS_KERNEL_PATTERNS = ('MINGW*', 'MSYS*', 'CYGWIN*', '*_NT*', 'WINDOWS*')

ARCH_ALIASES = {
    'x86_64': Arch.X64,
    'amd64': Arch.X64,
    'x64': Arch.X64,
    'arm64': Arch.ARM64,
    'aarch64': Arch.ARM64,
    # The archives bundle a JVM launcher, not native code
    'i386': Arch.X64,
    'i686': Arch.X64,
}

# Commands probed for each package manager, in order of preference
PACKAGE_MANAGER_COMMANDS = {
    PackageManager.BREW: 'brew',
    PackageManager.APT: 'apt-get',
    PackageManager.YUM: 'yum',
    PackageManager.DNF: 'dnf',
    PackageManager.SDKMAN: 'sdk',
    PackageManager.CHOCOLATEY: 'choco',
}

# Package managers that make sense on each OS
PACKAGE_MANAGERS_BY_OS = {
    OSType.DARWIN: (PackageManager.BREW, PackageManager.SDKMAN),
    OSType.LINUX: (PackageManager.APT, PackageManager.YUM, PackageManager.DNF, PackageManager.SDKMAN),
    OSType.WINDOWS: (PackageManager.SDKMAN, PackageManager.CHOCOLATEY),
}


def sdkman_init_script() -> Path:
    """Location of sdkman-init.sh (sdk is a shell function, not a binary)"""
    sdkman_dir = os.environ.get('SDKMAN_DIR') or str(Path.home() / '.sdkman')
    return Path(sdkman_dir) / 'bin' / 'sdkman-init.sh'


def is_package_manager_available(pm: PackageManager) -> bool:
    """Check whether a package manager can be invoked from this process"""
    if pm == PackageManager.SDKMAN:
        return sdkman_init_script().exists()
    return shutil.which(PACKAGE_MANAGER_COMMANDS[pm]) is not None


@dataclass(frozen=True)
class PlatformTag:
    """Normalized platform of the running host"""
    os: OSType
    arch: Arch

    def __str__(self) -> str:
        return f"{self.os.value}-{self.arch.value}"

    @property
    def is_windows(self) -> bool:
        return self.os == OSType.WINDOWS


def normalize_os(system: str) -> OSType:
    """
    Map a kernel name (uname -s) to an OSType

    Raises:
        UnsupportedPlatformError: for anything that is not macOS, Linux or Windows
    """
    if system == 'Darwin':
        return OSType.DARWIN
    if system == 'Linux':
        return OSType.LINUX

    upper = system.upper()
    if any(fnmatch.fnmatchcase(upper, pattern) for pattern in WINDOWS_KERNEL_PATTERNS):
        return OSType.WINDOWS

    raise UnsupportedPlatformError(
        f"Unsupported operating system: {system or 'unknown'}",
        hint="Supported systems are macOS, Linux and Windows (Git Bash, MSYS2 or Cygwin)",
    )


def normalize_arch(machine: str, reporter: Optional[Reporter] = None) -> Arch:
    """
    Map a machine type (uname -m) to an Arch

    Unknown machine types fall back to x64 with a warning.
    """
    arch = ARCH_ALIASES.get(machine.strip().lower())
    if arch is None:
        (reporter or get_reporter()).warn(
            f"Unrecognized architecture '{machine}', defaulting to {Arch.X64.value}"
        )
        return Arch.X64
    return arch


class PlatformDetector:
    """
    Detect platform details: OS, architecture, package managers
    """

    def __init__(self, reporter: Optional[Reporter] = None):
        self.reporter = reporter or get_reporter()
        self.tag: Optional[PlatformTag] = None

    def detect(self, system: Optional[str] = None, machine: Optional[str] = None) -> PlatformTag:
        """
        Perform platform detection

        Args:
            system: Kernel name override (default: platform.system())
            machine: Machine type override (default: platform.machine())

        Returns:
            PlatformTag for this host
        """
        system = platform.system() if system is None else system
        machine = platform.machine() if machine is None else machine
        self.reporter.verbose("Detecting platform and architecture...")

        os_type = normalize_os(system)
        self.reporter.verbose(f"Detected OS: {system} -> {os_type.value}")

        arch = normalize_arch(machine, self.reporter)
        self.reporter.verbose(f"Detected architecture: {machine} -> {arch.value}")

        self.tag = PlatformTag(os=os_type, arch=arch)
        self.reporter.verbose(f"Platform: {self.tag}")
        return self.tag

    def detect_package_managers(self, os_type: OSType) -> List[PackageManager]:
        """
        Detect package managers available on PATH that apply to os_type

        Returns:
            Package managers in order of preference (may be empty)
        """
        managers = []
        for pm in PACKAGE_MANAGERS_BY_OS[os_type]:
            if is_package_manager_available(pm):
                self.reporter.verbose(f"Found {pm.value}")
                managers.append(pm)

        if not managers:
            self.reporter.verbose("No package managers found, will use direct download")
        return managers


def resolve_platform(system: Optional[str] = None, machine: Optional[str] = None,
                     reporter: Optional[Reporter] = None) -> PlatformTag:
    """Detect the platform tag for this run"""
    return PlatformDetector(reporter).detect(system, machine)
