#!/usr/bin/env python3
"""
Liquibase Installer Package Manager Call-Outs
Thin wrappers that hand the installation to a system package manager
"""

from typing import List, Optional
import subprocess

from liquibase_installer import PRODUCT_NAME
from liquibase_installer.output import Reporter, get_reporter
from liquibase_installer.platform.detector import PackageManager, sdkman_init_script


def install_command(pm: PackageManager, package: str = PRODUCT_NAME) -> List[str]:
    """
    Get the install command for a package manager

    Args:
        pm: Package manager to use
        package: Package name

    Returns:
        Command and arguments
    """
    if pm == PackageManager.BREW:
        return ['brew', 'install', package]
    if pm == PackageManager.APT:
        return ['sudo', 'sh', '-c', f'apt-get update && apt-get install -y {package}']
    if pm == PackageManager.YUM:
        return ['sudo', 'yum', 'install', '-y', package]
    if pm == PackageManager.DNF:
        return ['sudo', 'dnf', 'install', '-y', package]
    if pm == PackageManager.SDKMAN:
        init_script = sdkman_init_script()
        return ['bash', '-c', f'source "{init_script}" && sdk install {package}']
    if pm == PackageManager.CHOCOLATEY:
        return ['choco', 'install', package, '-y']
    raise ValueError(f"Unsupported package manager: {pm}")


class PackageManagerInstaller:
    """
    Install Liquibase through one package manager
    """

    def __init__(self, package_manager: PackageManager, reporter: Optional[Reporter] = None):
        self.package_manager = package_manager
        self.reporter = reporter or get_reporter()

    def get_install_command(self) -> str:
        return " ".join(install_command(self.package_manager))

    def run_command(self, cmd: List[str]) -> subprocess.CompletedProcess:
        """
        Run a command and return result

        Args:
            cmd: Command and arguments

        Returns:
            CompletedProcess result
        """
        return subprocess.run(cmd, capture_output=True, text=True, check=False, shell=False)

    def install(self, dry_run: bool = False) -> bool:
        """
        Install the package

        Args:
            dry_run: Only print the command that would run

        Returns:
            True if installation succeeded
        """
        if dry_run:
            self.reporter.info(f"[DRY RUN] Would run: {self.get_install_command()}")
            return True

        self.reporter.info(f"Attempting installation via {self.package_manager.value}...")
        cmd = install_command(self.package_manager)
        try:
            result = self.run_command(cmd)
        except OSError as e:
            self.reporter.warn(f"{self.package_manager.value} could not be started: {e}")
            return False

        if result.returncode != 0:
            if result.stderr:
                self.reporter.verbose(result.stderr.strip()[:500])
            self.reporter.warn(f"{self.package_manager.value} installation failed, trying next method...")
            return False
        return True


def install_via_package_managers(managers: List[PackageManager], dry_run: bool = False,
                                 reporter: Optional[Reporter] = None) -> Optional[PackageManager]:
    """
    Try each package manager in order

    Returns:
        The package manager that succeeded, or None when all failed
    """
    for pm in managers:
        if PackageManagerInstaller(pm, reporter).install(dry_run=dry_run):
            return pm
    return None
