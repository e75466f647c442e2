#!/usr/bin/env python3
"""
Liquibase Installer PATH Setup & Verification
Makes the launcher reachable from new shells and checks that it runs
"""

import os
import re
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from liquibase_installer import PRODUCT_NAME
from liquibase_installer.errors import VerificationFailedError
from liquibase_installer.output import Reporter, get_reporter

PATH_MARKER = "# Added by Liquibase installer"

# Startup files in order of preference; the first one that exists is updated
SHELL_STARTUP_FILES = ('.bashrc', '.bash_profile', '.zshrc', '.profile')

VERSION_LINE = re.compile(r'Liquibase Version:\s*(\S+)', re.IGNORECASE)
SEMVER = re.compile(r'\b(\d+\.\d+\.\d+(?:-[\w.-]+)?)\b', re.ASCII)


def is_in_path(directory: Path, path_value: Optional[str] = None) -> bool:
    """Check if directory is in PATH"""
    path_value = os.environ.get('PATH', '') if path_value is None else path_value
    wanted = os.path.normpath(str(directory))
    return any(os.path.normpath(entry) == wanted
               for entry in path_value.split(os.pathsep) if entry)


def find_shell_profile(home: Optional[Path] = None) -> Optional[Path]:
    """First existing shell startup file, or None"""
    home = home or Path.home()
    for name in SHELL_STARTUP_FILES:
        candidate = home / name
        if candidate.is_file():
            return candidate
    return None


def export_line(directory: Path) -> str:
    return f'export PATH="{directory}:$PATH"'


def ensure_on_path(directory: Path, dry_run: bool = False, home: Optional[Path] = None,
                   reporter: Optional[Reporter] = None) -> Optional[Path]:
    """
    Persist directory on PATH through the user's shell startup file

    The running process's PATH is not changed; a new shell (or sourcing the
    file) is needed to pick the change up.

    Args:
        directory: Directory to add (the install prefix's bin)
        dry_run: Only report what would change
        home: Home directory (default: Path.home())

    Returns:
        The startup file that was (or would be) updated, or None
    """
    reporter = reporter or get_reporter()
    if is_in_path(directory):
        reporter.verbose(f"{directory} is already in PATH")
        return None

    profile = find_shell_profile(home)
    if profile is None:
        reporter.warn("Could not determine shell profile to update")
        reporter.info(f"Please manually add {directory} to your PATH:")
        reporter.info(f"  {export_line(directory)}")
        return None

    line = export_line(directory)
    try:
        content = profile.read_text(errors='replace')
        if line in content.splitlines():
            reporter.verbose(f"PATH already contains {directory} in {profile}")
            return profile

        if dry_run:
            reporter.info(f"[DRY RUN] Would add {directory} to PATH in {profile}")
            return profile

        reporter.info(f"Adding {directory} to PATH...")
        with open(profile, 'a') as f:
            if content and not content.endswith('\n'):
                f.write('\n')
            f.write(f'\n{PATH_MARKER}\n')
            f.write(f'{line}\n')
    except OSError as e:
        reporter.warn(f"Could not update {profile}: {e}")
        reporter.info(f"Please manually add {directory} to your PATH:")
        reporter.info(f"  {line}")
        return None

    reporter.info(f"Added {directory} to PATH in {profile}")
    reporter.info(f"Run 'source {profile}' or start a new terminal session")
    return profile


def parse_version_output(output: str) -> Optional[str]:
    """
    Extract the version from `liquibase --version` output

    Prefers the "Liquibase Version: X" line, then the first semantic version,
    then the first non-empty line.
    """
    match = VERSION_LINE.search(output)
    if match:
        return match.group(1)
    match = SEMVER.search(output)
    if match:
        return match.group(1)
    for line in output.splitlines():
        if line.strip():
            return line.strip()
    return None


def _run_version(executable: str, timeout: float) -> Optional[str]:
    try:
        result = subprocess.run(
            [executable, '--version'],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            shell=False
        )
    except (subprocess.SubprocessError, OSError):
        return None
    if result.returncode != 0:
        return None
    return parse_version_output(result.stdout or result.stderr)


def verification_candidates(bin_link: Optional[Path] = None) -> List[str]:
    """Executables to probe: PATH lookup, the fresh launcher, then well-known locations"""
    candidates: List[str] = []
    on_path = shutil.which(PRODUCT_NAME)
    if on_path:
        candidates.append(on_path)
    for path in (bin_link, Path('/usr/local/bin') / PRODUCT_NAME,
                 Path.home() / '.local' / 'bin' / PRODUCT_NAME):
        if path is not None and str(path) not in candidates and path.exists():
            candidates.append(str(path))
    return candidates


def verify_installation(bin_link: Optional[Path] = None, timeout: float = 120.0,
                        reporter: Optional[Reporter] = None) -> str:
    """
    Run the installed launcher with --version

    Returns:
        Version string reported by the launcher

    Raises:
        VerificationFailedError: no candidate executable responded
    """
    reporter = reporter or get_reporter()
    reporter.info("Verifying installation...")

    for candidate in verification_candidates(bin_link):
        reporter.verbose(f"Running {candidate} --version")
        version = _run_version(candidate, timeout)
        if version:
            reporter.success(f"Version: {version}")
            return version
        reporter.verbose(f"{candidate} did not respond")

    raise VerificationFailedError(
        f"{PRODUCT_NAME} command not found or not working",
        hint="Liquibase needs a Java runtime; check `java -version`, then restart your "
             "terminal or run 'source ~/.bashrc'",
    )


def main():
    """Add the Liquibase launcher directory to the shell startup file"""
    reporter = get_reporter()
    for directory in (Path('/usr/local/bin'), Path.home() / '.local' / 'bin'):
        if (directory / PRODUCT_NAME).exists():
            break
    else:
        reporter.error("Could not find a Liquibase installation")
        reporter.info("Install it first: liquibase-install latest")
        sys.exit(1)

    reporter.success(f"Found Liquibase at: {directory}")
    if is_in_path(directory):
        reporter.success(f"{directory} is already in PATH")
        sys.exit(0)

    if ensure_on_path(directory, reporter=reporter) is None:
        sys.exit(1)


if __name__ == '__main__':
    main()
