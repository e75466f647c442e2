#!/usr/bin/env python3
"""
Liquibase Installer Artifact Installation
Downloads, verifies and extracts a release archive, then places the payload
under the install prefix with a launcher on the command search path
"""

import hashlib
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, Tuple

import requests
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)

from liquibase_installer import PRODUCT_NAME, __version__
from liquibase_installer.errors import (
    ChecksumMismatchError,
    DownloadError,
    ExtractionError,
    InstallWriteError,
    PayloadNotFoundError,
)
from liquibase_installer.output import Reporter, get_reporter
from liquibase_installer.platform.detector import OSType
from liquibase_installer.release import Edition, ResolvedRelease


SYSTEM_PREFIX = Path('/usr/local')
CHUNK_SIZE = 64 * 1024

# Depth of one nesting level below the extraction root
PAYLOAD_SEARCH_DEPTH = 2

# Jars sit in internal/lib below the payload root
JAR_SEARCH_DEPTH = 3

INSTALL_WRITE_HINT = (
    "Retry with elevated privileges (sudo) or install to a user-scoped location "
    "with --prefix ~/.local"
)


@dataclass(frozen=True)
class InstallTarget:
    """Where the payload and launcher are placed"""
    prefix: Path
    lib_dir: Path
    bin_link: Path

    @classmethod
    def for_prefix(cls, prefix: Path) -> 'InstallTarget':
        prefix = Path(prefix).expanduser()
        return cls(
            prefix=prefix,
            lib_dir=prefix / 'lib' / PRODUCT_NAME,
            bin_link=prefix / 'bin' / PRODUCT_NAME,
        )

    @property
    def bin_dir(self) -> Path:
        return self.bin_link.parent


def user_prefix() -> Path:
    return Path.home() / '.local'


def can_write_system_prefix() -> bool:
    """True when /usr/local/bin is writable or we run as root"""
    if hasattr(os, 'geteuid') and os.geteuid() == 0:
        return True
    return os.access(SYSTEM_PREFIX / 'bin', os.W_OK)


def install_target(prefix: Optional[Path] = None) -> InstallTarget:
    """
    Choose the install target

    Args:
        prefix: Explicit prefix; when None, /usr/local if writable else ~/.local

    Returns:
        InstallTarget for the chosen prefix
    """
    if prefix is not None:
        return InstallTarget.for_prefix(prefix)
    if can_write_system_prefix():
        return InstallTarget.for_prefix(SYSTEM_PREFIX)
    return InstallTarget.for_prefix(user_prefix())


def executable_names(os_type: OSType = OSType.LINUX) -> Tuple[str, ...]:
    if os_type == OSType.WINDOWS:
        return (PRODUCT_NAME, f"{PRODUCT_NAME}.bat")
    return (PRODUCT_NAME,)


# ---------------------------------------------------------------------------
# Download and checksum
# ---------------------------------------------------------------------------

def _progress(reporter: Reporter) -> Progress:
    return Progress(
        TextColumn("[blue]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=reporter.err_console,
        disable=not reporter.err_console.is_terminal,
        transient=True,
    )


def _content_length(response) -> Optional[int]:
    try:
        return int(response.headers.get('content-length') or 0) or None
    except (TypeError, ValueError):
        return None


def download_archive(url: str, dest: Path, session: Optional[requests.Session] = None,
                     timeout: float = 60.0, expected_size: Optional[int] = None,
                     reporter: Optional[Reporter] = None) -> Path:
    """
    Stream a file to dest

    Args:
        url: Archive URL
        dest: Output file
        session: HTTP session (default: new requests.Session)
        timeout: Connect/read timeout in seconds
        expected_size: Size published by the release index, if any

    Returns:
        dest

    Raises:
        DownloadError: on any transport failure or size mismatch
    """
    reporter = reporter or get_reporter()
    session = session or requests.Session()
    headers = {'User-Agent': f"liquibase-installer/{__version__}"}

    reporter.verbose(f"Downloading: {url}")
    try:
        with session.get(url, stream=True, timeout=timeout, headers=headers) as response:
            response.raise_for_status()
            total = _content_length(response) or expected_size
            with open(dest, 'wb') as f, _progress(reporter) as progress:
                task = progress.add_task(dest.name, total=total)
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        progress.advance(task, len(chunk))
    except requests.RequestException as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {dest.name}: {e}") from e
    except OSError as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(f"Failed to write {dest}: {e}") from e

    actual_size = dest.stat().st_size
    if expected_size is not None and actual_size != expected_size:
        dest.unlink(missing_ok=True)
        raise DownloadError(
            f"Downloaded {dest.name} is {actual_size} bytes, expected {expected_size}",
            hint="The download was truncated; retry the installation",
        )

    reporter.verbose(f"Downloaded {actual_size} bytes to {dest}")
    return dest


def sha256sum(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for block in iter(lambda: f.read(CHUNK_SIZE), b''):
            digest.update(block)
    return digest.hexdigest()


def verify_checksum(path: Path, expected: Optional[str], reporter: Optional[Reporter] = None) -> bool:
    """
    Verify the SHA-256 of a downloaded file

    Returns:
        True if verified, False if no checksum was supplied

    Raises:
        ChecksumMismatchError: digest differs (the file is deleted)
    """
    reporter = reporter or get_reporter()
    if not expected:
        reporter.warn("No checksum provided, skipping verification")
        return False

    reporter.verbose("Verifying checksum...")
    actual = sha256sum(path)
    if actual.lower() != expected.strip().lower():
        path.unlink(missing_ok=True)
        raise ChecksumMismatchError(
            f"Checksum verification failed for {path.name}\n"
            f"Expected: {expected.strip()}\nActual: {actual}"
        )

    reporter.verbose("Checksum verified successfully")
    return True


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _is_within(base: Path, target: Path) -> bool:
    try:
        target.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def extract_archive(archive: Path, dest: Path) -> Path:
    """
    Extract a .tar.gz or .zip archive into dest

    Raises:
        ExtractionError: unreadable archive or a member escaping dest
    """
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if archive.name.endswith('.zip'):
            with zipfile.ZipFile(archive) as zf:
                for name in zf.namelist():
                    if not _is_within(dest, dest / name):
                        raise ExtractionError(f"Refusing to extract {name} outside {dest}")
                zf.extractall(dest)
        else:
            with tarfile.open(archive, 'r:*') as tf:
                for member in tf.getmembers():
                    if not _is_within(dest, dest / member.name):
                        raise ExtractionError(f"Refusing to extract {member.name} outside {dest}")
                if hasattr(tarfile, 'data_filter'):
                    tf.extractall(dest, filter='data')
                else:
                    tf.extractall(dest)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise ExtractionError(f"Failed to extract {archive.name}: {e}") from e
    return dest


# ---------------------------------------------------------------------------
# Payload discovery
# ---------------------------------------------------------------------------

def _walk(root: Path, max_depth: int) -> Iterator[Path]:
    """Yield entries below root breadth-first, sorted by name, up to max_depth"""
    level = [root]
    for _ in range(max_depth):
        next_level = []
        for directory in level:
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError:
                continue
            for entry in entries:
                yield entry
                if entry.is_dir() and not entry.is_symlink():
                    next_level.append(entry)
        level = next_level


def find_by_executable(root: Path, os_type: OSType = OSType.LINUX) -> Optional[Path]:
    """Directory holding a file named like the product executable"""
    names = executable_names(os_type)
    for entry in _walk(root, PAYLOAD_SEARCH_DEPTH):
        if entry.name in names and entry.is_file():
            return entry.parent
    return None


def find_by_directory_name(root: Path, os_type: OSType = OSType.LINUX) -> Optional[Path]:
    """Directory whose name contains the product name"""
    for entry in _walk(root, PAYLOAD_SEARCH_DEPTH):
        if entry.is_dir() and PRODUCT_NAME in entry.name.lower():
            return entry
    return None


def find_first_directory(root: Path, os_type: OSType = OSType.LINUX) -> Optional[Path]:
    """First top-level directory of the extracted tree"""
    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            return entry
    return None


# Tried in order; a nested directory that looks right beats a blind guess
PAYLOAD_STRATEGIES: Tuple[Callable[[Path, OSType], Optional[Path]], ...] = (
    find_by_executable,
    find_by_directory_name,
    find_first_directory,
)


def is_valid_payload(candidate: Path) -> bool:
    """A payload holds the launcher script, the batch launcher or at least one jar"""
    if not candidate.is_dir():
        return False
    for name in (PRODUCT_NAME, f"{PRODUCT_NAME}.bat"):
        if (candidate / name).is_file():
            return True
    return any(entry.suffix == '.jar' and entry.is_file()
               for entry in _walk(candidate, JAR_SEARCH_DEPTH))


def locate_payload(extract_dir: Path, os_type: OSType = OSType.LINUX,
                   reporter: Optional[Reporter] = None) -> Path:
    """
    Locate the payload root inside an extracted archive

    Handles flat archives (payload at the top level) and nested archives
    (payload inside a liquibase-X.Y.Z directory).

    Raises:
        PayloadNotFoundError: no strategy produced a valid payload
    """
    reporter = reporter or get_reporter()
    for strategy in PAYLOAD_STRATEGIES:
        candidate = strategy(extract_dir, os_type)
        if candidate is None:
            continue
        reporter.verbose(f"{strategy.__name__} proposed {candidate}")
        if is_valid_payload(candidate):
            reporter.verbose(f"Payload root: {candidate}")
            return candidate
        reporter.verbose(f"Rejected {candidate}: no executable or library files")

    raise PayloadNotFoundError(
        f"Failed to find the extracted {PRODUCT_NAME} directory in {extract_dir}",
        hint="The archive layout is not recognized; report this release to the maintainers",
    )


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------

def _make_executable(path: Path):
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _remove_path(path: Path):
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def copy_payload(payload: Path, target: InstallTarget, reporter: Optional[Reporter] = None) -> Path:
    """
    Replace target.lib_dir with a copy of payload

    Raises:
        InstallWriteError: on permission or filesystem errors
    """
    reporter = reporter or get_reporter()
    try:
        if target.lib_dir.exists() or target.lib_dir.is_symlink():
            reporter.verbose(f"Removing existing installation at {target.lib_dir}")
            _remove_path(target.lib_dir)
        target.lib_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(payload, target.lib_dir, symlinks=True)
    except OSError as e:
        raise InstallWriteError(
            f"Failed to install to {target.lib_dir}: {e}",
            hint=INSTALL_WRITE_HINT,
        ) from e
    return target.lib_dir


def _windows_launchers(target: InstallTarget) -> Tuple[Tuple[Path, str], ...]:
    inner = target.lib_dir / PRODUCT_NAME
    batch = target.lib_dir / f"{PRODUCT_NAME}.bat"
    shell_wrapper = (
        "#!/usr/bin/env bash\n"
        "# Generated by liquibase-installer; runs the real launcher from its own directory\n"
        f"exec \"{inner.as_posix()}\" \"$@\"\n"
    )
    cmd_wrapper = (
        "@echo off\r\n"
        "rem Generated by liquibase-installer\r\n"
        f"\"{batch}\" %*\r\n"
    )
    return (
        (target.bin_link, shell_wrapper),
        (target.bin_link.with_name(f"{PRODUCT_NAME}.cmd"), cmd_wrapper),
    )


def create_launcher(target: InstallTarget, os_type: OSType = OSType.LINUX,
                    reporter: Optional[Reporter] = None) -> Path:
    """
    Create the launcher at target.bin_link, replacing whatever is there

    Unix targets get a symlink. Windows shells resolve symlink-relative paths
    differently, so they get wrapper scripts that call the real launcher by
    its absolute path instead.

    Raises:
        InstallWriteError: on permission or filesystem errors
    """
    reporter = reporter or get_reporter()
    inner = target.lib_dir / PRODUCT_NAME
    try:
        target.bin_dir.mkdir(parents=True, exist_ok=True)
        if os_type == OSType.WINDOWS:
            for path, content in _windows_launchers(target):
                _remove_path(path)
                path.write_text(content)
                _make_executable(path)
                reporter.verbose(f"Wrote launcher {path}")
        else:
            _remove_path(target.bin_link)
            target.bin_link.symlink_to(inner)
            reporter.verbose(f"Linked {target.bin_link} -> {inner}")

        for name in executable_names(os_type):
            if (target.lib_dir / name).is_file():
                _make_executable(target.lib_dir / name)
        if target.bin_link.exists():
            _make_executable(target.bin_link)
    except OSError as e:
        raise InstallWriteError(
            f"Failed to create launcher at {target.bin_link}: {e}",
            hint=INSTALL_WRITE_HINT,
        ) from e
    return target.bin_link


def install_artifact(release: ResolvedRelease, target: InstallTarget,
                     os_type: OSType = OSType.LINUX, checksum: Optional[str] = None,
                     expected_size: Optional[int] = None, timeout: float = 60.0,
                     session: Optional[requests.Session] = None,
                     reporter: Optional[Reporter] = None) -> Path:
    """
    Download, verify, extract and install a release

    Args:
        release: Resolved release (concrete version)
        target: Install target
        os_type: Target OS (chooses launcher style)
        checksum: Optional expected SHA-256 of the archive
        expected_size: Optional archive size from the release index
        timeout: HTTP timeout in seconds
        session: HTTP session

    Returns:
        The launcher path

    Raises:
        DownloadError, ChecksumMismatchError, ExtractionError,
        PayloadNotFoundError, InstallWriteError
    """
    reporter = reporter or get_reporter()
    scratch = Path(tempfile.mkdtemp(prefix='liquibase-install-'))
    reporter.verbose(f"Using temporary directory {scratch}")
    try:
        archive = scratch / release.archive_name
        try:
            download_archive(release.download_url, archive, session=session, timeout=timeout,
                             expected_size=expected_size, reporter=reporter)
        except DownloadError as e:
            if release.edition == Edition.SECURE and e.hint is None:
                e.hint = (f"Check that {release.edition.value} version {release.version} exists "
                          "and that you have access to the secure repository")
            raise

        verify_checksum(archive, checksum, reporter)

        extract_dir = extract_archive(archive, scratch / 'extract')
        payload = locate_payload(extract_dir, os_type, reporter)

        reporter.info(f"Installing to {target.prefix}...")
        copy_payload(payload, target, reporter)
        launcher = create_launcher(target, os_type, reporter)
    finally:
        shutil.rmtree(scratch, ignore_errors=True)

    reporter.success(f"Liquibase installed to {target.lib_dir}")
    return launcher
