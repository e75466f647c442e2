#!/usr/bin/env python3
"""
Liquibase Installer Pipeline
Runs the four installer stages in order:
platform detection -> release resolution -> artifact installation -> environment setup
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from liquibase_installer.artifact import InstallTarget, install_artifact, install_target
from liquibase_installer.config import InstallerConfig
from liquibase_installer.output import Reporter, get_reporter
from liquibase_installer.platform.detector import PlatformDetector, PlatformTag
from liquibase_installer.platform.installers import install_via_package_managers
from liquibase_installer.release import (
    Edition,
    ReleaseIndex,
    ResolvedRelease,
    find_asset,
    resolve_release,
    resolve_version,
)
from liquibase_installer.setup_path import ensure_on_path, verify_installation


@dataclass
class InstallResult:
    """Outcome of an installer run"""
    platform: PlatformTag
    release: ResolvedRelease
    target: InstallTarget
    method: str                               # 'direct' or a package manager name
    dry_run: bool = False
    installed_version: Optional[str] = None
    profile_updated: Optional[Path] = None


def _expected_size(index: ReleaseIndex, release: ResolvedRelease,
                   reporter: Reporter) -> Optional[int]:
    """Archive size published in the release index (oss only)"""
    if release.edition != Edition.OSS:
        return None
    entry = index.release_for_version(release.version)
    asset = find_asset(entry, release.archive_name) if entry else None
    if asset is None:
        reporter.verbose(f"{release.archive_name} not listed in release assets")
        return None
    reporter.verbose(f"Release index lists {asset.name} ({asset.size} bytes)")
    return asset.size


def run_install(config: InstallerConfig, session: Optional[requests.Session] = None,
                system: Optional[str] = None, machine: Optional[str] = None,
                reporter: Optional[Reporter] = None) -> InstallResult:
    """
    Run a complete installation

    Args:
        config: Run configuration
        session: HTTP session shared by the release index and the download
        system: Kernel name override for platform detection
        machine: Machine type override for platform detection

    Returns:
        InstallResult describing what was (or would be) installed

    Raises:
        InstallerError: any stage failure; nothing is retried
    """
    reporter = reporter or get_reporter()
    session = session or requests.Session()

    reporter.verbose(f"Version argument: {config.version_selector}")
    reporter.verbose(f"Edition: {config.edition.value}")
    reporter.verbose(f"Verbose: {config.verbose}")
    reporter.verbose(f"Dry run: {config.dry_run}")

    detector = PlatformDetector(reporter)
    tag = detector.detect(system, machine)

    index = ReleaseIndex(config.github_api_url, token=config.github_token,
                         timeout=config.timeout, session=session, reporter=reporter)
    version = resolve_version(config.version_selector, config.edition, index, reporter)
    release = resolve_release(version, config.edition, tag.os,
                              config.github_download_url, config.secure_repo_url)
    target = install_target(config.prefix)

    reporter.info(f"Installing Liquibase {config.edition.value} version: {version}")
    reporter.verbose(f"Archive: {release.archive_name}")
    reporter.verbose(f"Download URL: {release.download_url}")
    reporter.verbose(f"Install prefix: {target.prefix}")

    result = InstallResult(platform=tag, release=release, target=target,
                           method='direct', dry_run=config.dry_run)

    if config.use_package_manager:
        if config.edition == Edition.SECURE:
            reporter.warn("Package managers only carry the oss edition, using direct download")
        else:
            managers = detector.detect_package_managers(tag.os)
            used = install_via_package_managers(managers, dry_run=config.dry_run, reporter=reporter)
            if used is not None:
                result.method = used.value
                if config.dry_run:
                    reporter.info(f"[DRY RUN] Would download: {release.download_url} "
                                  f"(if {used.value} fails)")
                elif config.verify:
                    result.installed_version = verify_installation(timeout=config.timeout,
                                                                   reporter=reporter)
                return result
            if managers:
                reporter.info("Falling back to direct download...")

    if config.dry_run:
        reporter.info(f"[DRY RUN] Would download: {release.download_url}")
        reporter.info(f"[DRY RUN] Would install to: {target.lib_dir}")
        reporter.info(f"[DRY RUN] Would link: {target.bin_link}")
        if config.update_path:
            result.profile_updated = ensure_on_path(target.bin_dir, dry_run=True, reporter=reporter)
        reporter.info("[DRY RUN] Would verify installation with: liquibase --version")
        return result

    reporter.info(f"Installing Liquibase {version} via direct download...")
    install_artifact(
        release,
        target,
        os_type=tag.os,
        checksum=config.checksum,
        expected_size=_expected_size(index, release, reporter),
        timeout=config.timeout,
        session=session,
        reporter=reporter,
    )

    if config.update_path:
        result.profile_updated = ensure_on_path(target.bin_dir, reporter=reporter)

    if config.verify:
        result.installed_version = verify_installation(target.bin_link, timeout=config.timeout,
                                                       reporter=reporter)
    return result
