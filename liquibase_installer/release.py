#!/usr/bin/env python3
"""
Liquibase Installer Release Resolution
Turns a version selector and edition into a concrete version, archive name
and download URL
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import requests

from liquibase_installer import PRODUCT_NAME, __version__
from liquibase_installer.errors import (
    InvalidVersionFormatError,
    NetworkError,
    ReleaseParseError,
    VersionNotFoundError,
)
from liquibase_installer.output import Reporter, get_reporter
from liquibase_installer.platform.detector import OSType


GITHUB_API_URL = "https://api.github.com/repos/liquibase/liquibase"
GITHUB_DOWNLOAD_URL = "https://github.com/liquibase/liquibase/releases/download"
SECURE_REPO_URL = "https://repo.liquibase.com/releases"

LATEST = "latest"
VERSION_PATTERN = re.compile(r'^\d+\.\d+\.\d+(-[\w.-]+)?$', re.ASCII)

# Secure releases were published as "pro" before the 5.0 rebrand
SECURE_REBRAND_MAJOR = 5


class Edition(Enum):
    """Distributed product variants"""
    OSS = "oss"
    SECURE = "secure"


@dataclass(frozen=True)
class ResolvedRelease:
    """A concrete release ready to download"""
    edition: Edition
    version: str
    archive_name: str
    download_url: str


@dataclass(frozen=True)
class ReleaseAsset:
    """A named download listed in the release index"""
    name: str
    url: str
    size: Optional[int] = None


def is_valid_version(version: str) -> bool:
    """Check X.Y.Z with an optional pre-release suffix (5.0.0-rc1)"""
    return bool(VERSION_PATTERN.match(version))


def validate_version(version: str) -> str:
    """
    Validate an explicit version string

    Raises:
        InvalidVersionFormatError: if the string is not X.Y.Z[-suffix]
    """
    if not is_valid_version(version):
        raise InvalidVersionFormatError(
            f"Invalid version format: {version}",
            hint="Expected format: X.Y.Z (e.g., 4.33.0)",
        )
    return version


def major_version(version: str) -> int:
    return int(validate_version(version).split('.', 1)[0])


def archive_name(version: str, edition: Edition, os_type: OSType = OSType.LINUX) -> str:
    """
    Get the archive filename for a release

    Args:
        version: Concrete version (never 'latest')
        edition: oss or secure
        os_type: Target OS (oss ships a .zip for Windows)

    Returns:
        Filename such as liquibase-4.33.0.tar.gz or liquibase-secure-5.0.0.tar.gz
    """
    if edition == Edition.SECURE:
        family = 'secure' if major_version(version) >= SECURE_REBRAND_MAJOR else 'pro'
        return f"{PRODUCT_NAME}-{family}-{version}.tar.gz"

    validate_version(version)
    extension = 'zip' if os_type == OSType.WINDOWS else 'tar.gz'
    return f"{PRODUCT_NAME}-{version}.{extension}"


def download_url(version: str, edition: Edition, os_type: OSType = OSType.LINUX,
                 github_download_url: str = GITHUB_DOWNLOAD_URL,
                 secure_repo_url: str = SECURE_REPO_URL) -> str:
    """
    Get the download URL for a release

    oss releases come from GitHub under tag v<version>; secure releases come
    from the private repository under /secure/<version>/ (or /pro/<version>/
    before 5.0).
    """
    filename = archive_name(version, edition, os_type)
    if edition == Edition.SECURE:
        family = 'secure' if major_version(version) >= SECURE_REBRAND_MAJOR else 'pro'
        return f"{secure_repo_url.rstrip('/')}/{family}/{version}/{filename}"
    return f"{github_download_url.rstrip('/')}/v{version}/{filename}"


def resolve_release(version: str, edition: Edition, os_type: OSType = OSType.LINUX,
                    github_download_url: str = GITHUB_DOWNLOAD_URL,
                    secure_repo_url: str = SECURE_REPO_URL) -> ResolvedRelease:
    """Build the ResolvedRelease for a concrete version"""
    if version == LATEST:
        raise InvalidVersionFormatError(
            "'latest' must be resolved to a concrete version before building a release"
        )
    return ResolvedRelease(
        edition=edition,
        version=version,
        archive_name=archive_name(version, edition, os_type),
        download_url=download_url(version, edition, os_type, github_download_url, secure_repo_url),
    )


def find_asset(release: Dict[str, Any], name: str) -> Optional[ReleaseAsset]:
    """
    Find a named asset in a release index entry

    Returns:
        ReleaseAsset with browser_download_url and size, or None
    """
    for asset in release.get('assets') or []:
        if asset.get('name') == name and asset.get('browser_download_url'):
            size = asset.get('size')
            return ReleaseAsset(
                name=name,
                url=asset['browser_download_url'],
                size=int(size) if isinstance(size, int) else None,
            )
    return None


class ReleaseIndex:
    """
    Client for the GitHub releases API of the upstream project
    """

    def __init__(self, api_url: str = GITHUB_API_URL, token: Optional[str] = None,
                 timeout: float = 60.0, session: Optional[requests.Session] = None,
                 reporter: Optional[Reporter] = None):
        self.api_url = api_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.reporter = reporter or get_reporter()
        self._releases: Dict[str, Dict[str, Any]] = {}

    def _headers(self) -> Dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github+json',
            'User-Agent': f"liquibase-installer/{__version__}",
        }
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _get(self, path: str) -> requests.Response:
        url = f"{self.api_url}/{path}"
        self.reporter.verbose(f"Querying release index: {url}")
        try:
            return self.session.get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(
                f"Failed to reach release index at {url}: {e}",
                hint="Check your network connection and retry",
            ) from e

    def _decode(self, response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ReleaseParseError(f"Release index returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ReleaseParseError("Release index returned an unexpected document")
        return data

    def _check_status(self, response: requests.Response):
        if response.status_code in (403, 429):
            raise NetworkError(
                f"Release index refused the request (HTTP {response.status_code})",
                hint="The GitHub API rate limit may be exhausted; set GITHUB_TOKEN and retry",
            )
        if response.status_code >= 400:
            raise NetworkError(f"Release index returned HTTP {response.status_code}")

    def latest_release(self) -> Dict[str, Any]:
        response = self._get("releases/latest")
        self._check_status(response)
        return self._decode(response)

    def release_for_version(self, version: str) -> Optional[Dict[str, Any]]:
        """
        Get the release entry for tag v<version>

        Returns:
            Release JSON, or None if the tag does not exist
        """
        if version in self._releases:
            return self._releases[version]

        response = self._get(f"releases/tags/v{version}")
        if response.status_code == 404:
            return None
        self._check_status(response)
        release = self._decode(response)
        self._releases[version] = release
        return release

    def latest_version(self) -> str:
        """
        Resolve the most recent release to a concrete version

        Raises:
            NetworkError: index unreachable
            ReleaseParseError: tag_name missing or null
        """
        release = self.latest_release()
        tag = release.get('tag_name')
        if not isinstance(tag, str) or not tag.strip() or tag.strip() == 'null':
            raise ReleaseParseError("Failed to parse version from release index response")

        version = tag.strip()
        if version.startswith('v'):
            version = version[1:]
        if not is_valid_version(version):
            raise ReleaseParseError(f"Release index returned an unrecognized tag: {tag}")
        self._releases[version] = release
        self.reporter.verbose(f"Latest version: {version}")
        return version


def resolve_version(selector: str, edition: Edition, index: ReleaseIndex,
                    reporter: Optional[Reporter] = None) -> str:
    """
    Resolve a version selector to a concrete version

    Args:
        selector: 'latest' or X.Y.Z[-suffix]
        edition: oss or secure
        index: Release index client

    Returns:
        Concrete version string

    Raises:
        InvalidVersionFormatError, VersionNotFoundError, NetworkError, ReleaseParseError
    """
    reporter = reporter or get_reporter()

    if selector == LATEST:
        reporter.verbose("Fetching latest version from release index...")
        return index.latest_version()

    version = validate_version(selector)
    if edition == Edition.SECURE:
        # The secure repository requires credentials; the download step is the existence check
        reporter.verbose(f"Skipping release index check for secure version {version}")
        return version

    reporter.verbose(f"Validating version {version} exists...")
    if index.release_for_version(version) is None:
        raise VersionNotFoundError(
            f"Version {version} not found in GitHub releases",
            hint="See https://github.com/liquibase/liquibase/releases for available versions",
        )
    reporter.verbose(f"Version {version} validated successfully")
    return version
