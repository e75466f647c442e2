#!/usr/bin/env python3
"""
Liquibase Installer Errors
Every failure that ends an installer run
"""

from typing import Optional


class InstallerError(Exception):
    """
    Base class for installer failures.

    All installer errors are terminal for the run; nothing is retried.
    The optional hint is printed below the error message as remediation text.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class UnknownArgumentError(InstallerError):
    """Command-line token that is neither a version selector nor an edition"""


class UnsupportedPlatformError(InstallerError):
    """Operating system other than macOS, Linux or Windows"""


class InvalidVersionFormatError(InstallerError):
    """Version string that is not X.Y.Z[-suffix]"""


class VersionNotFoundError(InstallerError):
    """Version absent from the release index"""


class NetworkError(InstallerError):
    """Release index unreachable or refusing requests"""


class ReleaseParseError(InstallerError):
    """Release index response without a usable tag_name"""


class DownloadError(InstallerError):
    """Archive download failed or was truncated"""


class ChecksumMismatchError(InstallerError):
    pass


class ExtractionError(InstallerError):
    pass


class PayloadNotFoundError(InstallerError):
    """Extracted archive without a recognizable Liquibase directory"""


class InstallWriteError(InstallerError):
    """Install prefix not writable"""


class VerificationFailedError(InstallerError):
    """Installed launcher missing or not responding to --version"""
