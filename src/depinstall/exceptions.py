"""Installation exceptions.

Every failure raised by this package is an InstallationError carrying a
human-readable message and a context dict (paths, URLs, captured stderr).
"""


class InstallationError(Exception):
    """Base exception for installation operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (paths, URLs, stderr)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationError(InstallationError):
    """Invalid setup: unknown installer/downloader type, vendor dir outside the project."""


class InstallPathConflictError(InstallationError):
    """Target install path already contains files."""


class PackageNotInstalledError(InstallationError):
    """Package expected in the repository is not there."""


class RepositoryError(InstallationError):
    """Repository backing store could not be read or written."""


class ExtractionError(InstallationError):
    """Downloaded archive could not be extracted."""


class ProcessTimeoutError(InstallationError):
    """External command exceeded the executor timeout."""


class TransportError(InstallationError):
    """Package contents could not be transferred."""


class ChecksumMismatchError(TransportError):
    """Downloaded artifact does not match the declared checksum."""


class AuthenticationRequiredError(TransportError):
    """Remote resource requires credentials that could not be obtained."""


class DownloadNotFoundError(TransportError):
    """Remote resource does not exist."""


class VcsCommandError(TransportError):
    """VCS command failed (after exhausting protocol fallback)."""


class LocalChangesError(TransportError):
    """Working copy has uncommitted changes that an update would discard."""
