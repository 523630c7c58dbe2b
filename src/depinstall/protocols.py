"""Capability protocols for installers, downloaders and repositories.

The InstallationManager and DownloadManager only rely on these interfaces.
Any implementation (including plugin-provided installers) can be registered.
"""

from pathlib import Path
from typing import Literal
from typing import Protocol
from typing import runtime_checkable

from .package import Package


@runtime_checkable
class WritableRepositoryProtocol(Protocol):
    """Repository that installers update after a successful filesystem change."""

    def has_package(self, package: Package) -> bool: ...

    def add_package(self, package: Package) -> None: ...

    def remove_package(self, package: Package) -> None: ...

    def get_packages(self) -> list[Package]: ...


@runtime_checkable
class DownloaderProtocol(Protocol):
    """Transfers package contents into a target path.

    Example implementations:
    - FileDownloader / ZipDownloader / TarDownloader: dist artifacts
    - GitDownloader / HgDownloader / SvnDownloader: source checkouts
    """

    @property
    def installation_source(self) -> Literal["dist", "source"]: ...

    def download(self, package: Package, path: Path) -> None:
        """Materialize package contents into path.

        Raises:
            InstallationError: If the transfer fails (path is cleaned up first)
        """
        ...

    def update(self, initial: Package, target: Package, path: Path) -> None:
        """Move the contents of path from initial to target."""
        ...

    def remove(self, package: Package, path: Path) -> None:
        """Delete the package contents at path."""
        ...


@runtime_checkable
class InstallerProtocol(Protocol):
    """Installs one family of package types and records it in a repository."""

    def supports(self, package_type: str) -> bool: ...

    def is_installed(self, repo: WritableRepositoryProtocol, package: Package) -> bool: ...

    def install(self, repo: WritableRepositoryProtocol, package: Package) -> None: ...

    def update(self, repo: WritableRepositoryProtocol, initial: Package, target: Package) -> None: ...

    def uninstall(self, repo: WritableRepositoryProtocol, package: Package) -> None: ...

    def get_install_path(self, package: Package) -> Path | None: ...
