"""Installation manager: routes operations to the installer for each package type."""

import logging
import os
from collections.abc import Callable
from enum import StrEnum
from pathlib import Path

from .exceptions import ConfigurationError
from .filesystem import Filesystem
from .operations import InstallOperation
from .operations import Operation
from .operations import UninstallOperation
from .operations import UpdateOperation
from .package import AliasPackage
from .package import Package
from .package import unwrap_alias
from .protocols import InstallerProtocol
from .protocols import WritableRepositoryProtocol

logger = logging.getLogger(__name__)


class PackageEvents(StrEnum):
    """Notifications sent around each operation."""

    PRE_PACKAGE_INSTALL = "pre-package-install"
    POST_PACKAGE_INSTALL = "post-package-install"
    PRE_PACKAGE_UPDATE = "pre-package-update"
    POST_PACKAGE_UPDATE = "post-package-update"
    PRE_PACKAGE_UNINSTALL = "pre-package-uninstall"
    POST_PACKAGE_UNINSTALL = "post-package-uninstall"


EventDispatcher = Callable[[str, Operation], None]


class InstallationManager:
    """
    Execute solver operations, one at a time and in the given order.

    Installers are consulted most-recently-registered first; the first one
    supporting a package type handles it, and the answer is memoized until
    another installer is registered.
    """

    def __init__(
        self,
        vendor_dir: str | Path = "vendor",
        event_dispatcher: EventDispatcher | None = None,
        cwd: Path | None = None,
    ):
        """Initialize manager.

        Args:
            vendor_dir: Vendor directory; absolute paths are made relative to cwd
            event_dispatcher: Optional callable receiving (event name, operation)
            cwd: Project directory (defaults to the process working directory)

        Raises:
            ConfigurationError: If an absolute vendor_dir is not reachable from cwd
        """
        self.cwd = cwd or Path.cwd()
        self.event_dispatcher = event_dispatcher
        self._installers: list[InstallerProtocol] = []
        self._cache: dict[str, InstallerProtocol] = {}

        filesystem = Filesystem()
        vendor_dir = str(vendor_dir)
        if filesystem.is_absolute_path(vendor_dir):
            relative_path = filesystem.find_shortest_path(self.cwd / "file", vendor_dir)
            if filesystem.is_absolute_path(relative_path):
                raise ConfigurationError(
                    f"Vendor dir ({vendor_dir}) must be accessible from the directory ({self.cwd}).",
                    context={"vendor_dir": vendor_dir, "cwd": str(self.cwd)},
                )
            self.vendor_path = relative_path
        else:
            self.vendor_path = vendor_dir.rstrip("/") or "."

    def add_installer(self, installer: InstallerProtocol) -> None:
        """Register installer ahead of every installer registered before it."""
        self._installers.insert(0, installer)
        self._cache.clear()

    def get_installer(self, package_type: str) -> InstallerProtocol:
        """
        Installer for a package type (case-insensitive).

        Raises:
            ConfigurationError: If no registered installer supports the type
        """
        package_type = package_type.lower()
        cached = self._cache.get(package_type)
        if cached is not None:
            return cached

        for installer in self._installers:
            if installer.supports(package_type):
                self._cache[package_type] = installer
                return installer

        raise ConfigurationError(
            f"Unknown installer type: {package_type}",
            context={"type": package_type},
        )

    def is_package_installed(self, repo: WritableRepositoryProtocol, package: Package) -> bool:
        return self.get_installer(package.type).is_installed(repo, package)

    def execute(self, repo: WritableRepositoryProtocol, operation: Operation) -> None:
        """
        Execute one operation against the writable repository.

        Pre/post events are dispatched around it; the post event is only
        sent when the operation succeeded.
        """
        method = getattr(self, operation.job_type, None)
        if method is None or not operation.job_type:
            raise ConfigurationError(f"Unknown operation type: {type(operation).__name__}")

        job = operation.job_type
        logger.info(str(operation))
        self._dispatch(f"pre-package-{job}", operation)
        method(repo, operation)
        self._dispatch(f"post-package-{job}", operation)

    def install(self, repo: WritableRepositoryProtocol, operation: InstallOperation) -> None:
        package = self._unwrap(operation.package, mark_alias=True)
        self.get_installer(package.type).install(repo, package)

    def update(self, repo: WritableRepositoryProtocol, operation: UpdateOperation) -> None:
        """
        Update in place when both sides share a type, otherwise reinstall.

        A type change runs the old installer's uninstall and then the new
        installer's install; the two steps are not atomic.
        """
        initial = self._unwrap(operation.initial_package)
        target = self._unwrap(operation.target_package, mark_alias=True)

        if initial.type.lower() == target.type.lower():
            self.get_installer(initial.type).update(repo, initial, target)
            return

        logger.debug(f"Package type changed from {initial.type} to {target.type}, reinstalling {target.name}")
        self.get_installer(initial.type).uninstall(repo, initial)
        self.get_installer(target.type).install(repo, target)

    def uninstall(self, repo: WritableRepositoryProtocol, operation: UninstallOperation) -> None:
        package = self._unwrap(operation.package)
        self.get_installer(package.type).uninstall(repo, package)

    def get_install_path(self, package: Package) -> Path | None:
        return self.get_installer(package.type).get_install_path(package)

    def get_vendor_path(self, absolute: bool = False) -> str:
        if not absolute:
            return self.vendor_path
        return os.path.normpath(self.cwd / self.vendor_path)

    def _unwrap(self, package: Package, mark_alias: bool = False) -> Package:
        if not isinstance(package, AliasPackage):
            return package
        concrete = unwrap_alias(package)
        return concrete.as_installed_alias() if mark_alias else concrete

    def _dispatch(self, event: str, operation: Operation) -> None:
        if self.event_dispatcher is not None:
            self.event_dispatcher(PackageEvents(event), operation)
