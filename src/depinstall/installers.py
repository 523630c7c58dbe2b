"""Package installers.

An installer owns the on-disk footprint of the package types it supports and
records every successful change in the writable repository it is given.
The repository is only touched after the filesystem step succeeded, so a
failed operation leaves it unchanged.
"""

import importlib.machinery
import importlib.util
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from .console import ConsoleIO
from .console import NullIO
from .downloaders.manager import DownloadManager
from .exceptions import ConfigurationError
from .exceptions import PackageNotInstalledError
from .package import Package
from .protocols import WritableRepositoryProtocol

if TYPE_CHECKING:
    from .manager import InstallationManager

logger = logging.getLogger(__name__)


def _installed_copy(repo: WritableRepositoryProtocol, package: Package) -> Package:
    """The repository's record for package (carries the installation source)."""
    for installed in repo.get_packages():
        if installed.identity == package.identity:
            return installed
    return package


class LibraryInstaller:
    """
    Installs packages into ``<vendor>/<name>`` and links their binaries.

    Per-type subclasses or plugins reuse it by passing another ``package_type``.
    """

    def __init__(
        self,
        vendor_dir: str | Path,
        bin_dir: str | Path,
        download_manager: DownloadManager,
        io: ConsoleIO | None = None,
        package_type: str | None = "library",
    ):
        """Initialize installer.

        Args:
            vendor_dir: Directory packages are installed under
            bin_dir: Directory receiving binary symlinks
            download_manager: Transfers package contents
            io: Console IO (non-interactive if omitted)
            package_type: Supported type, None to support every type
        """
        self.vendor_dir = Path(vendor_dir)
        self.bin_dir = Path(bin_dir)
        self.download_manager = download_manager
        self.io = io or NullIO()
        self.package_type = package_type

    def supports(self, package_type: str) -> bool:
        return self.package_type is None or package_type == self.package_type

    def is_installed(self, repo: WritableRepositoryProtocol, package: Package) -> bool:
        return repo.has_package(package) and self.get_install_path(package).is_dir()

    def install(self, repo: WritableRepositoryProtocol, package: Package) -> None:
        path = self.get_install_path(package)

        # files gone but still registered: drop stale links first
        if not path.exists() and repo.has_package(package):
            self._remove_binaries(package)

        installed = self.download_manager.download(package, path)
        self._install_binaries(installed)
        repo.add_package(installed)

    def update(self, repo: WritableRepositoryProtocol, initial: Package, target: Package) -> None:
        """
        Update initial to target in place.

        Raises:
            PackageNotInstalledError: If initial is not in the repository
        """
        if not repo.has_package(initial):
            raise PackageNotInstalledError(
                f"Package is not installed: {initial}",
                context={"package": initial.name, "version": initial.version},
            )

        initial = _installed_copy(repo, initial)
        path = self.get_install_path(initial)

        self._remove_binaries(initial)
        try:
            updated = self.download_manager.update(initial, target, path)
        except Exception:
            # still registered as initial: restore its links if its files survived
            self._install_binaries(initial)
            raise
        self._install_binaries(updated)

        repo.remove_package(initial)
        repo.add_package(updated)

    def uninstall(self, repo: WritableRepositoryProtocol, package: Package) -> None:
        """
        Remove package files, binaries and repository entry.

        Raises:
            PackageNotInstalledError: If package is not in the repository
        """
        if not repo.has_package(package):
            raise PackageNotInstalledError(
                f"Package is not installed: {package}",
                context={"package": package.name, "version": package.version},
            )

        package = _installed_copy(repo, package)
        self.download_manager.remove(package, self.get_install_path(package))
        self._remove_binaries(package)
        repo.remove_package(package)

    def get_install_path(self, package: Package) -> Path:
        path = self.vendor_dir / package.name
        if package.target_dir:
            path = path / package.target_dir
        return path

    def _install_binaries(self, package: Package) -> None:
        if not package.binaries:
            return

        self.bin_dir.mkdir(parents=True, exist_ok=True)
        package_path = self.get_install_path(package)
        for binary in package.binaries:
            source = package_path / binary
            if not source.exists():
                logger.warning(f"Skipped installation of {binary} for package {package.name}: file not found in package")
                continue

            link = self.bin_dir / Path(binary).name
            if link.exists() or link.is_symlink():
                logger.warning(
                    f"Skipped installation of {binary} for package {package.name}: name conflicts with an existing file"
                )
                continue

            link.symlink_to(os.path.relpath(source.absolute(), self.bin_dir.absolute()))
            source.chmod(source.stat().st_mode | 0o111)
            logger.debug(f"Linked {link} -> {source}")

    def _remove_binaries(self, package: Package) -> None:
        for binary in package.binaries:
            link = self.bin_dir / Path(binary).name
            if link.is_symlink():
                link.unlink()


class PluginInstaller(LibraryInstaller):
    """
    Installs plugin packages and registers the installers they provide.

    A plugin names its installer class in ``extra["class"]`` as
    ``"module:ClassName"`` (or a list of them); ``module`` is a top-level
    module inside the package directory. The class is instantiated with the
    same keyword arguments as LibraryInstaller (minus ``package_type``).
    """

    PLUGIN_TYPES = ("composer-plugin", "composer-installer")

    def __init__(
        self,
        vendor_dir: str | Path,
        bin_dir: str | Path,
        download_manager: DownloadManager,
        installation_manager: "InstallationManager",
        io: ConsoleIO | None = None,
    ):
        super().__init__(vendor_dir, bin_dir, download_manager, io=io, package_type=None)
        self.installation_manager = installation_manager

    def supports(self, package_type: str) -> bool:
        return package_type in self.PLUGIN_TYPES

    def install(self, repo: WritableRepositoryProtocol, package: Package) -> None:
        self._require_class(package)
        super().install(repo, package)
        self.register_installer(package)

    def update(self, repo: WritableRepositoryProtocol, initial: Package, target: Package) -> None:
        self._require_class(target)
        super().update(repo, initial, target)
        self.register_installer(target)

    def load_installed_plugins(self, repo: WritableRepositoryProtocol) -> None:
        """Register installers of plugins already present in repo."""
        for package in repo.get_packages():
            if self.supports(package.type):
                self.register_installer(package)

    def register_installer(self, package: Package) -> None:
        references = package.extra.get("class")
        if isinstance(references, str):
            references = [references]

        path = self.get_install_path(package)
        for reference in references or []:
            installer_class = self._load_class(reference, path)
            installer = installer_class(
                vendor_dir=self.vendor_dir,
                bin_dir=self.bin_dir,
                download_manager=self.download_manager,
                io=self.io,
            )
            self.installation_manager.add_installer(installer)
            logger.debug(f"Registered installer {reference} from {package.name}")

    def _require_class(self, package: Package) -> None:
        if not package.extra.get("class"):
            raise ConfigurationError(
                f"Error while installing {package.name}, plugin packages should have a class defined"
                " in their extra key to be usable.",
                context={"package": package.name},
            )

    def _load_class(self, reference: str, path: Path) -> type:
        module_name, separator, class_name = reference.partition(":")
        if not separator or not module_name or not class_name or "." in module_name:
            raise ConfigurationError(
                f"Invalid installer class reference {reference!r}, expected 'module:ClassName'",
                context={"reference": reference},
            )

        spec = importlib.machinery.PathFinder.find_spec(module_name, [str(path)])
        if spec is None or spec.loader is None:
            raise ConfigurationError(
                f"Could not find module {module_name} in {path}",
                context={"reference": reference, "path": str(path)},
            )
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        try:
            return getattr(module, class_name)
        except AttributeError as e:
            raise ConfigurationError(
                f"Module {module_name} has no class {class_name}",
                context={"reference": reference, "path": str(path)},
            ) from e


class MetapackageInstaller:
    """Metapackages have no files; installing one only updates the repository."""

    def supports(self, package_type: str) -> bool:
        return package_type == "metapackage"

    def is_installed(self, repo: WritableRepositoryProtocol, package: Package) -> bool:
        return repo.has_package(package)

    def install(self, repo: WritableRepositoryProtocol, package: Package) -> None:
        repo.add_package(package)

    def update(self, repo: WritableRepositoryProtocol, initial: Package, target: Package) -> None:
        if not repo.has_package(initial):
            raise PackageNotInstalledError(
                f"Package is not installed: {initial}",
                context={"package": initial.name, "version": initial.version},
            )
        repo.remove_package(initial)
        repo.add_package(target)

    def uninstall(self, repo: WritableRepositoryProtocol, package: Package) -> None:
        if not repo.has_package(package):
            raise PackageNotInstalledError(
                f"Package is not installed: {package}",
                context={"package": package.name, "version": package.version},
            )
        repo.remove_package(package)

    def get_install_path(self, package: Package) -> Path | None:
        return None
