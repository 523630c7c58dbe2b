"""Registry of downloaders by source/dist type."""

import logging
from pathlib import Path

from ..exceptions import ConfigurationError
from ..package import Package
from ..protocols import DownloaderProtocol

logger = logging.getLogger(__name__)


class DownloadManager:
    """
    Pick the downloader for a package and stamp its installation source.

    Packages are immutable, so ``download`` and ``update`` return the
    package copy carrying the installation source actually used.
    """

    def __init__(self, prefer_source: bool = False):
        self.prefer_source = prefer_source
        self._downloaders: dict[str, DownloaderProtocol] = {}

    def set_downloader(self, download_type: str, downloader: DownloaderProtocol) -> None:
        self._downloaders[download_type.lower()] = downloader

    def get_downloader(self, download_type: str) -> DownloaderProtocol:
        """
        Downloader registered for a source or dist type.

        Raises:
            ConfigurationError: If nothing is registered for the type
        """
        downloader = self._downloaders.get(download_type.lower())
        if downloader is None:
            raise ConfigurationError(
                f"Unknown downloader type: {download_type}. Available types: {', '.join(sorted(self._downloaders))}",
                context={"type": download_type},
            )
        return downloader

    def get_downloader_for_installed_package(self, package: Package) -> DownloaderProtocol:
        """Downloader matching how the package was installed."""
        source = package.installation_source
        if source == "dist":
            download_type = package.dist_type
        elif source == "source":
            download_type = package.source_type
        else:
            raise ConfigurationError(
                f"Package {package} does not have an installation source set",
                context={"package": package.name},
            )
        if not download_type:
            raise ConfigurationError(
                f"Package {package} has no {source} type",
                context={"package": package.name},
            )

        downloader = self.get_downloader(download_type)
        if downloader.installation_source != source:
            raise ConfigurationError(
                f"Downloader for {download_type} handles {downloader.installation_source} installs,"
                f" but {package} was installed from {source}",
                context={"package": package.name, "type": download_type},
            )
        return downloader

    def download(self, package: Package, path: Path, prefer_source: bool | None = None) -> Package:
        """
        Install package contents into path.

        Returns:
            The package with ``installation_source`` set

        Raises:
            ConfigurationError: If the package has neither source nor dist information
        """
        prefer_source = self.prefer_source if prefer_source is None else prefer_source
        source_type = package.source_type
        dist_type = package.dist_type

        if not (source_type or dist_type):
            raise ConfigurationError(
                f"Package {package} must have a source or dist specified",
                context={"package": package.name},
            )

        if dist_type and not (prefer_source and source_type):
            installed = package.with_installation_source("dist")
        else:
            installed = package.with_installation_source("source")

        downloader = self.get_downloader_for_installed_package(installed)
        downloader.download(installed, path)
        return installed

    def update(self, initial: Package, target: Package, path: Path) -> Package:
        """
        Move path from initial to target contents.

        The downloader that installed ``initial`` updates in place when target
        offers the same type for that installation source; otherwise the old
        contents are removed and target is downloaded from scratch.

        Returns:
            The target package with ``installation_source`` set
        """
        downloader = self.get_downloader_for_installed_package(initial)
        installation_source = initial.installation_source

        if installation_source == "dist":
            initial_type, target_type = initial.dist_type, target.dist_type
        else:
            initial_type, target_type = initial.source_type, target.source_type

        if initial_type == target_type:
            updated = target.with_installation_source(installation_source)
            downloader.update(initial, updated, path)
            return updated

        logger.debug(f"Switching {target.name} from {initial_type} to {target_type}, reinstalling")
        downloader.remove(initial, path)
        return self.download(target, path, prefer_source=installation_source == "source")

    def remove(self, package: Package, path: Path) -> None:
        self.get_downloader_for_installed_package(package).remove(package, path)
