"""Assemble a ready-to-use installation stack from a Config."""

import logging
from dataclasses import dataclass

from .cache import ArtifactCache
from .config import Config
from .console import ConsoleIO
from .downloaders import DownloadManager
from .downloaders import FileDownloader
from .downloaders import GitDownloader
from .downloaders import HgDownloader
from .downloaders import SvnDownloader
from .downloaders import TarDownloader
from .downloaders import ZipDownloader
from .installers import LibraryInstaller
from .installers import MetapackageInstaller
from .installers import PluginInstaller
from .json_file import JsonFile
from .manager import EventDispatcher
from .manager import InstallationManager
from .process import ProcessExecutor
from .repository import FilesystemRepository
from .transport import HttpTransport

logger = logging.getLogger(__name__)


@dataclass
class Installation:
    """Collaborators sharing one vendor directory."""

    config: Config
    io: ConsoleIO
    local_repository: FilesystemRepository
    download_manager: DownloadManager
    installation_manager: InstallationManager


def create_download_manager(config: Config, io: ConsoleIO) -> DownloadManager:
    """Download manager with git, hg, svn, zip, tar and file downloaders."""
    process = ProcessExecutor(timeout=config.process_timeout)
    transport = HttpTransport(io, proxy=config.http_proxy, timeout=config.http_timeout)
    cache = ArtifactCache(config.cache_dir)

    manager = DownloadManager(prefer_source=config.prefer_source)
    manager.set_downloader("git", GitDownloader(io, config, process=process))
    manager.set_downloader("hg", HgDownloader(io, config, process=process))
    manager.set_downloader("svn", SvnDownloader(io, config, process=process))
    manager.set_downloader("zip", ZipDownloader(io, config, transport=transport, cache=cache))
    manager.set_downloader("tar", TarDownloader(io, config, transport=transport, cache=cache))
    manager.set_downloader("file", FileDownloader(io, config, transport=transport, cache=cache))
    return manager


def create_installation(
    config: Config,
    io: ConsoleIO | None = None,
    event_dispatcher: EventDispatcher | None = None,
) -> Installation:
    """
    Build the local repository, download manager and installation manager.

    Installers registered: library, plugin (which also registers installers
    of plugins already installed) and metapackage.

    Example:
        >>> installation = create_installation(Config.from_environment())
        >>> for operation in operations:
        ...     installation.installation_manager.execute(installation.local_repository, operation)
    """
    io = io or ConsoleIO(interactive=config.interactive, verbose=config.verbose)

    local_repository = FilesystemRepository(JsonFile(config.installed_repository_file))
    download_manager = create_download_manager(config, io)

    installation_manager = InstallationManager(config.vendor_dir, event_dispatcher=event_dispatcher)
    installation_manager.add_installer(
        LibraryInstaller(config.vendor_dir, config.bin_dir, download_manager, io=io)
    )
    plugin_installer = PluginInstaller(
        config.vendor_dir, config.bin_dir, download_manager, installation_manager, io=io
    )
    installation_manager.add_installer(plugin_installer)
    installation_manager.add_installer(MetapackageInstaller())
    plugin_installer.load_installed_plugins(local_repository)

    logger.debug(f"Installation ready in {config.vendor_dir} ({len(local_repository)} packages installed)")
    return Installation(
        config=config,
        io=io,
        local_repository=local_repository,
        download_manager=download_manager,
        installation_manager=installation_manager,
    )
