"""depinstall - Package installation orchestrator.

Applies solver operations (install / update / uninstall) to a vendor
directory through pluggable installers and downloaders, keeping the local
repository in step with what is on disk.
"""

from .config import Config
from .console import ConsoleIO
from .console import NullIO
from .constraints import VersionConstraint
from .downloaders import DownloadManager
from .downloaders import FileDownloader
from .downloaders import GitDownloader
from .downloaders import HgDownloader
from .downloaders import SvnDownloader
from .downloaders import TarDownloader
from .downloaders import ZipDownloader
from .exceptions import AuthenticationRequiredError
from .exceptions import ChecksumMismatchError
from .exceptions import ConfigurationError
from .exceptions import DownloadNotFoundError
from .exceptions import ExtractionError
from .exceptions import InstallationError
from .exceptions import InstallPathConflictError
from .exceptions import LocalChangesError
from .exceptions import PackageNotInstalledError
from .exceptions import ProcessTimeoutError
from .exceptions import RepositoryError
from .exceptions import TransportError
from .exceptions import VcsCommandError
from .factory import Installation
from .factory import create_installation
from .installers import LibraryInstaller
from .installers import MetapackageInstaller
from .installers import PluginInstaller
from .json_file import JsonFile
from .manager import InstallationManager
from .manager import PackageEvents
from .operations import InstallOperation
from .operations import Operation
from .operations import UninstallOperation
from .operations import UpdateOperation
from .package import AliasPackage
from .package import Package
from .process import ProcessExecutor
from .protocols import DownloaderProtocol
from .protocols import InstallerProtocol
from .protocols import WritableRepositoryProtocol
from .repository import ArrayRepository
from .repository import CompositeRepository
from .repository import FilesystemRepository
from .repository import PackageRepository
from .repository import WritableArrayRepository

__all__ = [
    # Packages and operations
    "Package",
    "AliasPackage",
    "VersionConstraint",
    "Operation",
    "InstallOperation",
    "UpdateOperation",
    "UninstallOperation",
    # Installation
    "InstallationManager",
    "PackageEvents",
    "LibraryInstaller",
    "PluginInstaller",
    "MetapackageInstaller",
    "InstallerProtocol",
    # Downloads
    "DownloadManager",
    "DownloaderProtocol",
    "FileDownloader",
    "ZipDownloader",
    "TarDownloader",
    "GitDownloader",
    "HgDownloader",
    "SvnDownloader",
    # Repositories
    "ArrayRepository",
    "WritableArrayRepository",
    "FilesystemRepository",
    "PackageRepository",
    "CompositeRepository",
    "WritableRepositoryProtocol",
    "JsonFile",
    # Setup
    "Config",
    "ConsoleIO",
    "NullIO",
    "ProcessExecutor",
    "Installation",
    "create_installation",
    # Exceptions
    "InstallationError",
    "ConfigurationError",
    "InstallPathConflictError",
    "PackageNotInstalledError",
    "RepositoryError",
    "ExtractionError",
    "ProcessTimeoutError",
    "TransportError",
    "ChecksumMismatchError",
    "AuthenticationRequiredError",
    "DownloadNotFoundError",
    "VcsCommandError",
    "LocalChangesError",
]

__version__ = "0.1.0"
