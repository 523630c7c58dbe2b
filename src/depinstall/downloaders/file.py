"""Dist downloader for plain files."""

import hashlib
import logging
import secrets
from pathlib import Path
from pathlib import PurePosixPath
from typing import Literal
from urllib.parse import urlparse

from ..cache import ArtifactCache
from ..config import Config
from ..console import ConsoleIO
from ..exceptions import ChecksumMismatchError
from ..exceptions import ConfigurationError
from ..exceptions import InstallPathConflictError
from ..exceptions import TransportError
from ..filesystem import Filesystem
from ..package import Package
from ..transport import HttpTransport

logger = logging.getLogger(__name__)

_COMPOUND_EXTENSIONS = (".tar.gz", ".tar.bz2", ".tar.xz")


def url_extension(url: str) -> str:
    """Extension of the last URL path segment (``.tar.gz`` kept whole, "" if none).

    Example:
        >>> url_extension("https://example.org/dist/log-1.0.tar.gz?token=x")
        '.tar.gz'
    """
    name = PurePosixPath(urlparse(url).path).name.lower()
    for extension in _COMPOUND_EXTENSIONS:
        if name.endswith(extension):
            return extension
    return PurePosixPath(name).suffix


def sha1_file(path: Path) -> str:
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(65536), b""):
            digest.update(block)
    return digest.hexdigest()


class FileDownloader:
    """
    Download a dist artifact into the package directory.

    Subclasses change what happens to the artifact (ArchiveDownloader
    extracts it); this base keeps it as a file inside the target path.
    """

    def __init__(
        self,
        io: ConsoleIO,
        config: Config,
        transport: HttpTransport | None = None,
        cache: ArtifactCache | None = None,
        filesystem: Filesystem | None = None,
    ):
        self.io = io
        self.config = config
        self.transport = transport or HttpTransport(io, proxy=config.http_proxy, timeout=config.http_timeout)
        self.cache = cache or ArtifactCache(config.cache_dir)
        self.filesystem = filesystem or Filesystem()

    @property
    def installation_source(self) -> Literal["dist", "source"]:
        return "dist"

    def download(self, package: Package, path: Path) -> None:
        """
        Fetch the dist file into path.

        Raises:
            InstallPathConflictError: If path is a file or a non-empty directory
            ChecksumMismatchError: If the SHA-1 checksum does not match
            TransportError: If the file cannot be fetched
        """
        url = self._dist_url(package)
        self._prepare_target(package, path)
        logger.info(f"  - Installing {package.name} ({package.full_pretty_version})")

        name = PurePosixPath(urlparse(url).path).name or f"{secrets.token_hex(16)}{url_extension(url)}"
        try:
            self._fetch(package, url, path / name)
        except Exception:
            self.filesystem.remove_directory(path)
            raise

    def update(self, initial: Package, target: Package, path: Path) -> None:
        """Remove then download again; artifacts are never patched in place."""
        self.remove(initial, path)
        self.download(target, path)

    def remove(self, package: Package, path: Path) -> None:
        logger.info(f"  - Removing {package.name} ({package.full_pretty_version})")
        self.filesystem.remove_directory(path)

    def _dist_url(self, package: Package) -> str:
        if not package.dist_url:
            raise ConfigurationError(
                f"The package {package} has no dist URL",
                context={"package": package.name},
            )
        return package.dist_url

    def _prepare_target(self, package: Package, path: Path) -> None:
        if path.exists() and not path.is_dir():
            raise InstallPathConflictError(
                f"{path} exists and is not a directory",
                context={"path": str(path), "package": package.name},
            )
        self.filesystem.ensure_directory_exists(path)
        if not self.filesystem.is_dir_empty(path):
            raise InstallPathConflictError(
                f"Expected empty path to install {package} into but directory exists: {path}",
                context={"path": str(path), "package": package.name},
            )

    def _fetch(self, package: Package, url: str, destination: Path) -> None:
        """Fill destination from the cache or the network, then verify it."""
        key = self.cache.key_for(package, url_extension(url))

        if self.cache.read_into(key, destination):
            if self._checksum_matches(package, destination):
                self.cache.remember(key, package)
                return
            logger.warning(f"Cached copy of {package} failed checksum verification, downloading again")
            self.cache.remove(key)
            destination.unlink(missing_ok=True)

        self.transport.copy(url, destination)
        if not destination.exists():
            raise TransportError(
                f"{url} could not be saved to {destination}, make sure the directory is writable"
                " and you have internet connectivity",
                context={"url": url, "destination": str(destination)},
            )

        if not self._checksum_matches(package, destination):
            destination.unlink(missing_ok=True)
            raise ChecksumMismatchError(
                f"The checksum verification of the file failed (downloaded from {url})",
                context={"url": url, "expected": package.dist_sha1_checksum},
            )

        self.cache.write_from(key, package, destination)

    def _checksum_matches(self, package: Package, file: Path) -> bool:
        expected = package.dist_sha1_checksum
        if not expected:
            return True
        return sha1_file(file) == expected.lower()
