"""Downloaded artifact cache.

Artifacts are stored per package name and version so a reinstall does not
hit the network. A cache entry that turns out to be corrupt is dropped by
the downloader through ``clear_last_write``.
"""

import logging
import re
import shutil
from pathlib import Path

from .package import Package

logger = logging.getLogger(__name__)


class ArtifactCache:
    """File cache rooted at ``cache_dir``; disabled when ``cache_dir`` is None."""

    def __init__(self, cache_dir: Path | None):
        self.cache_dir = cache_dir
        self._last_writes: dict[str, Path] = {}

    @property
    def enabled(self) -> bool:
        return self.cache_dir is not None

    def key_for(self, package: Package, extension: str = "") -> str:
        """Cache key: ``<name>/<version>-<reference>[.<ext>]`` with unsafe characters replaced."""
        reference = package.dist_reference or package.dist_sha1_checksum or ""
        stem = f"{package.version}-{reference}" if reference else package.version
        key = f"{package.name.lower()}/{stem}{extension}"
        return re.sub(r"[^a-z0-9._/-]", "-", key.lower())

    def path_for(self, key: str) -> Path | None:
        if self.cache_dir is None:
            return None
        return self.cache_dir / key

    def read_into(self, key: str, destination: Path) -> bool:
        """Copy a cached artifact to destination; False on a miss or when disabled."""
        source = self.path_for(key)
        if source is None or not source.is_file():
            return False
        shutil.copyfile(source, destination)
        logger.debug(f"Loaded {key} from cache")
        return True

    def write_from(self, key: str, package: Package, source: Path) -> None:
        """Store an artifact and remember it as the last write for package."""
        target = self.path_for(key)
        if target is None:
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        self._last_writes[package.unique_name] = target
        logger.debug(f"Wrote {key} to cache")

    def remove(self, key: str) -> None:
        target = self.path_for(key)
        if target is not None:
            target.unlink(missing_ok=True)

    def clear_last_write(self, package: Package) -> None:
        """Drop the entry last written (or served) for package."""
        target = self._last_writes.pop(package.unique_name, None)
        if target is not None:
            logger.warning(f"Removing corrupted cache entry {target}")
            target.unlink(missing_ok=True)

    def remember(self, key: str, package: Package) -> None:
        """Track a cache hit so it can be invalidated like a fresh write."""
        target = self.path_for(key)
        if target is not None:
            self._last_writes[package.unique_name] = target
