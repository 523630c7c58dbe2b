"""Archive downloaders: fetch, verify, extract into staging, promote.

Extraction never happens inside the target path. The archive is unpacked
into ``<vendor>/composer/<random8>`` and the result is moved into place,
in a single rename whenever the target is empty.
"""

import logging
import secrets
import tarfile
import zipfile
from pathlib import Path

from ..exceptions import ExtractionError
from ..exceptions import InstallationError
from ..package import Package
from .file import FileDownloader
from .file import url_extension

logger = logging.getLogger(__name__)

_IGNORED_ENTRIES = {".DS_Store"}


class ArchiveDownloader(FileDownloader):
    """Base for downloaders of archive dists; subclasses implement ``extract``."""

    def download(self, package: Package, path: Path) -> None:
        """
        Install the archive contents into path.

        On failure after the target check, the target path and the staging
        directory are removed before the error propagates.

        Raises:
            InstallPathConflictError: If path is not empty (nothing is cleaned up)
            ChecksumMismatchError: If the archive does not match its checksum
            ExtractionError: If the archive is corrupt
        """
        url = self._dist_url(package)
        self._prepare_target(package, path)
        logger.info(f"  - Installing {package.name} ({package.full_pretty_version}): Extracting archive")

        staging_dir = self._allocate_staging_dir()
        artifact = self.config.staging_root / f"{secrets.token_hex(16)}{url_extension(url)}"

        try:
            self.filesystem.ensure_directory_exists(staging_dir)
            self._fetch(package, url, artifact)

            try:
                self.extract(artifact, staging_dir)
            except InstallationError:
                self.cache.clear_last_write(package)
                raise
            except Exception as e:
                self.cache.clear_last_write(package)
                raise ExtractionError(
                    f"Failed to extract {package}: {e}",
                    context={"archive": str(artifact), "package": package.name},
                ) from e

            self._promote(staging_dir, path)
        except Exception:
            self.filesystem.remove_directory(path)
            raise
        finally:
            self.filesystem.remove_directory(staging_dir)
            self.filesystem.unlink(artifact)
            self._remove_staging_root_if_empty()

    def extract(self, file: Path, path: Path) -> None:
        """Extract file into the path directory.

        Raises:
            ExtractionError: If the file is not a valid archive
        """
        raise NotImplementedError

    def _allocate_staging_dir(self) -> Path:
        root = self.config.staging_root
        while True:
            candidate = root / secrets.token_hex(4)
            if not candidate.exists():
                return candidate

    def _promote(self, staging_dir: Path, path: Path) -> None:
        contents = self._folder_content(staging_dir)
        single_dir_at_top_level = len(contents) == 1 and contents[0].is_dir()

        rename_as_one = not path.exists() or (
            self.filesystem.is_dir_empty(path) and self.filesystem.remove_directory(path)
        )

        if rename_as_one:
            extracted_dir = contents[0] if single_dir_at_top_level else staging_dir
            self.filesystem.rename(extracted_dir, path)
            return

        if single_dir_at_top_level:
            contents = self._folder_content(contents[0])
        for entry in contents:
            self.filesystem.rename(entry, path / entry.name)

    def _folder_content(self, directory: Path) -> list[Path]:
        return sorted(entry for entry in directory.iterdir() if entry.name not in _IGNORED_ENTRIES)

    def _remove_staging_root_if_empty(self) -> None:
        root = self.config.staging_root
        if root.is_dir() and self.filesystem.is_dir_empty(root):
            root.rmdir()


class ZipDownloader(ArchiveDownloader):
    """Dist type ``zip``."""

    def extract(self, file: Path, path: Path) -> None:
        try:
            with zipfile.ZipFile(file) as archive:
                archive.extractall(path)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            raise ExtractionError(
                f"'{file}' is not a valid zip archive, got error: {e}",
                context={"archive": str(file)},
            ) from e


class TarDownloader(ArchiveDownloader):
    """Dist type ``tar`` (plain, gzip, bzip2 or xz compressed)."""

    def extract(self, file: Path, path: Path) -> None:
        try:
            with tarfile.open(file) as archive:
                archive.extractall(path, filter="data")
        except (tarfile.TarError, OSError) as e:
            raise ExtractionError(
                f"'{file}' is not a valid tar archive, got error: {e}",
                context={"archive": str(file)},
            ) from e
