"""Filesystem helpers shared by downloaders and installers."""

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class Filesystem:
    """Directory creation/removal, emptiness checks, renames and path math."""

    def ensure_directory_exists(self, directory: Path) -> None:
        """Create directory (and parents) unless it already exists.

        Raises:
            NotADirectoryError: If the path exists and is not a directory
        """
        if directory.is_dir():
            return
        if directory.exists():
            raise NotADirectoryError(f"{directory} exists and is not a directory.")
        directory.mkdir(parents=True, exist_ok=True)

    def is_dir_empty(self, directory: Path) -> bool:
        """True if directory has no entries (dotfiles count as entries)."""
        return not any(directory.iterdir())

    def remove_directory(self, directory: Path) -> bool:
        """
        Remove a directory tree, a file or a dangling symlink.

        Returns:
            True if something was removed, False if nothing existed
        """
        if directory.is_symlink() or directory.is_file():
            directory.unlink()
            return True
        if not directory.exists():
            return False
        shutil.rmtree(directory)
        logger.debug(f"Removed {directory}")
        return True

    def unlink(self, path: Path) -> None:
        """Remove a file if present."""
        path.unlink(missing_ok=True)

    def rename(self, source: Path, target: Path) -> None:
        """Move source to target; a plain rename when both are on the same device."""
        try:
            os.rename(source, target)
        except OSError:
            shutil.move(str(source), str(target))

    def is_absolute_path(self, path: str | Path) -> bool:
        return Path(path).is_absolute()

    def find_shortest_path(self, from_path: str | Path, to_path: str | Path) -> str:
        """
        Shortest path from the directory containing ``from_path`` to ``to_path``.

        Both paths must be absolute. When they only share the filesystem root
        the absolute ``to_path`` is returned unchanged.

        Example:
            >>> Filesystem().find_shortest_path("/project/file", "/project/vendor")
            'vendor'
            >>> Filesystem().find_shortest_path("/project/file", "/opt/vendor")
            '/opt/vendor'
        """
        source = Path(os.path.normpath(from_path))
        target = Path(os.path.normpath(to_path))
        if not (source.is_absolute() and target.is_absolute()):
            raise ValueError(f"Both paths must be absolute: {from_path}, {to_path}")

        common = Path(os.path.commonpath([source, target]))
        if common == Path(common.anchor):
            return str(target)

        relative = os.path.relpath(target, source.parent)
        return "." if relative == "" else relative
