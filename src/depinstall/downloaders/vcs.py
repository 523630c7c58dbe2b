"""Source downloaders backed by version control checkouts."""

import logging
import re
import shlex
from collections.abc import Callable
from pathlib import Path
from typing import Literal

from ..config import Config
from ..console import ConsoleIO
from ..exceptions import ConfigurationError
from ..exceptions import InstallPathConflictError
from ..exceptions import LocalChangesError
from ..exceptions import VcsCommandError
from ..filesystem import Filesystem
from ..package import Package
from ..process import ProcessExecutor

logger = logging.getLogger(__name__)

# Hosts reachable over several transports; the rest of the URL is kept as-is.
KNOWN_HOSTS_PATTERN = re.compile(r"^(?:https?|git)://(?P<host>github\.com|gitlab\.com|bitbucket\.org)/(?P<path>.+)$")


def q(value: str | Path) -> str:
    return shlex.quote(str(value))


class VcsDownloader:
    """
    Base class for checkout-based downloaders.

    Subclasses implement ``do_download``, ``do_update`` and
    ``get_local_changes``. A working copy with local changes is never
    updated or removed.
    """

    # Set by subclasses whose hosts support protocol fallback
    host_pattern: re.Pattern | None = None

    def __init__(
        self,
        io: ConsoleIO,
        config: Config,
        process: ProcessExecutor | None = None,
        filesystem: Filesystem | None = None,
    ):
        self.io = io
        self.config = config
        self.process = process or ProcessExecutor(timeout=config.process_timeout)
        self.filesystem = filesystem or Filesystem()

    @property
    def installation_source(self) -> Literal["dist", "source"]:
        return "source"

    def download(self, package: Package, path: Path) -> None:
        """Check out package.source_reference into a fresh path.

        Raises:
            ConfigurationError: If the package has no source reference
            InstallPathConflictError: If path is a file or a non-empty directory
            VcsCommandError: If the checkout fails (path is removed first)
        """
        self._require_reference(package)
        if path.exists() and (not path.is_dir() or not self.filesystem.is_dir_empty(path)):
            raise InstallPathConflictError(
                f"Expected empty path to install {package} into but it exists: {path}",
                context={"path": str(path), "package": package.name},
            )
        logger.info(f"  - Installing {package.name} ({package.full_pretty_version})")

        # clone targets must not exist
        self.filesystem.remove_directory(path)
        try:
            self.do_download(package, path)
        except Exception:
            self.filesystem.remove_directory(path)
            raise

    def update(self, initial: Package, target: Package, path: Path) -> None:
        """Move an existing working copy to target.source_reference.

        Raises:
            LocalChangesError: If the working copy has uncommitted changes
            VcsCommandError: If the update commands fail
        """
        self._require_reference(target)
        logger.info(
            f"  - Updating {target.name} ({initial.full_pretty_version} => {target.full_pretty_version})"
        )
        self.enforce_clean_changes(path)
        self.do_update(initial, target, path)

    def remove(self, package: Package, path: Path) -> None:
        self.enforce_clean_changes(path)
        logger.info(f"  - Removing {package.name} ({package.full_pretty_version})")
        self.filesystem.remove_directory(path)

    def enforce_clean_changes(self, path: Path) -> None:
        changes = self.get_local_changes(path)
        if changes:
            raise LocalChangesError(
                f"Source directory {path} has uncommitted changes:\n{changes}",
                context={"path": str(path), "changes": changes},
            )

    def do_download(self, package: Package, path: Path) -> None:
        raise NotImplementedError

    def do_update(self, initial: Package, target: Package, path: Path) -> None:
        raise NotImplementedError

    def get_local_changes(self, path: Path) -> str | None:
        """Local modifications in the working copy, None when clean or absent."""
        raise NotImplementedError

    def execute(self, command: str | list[str], cwd: Path | None = None, capture_output: bool | None = None) -> int:
        """Run a command; stdout is only shown in verbose mode."""
        if capture_output is None:
            capture_output = not self.io.is_verbose()
        return self.process.execute(command, cwd=cwd, capture_output=capture_output)

    def run_command(
        self,
        build_command: Callable[[str], str],
        url: str,
        path: Path | None = None,
        cwd: Path | None = None,
    ) -> None:
        """
        Run a command built for url, falling back across transport protocols.

        For URLs matching ``host_pattern`` the command is attempted with each
        protocol in ``config.vcs_protocols`` until one exits zero; ``path``
        (when given) is removed between attempts. Other URLs get one attempt.

        Raises:
            VcsCommandError: When every attempt failed
        """
        match = self.host_pattern.match(url) if self.host_pattern is not None else None
        if match:
            attempts = []
            error_output = ""
            for protocol in self.config.vcs_protocols:
                candidate = f"{protocol}://{match['host']}/{match['path']}"
                if self.execute(build_command(candidate), cwd=cwd) == 0:
                    logger.debug(f"Reached {url} via {protocol}")
                    return
                error_output = self.process.get_error_output()
                attempts.append(f"- {candidate}\n  {error_output.strip()}")
                logger.debug(f"Failed to reach {candidate}: {error_output.strip()}")
                if path is not None:
                    self.filesystem.remove_directory(path)

            protocols = ", ".join(self.config.vcs_protocols)
            raise VcsCommandError(
                f"Failed to execute commands for {url} via {protocols} protocols, aborting.\n\n" + "\n".join(attempts),
                context={"url": url, "protocols": list(self.config.vcs_protocols), "stderr": error_output},
            )

        command = build_command(url)
        if self.execute(command, cwd=cwd) != 0:
            error_output = self.process.get_error_output()
            raise VcsCommandError(
                f"Failed to execute {command}\n\n{error_output}",
                context={"url": url, "command": command, "stderr": error_output},
            )

    def _require_reference(self, package: Package) -> None:
        if not package.source_reference or not package.source_url:
            raise ConfigurationError(
                f"Package {package} is missing source reference information",
                context={"package": package.name},
            )


class GitDownloader(VcsDownloader):
    """Source type ``git``."""

    host_pattern = KNOWN_HOSTS_PATTERN

    def do_download(self, package: Package, path: Path) -> None:
        ref = package.source_reference

        def build_command(url: str) -> str:
            return (
                f"git clone --no-checkout {q(url)} {q(path)} && cd {q(path)}"
                f" && git checkout {q(ref)} && git reset --hard {q(ref)}"
            )

        self.run_command(build_command, package.source_url, path=path)
        self._set_push_url(package, path)

    def do_update(self, initial: Package, target: Package, path: Path) -> None:
        ref = target.source_reference

        def build_command(url: str) -> str:
            return (
                f"git remote set-url origin {q(url)} && git fetch origin && git fetch --tags origin"
                f" && git checkout {q(ref)} && git reset --hard {q(ref)}"
            )

        self.run_command(build_command, target.source_url, cwd=path)
        self._set_push_url(target, path)

    def get_local_changes(self, path: Path) -> str | None:
        if not (path / ".git").is_dir():
            return None

        command = ["git", "status", "--porcelain", "--untracked-files=no"]
        if self.process.execute(command, cwd=path, capture_output=True) != 0:
            raise VcsCommandError(
                f"Failed to execute {' '.join(command)}\n\n{self.process.get_error_output()}",
                context={"path": str(path), "stderr": self.process.get_error_output()},
            )
        changes = (self.process.output or "").strip()
        return changes or None

    def _set_push_url(self, package: Package, path: Path) -> None:
        """Point pushes at the SSH form of a known host URL."""
        match = KNOWN_HOSTS_PATTERN.match(package.source_url or "")
        if not match:
            return

        repo_path = match["path"].rstrip("/")
        if repo_path.endswith(".git"):
            repo_path = repo_path[: -len(".git")]
        push_url = f"git@{match['host']}:{repo_path}.git"

        if self.execute(["git", "remote", "set-url", "--push", "origin", push_url], cwd=path) != 0:
            logger.warning(f"Could not set push URL {push_url} for {package.name}: {self.process.get_error_output()}")


class HgDownloader(VcsDownloader):
    """Source type ``hg``."""

    def do_download(self, package: Package, path: Path) -> None:
        ref = package.source_reference
        self.run_command(
            lambda url: f"hg clone {q(url)} {q(path)} && cd {q(path)} && hg up {q(ref)}",
            package.source_url,
            path=path,
        )

    def do_update(self, initial: Package, target: Package, path: Path) -> None:
        ref = target.source_reference
        self.run_command(lambda url: f"hg pull {q(url)} && hg up {q(ref)}", target.source_url, cwd=path)

    def get_local_changes(self, path: Path) -> str | None:
        if not (path / ".hg").is_dir():
            return None
        if self.process.execute(["hg", "st"], cwd=path, capture_output=True) != 0:
            raise VcsCommandError(
                f"Failed to execute hg st\n\n{self.process.get_error_output()}",
                context={"path": str(path)},
            )
        changes = (self.process.output or "").strip()
        return changes or None


class SvnDownloader(VcsDownloader):
    """Source type ``svn``."""

    def do_download(self, package: Package, path: Path) -> None:
        ref = package.source_reference
        self.run_command(lambda url: f"svn co -r {q(ref)} {q(url)} {q(path)}", package.source_url, path=path)

    def do_update(self, initial: Package, target: Package, path: Path) -> None:
        ref = target.source_reference
        self.run_command(lambda url: f"svn switch -r {q(ref)} {q(url)}", target.source_url, cwd=path)

    def get_local_changes(self, path: Path) -> str | None:
        if not (path / ".svn").is_dir():
            return None
        if self.process.execute(["svn", "status", "--ignore-externals"], cwd=path, capture_output=True) != 0:
            raise VcsCommandError(
                f"Failed to execute svn status\n\n{self.process.get_error_output()}",
                context={"path": str(path)},
            )
        changes = [
            line for line in self.process.split_lines(self.process.output) if re.match(r"^\s*[ACDMR]", line)
        ]
        return "\n".join(changes) or None
