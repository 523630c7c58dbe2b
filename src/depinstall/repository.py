"""Package repositories.

A repository is an ordered collection of packages keyed by (name, version).
Read operations serve the solver and installers; write operations are only
called by installers after the matching filesystem change succeeded.
"""

import logging
import re
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from .constraints import VersionConstraint
from .exceptions import ConfigurationError
from .exceptions import RepositoryError
from .json_file import JsonFile
from .package import STABILITIES
from .package import AliasPackage
from .package import Package
from .package import normalize_stability

logger = logging.getLogger(__name__)

SEARCH_FULLTEXT = 0
SEARCH_NAME = 1


@dataclass
class LoadResult:
    """Outcome of ``load_packages``."""

    names_found: list[str] = field(default_factory=list)
    packages: list[Package] = field(default_factory=list)


def is_package_acceptable(
    acceptable_stabilities: Iterable[str],
    stability_flags: Mapping[str, str],
    package_name: str,
    stability: str,
) -> bool:
    """
    Check a package stability against the allowed set.

    A per-package flag admits its own stability and anything more stable.

    Example:
        >>> is_package_acceptable(["stable"], {"acme/log": "beta"}, "acme/log", "RC")
        True
    """
    flag = stability_flags.get(package_name.lower())
    if flag is not None and STABILITIES[stability] <= STABILITIES[flag]:
        return True
    return stability in acceptable_stabilities


class ArrayRepository:
    """In-memory repository."""

    def __init__(self, packages: Iterable[Package] | None = None):
        self._packages: dict[tuple[str, str], Package] = {}
        for package in packages or ():
            self._packages[package.identity] = package

    def has_package(self, package: Package) -> bool:
        """True if a package with the same name and version is registered."""
        return package.identity in self._packages

    def find_package(self, name: str, constraint: str | VersionConstraint | None = None) -> Package | None:
        """First package matching name and version constraint."""
        for package in self._iter_matching(name, constraint):
            return package
        return None

    def find_packages(self, name: str, constraint: str | VersionConstraint | None = None) -> list[Package]:
        """All packages matching name and (optionally) a version constraint."""
        return list(self._iter_matching(name, constraint))

    def get_packages(self) -> list[Package]:
        return list(self._packages.values())

    def load_packages(
        self,
        package_name_map: Mapping[str, str | VersionConstraint | None],
        acceptable_stabilities: Iterable[str],
        stability_flags: Mapping[str, str] | None = None,
    ) -> LoadResult:
        """
        Resolve a batch of names against constraints and stability rules.

        Args:
            package_name_map: Package name -> constraint (None accepts any version)
            acceptable_stabilities: Stabilities allowed for every package
            stability_flags: Package name -> most unstable stability allowed for it

        Returns:
            LoadResult with every requested name present in this repository
            (whether or not a version matched) and the accepted packages.
            Accepted aliases bring their concrete package along.
        """
        try:
            acceptable = {normalize_stability(stability) for stability in acceptable_stabilities}
            flags = {name.lower(): normalize_stability(stability) for name, stability in (stability_flags or {}).items()}
        except ValueError as e:
            raise ConfigurationError(str(e), context={"repository": self.get_repo_name()}) from e
        constraints = {
            name.lower(): VersionConstraint.parse(constraint) if constraint else None
            for name, constraint in package_name_map.items()
        }

        result = LoadResult()
        accepted: dict[tuple[str, str, bool], Package] = {}
        for package in self._packages.values():
            name = package.name.lower()
            if name not in constraints:
                continue
            if name not in result.names_found:
                result.names_found.append(name)

            constraint = constraints[name]
            if constraint is not None and not constraint.matches(package.version):
                continue
            if not is_package_acceptable(acceptable, flags, name, package.stability):
                continue

            accepted[(*package.identity, isinstance(package, AliasPackage))] = package
            if isinstance(package, AliasPackage):
                accepted.setdefault((*package.alias_of.identity, False), package.alias_of)

        result.packages = list(accepted.values())
        return result

    def search(self, query: str, mode: int = SEARCH_FULLTEXT, package_type: str | None = None) -> list[dict[str, str]]:
        """
        Packages whose name (or, in fulltext mode, description/keywords) match any query word.

        Returns:
            List of {"name": ..., "description": ...}, one per package name
        """
        words = [re.escape(word) for word in query.split()]
        if not words:
            return []
        regex = re.compile("(?:" + "|".join(words) + ")", re.IGNORECASE)

        matches: dict[str, dict[str, str]] = {}
        for package in self._packages.values():
            if package_type is not None and package.type != package_type:
                continue
            name = package.name
            haystack = name
            if mode == SEARCH_FULLTEXT:
                haystack = " ".join([name, package.description, *package.keywords])
            if regex.search(haystack) and name not in matches:
                matches[name] = {"name": name, "description": package.description}
        return list(matches.values())

    def get_providers(self, package_name: str) -> dict[str, dict[str, str]]:
        """Packages that declare a ``provide`` on package_name (excluding package_name itself)."""
        target = package_name.lower()
        providers: dict[str, dict[str, str]] = {}
        for package in self._packages.values():
            if package.name.lower() == target:
                continue
            if target in (name.lower() for name in package.provides):
                providers[package.name] = {
                    "name": package.name,
                    "description": package.description,
                    "type": package.type,
                }
        return providers

    def get_repo_name(self) -> str:
        return f"array repo (defining {len(self)} package{'s' if len(self) != 1 else ''})"

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self):
        return iter(list(self._packages.values()))

    def _iter_matching(self, name: str, constraint: str | VersionConstraint | None):
        name = name.lower()
        parsed = VersionConstraint.parse(constraint) if constraint is not None else None
        for package in self._packages.values():
            if package.name.lower() != name:
                continue
            if parsed is None or parsed.matches(package.version):
                yield package


class WritableArrayRepository(ArrayRepository):
    """In-memory repository that installers can update."""

    def add_package(self, package: Package) -> None:
        """Register package (replaces an entry with the same name and version)."""
        self._packages[package.identity] = package
        logger.debug(f"Added {package} to {self.get_repo_name()}")

    def remove_package(self, package: Package) -> None:
        """Unregister the package with the same name and version, if present."""
        if self._packages.pop(package.identity, None) is not None:
            logger.debug(f"Removed {package} from {self.get_repo_name()}")

    def write(self) -> None:
        """Persist state (no-op in memory)."""

    def reload(self) -> None:
        """Re-read persisted state (no-op in memory)."""


class FilesystemRepository(WritableArrayRepository):
    """
    Installed-packages repository persisted as a JSON list (``installed.json``).

    Every mutation is written through immediately so the file always reflects
    what is on disk.

    Format:
    [
      {"name": "acme/log", "version": "1.2.0", "type": "library", ...}
    ]
    """

    def __init__(self, json_file: JsonFile):
        """Initialize repository with an app-provided JSON file.

        Args:
            json_file: Backing file (app determines location)

        Example:
            >>> repo = FilesystemRepository(JsonFile(Path("vendor/.composer/installed.json")))
        """
        super().__init__()
        self.json_file = json_file
        self._load()

    def _load(self) -> None:
        self._packages = {}
        if not self.json_file.exists():
            return

        data = self.json_file.read()
        if not isinstance(data, list):
            raise RepositoryError(
                f"Invalid repository data in {self.json_file.path}: expected a list of packages",
                context={"path": str(self.json_file.path)},
            )
        try:
            for record in data:
                package = Package.from_record(record)
                self._packages[package.identity] = package
        except (TypeError, ValueError) as e:
            raise RepositoryError(
                f"Invalid package record in {self.json_file.path}: {e}",
                context={"path": str(self.json_file.path)},
            ) from e

        logger.debug(f"Loaded {len(self._packages)} packages from {self.json_file.path}")

    def add_package(self, package: Package) -> None:
        previous = dict(self._packages)
        super().add_package(package)
        self._write_or_restore(previous)

    def remove_package(self, package: Package) -> None:
        previous = dict(self._packages)
        super().remove_package(package)
        self._write_or_restore(previous)

    def _write_or_restore(self, previous: dict[tuple[str, str], Package]) -> None:
        """Persist, keeping memory equal to the file when the write fails."""
        try:
            self.write()
        except RepositoryError:
            self._packages = previous
            raise

    def write(self) -> None:
        self.json_file.write([package.to_record() for package in self._packages.values()])

    def reload(self) -> None:
        self._load()

    def get_repo_name(self) -> str:
        return f"installed repo ({self.json_file.path})"


class PackageRepository(ArrayRepository):
    """Repository of inline package definitions (e.g. from a manifest ``repositories`` entry)."""

    def __init__(self, package_configs: Iterable[Mapping[str, Any]]):
        packages = []
        for config in package_configs:
            try:
                packages.append(Package.model_validate(dict(config)))
            except ValueError as e:
                raise RepositoryError(f"Invalid package definition: {e}", context={"package": dict(config)}) from e
        super().__init__(packages)

    def get_repo_name(self) -> str:
        return f"package repo (defining {len(self)} package{'s' if len(self) != 1 else ''})"


class CompositeRepository:
    """Read-only view over several repositories, queried in order."""

    def __init__(self, repositories: Iterable[Any]):
        self.repositories: list[Any] = list(repositories)

    def add_repository(self, repository: Any) -> None:
        self.repositories.append(repository)

    def has_package(self, package: Package) -> bool:
        return any(repository.has_package(package) for repository in self.repositories)

    def find_package(self, name: str, constraint: str | VersionConstraint | None = None) -> Package | None:
        for repository in self.repositories:
            package = repository.find_package(name, constraint)
            if package is not None:
                return package
        return None

    def find_packages(self, name: str, constraint: str | VersionConstraint | None = None) -> list[Package]:
        return [package for repository in self.repositories for package in repository.find_packages(name, constraint)]

    def get_packages(self) -> list[Package]:
        return [package for repository in self.repositories for package in repository.get_packages()]

    def load_packages(
        self,
        package_name_map: Mapping[str, str | VersionConstraint | None],
        acceptable_stabilities: Iterable[str],
        stability_flags: Mapping[str, str] | None = None,
    ) -> LoadResult:
        acceptable = list(acceptable_stabilities)
        combined = LoadResult()
        for repository in self.repositories:
            result = repository.load_packages(package_name_map, acceptable, stability_flags)
            combined.names_found.extend(name for name in result.names_found if name not in combined.names_found)
            combined.packages.extend(result.packages)
        return combined

    def search(self, query: str, mode: int = SEARCH_FULLTEXT, package_type: str | None = None) -> list[dict[str, str]]:
        return [match for repository in self.repositories for match in repository.search(query, mode, package_type)]

    def get_providers(self, package_name: str) -> dict[str, dict[str, str]]:
        providers: dict[str, dict[str, str]] = {}
        for repository in self.repositories:
            providers.update(repository.get_providers(package_name))
        return providers

    def get_repo_name(self) -> str:
        return "composite repo (" + ", ".join(repository.get_repo_name() for repository in self.repositories) + ")"

    def __len__(self) -> int:
        return sum(len(repository) for repository in self.repositories)
