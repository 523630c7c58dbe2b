"""Package metadata model.

Packages are immutable values. Anything that "changes" a package (stamping
the installation source, flagging an alias install) returns a copy.
"""

import re
from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

STABILITY_STABLE = "stable"
STABILITY_RC = "RC"
STABILITY_BETA = "beta"
STABILITY_ALPHA = "alpha"
STABILITY_DEV = "dev"

# Lower is more stable
STABILITIES: dict[str, int] = {
    STABILITY_STABLE: 0,
    STABILITY_RC: 5,
    STABILITY_BETA: 10,
    STABILITY_ALPHA: 15,
    STABILITY_DEV: 20,
}

_STABILITY_SUFFIX = re.compile(r"[._-]?(?:(stable|beta|b|rc|alpha|a|patch|pl|p)(?:[.-]?\d+)?)$", re.IGNORECASE)


def normalize_stability(name: str) -> str:
    """Canonical spelling of a stability name (``rc`` -> ``RC``).

    Raises:
        ValueError: If the name is not a known stability
    """
    normalized = STABILITY_RC if name.lower() == "rc" else name.lower()
    if normalized not in STABILITIES:
        raise ValueError(f"Unknown stability {name!r}, expected one of: {', '.join(STABILITIES)}")
    return normalized


def parse_stability(version: str) -> str:
    """Derive the stability of a version string.

    Example:
        >>> parse_stability("1.0.0-beta2")
        'beta'
        >>> parse_stability("dev-master")
        'dev'
    """
    version = re.sub(r"#.+$", "", version)
    if version.startswith("dev-") or version.endswith("-dev"):
        return STABILITY_DEV

    match = _STABILITY_SUFFIX.search(version.lower())
    if match:
        suffix = match.group(1)
        if suffix in ("beta", "b"):
            return STABILITY_BETA
        if suffix in ("alpha", "a"):
            return STABILITY_ALPHA
        if suffix == "rc":
            return STABILITY_RC
    return STABILITY_STABLE


class Package(BaseModel):
    """
    One version of a package, as produced by the solver or stored as installed.

    Identity is (lowercased name, version): two objects describing the same
    name and version are the same package for every repository operation.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    pretty_version: str | None = None
    type: str = "library"
    description: str = ""
    keywords: tuple[str, ...] = ()

    source_type: str | None = None
    source_url: str | None = None
    source_reference: str | None = None

    dist_type: str | None = None
    dist_url: str | None = None
    dist_reference: str | None = None
    dist_sha1_checksum: str | None = None

    installation_source: Literal["dist", "source"] | None = None
    installed_as_alias: bool = False

    target_dir: str | None = None
    binaries: tuple[str, ...] = ()
    provides: dict[str, str] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_pretty_version(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("pretty_version"):
            data = {**data, "pretty_version": data.get("version")}
        return data

    @property
    def unique_name(self) -> str:
        return f"{self.name.lower()}-{self.version}"

    @property
    def identity(self) -> tuple[str, str]:
        return (self.name.lower(), self.version)

    @property
    def stability(self) -> str:
        return parse_stability(self.version)

    @property
    def is_dev(self) -> bool:
        return self.stability == STABILITY_DEV

    @property
    def full_pretty_version(self) -> str:
        """Pretty version, with the source reference appended for dev versions."""
        if self.is_dev and self.source_reference:
            return f"{self.pretty_version} {self.source_reference[:7]}"
        return str(self.pretty_version)

    def with_installation_source(self, source: Literal["dist", "source"]) -> "Package":
        return self.model_copy(update={"installation_source": source})

    def as_installed_alias(self) -> "Package":
        return self.model_copy(update={"installed_as_alias": True})

    def to_record(self) -> dict[str, Any]:
        """Serialize for the installed repository file."""
        return self.model_dump(mode="json", exclude_defaults=True)

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Package":
        return cls.model_validate(data)

    def __str__(self) -> str:
        return f"{self.name}-{self.pretty_version}"


class AliasPackage(Package):
    """A package standing in for ``alias_of`` under another version label."""

    alias_of: Package

    @classmethod
    def create(cls, alias_of: Package, version: str, pretty_version: str | None = None) -> "AliasPackage":
        """Alias ``alias_of`` as ``version``, sharing its type and transfer metadata.

        Example:
            >>> base = Package(name="acme/log", version="dev-main")
            >>> AliasPackage.create(base, "1.0.x-dev").alias_of.version
            'dev-main'
        """
        data = alias_of.model_dump(exclude={"version", "pretty_version", "installed_as_alias"})
        if isinstance(alias_of, AliasPackage):
            data.pop("alias_of", None)
        return cls(
            **data,
            version=version,
            pretty_version=pretty_version or version,
            alias_of=alias_of,
        )


def unwrap_alias(package: Package) -> Package:
    """Concrete package behind any number of alias layers."""
    while isinstance(package, AliasPackage):
        package = package.alias_of
    return package
