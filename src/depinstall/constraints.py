"""Version constraint matching for repository lookups.

Branch versions (``dev-master``) only match themselves. Everything else is
coerced to semver and checked with ``semantic_version.NpmSpec``.
"""

import logging
import re

import semantic_version

logger = logging.getLogger(__name__)

_OPERATOR = re.compile(r"(<=|>=|==|!=|<|>|=|\^|~)\s+")
_WILDCARD = re.compile(r"^(\d+(?:\.\d+)*)\.\*$")


def parse_version(version: str) -> semantic_version.Version | None:
    """Coerce a package version string to semver, None for branch versions.

    Example:
        >>> str(parse_version("v1.2"))
        '1.2.0'
        >>> parse_version("dev-master") is None
        True
    """
    text = version.strip()
    if is_branch_version(text):
        return None
    if text[:1] in ("v", "V"):
        text = text[1:]
    # four-part versions (1.0.0.0) are truncated to semver
    match = re.match(r"^(\d+(?:\.\d+){0,2})(?:\.\d+)*(.*)$", text)
    if match:
        text = match.group(1) + match.group(2)
    try:
        return semantic_version.Version.coerce(text)
    except ValueError:
        return None


def is_branch_version(version: str) -> bool:
    return version.startswith("dev-")


class VersionConstraint:
    """
    Parsed constraint such as ``>=1.0,<2.0``, ``^1.2 || dev-master`` or ``*``.

    ``,`` and whitespace mean AND, ``||`` means OR.
    """

    def __init__(self, text: str):
        self.text = text.strip() or "*"
        self._groups = [self._parse_group(group) for group in self.text.split("||")]

    @classmethod
    def parse(cls, constraint: "str | VersionConstraint | None") -> "VersionConstraint":
        if isinstance(constraint, VersionConstraint):
            return constraint
        return cls(constraint or "*")

    def matches(self, version: str) -> bool:
        """True if the version satisfies at least one OR group."""
        return any(all(test(version) for test in group) for group in self._groups)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"VersionConstraint({self.text!r})"

    def _parse_group(self, group: str) -> list:
        normalized = _OPERATOR.sub(r"\1", group.replace(",", " "))
        parts = normalized.split()
        if not parts:
            raise ValueError(f"Empty constraint group in {self.text!r}")
        return [self._parse_part(part) for part in parts]

    def _parse_part(self, part: str):
        if part in ("*", "x", "X"):
            return lambda version: True

        if part.startswith("!="):
            excluded = part[2:]
            return lambda version: not _same_version(version, excluded)

        if part.startswith("=="):
            part = "=" + part[2:]

        bare = part.lstrip("=")
        if is_branch_version(bare):
            return lambda version: version.lower() == bare.lower()

        wildcard = _WILDCARD.match(bare)
        if wildcard:
            part = wildcard.group(1) + ".x"

        try:
            spec = semantic_version.NpmSpec(part.lstrip("vV") if part[:1] in "vV" else part)
        except ValueError as e:
            raise ValueError(f"Could not parse version constraint {part!r}: {e}") from e

        def test(version: str) -> bool:
            parsed = parse_version(version)
            return parsed is not None and parsed in spec

        return test


def _same_version(left: str, right: str) -> bool:
    left_parsed = parse_version(left)
    right_parsed = parse_version(right)
    if left_parsed is None or right_parsed is None:
        return left.lower() == right.lower()
    return left_parsed == right_parsed
