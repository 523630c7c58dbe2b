"""Tests for package repositories."""

import json
import tempfile
from pathlib import Path

import pytest
from depinstall import AliasPackage
from depinstall import ArrayRepository
from depinstall import CompositeRepository
from depinstall import ConfigurationError
from depinstall import FilesystemRepository
from depinstall import JsonFile
from depinstall import Package
from depinstall import PackageRepository
from depinstall import RepositoryError
from depinstall import WritableArrayRepository
from depinstall.repository import SEARCH_NAME
from depinstall.repository import is_package_acceptable


def make_package(name="acme/log", version="1.0.0", **kwargs) -> Package:
    return Package(name=name, version=version, **kwargs)


def test_has_package_by_name_and_version():
    """Test lookups use (name, version) identity."""
    repo = ArrayRepository([make_package()])

    assert repo.has_package(make_package(name="ACME/log"))
    assert not repo.has_package(make_package(version="2.0.0"))


def test_find_package_with_constraint():
    """Test find honours version constraints."""
    repo = ArrayRepository([make_package(version="1.0.0"), make_package(version="2.1.0")])

    assert repo.find_package("acme/log", "^2.0").version == "2.1.0"
    assert repo.find_package("acme/log", "^3.0") is None
    assert len(repo.find_packages("acme/log")) == 2


def test_load_packages_reports_names_found_even_without_match():
    """Test names are reported when present, independent of the constraint."""
    repo = ArrayRepository([make_package(version="1.0.0")])

    result = repo.load_packages({"Acme/Log": "^2.0", "acme/missing": None}, ["stable"])

    assert result.names_found == ["acme/log"]
    assert result.packages == []


def test_load_packages_filters_stability():
    """Test unstable versions need a per-package stability flag."""
    repo = ArrayRepository([make_package(version="1.0.0"), make_package(version="1.1.0-beta1")])

    stable_only = repo.load_packages({"acme/log": None}, ["stable"])
    flagged = repo.load_packages({"acme/log": None}, ["stable"], {"acme/log": "beta"})

    assert [p.version for p in stable_only.packages] == ["1.0.0"]
    assert sorted(p.version for p in flagged.packages) == ["1.0.0", "1.1.0-beta1"]


def test_load_packages_includes_alias_target():
    """Test accepting an alias also returns the package it aliases."""
    base = make_package(version="dev-main")
    alias = AliasPackage.create(base, "1.0.0")
    repo = ArrayRepository([alias])

    result = repo.load_packages({"acme/log": "^1.0"}, ["stable", "dev"])

    assert alias in result.packages
    assert base in result.packages


def test_is_package_acceptable():
    """Test stability flags admit more stable versions too."""
    assert is_package_acceptable(["stable"], {}, "acme/log", "stable")
    assert not is_package_acceptable(["stable"], {}, "acme/log", "beta")
    assert is_package_acceptable(["stable"], {"acme/log": "beta"}, "acme/log", "RC")
    assert not is_package_acceptable(["stable"], {"acme/log": "beta"}, "acme/log", "dev")


def test_search_name_and_fulltext():
    """Test search modes, word OR-ing and name deduplication."""
    repo = ArrayRepository(
        [
            make_package(description="Structured logging", keywords=("psr-3",)),
            make_package(version="2.0.0", description="Structured logging"),
            make_package(name="acme/http", description="HTTP client", type="library"),
            make_package(name="acme/tools", description="Logging helpers", type="composer-plugin"),
        ]
    )

    assert repo.search("log") == [
        {"name": "acme/log", "description": "Structured logging"},
        {"name": "acme/tools", "description": "Logging helpers"},
    ]
    assert [m["name"] for m in repo.search("log", SEARCH_NAME)] == ["acme/log"]
    assert [m["name"] for m in repo.search("psr-3 http")] == ["acme/log", "acme/http"]
    assert [m["name"] for m in repo.search("logging", package_type="composer-plugin")] == ["acme/tools"]
    assert repo.search("   ") == []


def test_get_providers():
    """Test providers are keyed by package name and exclude the target itself."""
    repo = ArrayRepository(
        [
            make_package(name="psr/log-implementation", version="1.0.0"),
            make_package(provides={"psr/log-implementation": "1.0.0"}, description="Logger"),
        ]
    )

    providers = repo.get_providers("psr/log-implementation")

    assert providers == {"acme/log": {"name": "acme/log", "description": "Logger", "type": "library"}}


def test_repo_name():
    """Test repository descriptions."""
    assert ArrayRepository([make_package()]).get_repo_name() == "array repo (defining 1 package)"
    assert ArrayRepository().get_repo_name() == "array repo (defining 0 packages)"


def test_writable_array_repository():
    """Test adding replaces by identity and removing is idempotent."""
    repo = WritableArrayRepository()
    package = make_package()

    repo.add_package(package)
    repo.add_package(package.with_installation_source("dist"))

    assert len(repo) == 1
    assert repo.get_packages()[0].installation_source == "dist"

    repo.remove_package(package)
    repo.remove_package(package)
    assert len(repo) == 0


def test_filesystem_repository_persists():
    """Test changes are written through and reloaded."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "vendor" / ".composer" / "installed.json"
        repo = FilesystemRepository(JsonFile(path))
        assert len(repo) == 0
        assert not path.exists()

        repo.add_package(make_package(dist_type="zip").with_installation_source("dist"))

        data = json.loads(path.read_text())
        assert data[0]["name"] == "acme/log"
        assert data[0]["installation_source"] == "dist"

        reloaded = FilesystemRepository(JsonFile(path))
        assert reloaded.has_package(make_package())
        assert reloaded.get_packages()[0].installation_source == "dist"

        reloaded.remove_package(make_package())
        assert json.loads(path.read_text()) == []


def test_filesystem_repository_rejects_invalid_data():
    """Test malformed installed files raise RepositoryError."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "installed.json"

        path.write_text('{"packages": []}')
        with pytest.raises(RepositoryError, match="expected a list"):
            FilesystemRepository(JsonFile(path))

        path.write_text("not json")
        with pytest.raises(RepositoryError, match="Could not read"):
            FilesystemRepository(JsonFile(path))

        path.write_text('[{"name": "acme/log"}]')
        with pytest.raises(RepositoryError, match="Invalid package record"):
            FilesystemRepository(JsonFile(path))


def test_package_repository():
    """Test inline package definitions."""
    repo = PackageRepository([{"name": "acme/log", "version": "1.0.0", "dist_type": "zip"}])

    assert repo.find_package("acme/log").dist_type == "zip"
    assert repo.get_repo_name() == "package repo (defining 1 package)"

    with pytest.raises(RepositoryError, match="Invalid package definition"):
        PackageRepository([{"name": "acme/log"}])


def test_composite_repository():
    """Test queries are delegated to every repository in order."""
    first = ArrayRepository([make_package(version="1.0.0")])
    second = ArrayRepository([make_package(version="2.0.0"), make_package(name="acme/http")])
    composite = CompositeRepository([first])
    composite.add_repository(second)

    assert len(composite) == 3
    assert composite.find_package("acme/log").version == "1.0.0"
    assert composite.find_package("acme/log", "^2.0").version == "2.0.0"
    assert composite.has_package(make_package(name="acme/http"))
    assert len(composite.find_packages("acme/log")) == 2

    result = composite.load_packages({"acme/log": None, "acme/http": None}, ["stable"])
    assert sorted(result.names_found) == ["acme/http", "acme/log"]
    assert len(result.packages) == 3


def test_load_packages_normalizes_stability_names():
    """Test stability names are accepted in any case."""
    repo = ArrayRepository([make_package(version="1.0.0-RC1")])

    flagged = repo.load_packages({"acme/log": None}, ["stable"], {"acme/log": "rc"})
    lowercase = repo.load_packages({"acme/log": None}, ["STABLE", "rc"])

    assert [p.version for p in flagged.packages] == ["1.0.0-RC1"]
    assert [p.version for p in lowercase.packages] == ["1.0.0-RC1"]


def test_load_packages_unknown_stability():
    """Test unknown stability names are a configuration error."""
    repo = ArrayRepository([make_package()])

    with pytest.raises(ConfigurationError, match="Unknown stability 'nightly'"):
        repo.load_packages({"acme/log": None}, ["stable"], {"acme/log": "nightly"})


class FailingJsonFile(JsonFile):
    """JSON file whose writes fail once enabled."""

    fail = False

    def write(self, data):
        if self.fail:
            raise RepositoryError(f"Could not write {self.path}: disk full")
        super().write(data)


def test_filesystem_repository_failed_write_keeps_memory_in_sync():
    """Test a failed write leaves the in-memory state matching the file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        json_file = FailingJsonFile(Path(tmpdir) / "installed.json")
        repo = FilesystemRepository(json_file)
        repo.add_package(make_package())
        json_file.fail = True

        with pytest.raises(RepositoryError, match="disk full"):
            repo.add_package(make_package(version="2.0.0"))
        with pytest.raises(RepositoryError, match="disk full"):
            repo.remove_package(make_package())

        assert [p.version for p in repo.get_packages()] == ["1.0.0"]
        assert [p.version for p in FilesystemRepository(JsonFile(json_file.path)).get_packages()] == ["1.0.0"]
