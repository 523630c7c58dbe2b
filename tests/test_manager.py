"""Tests for InstallationManager dispatch."""

import tempfile
from pathlib import Path

import pytest
from depinstall import AliasPackage
from depinstall import ConfigurationError
from depinstall import InstallationManager
from depinstall import InstallOperation
from depinstall import Operation
from depinstall import Package
from depinstall import PackageEvents
from depinstall import UninstallOperation
from depinstall import UpdateOperation
from depinstall import WritableArrayRepository


class SpyInstaller:
    """Installer double recording calls into a shared log."""

    def __init__(self, types, log, name="spy"):
        self.types = set(types)
        self.log = log
        self.name = name
        self.supports_calls = 0

    def supports(self, package_type):
        self.supports_calls += 1
        return package_type in self.types

    def is_installed(self, repo, package):
        return repo.has_package(package)

    def install(self, repo, package):
        self.log.append((self.name, "install", package))
        repo.add_package(package)

    def update(self, repo, initial, target):
        self.log.append((self.name, "update", initial, target))
        repo.remove_package(initial)
        repo.add_package(target)

    def uninstall(self, repo, package):
        self.log.append((self.name, "uninstall", package))
        repo.remove_package(package)

    def get_install_path(self, package):
        return Path("vendor") / package.name


class FailingInstaller(SpyInstaller):
    def install(self, repo, package):
        raise RuntimeError("disk full")


def make_manager(**kwargs):
    return InstallationManager("vendor", cwd=Path("/project"), **kwargs)


def lib(version="1.0.0", type="library") -> Package:
    return Package(name="acme/log", version=version, type=type)


def test_execute_dispatches_by_job_type():
    """Test each operation reaches the matching installer method."""
    log = []
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library"], log))
    repo = WritableArrayRepository()

    manager.execute(repo, InstallOperation(package=lib()))
    manager.execute(repo, UpdateOperation(initial_package=lib(), target_package=lib("1.1.0")))
    manager.execute(repo, UninstallOperation(package=lib("1.1.0")))

    assert [entry[1] for entry in log] == ["install", "update", "uninstall"]
    assert len(repo) == 0


def test_unknown_operation_type():
    """Test operations without a job type are rejected."""
    with pytest.raises(ConfigurationError, match="Unknown operation type"):
        make_manager().execute(WritableArrayRepository(), Operation())


def test_get_installer_unknown_type():
    """Test unsupported package types raise."""
    with pytest.raises(ConfigurationError, match="Unknown installer type: wordpress-plugin"):
        make_manager().get_installer("wordpress-plugin")


def test_get_installer_is_memoized_and_case_insensitive():
    """Test supports() is asked once per type until installers change."""
    spy = SpyInstaller(["library"], [])
    manager = make_manager()
    manager.add_installer(spy)

    assert manager.get_installer("library") is spy
    assert manager.get_installer("LIBRARY") is spy
    assert spy.supports_calls == 1

    manager.add_installer(SpyInstaller(["metapackage"], []))
    manager.get_installer("library")
    assert spy.supports_calls == 2


def test_latest_installer_wins():
    """Test installers registered later take precedence."""
    first = SpyInstaller(["library"], [], name="first")
    second = SpyInstaller(["library"], [], name="second")
    manager = make_manager()
    manager.add_installer(first)
    manager.add_installer(second)

    assert manager.get_installer("library") is second


def test_update_with_type_change_uninstalls_then_installs():
    """Test a type change goes through both installers in order."""
    log = []
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library"], log, name="library"))
    manager.add_installer(SpyInstaller(["metapackage"], log, name="meta"))
    repo = WritableArrayRepository([lib()])

    manager.execute(repo, UpdateOperation(initial_package=lib(), target_package=lib("2.0.0", type="metapackage")))

    assert [(entry[0], entry[1]) for entry in log] == [("library", "uninstall"), ("meta", "install")]
    assert [p.version for p in repo.get_packages()] == ["2.0.0"]


def test_update_type_comparison_is_case_insensitive():
    """Test types differing only in case update in place."""
    log = []
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library", "Library"], log))
    repo = WritableArrayRepository([lib()])

    manager.execute(repo, UpdateOperation(initial_package=lib(), target_package=lib("1.1.0", type="Library")))

    assert [entry[1] for entry in log] == ["update"]


def test_install_alias_unwraps_and_marks():
    """Test installing an alias installs the concrete package flagged as alias install."""
    log = []
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library"], log))
    base = lib("dev-main")

    manager.execute(WritableArrayRepository(), InstallOperation(package=AliasPackage.create(base, "1.0.x-dev")))

    installed = log[0][2]
    assert type(installed) is Package
    assert installed.version == "dev-main"
    assert installed.installed_as_alias is True


def test_update_alias_marks_only_target():
    """Test update unwraps both sides and only flags the target."""
    log = []
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library"], log))
    initial = lib("dev-old")
    target = lib("dev-main")
    repo = WritableArrayRepository([initial])

    manager.execute(
        repo,
        UpdateOperation(
            initial_package=AliasPackage.create(initial, "1.0.x-dev"),
            target_package=AliasPackage.create(target, "1.1.x-dev"),
        ),
    )

    _, _, seen_initial, seen_target = log[0]
    assert seen_initial == initial
    assert seen_initial.installed_as_alias is False
    assert seen_target.version == "dev-main"
    assert seen_target.installed_as_alias is True


def test_uninstall_alias_unwraps():
    """Test uninstalling an alias removes the concrete package."""
    log = []
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library"], log))
    base = lib("dev-main")
    repo = WritableArrayRepository([base])

    manager.execute(repo, UninstallOperation(package=AliasPackage.create(base, "1.0.x-dev")))

    assert log[0][2] == base
    assert len(repo) == 0


def test_events_dispatched_around_operation():
    """Test pre and post events surround each operation."""
    events = []
    manager = make_manager(event_dispatcher=lambda event, operation: events.append((event, operation)))
    manager.add_installer(SpyInstaller(["library"], []))
    operation = InstallOperation(package=lib())

    manager.execute(WritableArrayRepository(), operation)

    assert events == [
        (PackageEvents.PRE_PACKAGE_INSTALL, operation),
        (PackageEvents.POST_PACKAGE_INSTALL, operation),
    ]
    assert events[0][0] == "pre-package-install"


def test_failed_operation_skips_post_event():
    """Test installer errors propagate and suppress the post event."""
    events = []
    manager = make_manager(event_dispatcher=lambda event, operation: events.append(event))
    manager.add_installer(FailingInstaller(["library"], []))
    repo = WritableArrayRepository()

    with pytest.raises(RuntimeError, match="disk full"):
        manager.execute(repo, InstallOperation(package=lib()))

    assert events == [PackageEvents.PRE_PACKAGE_INSTALL]
    assert len(repo) == 0


def test_is_package_installed_and_install_path():
    """Test queries delegate to the installer for the package type."""
    manager = make_manager()
    manager.add_installer(SpyInstaller(["library"], []))
    repo = WritableArrayRepository([lib()])

    assert manager.is_package_installed(repo, lib())
    assert not manager.is_package_installed(repo, lib("2.0.0"))
    assert manager.get_install_path(lib()) == Path("vendor/acme/log")


def test_relative_vendor_dir():
    """Test relative vendor dirs are kept without trailing slash."""
    manager = InstallationManager("vendor/", cwd=Path("/project"))

    assert manager.get_vendor_path() == "vendor"
    assert manager.get_vendor_path(absolute=True) == "/project/vendor"


def test_absolute_vendor_dir_inside_project():
    """Test absolute vendor dirs under the project become relative."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)

        manager = InstallationManager(root / "libs" / "vendor", cwd=root)

        assert manager.get_vendor_path() == "libs/vendor"


def test_absolute_vendor_dir_outside_project():
    """Test vendor dirs only reachable through the filesystem root are rejected."""
    with pytest.raises(ConfigurationError, match="must be accessible from the directory"):
        InstallationManager("/opt/vendor", cwd=Path("/project"))
