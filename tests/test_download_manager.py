"""Tests for DownloadManager downloader selection."""

from pathlib import Path

import pytest
from depinstall import ConfigurationError
from depinstall import DownloadManager
from depinstall import Package


class RecordingDownloader:
    """Downloader double recording calls."""

    def __init__(self, installation_source: str):
        self._installation_source = installation_source
        self.calls = []

    @property
    def installation_source(self):
        return self._installation_source

    def download(self, package, path):
        self.calls.append(("download", package, path))

    def update(self, initial, target, path):
        self.calls.append(("update", initial, target, path))

    def remove(self, package, path):
        self.calls.append(("remove", package, path))


PATH = Path("vendor/acme/log")


def make_manager(prefer_source: bool = False):
    manager = DownloadManager(prefer_source=prefer_source)
    git = RecordingDownloader("source")
    zip_ = RecordingDownloader("dist")
    tar = RecordingDownloader("dist")
    manager.set_downloader("git", git)
    manager.set_downloader("zip", zip_)
    manager.set_downloader("tar", tar)
    return manager, git, zip_, tar


def both(version="1.0.0", **kwargs) -> Package:
    data = {"source_type": "git", "source_url": "https://github.com/acme/log", "source_reference": "abc"}
    data.update({"dist_type": "zip", "dist_url": "https://example.org/log.zip"})
    data.update(kwargs)
    return Package(name="acme/log", version=version, **data)


def test_download_prefers_dist():
    """Test dist is used by default and the returned package is stamped."""
    manager, git, zip_, _ = make_manager()

    installed = manager.download(both(), PATH)

    assert installed.installation_source == "dist"
    assert zip_.calls[0][0] == "download"
    assert zip_.calls[0][1].installation_source == "dist"
    assert git.calls == []


def test_download_prefer_source():
    """Test prefer_source picks the source downloader when available."""
    manager, git, zip_, _ = make_manager(prefer_source=True)

    installed = manager.download(both(), PATH)

    assert installed.installation_source == "source"
    assert git.calls and not zip_.calls


def test_download_source_only_package():
    """Test packages without dist fall back to source."""
    manager, git, _, _ = make_manager()

    installed = manager.download(both(dist_type=None, dist_url=None), PATH)

    assert installed.installation_source == "source"
    assert len(git.calls) == 1


def test_download_without_source_or_dist():
    """Test packages with no transfer metadata are rejected."""
    manager, _, _, _ = make_manager()

    with pytest.raises(ConfigurationError, match="must have a source or dist"):
        manager.download(Package(name="acme/log", version="1.0.0"), PATH)


def test_unknown_downloader_type():
    """Test unknown types list the available ones."""
    manager, _, _, _ = make_manager()

    with pytest.raises(ConfigurationError, match="Available types: git, tar, zip"):
        manager.get_downloader("svn")


def test_installed_package_requires_installation_source():
    """Test lookup for an installed package needs its installation source."""
    manager, _, _, _ = make_manager()

    with pytest.raises(ConfigurationError, match="does not have an installation source"):
        manager.get_downloader_for_installed_package(both())


def test_installation_source_must_match_downloader():
    """Test a dist install cannot be handled by a source downloader."""
    manager, _, _, _ = make_manager()
    manager.set_downloader("zip", RecordingDownloader("source"))

    with pytest.raises(ConfigurationError, match="was installed from dist"):
        manager.get_downloader_for_installed_package(both().with_installation_source("dist"))


def test_update_same_type_in_place():
    """Test same dist type updates through the same downloader."""
    manager, _, zip_, _ = make_manager()
    initial = both().with_installation_source("dist")

    updated = manager.update(initial, both(version="1.1.0"), PATH)

    assert updated.installation_source == "dist"
    assert [call[0] for call in zip_.calls] == ["update"]
    assert zip_.calls[0][2].installation_source == "dist"


def test_update_type_change_reinstalls():
    """Test a dist type change removes then downloads again."""
    manager, _, zip_, tar = make_manager()
    initial = both().with_installation_source("dist")

    updated = manager.update(initial, both(version="2.0.0", dist_type="tar"), PATH)

    assert [call[0] for call in zip_.calls] == ["remove"]
    assert [call[0] for call in tar.calls] == ["download"]
    assert updated.installation_source == "dist"


def test_update_keeps_source_install_as_source():
    """Test a source install stays a source install after a type switch."""
    manager, git, zip_, _ = make_manager()
    manager.set_downloader("hg", RecordingDownloader("source"))
    initial = both().with_installation_source("source")

    updated = manager.update(initial, both(version="2.0.0", source_type="hg"), PATH)

    assert [call[0] for call in git.calls] == ["remove"]
    assert zip_.calls == []
    assert updated.installation_source == "source"


def test_remove_uses_installation_source():
    """Test remove goes to the downloader that installed the package."""
    manager, git, zip_, _ = make_manager()

    manager.remove(both().with_installation_source("source"), PATH)

    assert [call[0] for call in git.calls] == ["remove"]
    assert zip_.calls == []
