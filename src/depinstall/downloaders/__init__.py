"""Downloaders: dist artifacts (file, zip, tar) and source checkouts (git, hg, svn)."""

from .archive import ArchiveDownloader
from .archive import TarDownloader
from .archive import ZipDownloader
from .file import FileDownloader
from .manager import DownloadManager
from .vcs import GitDownloader
from .vcs import HgDownloader
from .vcs import SvnDownloader
from .vcs import VcsDownloader

__all__ = [
    "ArchiveDownloader",
    "DownloadManager",
    "FileDownloader",
    "GitDownloader",
    "HgDownloader",
    "SvnDownloader",
    "TarDownloader",
    "VcsDownloader",
    "ZipDownloader",
]
