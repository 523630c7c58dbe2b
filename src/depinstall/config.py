"""Installation configuration.

Defaults come from the manifest ``config`` section, environment variables
override them. The library never reads the environment on its own: apps call
``Config.from_environment()`` and pass the result around.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import model_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST = "composer.json"


class Config(BaseModel):
    """Settings shared by the downloaders, installers and factory."""

    model_config = ConfigDict(frozen=True)

    vendor_dir: str = "vendor"
    bin_dir: str | None = None
    manifest_file: str = DEFAULT_MANIFEST
    cache_dir: Path | None = None

    http_proxy: str | None = None
    http_timeout: float = 30.0
    process_timeout: float = 300.0

    vcs_protocols: tuple[str, ...] = ("git", "https", "http")
    prefer_source: bool = False
    interactive: bool = True
    verbose: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_bin_dir(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("bin_dir"):
            vendor_dir = str(data.get("vendor_dir") or "vendor").rstrip("/")
            data = {**data, "bin_dir": f"{vendor_dir}/bin"}
        return data

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        manifest_config: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> "Config":
        """
        Build configuration from a manifest ``config`` mapping and the environment.

        Environment variables:
        - COMPOSER: manifest filename
        - COMPOSER_VENDOR_DIR: vendor directory
        - COMPOSER_BIN_DIR: binaries directory
        - COMPOSER_CACHE_DIR: artifact cache directory
        - COMPOSER_PROCESS_TIMEOUT: external command timeout in seconds
        - HTTP_PROXY / http_proxy: proxy for downloads

        Args:
            environ: Environment mapping (defaults to os.environ)
            manifest_config: The manifest's ``config`` object (``vendor-dir``, ``bin-dir``, ...)
            **overrides: Explicit field values, applied last

        Returns:
            Config instance

        Example:
            >>> config = Config.from_environment({"COMPOSER_VENDOR_DIR": "libs"})
            >>> config.bin_dir
            'libs/bin'
        """
        environ = os.environ if environ is None else environ
        manifest_config = manifest_config or {}

        vendor_dir = environ.get("COMPOSER_VENDOR_DIR") or manifest_config.get("vendor-dir") or "vendor"
        bin_dir = environ.get("COMPOSER_BIN_DIR") or manifest_config.get("bin-dir")
        cache_dir = environ.get("COMPOSER_CACHE_DIR") or manifest_config.get("cache-dir")

        data: dict[str, Any] = {
            "vendor_dir": vendor_dir,
            "bin_dir": bin_dir,
            "manifest_file": environ.get("COMPOSER") or DEFAULT_MANIFEST,
            "cache_dir": Path(cache_dir).expanduser() if cache_dir else None,
            "http_proxy": environ.get("HTTP_PROXY") or environ.get("http_proxy") or None,
        }

        timeout = environ.get("COMPOSER_PROCESS_TIMEOUT") or manifest_config.get("process-timeout")
        if timeout is not None:
            try:
                data["process_timeout"] = float(timeout)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid process timeout: {timeout!r}", context={"process_timeout": timeout}
                ) from e

        if "github-protocols" in manifest_config:
            data["vcs_protocols"] = tuple(manifest_config["github-protocols"])

        data.update(overrides)
        return cls(**data)

    @staticmethod
    def load_manifest_config(manifest_path: Path) -> dict[str, Any]:
        """
        Read the ``config`` object of a JSON manifest.

        Raises:
            ConfigurationError: If the manifest is missing or not valid JSON
        """
        if not manifest_path.exists():
            raise ConfigurationError(
                f"Could not find the manifest file: {manifest_path}",
                context={"manifest_file": str(manifest_path)},
            )
        try:
            with open(manifest_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{manifest_path} does not contain valid JSON: {e}") from e

        config = data.get("config", {}) if isinstance(data, dict) else {}
        if not isinstance(config, dict):
            logger.warning(f"Ignoring non-object 'config' section in {manifest_path}")
            return {}
        return config

    @property
    def lock_file(self) -> str:
        """Lock filename derived from the manifest filename (``composer.json`` -> ``composer.lock``)."""
        if self.manifest_file.endswith(".json"):
            return self.manifest_file[: -len(".json")] + ".lock"
        return self.manifest_file + ".lock"

    @property
    def installed_repository_file(self) -> Path:
        return Path(self.vendor_dir) / ".composer" / "installed.json"

    @property
    def staging_root(self) -> Path:
        """Scratch space for archive extraction."""
        return Path(self.vendor_dir) / "composer"
