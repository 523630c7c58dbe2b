"""JSON file access for persisted repository state."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .exceptions import RepositoryError

logger = logging.getLogger(__name__)


class JsonFile:
    """Read and write one JSON document (with injected path)."""

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Any:
        """
        Load the document.

        Raises:
            RepositoryError: If the file is missing or not valid JSON
        """
        try:
            with open(self.path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RepositoryError(
                f"Could not read {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e

    def write(self, data: Any) -> None:
        """Write the document via a temporary file and atomic replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=4)
                f.write("\n")
            os.replace(temp_name, self.path)
        except OSError as e:
            Path(temp_name).unlink(missing_ok=True)
            raise RepositoryError(
                f"Could not write {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e

        logger.debug(f"Saved {self.path}")
