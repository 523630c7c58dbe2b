"""Solver operations consumed by the InstallationManager.

Operations are immutable instructions. The solver creates them, the
InstallationManager executes each exactly once.
"""

from typing import ClassVar

from pydantic import BaseModel
from pydantic import ConfigDict

from .package import Package


class Operation(BaseModel):
    """Base operation (tagged by ``job_type``)."""

    model_config = ConfigDict(frozen=True)

    job_type: ClassVar[str] = ""

    reason: str | None = None


class InstallOperation(Operation):
    job_type: ClassVar[str] = "install"

    package: Package

    def __str__(self) -> str:
        return f"Installing {self.package.name} ({self.package.full_pretty_version})"


class UpdateOperation(Operation):
    job_type: ClassVar[str] = "update"

    initial_package: Package
    target_package: Package

    def __str__(self) -> str:
        return (
            f"Updating {self.initial_package.name} ({self.initial_package.full_pretty_version})"
            f" to {self.target_package.name} ({self.target_package.full_pretty_version})"
        )


class UninstallOperation(Operation):
    job_type: ClassVar[str] = "uninstall"

    package: Package

    def __str__(self) -> str:
        return f"Uninstalling {self.package.name} ({self.package.full_pretty_version})"
