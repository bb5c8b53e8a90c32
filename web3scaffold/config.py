"""web3scaffold configuration.

Runtime settings live in a Pydantic v2 model so they are validated once at
start-up and can be overridden from environment variables.  The choice
tables offered by the interactive prompts are static, read-only data that
is loaded with the module and never mutated afterwards.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, NamedTuple

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Framework(str, Enum):
    """Frontend framework of the generated site."""
    NEXTJS = "nextjs"
    REACT = "react"


class PackageManager(str, Enum):
    """JavaScript package manager the project is set up for."""
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class BlockchainTooling(str, Enum):
    """Smart-contract toolchain placed next to the site in a monorepo."""
    NONE = "none"
    HARDHAT = "hardhat"
    FOUNDRY = "foundry"


# ---------------------------------------------------------------------------
# Choice tables
# ---------------------------------------------------------------------------

class Choice(NamedTuple):
    """A prompt label and the enum value it selects."""

    name: str
    value: Enum


FRAMEWORK_CHOICES: tuple[Choice, ...] = (
    Choice("Next.js", Framework.NEXTJS),
    Choice("React", Framework.REACT),
)

PACKAGE_MANAGER_CHOICES: tuple[Choice, ...] = (
    Choice("npm", PackageManager.NPM),
    Choice("yarn", PackageManager.YARN),
    Choice("pnpm", PackageManager.PNPM),
)

BLOCKCHAIN_TOOLING_CHOICES: tuple[Choice, ...] = (
    Choice("None", BlockchainTooling.NONE),
    Choice("HardHat", BlockchainTooling.HARDHAT),
    Choice("Foundry", BlockchainTooling.FOUNDRY),
)


class TemplateRepository(NamedTuple):
    """A starter repository cloned by the generation pipeline."""

    name: str
    repo_url: str
    package_name: str


TEMPLATE_REPOSITORIES: MappingProxyType[str, TemplateRepository] = MappingProxyType({
    "react-web3-starter": TemplateRepository(
        name="React Web3 Starter",
        repo_url="https://github.com/Consensys/react-web3-starter.git",
        package_name="@consensys/react-web3-starter",
    ),
    "hardhat-template": TemplateRepository(
        name="Hardhat Template",
        repo_url="https://github.com/Consensys/hardhat-template.git",
        package_name="hardhat-project",
    ),
})


# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------

_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Global web3scaffold configuration.

    Created once by the CLI entry point and passed to the ``Pipeline``.
    """

    output_dir: Path = Field(
        default=Path("."), description="Directory the project folder is created in"
    )
    enable_blockchain_tooling: bool = Field(
        default=False,
        description="Offer the HardHat/Foundry monorepo layouts in the prompts",
    )
    command_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Per-command timeout in seconds (no timeout when unset)",
    )
    preflight: bool = Field(
        default=True, description="Check executables and template URLs before running"
    )
    network_timeout: float = Field(
        default=5.0, gt=0, description="Timeout for template repository probes"
    )

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            W3S_OUTPUT_DIR, W3S_ENABLE_BLOCKCHAIN_TOOLING,
            W3S_COMMAND_TIMEOUT, W3S_PREFLIGHT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("W3S_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["W3S_OUTPUT_DIR"])
        if os.environ.get("W3S_ENABLE_BLOCKCHAIN_TOOLING"):
            kwargs["enable_blockchain_tooling"] = (
                os.environ["W3S_ENABLE_BLOCKCHAIN_TOOLING"].strip().lower() in _TRUTHY
            )
        if os.environ.get("W3S_COMMAND_TIMEOUT"):
            kwargs["command_timeout"] = int(os.environ["W3S_COMMAND_TIMEOUT"])
        if os.environ.get("W3S_PREFLIGHT"):
            kwargs["preflight"] = os.environ["W3S_PREFLIGHT"].strip().lower() in _TRUTHY
        return cls(**kwargs)
