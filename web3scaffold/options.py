"""Project options resolution.

Turns the optional CLI argument plus interactive answers into a validated,
immutable :class:`ProjectOptions`.  Prompting goes through a small
``Prompter`` protocol so the resolution logic can be driven by scripted
answers in tests and by command-line flags in non-interactive use.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator
from rich.console import Console
from rich.prompt import Prompt

from .config import (
    BLOCKCHAIN_TOOLING_CHOICES,
    FRAMEWORK_CHOICES,
    PACKAGE_MANAGER_CHOICES,
    BlockchainTooling,
    Choice,
    Framework,
    PackageManager,
)
from .errors import AbortedError, ValidationError
from .utils import console


class ProjectOptions(BaseModel):
    """Resolved user choices for a single scaffolding run."""

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(..., description="Project directory name")
    framework: Framework = Field(default=Framework.NEXTJS)
    package_manager: PackageManager = Field(default=PackageManager.NPM)
    blockchain_tooling: BlockchainTooling = Field(default=BlockchainTooling.NONE)

    @field_validator("project_name")
    @classmethod
    def _single_path_segment(cls, value: str) -> str:
        return check_project_name(value)

    @property
    def is_monorepo(self) -> bool:
        """Whether the site lives under ``packages/site`` next to a contracts package."""
        return self.blockchain_tooling is not BlockchainTooling.NONE


def check_project_name(name: str | None) -> str:
    """Trim *name* and ensure it can be used as a single directory name.

    Raises:
        ValidationError: If the name is empty, is not a single path segment,
            or starts with "-" (it would be read as a command-line option).
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Project name cannot be empty")
    if "/" in cleaned or "\\" in cleaned or cleaned in (".", ".."):
        raise ValidationError(
            f"Project name '{cleaned}' must be a single directory name"
        )
    if cleaned.startswith("-"):
        raise ValidationError(f"Project name '{cleaned}' must not start with '-'")
    return cleaned


# ---------------------------------------------------------------------------
# Prompting
# ---------------------------------------------------------------------------

class Prompter(Protocol):
    """Interactive question source used by :class:`OptionsResolver`."""

    def ask_text(self, message: str) -> str: ...

    def ask_choice(self, message: str, choices: Sequence[str]) -> str: ...


class RichPrompter:
    """Prompter backed by ``rich.prompt.Prompt``."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def ask_text(self, message: str) -> str:
        return Prompt.ask(message, console=self.console)

    def ask_choice(self, message: str, choices: Sequence[str]) -> str:
        return Prompt.ask(
            message,
            choices=list(choices),
            default=choices[0],
            console=self.console,
        )


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class OptionsResolver:
    """Resolves :class:`ProjectOptions` from arguments and prompts.

    Values passed to :meth:`resolve` skip their prompt.  Blockchain tooling is
    only asked for when *tooling_enabled* is set; otherwise it resolves to
    ``BlockchainTooling.NONE``.
    """

    def __init__(self, prompter: Prompter | None = None, *, tooling_enabled: bool = False) -> None:
        self.prompter = prompter or RichPrompter()
        self.tooling_enabled = tooling_enabled

    def resolve(
        self,
        raw_arg: str | None = None,
        *,
        framework: str | Framework | None = None,
        package_manager: str | PackageManager | None = None,
        blockchain_tooling: str | BlockchainTooling | None = None,
    ) -> ProjectOptions:
        """Resolve and validate the options for one run.

        Raises:
            ValidationError: On a missing/invalid name or an unknown choice.
            AbortedError: If the user cancels a prompt.
        """
        name = raw_arg if raw_arg is not None else self._ask_text(
            "Please specify a name for your project"
        )
        project_name = check_project_name(name)

        if framework is None:
            fw = self._ask_choice(
                "Please select the framework you want to use", FRAMEWORK_CHOICES
            )
        else:
            fw = _coerce(Framework, framework, "framework")

        if blockchain_tooling is not None:
            tooling = _coerce(BlockchainTooling, blockchain_tooling, "blockchain tooling")
            if tooling is not BlockchainTooling.NONE and not self.tooling_enabled:
                raise ValidationError("Blockchain tooling is not enabled")
        elif self.tooling_enabled:
            tooling = self._ask_choice(
                "Would you like to use HardHat or Foundry?", BLOCKCHAIN_TOOLING_CHOICES
            )
        else:
            tooling = BlockchainTooling.NONE

        if package_manager is None:
            pm = self._ask_choice(
                "Please select the package manager you want to use",
                PACKAGE_MANAGER_CHOICES,
            )
        else:
            pm = _coerce(PackageManager, package_manager, "package manager")

        return ProjectOptions(
            project_name=project_name,
            framework=fw,
            package_manager=pm,
            blockchain_tooling=tooling,
        )

    # -- Prompt wrappers ----------------------------------------------------

    def _ask_text(self, message: str) -> str:
        try:
            return self.prompter.ask_text(message)
        except (KeyboardInterrupt, EOFError) as exc:
            raise AbortedError("Project creation cancelled") from exc

    def _ask_choice(self, message: str, choices: tuple[Choice, ...]) -> Enum:
        labels = [choice.name for choice in choices]
        try:
            answer = self.prompter.ask_choice(message, labels)
        except (KeyboardInterrupt, EOFError) as exc:
            raise AbortedError("Project creation cancelled") from exc
        for choice in choices:
            if choice.name == answer:
                return choice.value
        raise ValidationError(
            f"Unknown selection '{answer}' (expected one of: {', '.join(labels)})"
        )


def _coerce(enum_cls: type[Enum], value: str | Enum, label: str) -> Enum:
    """Convert a flag value to *enum_cls*, raising ``ValidationError`` if unknown."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Unknown {label} '{value}' (expected one of: {allowed})")
