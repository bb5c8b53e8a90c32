"""Generation step models.

A scaffolding run is an ordered tuple of steps.  Each step is one atomic
filesystem or process action; paths are POSIX-style and relative to the
run's base (output) directory.
"""

from __future__ import annotations

import shlex
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True)


class WriteFile(_Step):
    """Write *content* to *path*, replacing any existing file."""
    kind: Literal["write_file"] = "write_file"
    path: str
    content: str

    def describe(self) -> str:
        return f"write {self.path}"


class MakeDirectory(_Step):
    """Create *path*; with ``recursive`` parents are created and an existing directory is accepted."""
    kind: Literal["make_directory"] = "make_directory"
    path: str
    recursive: bool = True

    def describe(self) -> str:
        return f"create directory {self.path}"


class RunCommand(_Step):
    """Run an external command from *cwd*."""
    kind: Literal["run_command"] = "run_command"
    command: tuple[str, ...]
    cwd: str = "."

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)

    def describe(self) -> str:
        return f"run `{self.command_line}` in {self.cwd}"


class MergeJSON(_Step):
    """Shallow-merge *patch* into top-level *key* of a JSON file (the root when ``key`` is None)."""
    kind: Literal["merge_json"] = "merge_json"
    path: str
    key: str | None = None
    patch: dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        target = f"'{self.key}' in " if self.key else ""
        return f"merge {target}{self.path}"


class RemovePath(_Step):
    """Remove a file, or a directory tree when ``recursive`` is set."""
    kind: Literal["remove_path"] = "remove_path"
    path: str
    recursive: bool = False

    def describe(self) -> str:
        return f"remove {self.path}"


GenerationStep = Annotated[
    Union[WriteFile, MakeDirectory, RunCommand, MergeJSON, RemovePath],
    Field(discriminator="kind"),
]

FILESYSTEM_STEPS = (WriteFile, MakeDirectory, MergeJSON, RemovePath)
