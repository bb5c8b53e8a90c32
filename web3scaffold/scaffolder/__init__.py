"""web3scaffold scaffolder -- turns project options into filesystem and process steps.

Key pieces:
    steps_for         - Template registry: ordered steps for a ProjectOptions
    FileSystemWriter  - Executes write/mkdir/merge/remove steps
    ProcessInvoker    - Executes external commands
    TemplateRenderer  - Renders the packaged Jinja2 payloads
"""

from .invoker import CommandResult, ProcessInvoker
from .registry import steps_for, validate_steps
from .steps import (
    GenerationStep,
    MakeDirectory,
    MergeJSON,
    RemovePath,
    RunCommand,
    WriteFile,
)
from .templates import TemplateRenderer
from .writer import FileSystemWriter, merge_manifest

__all__ = [
    # Registry
    "steps_for",
    "validate_steps",
    # Steps
    "GenerationStep",
    "MakeDirectory",
    "MergeJSON",
    "RemovePath",
    "RunCommand",
    "WriteFile",
    # Executors
    "FileSystemWriter",
    "merge_manifest",
    "ProcessInvoker",
    "CommandResult",
    # Templates
    "TemplateRenderer",
]
