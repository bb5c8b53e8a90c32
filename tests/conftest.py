"""Shared pytest fixtures for the web3scaffold test suite.

Provides reusable fixtures for:
- An in-memory filesystem double that executes filesystem steps
- A fake process invoker that mimics the external scaffolding tools
- Scripted prompters for the options resolver
- Test configuration pointing at a temporary directory
"""

from __future__ import annotations

import json
import posixpath
from pathlib import Path
from typing import Any, Iterable
from unittest.mock import AsyncMock, MagicMock

import pytest

from web3scaffold.config import Config
from web3scaffold.errors import FileSystemError, ProcessError
from web3scaffold.options import ProjectOptions
from web3scaffold.scaffolder.invoker import CommandResult
from web3scaffold.scaffolder.steps import MakeDirectory, MergeJSON, RemovePath, WriteFile
from web3scaffold.scaffolder.writer import merge_manifest


# ---------------------------------------------------------------------------
# In-memory filesystem double
# ---------------------------------------------------------------------------

def _norm(path: str) -> str:
    return posixpath.normpath(path)


def _parent(path: str) -> str:
    return posixpath.dirname(path) or "."


class InMemoryFileSystem:
    """Filesystem model with the same ``execute`` contract as ``FileSystemWriter``.

    Directories and files are tracked as normalised POSIX paths relative to
    the base directory, which itself (``"."``) always exists.
    """

    def __init__(self) -> None:
        self.dirs: set[str] = {"."}
        self.files: dict[str, str] = {}
        self.executed: list[Any] = []

    # -- queries -------------------------------------------------------------

    def exists(self, path: str) -> bool:
        path = _norm(path)
        return path in self.files or path in self.dirs

    def is_dir(self, path: str) -> bool:
        return _norm(path) in self.dirs

    def read_json(self, path: str) -> Any:
        return json.loads(self.files[_norm(path)])

    # -- direct mutation used by the fake invoker ----------------------------

    def add_dir(self, path: str) -> None:
        path = _norm(path)
        while path not in self.dirs:
            self.dirs.add(path)
            path = _parent(path)

    def add_file(self, path: str, content: str = "") -> None:
        path = _norm(path)
        self.add_dir(_parent(path))
        self.files[path] = content

    # -- step execution ------------------------------------------------------

    async def execute(self, step: Any) -> None:
        self.executed.append(step)
        path = _norm(step.path)
        if isinstance(step, WriteFile):
            if _parent(path) not in self.dirs:
                raise FileSystemError(f"parent missing for {path}", path=path)
            self.files[path] = step.content
        elif isinstance(step, MakeDirectory):
            if path in self.files:
                raise FileSystemError(f"A file exists at {path}", path=path)
            if path in self.dirs:
                if not step.recursive:
                    raise FileSystemError(f"Directory already exists: {path}", path=path)
                return
            if not step.recursive and _parent(path) not in self.dirs:
                raise FileSystemError(f"parent missing for {path}", path=path)
            self.add_dir(path)
        elif isinstance(step, MergeJSON):
            if path not in self.files:
                raise FileSystemError(f"Manifest not found: {path}", path=path)
            self.files[path] = merge_manifest(self.files[path], step.key, step.patch, path=path)
        elif isinstance(step, RemovePath):
            if path in self.files:
                del self.files[path]
            elif path in self.dirs:
                children = [p for p in (*self.dirs, *self.files) if p.startswith(path + "/")]
                if children and not step.recursive:
                    raise FileSystemError(f"directory not empty: {path}", path=path)
                for child in children:
                    self.dirs.discard(child)
                    self.files.pop(child, None)
                self.dirs.discard(path)
            else:
                raise FileSystemError(f"Cannot remove {path}: not found", path=path)
        else:
            raise TypeError(f"unexpected step {step!r}")


# ---------------------------------------------------------------------------
# Fake process invoker
# ---------------------------------------------------------------------------

NEXT_PACKAGE_JSON = {
    "name": "placeholder",
    "version": "0.1.0",
    "private": True,
    "scripts": {"dev": "next dev --turbopack", "build": "next build"},
    "dependencies": {"next": "15.1.0", "react": "^19.0.0", "react-dom": "^19.0.0"},
}

NEXT_TSCONFIG = {
    "compilerOptions": {"strict": True, "paths": {"@/*": ["./src/*"]}},
    "include": ["**/*.ts", "**/*.tsx"],
}


class FakeProcessInvoker:
    """Stands in for ``ProcessInvoker``, applying each tool's effects to an
    :class:`InMemoryFileSystem`.

    ``fail_on`` names executables (``"git"``, ``"npx"`` ...) whose commands
    exit non-zero.
    """

    def __init__(self, fs: InMemoryFileSystem, fail_on: Iterable[str] = ()) -> None:
        self.fs = fs
        self.fail_on = set(fail_on)
        self.calls: list[tuple[tuple[str, ...], str]] = []

    async def run(self, command: tuple[str, ...], cwd: str = ".") -> CommandResult:
        command = tuple(command)
        self.calls.append((command, cwd))
        if command[0] in self.fail_on:
            raise ProcessError(
                f"Command failed (exit 1): {' '.join(command)}",
                command=" ".join(command),
                exit_code=1,
                stderr="boom",
            )
        if not self.fs.is_dir(cwd):
            raise ProcessError(f"cwd does not exist: {cwd}", command=" ".join(command))
        self._simulate(command, _norm(cwd))
        return CommandResult(exit_code=0, stdout="", stderr="")

    def _simulate(self, command: tuple[str, ...], cwd: str) -> None:
        fs = self.fs
        if command[:2] == ("npx", "create-next-app"):
            site = _norm(posixpath.join(cwd, command[2]))
            fs.add_file(f"{site}/package.json", json.dumps(NEXT_PACKAGE_JSON, indent=2))
            fs.add_file(f"{site}/tsconfig.json", json.dumps(NEXT_TSCONFIG, indent=2))
            for name in ("layout.tsx", "page.tsx", "globals.css"):
                fs.add_file(f"{site}/src/app/{name}", "// generated")
            fs.add_file(f"{site}/tailwind.config.ts", "// generated")
            fs.add_file(f"{site}/public/next.svg", "<svg/>")
        elif command[:2] == ("git", "clone"):
            dest = _norm(posixpath.join(cwd, command[-1]))
            fs.add_file(f"{dest}/.git/HEAD", "ref: refs/heads/main")
            fs.add_file(
                f"{dest}/package.json",
                json.dumps({"name": "@consensys/react-web3-starter", "private": True}),
            )
        elif command[:2] == ("npm", "init"):
            if "-w" in command:
                workspace = command[command.index("-w") + 1]
                package_dir = _norm(posixpath.join(cwd, workspace))
                fs.add_file(f"{package_dir}/package.json", "{}")
                fs.add_dir(f"{cwd}/node_modules/{posixpath.basename(package_dir)}")
            else:
                fs.add_file(f"{cwd}/package.json", json.dumps({"name": posixpath.basename(cwd)}))
        elif command[0] == "forge":
            fs.add_file(f"{cwd}/foundry.toml", "[profile.default]")


# ---------------------------------------------------------------------------
# Scripted prompter
# ---------------------------------------------------------------------------

class ScriptedPrompter:
    """Prompter that replays pre-supplied answers in order.

    An answer that is an exception instance is raised instead of returned.
    """

    def __init__(self, answers: Iterable[Any] = ()) -> None:
        self.answers = list(answers)
        self.questions: list[tuple[str, tuple[str, ...]]] = []

    def _next(self, message: str, choices: tuple[str, ...]) -> str:
        self.questions.append((message, choices))
        if not self.answers:
            raise AssertionError(f"unexpected prompt: {message}")
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    def ask_text(self, message: str) -> str:
        return self._next(message, ())

    def ask_choice(self, message: str, choices: Any) -> str:
        return self._next(message, tuple(choices))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_fs() -> InMemoryFileSystem:
    """Empty in-memory filesystem double."""
    return InMemoryFileSystem()


@pytest.fixture
def fake_invoker(memory_fs: InMemoryFileSystem) -> FakeProcessInvoker:
    """Fake process invoker bound to ``memory_fs``."""
    return FakeProcessInvoker(memory_fs)


@pytest.fixture
def prompter_factory():
    """Factory for :class:`ScriptedPrompter` instances.

    Usage:
        def test_resolve(prompter_factory):
            prompter = prompter_factory(["my-app", "Next.js", "npm"])
    """
    def factory(answers: Iterable[Any] = ()) -> ScriptedPrompter:
        return ScriptedPrompter(answers)

    return factory


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Config writing into ``tmp_path`` with pre-flight checks disabled."""
    return Config(output_dir=tmp_path, preflight=False)


@pytest.fixture
def nextjs_options() -> ProjectOptions:
    """Standalone Next.js project using npm."""
    return ProjectOptions(project_name="demo", framework="nextjs", package_manager="npm")


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
