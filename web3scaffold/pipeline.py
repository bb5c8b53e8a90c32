"""web3scaffold pipeline orchestrator.

Drives one scaffolding run through a small state machine:

    IDLE -> RESOLVING_OPTIONS -> DISPATCHING -> EXECUTING -> SUCCEEDED | FAILED

Options are resolved (prompting where needed), the template registry turns
them into an ordered step sequence, and the steps are executed one at a
time.  The first failing step ends the run; nothing is retried or rolled
back.

Usage::

    web3scaffold create my-dapp
    web3scaffold create my-dapp --framework nextjs --package-manager pnpm
    python -m web3scaffold create --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import BlockchainTooling, Config, Framework, PackageManager
from .errors import AbortedError, ScaffoldError, StepError
from .options import OptionsResolver, ProjectOptions
from .scaffolder.invoker import ProcessInvoker
from .scaffolder.registry import SITE_PACKAGE, steps_for
from .scaffolder.steps import GenerationStep, RunCommand
from .scaffolder.writer import FileSystemWriter
from .utils import (
    check_url_reachable,
    console,
    find_executable,
    format_duration,
    print_error,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    repository_web_url,
)


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 130


class PipelineState(str, Enum):
    """Lifecycle of a single run."""
    IDLE = "idle"
    RESOLVING_OPTIONS = "resolving_options"
    DISPATCHING = "dispatching"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RunResult:
    """Outcome of :meth:`Pipeline.run`."""

    state: PipelineState
    options: ProjectOptions | None = None
    steps: tuple[GenerationStep, ...] = ()
    completed: int = 0
    failed_index: int | None = None
    error: Exception | None = None
    dry_run: bool = False
    duration: float = 0.0
    history: list[PipelineState] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is PipelineState.SUCCEEDED


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Scaffolding pipeline orchestrator.

    Attributes:
        config: Global configuration.
        resolver: Produces the ``ProjectOptions`` for the run.
        writer: Executes filesystem steps below ``config.output_dir``.
        invoker: Executes ``RunCommand`` steps below ``config.output_dir``.
        state: Current ``PipelineState``.
    """

    def __init__(
        self,
        config: Config,
        resolver: OptionsResolver | None = None,
        writer: Any = None,
        invoker: Any = None,
    ) -> None:
        self.config = config
        self.resolver = resolver or OptionsResolver(
            tooling_enabled=config.enable_blockchain_tooling
        )
        self.writer = writer or FileSystemWriter(config.output_dir)
        self.invoker = invoker or ProcessInvoker(
            config.output_dir, timeout=config.command_timeout
        )
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [self.state]

    def _transition(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(
        self,
        raw_arg: str | None = None,
        *,
        framework: str | Framework | None = None,
        package_manager: str | PackageManager | None = None,
        dry_run: bool = False,
    ) -> RunResult:
        """Execute one scaffolding run.

        Args:
            raw_arg: Project name from the command line, if any.
            framework: Pre-selected framework (skips the prompt).
            package_manager: Pre-selected package manager (skips the prompt).
            dry_run: Resolve and print the step plan without executing it.

        Returns:
            A ``RunResult``; ``state`` is ``SUCCEEDED`` or ``FAILED``.
        """
        started = time.monotonic()
        result = RunResult(state=self.state, history=self.history)

        self._transition(PipelineState.RESOLVING_OPTIONS)
        try:
            options = self.resolver.resolve(
                raw_arg, framework=framework, package_manager=package_manager
            )
        except ScaffoldError as exc:
            return self._fail(result, exc, started)
        result.options = options

        self._transition(PipelineState.DISPATCHING)
        try:
            steps = self.dispatch(options)
        except ScaffoldError as exc:
            return self._fail(result, exc, started)
        result.steps = steps

        self._print_banner(options, steps, dry_run)
        if dry_run:
            self._print_plan(steps)
            result.dry_run = True
            self._transition(PipelineState.SUCCEEDED)
            result.state = self.state
            result.duration = time.monotonic() - started
            return result

        # An existing project directory fails at step 1; skip the slow checks.
        if self.config.preflight and not self._project_dir(options).exists():
            await self._preflight(steps)

        self._transition(PipelineState.EXECUTING)
        total = len(steps)
        for index, step in enumerate(steps):
            try:
                await self._execute(step)
            except ScaffoldError as exc:
                result.failed_index = index
                return self._fail(result, StepError(index, step, exc), started)
            except Exception as exc:
                result.failed_index = index
                console.print(traceback.format_exc(), style="dim", markup=False)
                return self._fail(result, StepError(index, step, exc), started)
            result.completed = index + 1
            print_step(index + 1, total, step.describe())

        self._transition(PipelineState.SUCCEEDED)
        result.state = self.state
        result.duration = time.monotonic() - started
        self._print_final_summary(result)
        return result

    async def plan(
        self,
        raw_arg: str | None = None,
        *,
        framework: str | Framework | None = None,
        package_manager: str | PackageManager | None = None,
    ) -> RunResult:
        """Resolve options and print the step plan without executing it."""
        return await self.run(
            raw_arg, framework=framework, package_manager=package_manager, dry_run=True
        )

    def dispatch(self, options: ProjectOptions) -> tuple[GenerationStep, ...]:
        """Select the registry entry for *options* and return its steps."""
        return steps_for(options, options.project_name)

    def _project_dir(self, options: ProjectOptions) -> Path:
        return self.config.output_dir / options.project_name

    async def _execute(self, step: GenerationStep) -> None:
        """Hand a single step to the invoker or the writer."""
        if isinstance(step, RunCommand):
            await self.invoker.run(step.command, step.cwd)
        else:
            await self.writer.execute(step)

    def _fail(self, result: RunResult, exc: Exception, started: float) -> RunResult:
        self._transition(PipelineState.FAILED)
        result.state = self.state
        result.error = exc
        result.duration = time.monotonic() - started
        if isinstance(exc, AbortedError):
            print_warning(str(exc))
        else:
            print_error(f"Project creation failed: {exc}")
            if isinstance(exc, StepError) and exc.index > 0 and result.options is not None:
                print_warning(
                    f"The partially created project was left in "
                    f"{self._project_dir(result.options)}"
                )
        return result

    # ------------------------------------------------------------------
    # Pre-flight checks
    # ------------------------------------------------------------------

    async def _preflight(self, steps: tuple[GenerationStep, ...]) -> None:
        """Warn about missing executables and unreachable template repositories.

        Nothing here stops the run; the step that needs the missing piece
        fails with its own error.
        """
        commands = [step for step in steps if isinstance(step, RunCommand)]

        executables = sorted({step.command[0] for step in commands})
        missing = [name for name in executables if find_executable(name) is None]
        if missing:
            print_warning(f"  Not found on PATH: {', '.join(missing)}")

        urls = sorted({
            arg for step in commands for arg in step.command if arg.startswith("https://")
        })
        for url in urls:
            reachable = await check_url_reachable(
                repository_web_url(url), timeout=self.config.network_timeout
            )
            if not reachable:
                print_warning(f"  Template repository unreachable: {url}")

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _print_banner(
        self, options: ProjectOptions, steps: tuple[GenerationStep, ...], dry_run: bool
    ) -> None:
        mode = " (dry run)" if dry_run else ""
        console.print(
            Panel(
                f"Project         : {escape(options.project_name)}\n"
                f"Framework       : {options.framework.value}\n"
                f"Package manager : {options.package_manager.value}\n"
                f"Tooling         : {options.blockchain_tooling.value}\n"
                f"Output          : {escape(str(self.config.output_dir.resolve()))}\n"
                f"Steps           : {len(steps)}",
                title=f"[bold]Creating project{mode}[/bold]",
                border_style="bright_cyan",
                highlight=False,
            )
        )

    def _print_plan(self, steps: tuple[GenerationStep, ...]) -> None:
        table = Table(title="Generation plan", show_header=True, header_style="bold cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Kind")
        table.add_column("Action")
        for index, step in enumerate(steps, start=1):
            table.add_row(str(index), step.kind, step.describe())
        console.print(table)

    def _print_final_summary(self, result: RunResult) -> None:
        options = result.options
        assert options is not None
        print_success(
            f"Project {options.project_name} created in {format_duration(result.duration)}"
        )
        site = options.project_name
        if options.blockchain_tooling is not BlockchainTooling.NONE:
            site = f"{site}/{SITE_PACKAGE}"
        pm = options.package_manager.value
        print_summary_table(
            {
                "Steps executed": str(result.completed),
                "1.": f"cd {site}",
                "2.": f"{pm} install",
                "3.": f"{pm} run dev",
            },
            title="Next steps",
        )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Return the ``argparse`` parser for the ``web3scaffold`` command."""

    parser = argparse.ArgumentParser(
        prog="web3scaffold",
        description="Scaffold a web3 dapp project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  web3scaffold create\n"
            "  web3scaffold create my-dapp --framework nextjs --package-manager pnpm\n"
            "  web3scaffold create my-dapp --dry-run\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a new project")
    create.add_argument(
        "project_name",
        nargs="?",
        default=None,
        help="Project directory name (prompted for when omitted)",
    )
    create.add_argument(
        "--framework",
        choices=[f.value for f in Framework],
        default=None,
        help="Framework to use (prompted for when omitted)",
    )
    create.add_argument(
        "--package-manager",
        choices=[p.value for p in PackageManager],
        default=None,
        help="Package manager to use (prompted for when omitted)",
    )
    create.add_argument(
        "--output", "-o",
        default=None,
        help="Directory to create the project in (default: current directory)",
    )
    create.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the generation plan without creating anything",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``web3scaffold`` and ``python -m web3scaffold``."""
    from pydantic import ValidationError as ConfigValidationError

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
    except (ConfigValidationError, ValueError) as exc:
        print_error(f"Invalid configuration: {exc}")
        sys.exit(EXIT_FAILED)
    if args.output:
        config.output_dir = Path(args.output)

    pipeline = Pipeline(config)
    try:
        result = asyncio.run(
            pipeline.run(
                args.project_name,
                framework=args.framework,
                package_manager=args.package_manager,
                dry_run=args.dry_run,
            )
        )
    except KeyboardInterrupt:
        print_warning("Interrupted.")
        sys.exit(EXIT_ABORTED)

    if result.success:
        sys.exit(EXIT_OK)
    if isinstance(result.error, AbortedError):
        sys.exit(EXIT_ABORTED)
    sys.exit(EXIT_FAILED)


if __name__ == "__main__":
    main()
