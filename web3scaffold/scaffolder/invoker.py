"""External command execution for ``RunCommand`` steps."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..errors import ProcessError
from ..utils import run_command


@dataclass
class CommandResult:
    """Captured outcome of an external command."""

    exit_code: int
    stdout: str
    stderr: str


class ProcessInvoker:
    """Runs scaffolding, package-manager and git commands.

    Working directories are relative to *base_dir*.  Any non-zero exit is
    reported as a :class:`ProcessError`; whether that ends the run is the
    pipeline's decision.
    """

    def __init__(self, base_dir: str | Path, timeout: float | None = None) -> None:
        self.base_dir = Path(base_dir)
        self.timeout = timeout

    async def run(self, command: tuple[str, ...] | list[str], cwd: str = ".") -> CommandResult:
        """Run *command* from *cwd* and return its captured output.

        Raises:
            ProcessError: If the command cannot be spawned or exits non-zero.
        """
        argv = list(command)
        cmd_str = " ".join(argv)
        workdir = self.base_dir / cwd

        try:
            exit_code, stdout, stderr = await run_command(
                argv, cwd=workdir, timeout=self.timeout
            )
        except OSError as exc:
            raise ProcessError(
                f"Could not start `{cmd_str}`: {exc}", command=cmd_str, stderr=str(exc)
            ) from exc

        if exit_code != 0:
            raise ProcessError(
                f"Command failed (exit {exit_code}): {cmd_str}\n{stderr}".rstrip(),
                command=cmd_str,
                exit_code=exit_code,
                stderr=stderr,
            )

        return CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr)
