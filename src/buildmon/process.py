"""External command runner.

Commands run as asyncio subprocesses with a bounded timeout and always come
back as a CommandResult: a non-zero exit or a timeout is data, not an
exception. Only a command that cannot be started raises.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import buildmon.errors as errors

logger = logging.getLogger(__name__)

TERMINATE_GRACE = 5.0  # seconds between terminate() and kill()


@dataclass
class CommandResult:
    """Outcome of one external command."""

    args: list[str]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout and stderr joined, in that order."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    @property
    def command(self) -> str:
        return " ".join(self.args)


@dataclass
class _Collected:
    chunks: list[bytes] = field(default_factory=list)

    def text(self) -> str:
        return b"".join(self.chunks).decode(errors="replace")


async def _drain(stream: asyncio.StreamReader | None, sink: _Collected) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(8192)
        if not chunk:
            break
        sink.chunks.append(chunk)


async def _stop(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    proc.terminate()
    try:
        await asyncio.wait_for(proc.wait(), timeout=TERMINATE_GRACE)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()


async def run_command(
    args: Sequence[str],
    cwd: Path | str | None = None,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run ``args`` and capture its output.

    Args:
        args: Program and arguments (no shell).
        cwd: Working directory.
        timeout: Seconds before the process is terminated. None waits forever.
        env: Full environment for the child. None inherits ours.

    Returns:
        CommandResult. ``timed_out`` is set and ``returncode`` is whatever the
        terminated process reported when the timeout fires.

    Raises:
        CommandError: If the program cannot be started.
    """
    argv = [str(a) for a in args]
    command = " ".join(argv)
    started = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise errors.CommandError(command, str(e)) from e

    stdout, stderr = _Collected(), _Collected()
    timed_out = False
    try:
        await asyncio.wait_for(
            asyncio.gather(_drain(proc.stdout, stdout), _drain(proc.stderr, stderr), proc.wait()),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("'%s' timed out after %ss, terminating", command, timeout)
        timed_out = True
        await _stop(proc)
    except asyncio.CancelledError:
        await _stop(proc)
        raise

    return CommandResult(
        args=argv,
        returncode=proc.returncode,
        stdout=stdout.text(),
        stderr=stderr.text(),
        timed_out=timed_out,
        duration_ms=int((time.monotonic() - started) * 1000),
    )


def run(
    args: Sequence[str],
    cwd: Path | str | None = None,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Blocking wrapper around :func:`run_command`."""
    return asyncio.run(run_command(args, cwd=cwd, timeout=timeout, env=env))
