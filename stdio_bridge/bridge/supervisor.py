"""
Child Process Supervisor

Owns the stdio child: spawns it, pumps its stdout into the bridge, forwards
its stderr verbatim to ours, serializes writes to its stdin and terminates it
on shutdown.

The child is never restarted. When it exits, the exit is logged and later
writes fail with ChildNotRunningError.
"""

import asyncio
import signal
import sys
from contextlib import suppress
from typing import Callable, Optional

from stdio_bridge.configs.constants import STDOUT_CHUNK_SIZE
from stdio_bridge.configs.logging import get_logger
from stdio_bridge.exceptions import ChildNotRunningError, ChildStartError

logger = get_logger("supervisor")


def _write_stderr(data: bytes) -> None:
    stream = getattr(sys.stderr, "buffer", None)
    if stream is not None:
        stream.write(data)
    else:
        # Replaced stderr (e.g. under pytest capture) has no byte buffer
        sys.stderr.write(data.decode("utf-8", errors="replace"))
    sys.stderr.flush()


class ChildSupervisor:
    """Manages the single stdio child process of a bridge run."""

    def __init__(
        self,
        command: str,
        args: Optional[list[str]] = None,
        on_stdout: Optional[Callable[[bytes], None]] = None,
        shutdown_grace: float = 5,
        env: Optional[dict[str, str]] = None,
    ):
        self._argv = [command, *(args or [])]
        self._on_stdout = on_stdout
        self._shutdown_grace = shutdown_grace
        self._env = env
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._stdout_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()
        self._stopping = False

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid if self._proc is not None else None

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode if self._proc is not None else None

    @property
    def alive(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    async def start(self) -> None:
        """
        Spawn the child with piped stdio.

        Raises:
            ChildStartError: The executable is missing or cannot be run
        """
        if self._proc is not None:
            return

        logger.info(f"Starting stdio child: {' '.join(self._argv)}")
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self._argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
        except OSError as e:
            raise ChildStartError(f"Failed to start stdio child: {e}", self._argv) from e

        logger.info(f"Stdio child running (pid={self._proc.pid})")
        self._stdout_task = asyncio.create_task(self._pump_stdout(), name="child-stdout")
        self._stderr_task = asyncio.create_task(self._forward_stderr(), name="child-stderr")

    async def write(self, data: bytes) -> None:
        """
        Write one encoded frame to the child's stdin.

        Frames from concurrent callers never interleave.

        Raises:
            ChildNotRunningError: The child is gone or its stdin is closed
        """
        async with self._write_lock:
            if not self.alive or self._proc.stdin is None:
                raise ChildNotRunningError(
                    "Stdio child is not running", {"returncode": self.returncode}
                )
            try:
                self._proc.stdin.write(data)
                await self._proc.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                raise ChildNotRunningError(f"Stdio child closed its stdin: {e}") from e

    async def terminate(self) -> None:
        """Send SIGTERM, wait for the grace period, then kill."""
        self._stopping = True
        proc = self._proc
        if proc is not None and proc.returncode is None:
            logger.info(f"Stopping stdio child (pid={proc.pid})")
            with suppress(ProcessLookupError):
                proc.send_signal(signal.SIGTERM)
            try:
                await asyncio.wait_for(proc.wait(), timeout=self._shutdown_grace)
            except asyncio.TimeoutError:
                logger.warning(f"Stdio child ignored SIGTERM for {self._shutdown_grace}s, killing")
                with suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()

        for task in (self._stdout_task, self._stderr_task):
            if task is not None and not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

    async def _pump_stdout(self) -> None:
        """Feed stdout chunks to the bridge in arrival order until EOF."""
        reader = self._proc.stdout
        while True:
            chunk = await reader.read(STDOUT_CHUNK_SIZE)
            if not chunk:
                break
            if self._on_stdout is not None:
                try:
                    self._on_stdout(chunk)
                except Exception:
                    logger.exception("Failed to dispatch child output")

        returncode = await self._proc.wait()
        if self._stopping:
            logger.info(f"Stdio child exited with code {returncode}")
        else:
            logger.warning(f"Stdio child exited unexpectedly with code {returncode}; not restarting")

    async def _forward_stderr(self) -> None:
        """Copy child stderr to our stderr without interpretation."""
        reader = self._proc.stderr
        while True:
            chunk = await reader.read(STDOUT_CHUNK_SIZE)
            if not chunk:
                break
            _write_stderr(chunk)
