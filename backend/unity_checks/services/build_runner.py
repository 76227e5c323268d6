import asyncio
import sys
from pathlib import Path
from typing import Protocol, Union


class BuildRunner(Protocol):
    async def run(self, log_path: Path) -> int:
        ...


class ShellBuildRunner:
    """Runs the build command, teeing its output into the allocated log.

    `run` returns only after the process has exited and the log is closed,
    so the file is complete by the time anyone parses it.
    """

    def __init__(self, command: str, echo: bool = True):
        self._command = command
        self._echo = echo

    async def run(self, log_path: Union[str, Path]) -> int:
        print(f"[build] {self._command}")
        proc = await asyncio.create_subprocess_shell(
            self._command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            limit=1024 * 1024,
        )
        with open(log_path, "wb") as fp:
            while True:
                chunk = await proc.stdout.readline()
                if not chunk:
                    break
                fp.write(chunk)
                if self._echo:
                    sys.stdout.write(chunk.decode("utf-8", errors="replace"))
        exit_code = await proc.wait()
        print(f"[build] exited with {exit_code}")
        return exit_code
