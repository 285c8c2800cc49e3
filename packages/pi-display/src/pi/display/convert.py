"""Format-to-format conversion through an external process (pandoc by default).

The process reads the source text on stdin and writes the converted text to
stdout. ``convert_async`` is the primitive; ``convert`` either schedules it
on the running event loop and reports through a callback, or blocks until the
process exits.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence

from pi.display.errors import ConversionError

logger = logging.getLogger(__name__)

# (source format, target format) -> program arguments
ArgsBuilder = Callable[[str, str], Sequence[str]]


def pandoc_args(source_format: str, target_format: str) -> list[str]:
    return ["-f", source_format, "-t", target_format]


class ExternalConverter:
    """Runs one conversion process per call. There is no cancellation."""

    def __init__(self, program: str = "pandoc", build_args: ArgsBuilder = pandoc_args) -> None:
        self.program = program
        self.build_args = build_args

    def available(self) -> bool:
        return shutil.which(self.program) is not None

    async def convert_async(self, source_format: str, target_format: str, text: str) -> str:
        """Convert *text*; raise ``ConversionError`` when the process exits non-zero."""
        proc = await asyncio.create_subprocess_exec(
            self.program,
            *self.build_args(source_format, target_format),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        stdout_bytes, stderr_bytes = await proc.communicate(text.encode("utf-8"))
        if proc.returncode != 0:
            raise ConversionError(
                self.program,
                proc.returncode if proc.returncode is not None else -1,
                stderr_bytes.decode(errors="replace"),
            )
        return stdout_bytes.decode("utf-8", errors="replace")

    def convert(
        self,
        source_format: str,
        target_format: str,
        text: str,
        callback: Callable[[str], None] | None = None,
    ) -> str | asyncio.Task[str]:
        """Convert *text* from *source_format* to *target_format*.

        Without *callback*, block until the process exits and return the
        result. This must not be called from a running event loop.

        With *callback*, schedule the conversion on the running event loop and
        return the task; *callback* receives the converted text. A failed
        conversion is logged and *callback* is not called.
        """
        if callback is None:
            return asyncio.run(self.convert_async(source_format, target_format, text))

        task = asyncio.get_running_loop().create_task(
            self.convert_async(source_format, target_format, text)
        )

        def _done(finished: asyncio.Task[str]) -> None:
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                logger.error("Conversion from %s to %s failed: %s", source_format, target_format, exc)
                return
            callback(finished.result())

        task.add_done_callback(_done)
        return task
