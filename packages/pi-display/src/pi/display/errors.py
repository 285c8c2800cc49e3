"""Error taxonomy for display rendering and display-region updates.

A bundle with no renderable type is not an error: the registry logs a warning
and reports that nothing was handled. Content a strategy inserted before
raising stays in the document; there is no rollback.
"""

from __future__ import annotations


class DisplayError(RuntimeError):
    """Base class for display errors."""


class UnknownDisplayIdError(DisplayError, KeyError):
    """An update named a display id that was never inserted."""

    def __init__(self, display_id: str) -> None:
        super().__init__(f"Display ID not found ({display_id})")
        self.display_id = display_id

    def __str__(self) -> str:
        return self.args[0]


class DisplayNotFoundError(DisplayError):
    """The display id is known but no occurrence is left in the document."""

    def __init__(self, display_id: str) -> None:
        super().__init__(f"No display matching id ({display_id})")
        self.display_id = display_id


class RenderError(DisplayError):
    """A renderer could not handle malformed content."""


class ConversionError(RenderError):
    """An external conversion process exited abnormally."""

    def __init__(self, program: str, exit_code: int, stderr: str = "") -> None:
        message = f"{program} exited with code {exit_code}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
        self.program = program
        self.exit_code = exit_code
        self.stderr = stderr
