"""
User-facing output sink.

Status lines ("Serving on ...", "Server restarted.") and fatal messages go
through a UI object rather than the logging module: they are meant for the
developer at the terminal, not for log aggregation.

Anything with ``write_line(str)`` and ``write_error(exc)`` can be used as a
UI; ``ConsoleUI`` is the default.
"""

import sys
import traceback
from typing import Optional, TextIO


class ConsoleUI:
    """Writes status lines to stdout and errors to stderr."""

    def __init__(self, stream: Optional[TextIO] = None, error_stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr

    def write_line(self, line: str = "") -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def write_error(self, error: BaseException) -> None:
        """
        Report an error.

        Silent errors (see ``errors.ServerError``) print their message only.
        Everything else prints the full traceback, including the chained
        cause, since it points at the code the developer has to fix.
        """
        self.error_stream.write(format_error(error))
        self.error_stream.flush()


def format_error(error: BaseException) -> str:
    """Render an error the way ``ConsoleUI.write_error`` prints it."""
    if getattr(error, "silent", False):
        return f"{error}\n"

    cause = error.__cause__
    lines = [f"{error}\n"]
    if cause is not None:
        lines.extend(traceback.format_exception(type(cause), cause, cause.__traceback__))
    else:
        lines.extend(traceback.format_exception(type(error), error, error.__traceback__))
    return "".join(lines)
