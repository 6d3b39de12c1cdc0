"""Error types raised by the squareblur pipeline.

Every error is terminal for one invocation; the CLI prints it and exits with
the class' ``exit_code``.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple


class SquareBlurError(Exception):
    exit_code = 1


class IoError(SquareBlurError):
    """File read, write or backup failure."""

    exit_code = 3


class DecodeError(SquareBlurError):
    """Image data could not be decoded."""

    exit_code = 4


class ClipboardError(SquareBlurError):
    """No image on the clipboard, or the clipboard could not be reached."""

    exit_code = 5

    def __init__(
        self,
        message: str,
        methods_tried: Iterable[Tuple[str, str]] = (),
        remediation: str = "",
    ):
        self.message = message
        self.methods_tried: List[Tuple[str, str]] = list(methods_tried)
        self.remediation = remediation
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message]
        if self.methods_tried:
            lines.append("Methods attempted:")
            for method, error in self.methods_tried:
                lines.append(f"  - {method}: {error}")
        if self.remediation:
            lines.append(f"Remediation: {self.remediation}")
        return "\n".join(lines)


class ConfigError(SquareBlurError):
    """Settings file is unreadable or invalid."""

    exit_code = 6
