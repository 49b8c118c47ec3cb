"""
Console output for the CLI: colored status lines and a spinner while long
steps (scanning, each database pass) run.
"""

import sys
from contextlib import contextmanager
from typing import Optional

from yaspin import yaspin
from yaspin.spinners import Spinners


class Display:
    """Centralized display manager for CLI output."""

    # ANSI color codes
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RESET = '\033[0m'

    def __init__(self, color: Optional[bool] = None):
        if color is None:
            color = sys.stdout.isatty()
        self.color = color

    def _paint(self, code: str, text: str) -> str:
        return f"{code}{text}{self.RESET}" if self.color else text

    @contextmanager
    def spinner(self, status: str):
        """
        Display an animated spinner with status text.

        Usage:
            with display.spinner("Validating origin database..."):
                engine.validate(...)
        """
        if not self.color:
            print(status)
            yield None
            return
        sp = yaspin(Spinners.dots, text=status, color="cyan")
        sp.start()
        try:
            yield sp
        finally:
            sp.stop()

    def success(self, message: str):
        print(self._paint(self.GREEN, f"✓ {message}"))

    def warning(self, message: str):
        print(self._paint(self.YELLOW, f"⚠ {message}"))

    def error(self, message: str):
        print(self._paint(self.RED, f"✗ {message}"))

    def header(self, text: str):
        print(f"\n{self._paint(self.BOLD + self.BLUE, f'# {text}')}\n")

    def subheader(self, text: str):
        print(f"\n{self._paint(self.BOLD, f'## {text}')}\n")

    def metric(self, label: str, value: str, note: Optional[str] = None):
        """
        Display a metric, optionally followed by a highlighted note.

        Example:
            origin: 0 failure(s) out of 12 (passed)
        """
        line = f"{self._paint(self.DIM, label + ':')} {value}"
        if note:
            line += f" {self._paint(self.GREEN, note)}"
        print(line)

    def result_line(self, passed: bool, text: str, detail: Optional[str] = None):
        """One OK/FAIL line per validated statement."""
        if passed:
            print(f"{self._paint(self.GREEN, 'OK  ')} {text}")
        else:
            print(f"{self._paint(self.RED, 'FAIL')} {text}")
            if detail:
                print(f"     {self._paint(self.DIM, detail)}")

    def newline(self):
        print()
