"""Rich console helpers for terminal output."""

from typing import Any

from rich.console import Console as RichConsole
from rich.markup import escape


class Console:
    """Wrapper around rich.Console with convenience methods.

    Reports go to stdout; diagnostics (errors, warnings, info) go to stderr
    so that piped reports stay clean.
    """

    def __init__(self) -> None:
        self._console = RichConsole(highlight=False, emoji=False, soft_wrap=True)
        self._err_console = RichConsole(
            stderr=True, highlight=False, emoji=False, soft_wrap=True
        )
        self._json_mode = False

    def set_json_mode(self, enabled: bool) -> None:
        """Enable or disable JSON mode (suppresses rich output)."""
        self._json_mode = enabled

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Print to console (suppressed in JSON mode)."""
        if not self._json_mode:
            self._console.print(*args, **kwargs)

    def print_text(self, text: str) -> None:
        """Print text verbatim, without markup interpretation."""
        if not self._json_mode:
            self._console.print(escape(text))

    def print_error(self, message: str) -> None:
        """Print an error message in red.

        Errors are shown in JSON mode too, on stderr.
        """
        self._err_console.print(f"[red]✗[/red] {escape(message)}")

    def print_info(self, message: str) -> None:
        """Print an info message in blue."""
        if not self._json_mode:
            self._err_console.print(f"[blue]ℹ[/blue] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message in yellow."""
        if not self._json_mode:
            self._err_console.print(f"[yellow]⚠[/yellow] {escape(message)}")


# Global console instance
console = Console()
