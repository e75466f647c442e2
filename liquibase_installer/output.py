#!/usr/bin/env python3
"""
Liquibase Installer Output
Leveled, coloured console messages shared by every installer stage
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape


class Reporter:
    """
    Leveled console reporter.

    Info and success lines go to stdout; warnings, errors and verbose
    tracing go to stderr so that piped output stays clean.
    """

    def __init__(self, verbose: bool = False, console: Optional[Console] = None,
                 err_console: Optional[Console] = None):
        self.verbose_enabled = verbose
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def info(self, message: str):
        self.console.print(f"[blue]\\[INFO][/blue] {escape(message)}", soft_wrap=True)

    def success(self, message: str):
        self.console.print(f"[green]\\[SUCCESS][/green] {escape(message)}", soft_wrap=True)

    def warn(self, message: str):
        self.err_console.print(f"[yellow]\\[WARN][/yellow] {escape(message)}", soft_wrap=True)

    def error(self, message: str):
        self.err_console.print(f"[red]\\[ERROR][/red] {escape(message)}", soft_wrap=True)

    def verbose(self, message: str):
        """Print a tracing line, only in verbose mode"""
        if self.verbose_enabled:
            self.err_console.print(f"[blue]\\[VERBOSE][/blue] {escape(message)}", soft_wrap=True)


# Global reporter instance
_reporter: Optional[Reporter] = None


def get_reporter() -> Reporter:
    """Get the shared reporter, creating a quiet one on first use"""
    global _reporter
    if _reporter is None:
        _reporter = Reporter()
    return _reporter


def configure_reporter(verbose: bool = False) -> Reporter:
    """Replace the shared reporter (called once by the CLI)"""
    global _reporter
    _reporter = Reporter(verbose=verbose)
    return _reporter
