from typing import Iterable, List, Optional

from rich.console import Console
from rich.markup import escape

from masverify.logger import get_console, get_error_console
from masverify.src.core.checker import CheckResult, all_passed
from masverify.src.core.errors import IdentifierMismatchError, MasVerifyError


class ReportEmitter:
    """Prints check results and turns them into a process exit status.

    Pass and informational lines go to stdout, failures to stderr.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        error_console: Optional[Console] = None,
    ):
        self.console = console or get_console()
        self.error_console = error_console or get_error_console()

    def header(self, title: str, lines: Iterable[str] = ()) -> None:
        self.console.print(f"[bold]{escape(title)}[/]")
        for line in lines:
            self.console.print(f"   {escape(line)}")
        self.console.print()

    def info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ INFO:[/] {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠️  {escape(message)}[/]")

    def result(self, result: CheckResult, index: Optional[int] = None) -> None:
        # Numbered results get a title line on stdout, flat lists do not
        indent = "   " if index is not None else ""
        if index is not None:
            self.console.print(f"{index}. {escape(result.title)}")

        if result.skipped:
            self.console.print(f"{indent}[dim]⏭  SKIP: {escape(result.message)}[/]")
            return

        if result.passed:
            self.console.print(f"{indent}[green]✅ PASS:[/] {escape(result.message)}")
            for detail in result.details:
                self.console.print(f"{indent}   {escape(detail)}")
        else:
            self.error_console.print(
                f"{indent}[bold red]❌ FAIL:[/] {escape(result.message)}"
            )
            for detail in result.details:
                self.error_console.print(f"{indent}   {escape(detail)}")

    def results(self, results: List[CheckResult], numbered: bool = True) -> None:
        for index, result in enumerate(results, start=1):
            self.result(result, index if numbered else None)
            if numbered:
                self.console.print()

    def finish(
        self,
        results: List[CheckResult],
        success_message: str,
        failure_message: str,
        success_notes: Iterable[str] = (),
        remediation_hints: Iterable[str] = (),
    ) -> int:
        """Print the closing summary and return the exit status."""
        if all_passed(results):
            self.console.print(f"[bold green]✅ {escape(success_message)}[/]")
            notes = list(success_notes)
            if notes:
                self.console.print()
            for note in notes:
                self.console.print(f"  - {escape(note)}")
            return 0

        self.error_console.print(f"[bold red]❌ {escape(failure_message)}[/]")
        hints = list(remediation_hints)
        if hints:
            self.error_console.print("\nCommon issues:")
        for hint in hints:
            self.error_console.print(f"  - {escape(hint)}")
        return 1

    def counts(self, results: List[CheckResult]) -> int:
        passed = sum(1 for r in results if r.passed)
        failed = len(results) - passed
        self.console.print(f"\nSummary: {passed} passed, {failed} failed")
        return 1 if failed else 0

    def fatal(self, error: MasVerifyError) -> int:
        """Report an error that stops the run before any checks."""
        self.error_console.print(f"[bold red]❌ ERROR:[/] {escape(error.message)}")
        if isinstance(error, IdentifierMismatchError):
            self.error_console.print(f"   Expected: {escape(str(error.expected))}")
            self.error_console.print(f"   Found:    {escape(str(error.found))}")
        for searched in getattr(error, "searched", []):
            self.error_console.print(f"   Searched in: {escape(str(searched))}")
        for hint in error.hints:
            self.error_console.print(f"   {escape(hint)}")
        return 1
