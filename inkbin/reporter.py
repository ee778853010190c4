"""Collection of compiler warnings and errors."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CompilationResults:
    """Warnings and errors produced while compiling a story."""

    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class CriticalCompilationError(Exception):
    """A compilation error that stops compilation."""


class Reporter:
    """Base for compiler components that report diagnostics.

    Messages are recorded only while a results object is attached;
    otherwise they are dropped.
    """

    _results: CompilationResults | None = None

    def __init__(self) -> None:
        self._results = None

    def set_results(self, results: CompilationResults | None) -> None:
        """Attach the object that receives reported messages."""
        self._results = results

    def clear_results(self) -> None:
        """Detach the results object."""
        self._results = None

    def warn(self, message: str) -> None:
        """Record a warning."""
        if self._results is not None:
            self._results.warnings.append(message)

    def err(self, message: str) -> None:
        """Record an error."""
        if self._results is not None:
            self._results.errors.append(message)

    def crit(self, message: str) -> None:
        """Record an error and abort compilation when results are attached."""
        if self._results is not None:
            self._results.errors.append(message)
            raise CriticalCompilationError(f"CRITICAL ERROR: {message}")