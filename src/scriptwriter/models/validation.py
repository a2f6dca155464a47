from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandPattern:
    """One permitted command shape in the allowlist grammar."""

    pattern: re.Pattern[str]
    description: str

    def matches(self, command: str) -> bool:
        return self.pattern.match(command) is not None


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A rejected (sub-)command and the 1-based line it came from."""

    line_number: int
    command: str
    in_chain: bool = False

    @property
    def message(self) -> str:
        where = "Command not allowed in chain" if self.in_chain else "Command not allowed"
        return f"Line {self.line_number}: {where}: '{self.command}'"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.diagnostics

    @property
    def errors(self) -> list[str]:
        return [d.message for d in self.diagnostics]
