"""Allowlist validation for generated install scripts.

A script may only run if every command in it matches one entry of a fixed
grammar of ``dotnet`` invocations. Lines may chain commands with ``&&``; each
sub-command is checked on its own. Adding a permitted command shape means
appending one ``CommandPattern`` to ``ALLOWED_COMMANDS``.

Quoted values may hold any text except a double quote, a backtick or ``$``;
those expand inside double quotes in both bash and PowerShell. Text that
needs ``$`` (a generated password, say) goes in single quotes, which both
shells treat as literal. Bare-word values may not contain quotes or shell
control characters and may not start with
``-``, which keeps every token unambiguous (flag or value) and matching
linear.
"""

from __future__ import annotations

import re

import structlog

from scriptwriter.models.validation import CommandPattern, Diagnostic, ValidationResult

log = structlog.get_logger()

COMMENT_PREFIX = "#"
CHAIN_OPERATOR = "&&"

_QUOTED = r'"[^"`$]+"'
_SINGLE_QUOTED = r"'[^']+'"
_BARE = r"""[^\s"'`$;|&<>()\-][^\s"'`$;|&<>()]*"""
_VALUE = rf"(?:{_QUOTED}|{_SINGLE_QUOTED}|{_BARE})"
_FLAG = r"(?:--[\w\-]+|-[a-zA-Z])"
_PACKAGE_ID = r"[\w.\-]+"


def _pattern(regex: str, description: str) -> CommandPattern:
    return CommandPattern(pattern=re.compile(regex, re.IGNORECASE), description=description)


ALLOWED_COMMANDS: tuple[CommandPattern, ...] = (
    # dotnet new install Umbraco.Templates::14.3.0 --force
    _pattern(
        r"^dotnet\s+new\s+install\s+[\w.\-:]+(?:\s+(?:--force|--interactive))*\s*$",
        "template installation",
    ),
    # dotnet new -i Umbraco.Templates::10.0.0
    _pattern(r"^dotnet\s+new\s+-i\s+[\w.\-:]+\s*$", "legacy template installation"),
    # dotnet new sln --name "MySolution"
    _pattern(rf"^dotnet\s+new\s+sln(?:\s+--name\s+{_QUOTED})*\s*$", "solution creation"),
    # dotnet new umbraco --force -n "MyProject" --development-database-type SQLite
    _pattern(
        rf"^dotnet\s+new\s+[\w\-]+(?:\s+{_FLAG}(?:\s+{_VALUE})?)*\s*$",
        "project creation from a template",
    ),
    # dotnet sln add "MyProject"
    _pattern(rf"^dotnet\s+sln\s+add\s+{_VALUE}\s*$", "add project to solution"),
    # dotnet add "MyProject" package uSync --version 14.0.0
    _pattern(
        rf"^dotnet\s+add(?:\s+{_VALUE})?\s+package\s+{_PACKAGE_ID}"
        rf"(?:\s+--version\s+{_PACKAGE_ID}|\s+--prerelease)*\s*$",
        "add package reference",
    ),
    # dotnet run --project "MyProject"
    _pattern(rf"^dotnet\s+run(?:\s+(?:--project|--urls)\s+{_VALUE})*\s*$", "run project"),
    # dotnet build "MyProject" --configuration Release
    _pattern(rf"^dotnet\s+build(?:\s+(?:{_FLAG}|{_VALUE}))*\s*$", "build project"),
    # dotnet restore
    _pattern(rf"^dotnet\s+restore(?:\s+(?:{_FLAG}|{_VALUE}))*\s*$", "restore packages"),
)

# Windows dialect preamble
_ECHO_OFF = "@echo off"
# $env:ASPNETCORE_ENVIRONMENT = "Development"
_ENV_ASSIGNMENT = re.compile(
    r"""^\$env:\w+\s*=\s*(?:"[^"`$]*"|'[^']*'|[^\s"'`$;|&<>()]+)\s*$""",
    re.IGNORECASE,
)


class CommandValidator:
    """Checks script text against the command allowlist.

    Stateless after construction and safe to share across tasks.
    """

    def __init__(self, patterns: tuple[CommandPattern, ...] = ALLOWED_COMMANDS) -> None:
        self._patterns = tuple(patterns)

    @property
    def patterns(self) -> tuple[CommandPattern, ...]:
        return self._patterns

    def validate(self, script: str, *, is_windows: bool) -> ValidationResult:
        """Validate every command in ``script``.

        Never raises for malformed script content; every rejected
        (sub-)command is reported with its 1-based line number.
        """
        if script is None:
            raise TypeError("script must be a string, not None")

        diagnostics: list[Diagnostic] = []

        for line_number, raw_line in enumerate(script.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith(COMMENT_PREFIX):
                continue

            if CHAIN_OPERATOR in line:
                commands = [part.strip() for part in line.split(CHAIN_OPERATOR)]
                chained = True
            else:
                commands = [line]
                chained = False

            for command in commands:
                if not command:
                    continue
                if not self.is_allowed(command, is_windows=is_windows):
                    diagnostics.append(
                        Diagnostic(line_number=line_number, command=command, in_chain=chained)
                    )
                    log.warning(
                        "command_blocked",
                        line_number=line_number,
                        command=command,
                        in_chain=chained,
                    )

        result = ValidationResult(diagnostics=tuple(diagnostics))
        if result.is_valid:
            log.info("script_validation_passed")
        else:
            log.warning("script_validation_failed", error_count=len(diagnostics))
        return result

    def is_allowed(self, command: str, *, is_windows: bool) -> bool:
        """Whether a single, already-trimmed command is permitted."""
        if is_windows and (
            command.lower() == _ECHO_OFF or _ENV_ASSIGNMENT.match(command) is not None
        ):
            return True
        return any(allowed.matches(command) for allowed in self._patterns)

    def describe(self, command: str) -> str | None:
        """Description of the first grammar entry ``command`` matches, if any."""
        for allowed in self._patterns:
            if allowed.matches(command):
                return allowed.description
        return None
