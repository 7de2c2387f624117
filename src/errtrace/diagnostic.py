from enum import Enum
from typing import Protocol
from dataclasses import field, dataclass

from rich.console import Console

from errtrace.source import SourceInfo, format_pos


class Finding(Enum):
    WRONG_CONCRETE_TYPE = "wrong-concrete-type"
    UNTRUSTED_MODULE = "untrusted-module-origin"
    UNTRUSTED_BUILTIN = "untrusted-builtin-origin"
    DYNAMIC_DISPATCH = "dynamic-dispatch-unresolved"
    MAP_LOOKUP = "unverifiable-map-origin"
    GLOBAL = "unverifiable-global-origin"
    STRUCT_FIELD = "unverifiable-struct-field"
    SLICE_ELEMENT = "unverifiable-slice-element"
    PARAMETER = "unverifiable-parameter"
    UNSUPPORTED = "unsupported-construct"


@dataclass(frozen=True)
class Diagnostic:
    pos: SourceInfo | None
    message: str
    finding: Finding | None = None

    def __str__(self) -> str:
        return f"{format_pos(self.pos)}: {self.message}"


class Reporter(Protocol):
    """Receiver of diagnostics. Must not raise and must not deduplicate."""

    def report(
        self, pos: SourceInfo | None, message: str, finding: Finding | None = None
    ) -> None: ...


@dataclass
class DiagnosticList:
    """Collects diagnostics in the order they are reported."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    def report(
        self, pos: SourceInfo | None, message: str, finding: Finding | None = None
    ) -> None:
        self.diagnostics.append(Diagnostic(pos, message, finding))

    @property
    def messages(self) -> list[str]:
        return [d.message for d in self.diagnostics]

    def __len__(self) -> int:
        return len(self.diagnostics)

    def __iter__(self):
        return iter(self.diagnostics)


@dataclass
class ConsoleReporter:
    """Prints each diagnostic as soon as it is reported."""

    console: Console = field(default_factory=lambda: Console(stderr=True))
    count: int = 0

    def report(
        self, pos: SourceInfo | None, message: str, finding: Finding | None = None
    ) -> None:
        self.count += 1
        self.console.print(
            f"[bold]{format_pos(pos)}[/bold]: ",
            end="",
            highlight=False,
            soft_wrap=True,
        )
        self.console.print(
            message, markup=False, highlight=False, end="", soft_wrap=True
        )
        if finding is not None:
            self.console.print(f" [dim]({finding.value})[/dim]", highlight=False)
        else:
            self.console.print(highlight=False)
