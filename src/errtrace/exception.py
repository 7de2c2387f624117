from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from errtrace.source import SourceInfo


class ErrtraceError(Exception):
    pass


class MalformedIRError(ErrtraceError):
    """Raised when the IR handed to the analyzer is missing or inconsistent."""

    def __init__(self, *messages: str, node: object = None) -> None:
        super().__init__(*messages)
        self.node = node


class IRParseError(ErrtraceError):
    def __init__(self, message: str, pos: "SourceInfo | None" = None) -> None:
        super().__init__(message)
        self.pos = pos

    def __str__(self) -> str:
        if self.pos is None:
            return self.args[0]
        return f"{self.pos}: {self.args[0]}"


class ConfigError(ErrtraceError):
    pass
