from dataclasses import dataclass

import lark


@dataclass(frozen=True)
class SourceInfo:
    lineno: int
    col_offset: int = 0
    file: str | None = None

    @classmethod
    def from_lark_tree(cls, node: lark.Tree, file: str | None = None):
        return cls(node.meta.line, node.meta.column, file)

    def __str__(self) -> str:
        return f"{self.file or '<unknown>'}:{self.lineno}:{self.col_offset}"


def format_pos(pos: SourceInfo | None) -> str:
    if pos is None:
        return "-"
    return str(pos)
