import io
from typing import IO, Callable, Generic, TypeVar, Iterable
from contextlib import contextmanager
from dataclasses import field, dataclass

from rich.console import Console

from errtrace import ir


@dataclass
class ColorScheme:
    keyword: str = "dark_blue"
    type: str = "bright_black"
    label: str = "bold"
    comment: str = "dim"


IOType = TypeVar("IOType", bound=IO)


@dataclass(init=False)
class Printer(Generic[IOType]):
    """Rich-console printer for functions and units."""

    stream: IOType | None = None
    console: Console = field(default_factory=Console)
    color: ColorScheme = field(default_factory=ColorScheme)
    indent: int = 0
    show_dominees: bool = True
    "Whether to annotate each block with the blocks it immediately dominates"

    def __init__(self, stream: IOType | None = None, show_dominees: bool = True):
        self.stream = stream
        self.console = Console(file=self.stream, highlight=False)
        self.color = ColorScheme()
        self.indent = 0
        self.show_dominees = show_dominees

    def emit(self, node) -> None:
        if isinstance(node, ir.Unit):
            self.emit_Unit(node)
        elif isinstance(node, ir.Function):
            self.emit_Function(node)
        elif isinstance(node, ir.Block):
            self.emit_Block(node)
        else:
            self.plain_print(str(node))

    def emit_Unit(self, unit: ir.Unit) -> None:
        for typ in unit.types.values():
            self.emit_Named(typ)
            self.print_newline()
        for glob in unit.globals.values():
            self.plain_print("global ", style=self.color.keyword)
            elem = glob.type.elem if isinstance(glob.type, ir.types.Pointer) else glob.type
            self.plain_print(f"{glob.qualname} : ")
            self.plain_print(str(elem), style=self.color.type)
            self.print_newline()
        for idx, function in enumerate(unit.functions):
            if idx > 0 or unit.types or unit.globals:
                self.print_newline()
            self.emit_Function(function)

    def emit_Named(self, typ: ir.types.Named) -> None:
        self.plain_print("type ", style=self.color.keyword)
        self.plain_print(typ.qualname)
        if typ.interface:
            self.plain_print(" interface", style=self.color.keyword)
        methods = [str(m) for m in typ.methods] + [f"*{m}" for m in typ.pointer_methods]
        self.print_seq(methods, emit=self.plain_print, prefix=" { ", suffix=" }")

    def emit_Function(self, function: ir.Function) -> None:
        self.plain_print("func ", style=self.color.keyword)
        self.plain_print(function.qualname)
        self.print_seq(
            function.params,
            emit=lambda p: self.plain_print(f"{p.ref}: {p.type}"),
            prefix="(",
            suffix=")",
        )
        results = function.signature.results
        if len(results) == 1:
            self.plain_print(f" {results[0]}", style=self.color.type)
        elif results:
            self.plain_print(
                " (" + ", ".join(map(str, results)) + ")", style=self.color.type
            )
        self.plain_print(" {")
        self.print_newline()
        for block in function.blocks:
            self.emit_Block(block)
        if function.recover is not None:
            self.emit_Block(function.recover)
        self.plain_print("}")
        self.print_newline()

    def emit_Block(self, block: ir.Block) -> None:
        marker = "!" if block.index < 0 else ""
        self.plain_print(f"{marker}{block.label}:", style=self.color.label)
        if self.show_dominees and block.parent is not None and block.index >= 0:
            dominees = block.dominees()
            if dominees:
                self.plain_print(
                    "  // dominates " + ", ".join(b.label for b in dominees),
                    style=self.color.comment,
                )
        self.print_newline()
        with self.indented():
            for instr in block.instrs:
                self.print_indent()
                self.plain_print(str(instr))
                if instr.pos is not None:
                    self.plain_print(
                        f" at {instr.pos.lineno}:{instr.pos.col_offset}",
                        style=self.color.comment,
                    )
                self.print_newline()

    def plain_print(self, *objects, sep="", end="", style=None, highlight=None):
        self.console.out(*objects, sep=sep, end=end, style=style, highlight=highlight)

    def print_newline(self):
        self.console.out("")

    def print_indent(self):
        self.plain_print(" " * self.indent)

    @contextmanager
    def indented(self, width: int = 2):
        self.indent += width
        try:
            yield
        finally:
            self.indent -= width

    @contextmanager
    def string_io(self):
        """Temporary redirect the output of the printer to a string buffer."""
        old_file = self.console.file
        stream = io.StringIO()
        self.console.file = stream
        try:
            yield stream
        finally:
            self.console.file = old_file
            stream.close()

    ElemType = TypeVar("ElemType")

    def print_seq(
        self,
        seq: Iterable[ElemType],
        *,
        emit: Callable[[ElemType], None] | None = None,
        delim: str = ", ",
        prefix: str = "",
        suffix: str = "",
        style=None,
        highlight=None,
    ) -> None:
        emit = emit or self.emit
        self.plain_print(prefix, style=style, highlight=highlight)
        for idx, item in enumerate(seq):
            if idx > 0:
                self.plain_print(delim)
            emit(item)
        self.plain_print(suffix, style=style, highlight=highlight)
