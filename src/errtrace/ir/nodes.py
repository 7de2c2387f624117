from __future__ import annotations

from typing import Iterator
from functools import cached_property
from dataclasses import field, dataclass

from errtrace.ir import types
from errtrace.source import SourceInfo
from errtrace.exception import MalformedIRError
from errtrace.ir.values import Value, GlobalRef, Parameter, Instruction


@dataclass(eq=False)
class Store(Instruction):
    addr: Value
    val: Value
    pos: SourceInfo | None = field(default=None, kw_only=True)

    def operands(self) -> tuple[Value, ...]:
        return (self.addr, self.val)

    def __str__(self) -> str:
        return f"store {self.val.ref} -> {self.addr.ref}"


@dataclass(eq=False)
class Return(Instruction):
    results: tuple[Value, ...] = ()
    pos: SourceInfo | None = field(default=None, kw_only=True)

    def operands(self) -> tuple[Value, ...]:
        return tuple(self.results)

    def __str__(self) -> str:
        if not self.results:
            return "return"
        return "return " + ", ".join(v.ref for v in self.results)


@dataclass(eq=False)
class Jump(Instruction):
    target: Block
    pos: SourceInfo | None = field(default=None, kw_only=True)

    def operands(self) -> tuple[Value, ...]:
        return ()

    def __str__(self) -> str:
        return f"jump {self.target.label}"


@dataclass(eq=False)
class If(Instruction):
    cond: Value
    then_block: Block
    else_block: Block
    pos: SourceInfo | None = field(default=None, kw_only=True)

    def operands(self) -> tuple[Value, ...]:
        return (self.cond,)

    def __str__(self) -> str:
        return (
            f"if {self.cond.ref} then {self.then_block.label} "
            f"else {self.else_block.label}"
        )


@dataclass(eq=False)
class Block:
    index: int
    label: str = ""
    instrs: list[Instruction] = field(default_factory=list, repr=False)
    parent: Function | None = field(default=None, repr=False)
    dominated: list[Block] | None = field(default=None, repr=False)
    """Immediately dominated blocks as supplied by the IR adapter, if any."""

    def append(self, instr: Instruction) -> Instruction:
        instr.block = self
        self.instrs.append(instr)
        return instr

    @property
    def last_instr(self) -> Instruction | None:
        return self.instrs[-1] if self.instrs else None

    @property
    def successors(self) -> list[Block]:
        last = self.last_instr
        if isinstance(last, Jump):
            return [last.target]
        if isinstance(last, If):
            return [last.then_block, last.else_block]
        return []

    def dominees(self) -> list[Block]:
        """Blocks immediately dominated by this one."""
        if self.dominated is not None:
            return self.dominated
        if self.parent is None:
            raise MalformedIRError(
                f"block {self.label or self.index} has no parent function", node=self
            )
        return self.parent.cfg.dominees.get(self, [])

    def __repr__(self) -> str:
        return f"Block({self.index}, {self.label!r})"


@dataclass(eq=False)
class Function:
    name: str
    module: str
    signature: types.Signature
    params: list[Parameter] = field(default_factory=list)
    blocks: list[Block] = field(default_factory=list, repr=False)
    recover: Block | None = field(default=None, repr=False)
    """Synthesized recovery block, never part of the dominator-tree walk."""
    pos: SourceInfo | None = None

    @property
    def qualname(self) -> str:
        return f"{self.module}.{self.name}" if self.module else self.name

    @property
    def entry(self) -> Block | None:
        return self.blocks[0] if self.blocks else None

    def new_block(self, label: str = "") -> Block:
        block = Block(len(self.blocks), label or f"b{len(self.blocks)}", parent=self)
        self.blocks.append(block)
        return block

    def instructions(self) -> Iterator[Instruction]:
        for block in self.blocks:
            yield from block.instrs

    @cached_property
    def cfg(self):
        from errtrace.analysis.cfg import CFG

        return CFG(self)


@dataclass
class Unit:
    """One compilation unit handed over by an IR adapter."""

    functions: list[Function] = field(default_factory=list)
    globals: dict[str, GlobalRef] = field(default_factory=dict)
    types: dict[str, types.Named] = field(default_factory=dict)
    file: str | None = None
