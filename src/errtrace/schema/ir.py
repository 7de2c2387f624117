"""Interchange format of compilation units.

Types are written as type strings, e.g. `error`, `*a.T`, `[]error`,
`map[int]error` or `(error, string)`; values are referred to by name:
`%t0` for locals and parameters, `@a.g` for globals and functions.
"""

from typing import Literal

from pydantic import BaseModel

Op = Literal[
    "make_interface",
    "change_type",
    "phi",
    "call",
    "call_builtin",
    "call_dynamic",
    "invoke",
    "extract",
    "lookup",
    "load",
    "alloc",
    "field_addr",
    "index_addr",
    "field",
    "index",
    "slice",
    "const",
    "op",
    "store",
    "jump",
    "if",
    "return",
]


class Position(BaseModel):
    line: int
    column: int = 0
    file: str | None = None


class MethodDecl(BaseModel):
    name: str
    params: list[str] = []
    results: list[str] = []
    pointer: bool = False
    """Declared on the pointer receiver."""


class TypeDecl(BaseModel):
    name: str
    """Fully-qualified type name."""
    interface: bool = False
    methods: list[MethodDecl] = []


class GlobalDecl(BaseModel):
    name: str
    type: str
    """Type of the variable; the global itself is a pointer to it."""


class Param(BaseModel):
    name: str
    type: str


class Instruction(BaseModel):
    op: Op
    result: str | None = None
    """Name of the defined value, without the `%`."""
    args: list[str] = []
    type: str | None = None
    callee: str | None = None
    """Qualified callee of `call`/`invoke`, builtin name of `call_builtin`,
    generic operation name of `op`."""
    index: int | None = None
    value: str | int | float | bool | None = None
    """Literal of `const`; absent means nil."""
    targets: list[str] = []
    """Block labels of `jump` and `if`."""
    pos: Position | None = None


class Block(BaseModel):
    label: str
    instrs: list[Instruction] = []
    dominees: list[str] | None = None
    """Labels of the immediately dominated blocks, computed if absent."""


class Function(BaseModel):
    name: str
    """Fully-qualified function name."""
    params: list[Param] = []
    results: list[str] = []
    blocks: list[Block] = []
    recover: Block | None = None
    pos: Position | None = None


class Unit(BaseModel):
    file: str | None = None
    types: list[TypeDecl] = []
    globals: list[GlobalDecl] = []
    functions: list[Function] = []
