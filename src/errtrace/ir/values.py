from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
from dataclasses import field, dataclass

from errtrace.ir import types
from errtrace.source import SourceInfo

if TYPE_CHECKING:
    from errtrace.ir.nodes import Block, Store


class Instruction(ABC):
    """Anything that lives inside a block.

    Instructions register themselves as referrers of their operands when
    constructed.
    """

    block: Block | None = None
    pos: SourceInfo | None

    @abstractmethod
    def operands(self) -> tuple[Value, ...]: ...

    def __post_init__(self) -> None:
        for operand in self.operands():
            operand.referrers.append(self)


@dataclass(eq=False)
class Value(ABC):
    """A node of the value-dependency graph.

    Values compare and hash by identity: two distinct nodes are never the
    same value even if they print the same.
    """

    type: types.Type
    name: str = field(default="", kw_only=True)
    pos: SourceInfo | None = field(default=None, kw_only=True)
    referrers: list[Instruction] = field(
        default_factory=list, init=False, repr=False, compare=False
    )

    @property
    def ref(self) -> str:
        """Short form used when this value appears as an operand."""
        return f"%{self.name}" if self.name else f"<{type(self).__name__}>"

    def describe(self) -> str:
        return self.ref

    def __str__(self) -> str:
        return self.describe()


def _assign(value: Value, text: str) -> str:
    return f"{value.ref} = {text} : {value.type}"


# values that are also instructions


@dataclass(eq=False)
class InterfaceWrap(Value, Instruction):
    """Box a concrete value into an interface."""

    x: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x,)

    def describe(self) -> str:
        return _assign(self, f"make_interface {self.x.ref}")


@dataclass(eq=False)
class TypeChange(Value, Instruction):
    x: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x,)

    def describe(self) -> str:
        return _assign(self, f"change_type {self.x.ref}")


@dataclass(eq=False)
class Merge(Value, Instruction):
    """Phi node. Edges may refer to values defined later on loop back-edges."""

    edges: list[Value] = field(default_factory=list)

    def operands(self) -> tuple[Value, ...]:
        return tuple(self.edges)

    def add_edge(self, value: Value) -> None:
        self.edges.append(value)
        value.referrers.append(self)

    def describe(self) -> str:
        return _assign(self, "phi [" + ", ".join(e.ref for e in self.edges) + "]")


@dataclass(frozen=True)
class MethodRef:
    name: str
    module: str
    """Module path of the type declaring the method."""

    @property
    def qualname(self) -> str:
        return f"{self.module}.{self.name}"


# call dispatch variants


@dataclass(frozen=True)
class Invoke:
    receiver: Value
    method: MethodRef


@dataclass(frozen=True)
class Direct:
    function: FunctionRef


@dataclass(frozen=True)
class Builtin:
    builtin: BuiltinRef


@dataclass(frozen=True)
class Unresolved:
    callee: Value


Dispatch = Invoke | Direct | Builtin | Unresolved


@dataclass(eq=False)
class Call(Value, Instruction):
    callee: Value
    """Function value, or the receiver when `method` is set."""
    args: tuple[Value, ...] = ()
    method: MethodRef | None = None

    def operands(self) -> tuple[Value, ...]:
        return (self.callee,) + tuple(self.args)

    @property
    def dispatch(self) -> Dispatch:
        if self.method is not None:
            return Invoke(self.callee, self.method)
        if isinstance(self.callee, FunctionRef):
            return Direct(self.callee)
        if isinstance(self.callee, BuiltinRef):
            return Builtin(self.callee)
        return Unresolved(self.callee)

    def common(self) -> str:
        args = ", ".join(arg.ref for arg in self.args)
        if self.method is not None:
            return f"invoke {self.callee.ref}.{self.method.name}({args})"
        return f"{self.callee.ref}({args})"

    def describe(self) -> str:
        return _assign(self, f"call {self.common()}")


@dataclass(eq=False)
class TupleExtract(Value, Instruction):
    tuple_value: Value
    index: int

    def operands(self) -> tuple[Value, ...]:
        return (self.tuple_value,)

    def describe(self) -> str:
        return _assign(self, f"extract {self.tuple_value.ref} {self.index}")


@dataclass(eq=False)
class MapLookup(Value, Instruction):
    x: Value
    key: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x, self.key)

    def describe(self) -> str:
        return _assign(self, f"lookup {self.x.ref} {self.key.ref}")


@dataclass(eq=False)
class Dereference(Value, Instruction):
    x: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x,)

    def describe(self) -> str:
        return _assign(self, f"load {self.x.ref}")


@dataclass(eq=False)
class Alloc(Value, Instruction):
    """Local allocation, typed as a pointer to the allocated cell."""

    def operands(self) -> tuple[Value, ...]:
        return ()

    def stores(self) -> list[Store]:
        """Every store writing into this allocation."""
        from errtrace.ir.nodes import Store

        return [
            instr
            for instr in self.referrers
            if isinstance(instr, Store) and instr.addr is self
        ]

    def describe(self) -> str:
        elem = self.type.elem if isinstance(self.type, types.Pointer) else self.type
        return f"{self.ref} = alloc {elem}"


@dataclass(eq=False)
class StructFieldAddr(Value, Instruction):
    x: Value
    field: int

    def operands(self) -> tuple[Value, ...]:
        return (self.x,)

    def describe(self) -> str:
        return _assign(self, f"field_addr {self.x.ref} {self.field}")


@dataclass(eq=False)
class SliceElementAddr(Value, Instruction):
    x: Value
    index: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x, self.index)

    def describe(self) -> str:
        return _assign(self, f"index_addr {self.x.ref} {self.index.ref}")


@dataclass(eq=False)
class StructField(Value, Instruction):
    x: Value
    field: int

    def operands(self) -> tuple[Value, ...]:
        return (self.x,)

    def describe(self) -> str:
        return _assign(self, f"field {self.x.ref} {self.field}")


@dataclass(eq=False)
class SliceElement(Value, Instruction):
    x: Value
    index: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x, self.index)

    def describe(self) -> str:
        return _assign(self, f"index {self.x.ref} {self.index.ref}")


@dataclass(eq=False)
class SliceOf(Value, Instruction):
    """Slice view of an array, e.g. the payload of a variadic call."""

    x: Value

    def operands(self) -> tuple[Value, ...]:
        return (self.x,)

    def describe(self) -> str:
        return _assign(self, f"slice {self.x.ref}")


@dataclass(eq=False)
class Other(Value, Instruction):
    """Any instruction the analysis has no rule for."""

    op: str
    args: tuple[Value, ...] = ()

    def operands(self) -> tuple[Value, ...]:
        return tuple(self.args)

    def describe(self) -> str:
        args = "".join(f" {arg.ref}" for arg in self.args)
        return _assign(self, f"op {self.op}{args}")


# values defined outside of any block


@dataclass(eq=False)
class Constant(Value):
    value: object = None
    """Literal value, `None` stands for nil."""

    @property
    def is_nil(self) -> bool:
        return self.value is None

    @property
    def ref(self) -> str:
        if self.value is None:
            return "nil"
        if isinstance(self.value, str):
            return '"' + self.value.replace("\\", "\\\\").replace('"', '\\"') + '"'
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return repr(self.value)

    def describe(self) -> str:
        return f"const {self.ref} : {self.type}"


@dataclass(eq=False)
class Parameter(Value):
    def describe(self) -> str:
        return f"parameter {self.ref} : {self.type}"


@dataclass(eq=False)
class GlobalRef(Value):
    """Address of a package-level variable."""

    module: str = ""

    @property
    def qualname(self) -> str:
        return f"{self.module}.{self.name}" if self.module else self.name

    @property
    def ref(self) -> str:
        return f"@{self.qualname}"


@dataclass(eq=False)
class FunctionRef(Value):
    module: str | None = None
    """Owning module path, None for synthesized functions without one."""

    @property
    def qualname(self) -> str:
        return f"{self.module}.{self.name}" if self.module else self.name

    @property
    def ref(self) -> str:
        return f"@{self.qualname}"


@dataclass(eq=False)
class BuiltinRef(Value):
    @property
    def ref(self) -> str:
        return f"builtin {self.name}"
