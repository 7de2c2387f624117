from __future__ import annotations

from typing import TypeVar
from dataclasses import field, dataclass

from typing_extensions import Self

from errtrace.ir import types
from errtrace.ir.nodes import If, Jump, Block, Store, Return, Function
from errtrace.source import SourceInfo
from errtrace.ir.values import (
    Call,
    Alloc,
    Merge,
    Other,
    Value,
    SliceOf,
    MapLookup,
    MethodRef,
    Parameter,
    TypeChange,
    Dereference,
    StructField,
    SliceElement,
    TupleExtract,
    InterfaceWrap,
    StructFieldAddr,
    SliceElementAddr,
)
from errtrace.exception import MalformedIRError

ValueType = TypeVar("ValueType", bound=Value)


@dataclass
class FunctionBuilder:
    """Append-only construction of a `Function`.

    Values created without a name are numbered `t0`, `t1`, ... in creation
    order, and every instruction goes to the current block.
    """

    function: Function
    current: Block | None = None
    next_id: int = field(default=0, init=False)

    @classmethod
    def new(
        cls,
        qualname: str,
        params: list[tuple[str, types.Type]] | None = None,
        results: list[types.Type] | None = None,
        *,
        pos: SourceInfo | None = None,
    ) -> Self:
        module, name = types.split_qualname(qualname)
        params = params or []
        results = results or []
        signature = types.Signature(
            tuple(typ for _, typ in params), tuple(results)
        )
        function = Function(name, module, signature, pos=pos)
        function.params = [Parameter(typ, name=pname) for pname, typ in params]
        return cls(function)

    def param(self, name: str) -> Parameter:
        for param in self.function.params:
            if param.name == name:
                return param
        raise KeyError(name)

    def block(self, label: str = "") -> Block:
        """Start a new block and make it current."""
        self.current = self.function.new_block(label)
        return self.current

    def recover_block(self, label: str = "recover") -> Block:
        block = Block(-1, label, parent=self.function)
        self.function.recover = block
        self.current = block
        return block

    def goto(self, block: Block) -> Block:
        self.current = block
        return block

    def push(self, value: ValueType) -> ValueType:
        if self.current is None:
            raise MalformedIRError("no current block to append to")
        if not value.name:
            value.name = f"t{self.next_id}"
            self.next_id += 1
        self.current.append(value)  # type: ignore[arg-type]
        return value

    def _instr(self, instr):
        if self.current is None:
            raise MalformedIRError("no current block to append to")
        return self.current.append(instr)

    # values

    def make_interface(
        self, x: Value, typ: types.Type = types.Error, **kwargs
    ) -> InterfaceWrap:
        return self.push(InterfaceWrap(typ, x, **kwargs))

    def change_type(self, x: Value, typ: types.Type, **kwargs) -> TypeChange:
        return self.push(TypeChange(typ, x, **kwargs))

    def phi(
        self, edges: list[Value], typ: types.Type = types.Error, **kwargs
    ) -> Merge:
        return self.push(Merge(typ, list(edges), **kwargs))

    def call(
        self, callee: Value, *args: Value, typ: types.Type = types.Error, **kwargs
    ) -> Call:
        return self.push(Call(typ, callee, tuple(args), **kwargs))

    def invoke(
        self,
        receiver: Value,
        method: MethodRef,
        *args: Value,
        typ: types.Type = types.Error,
        **kwargs,
    ) -> Call:
        return self.push(Call(typ, receiver, tuple(args), method, **kwargs))

    def extract(
        self, tup: Value, index: int, typ: types.Type | None = None, **kwargs
    ) -> TupleExtract:
        if typ is None:
            if not isinstance(tup.type, types.Tuple):
                raise MalformedIRError(f"cannot extract from {tup.type}", node=tup)
            typ = tup.type.elems[index]
        return self.push(TupleExtract(typ, tup, index, **kwargs))

    def lookup(
        self, x: Value, key: Value, typ: types.Type | None = None, **kwargs
    ) -> MapLookup:
        if typ is None:
            typ = x.type.elem if isinstance(x.type, types.Map) else types.Error
        return self.push(MapLookup(typ, x, key, **kwargs))

    def load(self, addr: Value, typ: types.Type | None = None, **kwargs) -> Dereference:
        if typ is None:
            if not isinstance(addr.type, types.Pointer):
                raise MalformedIRError(f"cannot load from {addr.type}", node=addr)
            typ = addr.type.elem
        return self.push(Dereference(typ, addr, **kwargs))

    def alloc(self, elem: types.Type, **kwargs) -> Alloc:
        return self.push(Alloc(types.Pointer(elem), **kwargs))

    def field_addr(
        self, x: Value, index: int, typ: types.Type = types.Pointer(types.Error), **kwargs
    ) -> StructFieldAddr:
        return self.push(StructFieldAddr(typ, x, index, **kwargs))

    def index_addr(
        self, x: Value, index: Value, typ: types.Type = types.Pointer(types.Error), **kwargs
    ) -> SliceElementAddr:
        return self.push(SliceElementAddr(typ, x, index, **kwargs))

    def field(
        self, x: Value, index: int, typ: types.Type = types.Error, **kwargs
    ) -> StructField:
        return self.push(StructField(typ, x, index, **kwargs))

    def index(
        self, x: Value, index: Value, typ: types.Type = types.Error, **kwargs
    ) -> SliceElement:
        return self.push(SliceElement(typ, x, index, **kwargs))

    def slice(self, x: Value, typ: types.Type, **kwargs) -> SliceOf:
        return self.push(SliceOf(typ, x, **kwargs))

    def op(self, opname: str, *args: Value, typ: types.Type, **kwargs) -> Other:
        return self.push(Other(typ, opname, tuple(args), **kwargs))

    # control flow and effects

    def store(self, addr: Value, val: Value, **kwargs) -> Store:
        return self._instr(Store(addr, val, **kwargs))

    def ret(self, *results: Value, **kwargs) -> Return:
        return self._instr(Return(tuple(results), **kwargs))

    def jump(self, target: Block, **kwargs) -> Jump:
        return self._instr(Jump(target, **kwargs))

    def branch(self, cond: Value, then_block: Block, else_block: Block, **kwargs) -> If:
        return self._instr(If(cond, then_block, else_block, **kwargs))
