import os
import logging
import pathlib
from dataclasses import field, dataclass

import lark
import pydantic

from errtrace import ir
from errtrace.ir import types
from errtrace.parse import parse_type, parse_unit
from errtrace.schema import ir as schema
from errtrace.source import SourceInfo
from errtrace.exception import ErrtraceError, MalformedIRError

logger = logging.getLogger(__name__)


@dataclass
class TypeTable:
    """Resolves type strings against the types declared in a unit."""

    named: dict[str, types.Named] = field(default_factory=dict)
    cache: dict[str, types.Type] = field(default_factory=dict)

    def declare(self, decl: schema.TypeDecl) -> types.Named:
        module, name = types.split_qualname(decl.name)
        if not module:
            raise MalformedIRError(f"declared type {decl.name} has no module")
        typ = self.named.get(decl.name)
        if typ is None:
            typ = self.named[decl.name] = types.Named(module, name)
        typ.interface = decl.interface
        return typ

    def define_methods(self, decl: schema.TypeDecl) -> None:
        typ = self.named[decl.name]
        for method in decl.methods:
            sig = types.MethodSig(
                method.name,
                tuple(self.resolve(p) for p in method.params),
                tuple(self.resolve(r) for r in method.results),
            )
            if method.pointer:
                typ.pointer_methods.append(sig)
            else:
                typ.methods.append(sig)

    def resolve(self, text: str) -> types.Type:
        if text not in self.cache:
            self.cache[text] = self.build(parse_type(text))
        return self.cache[text]

    def build(self, tree: lark.Tree) -> types.Type:
        if tree.data == "named_type":
            return self.named_type(str(tree.children[0]))
        if tree.data == "pointer_type":
            return types.Pointer(self.build(tree.children[0]))
        if tree.data == "slice_type":
            return types.Slice(self.build(tree.children[0]))
        if tree.data == "map_type":
            key, elem = tree.children
            return types.Map(self.build(key), self.build(elem))
        if tree.data == "tuple_type":
            elems = tuple(self.build(child) for child in tree.children)
            return elems[0] if len(elems) == 1 else types.Tuple(elems)
        raise MalformedIRError(f"unknown type expression {tree.data}")

    def named_type(self, qualname: str) -> types.Type:
        if qualname in types.BASIC_TYPES:
            return types.BASIC_TYPES[qualname]
        if qualname in self.named:
            return self.named[qualname]

        module, name = types.split_qualname(qualname)
        if not module:
            return types.Basic(name)
        # referenced but not declared, e.g. a type of another unit
        logger.debug("type %s is not declared, assuming no methods", qualname)
        typ = self.named[qualname] = types.Named(module, name)
        return typ


@dataclass
class UnitLowering:
    """Builds the IR of a unit from its interchange schema."""

    file: str | None = None
    typetable: TypeTable = field(default_factory=TypeTable)
    globals: dict[str, ir.GlobalRef] = field(default_factory=dict)
    functions: dict[str, ir.FunctionRef] = field(default_factory=dict)

    def lower(self, unit: schema.Unit) -> ir.Unit:
        if unit.file is not None:
            self.file = unit.file

        for decl in unit.types:
            self.typetable.declare(decl)
        for decl in unit.types:
            self.typetable.define_methods(decl)

        for glob in unit.globals:
            module, name = types.split_qualname(glob.name)
            typ = types.Pointer(self.typetable.resolve(glob.type))
            self.globals[glob.name] = ir.GlobalRef(typ, name=name, module=module)

        for function in unit.functions:
            module, name = types.split_qualname(function.name)
            self.functions[function.name] = ir.FunctionRef(
                self.signature(function), name=name, module=module or None
            )

        lowered = [
            FunctionLowering(self, function).lower() for function in unit.functions
        ]
        logger.debug("lowered %d functions from %s", len(lowered), self.file)
        return ir.Unit(
            functions=lowered,
            globals=self.globals,
            types=dict(self.typetable.named),
            file=self.file,
        )

    def signature(self, function: schema.Function) -> types.Signature:
        return types.Signature(
            tuple(self.typetable.resolve(p.type) for p in function.params),
            tuple(self.typetable.resolve(r) for r in function.results),
        )

    def position(self, pos: schema.Position | None) -> SourceInfo | None:
        if pos is None:
            return None
        return SourceInfo(pos.line, pos.column, pos.file or self.file)

    def function_ref(self, qualname: str, result: types.Type) -> ir.FunctionRef:
        if qualname not in self.functions:
            module, name = types.split_qualname(qualname)
            results = result.elems if isinstance(result, types.Tuple) else (result,)
            self.functions[qualname] = ir.FunctionRef(
                types.Signature((), results), name=name, module=module or None
            )
        return self.functions[qualname]


class FunctionLowering:
    def __init__(self, parent: UnitLowering, function: schema.Function) -> None:
        self.parent = parent
        self.schema = function
        self.builder = ir.FunctionBuilder.new(
            function.name,
            [(p.name, parent.typetable.resolve(p.type)) for p in function.params],
            [parent.typetable.resolve(r) for r in function.results],
            pos=parent.position(function.pos),
        )
        self.scope: dict[str, ir.Value] = {
            p.name: p for p in self.builder.function.params
        }
        self.blocks: dict[str, ir.Block] = {}
        self.pending_edges: list[tuple[ir.Merge, list[str], schema.Instruction]] = []

    @property
    def name(self) -> str:
        return self.schema.name

    def lower(self) -> ir.Function:
        function = self.builder.function
        for block in self.schema.blocks:
            if block.label in self.blocks:
                raise MalformedIRError(f"{self.name}: duplicate block {block.label}")
            self.blocks[block.label] = function.new_block(block.label)
        if self.schema.recover is not None:
            self.blocks[self.schema.recover.label] = self.builder.recover_block(
                self.schema.recover.label
            )

        bodies = list(self.schema.blocks)
        if self.schema.recover is not None:
            bodies.append(self.schema.recover)
        for block in bodies:
            self.builder.goto(self.blocks[block.label])
            for instr in block.instrs:
                self.instruction(instr)

        # merge edges may point forward along loop back-edges
        for merge, args, instr in self.pending_edges:
            for arg in args:
                merge.add_edge(self.operand(arg, instr))

        for block in bodies:
            if block.dominees is not None:
                self.blocks[block.label].dominated = [
                    self.block(label) for label in block.dominees
                ]
        return function

    def block(self, label: str) -> ir.Block:
        try:
            return self.blocks[label]
        except KeyError:
            raise MalformedIRError(f"{self.name}: unknown block {label}") from None

    def operand(
        self, ref: str, instr: schema.Instruction, callee: bool = False
    ) -> ir.Value:
        if ref.startswith("%"):
            value = self.scope.get(ref[1:])
            if value is None:
                raise MalformedIRError(
                    f"{self.name}: undefined value {ref} in {instr.op}", node=instr
                )
            return value
        if ref.startswith("@"):
            qualname = ref[1:]
            if qualname in self.parent.globals:
                return self.parent.globals[qualname]
            if callee or qualname in self.parent.functions:
                return self.parent.function_ref(qualname, types.Error)
            raise MalformedIRError(
                f"{self.name}: undeclared global {ref} in {instr.op}", node=instr
            )
        raise MalformedIRError(f"{self.name}: bad operand {ref!r}", node=instr)

    def operands(self, instr: schema.Instruction, count: int | None = None):
        if count is not None and len(instr.args) != count:
            raise MalformedIRError(
                f"{self.name}: {instr.op} takes {count} operands, "
                f"got {len(instr.args)}",
                node=instr,
            )
        return [self.operand(arg, instr) for arg in instr.args]

    def type_of(self, instr: schema.Instruction) -> types.Type:
        if instr.type is None:
            raise MalformedIRError(f"{self.name}: {instr.op} needs a type", node=instr)
        return self.parent.typetable.resolve(instr.type)

    def optional_type(self, instr: schema.Instruction) -> types.Type | None:
        if instr.type is None:
            return None
        return self.parent.typetable.resolve(instr.type)

    def index(self, instr: schema.Instruction) -> int:
        if instr.index is None:
            raise MalformedIRError(f"{self.name}: {instr.op} needs an index", node=instr)
        return instr.index

    def callee(self, instr: schema.Instruction) -> str:
        if not instr.callee:
            raise MalformedIRError(f"{self.name}: {instr.op} needs a callee", node=instr)
        return instr.callee

    def instruction(self, instr: schema.Instruction) -> None:
        b = self.builder
        pos = self.parent.position(instr.pos)

        if instr.op == "store":
            val, addr = self.operands(instr, 2)
            b.store(addr, val, pos=pos)
            return
        if instr.op == "jump":
            if len(instr.targets) != 1:
                raise MalformedIRError(f"{self.name}: jump needs one target", node=instr)
            b.jump(self.block(instr.targets[0]), pos=pos)
            return
        if instr.op == "if":
            (cond,) = self.operands(instr, 1)
            if len(instr.targets) != 2:
                raise MalformedIRError(f"{self.name}: if needs two targets", node=instr)
            then_label, else_label = instr.targets
            b.branch(cond, self.block(then_label), self.block(else_label), pos=pos)
            return
        if instr.op == "return":
            b.ret(*self.operands(instr), pos=pos)
            return

        if instr.result is None:
            raise MalformedIRError(f"{self.name}: {instr.op} needs a result", node=instr)
        if instr.result in self.scope:
            raise MalformedIRError(
                f"{self.name}: %{instr.result} is defined twice", node=instr
            )
        kwargs = dict(name=instr.result, pos=pos)
        self.scope[instr.result] = self.value(instr, kwargs)

    def value(self, instr: schema.Instruction, kwargs: dict) -> ir.Value:
        b = self.builder
        op = instr.op
        if op == "make_interface":
            (x,) = self.operands(instr, 1)
            return b.make_interface(x, self.type_of(instr), **kwargs)
        if op == "change_type":
            (x,) = self.operands(instr, 1)
            return b.change_type(x, self.type_of(instr), **kwargs)
        if op == "phi":
            merge = b.phi([], self.type_of(instr), **kwargs)
            self.pending_edges.append((merge, list(instr.args), instr))
            return merge
        if op == "call":
            typ = self.type_of(instr)
            fn = self.parent.function_ref(self.callee(instr), typ)
            return b.call(fn, *self.operands(instr), typ=typ, **kwargs)
        if op == "call_builtin":
            fn = ir.BuiltinRef(types.Signature(), name=self.callee(instr))
            return b.call(fn, *self.operands(instr), typ=self.type_of(instr), **kwargs)
        if op == "call_dynamic":
            if not instr.args:
                raise MalformedIRError(
                    f"{self.name}: call_dynamic needs a callee", node=instr
                )
            callee = self.operand(instr.args[0], instr, callee=True)
            args = [self.operand(arg, instr) for arg in instr.args[1:]]
            return b.call(callee, *args, typ=self.type_of(instr), **kwargs)
        if op == "invoke":
            receiver, *args = self.operands(instr)
            module, name = types.split_qualname(self.callee(instr))
            return b.invoke(
                receiver,
                ir.MethodRef(name, module),
                *args,
                typ=self.type_of(instr),
                **kwargs,
            )
        if op == "extract":
            (tup,) = self.operands(instr, 1)
            return b.extract(tup, self.index(instr), self.optional_type(instr), **kwargs)
        if op == "lookup":
            x, key = self.operands(instr, 2)
            return b.lookup(x, key, self.optional_type(instr), **kwargs)
        if op == "load":
            (addr,) = self.operands(instr, 1)
            return b.load(addr, self.optional_type(instr), **kwargs)
        if op == "alloc":
            return b.alloc(self.type_of(instr), **kwargs)
        if op == "field_addr":
            (x,) = self.operands(instr, 1)
            typ = self.optional_type(instr) or types.Pointer(types.Error)
            return b.field_addr(x, self.index(instr), typ, **kwargs)
        if op == "index_addr":
            x, idx = self.operands(instr, 2)
            typ = self.optional_type(instr) or types.Pointer(types.Error)
            return b.index_addr(x, idx, typ, **kwargs)
        if op == "field":
            (x,) = self.operands(instr, 1)
            typ = self.optional_type(instr) or types.Error
            return b.field(x, self.index(instr), typ, **kwargs)
        if op == "index":
            x, idx = self.operands(instr, 2)
            typ = self.optional_type(instr) or types.Error
            return b.index(x, idx, typ, **kwargs)
        if op == "slice":
            (x,) = self.operands(instr, 1)
            return b.slice(x, self.type_of(instr), **kwargs)
        if op == "const":
            return ir.Constant(self.type_of(instr), instr.value, **kwargs)
        if op == "op":
            return b.op(
                self.callee(instr), *self.operands(instr), typ=self.type_of(instr), **kwargs
            )
        raise MalformedIRError(f"{self.name}: unknown instruction {op}", node=instr)


def lower_unit(unit: schema.Unit, file: str | None = None) -> ir.Unit:
    return UnitLowering(file).lower(unit)


def loads(text: str, file: str | None = None) -> ir.Unit:
    """Lower a unit written in the textual IR."""
    return lower_unit(parse_unit(text, file), file)


def load_unit(path: str | os.PathLike) -> ir.Unit:
    """Read a unit from disk: `.json` files hold the interchange schema,
    anything else is read as textual IR.
    """
    path = pathlib.Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ErrtraceError(f"cannot read {path}: {e.strerror}") from e

    if path.suffix == ".json":
        try:
            unit = schema.Unit.model_validate_json(text)
        except pydantic.ValidationError as e:
            raise MalformedIRError(f"{path}: {e}") from e
        return lower_unit(unit, str(path))
    return loads(text, str(path))
