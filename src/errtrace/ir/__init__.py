from errtrace.ir import types as types
from errtrace.ir.nodes import (
    If as If,
    Jump as Jump,
    Unit as Unit,
    Block as Block,
    Store as Store,
    Return as Return,
    Function as Function,
)
from errtrace.ir.values import (
    Call as Call,
    Alloc as Alloc,
    Merge as Merge,
    Other as Other,
    Value as Value,
    Direct as Direct,
    Invoke as Invoke,
    Builtin as Builtin,
    SliceOf as SliceOf,
    Constant as Constant,
    Dispatch as Dispatch,
    GlobalRef as GlobalRef,
    MapLookup as MapLookup,
    MethodRef as MethodRef,
    Parameter as Parameter,
    BuiltinRef as BuiltinRef,
    TypeChange as TypeChange,
    Unresolved as Unresolved,
    Dereference as Dereference,
    FunctionRef as FunctionRef,
    Instruction as Instruction,
    StructField as StructField,
    SliceElement as SliceElement,
    TupleExtract as TupleExtract,
    InterfaceWrap as InterfaceWrap,
    StructFieldAddr as StructFieldAddr,
    SliceElementAddr as SliceElementAddr,
)
from errtrace.ir.builder import FunctionBuilder as FunctionBuilder
