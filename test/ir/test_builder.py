import pytest

from errtrace import ir
from errtrace.ir import types
from errtrace.exception import MalformedIRError

G = ir.FunctionRef(types.Signature((), (types.Error,)), name="g", module="a")


def test_values_are_numbered_in_creation_order():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    call = b.call(G)
    boxed = b.make_interface(call, name="err")
    change = b.change_type(boxed, types.Error)
    assert call.name == "t0"
    assert boxed.name == "err"
    assert change.name == "t1"
    assert b.function.qualname == "a.f"
    assert b.function.signature.results == (types.Error,)


def test_instructions_know_their_block():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    entry = b.block("entry")
    call = b.call(G)
    ret = b.ret(call)
    assert call.block is entry
    assert ret.block is entry
    assert entry.last_instr is ret
    assert list(b.function.instructions()) == [call, ret]


def test_referrers():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block()
    cell = b.alloc(types.Error)
    first = b.store(cell, ir.Constant(types.Error))
    second = b.store(cell, b.call(G))
    load = b.load(cell)
    assert cell.type == types.Pointer(types.Error)
    assert load.type == types.Error
    assert cell.stores() == [first, second]
    assert load in cell.referrers


def test_merge_edges_can_be_added_later():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block()
    merge = b.phi([])
    later = b.change_type(merge, types.Error)
    merge.add_edge(later)
    assert merge.edges == [later]
    assert merge in later.referrers
    assert later in merge.referrers


def test_extract_type_from_tuple():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block()
    call = b.call(G, typ=types.Tuple((types.Error, types.String)))
    assert b.extract(call, 0).type == types.Error
    assert b.extract(call, 1).type == types.String


def test_call_dispatch():
    b = ir.FunctionBuilder.new("a.f", [("fn", types.Signature())], [types.Error])
    b.block()
    direct = b.call(G)
    builtin = b.call(ir.BuiltinRef(types.Signature(), name="recover"))
    dynamic = b.call(b.param("fn"), direct)
    invoke = b.invoke(direct, ir.MethodRef("Unwrap", "a"))
    assert isinstance(direct.dispatch, ir.Direct)
    assert isinstance(builtin.dispatch, ir.Builtin)
    assert isinstance(dynamic.dispatch, ir.Unresolved)
    assert isinstance(invoke.dispatch, ir.Invoke)
    assert direct.common() == "@a.g()"
    assert dynamic.common() == "%fn(%t0)"
    assert invoke.common() == "invoke %t0.Unwrap()"


def test_malformed():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    with pytest.raises(MalformedIRError):
        b.call(G)

    b.block()
    call = b.call(G)
    with pytest.raises(MalformedIRError):
        b.load(call)
    with pytest.raises(MalformedIRError):
        b.extract(call, 0)


def test_other_takes_a_name():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    other = b.op("select", typ=types.Error, name="sel")
    assert other.op == "select"
    assert other.ref == "%sel"
