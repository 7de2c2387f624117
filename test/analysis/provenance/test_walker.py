import pytest

from errtrace import ir
from errtrace.config import Config
from errtrace.ir import types
from errtrace.source import SourceInfo
from errtrace.exception import MalformedIRError
from errtrace.diagnostic import DiagnosticList
from errtrace.analysis.provenance import (
    DominanceWalker,
    ProvenanceClassifier,
    error_results,
)

UNTRUSTED = ir.FunctionRef(types.Signature(), name="F", module="b")
NIL = ir.Constant(types.Error)


def walk(function: ir.Function) -> list[str]:
    reporter = DiagnosticList()
    walker = DominanceWalker(ProvenanceClassifier(Config(), reporter))
    walker.run(function)
    return reporter.messages


def test_error_results():
    signature = types.Signature(
        (), (types.String, types.Error, types.Int, types.Error)
    )
    assert error_results(signature) == [1, 3]
    assert error_results(types.Signature()) == []


def test_every_return_is_checked():
    b = ir.FunctionBuilder.new("a.f", [("c", types.Bool)], [types.Error])
    entry = b.block("entry")
    then = b.function.new_block("then")
    orelse = b.function.new_block("else")
    b.goto(entry)
    b.branch(b.param("c"), then, orelse)
    b.goto(then)
    b.ret(b.call(UNTRUSTED))
    b.goto(orelse)
    b.ret(b.call(UNTRUSTED))
    assert walk(b.function) == ["error not from our module: b"] * 2


def test_only_error_positions_are_checked():
    b = ir.FunctionBuilder.new(
        "a.f", results=[types.String, types.Error, types.Error]
    )
    b.block("entry")
    text = b.op("concat", typ=types.String)
    b.ret(text, b.call(UNTRUSTED), NIL)
    assert walk(b.function) == ["error not from our module: b"]


def test_each_operand_has_its_own_memo():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error, types.Error])
    b.block("entry")
    err = b.call(UNTRUSTED)
    b.ret(err, err)
    assert walk(b.function) == ["error not from our module: b"] * 2


def test_unreachable_blocks_are_skipped():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    b.ret(NIL)
    b.block("dead")
    b.ret(b.call(UNTRUSTED))
    assert walk(b.function) == []


def test_recover_block_is_skipped():
    b = ir.FunctionBuilder.new("a.f", [("c", types.Bool)], [types.Error])
    entry = b.block("entry")
    recover = b.recover_block()
    done = b.function.new_block("done")
    b.goto(entry)
    b.branch(b.param("c"), done, recover)
    b.goto(done)
    b.ret(NIL)
    b.goto(recover)
    b.ret(b.call(UNTRUSTED))
    assert walk(b.function) == []


def test_supplied_dominees_are_used():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    entry = b.block("entry")
    later = b.function.new_block("later")
    b.goto(entry)
    b.jump(later)
    b.goto(later)
    b.ret(b.call(UNTRUSTED))

    entry.dominated = []
    assert walk(b.function) == []
    entry.dominated = [later]
    assert walk(b.function) == ["error not from our module: b"]


def test_blocks_are_visited_once():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    entry = b.block("entry")
    later = b.function.new_block("later")
    b.goto(entry)
    b.jump(later)
    b.goto(later)
    b.ret(b.call(UNTRUSTED))

    entry.dominated = [later, later]
    assert walk(b.function) == ["error not from our module: b"]


def test_functions_are_skipped():
    # no error results
    b = ir.FunctionBuilder.new("a.f", results=[types.String])
    b.block("entry")
    b.ret(b.call(UNTRUSTED, typ=types.String))
    assert walk(b.function) == []

    # no body
    declared = ir.FunctionBuilder.new("a.g", results=[types.Error]).function
    assert walk(declared) == []


def test_return_position_is_the_default():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    pos = SourceInfo(5, 2, "a.go")
    b.ret(b.call(UNTRUSTED), pos=pos)

    reporter = DiagnosticList()
    DominanceWalker(ProvenanceClassifier(Config(), reporter)).run(b.function)
    (diagnostic,) = reporter
    assert diagnostic.pos == pos
    assert str(diagnostic) == "a.go:5:2: error not from our module: b"


def test_return_arity_mismatch():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error, types.String])
    b.block("entry")
    b.ret(NIL)
    with pytest.raises(MalformedIRError):
        walk(b.function)
