from errtrace import ir, loads
from errtrace.config import Config
from errtrace.ir import types
from errtrace.diagnostic import DiagnosticList
from errtrace.analysis.provenance import Analyzer, ProvenanceClassifier

UNTRUSTED = ir.FunctionRef(types.Signature(), name="F", module="b")


def messages(source: str, **options) -> list[str]:
    unit = loads(source)
    return [d.message for d in Analyzer(Config(**options)).check(unit)]


def test_memo_makes_tracing_idempotent():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    call = b.call(UNTRUSTED)

    reporter = DiagnosticList()
    classifier = ProvenanceClassifier(Config(), reporter)
    memo: set[ir.Value] = set()
    classifier.trace(call, memo)
    assert len(reporter) == 1
    assert call in memo

    classifier.trace(call, memo)
    assert len(reporter) == 1

    classifier.trace(call, set())
    assert len(reporter) == 2


def test_shared_subvalue_is_checked_once():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    call = b.call(UNTRUSTED)
    merge = b.phi([call, b.change_type(call, types.Error), call])

    reporter = DiagnosticList()
    ProvenanceClassifier(Config(), reporter).trace(merge, set())
    assert reporter.messages == ["error not from our module: b"]


def test_cyclic_merge_terminates():
    source = """
    func a.f(%c: bool) error {
    entry:
      %t0 = call b.F() : error
      jump loop
    loop:
      %t1 = phi [%t0, %t2] : error
      if %c then body else done
    body:
      %t2 = change_type %t1 : error
      jump loop
    done:
      return %t1
    }
    """
    assert messages(source, trusted_modules={"a"}) == ["error not from our module: b"]


def test_self_referencing_merge():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    merge = b.phi([])
    merge.add_edge(merge)
    merge.add_edge(ir.Constant(types.Error))
    b.ret(merge)

    reporter = DiagnosticList()
    ProvenanceClassifier(Config(), reporter).trace(merge, set())
    assert len(reporter) == 0


def test_deep_chain_does_not_recurse():
    b = ir.FunctionBuilder.new("a.f", results=[types.Error])
    b.block("entry")
    value: ir.Value = b.call(UNTRUSTED)
    for _ in range(20_000):
        value = b.change_type(value, types.Error)
    b.ret(value)

    reporter = DiagnosticList()
    Analyzer().run([b.function], reporter)
    assert reporter.messages == ["error not from our module: b"]


MIXED = """
type pkg.MyError { Error() string }
type pkg.OtherError { Error() string }

func a.f(%c: bool) error {
entry:
  %t0 = const "" : pkg.MyError
  %t1 = make_interface %t0 : error
  %t2 = const "" : pkg.OtherError
  %t3 = make_interface %t2 : error
  %t4 = phi [%t1, %t3] : error
  return %t4
}
"""


def test_allowing_a_type_only_affects_that_type():
    assert messages(MIXED) == [
        "wrong concrete type: pkg.MyError",
        "wrong concrete type: pkg.OtherError",
    ]
    assert messages(MIXED, allowed_types={"pkg.MyError"}) == [
        "wrong concrete type: pkg.OtherError",
    ]
    assert messages(MIXED, allowed_types={"pkg.MyError", "pkg.OtherError"}) == []


def test_subtree_trust_is_bounded_by_the_separator():
    source = """
    func app/cmd.f() error {
    entry:
      %t0 = call app/sub.F() : error
      %t1 = call app-other.F() : error
      %t2 = call app.F() : error
      %t3 = phi [%t0, %t1, %t2] : error
      return %t3
    }
    """
    assert messages(source, trusted_modules={"app/"}) == [
        "error not from our module: app-other",
        "error not from our module: app",
    ]


WRAPPED = """
type pkg.MyError { Error() string }

func a.allowed() error {
entry:
  %t0 = const "" : pkg.MyError
  %t1 = make_interface %t0 : error
  %t2 = const "context" : string
  %t3 = call pkg/errors.Wrap(%t1, %t2) : error
  return %t3
}

func a.rejected() error {
entry:
  %t0 = call b.F() : error
  %t1 = const "context" : string
  %t2 = call pkg/errors.Wrap(%t0, %t1) : error
  return %t2
}

func a.single() error {
entry:
  %t0 = call a.F() : error
  %t1 = call pkg/errors.Wrap(%t0) : error
  return %t1
}
"""


def test_wrap_is_transparent():
    options = dict(allowed_types={"pkg.MyError"}, trusted_modules={"a"})
    wraps = {"pkg/errors.Wrap"}
    assert messages(WRAPPED, first_arg_wrap_functions=wraps, **options) == [
        "error not from our module: b",
        "error not from our module: pkg/errors",
    ]
    assert messages(WRAPPED, **options) == [
        "error not from our module: pkg/errors",
        "error not from our module: pkg/errors",
        "error not from our module: pkg/errors",
    ]
