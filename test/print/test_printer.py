from errtrace import loads
from errtrace.print import Printer

SOURCE = """
type a.myError { *Error() string }
global a.globError : error

func a.f(%err: error) error {
entry:
  if %err then bad else good
bad:
  %t0 = change_type %err : error at 8:3
  return %t0
good:
  %t1 = const nil : error
  return %t1
!recover:
  %t2 = call builtin recover() : any
  return %t2
}
"""


def render(printer: Printer) -> str:
    unit = loads(SOURCE, "a.ir")
    with printer.string_io() as stream:
        printer.emit(unit)
        return stream.getvalue()


def test_print_unit():
    text = render(Printer())
    lines = text.splitlines()
    assert lines[0] == "type a.myError { *Error() string }"
    assert lines[1] == "global a.globError : error"
    assert "func a.f(%err: error) error {" in lines
    assert "entry:  // dominates bad, good" in lines
    assert "  %t0 = change_type %err : error at 8:3" in lines
    assert "!recover:" in lines
    assert lines[-1] == "}"


def test_constants_print_inline():
    text = render(Printer())
    assert "%t1 =" not in text
    assert "  return nil" in text


def test_without_dominees():
    text = render(Printer(show_dominees=False))
    assert "// dominates" not in text
    assert "entry:" in text.splitlines()


def test_print_function():
    unit = loads(SOURCE, "a.ir")
    printer = Printer()
    with printer.string_io() as stream:
        printer.emit(unit.functions[0])
        text = stream.getvalue()
    assert text.startswith("func a.f(%err: error) error {\n")
    assert "global" not in text
