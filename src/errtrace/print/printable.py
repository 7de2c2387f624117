from __future__ import annotations

from abc import abstractmethod
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from errtrace.print.printer import Printer


class Printable:
    """Mixin for objects that can be pretty printed through a `Printer`."""

    @abstractmethod
    def print_impl(self, printer: Printer) -> None: ...

    def print(self, stream: IO | None = None, printer: Printer | None = None) -> None:
        from errtrace.print.printer import Printer

        printer = printer or Printer(stream=stream)
        self.print_impl(printer)
        printer.print_newline()

    def print_str(self) -> str:
        from errtrace.print.printer import Printer

        printer = Printer()
        with printer.string_io() as stream:
            self.print_impl(printer)
            return stream.getvalue()
