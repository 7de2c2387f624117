import logging
from typing import Iterable
from dataclasses import field, dataclass

from errtrace import ir
from errtrace.config import Config
from errtrace.source import SourceInfo
from errtrace.ir.types import is_error_interface
from errtrace.diagnostic import Finding, Reporter
from errtrace.analysis.provenance.call import Continuation, CallClassifier
from errtrace.analysis.provenance.wrap import WrapDetector

logger = logging.getLogger(__name__)


@dataclass
class ProvenanceClassifier:
    """Traces an error value back to where it was created.

    A value typed with a concrete type is allowed iff that type is one of the
    allowed types. A value typed as the `error` interface is followed through
    the value graph, see the `visit_*` methods for the rule of each kind of
    value. Every finding is reported where it is discovered and tracing goes
    on with the remaining values, so a failing merge edge does not hide the
    other edges.
    """

    config: Config
    reporter: Reporter
    calls: CallClassifier = field(init=False)

    def __post_init__(self):
        self.calls = CallClassifier(
            self.config, self.reporter, WrapDetector(self.config)
        )

    def trace(
        self,
        value: ir.Value,
        memo: set[ir.Value],
        default_pos: SourceInfo | None = None,
    ) -> None:
        """Classify `value` and everything it depends on.

        Args:
            value (ir.Value): the error value to check.
            memo (set[ir.Value]): values already classified in this traversal,
                updated in place. Values in it are skipped.
            default_pos (SourceInfo | None): position reported for values
                without a position of their own.
        """
        # depth-first in the same order a recursive walk would take
        stack: list[Continuation] = [(value, default_pos)]
        while stack:
            value, default_pos = stack.pop()
            if value in memo:
                continue
            memo.add(value)

            pending = list(self.classify(value, default_pos))
            stack.extend(reversed(pending))

    def classify(
        self, value: ir.Value, default_pos: SourceInfo | None
    ) -> Iterable[Continuation]:
        pos = value.pos or default_pos
        if not is_error_interface(value.type):
            if not self.config.is_allowed_type(str(value.type)):
                self.report(
                    pos,
                    f"wrong concrete type: {value.type}",
                    Finding.WRONG_CONCRETE_TYPE,
                )
            return ()

        visit = getattr(self, f"visit_{type(value).__name__}", self.visit_fallback)
        return visit(value, pos, default_pos)

    def report(self, pos: SourceInfo | None, message: str, finding: Finding) -> None:
        self.reporter.report(pos, message, finding)

    def report_unsupported(self, pos: SourceInfo | None, message: str) -> None:
        if self.config.report_unknown:
            self.report(pos, message, Finding.UNSUPPORTED)

    def visit_InterfaceWrap(
        self,
        value: ir.InterfaceWrap,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        return ((value.x, pos),)

    def visit_TypeChange(
        self,
        value: ir.TypeChange,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        return ((value.x, pos),)

    def visit_Merge(
        self,
        value: ir.Merge,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        return [(edge, pos) for edge in value.edges]

    def visit_Call(
        self,
        value: ir.Call,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        return self.calls.classify(value, pos)

    def visit_TupleExtract(
        self,
        value: ir.TupleExtract,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        if isinstance(value.tuple_value, ir.Call):
            return self.calls.classify(value.tuple_value, pos)
        self.report_unsupported(pos, f"unsupported extract: {value}")
        return ()

    def visit_MapLookup(
        self,
        value: ir.MapLookup,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        # map contents can be written from anywhere
        self.report(pos, "cannot verify error type in map lookup", Finding.MAP_LOOKUP)
        return ()

    def visit_Dereference(
        self,
        value: ir.Dereference,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        cell = value.x
        if isinstance(cell, ir.GlobalRef):
            self.report(
                pos, f"cannot check type for global `{cell.name}`", Finding.GLOBAL
            )
        elif isinstance(cell, ir.Alloc):
            # a store without a position inherits the default, not the load's
            return [(store.val, store.pos or default_pos) for store in cell.stores()]
        elif isinstance(cell, ir.StructFieldAddr):
            self.report(pos, "cannot check struct field", Finding.STRUCT_FIELD)
        elif isinstance(cell, ir.SliceElementAddr):
            self.report(pos, "cannot check slice element", Finding.SLICE_ELEMENT)
        else:
            self.report_unsupported(pos, f"unsupported dereference: {value}")
        return ()

    def visit_Constant(
        self,
        value: ir.Constant,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        if not value.is_nil:
            self.report(pos, f"unsupported constant: {value}", Finding.UNSUPPORTED)
        return ()

    def visit_Parameter(
        self,
        value: ir.Parameter,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        self.report(
            pos, f"cannot check type for parameter `{value.name}`", Finding.PARAMETER
        )
        return ()

    def visit_fallback(
        self,
        value: ir.Value,
        pos: SourceInfo | None,
        default_pos: SourceInfo | None,
    ) -> Iterable[Continuation]:
        self.report_unsupported(pos, f"unsupported error value: {value}")
        return ()
