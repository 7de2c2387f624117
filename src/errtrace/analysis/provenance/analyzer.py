import logging
from typing import Iterable
from dataclasses import field, dataclass

from errtrace import ir
from errtrace.config import Config
from errtrace.diagnostic import Reporter, Diagnostic, DiagnosticList
from errtrace.analysis.provenance.walker import DominanceWalker
from errtrace.analysis.provenance.classify import ProvenanceClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Analyzer:
    """Checks that functions only return errors of allowed origin.

    An analyzer holds no state besides its configuration, so one instance
    can check any number of units.
    """

    config: Config = field(default_factory=Config)

    def run(
        self, functions: ir.Unit | Iterable[ir.Function], reporter: Reporter
    ) -> None:
        if isinstance(functions, ir.Unit):
            functions = functions.functions

        walker = DominanceWalker(ProvenanceClassifier(self.config, reporter))
        count = 0
        for function in functions:
            walker.run(function)
            count += 1
        logger.debug("checked %d functions", count)

    def check(self, functions: ir.Unit | Iterable[ir.Function]) -> list[Diagnostic]:
        """Run the analysis and collect its diagnostics."""
        diagnostics = DiagnosticList()
        self.run(functions, diagnostics)
        return diagnostics.diagnostics


def check(
    functions: ir.Unit | Iterable[ir.Function], config: Config | None = None
) -> list[Diagnostic]:
    return Analyzer(config or Config()).check(functions)
