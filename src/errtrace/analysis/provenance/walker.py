import logging
from dataclasses import dataclass

from errtrace import ir
from errtrace.exception import MalformedIRError
from errtrace.analysis.provenance.classify import ProvenanceClassifier
from errtrace.analysis.provenance.signature import error_results

logger = logging.getLogger(__name__)


@dataclass
class DominanceWalker:
    """Finds the return instructions of a function and checks the error
    results of each of them.

    Blocks are visited along the dominator tree starting from the entry
    block, each at most once; the recovery block is never visited.
    """

    classifier: ProvenanceClassifier

    def run(self, function: ir.Function) -> None:
        positions = error_results(function.signature)
        if not positions:
            logger.debug("skipping %s: no error results", function.qualname)
            return

        entry = function.entry
        if entry is None:
            # declared but defined elsewhere
            logger.debug("skipping %s: no body", function.qualname)
            return

        logger.debug("checking %s, error results at %s", function.qualname, positions)
        seen: set[int] = set()
        stack: list[ir.Block] = [entry]
        while stack:
            block = stack.pop()
            if block is function.recover or block.index in seen:
                continue
            seen.add(block.index)

            for instr in block.instrs:
                if isinstance(instr, ir.Return):
                    self.check_return(function, instr, positions)

            stack.extend(reversed(block.dominees()))

    def check_return(
        self, function: ir.Function, instr: ir.Return, positions: list[int]
    ) -> None:
        if len(instr.results) != len(function.signature.results):
            raise MalformedIRError(
                f"{function.qualname}: return of {len(instr.results)} values "
                f"from a function with {len(function.signature.results)} results",
                node=instr,
            )

        for idx in positions:
            # a fresh memo per operand, sibling operands are checked independently
            self.classifier.trace(instr.results[idx], set(), instr.pos)
