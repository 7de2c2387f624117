from functools import cached_property
from dataclasses import dataclass

from errtrace import ir
from errtrace.print import Printer, Printable
from errtrace.worklist import WorkList


@dataclass
class CFG(Printable):
    """Control Flow Graph of a given IR function.

    Only blocks reachable from the entry block are part of the graph; the
    recovery block of the function never is.

    !!! note "Pretty Printing"
        This object is pretty printable via
        [`.print()`][errtrace.print.Printable.print] method.
    """

    parent: ir.Function
    """Function the graph is built for.
    """
    entry: ir.Block | None = None
    """Entry block of the CFG.
    """

    def __post_init__(self):
        self.entry = self.parent.entry

    @cached_property
    def predecessors(self):
        """CFG data, mapping a block to its predecessors."""
        graph: dict[ir.Block, set[ir.Block]] = {}
        for block, neighbors in self.successors.items():
            for neighbor in neighbors:
                graph.setdefault(neighbor, set()).add(block)
        return graph

    @cached_property
    def successors(self):
        """CFG data, mapping a block to its successors, in block order."""
        graph: dict[ir.Block, list[ir.Block]] = {}
        visited: set[ir.Block] = set()
        worklist: WorkList[ir.Block] = WorkList()

        block = self.entry
        while block is not None:
            neighbors = graph.setdefault(block, [])
            for succ in block.successors:
                if succ is self.parent.recover or succ in neighbors:
                    continue
                neighbors.append(succ)
                worklist.append(succ)
            visited.add(block)

            block = worklist.pop()
            while block is not None and block in visited:
                block = worklist.pop()
        return graph

    @cached_property
    def dominators(self):
        """Compute the dominator sets for each block in the CFG."""
        doms: dict[ir.Block, set[ir.Block]] = {}
        blocks = sorted(self.successors.keys(), key=lambda b: b.index)
        if not blocks or self.entry is None:
            return doms

        entry = self.entry
        for block in blocks:
            doms[block] = set(blocks)
        doms[entry] = {entry}

        changed = True
        while changed:
            changed = False
            for block in blocks:
                if block is entry:
                    continue
                new_doms = set(blocks)
                for pred in self.predecessors.get(block, ()):
                    new_doms &= doms[pred]
                new_doms.add(block)
                if new_doms != doms[block]:
                    doms[block] = new_doms
                    changed = True
        return doms

    @cached_property
    def dominator_tree(self):
        """Immediate dominator of every reachable block but the entry."""
        idoms: dict[ir.Block, ir.Block] = {}
        doms = self.dominators
        for b in doms:
            if b is self.entry:
                continue
            candidates = doms[b] - {b}
            # the immediate dominator is dominated by every other strict dominator
            for candidate in candidates:
                if all(other in doms[candidate] for other in candidates):
                    idoms[b] = candidate
                    break
        return idoms

    @cached_property
    def dominees(self):
        """Blocks immediately dominated by each block, ordered by index."""
        tree: dict[ir.Block, list[ir.Block]] = {}
        for block, idom in self.dominator_tree.items():
            tree.setdefault(idom, []).append(block)
        for children in tree.values():
            children.sort(key=lambda b: b.index)
        return tree

    def dominates(self, a: ir.Block, b: ir.Block) -> bool:
        return a in self.dominators.get(b, ())

    # printable interface
    def print_impl(self, printer: Printer) -> None:
        printer.plain_print("Successors:")
        printer.print_newline()
        for block, neighbors in self.successors.items():
            printer.plain_print(f"{block.label} -> ", end="")
            printer.print_seq(
                neighbors,
                delim=", ",
                prefix="[",
                suffix="]",
                emit=lambda block: printer.plain_print(block.label),
            )
            printer.print_newline()

        if self.dominees:
            printer.print_newline()
            printer.plain_print("Dominator tree:")
            printer.print_newline()
            for block, children in self.dominees.items():
                printer.plain_print(f"{block.label} => ", end="")
                printer.print_seq(
                    children,
                    delim=", ",
                    prefix="[",
                    suffix="]",
                    emit=lambda block: printer.plain_print(block.label),
                )
                printer.print_newline()
