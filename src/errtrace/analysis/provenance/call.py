from typing import Iterable
from dataclasses import dataclass

from errtrace import ir
from errtrace.config import Config
from errtrace.source import SourceInfo
from errtrace.diagnostic import Finding, Reporter
from errtrace.analysis.provenance.wrap import WrapDetector

Continuation = tuple[ir.Value, SourceInfo | None]


@dataclass
class CallClassifier:
    config: Config
    reporter: Reporter
    wraps: WrapDetector

    def classify(
        self, call: ir.Call, default_pos: SourceInfo | None
    ) -> Iterable[Continuation]:
        """Check where the error returned by `call` comes from.

        Returns the values that still have to be traced, i.e. the inner
        error of a recognized wrap.
        """
        pos = call.pos or default_pos
        dispatch = call.dispatch

        if isinstance(dispatch, ir.Invoke):
            self.check_module(dispatch.method.module, pos)
            return ()

        if isinstance(dispatch, ir.Direct):
            function = dispatch.function
            inner = self.wraps.inner(call, function)
            if inner is not None:
                return ((inner, pos),)
            if function.module is None:
                self.report_builtin(function.name, pos)
            else:
                self.check_module(function.module, pos)
            return ()

        if isinstance(dispatch, ir.Builtin):
            self.report_builtin(dispatch.builtin.name, pos)
            return ()

        # the callee is only known at run time, the module cannot be checked
        self.reporter.report(
            pos,
            f"dynamically dispatched function call: `{call.common()}`",
            Finding.DYNAMIC_DISPATCH,
        )
        return ()

    def check_module(self, module: str, pos: SourceInfo | None) -> None:
        if self.config.is_trusted(module):
            return
        self.reporter.report(
            pos, f"error not from our module: {module}", Finding.UNTRUSTED_MODULE
        )

    def report_builtin(self, name: str, pos: SourceInfo | None) -> None:
        self.reporter.report(
            pos,
            f"error not from our module: builtin {name}",
            Finding.UNTRUSTED_BUILTIN,
        )
