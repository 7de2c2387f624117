import logging
from dataclasses import dataclass

from errtrace import ir
from errtrace.config import Config
from errtrace.ir.types import is_error_like

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrapDetector:
    """Recognizes calls that return a wrap of an error passed to them.

    Two shapes are recognized:

    - formatted wrap: `fmt.Errorf(format, err)` where the variadic payload
      holds exactly one boxed value and that value is error-like;
    - first-argument wrap: a call to one of the configured functions with
      more than one argument, wrapping its first argument.
    """

    config: Config

    def inner(self, call: ir.Call, function: ir.FunctionRef) -> ir.Value | None:
        """The wrapped error of `call`, or None if `call` is not a wrap."""
        if (
            self.config.allow_formatted_wrap
            and function.qualname == self.config.formatted_wrap_function
            and (inner := self.formatted(call)) is not None
        ):
            logger.debug("formatted wrap %s forwards %s", call.ref, inner.ref)
            return inner

        if (
            function.qualname in self.config.first_arg_wrap_functions
            and len(call.args) > 1
        ):
            logger.debug(
                "first-argument wrap %s forwards %s", call.ref, call.args[0].ref
            )
            return call.args[0]
        return None

    def formatted(self, call: ir.Call) -> ir.Value | None:
        if len(call.args) != 2:
            return None

        payload = call.args[1]
        if not isinstance(payload, ir.SliceOf):
            return None

        backing = payload.x
        elements = [
            instr
            for instr in backing.referrers
            if isinstance(instr, ir.SliceElementAddr) and instr.x is backing
        ]
        if len(elements) != 1:
            return None

        (element,) = elements
        stores = [
            instr
            for instr in element.referrers
            if isinstance(instr, ir.Store) and instr.addr is element
        ]
        if len(stores) != 1:
            return None

        boxed = stores[0].val
        if isinstance(boxed, ir.InterfaceWrap) and is_error_like(boxed.x.type):
            return boxed.x
        return None
