from errtrace import ir as ir
from errtrace.config import Config as Config
from errtrace.analysis import CFG as CFG, Analyzer as Analyzer, check as check
from errtrace.exception import (
    ConfigError as ConfigError,
    IRParseError as IRParseError,
    ErrtraceError as ErrtraceError,
    MalformedIRError as MalformedIRError,
)
from errtrace.diagnostic import (
    Finding as Finding,
    Reporter as Reporter,
    Diagnostic as Diagnostic,
    DiagnosticList as DiagnosticList,
    ConsoleReporter as ConsoleReporter,
)
from errtrace.serialization import (
    loads as loads,
    load_unit as load_unit,
    lower_unit as lower_unit,
)
