from errtrace.analysis.cfg import CFG as CFG
from errtrace.analysis.provenance import (
    Analyzer as Analyzer,
    WrapDetector as WrapDetector,
    CallClassifier as CallClassifier,
    DominanceWalker as DominanceWalker,
    ProvenanceClassifier as ProvenanceClassifier,
    check as check,
    error_results as error_results,
)
