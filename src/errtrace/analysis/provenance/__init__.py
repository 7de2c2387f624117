from errtrace.analysis.provenance.call import CallClassifier as CallClassifier
from errtrace.analysis.provenance.wrap import WrapDetector as WrapDetector
from errtrace.analysis.provenance.walker import DominanceWalker as DominanceWalker
from errtrace.analysis.provenance.analyzer import (
    Analyzer as Analyzer,
    check as check,
)
from errtrace.analysis.provenance.classify import (
    ProvenanceClassifier as ProvenanceClassifier,
)
from errtrace.analysis.provenance.signature import error_results as error_results
