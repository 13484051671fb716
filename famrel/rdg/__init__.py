"""Reliability Dependency Graphs and their evaluation.

Provides the RDG node model and builders, the model checker contract,
the memoized evaluation engine, and structural validation.
"""

from famrel.rdg.checker import ExpressionModelChecker, ParametricModelChecker
from famrel.rdg.evaluation import (
    EvaluationContext,
    EvaluationTrace,
    ReliabilityCache,
    ReliabilityEvaluator,
)
from famrel.rdg.model import (
    DocumentRDGBuilder,
    RDGBuilder,
    RDGDocument,
    RDGNode,
    RDGNodeSpec,
)
from famrel.rdg.validation import validate_rdg_structure

__all__ = [
    "DocumentRDGBuilder",
    "EvaluationContext",
    "EvaluationTrace",
    "ExpressionModelChecker",
    "ParametricModelChecker",
    "RDGBuilder",
    "RDGDocument",
    "RDGNode",
    "RDGNodeSpec",
    "ReliabilityCache",
    "ReliabilityEvaluator",
    "validate_rdg_structure",
]
