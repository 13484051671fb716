"""Orchestration of a family reliability analysis session.

An `Analyzer` owns everything that must not outlive one product line: the
diagram manager, the feature model encoded in it, and the reliability cache.
Analyzing a different family (or a changed RDG) means a new `Analyzer`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from famrel.diagrams.algebra import ADD, DiagramManager
from famrel.diagrams.export import export_dot
from famrel.diagrams.solver import ExpressionSolver
from famrel.feature_model import FeatureModel, build_feature_model
from famrel.rdg.checker import ExpressionModelChecker, ParametricModelChecker
from famrel.rdg.evaluation import EvaluationContext, ReliabilityEvaluator
from famrel.rdg.model import RDGBuilder, RDGNode
from famrel.settings import AnalysisSettings, analysis_settings

logger = logging.getLogger(__name__)


class Analyzer:
    """Facade over feature model construction, RDG evaluation and export."""

    def __init__(
        self,
        feature_model_source: str,
        model_checker: ParametricModelChecker | None = None,
        rdg_builder: RDGBuilder | None = None,
        settings: AnalysisSettings | None = None,
    ):
        """Start a session for the family described by a feature model.

        Args:
            feature_model_source (str): CNF-like boolean formula over features.
            model_checker (ParametricModelChecker | None): Computes reliability
                expressions of node models. Defaults to `ExpressionModelChecker`.
            rdg_builder (RDGBuilder | None): Builds RDGs for `model`.
            settings (AnalysisSettings | None): Overrides the global settings.

        Raises:
            FormatError: If the feature model is malformed.
        """
        self.settings = settings or analysis_settings
        self.manager = DiagramManager(self.settings)
        self.feature_model: FeatureModel = build_feature_model(
            feature_model_source, self.manager
        )
        self.model_checker = model_checker or ExpressionModelChecker()
        self.rdg_builder = rdg_builder
        self.context = EvaluationContext(
            feature_model=self.feature_model,
            solver=ExpressionSolver(self.manager),
            model_checker=self.model_checker,
        )
        self.evaluator = ReliabilityEvaluator(self.context)
        self.closed = False

    @classmethod
    def from_file(cls, feature_model_file: str | Path, **kwargs: Any) -> Analyzer:
        """Start a session from a UTF-8 feature model file."""
        path = Path(feature_model_file)
        logger.info(f"Reading feature model from {path}")
        return cls(path.read_text(encoding="utf-8"), **kwargs)

    def model(self, source: Any) -> RDGNode:
        """Build the RDG of the product line described by ``source``."""
        if self.rdg_builder is None:
            msg = "No RDG builder configured for this analyzer."
            raise NotImplementedError(msg)
        return self.rdg_builder.build(source)

    def evaluate_reliability(self, node: RDGNode) -> ADD:
        """Family reliability of an RDG node; see `ReliabilityEvaluator.evaluate_reliability`."""
        self._check_open()
        return self.evaluator.evaluate_reliability(node)

    def export_reliability(
        self, diagram: ADD, output_file: str | Path, label: str | None = None
    ) -> None:
        """Dump a reliability diagram to a Graphviz DOT file."""
        export_dot(diagram, label or self.settings.export_label, output_file)

    def reset(self) -> None:
        """Discard cached reliabilities, e.g. after the RDG changed."""
        logger.info(f"Discarding {len(self.context.cache)} cached reliabilities")
        self.context.cache.clear()

    def close(self) -> None:
        """End the session, releasing every diagram it holds.

        The session's BDD manager is freed once the diagrams handed out by
        `evaluate_reliability` are dropped as well. Sessions left open until
        interpreter shutdown may make `dd` report nodes still referenced.
        """
        if self.closed:
            return
        logger.info(f"Closing session, releasing {len(self.context.cache)} cached reliabilities")
        self.evaluator.clear()
        self.closed = True

    def __enter__(self) -> Analyzer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _check_open(self) -> None:
        if self.closed:
            msg = "Analysis session is closed."
            raise RuntimeError(msg)
