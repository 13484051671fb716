"""RDG evaluation engine.

Folds an RDG bottom-up into the family reliability diagram of its root. Each
node's expression is solved with its children's reliabilities (scaled by their
presence conditions) bound to the children's ids, then masked with the feature
model so that invalid configurations have reliability 0. The traversal is an
explicit post-order over a stack, so deep graphs do not exhaust the Python
call stack, and results are memoized per node id for the whole session.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from famrel.diagrams.algebra import ADD, DiagramManager
from famrel.diagrams.solver import ExpressionSolver
from famrel.exceptions import CycleDetected
from famrel.feature_model import FeatureModel
from famrel.rdg.checker import ParametricModelChecker
from famrel.rdg.model import RDGNode

logger = logging.getLogger(__name__)


class ReliabilityCache:
    """Reliability diagrams already computed in a session, keyed by node id.

    Each id is written at most once; a second write means a node was
    computed twice and is rejected.
    """

    def __init__(self) -> None:
        """Create an empty cache."""
        self._store: dict[str, ADD] = {}
        self.hits = 0
        self.misses = 0

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._store

    def __len__(self) -> int:
        return len(self._store)

    def get(self, node_id: str) -> ADD | None:
        """The cached diagram of a node, if any."""
        return self._store.get(node_id)

    def lookup(self, node_id: str) -> ADD | None:
        """Like `get`, but counts the lookup as a hit or a miss."""
        diagram = self._store.get(node_id)
        if diagram is None:
            self.misses += 1
        else:
            self.hits += 1
        return diagram

    def put(self, node_id: str, diagram: ADD) -> None:
        """Record the reliability of a node."""
        if node_id in self._store:
            msg = f"Reliability of node '{node_id}' is already cached."
            raise ValueError(msg)
        self._store[node_id] = diagram

    def clear(self) -> None:
        """Forget every cached diagram."""
        self._store.clear()
        self.hits = 0
        self.misses = 0


@dataclass
class EvaluationContext:
    """Session state shared by every evaluation: feature model, collaborators and cache."""

    feature_model: FeatureModel
    solver: ExpressionSolver
    model_checker: ParametricModelChecker
    cache: ReliabilityCache = field(default_factory=ReliabilityCache)


class EvaluationTrace(BaseModel):
    """Audit trail of a single call to `ReliabilityEvaluator.evaluate_reliability`."""

    evaluated_node_ids: list[str] = Field(
        default_factory=list,
        description="Node ids whose reliability was computed, in completion order.",
    )
    cache_hit_ids: list[str] = Field(
        default_factory=list,
        description="Node ids whose reliability was taken from the cache.",
    )


class ReliabilityEvaluator:
    """Evaluates family reliability of RDG nodes within one analysis session."""

    def __init__(self, context: EvaluationContext) -> None:
        """Initialize the evaluator with the session context."""
        self.context = context
        self.last_trace = EvaluationTrace()
        self._presence_conditions: dict[str, ADD] = {}

    @property
    def manager(self) -> DiagramManager:
        """The session's diagram manager."""
        return self.context.feature_model.manager

    def evaluate_reliability(self, node: RDGNode) -> ADD:
        """Compute the family reliability diagram of a node.

        Args:
            node (RDGNode): Root of the (sub)graph to evaluate.

        Returns:
            reliability (ADD): Reliability at every configuration, 0 wherever
                the feature model is violated.

        Raises:
            CycleDetected: If a cycle is reachable from ``node``.
            FormatError: If an expression or presence condition is malformed.
            UnboundVariable: If an expression references a non-child.
            ExternalToolFailure: If the model checker fails on some node.
        """
        trace = EvaluationTrace()
        self.last_trace = trace
        cache = self.context.cache

        cached = cache.lookup(node.id)
        if cached is not None:
            logger.debug(f"Cache hit for {node.id}")
            trace.cache_hit_ids.append(node.id)
            return cached

        # ids expanded but not yet computed; always the path from the root
        in_progress: dict[str, None] = {}
        stack: list[tuple[RDGNode, bool]] = [(node, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                cache.put(current.id, self._compute(current))
                del in_progress[current.id]
                trace.evaluated_node_ids.append(current.id)
                continue
            if current.id in cache:
                continue
            in_progress[current.id] = None
            stack.append((current, True))
            for child in reversed(current.children):
                if child.id in in_progress:
                    path = list(in_progress)
                    raise CycleDetected([*path[path.index(child.id) :], child.id])
                if cache.lookup(child.id) is not None:
                    logger.debug(f"Cache hit for {child.id}")
                    trace.cache_hit_ids.append(child.id)
                    continue
                stack.append((child, False))

        logger.info(
            f"Evaluated reliability of {node.id}: "
            f"{len(trace.evaluated_node_ids)} nodes computed, "
            f"{len(trace.cache_hit_ids)} cache hits"
        )
        result = cache.get(node.id)
        if result is None:
            msg = f"Reliability of '{node.id}' missing after evaluation."
            raise RuntimeError(msg)
        return result

    def evaluate_many(self, nodes: Iterable[RDGNode]) -> dict[str, ADD]:
        """Evaluate a forest of roots, sharing the session cache between them."""
        return {node.id: self.evaluate_reliability(node) for node in nodes}

    def clear(self) -> None:
        """Drop the session cache and the encoded presence conditions."""
        self.context.cache.clear()
        self._presence_conditions.clear()
        self.last_trace = EvaluationTrace()

    def presence_condition(self, node: RDGNode) -> ADD:
        """The encoded {0, 1} presence condition of a node."""
        condition = node.presence_condition
        if isinstance(condition, ADD):
            return self.manager.coerce(condition)
        if condition not in self._presence_conditions:
            diagram = self.manager.encode_formula(condition)
            feature_model = self.context.feature_model.diagram
            if (diagram * feature_model).nonzero_region == self.manager.bdd.false:
                logger.warning(
                    f"Presence condition {condition!r} of {node.id} holds in no valid product"
                )
            self._presence_conditions[condition] = diagram
        return self._presence_conditions[condition]

    def _compute(self, node: RDGNode) -> ADD:
        """Reliability of a node whose children are all cached."""
        expression = self.context.model_checker.get_reliability(node.model)
        bindings: dict[str, ADD] = {}
        for child in node.children:
            child_reliability = self.context.cache.get(child.id)
            if child_reliability is None:
                msg = f"Child '{child.id}' of '{node.id}' evaluated out of order."
                raise RuntimeError(msg)
            bindings[child.id] = self.presence_condition(child) * child_reliability
        raw = self.context.solver.solve(expression, bindings)
        # constant terms of the expression can leave nonzero values on invalid
        # configurations; the feature model mask restores them to 0
        result = self.context.feature_model.diagram * raw
        logger.debug(f"Computed reliability of {node.id} from {len(bindings)} children")
        return result
