"""Feature models encoded as boolean decision diagrams."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass

from famrel.diagrams.algebra import ADD, DiagramManager, formula_variables, normalize_formula

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureModel:
    """The validity rules of a product line as a {0, 1} diagram.

    A feature combination is a valid product iff ``diagram`` evaluates to 1
    there. A feature model characterizes exactly one family and is tied to the
    manager of the session that built it.
    """

    source: str
    diagram: ADD
    features: tuple[str, ...]

    @property
    def manager(self) -> DiagramManager:
        """The manager the diagram lives in."""
        return self.diagram.manager

    def is_valid(self, assignment: Mapping[str, bool | int]) -> bool:
        """Whether a feature assignment is a valid product."""
        return self.diagram.evaluate(assignment) == 1.0

    def count_products(self) -> int:
        """Number of valid assignments of the model's features."""
        bdd = self.manager.bdd
        return int(bdd.count(self.diagram.nonzero_region, nvars=len(self.features)))

    def products(self) -> Iterator[dict[str, bool]]:
        """Iterate over the valid assignments of the model's features."""
        bdd = self.manager.bdd
        yield from bdd.pick_iter(self.diagram.nonzero_region, care_vars=set(self.features))


def build_feature_model(source: str, manager: DiagramManager) -> FeatureModel:
    """Encode the textual feature model of a product line.

    Args:
        source (str): A CNF-like boolean formula over feature names, using
            either ``dd`` or Java logical operators.
        manager (DiagramManager): The session's diagram manager.

    Returns:
        feature_model (FeatureModel): The encoded feature model.

    Raises:
        FormatError: If the source is not a boolean formula.
    """
    diagram = manager.encode_formula(source)
    features = tuple(formula_variables(normalize_formula(source)))
    logger.info(f"Encoded feature model over {len(features)} features")
    if diagram.nonzero_region == manager.bdd.false:
        logger.warning("Feature model admits no valid product")
    return FeatureModel(source=source, diagram=diagram, features=features)
