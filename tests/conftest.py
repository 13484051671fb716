"""Fixtures for the tests."""

import itertools

import pytest

from famrel.diagrams.algebra import DiagramManager
from famrel.feature_model import FeatureModel, build_feature_model
from famrel.settings import AnalysisSettings

FEATURES = ("A", "B", "C")


@pytest.fixture()
def settings() -> AnalysisSettings:
    """Settings with a fixed variable order, independent of the environment."""
    return AnalysisSettings(
        variable_order=list(FEATURES),
        terminal_precision=12,
        dynamic_reordering=False,
        export_label="Family Reliability",
    )


@pytest.fixture()
def manager(settings: AnalysisSettings) -> DiagramManager:
    """A fresh diagram manager."""
    return DiagramManager(settings)


@pytest.fixture()
def feature_model(manager: DiagramManager) -> FeatureModel:
    """The feature model A and (B or C)."""
    return build_feature_model("A & (B | C)", manager)


@pytest.fixture()
def assignments() -> list[dict[str, bool]]:
    """Every assignment of the features A, B and C."""
    return [
        dict(zip(FEATURES, values, strict=True))
        for values in itertools.product([False, True], repeat=len(FEATURES))
    ]
