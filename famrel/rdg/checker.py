"""Contract of the parametric model checking collaborator."""

from abc import ABC, abstractmethod
from typing import Any

from famrel.exceptions import ExternalToolFailure


class ParametricModelChecker(ABC):
    """Turns a state-transition model into a closed-form reliability expression."""

    @abstractmethod
    def get_reliability(self, model: Any) -> str:
        """Compute the reliability expression of a model.

        Args:
            model (Any): The state-transition model of an RDG node.

        Returns:
            expression (str): An algebraic expression whose free variables
                are the ids of the node's children.

        Raises:
            ExternalToolFailure: If no expression can be produced.
        """


class ExpressionModelChecker(ParametricModelChecker):
    """A checker for models whose reliability expression is already known.

    Accepts the expression itself, or any object exposing it as a
    ``reliability_expression`` attribute.
    """

    def get_reliability(self, model: Any) -> str:
        """Return the model's precomputed reliability expression."""
        if isinstance(model, str):
            return model
        expression = getattr(model, "reliability_expression", None)
        if isinstance(expression, str):
            return expression
        raise ExternalToolFailure(model, "model carries no reliability expression")
