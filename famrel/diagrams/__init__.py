"""Algebraic decision diagrams over feature variables.

Provides the diagram algebra (constants, boolean formulas and pointwise
arithmetic), the expression solver that evaluates model-checker expressions
over diagrams, and export to Graphviz.
"""

from famrel.diagrams.algebra import ADD, DiagramManager, multiply
from famrel.diagrams.export import export_dot, to_nx
from famrel.diagrams.solver import ExpressionSolver, free_variables

__all__ = [
    "ADD",
    "DiagramManager",
    "ExpressionSolver",
    "export_dot",
    "free_variables",
    "multiply",
    "to_nx",
]
