"""Structural validation of an RDG.

Checks id uniqueness, id usability as expression variables, acyclicity,
feature references of presence conditions, and expression references.
"""

from __future__ import annotations

import keyword
from collections.abc import Iterable, Iterator

from famrel.diagrams.algebra import ADD, formula_variables, normalize_formula
from famrel.diagrams.solver import free_variables
from famrel.exceptions import FamrelBaseException
from famrel.rdg.checker import ParametricModelChecker
from famrel.rdg.model import RDGNode


def validate_rdg_structure(
    root: RDGNode,
    feature_names: Iterable[str] | None = None,
    model_checker: ParametricModelChecker | None = None,
) -> list[str]:
    """Run all structural validation checks on the graph below ``root``.

    Args:
        root: The root of the RDG to validate.
        feature_names: If provided, validates that presence conditions only
            mention these features.
        model_checker: If provided, validates that every node's reliability
            expression only references the ids of its children.

    Returns:
        A list of error messages (empty if valid).
    """
    nodes = _collect_nodes(root)
    errors: list[str] = []

    errors.extend(_validate_unique_ids(nodes))
    errors.extend(_validate_identifiers(nodes))
    errors.extend(_validate_acyclic(root))

    if feature_names is not None:
        errors.extend(_validate_feature_refs(nodes, set(feature_names)))

    if model_checker is not None:
        errors.extend(_validate_expression_refs(nodes, model_checker))

    return errors


def _collect_nodes(root: RDGNode) -> list[RDGNode]:
    """Every distinct node object reachable from ``root``."""
    seen: set[int] = set()
    nodes: list[RDGNode] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        nodes.append(node)
        stack.extend(node.children)
    return nodes


def _validate_unique_ids(nodes: list[RDGNode]) -> list[str]:
    """Check that distinct node objects do not share an id."""
    counts: dict[str, int] = {}
    for node in nodes:
        counts[node.id] = counts.get(node.id, 0) + 1
    return [
        f"Node id '{nid}' is used by {n} distinct nodes."
        for nid, n in sorted(counts.items())
        if n > 1
    ]


def _validate_identifiers(nodes: list[RDGNode]) -> list[str]:
    """Check that ids can appear as variables in reliability expressions."""
    return [
        f"Node id '{node.id}' is not a valid expression variable."
        for node in nodes
        if not node.id.isidentifier() or keyword.iskeyword(node.id)
    ]


def _validate_acyclic(root: RDGNode) -> list[str]:
    """Check that the children relation has no cycles using DFS colouring.

    The walk keeps an explicit stack of child iterators, so arbitrarily deep
    graphs are checked without recursion.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    color: dict[str, int] = {root.id: GRAY}
    stack: list[tuple[RDGNode, Iterator[RDGNode]]] = [(root, iter(root.children))]

    while stack:
        node, children = stack[-1]
        child = next(children, None)
        if child is None:
            color[node.id] = BLACK
            stack.pop()
            continue
        state = color.get(child.id, WHITE)
        if state == GRAY:
            return [f"Cycle detected involving node '{node.id}' -> '{child.id}'."]
        if state == WHITE:
            color[child.id] = GRAY
            stack.append((child, iter(child.children)))

    return []


def _validate_feature_refs(nodes: list[RDGNode], features: set[str]) -> list[str]:
    """Check that presence conditions only mention known features."""
    errors: list[str] = []
    for node in nodes:
        condition = node.presence_condition
        if isinstance(condition, ADD):
            unknown = sorted(condition.support - features)
        else:
            try:
                names = formula_variables(normalize_formula(condition))
            except FamrelBaseException as e:
                errors.append(f"Node '{node.id}': {e.message}")
                continue
            unknown = sorted(set(names) - features)
        if unknown:
            errors.append(
                f"Node '{node.id}': presence condition references unknown features {unknown}."
            )
    return errors


def _validate_expression_refs(
    nodes: list[RDGNode], model_checker: ParametricModelChecker
) -> list[str]:
    """Check that each reliability expression only references the node's children."""
    errors: list[str] = []
    for node in nodes:
        try:
            variables = free_variables(model_checker.get_reliability(node.model))
        except FamrelBaseException as e:
            errors.append(f"Node '{node.id}': {e.message}")
            continue
        children = {child.id for child in node.children}
        unknown = [v for v in variables if v not in children]
        if unknown:
            errors.append(
                f"Node '{node.id}': expression references non-children {unknown}."
            )
    return errors
