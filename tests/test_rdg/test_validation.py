"""Tests for rdg.validation module."""

import pytest

from famrel.diagrams.algebra import DiagramManager
from famrel.rdg.checker import ExpressionModelChecker
from famrel.rdg.model import RDGNode
from famrel.rdg.validation import (
    _validate_acyclic,
    _validate_expression_refs,
    _validate_feature_refs,
    _validate_identifiers,
    _validate_unique_ids,
    validate_rdg_structure,
)


@pytest.fixture()
def valid_rdg() -> RDGNode:
    """A structurally valid diamond-shaped RDG."""
    s = RDGNode(id="S", model="0.9")
    x = RDGNode(id="X", children=[s], presence_condition="B", model="0.98 * S")
    y = RDGNode(id="Y", children=[s], presence_condition="C", model="0.97 * S")
    return RDGNode(id="R", children=[x, y], model="X + Y - X*Y")


class TestValidateRDGStructure:
    """Tests for the combined structural checks."""

    def test_valid(self, valid_rdg: RDGNode):
        errors = validate_rdg_structure(
            valid_rdg,
            feature_names=["A", "B", "C"],
            model_checker=ExpressionModelChecker(),
        )
        assert errors == []

    def test_collects_all_problems(self):
        a = RDGNode(id="a-1", model="0.9", presence_condition="Z")
        root = RDGNode(id="R", children=[a, RDGNode(id="a-1")], model="W")
        errors = validate_rdg_structure(
            root, feature_names=["A"], model_checker=ExpressionModelChecker()
        )
        assert any("used by 2 distinct nodes" in e for e in errors)
        assert any("not a valid expression variable" in e for e in errors)
        assert any("unknown features ['Z']" in e for e in errors)
        assert any("non-children ['W']" in e for e in errors)


class TestIndividualChecks:
    """Tests for each structural check."""

    def test_unique_ids(self):
        nodes = [RDGNode(id="X"), RDGNode(id="X"), RDGNode(id="Y")]
        assert _validate_unique_ids(nodes) == [
            "Node id 'X' is used by 2 distinct nodes."
        ]

    def test_shared_node_is_not_a_duplicate(self, valid_rdg: RDGNode):
        assert validate_rdg_structure(valid_rdg) == []

    def test_identifiers(self):
        errors = _validate_identifiers([RDGNode(id="ok_1"), RDGNode(id="1bad")])
        assert errors == ["Node id '1bad' is not a valid expression variable."]

    @pytest.mark.parametrize("keyword_id", ["if", "lambda", "None", "True"])
    def test_keywords_are_not_identifiers(self, keyword_id: str):
        errors = _validate_identifiers([RDGNode(id=keyword_id)])
        assert errors == [f"Node id '{keyword_id}' is not a valid expression variable."]

    def test_acyclic(self, valid_rdg: RDGNode):
        assert _validate_acyclic(valid_rdg) == []

    def test_deep_chain(self):
        depth = 2000
        current = RDGNode(id=f"n{depth}", model="0.5")
        for i in range(depth - 1, -1, -1):
            current = RDGNode(id=f"n{i}", children=[current], model=f"n{i + 1}")
        assert validate_rdg_structure(current) == []

    def test_cycle_at_end_of_deep_chain(self):
        depth = 2000
        tail = RDGNode(id="tail")
        current = tail
        for i in range(depth - 1, -1, -1):
            current = RDGNode(id=f"n{i}", children=[current])
        tail.children.append(current)
        assert _validate_acyclic(current) == [
            "Cycle detected involving node 'tail' -> 'n0'."
        ]

    def test_self_loop(self):
        a = RDGNode(id="A")
        a.children.append(a)
        assert _validate_acyclic(a) == ["Cycle detected involving node 'A' -> 'A'."]

    def test_cycle(self):
        a = RDGNode(id="A")
        b = RDGNode(id="B", children=[a])
        a.children.append(b)
        errors = _validate_acyclic(a)
        assert errors == ["Cycle detected involving node 'B' -> 'A'."]

    def test_feature_refs_of_encoded_condition(self, manager: DiagramManager):
        node = RDGNode(id="X", presence_condition=manager.var("C"))
        assert _validate_feature_refs([node], {"A", "B"}) == [
            "Node 'X': presence condition references unknown features ['C']."
        ]

    def test_malformed_presence_condition(self):
        node = RDGNode(id="X", presence_condition="B & (C")
        errors = _validate_feature_refs([node], {"B", "C"})
        assert len(errors) == 1
        assert "unbalanced parentheses" in errors[0]

    def test_expression_refs(self, valid_rdg: RDGNode):
        assert _validate_expression_refs([valid_rdg], ExpressionModelChecker()) == []

    def test_checker_failure_reported(self):
        node = RDGNode(id="X", model=3)
        errors = _validate_expression_refs([node], ExpressionModelChecker())
        assert errors == [
            "Node 'X': Model checking failed for int: model carries no reliability expression"
        ]
