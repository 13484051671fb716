"""Tests for rdg.model module -- node structure and document builder."""

import pytest

from famrel.exceptions import CycleDetected, FormatError
from famrel.rdg.model import DocumentRDGBuilder, RDGBuilder, RDGDocument, RDGNode

DIAMOND_YAML = """
root: R
nodes:
  - id: R
    reliability_expression: 0.99 * X * Y
    children: [X, Y]
  - id: X
    reliability_expression: 0.98 * S
    presence_condition: B
    children: [S]
  - id: Y
    reliability_expression: 0.97 * S
    presence_condition: C
    children: [S]
  - id: S
    reliability_expression: "0.9"
"""


class TestRDGNode:
    """Tests for RDG nodes."""

    def test_defaults(self):
        node = RDGNode(id="leaf")
        assert node.children == []
        assert node.presence_condition == "true"
        assert node.model is None

    def test_children_are_shared(self):
        shared = RDGNode(id="S", model="0.9")
        x = RDGNode(id="X", children=[shared])
        y = RDGNode(id="Y", children=[shared])
        assert x.children[0] is y.children[0] is shared

    def test_descendants_visits_each_id_once(self):
        shared = RDGNode(id="S")
        x = RDGNode(id="X", children=[shared])
        y = RDGNode(id="Y", children=[shared])
        root = RDGNode(id="R", children=[x, y])
        assert [n.id for n in root.descendants()] == ["R", "X", "S", "Y"]

    def test_descendants_tolerates_cycles(self):
        a = RDGNode(id="A")
        b = RDGNode(id="B", children=[a])
        a.children.append(b)
        assert [n.id for n in a.descendants()] == ["A", "B"]

    def test_repr_lists_child_ids(self):
        root = RDGNode(id="R", children=[RDGNode(id="X")])
        assert repr(root) == "RDGNode(id='R', children=['X'])"

    def test_builder_is_abstract(self):
        with pytest.raises(TypeError):
            RDGBuilder()  # type: ignore[abstract]


class TestDocumentRDGBuilder:
    """Tests for building RDGs from declarative documents."""

    def test_build_from_yaml(self):
        root = DocumentRDGBuilder().build(DIAMOND_YAML)
        assert root.id == "R"
        assert [c.id for c in root.children] == ["X", "Y"]
        x, y = root.children
        assert x.presence_condition == "B"
        assert x.children[0] is y.children[0]
        assert x.children[0].model == "0.9"
        assert root.model == "0.99 * X * Y"

    def test_build_from_mapping(self):
        root = DocumentRDGBuilder().build(
            {"root": "L", "nodes": [{"id": "L", "reliability_expression": "0.5"}]}
        )
        assert root.id == "L"
        assert root.children == []

    def test_build_from_document(self):
        document = RDGDocument.model_validate(
            {"root": "L", "nodes": [{"id": "L", "reliability_expression": "0.5"}]}
        )
        assert DocumentRDGBuilder().build(document).model == "0.5"

    def test_duplicate_ids(self):
        with pytest.raises(FormatError, match="Duplicate node ids"):
            DocumentRDGBuilder().build(
                {
                    "root": "L",
                    "nodes": [
                        {"id": "L", "reliability_expression": "0.5"},
                        {"id": "L", "reliability_expression": "0.6"},
                    ],
                }
            )

    def test_unknown_child(self):
        with pytest.raises(FormatError, match="do not exist"):
            DocumentRDGBuilder().build(
                {
                    "root": "L",
                    "nodes": [
                        {"id": "L", "reliability_expression": "M", "children": ["M"]}
                    ],
                }
            )

    def test_unknown_root(self):
        with pytest.raises(FormatError, match="Root"):
            DocumentRDGBuilder().build(
                {"root": "Q", "nodes": [{"id": "L", "reliability_expression": "1"}]}
            )

    def test_cycle(self):
        with pytest.raises(CycleDetected) as excinfo:
            DocumentRDGBuilder().build(
                {
                    "root": "A",
                    "nodes": [
                        {"id": "A", "reliability_expression": "B", "children": ["B"]},
                        {"id": "B", "reliability_expression": "A", "children": ["A"]},
                    ],
                }
            )
        path = excinfo.value.path
        assert path[0] == path[-1]
        assert set(path) == {"A", "B"}

    def test_invalid_yaml(self):
        with pytest.raises(FormatError):
            DocumentRDGBuilder().build("root: [unclosed")

    def test_yaml_scalar(self):
        with pytest.raises(FormatError, match="mapping"):
            DocumentRDGBuilder().build("just text")
