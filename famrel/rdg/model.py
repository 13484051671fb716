"""Reliability Dependency Graph (RDG) entities and builders.

An RDG is a rooted DAG of reliability-relevant units. Each node carries the
opaque state-transition model a parametric model checker turns into a
reliability expression over the ids of the node's children, and a presence
condition stating in which configurations the node is part of the product.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

import networkx as nx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from famrel.diagrams.algebra import ADD
from famrel.exceptions import CycleDetected, FormatError


class RDGNode(BaseModel):
    """A unit of the product line whose reliability depends on its children.

    Children are held by reference, so the same node may be the child of
    several parents.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(
        description="Unique within a graph; also the variable naming this node in its parents' expressions."
    )
    children: list[RDGNode] = Field(
        default_factory=list,
        description="Nodes this node's reliability depends on, in evaluation order.",
    )
    presence_condition: str | ADD = Field(
        default="true",
        description="Boolean formula (or encoded {0, 1} diagram) of the configurations including this node.",
    )
    model: Any = Field(
        default=None,
        description="State-transition model handed to the model checker.",
    )

    def __repr__(self) -> str:
        children = [child.id for child in self.children]
        return f"RDGNode(id={self.id!r}, children={children})"

    def descendants(self) -> list[RDGNode]:
        """Nodes reachable from this one, itself included, each id once, in depth-first preorder."""
        seen: set[str] = set()
        order: list[RDGNode] = []
        stack: list[RDGNode] = [self]
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen.add(node.id)
            order.append(node)
            stack.extend(reversed(node.children))
        return order


class RDGBuilder(ABC):
    """Builds an RDG from some external description of the product line."""

    @abstractmethod
    def build(self, source: Any) -> RDGNode:
        """Build the graph and return its root node."""


class RDGNodeSpec(BaseModel):
    """Declarative description of one RDG node."""

    id: str = Field(description="Node id.")
    reliability_expression: str = Field(
        description="Reliability of the node as an expression over its children's ids."
    )
    presence_condition: str = Field(
        default="true",
        description="Boolean formula over features stating when the node is present.",
    )
    children: list[str] = Field(
        default_factory=list,
        description="Ids of the child nodes, in evaluation order.",
    )


class RDGDocument(BaseModel):
    """A whole RDG written down as a flat list of nodes."""

    root: str = Field(description="Id of the root node.")
    nodes: list[RDGNodeSpec] = Field(description="All nodes of the graph.")

    @model_validator(mode="after")
    def _check_references(self) -> RDGDocument:
        ids = [n.id for n in self.nodes]
        if len(ids) != len(set(ids)):
            seen: set[str] = set()
            dupes = [i for i in ids if i in seen or seen.add(i)]  # type: ignore[func-returns-value]
            msg = f"Duplicate node ids: {dupes}"
            raise ValueError(msg)
        known = set(ids)
        if self.root not in known:
            msg = f"Root '{self.root}' does not exist."
            raise ValueError(msg)
        for node in self.nodes:
            missing = [c for c in node.children if c not in known]
            if missing:
                msg = f"Node '{node.id}': children {missing} do not exist."
                raise ValueError(msg)
        return self


class DocumentRDGBuilder(RDGBuilder):
    """Builds an RDG from an `RDGDocument`, a mapping, or YAML text.

    Each built node's model is its reliability expression, which
    `ExpressionModelChecker` hands back unchanged.
    """

    def build(self, source: RDGDocument | Mapping[str, Any] | str) -> RDGNode:
        """Build the graph described by ``source``.

        Raises:
            FormatError: If the document is malformed or references unknown nodes.
            CycleDetected: If the children relation has a cycle.
        """
        document = self._load(source)
        specs = {spec.id: spec for spec in document.nodes}

        g = nx.DiGraph()
        g.add_nodes_from(specs)
        for spec in document.nodes:
            g.add_edges_from((spec.id, child) for child in spec.children)
        try:
            order = list(nx.topological_sort(g))
        except nx.NetworkXUnfeasible:
            edges = nx.find_cycle(g)
            raise CycleDetected([u for u, _ in edges] + [edges[-1][1]]) from None

        built: dict[str, RDGNode] = {}
        for node_id in reversed(order):
            spec = specs[node_id]
            built[node_id] = RDGNode(
                id=spec.id,
                children=[built[child] for child in spec.children],
                presence_condition=spec.presence_condition,
                model=spec.reliability_expression,
            )
        return built[document.root]

    @staticmethod
    def _load(source: RDGDocument | Mapping[str, Any] | str) -> RDGDocument:
        if isinstance(source, RDGDocument):
            return source
        if isinstance(source, str):
            try:
                source = yaml.safe_load(source)
            except yaml.YAMLError as e:
                raise FormatError("RDG document", str(e)) from e
            if not isinstance(source, Mapping):
                raise FormatError("RDG document", "expected a mapping at top level")
        try:
            return RDGDocument.model_validate(source)
        except ValidationError as e:
            raise FormatError("RDG document", str(e)) from e
