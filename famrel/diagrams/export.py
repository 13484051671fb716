"""Export of algebraic decision diagrams for external visualization tools."""

from __future__ import annotations

import logging
from pathlib import Path

import networkx as nx
from dd.autoref import Function

from famrel.diagrams.algebra import ADD

logger = logging.getLogger(__name__)

Partition = list[tuple[float, Function]]


def _cofactor(diagram: ADD, partition: Partition, var: str, value: bool) -> Partition:
    bdd = diagram.manager.bdd
    restricted: Partition = []
    for terminal, region in partition:
        region = bdd.let({var: value}, region) if var in region.support else region
        if region != bdd.false:
            restricted.append((terminal, region))
    return restricted


def to_nx(diagram: ADD, label: str = "") -> nx.DiGraph:
    """Build the reduced multi-terminal decision diagram as a networkx graph.

    Internal nodes are labelled with their feature variable and have a dashed
    edge to the low (false) child and a solid edge to the high (true) child.
    Terminal nodes are boxes labelled with their value. Sub-diagrams shared by
    several parents appear once. The root node id is stored in
    ``graph.graph["root"]``.

    Args:
        diagram (ADD): The diagram to convert.
        label (str): Graph label, written as the Graphviz ``label`` attribute.

    Returns:
        graph (nx.DiGraph): The diagram structure.
    """
    order = [var for var in diagram.manager.features if var in diagram.support]
    g = nx.DiGraph()
    g.graph["graph"] = {"label": label} if label else {}
    memo: dict[tuple[tuple[float, int], ...], str] = {}

    def expand(partition: Partition, level: int) -> str:
        key = tuple((terminal, int(region)) for terminal, region in partition)
        if key in memo:
            return memo[key]
        node = f"n{g.number_of_nodes()}"
        if len(partition) == 1:
            g.add_node(node, label=f"{partition[0][0]:g}", shape="box")
            memo[key] = node
            return node
        while not any(order[level] in region.support for _, region in partition):
            level += 1
        var = order[level]
        g.add_node(node, label=var, shape="ellipse")
        low = expand(_cofactor(diagram, partition, var, False), level + 1)
        high = expand(_cofactor(diagram, partition, var, True), level + 1)
        g.add_edge(node, low, style="dashed")
        g.add_edge(node, high, style="solid")
        memo[key] = node
        return node

    g.graph["root"] = expand(list(diagram.regions()), 0)
    return g


def export_dot(diagram: ADD, label: str, destination: str | Path) -> None:
    """Write a diagram as a Graphviz DOT file.

    Args:
        diagram (ADD): The diagram to export.
        label (str): Graph label shown by the viewer.
        destination (str | Path): Path of the ``.dot`` file to write.
    """
    path = Path(destination)
    g = to_nx(diagram, label)
    nx.nx_pydot.write_dot(g, path)
    logger.info(f"Wrote {g.number_of_nodes()} diagram nodes to {path}")
