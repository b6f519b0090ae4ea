"""Graphviz layout of the union graph and translation to positioned nodes and edges."""

from dataclasses import asdict, dataclass, field
import logging
import shlex
from typing import Any, Protocol

import networkx as nx
import pydot

from famgraph.colors import get_family_color
from famgraph.config import (
    FAMILY_NODE_RADIUS,
    FAMILY_NODE_TOP_PADDING,
    GRAPHVIZ_GRAPH_ATTRIBUTES,
    GRAPHVIZ_PROG,
    NODE_HEIGHT,
    NODE_WIDTH,
    POINTS_PER_INCH,
)
from famgraph.exceptions import LayoutError
from famgraph.graph import build_union_layout_graph
from famgraph.models import Person

logger = logging.getLogger(__name__)

Positions = dict[str, tuple[float, float]]


@dataclass
class PersonNode:
    id: str
    x: float
    y: float
    parent_family_id: str | None = None


@dataclass
class FamilyNode:
    id: str
    x: float
    y: float
    spouse_ids: list[str] = field(default_factory=list)
    children_ids: list[str] = field(default_factory=list)
    color: str = ""


@dataclass
class FamilyEdge:
    id: str
    source: str
    target: str
    source_handle: str
    target_handle: str
    type: str  # "spouse" or "child"
    family_id: str | None = None
    child_id: str | None = None
    spouse_id: str | None = None
    color: str = ""


@dataclass
class TreeLayout:
    person_nodes: list[PersonNode] = field(default_factory=list)
    family_nodes: list[FamilyNode] = field(default_factory=list)
    edges: list[FamilyEdge] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LayoutEngine(Protocol):
    """Anything that assigns a top-left (x, y) in pixels to every node of a layout graph."""

    def layout(self, graph: nx.DiGraph) -> Positions: ...


class GraphvizLayoutEngine:
    """
    Layered top-to-bottom layout through Graphviz ``dot`` (via pydot).

    Node sizes come from the ``width``/``height`` node attributes in pixels.
    Graphviz reports centers in inches with the origin at the bottom left;
    they are converted to top-left pixel corners with y growing downwards.
    """

    def __init__(self, prog: str = GRAPHVIZ_PROG, graph_attributes: dict[str, str] | None = None):
        self.prog = prog
        self.graph_attributes = dict(graph_attributes or GRAPHVIZ_GRAPH_ATTRIBUTES)

    def build_dot(self, graph: nx.DiGraph) -> tuple[pydot.Dot, dict[str, str]]:
        """Translate the layout graph; node ids are aliased to n0, n1, ... to avoid quoting issues."""
        P = pydot.Dot(graph_type="digraph")
        for key, value in self.graph_attributes.items():
            P.set(key, value)

        aliases: dict[str, str] = {}
        for i, (node, data) in enumerate(graph.nodes(data=True)):
            alias = f"n{i}"
            aliases[node] = alias
            P.add_node(
                pydot.Node(
                    alias,
                    shape="box",
                    fixedsize="true",
                    width=f"{data.get('width', NODE_WIDTH) / POINTS_PER_INCH:.4f}",
                    height=f"{data.get('height', NODE_HEIGHT) / POINTS_PER_INCH:.4f}",
                    label="",
                    style="invis" if data.get("node_type") == "dummy" else "solid",
                )
            )

        for u, v, _ in sorted(graph.edges(data=True), key=lambda e: e[2].get("order", 0)):
            P.add_edge(pydot.Edge(aliases[u], aliases[v]))

        # Keep couples on the same rank
        couples = 0
        for node, data in graph.nodes(data=True):
            spouses = data.get("spouse_ids") or []
            if data.get("node_type") == "family" and len(spouses) == 2:
                sg = pydot.Subgraph(f"couple_{couples}", rank="same")
                for spouse in spouses:
                    sg.add_node(pydot.Node(aliases[spouse]))
                P.add_subgraph(sg)
                couples += 1

        return P, {alias: node for node, alias in aliases.items()}

    def layout(self, graph: nx.DiGraph) -> Positions:
        P, names = self.build_dot(graph)
        logger.debug("Running %s on %d nodes", self.prog, graph.number_of_nodes())
        try:
            output = P.create(prog=self.prog, format="plain")
        except Exception as e:
            raise LayoutError(f"Graphviz '{self.prog}' failed: {e}") from e
        return parse_plain_output(output.decode("utf-8"), names)


def parse_plain_output(text: str, names: dict[str, str] | None = None) -> Positions:
    """
    Read node positions from Graphviz ``-Tplain`` output.

    Args:
        text: Plain output (``graph``/``node``/``edge``/``stop`` lines)
        names: Graphviz node name -> layout graph node id

    Returns:
        Node id -> top-left (x, y) in pixels
    """
    names = names or {}
    graph_height = None
    positions: Positions = {}

    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            fields = shlex.split(line)
        except ValueError as e:
            raise LayoutError(f"Unreadable Graphviz output line: {line!r}") from e

        if fields[0] == "graph":
            graph_height = float(fields[3])
        elif fields[0] == "node":
            if graph_height is None:
                raise LayoutError("Graphviz output has no graph header")
            name = fields[1]
            x, y, width, height = (float(v) for v in fields[2:6])
            positions[names.get(name, name)] = (
                (x - width / 2) * POINTS_PER_INCH,
                (graph_height - y - height / 2) * POINTS_PER_INCH,
            )
        elif fields[0] == "stop":
            break

    if graph_height is None:
        raise LayoutError("Graphviz produced no layout")
    return positions


def _family_position(
    data: dict[str, Any], base: tuple[float, float], persons: dict[str, PersonNode]
) -> tuple[float, float]:
    """Center the union marker under its spouses instead of where the engine put it."""
    spouses = [persons[s] for s in data.get("spouse_ids") or [] if s in persons]
    if len(spouses) == 2:
        s1, s2 = spouses
        x = ((s1.x + NODE_WIDTH / 2) + (s2.x + NODE_WIDTH / 2)) / 2 - FAMILY_NODE_RADIUS
        y = max(s1.y, s2.y) + FAMILY_NODE_TOP_PADDING
        return (x, y)
    if len(spouses) == 1:
        s = spouses[0]
        return (s.x + NODE_WIDTH / 2 - FAMILY_NODE_RADIUS, s.y + FAMILY_NODE_TOP_PADDING)
    return base


def build_tree_layout(graph: nx.DiGraph, positions: Positions) -> TreeLayout:
    """Turn engine positions into exposed nodes and edges, dropping every dummy."""
    result = TreeLayout()
    persons: dict[str, PersonNode] = {}

    for node, data in graph.nodes(data=True):
        if data.get("node_type") != "person":
            continue
        x, y = positions.get(node, (0.0, 0.0))
        person_node = PersonNode(id=node, x=x, y=y, parent_family_id=data.get("parent_family_id"))
        persons[node] = person_node
        result.person_nodes.append(person_node)

    for node, data in graph.nodes(data=True):
        if data.get("node_type") != "family":
            continue
        x, y = _family_position(data, positions.get(node, (0.0, 0.0)), persons)
        result.family_nodes.append(
            FamilyNode(
                id=node,
                x=x,
                y=y,
                spouse_ids=list(data.get("spouse_ids") or []),
                children_ids=list(data.get("child_ids") or []),
                color=data.get("color") or get_family_color(node),
            )
        )

    for u, v, data in sorted(graph.edges(data=True), key=lambda e: e[2].get("order", 0)):
        if data.get("dummy"):
            continue
        # Child edges point from the child's top handle up to the family's bottom handle
        is_child = data["edge_type"] == "child"
        result.edges.append(
            FamilyEdge(
                id=data["edge_id"],
                source=v if is_child else u,
                target=u if is_child else v,
                source_handle="top" if is_child else "bottom",
                target_handle="bottom" if is_child else "top",
                type=data["edge_type"],
                family_id=data.get("family_id"),
                child_id=data.get("child_id"),
                spouse_id=data.get("spouse_id"),
                color=get_family_color(data.get("family_id")),
            )
        )

    return result


def compute_layout(
    persons: dict[str, Person] | list[Person], engine: LayoutEngine | None = None
) -> TreeLayout:
    """
    Lay out a person set: build the union graph, run the engine, read positions back.

    Args:
        persons: Persons keyed by id (or a plain list)
        engine: Layout engine; Graphviz ``dot`` when omitted

    Returns:
        Positioned person nodes, family nodes and typed edges

    Raises:
        LayoutError: The engine could not lay out the graph
    """
    if isinstance(persons, list):
        persons = {p.id: p for p in persons}
    if not persons:
        return TreeLayout()

    engine = engine or GraphvizLayoutEngine()
    H = build_union_layout_graph(persons)
    positions = engine.layout(H)
    layout = build_tree_layout(H, positions)
    logger.info(
        "Laid out %d persons, %d families, %d edges",
        len(layout.person_nodes), len(layout.family_nodes), len(layout.edges),
    )
    return layout
