"""Rendering of a computed tree layout with matplotlib."""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.patches import Circle, FancyBboxPatch

from famgraph.config import FAMILY_NODE_RADIUS, GENDER_COLORS, NODE_HEIGHT, NODE_WIDTH, UNKNOWN_GENDER_COLOR
from famgraph.layout import FamilyEdge, TreeLayout
from famgraph.models import Person, format_dates, format_name

logger = logging.getLogger(__name__)

MARGIN = 40
PIXELS_PER_FIGURE_INCH = 100


def _anchor(edge_end: str, handle: str, centers: dict[str, tuple[float, float]], sizes: dict) -> tuple[float, float]:
    cx, cy = centers[edge_end]
    _, height = sizes[edge_end]
    return (cx, cy - height / 2) if handle == "top" else (cx, cy + height / 2)


def _edge_path(
    edge: FamilyEdge, centers: dict[str, tuple[float, float]], sizes: dict
) -> tuple[list[float], list[float]]:
    """Orthogonal connector: down from the source handle, across, then down to the target."""
    if edge.type == "child":
        # Drawn from the family marker down to the child
        start = _anchor(edge.target, edge.target_handle, centers, sizes)
        end = _anchor(edge.source, edge.source_handle, centers, sizes)
    else:
        start = _anchor(edge.source, edge.source_handle, centers, sizes)
        end = _anchor(edge.target, edge.target_handle, centers, sizes)
    mid_y = (start[1] + end[1]) / 2
    return [start[0], start[0], end[0], end[0]], [start[1], mid_y, mid_y, end[1]]


def plot_layout(
    layout: TreeLayout,
    persons: dict[str, Person],
    output_path: Path | None = None,
):
    """
    Draw person boxes, family markers and their connectors.

    Person boxes are colored by gender and labelled with name and dates;
    family markers and the edges hanging from them use the family color.

    Args:
        layout: Positioned nodes and edges from ``compute_layout``
        persons: Person id -> Person, for labels and colors
        output_path: Where to save the image. If None, displays interactively.

    Returns:
        The matplotlib figure
    """
    centers: dict[str, tuple[float, float]] = {}
    sizes: dict[str, tuple[float, float]] = {}
    for node in layout.person_nodes:
        centers[node.id] = (node.x + NODE_WIDTH / 2, node.y + NODE_HEIGHT / 2)
        sizes[node.id] = (NODE_WIDTH, NODE_HEIGHT)
    for node in layout.family_nodes:
        centers[node.id] = (node.x + FAMILY_NODE_RADIUS, node.y + FAMILY_NODE_RADIUS)
        sizes[node.id] = (2 * FAMILY_NODE_RADIUS, 2 * FAMILY_NODE_RADIUS)

    if centers:
        xs = [x for x, _ in centers.values()]
        ys = [y for _, y in centers.values()]
        min_x, max_x = min(xs) - NODE_WIDTH / 2 - MARGIN, max(xs) + NODE_WIDTH / 2 + MARGIN
        min_y, max_y = min(ys) - NODE_HEIGHT / 2 - MARGIN, max(ys) + NODE_HEIGHT / 2 + MARGIN
    else:
        min_x, max_x, min_y, max_y = 0, NODE_WIDTH, 0, NODE_HEIGHT

    fig, ax = plt.subplots(
        figsize=(
            max((max_x - min_x) / PIXELS_PER_FIGURE_INCH, 4),
            max((max_y - min_y) / PIXELS_PER_FIGURE_INCH, 3),
        )
    )

    for edge in layout.edges:
        if edge.source not in centers or edge.target not in centers:
            continue
        xs, ys = _edge_path(edge, centers, sizes)
        ax.plot(xs, ys, color=edge.color or "darkgray", linewidth=1.5, zorder=1)

    for node in layout.family_nodes:
        ax.add_patch(Circle(centers[node.id], FAMILY_NODE_RADIUS, color=node.color, zorder=3))

    for node in layout.person_nodes:
        person = persons.get(node.id)
        gender = person.data.gender if person else None
        ax.add_patch(
            FancyBboxPatch(
                (node.x, node.y),
                NODE_WIDTH,
                NODE_HEIGHT,
                boxstyle="round,pad=0,rounding_size=8",
                facecolor=GENDER_COLORS.get(gender, UNKNOWN_GENDER_COLOR),
                edgecolor="dimgray",
                zorder=2,
            )
        )
        if person is None:
            continue
        label = format_name(person) or person.id
        dates = format_dates(person)
        if dates:
            label = f"{label}\n{dates}"
        ax.text(*centers[node.id], label, ha="center", va="center", fontsize=8, zorder=4)

    ax.set_xlim(min_x, max_x)
    # Layout coordinates grow downwards
    ax.set_ylim(max_y, min_y)
    ax.set_aspect("equal")
    ax.axis("off")
    fig.tight_layout()

    if output_path:
        fig.savefig(output_path)
        logger.info("Tree image saved to %s", output_path)
    else:
        plt.show()
    return fig
