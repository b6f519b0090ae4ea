"""Layout constants and environment-driven settings."""

import os
from dataclasses import dataclass
from pathlib import Path

# Person and family node geometry (pixels)
NODE_WIDTH = 200
NODE_HEIGHT = 60
FAMILY_NODE_RADIUS = 8
FAMILY_NODE_TOP_PADDING = NODE_HEIGHT + 100
DUMMY_NODE_SIZE = 1

# Graphviz works in inches; positions are converted back at this resolution
POINTS_PER_INCH = 72

GRAPHVIZ_PROG = "dot"
GRAPHVIZ_GRAPH_ATTRIBUTES = {
    "rankdir": "TB",  # Top-to-bottom (ancestors at top)
    "splines": "ortho",  # Orthogonal edges for cleaner tree look
    "nodesep": f"{50 / POINTS_PER_INCH:.4f}",  # Horizontal spacing between nodes
    "ranksep": f"{120 / POINTS_PER_INCH:.4f}",  # Vertical spacing between ranks
    "ordering": "out",
}

FAMILY_COLORS = [
    "#E57373",  # Red
    "#81C784",  # Green
    "#64B5F6",  # Blue
    "#FFB74D",  # Orange
    "#BA68C8",  # Purple
    "#4DB6AC",  # Teal
    "#F06292",  # Pink
    "#90A4AE",  # Blue Grey
    "#A1887F",  # Brown
    "#FF8A65",  # Deep Orange
    "#9575CD",  # Deep Purple
    "#4FC3F7",  # Light Blue
    "#AED581",  # Light Green
    "#FFCC02",  # Amber
    "#26A69A",  # Teal
    "#EF5350",  # Red
    "#66BB6A",  # Green
    "#42A5F5",  # Blue
    "#FF7043",  # Deep Orange
]

GENDER_COLORS = {
    "M": "#87ceeb",  # light blue
    "F": "#ffb6c1",  # light pink
}
UNKNOWN_GENDER_COLOR = "#e6e6fa"  # lavender

# GEDCOM envelope written on fresh exports
GEDCOM_SOURCE = "famgraph"
GEDCOM_VERSION = "5.5.1"
GEDCOM_CHARSET = "UTF-8"


@dataclass
class Settings:
    db_path: Path
    log_level: str
    graphviz_prog: str


def load_settings() -> Settings:
    """Build settings from FAMGRAPH_* environment variables."""
    default_db = Path.home() / ".famgraph" / "famgraph.db"
    return Settings(
        db_path=Path(os.environ.get("FAMGRAPH_DB", str(default_db))),
        log_level=os.environ.get("FAMGRAPH_LOG_LEVEL", "INFO"),
        graphviz_prog=os.environ.get("FAMGRAPH_GRAPHVIZ_PROG", GRAPHVIZ_PROG),
    )
