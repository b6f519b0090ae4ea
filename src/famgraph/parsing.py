"""GEDCOM text parsing and serialization."""

import logging
from pathlib import Path
import re

from famgraph.config import GEDCOM_CHARSET, GEDCOM_SOURCE, GEDCOM_VERSION
from famgraph.exceptions import GedcomExportError, GedcomImportError
from famgraph.models import GedcomNode

logger = logging.getLogger(__name__)

# <level> [<@xref@>] <TAG> [<value>]
GEDCOM_LINE_RE = re.compile(r"^(\d+)\s+(@[^@]+@)?\s*(\S+)(?:\s+(.*))?$")
# GEDCOM lines end in LF or CRLF only; other Unicode breaks belong to values
LINE_BREAK_RE = re.compile(r"\r?\n")


def parse_gedcom(text: str) -> list[GedcomNode]:
    """
    Parse GEDCOM text into a forest of nodes whose nesting follows the level numbers.

    Lines that do not match the GEDCOM line grammar are skipped. No tag
    vocabulary is validated here; unknown tags come through as ordinary nodes.

    Args:
        text: Raw GEDCOM document

    Returns:
        Level-0 records in document order
    """
    roots: list[GedcomNode] = []
    stack: list[GedcomNode] = []
    skipped = 0

    for raw_line in LINE_BREAK_RE.split(text):
        line = raw_line.strip()
        if not line:
            continue

        match = GEDCOM_LINE_RE.match(line)
        if not match:
            skipped += 1
            continue

        level_str, xref_id, tag, value = match.groups()
        node = GedcomNode(
            level=int(level_str),
            tag=tag,
            xref_id=xref_id.strip() if xref_id else None,
            value=value.strip() if value is not None else None,
        )

        # Close every open record at this depth or deeper
        while stack and stack[-1].level >= node.level:
            stack.pop()

        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)

        stack.append(node)

    if skipped:
        logger.debug("Skipped %d malformed GEDCOM lines", skipped)
    logger.info("Parsed %d GEDCOM records", len(roots))
    return roots


def read_gedcom_file(filepath: Path) -> str:
    """Read a GEDCOM file, preferring UTF-8 (with or without BOM) and falling back to Latin-1."""
    try:
        raw = Path(filepath).read_bytes()
    except OSError as e:
        raise GedcomImportError(f"Cannot read GEDCOM file {filepath}: {e}") from e

    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("%s is not valid UTF-8, decoding as Latin-1", filepath)
        return raw.decode("latin-1")


def parse_gedcom_file(filepath: Path) -> list[GedcomNode]:
    return parse_gedcom(read_gedcom_file(filepath))


def _serialize_node(node: GedcomNode, lines: list[str]) -> None:
    parts = [str(node.level), node.xref_id or "", node.tag, node.value or ""]
    lines.append(" ".join(part for part in parts if part != ""))
    for child in node.children:
        _serialize_node(child, lines)


def export_gedcom(nodes: list[GedcomNode], include_envelope: bool = True) -> str:
    """
    Serialize nodes back to GEDCOM text.

    The HEAD/TRLR envelope is only written for fresh documents; merged exports
    keep the header and trailer already present in the original records.
    """
    lines: list[str] = []

    if include_envelope:
        lines.extend([
            "0 HEAD",
            f"1 SOUR {GEDCOM_SOURCE}",
            "1 GEDC",
            f"2 VERS {GEDCOM_VERSION}",
            f"1 CHAR {GEDCOM_CHARSET}",
        ])

    for node in nodes:
        _serialize_node(node, lines)

    if include_envelope:
        lines.append("0 TRLR")

    return "\n".join(lines)


def write_gedcom_file(filepath: Path, content: str) -> None:
    try:
        Path(filepath).write_text(content, encoding="utf-8")
    except OSError as e:
        raise GedcomExportError(f"Cannot write GEDCOM file {filepath}: {e}") from e
