"""Merge edited persons back into an originally imported GEDCOM document."""

import copy
import logging

from famgraph.mapping import compose_note, format_name_value, gedcom_to_persons, persons_to_gedcom
from famgraph.models import GedcomNode, Person, xref_to_id

logger = logging.getLogger(__name__)

FAMILY_LINK_TAGS = ("HUSB", "WIFE", "CHIL")


def set_or_update_child(
    node: GedcomNode, tag: str, value: str | None, children: list[GedcomNode] | None = None
) -> None:
    """Replace the first ``tag`` sub-record, create it, or drop every ``tag`` when empty."""
    children = children or []
    if value is None and not children:
        node.children = [c for c in node.children if c.tag != tag]
        return

    existing = node.sub_tag(tag)
    if existing is None:
        node.children.append(GedcomNode(level=node.level + 1, tag=tag, value=value, children=children))
    else:
        existing.value = value
        existing.children = children


def update_event_date(node: GedcomNode, tag: str, new_date: str | None) -> None:
    """Rewrite only the DATE of an event, keeping PLAC, SOUR etc. beside it."""
    event = node.sub_tag(tag)
    if event is None:
        if new_date:
            date = GedcomNode(level=node.level + 2, tag="DATE", value=new_date)
            set_or_update_child(node, tag, None, [date])
        return

    date = event.sub_tag("DATE")
    if new_date is None:
        event.children = [c for c in event.children if c.tag != "DATE"]
    elif date is not None:
        date.value = new_date
    else:
        event.children.append(GedcomNode(level=event.level + 1, tag="DATE", value=new_date))


def reconcile_references(node: GedcomNode, tag: str, new_refs: list[GedcomNode]) -> None:
    """Make the ``tag`` sub-records of ``node`` match ``new_refs`` by value, leaving other tags alone."""
    new_values = {ref.value for ref in new_refs}
    node.children = [c for c in node.children if c.tag != tag or c.value in new_values]

    for ref in new_refs:
        existing = next((c for c in node.children if c.tag == tag and c.value == ref.value), None)
        if existing is None:
            node.children.append(copy.deepcopy(ref))
        else:
            existing.children = copy.deepcopy(ref.children)


def update_person_record(
    node: GedcomNode,
    original: Person,
    updated: Person,
    new_record: GedcomNode | None = None,
) -> None:
    """
    Patch an INDI record field by field.

    Only fields whose value changed since import are rewritten; sub-records
    the mapper does not understand are never touched.
    """
    if (
        original.data.first_name != updated.data.first_name
        or original.data.last_name != updated.data.last_name
        or original.data.suffix != updated.data.suffix
    ):
        name = node.sub_tag("NAME")
        if name is not None:
            # GIVN/SURN and other NAME sub-records stay as they were
            name.value = format_name_value(updated)
        else:
            set_or_update_child(node, "NAME", format_name_value(updated))

    if original.data.gender != updated.data.gender:
        set_or_update_child(node, "SEX", updated.data.gender)

    if original.data.birth_day != updated.data.birth_day:
        update_event_date(node, "BIRT", updated.data.birth_day)

    if original.data.death_day != updated.data.death_day:
        update_event_date(node, "DEAT", updated.data.death_day)

    new_note = compose_note(updated)
    if compose_note(original) != new_note:
        set_or_update_child(node, "NOTE", new_note or None)

    if new_record is not None:
        for tag in ("FAMC", "FAMS"):
            reconcile_references(node, tag, new_record.sub_tags(tag))


def update_family_record(node: GedcomNode, new_record: GedcomNode) -> None:
    """Sync HUSB/WIFE/CHIL with the freshly derived family; every other tag is preserved."""
    wanted = [c for c in new_record.children if c.tag in FAMILY_LINK_TAGS]

    for new_child in wanted:
        existing = next(
            (c for c in node.children if c.tag == new_child.tag and c.value == new_child.value),
            None,
        )
        if existing is None:
            node.children.append(copy.deepcopy(new_child))
        else:
            existing.children = copy.deepcopy(new_child.children)

    wanted_keys = {(c.tag, c.value) for c in wanted}
    node.children = [
        c for c in node.children
        if c.tag not in FAMILY_LINK_TAGS or (c.tag, c.value) in wanted_keys
    ]


def insert_after_last(nodes: list[GedcomNode], new_nodes: list[GedcomNode], tag: str) -> None:
    """Insert records right after the last record with ``tag``; otherwise before TRLR or at the end."""
    if not new_nodes:
        return
    last_idx = max((i for i, n in enumerate(nodes) if n.tag == tag), default=-1)
    if last_idx >= 0:
        insert_idx = last_idx + 1
    elif nodes and nodes[-1].tag == "TRLR":
        insert_idx = len(nodes) - 1
    else:
        insert_idx = len(nodes)
    nodes[insert_idx:insert_idx] = new_nodes


def merge_gedcom_nodes(original_nodes: list[GedcomNode], persons: list[Person]) -> list[GedcomNode]:
    """
    Reconcile the current persons with the document they were imported from.

    The original records are deep-copied and patched in place:

    - INDI records of deleted persons are dropped; the others get a field-level
      diff against the person originally derived from them plus a FAMC/FAMS
      reconciliation.
    - FAM records keep their xref while the (husband, wife) pair still exists;
      only HUSB/WIFE/CHIL are synced, families that no longer exist are dropped.
    - New INDI and FAM records are inserted after the last record of the same tag.

    HEAD, TRLR, SOUR and any unknown records or sub-records pass through untouched.

    Args:
        original_nodes: Records as parsed at import time
        persons: Current person list

    Returns:
        A new record list; ``original_nodes`` is not modified
    """
    result = copy.deepcopy(original_nodes)
    original_persons = {p.id: p for p in gedcom_to_persons(original_nodes)}
    current_persons = {p.id: p for p in persons}
    new_records = persons_to_gedcom(persons, original_nodes)
    new_indi = {xref_to_id(r.xref_id): r for r in new_records if r.tag == "INDI"}

    removed = 0
    kept: list[GedcomNode] = []
    for node in result:
        if node.tag != "INDI":
            kept.append(node)
            continue
        person_id = xref_to_id(node.xref_id)
        if not person_id or person_id not in current_persons:
            removed += 1
            continue
        original = original_persons.get(person_id)
        if original is not None:
            update_person_record(node, original, current_persons[person_id], new_indi.get(person_id))
        kept.append(node)
    result = kept

    added_indi = [r for pid, r in new_indi.items() if pid not in original_persons]
    insert_after_last(result, added_indi, "INDI")

    new_families = {r.xref_id: r for r in new_records if r.tag == "FAM" and r.xref_id}
    before = len(result)
    result = [n for n in result if n.tag != "FAM" or (n.xref_id and n.xref_id in new_families)]
    removed_fam = before - len(result)

    for node in result:
        if node.tag == "FAM" and node.xref_id in new_families:
            update_family_record(node, new_families[node.xref_id])

    existing_fam = {n.xref_id for n in result if n.tag == "FAM"}
    added_fam = [r for xref, r in new_families.items() if xref not in existing_fam]
    insert_after_last(result, added_fam, "FAM")

    logger.info(
        "Merged GEDCOM: %d INDI removed, %d added; %d FAM removed, %d added",
        removed, len(added_indi), removed_fam, len(added_fam),
    )
    return result
