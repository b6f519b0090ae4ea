"""Translation between GEDCOM records and Person entities."""

from dataclasses import dataclass, field
import logging
import re

from famgraph.models import (
    GedcomNode,
    Person,
    PersonData,
    id_to_xref,
    xref_to_id,
)

logger = logging.getLogger(__name__)

# Extension fields packed into NOTE text as "key:value", separated by "; "
NOTE_FIELD_RE = re.compile(r"(?:^|;\s*)(wikiId|wikiLoaded|avatar):([^;]+)")
FAMILY_XREF_RE = re.compile(r"^@F(\d+)@$")


@dataclass
class FamilyRecord:
    id: str
    husband_id: str | None = None
    wife_id: str | None = None
    children_ids: list[str] = field(default_factory=list)


# ============================================================================
# GEDCOM -> Person
# ============================================================================


def parse_name_value(name_value: str) -> tuple[str, str | None, str | None]:
    """
    Split a GEDCOM NAME value into first name, last name and suffix.

    ``Robert Sargent "Bobby" /Shriver/ III`` gives the given names before the
    first slash, the surname between the slashes and the suffix after them.
    """
    slash_idx = name_value.find("/")
    if slash_idx == -1:
        return (name_value.strip(), None, None)

    first_name = name_value[:slash_idx].strip()
    last_slash_idx = name_value.find("/", slash_idx + 1)
    if last_slash_idx == -1:
        return (first_name, name_value[slash_idx + 1:].strip(), None)

    last_name = name_value[slash_idx + 1:last_slash_idx].strip()
    suffix = name_value[last_slash_idx + 1:].strip() or None
    return (first_name, last_name, suffix)


def get_full_note_value(note: GedcomNode) -> str:
    """Join a NOTE value with its CONC (no separator) and CONT (newline) continuations."""
    text = note.value or ""
    for child in note.children:
        if child.tag == "CONC":
            text += child.value or ""
        elif child.tag == "CONT":
            text += "\n" + (child.value or "")
    return text


def parse_note_fields(note_value: str) -> tuple[str | None, dict[str, str]]:
    """
    Pull the wikiId/wikiLoaded/avatar extension tokens out of a note.

    Returns:
        The human-visible note (None when nothing is left) and the extracted
        fields keyed by token name
    """
    fields: dict[str, str] = {}
    extracted: list[tuple[str, str]] = []
    for match in NOTE_FIELD_RE.finditer(note_value):
        key, value = match.group(1), match.group(2).strip()
        fields[key] = value
        extracted.append((key, value))

    cleaned = note_value
    for key, value in extracted:
        token_re = re.compile(rf"(?:^|;\s*){key}:{re.escape(value)}")
        cleaned = token_re.sub("", cleaned, count=1).strip()
    cleaned = re.sub(r"(^;+)|(;+$)", "", cleaned).strip()

    return (cleaned or None, fields)


def compose_note(person: Person) -> str:
    """Visible note plus extension tokens, the inverse of ``parse_note_fields``."""
    parts: list[str] = []
    if person.data.note:
        parts.append(re.sub(r"\r?\n", " ", person.data.note))
    if person.wiki_id:
        parts.append(f"wikiId:{person.wiki_id}")
    if person.wiki_loaded is not None:
        parts.append(f"wikiLoaded:{'true' if person.wiki_loaded else 'false'}")
    if person.data.avatar:
        parts.append(f"avatar:{person.data.avatar}")
    return "; ".join(parts)


def extract_event_date(event: GedcomNode) -> str | None:
    """DATE value of an event sub-record (BIRT, DEAT); None when absent."""
    date = event.sub_tag("DATE")
    if date is None:
        return None
    return date.value or ""


def parse_person_record(record: GedcomNode) -> Person:
    """Build a Person (without relationships) from an INDI record."""
    data = PersonData()
    person = Person(id=xref_to_id(record.xref_id), data=data)

    for child in record.children:
        if child.tag == "NAME":
            data.first_name, data.last_name, data.suffix = parse_name_value(child.value or "")
        elif child.tag == "SEX":
            data.gender = child.value or None
        elif child.tag == "BIRT":
            data.birth_day = extract_event_date(child)
        elif child.tag == "DEAT":
            data.death_day = extract_event_date(child)
        elif child.tag == "NOTE":
            note_value = get_full_note_value(child)
            if not note_value:
                continue
            data.note, fields = parse_note_fields(note_value)
            if "avatar" in fields:
                data.avatar = fields["avatar"]
            if fields.get("wikiId"):
                person.wiki_id = fields["wikiId"]
            if "wikiLoaded" in fields:
                person.wiki_loaded = fields["wikiLoaded"] == "true"

    return person


def parse_family_record(record: GedcomNode) -> FamilyRecord:
    family = FamilyRecord(id=xref_to_id(record.xref_id))
    for child in record.children:
        if child.tag == "HUSB":
            family.husband_id = xref_to_id(child.value) or None
        elif child.tag == "WIFE":
            family.wife_id = xref_to_id(child.value) or None
        elif child.tag == "CHIL":
            family.children_ids.append(xref_to_id(child.value))
    return family


def _add_child_to_parent(persons: dict[str, Person], parent_id: str | None, child_id: str) -> None:
    if not parent_id:
        return
    parent = persons.get(parent_id)
    if parent and child_id not in parent.rels.children:
        parent.rels.children.append(child_id)


def _link_family_spouse(
    persons: dict[str, Person], spouse_id: str, other_id: str, children_ids: list[str]
) -> None:
    spouse = persons.get(spouse_id)
    if spouse is None:
        return
    if other_id not in spouse.rels.spouses:
        spouse.rels.spouses.append(other_id)
    # The FAM record is the source of truth for the couple's children
    spouse.rels.children = list(children_ids)


def apply_family(persons: dict[str, Person], family: FamilyRecord) -> None:
    """Wire the parent/child and spouse links described by one FAM record."""
    for child_id in family.children_ids:
        child = persons.get(child_id)
        if child is None:
            continue
        child.rels.father = family.husband_id
        child.rels.mother = family.wife_id
        _add_child_to_parent(persons, family.husband_id, child_id)
        _add_child_to_parent(persons, family.wife_id, child_id)

    if family.husband_id and family.wife_id:
        _link_family_spouse(persons, family.husband_id, family.wife_id, family.children_ids)
        _link_family_spouse(persons, family.wife_id, family.husband_id, family.children_ids)


def gedcom_to_persons(nodes: list[GedcomNode]) -> list[Person]:
    """
    Extract persons and their relationships from parsed GEDCOM records.

    INDI records become persons; FAM records then set father/mother on each
    child, add the child to each parent's children, and make HUSB and WIFE
    symmetric spouses.

    Args:
        nodes: Level-0 records from ``parse_gedcom``

    Returns:
        Persons in INDI record order
    """
    persons: dict[str, Person] = {}
    for record in nodes:
        if record.tag == "INDI":
            person = parse_person_record(record)
            persons[person.id] = person

    families = [parse_family_record(record) for record in nodes if record.tag == "FAM"]
    for family in families:
        apply_family(persons, family)

    logger.info("Mapped %d persons and %d families from GEDCOM", len(persons), len(families))
    return list(persons.values())


# ============================================================================
# Person -> GEDCOM
# ============================================================================


def create_family_key(*spouse_ids: str | None) -> str:
    return "|".join(sorted(s for s in spouse_ids if s))


def _event_node(tag: str, date: str) -> GedcomNode:
    return GedcomNode(level=1, tag=tag, children=[GedcomNode(level=2, tag="DATE", value=date)])


def format_name_value(person: Person) -> str:
    value = f"{person.data.first_name or ''} /{person.data.last_name or ''}/"
    if person.data.suffix:
        value += f" {person.data.suffix}"
    return value.strip()


def create_person_node(person: Person) -> GedcomNode:
    """INDI record for a person, without FAMC/FAMS references."""
    node = GedcomNode(level=0, tag="INDI", xref_id=id_to_xref(person.id))

    if person.data.first_name or person.data.last_name:
        node.children.append(GedcomNode(level=1, tag="NAME", value=format_name_value(person)))
    if person.data.gender:
        node.children.append(GedcomNode(level=1, tag="SEX", value=person.data.gender))
    if person.data.birth_day:
        node.children.append(_event_node("BIRT", person.data.birth_day))
    if person.data.death_day:
        node.children.append(_event_node("DEAT", person.data.death_day))

    note = compose_note(person)
    if note:
        node.children.append(GedcomNode(level=1, tag="NOTE", value=note))

    return node


def extract_families(persons: list[Person]) -> list[FamilyRecord]:
    """
    Derive family records from person relationships.

    One family per distinct (father, mother) pair seen on children, then one
    per spouse pair not already covered. Families are deduplicated by their
    sorted parent key and numbered F0, F1, ... in discovery order.
    """
    families: dict[str, FamilyRecord] = {}

    for person in persons:
        if not (person.rels.father or person.rels.mother):
            continue
        key = create_family_key(person.rels.father, person.rels.mother)
        if key not in families:
            families[key] = FamilyRecord(
                id=f"F{len(families)}",
                husband_id=person.rels.father,
                wife_id=person.rels.mother,
            )
        family = families[key]
        if person.id not in family.children_ids:
            family.children_ids.append(person.id)

    for person in persons:
        for spouse_id in person.rels.spouses:
            key = create_family_key(person.id, spouse_id)
            if key in families:
                continue
            is_husband = person.data.gender == "M"
            families[key] = FamilyRecord(
                id=f"F{len(families)}",
                husband_id=person.id if is_husband else spouse_id,
                wife_id=spouse_id if is_husband else person.id,
                children_ids=list(person.rels.children),
            )

    return list(families.values())


def existing_family_xrefs(original_nodes: list[GedcomNode]) -> dict[str, str]:
    """Map (husband, wife) keys of the original FAM records to their xref ids."""
    xrefs: dict[str, str] = {}
    for record in original_nodes:
        if record.tag != "FAM" or not record.xref_id:
            continue
        husband = record.sub_tag("HUSB")
        wife = record.sub_tag("WIFE")
        key = create_family_key(
            xref_to_id(husband.value) if husband else None,
            xref_to_id(wife.value) if wife else None,
        )
        xrefs[key] = record.xref_id
    return xrefs


def assign_family_xrefs(
    families: list[FamilyRecord], original_nodes: list[GedcomNode] | None = None
) -> dict[str, str]:
    """
    Give every family a GEDCOM xref id.

    Families whose (husband, wife) pair matches a FAM record of the original
    document reuse its xref; the rest get ``@F<n>@`` numbered past the highest
    existing one, skipping ids already in use.

    Returns:
        Internal family id -> xref id
    """
    original_nodes = original_nodes or []
    known = existing_family_xrefs(original_nodes)
    used = {r.xref_id for r in original_nodes if r.tag == "FAM" and r.xref_id}

    max_num = 0
    for xref in used:
        match = FAMILY_XREF_RE.match(xref)
        if match:
            max_num = max(max_num, int(match.group(1)))

    assigned: dict[str, str] = {}
    for family in families:
        key = create_family_key(family.husband_id, family.wife_id)
        if key in known:
            assigned[family.id] = known[key]
            continue
        while True:
            max_num += 1
            new_id = f"@F{max_num}@"
            if new_id not in used:
                break
        used.add(new_id)
        assigned[family.id] = new_id
    return assigned


def create_family_node(family: FamilyRecord, xref_id: str) -> GedcomNode:
    node = GedcomNode(level=0, tag="FAM", xref_id=xref_id)
    if family.husband_id:
        node.children.append(GedcomNode(level=1, tag="HUSB", value=id_to_xref(family.husband_id)))
    if family.wife_id:
        node.children.append(GedcomNode(level=1, tag="WIFE", value=id_to_xref(family.wife_id)))
    for child_id in family.children_ids:
        node.children.append(GedcomNode(level=1, tag="CHIL", value=id_to_xref(child_id)))
    return node


def persons_to_gedcom(
    persons: list[Person], original_nodes: list[GedcomNode] | None = None
) -> list[GedcomNode]:
    """
    Build INDI and FAM records for a person list.

    Each INDI record carries FAMC references to the families it is a child of
    and FAMS references to the families it heads. ``original_nodes`` only
    influences which FAM xref ids are reused.

    Returns:
        All INDI records followed by all FAM records
    """
    if not persons:
        return []

    families = extract_families(persons)
    xrefs = assign_family_xrefs(families, original_nodes)

    person_nodes = []
    for person in persons:
        node = create_person_node(person)
        for family in families:
            if person.id in family.children_ids:
                node.children.append(GedcomNode(level=1, tag="FAMC", value=xrefs[family.id]))
        for family in families:
            if person.id in (family.husband_id, family.wife_id):
                node.children.append(GedcomNode(level=1, tag="FAMS", value=xrefs[family.id]))
        person_nodes.append(node)

    family_nodes = [create_family_node(family, xrefs[family.id]) for family in families]
    logger.info("Built %d INDI and %d FAM records", len(person_nodes), len(family_nodes))
    return person_nodes + family_nodes
