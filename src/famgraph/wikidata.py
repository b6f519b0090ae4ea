"""Conversion of WikiData knowledge-base records into persons and relationships."""

import copy
from dataclasses import dataclass, field
import logging
import re
from typing import Protocol

from famgraph.exceptions import KnowledgeBaseError
from famgraph.models import GENDERS, Person, PersonData
from famgraph.notifications import NotificationCenter
from famgraph.store import FamilyTreeStore

logger = logging.getLogger(__name__)

WIKIDATA_ENTITY_URL = "https://www.wikidata.org/wiki/"
THUMBNAIL_WIDTH = 120

# WikiData items for sex or gender
MALE_ITEM = "Q6581097"
FEMALE_ITEM = "Q6581072"

DATE_RE = re.compile(r"(\d+)-(\d{2})-(\d{2})")


@dataclass
class WikiPerson:
    id: str
    label: str
    description: str = ""
    image: str | None = None
    birth_date: str | None = None
    death_date: str | None = None
    gender: str | None = None


@dataclass
class WikiChild:
    child: WikiPerson
    other_parent: WikiPerson | None = None


@dataclass
class WikiSibling:
    sibling: WikiPerson
    father: WikiPerson | None = None
    mother: WikiPerson | None = None


@dataclass
class WikiFamily:
    father: WikiPerson | None = None
    mother: WikiPerson | None = None
    spouses: list[WikiPerson] = field(default_factory=list)
    children: list[WikiChild] = field(default_factory=list)
    siblings: list[WikiSibling] = field(default_factory=list)


class KnowledgeBase(Protocol):
    """Client for the external person lookup service."""

    async def search(self, query: str) -> list[WikiPerson]: ...

    async def fetch_immediate_family(self, person_id: str) -> WikiFamily: ...


def map_wiki_gender(value: str | None) -> str:
    """Map a sex-or-gender item (id or entity URL) to M, F or U; those codes pass through."""
    if not value:
        return "U"
    if value in GENDERS:
        return value
    if MALE_ITEM in value:
        return "M"
    if FEMALE_ITEM in value:
        return "F"
    return "U"


def parse_wiki_date(value: str | None) -> str | None:
    """
    Reduce a WikiData timestamp to ``YYYY-MM-DD``.

    Leading zeros of the year are dropped and negative years get a ``BCE``
    suffix, e.g. ``-0044-03-15T00:00:00Z`` -> ``44-03-15 BCE``. Anything that
    does not look like a date gives None.
    """
    if not value:
        return None
    date_part = value.split("T")[0]
    is_bce = date_part.startswith("-")
    match = DATE_RE.search(date_part)
    if not match:
        return None
    year = str(int(match.group(1)))
    if len(year) > 4:
        return None
    date = f"{year}-{match.group(2)}-{match.group(3)}"
    return f"{date} BCE" if is_bce else date


def get_wiki_thumbnail(image_url: str | None) -> str | None:
    if not image_url:
        return None
    return image_url if "?width=" in image_url else f"{image_url}?width={THUMBNAIL_WIDTH}"


def convert_wiki_person(wiki_person: WikiPerson, persons: list[Person]) -> Person:
    """
    Return the person for a knowledge-base record, creating it if needed.

    An existing person with the same ``wiki_id`` is returned unchanged. New
    persons take the external id as their own id and are appended to
    ``persons``.
    """
    for person in persons:
        if person.wiki_id == wiki_person.id:
            return person

    note = f"{wiki_person.description}\n" if wiki_person.description else ""
    note += f"WikiData: {WIKIDATA_ENTITY_URL}{wiki_person.id}"

    first_name, _, last_name = wiki_person.label.partition(" ")
    person = Person(
        id=wiki_person.id,
        wiki_id=wiki_person.id,
        data=PersonData(
            first_name=first_name,
            last_name=last_name,
            birth_day=parse_wiki_date(wiki_person.birth_date),
            death_day=parse_wiki_date(wiki_person.death_date),
            gender=map_wiki_gender(wiki_person.gender),
            avatar=get_wiki_thumbnail(wiki_person.image),
            note=note,
        ),
    )
    persons.append(person)
    return person


def _add_spouse_relation(person_a: Person, person_b: Person) -> None:
    if person_b.id not in person_a.rels.spouses:
        person_a.rels.spouses.append(person_b.id)
    if person_a.id not in person_b.rels.spouses:
        person_b.rels.spouses.append(person_a.id)


def _add_child_to_parent(parent: Person, child: Person, is_father: bool) -> None:
    if child.id not in parent.rels.children:
        parent.rels.children.append(child.id)
    if is_father:
        child.rels.father = parent.id
    else:
        child.rels.mother = parent.id


def process_parents(family: WikiFamily, root: Person, persons: list[Person]) -> None:
    father = mother = None
    if family.father:
        father = convert_wiki_person(family.father, persons)
        _add_child_to_parent(father, root, is_father=True)
    if family.mother:
        mother = convert_wiki_person(family.mother, persons)
        _add_child_to_parent(mother, root, is_father=False)
    if father and mother:
        _add_spouse_relation(father, mother)


def process_spouses(family: WikiFamily, root: Person, persons: list[Person]) -> None:
    for spouse_data in family.spouses:
        _add_spouse_relation(root, convert_wiki_person(spouse_data, persons))


def process_children(family: WikiFamily, root: Person, persons: list[Person]) -> None:
    """The root becomes father when male, mother otherwise; a known other parent becomes a spouse."""
    for child_data in family.children:
        child = convert_wiki_person(child_data.child, persons)
        _add_child_to_parent(root, child, is_father=root.data.gender == "M")

        if child_data.other_parent:
            other_parent = convert_wiki_person(child_data.other_parent, persons)
            _add_child_to_parent(other_parent, child, is_father=other_parent.data.gender == "M")
            if other_parent.id != root.id:
                _add_spouse_relation(root, other_parent)


def process_siblings(family: WikiFamily, persons: list[Person]) -> None:
    for sibling_data in family.siblings:
        sibling = convert_wiki_person(sibling_data.sibling, persons)

        father = mother = None
        if sibling_data.father:
            father = convert_wiki_person(sibling_data.father, persons)
            _add_child_to_parent(father, sibling, is_father=True)
        if sibling_data.mother:
            mother = convert_wiki_person(sibling_data.mother, persons)
            _add_child_to_parent(mother, sibling, is_father=False)
        if father and mother and father.id != mother.id:
            _add_spouse_relation(father, mother)


def merge_immediate_family(
    root_wiki_person: WikiPerson, family: WikiFamily, persons: list[Person]
) -> list[Person]:
    """
    Wire a fetched immediate family into a copy of ``persons``.

    Returns:
        The new person list; ``persons`` itself is left untouched
    """
    persons = copy.deepcopy(persons)
    root = convert_wiki_person(root_wiki_person, persons)
    root.wiki_loaded = True

    process_parents(family, root, persons)
    process_spouses(family, root, persons)
    process_children(family, root, persons)
    process_siblings(family, persons)
    return persons


async def load_immediate_family(
    store: FamilyTreeStore, kb: KnowledgeBase, root_wiki_person: WikiPerson
) -> list[Person] | None:
    """
    Fetch a person's immediate family and merge it into the store.

    Returns:
        Persons that were not in the store before, or None when the lookup failed
    """
    store.set_is_loading(True)
    before_ids = set(store.data)
    try:
        family = await kb.fetch_immediate_family(root_wiki_person.id)
    except Exception:
        logger.exception("Error loading WikiData family for %s", root_wiki_person.id)
        store.notifier.error("Failed to load family data from WikiData. Please try again.")
        store.set_is_loading(False)
        return None

    persons = merge_immediate_family(root_wiki_person, family, store.persons)
    store.set_data(persons)
    await store.wait_for_layout()
    store.set_has_unsaved_changes(True)

    new_persons = [p for p in persons if p.id not in before_ids]
    logger.info("Loaded %d new persons around %s", len(new_persons), root_wiki_person.id)
    return new_persons


async def search_knowledge_base(
    kb: KnowledgeBase, query: str, notifier: NotificationCenter | None = None
) -> list[WikiPerson]:
    """
    Search the knowledge base; results are deduplicated by id.

    With a notifier a failed lookup is reported there and gives no results.

    Raises:
        KnowledgeBaseError: The lookup failed and no notifier was given
    """
    if not query.strip():
        return []
    try:
        results = await kb.search(query)
    except Exception as e:
        if notifier is None:
            raise KnowledgeBaseError(f"Search for {query!r} failed: {e}") from e
        logger.exception("Error searching WikiData for %r", query)
        notifier.error("Failed to search WikiData. Please try again.")
        return []

    seen: set[str] = set()
    unique = []
    for result in results:
        if result.id not in seen:
            seen.add(result.id)
            unique.append(result)
    return unique
