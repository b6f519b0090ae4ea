"""Family tree state: persons, relationship editing and layout recalculation."""

import asyncio
import copy
from dataclasses import dataclass, replace
import logging
import re

from famgraph.database import PersonStorage
from famgraph.layout import GraphvizLayoutEngine, LayoutEngine, TreeLayout, compute_layout
from famgraph.models import GedcomNode, Person
from famgraph.notifications import NotificationCenter

logger = logging.getLogger(__name__)

RELATIONSHIP_TYPES = ("spouse", "child", "father", "mother")
PERSON_ID_RE = re.compile(r"^I(\d+)$")


@dataclass
class SpouseFamily:
    """A spouse of some person together with the children they share."""

    spouse: Person
    children: list[Person]


class FamilyTreeStore:
    """
    Owns the person map of one family tree.

    Persons are kept in an id-indexed dict; relationships are plain ids
    resolved through it, so dangling references are tolerated everywhere and
    lookups on unknown ids return empty results.

    Every mutation returns ``True`` when it was applied and ``False`` when one
    of the referenced persons does not exist (in which case nothing changes).
    Applied mutations mark the tree as modified, persist the full person list
    and request a layout recalculation.

    Recalculations are stamped with a generation number; a result is only
    applied if no newer recalculation was requested in the meantime. A
    failing recalculation raises a notification and leaves the previous
    layout in place.
    """

    def __init__(
        self,
        storage: PersonStorage | None = None,
        engine: LayoutEngine | None = None,
        notifier: NotificationCenter | None = None,
    ):
        self.data: dict[str, Person] = {}
        self.selected_person_id: str | None = None
        self.selected_family_id: str | None = None
        self.layout = TreeLayout()
        self.is_loading = False
        self.has_unsaved_changes = False
        self.family_tree_name: str | None = None
        self.original_gedcom_nodes: list[GedcomNode] | None = None

        self.storage = storage or PersonStorage()
        self.engine = engine or GraphvizLayoutEngine()
        self.notifier = notifier or NotificationCenter()

        self._generation = 0
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Loading and lifecycle
    # ------------------------------------------------------------------

    def set_data(self, persons: list[Person], recalculate: bool = True) -> None:
        """Replace the whole tree (import, demo data, knowledge-base merge)."""
        self.data = {p.id: p for p in persons}
        self.storage.save(persons)
        if recalculate:
            self.request_layout()

    def restore(self, recalculate: bool = True) -> None:
        """Reload the person list and tree name from storage."""
        self.family_tree_name = self.storage.load_name() or None
        self.set_data(self.storage.load(), recalculate=recalculate)

    def clear_data(self) -> None:
        self.data = {}
        self.selected_person_id = None
        self.selected_family_id = None
        self.layout = TreeLayout()
        self.has_unsaved_changes = False
        self.family_tree_name = None
        self.original_gedcom_nodes = None
        # Results of recalculations still in flight belong to the old tree
        self._generation += 1
        self.is_loading = False
        self.storage.clear()

    reset = clear_data

    def set_family_tree_name(self, name: str | None) -> None:
        self.family_tree_name = name
        self.storage.save_name(name or "")

    def set_original_gedcom_nodes(self, nodes: list[GedcomNode] | None) -> None:
        self.original_gedcom_nodes = nodes

    def set_has_unsaved_changes(self, value: bool) -> None:
        self.has_unsaved_changes = value

    def set_is_loading(self, value: bool) -> None:
        self.is_loading = value

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_selected_person_id(self, person_id: str | None) -> None:
        self.selected_person_id = person_id
        if person_id:
            self.selected_family_id = None

    def set_selected_family_id(self, family_id: str | None) -> None:
        self.selected_family_id = family_id
        if family_id:
            self.selected_person_id = None

    @property
    def selected_person(self) -> Person | None:
        return self.data.get(self.selected_person_id) if self.selected_person_id else None

    # ------------------------------------------------------------------
    # Layout recalculation
    # ------------------------------------------------------------------

    def request_layout(self) -> int:
        """
        Start a recalculation of the layout for the current persons.

        Inside a running event loop the work is scheduled on a worker thread
        and this returns immediately; without one it runs inline.

        Returns:
            The generation number of the requested recalculation
        """
        self._generation += 1
        generation = self._generation
        snapshot = copy.deepcopy(self.data)
        self.is_loading = True

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._run_layout(generation, snapshot)
            return generation

        task = loop.create_task(self._run_layout_async(generation, snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return generation

    async def recalculate(self) -> bool:
        """Recalculate and wait for it; True when this result became the current layout."""
        self._generation += 1
        generation = self._generation
        self.is_loading = True
        return await self._run_layout_async(generation, copy.deepcopy(self.data))

    async def wait_for_layout(self) -> None:
        """Wait until every scheduled recalculation has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _run_layout(self, generation: int, snapshot: dict[str, Person]) -> bool:
        try:
            layout = compute_layout(snapshot, self.engine)
        except Exception:
            return self._layout_failed(generation)
        return self._apply_layout(generation, layout)

    async def _run_layout_async(self, generation: int, snapshot: dict[str, Person]) -> bool:
        try:
            layout = await asyncio.to_thread(compute_layout, snapshot, self.engine)
        except Exception:
            return self._layout_failed(generation)
        return self._apply_layout(generation, layout)

    def _apply_layout(self, generation: int, layout: TreeLayout) -> bool:
        if generation != self._generation:
            logger.debug("Discarding stale layout %d (latest is %d)", generation, self._generation)
            return False
        self.layout = layout
        self.is_loading = False
        return True

    def _layout_failed(self, generation: int) -> bool:
        if generation != self._generation:
            logger.warning("Stale layout recalculation %d failed", generation, exc_info=True)
            return False
        logger.exception("Error recalculating tree data")
        self.notifier.error("Failed to recalculate Family Tree.")
        self.is_loading = False
        return False

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def persons(self) -> list[Person]:
        return list(self.data.values())

    @property
    def nodes(self) -> list:
        return [*self.layout.person_nodes, *self.layout.family_nodes]

    @property
    def edges(self) -> list:
        return self.layout.edges

    @property
    def total_persons(self) -> int:
        return len(self.data)

    @property
    def total_families(self) -> int:
        return len(self.layout.family_nodes)

    @property
    def total_males(self) -> int:
        return sum(1 for p in self.data.values() if p.data.gender == "M")

    @property
    def total_females(self) -> int:
        return sum(1 for p in self.data.values() if p.data.gender == "F")

    @property
    def total_unknown_persons(self) -> int:
        return self.total_persons - self.total_males - self.total_females

    @property
    def total_spouses(self) -> int:
        return sum(len(p.rels.spouses) for p in self.data.values()) // 2

    @property
    def total_children(self) -> int:
        return sum(1 for p in self.data.values() if p.rels.father or p.rels.mother)

    def stats(self) -> dict[str, int]:
        return {
            "persons": self.total_persons,
            "families": self.total_families,
            "males": self.total_males,
            "females": self.total_females,
            "unknown": self.total_unknown_persons,
            "spouses": self.total_spouses,
            "children": self.total_children,
        }

    # ------------------------------------------------------------------
    # Relationship queries
    # ------------------------------------------------------------------

    def _resolve(self, ids: list[str]) -> list[Person]:
        return [self.data[i] for i in ids if i in self.data]

    def get_spouses(self, person_id: str) -> list[Person]:
        person = self.data.get(person_id)
        return self._resolve(person.rels.spouses) if person else []

    def get_children(self, person_id: str) -> list[Person]:
        person = self.data.get(person_id)
        return self._resolve(person.rels.children) if person else []

    def get_father(self, person_id: str) -> Person | None:
        person = self.data.get(person_id)
        return self.data.get(person.rels.father) if person and person.rels.father else None

    def get_mother(self, person_id: str) -> Person | None:
        person = self.data.get(person_id)
        return self.data.get(person.rels.mother) if person and person.rels.mother else None

    @staticmethod
    def _is_shared_child(child: Person, person_id: str, spouse_id: str) -> bool:
        return (child.rels.father == person_id and child.rels.mother == spouse_id) or (
            child.rels.mother == person_id and child.rels.father == spouse_id
        )

    def get_family_groups(self, person_id: str) -> list[SpouseFamily]:
        """One entry per spouse, with the children this person has with that spouse."""
        children = self.get_children(person_id)
        return [
            SpouseFamily(
                spouse=spouse,
                children=[c for c in children if self._is_shared_child(c, person_id, spouse.id)],
            )
            for spouse in self.get_spouses(person_id)
        ]

    def get_single_parent_children(self, person_id: str) -> list[Person]:
        """Children whose other parent is missing or not a spouse of this person."""
        spouses = self.get_spouses(person_id)
        return [
            child for child in self.get_children(person_id)
            if not any(self._is_shared_child(child, person_id, s.id) for s in spouses)
        ]

    def get_available_persons(self, person_id: str, relationship_type: str) -> list[Person]:
        """
        Candidates for a new relationship of ``relationship_type`` with ``person_id``.

        Excludes the person itself and anyone already linked that way; father
        and mother candidates are only offered while the slot is empty and must
        have the matching gender.
        """
        person = self.data.get(person_id)
        if person is None or relationship_type not in RELATIONSHIP_TYPES:
            return []

        def available(candidate: Person) -> bool:
            if candidate.id == person_id:
                return False
            if relationship_type == "spouse":
                return candidate.id not in person.rels.spouses
            if relationship_type == "child":
                return candidate.id not in person.rels.children
            if relationship_type == "father":
                return not person.rels.father and candidate.data.gender == "M"
            return not person.rels.mother and candidate.data.gender == "F"

        return [p for p in self.data.values() if available(p)]

    def get_new_person_id(self) -> str:
        """Next ``I<n>`` id after the highest existing one."""
        max_id = 0
        for person_id in self.data:
            match = PERSON_ID_RE.match(person_id)
            if match:
                max_id = max(max_id, int(match.group(1)))
        return f"I{max_id + 1}"

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _trigger_update(self) -> None:
        self.request_layout()
        self.has_unsaved_changes = True
        self.storage.save(self.persons)

    def _set_relations(self, person_id: str, **changes) -> None:
        person = self.data.get(person_id)
        if person is not None:
            person.rels = replace(person.rels, **changes)

    def _update_relationship_list(self, person_id: str, key: str, item_id: str, add: bool) -> None:
        person = self.data.get(person_id)
        if person is None:
            return
        current = getattr(person.rels, key)
        if add and item_id not in current:
            self._set_relations(person_id, **{key: [*current, item_id]})
        elif not add and item_id in current:
            self._set_relations(person_id, **{key: [i for i in current if i != item_id]})

    def _link_spouses(self, person_id: str, spouse_id: str) -> None:
        self._update_relationship_list(person_id, "spouses", spouse_id, add=True)
        self._update_relationship_list(spouse_id, "spouses", person_id, add=True)

    def _unlink_spouses(self, person_id: str, spouse_id: str) -> None:
        self._update_relationship_list(person_id, "spouses", spouse_id, add=False)
        self._update_relationship_list(spouse_id, "spouses", person_id, add=False)

    def add_person(self, person: Person, recalculate: bool = True) -> bool:
        self.data[person.id] = person
        if recalculate:
            self._trigger_update()
        else:
            self.has_unsaved_changes = True
            self.storage.save(self.persons)
        return True

    def update_person(self, person_id: str, **changes) -> bool:
        """Replace fields of a person (``data``, ``rels``, ``wiki_id``, ``wiki_loaded``)."""
        person = self.data.get(person_id)
        if person is None:
            return False
        changes.pop("id", None)
        self.data[person_id] = replace(person, **changes)
        self._trigger_update()
        return True

    def delete_person(self, person_id: str) -> bool:
        """Remove a person and every reference other persons hold to them."""
        if person_id not in self.data:
            return False
        del self.data[person_id]

        if self.selected_person_id == person_id:
            self.selected_person_id = None

        for other in self.data.values():
            self._update_relationship_list(other.id, "spouses", person_id, add=False)
            self._update_relationship_list(other.id, "children", person_id, add=False)
            if other.rels.father == person_id:
                self._set_relations(other.id, father=None)
            if other.rels.mother == person_id:
                self._set_relations(other.id, mother=None)

        self._trigger_update()
        return True

    def add_spouse(self, person_id: str, spouse_id: str) -> bool:
        if person_id not in self.data or spouse_id not in self.data:
            return False
        self._link_spouses(person_id, spouse_id)
        self._trigger_update()
        return True

    def remove_spouse(self, person_id: str, spouse_id: str) -> bool:
        if person_id not in self.data or spouse_id not in self.data:
            return False
        self._unlink_spouses(person_id, spouse_id)
        self._trigger_update()
        return True

    def add_child(self, child_id: str, parent1_id: str, parent2_id: str | None = None) -> bool:
        """
        Attach a child to one or two parents, deciding father and mother by gender.

        The parents are not made spouses of each other here.
        """
        child = self.data.get(child_id)
        parent1 = self.data.get(parent1_id)
        parent2 = self.data.get(parent2_id) if parent2_id else None
        if child is None or parent1 is None:
            return False

        father_id, mother_id = determine_parents(child, parent1, parent2)
        self._set_relations(child_id, father=father_id, mother=mother_id)
        for parent_id in (father_id, mother_id):
            if parent_id:
                self._update_relationship_list(parent_id, "children", child_id, add=True)

        self._trigger_update()
        return True

    def remove_child(self, parent_id: str, child_id: str) -> bool:
        """Unlink a child from one parent; the other parent link is left alone."""
        child = self.data.get(child_id)
        if parent_id not in self.data or child is None:
            return False

        self._update_relationship_list(parent_id, "children", child_id, add=False)
        if child.rels.father == parent_id:
            self._set_relations(child_id, father=None)
        if child.rels.mother == parent_id:
            self._set_relations(child_id, mother=None)

        self._trigger_update()
        return True

    def add_father(self, child_id: str, father_id: str) -> bool:
        """Set the father; an existing mother becomes his spouse."""
        return self._add_parent(child_id, father_id, slot="father", other_slot="mother")

    def add_mother(self, child_id: str, mother_id: str) -> bool:
        """Set the mother; an existing father becomes her spouse."""
        return self._add_parent(child_id, mother_id, slot="mother", other_slot="father")

    def _add_parent(self, child_id: str, parent_id: str, slot: str, other_slot: str) -> bool:
        child = self.data.get(child_id)
        if child is None or parent_id not in self.data:
            return False

        self._set_relations(child_id, **{slot: parent_id})
        self._update_relationship_list(parent_id, "children", child_id, add=True)

        other_parent_id = getattr(child.rels, other_slot)
        if other_parent_id:
            self._link_spouses(parent_id, other_parent_id)

        self._trigger_update()
        return True


def determine_parents(
    child: Person, parent1: Person, parent2: Person | None = None
) -> tuple[str | None, str | None]:
    """
    Decide which of the given parents is father and which is mother.

    Known genders fill their own slot; a parent of unknown gender fills
    whichever slot the child does not have yet (father first). Slots that
    are not resolved keep the child's current value.

    Returns:
        (father id, mother id)
    """
    father_id, mother_id = child.rels.father, child.rels.mother

    if parent2 is None:
        gender = parent1.data.gender
        if gender == "M":
            return (parent1.id, mother_id)
        if gender == "F":
            return (father_id, parent1.id)
        if not father_id:
            return (parent1.id, mother_id)
        if not mother_id:
            return (father_id, parent1.id)
        return (father_id, mother_id)

    gender1, gender2 = parent1.data.gender, parent2.data.gender
    if gender1 == "M" and gender2 == "F":
        return (parent1.id, parent2.id)
    if gender1 == "F" and gender2 == "M":
        return (parent2.id, parent1.id)
    if gender1 == "M":
        return (parent1.id, mother_id or parent2.id)
    if gender1 == "F":
        return (father_id or parent2.id, parent1.id)
    if gender2 == "M":
        return (parent2.id, mother_id or parent1.id)
    if gender2 == "F":
        return (father_id or parent1.id, parent2.id)
    # Both unknown: fill the empty slots in order
    if not father_id:
        return (parent1.id, mother_id or parent2.id)
    if not mother_id:
        return (father_id, parent1.id)
    return (father_id, mother_id)
