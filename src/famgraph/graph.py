"""Family grouping and the NetworkX union-node layout graph."""

from dataclasses import dataclass, field
import logging

import networkx as nx

from famgraph.colors import get_family_color
from famgraph.config import DUMMY_NODE_SIZE, NODE_HEIGHT, NODE_WIDTH
from famgraph.models import Person

logger = logging.getLogger(__name__)


@dataclass
class FamilyGroup:
    """A spouse union (or single parent) plus the children hanging from it."""

    id: str
    spouse_ids: list[str]
    child_ids: list[str] = field(default_factory=list)

    @property
    def color(self) -> str:
        return get_family_color(self.id)


def create_family_id(spouse_ids: list[str]) -> str:
    return "family_" + "_".join(sorted(spouse_ids))


def group_families(persons: dict[str, Person]) -> dict[str, FamilyGroup]:
    """
    Derive family groups from scratch.

    Every spouse pair whose members both exist becomes a group. Each child is
    attached to the group of its (father, mother) pair; when that pair is not
    a recorded union the child goes to a single-parent group of the first
    parent that exists.

    Args:
        persons: Person id -> Person

    Returns:
        Family id -> FamilyGroup, in discovery order
    """
    families: dict[str, FamilyGroup] = {}

    for person in persons.values():
        for spouse_id in person.rels.spouses:
            if spouse_id not in persons:
                continue
            family_id = create_family_id([person.id, spouse_id])
            if family_id not in families:
                families[family_id] = FamilyGroup(family_id, [person.id, spouse_id])

    for person in persons.values():
        parent_ids = person.parent_ids()
        if not parent_ids:
            continue

        family = families.get(create_family_id(parent_ids))
        if family is None:
            parent_id = next((p for p in parent_ids if p in persons), None)
            if parent_id is None:
                continue
            family_id = create_family_id([parent_id])
            family = families.setdefault(family_id, FamilyGroup(family_id, [parent_id]))
        family.child_ids.append(person.id)

    return families


def build_union_layout_graph(persons: dict[str, Person]) -> nx.DiGraph:
    """
    Build the layout graph using the union-node model.

    Creates "family nodes" (union nodes) that connect spouses to their children:

    - person nodes at full size, family nodes at half size
    - ``spouse`` edges person -> family, ``child`` edges family -> person
    - an invisible dummy child under every childless union
    - an invisible dummy parent above every spouse without father or mother

    Dummies only give the layered layout an anchor above or below a union and
    carry ``node_type="dummy"`` / ``dummy=True`` so they can be stripped later.

    Args:
        persons: Person id -> Person

    Returns:
        DiGraph with the family groups stored in ``graph["families"]``
    """
    H = nx.DiGraph()
    order = 0

    def add_edge(u: str, v: str, **attrs) -> None:
        nonlocal order
        H.add_edge(u, v, order=order, **attrs)
        order += 1

    for person_id in persons:
        H.add_node(
            person_id,
            node_type="person",
            width=NODE_WIDTH,
            height=NODE_HEIGHT,
            parent_family_id=None,
        )

    families = group_families(persons)
    for family in families.values():
        H.add_node(
            family.id,
            node_type="family",
            width=NODE_WIDTH / 2,
            height=NODE_HEIGHT / 2,
            spouse_ids=list(family.spouse_ids),
            child_ids=list(family.child_ids),
            color=family.color,
        )

        for spouse_id in family.spouse_ids:
            add_edge(
                spouse_id,
                family.id,
                edge_id=f"spouse_{spouse_id}_{family.id}",
                edge_type="spouse",
                family_id=family.id,
                spouse_id=spouse_id,
                dummy=False,
            )

        for child_id in family.child_ids:
            H.nodes[child_id]["parent_family_id"] = family.id
            add_edge(
                family.id,
                child_id,
                edge_id=f"child_{family.id}_{child_id}",
                edge_type="child",
                family_id=family.id,
                child_id=child_id,
                dummy=False,
            )

        if not family.child_ids:
            dummy_id = f"dummy_child_{family.id}"
            H.add_node(dummy_id, node_type="dummy", width=DUMMY_NODE_SIZE, height=DUMMY_NODE_SIZE)
            add_edge(
                family.id,
                dummy_id,
                edge_id=f"dummy_child_edge_{family.id}",
                edge_type="child",
                family_id=family.id,
                child_id=dummy_id,
                dummy=True,
            )

    # Spouses with no parents get an anchor to hang their union from
    family_spouses = {sid for family in families.values() for sid in family.spouse_ids}
    for person in persons.values():
        if person.rels.father or person.rels.mother or person.id not in family_spouses:
            continue
        dummy_id = f"dummy_parent_{person.id}"
        H.add_node(dummy_id, node_type="dummy", width=DUMMY_NODE_SIZE, height=DUMMY_NODE_SIZE)
        add_edge(
            dummy_id,
            person.id,
            edge_id=f"dummy_parent_edge_{person.id}",
            edge_type="spouse",
            family_id=None,
            dummy=True,
        )

    H.graph["families"] = families
    logger.debug(
        "Layout graph has %d nodes, %d edges, %d families",
        H.number_of_nodes(), H.number_of_edges(), len(families),
    )
    return H
