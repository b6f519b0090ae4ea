"""Consistency diagnostics for family tree data."""

import re

import networkx as nx

from famgraph.models import Person, format_name

YEAR_RE = re.compile(r"^(\d{4})\b")


def _year(date: str | None) -> int | None:
    match = YEAR_RE.match(date or "")
    return int(match.group(1)) if match else None


def build_ancestry_graph(persons: dict[str, Person]) -> nx.DiGraph:
    """Parent -> child edges for every parent reference that resolves."""
    G = nx.DiGraph()
    G.add_nodes_from(persons)
    for person in persons.values():
        for parent_id in person.parent_ids():
            if parent_id in persons:
                G.add_edge(parent_id, person.id)
    return G


def validate_persons(persons: dict[str, Person] | list[Person]) -> list[str]:
    """
    Check the person set for:
    - Spouse links that are not symmetric
    - Parent references not matched by the parent's children list (and vice versa)
    - References to persons that do not exist
    - Cycles in parent-child relationships
    - Death dates before birth dates (when both start with a year)

    Nothing is modified or rejected.

    Returns a list of warning messages.
    """
    if isinstance(persons, list):
        persons = {p.id: p for p in persons}
    warnings: list[str] = []

    for person in persons.values():
        name = format_name(person) or person.id

        for spouse_id in person.rels.spouses:
            spouse = persons.get(spouse_id)
            if spouse is None:
                warnings.append(f"{name} ({person.id}) lists unknown spouse {spouse_id}")
            elif person.id not in spouse.rels.spouses:
                warnings.append(f"Asymmetric spouse link: {person.id} -> {spouse_id}")

        for child_id in person.rels.children:
            child = persons.get(child_id)
            if child is None:
                warnings.append(f"{name} ({person.id}) lists unknown child {child_id}")
            elif person.id not in child.parent_ids():
                warnings.append(f"{child_id} is a child of {person.id} but does not name them as parent")

        for slot, parent_id in (("father", person.rels.father), ("mother", person.rels.mother)):
            if not parent_id:
                continue
            parent = persons.get(parent_id)
            if parent is None:
                warnings.append(f"{name} ({person.id}) has unknown {slot} {parent_id}")
            elif person.id not in parent.rels.children:
                warnings.append(f"{parent_id} is {slot} of {person.id} but does not list them as child")

        birth, death = _year(person.data.birth_day), _year(person.data.death_day)
        if birth is not None and death is not None and death < birth:
            warnings.append(f"Impossible: {name} died before being born")

    try:
        cycle = nx.find_cycle(build_ancestry_graph(persons), orientation="original")
        cycle_nodes = [edge[0] for edge in cycle]
        warnings.append(f"Cycle detected in parent-child relationships: {cycle_nodes}")
    except nx.NetworkXNoCycle:
        pass

    return warnings
