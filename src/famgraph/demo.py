"""Bundled demo family: three generations of the Smith family."""

from famgraph.models import Person
from famgraph.store import FamilyTreeStore

DEMO_TREE_NAME = "Smith Family (demo)"

DEMO_PERSONS = [
    {
        "id": "I1",
        "data": {"firstName": "George", "lastName": "Smith", "gender": "M", "birthDay": "1920", "deathDay": "1995"},
        "rels": {"spouses": ["I2"], "children": ["I3", "I5"]},
    },
    {
        "id": "I2",
        "data": {"firstName": "Helen", "lastName": "Smith", "gender": "F", "birthDay": "1924", "deathDay": "2010"},
        "rels": {"spouses": ["I1"], "children": ["I3", "I5"]},
    },
    {
        "id": "I3",
        "data": {"firstName": "Robert", "lastName": "Smith", "gender": "M", "birthDay": "1948"},
        "rels": {"father": "I1", "mother": "I2", "spouses": ["I4"], "children": ["I6", "I7"]},
    },
    {
        "id": "I4",
        "data": {"firstName": "Mary", "lastName": "Jones", "gender": "F", "birthDay": "1950"},
        "rels": {"spouses": ["I3"], "children": ["I6", "I7"]},
    },
    {
        "id": "I5",
        "data": {"firstName": "Alice", "lastName": "Smith", "gender": "F", "birthDay": "1952"},
        "rels": {"father": "I1", "mother": "I2"},
    },
    {
        "id": "I6",
        "data": {"firstName": "James", "lastName": "Smith", "gender": "M", "birthDay": "1975"},
        "rels": {"father": "I3", "mother": "I4"},
    },
    {
        "id": "I7",
        "data": {"firstName": "Emma", "lastName": "Smith", "gender": "F", "birthDay": "1978", "note": "Family historian"},
        "rels": {"father": "I3", "mother": "I4"},
    },
]


def demo_persons() -> list[Person]:
    return [Person.from_dict(raw) for raw in DEMO_PERSONS]


def load_demo_data(store: FamilyTreeStore) -> None:
    """Replace the tree with the demo family."""
    store.clear_data()
    store.set_family_tree_name(DEMO_TREE_NAME)
    store.set_data(demo_persons())
