"""Shared fixtures for the famgraph test suite."""

import matplotlib

matplotlib.use("Agg")

import networkx as nx
import pytest

from famgraph.database import PersonStorage
from famgraph.demo import demo_persons
from famgraph.exceptions import LayoutError
from famgraph.models import Person, PersonData, Relations
from famgraph.notifications import NotificationCenter
from famgraph.store import FamilyTreeStore

SAMPLE_GEDCOM = """0 HEAD
1 SOUR Ancestry
1 GEDC
2 VERS 5.5.1
1 CHAR UTF-8
0 @I1@ INDI
1 NAME John /Smith/
2 GIVN John
2 SURN Smith
1 SEX M
1 BIRT
2 DATE 1 JAN 1900
2 PLAC Boston
1 _CUSTOM keep me
1 FAMS @F1@
0 @I2@ INDI
1 NAME Jane /Doe/
1 SEX F
1 NOTE Loves gardening; wikiId:Q42; wikiLoaded:true
1 FAMS @F1@
0 @I3@ INDI
1 NAME Jim /Smith/ Jr.
1 SEX M
1 FAMC @F1@
0 @F1@ FAM
1 HUSB @I1@
1 WIFE @I2@
1 CHIL @I3@
1 MARR
2 DATE 1925
0 @S1@ SOUR
1 TITL Parish register
0 TRLR"""


class FakeLayoutEngine:
    """Places nodes on a grid: one row per layer of the layout graph."""

    def __init__(self):
        self.calls = 0
        self.graphs: list[nx.DiGraph] = []

    def layout(self, graph):
        self.calls += 1
        self.graphs.append(graph)
        positions = {}
        for row, layer in enumerate(nx.topological_generations(graph)):
            for col, node in enumerate(sorted(layer)):
                positions[node] = (col * 250.0, row * 200.0)
        return positions


class FailingLayoutEngine:
    def layout(self, graph):
        raise LayoutError("engine exploded")


def make_person(person_id, first_name="", gender=None, father=None, mother=None, spouses=(), children=()):
    return Person(
        id=person_id,
        data=PersonData(first_name=first_name or person_id, gender=gender),
        rels=Relations(father=father, mother=mother, spouses=list(spouses), children=list(children)),
    )


@pytest.fixture
def sample_gedcom_text():
    return SAMPLE_GEDCOM


@pytest.fixture
def family_persons():
    """Two parents and one child, consistently linked."""
    return [
        make_person("I1", "John", "M", spouses=["I2"], children=["I3"]),
        make_person("I2", "Jane", "F", spouses=["I1"], children=["I3"]),
        make_person("I3", "Jim", "M", father="I1", mother="I2"),
    ]


@pytest.fixture
def persons_by_id(family_persons):
    return {p.id: p for p in family_persons}


@pytest.fixture
def fake_engine():
    return FakeLayoutEngine()


@pytest.fixture
def storage():
    storage = PersonStorage(":memory:")
    yield storage
    storage.close()


@pytest.fixture
def store(storage, fake_engine):
    return FamilyTreeStore(storage=storage, engine=fake_engine, notifier=NotificationCenter())


@pytest.fixture
def loaded_store(store, family_persons):
    store.set_data(family_persons)
    return store


@pytest.fixture
def demo_family():
    return demo_persons()
