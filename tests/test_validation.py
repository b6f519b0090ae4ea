"""Tests for relationship diagnostics."""

from famgraph.validation import validate_persons

from conftest import make_person


def test_consistent_tree_has_no_warnings(family_persons, demo_family):
    assert validate_persons(family_persons) == []
    assert validate_persons(demo_family) == []


def test_asymmetric_spouse():
    warnings = validate_persons([make_person("A", spouses=["B"]), make_person("B")])
    assert warnings == ["Asymmetric spouse link: A -> B"]


def test_parent_child_mismatch():
    warnings = validate_persons([make_person("P", gender="M"), make_person("C", father="P")])
    assert warnings == ["P is father of C but does not list them as child"]


def test_child_without_parent_link():
    warnings = validate_persons([make_person("P", children=["C"]), make_person("C")])
    assert warnings == ["C is a child of P but does not name them as parent"]


def test_dangling_references():
    warnings = validate_persons([make_person("A", first_name="Ann", spouses=["X"], mother="Y")])

    assert "Ann (A) lists unknown spouse X" in warnings
    assert "Ann (A) has unknown mother Y" in warnings


def test_ancestry_cycle():
    persons = [
        make_person("A", father="B", children=["B"]),
        make_person("B", father="A", children=["A"]),
    ]
    warnings = validate_persons(persons)

    assert any(w.startswith("Cycle detected in parent-child relationships") for w in warnings)


def test_death_before_birth():
    person = make_person("A", first_name="Ann")
    person.data.birth_day = "1900-01-01"
    person.data.death_day = "1850"

    assert validate_persons([person]) == ["Impossible: Ann died before being born"]


def test_input_is_not_modified(family_persons):
    family_persons[0].rels.spouses.append("I9")
    before = [p.to_dict() for p in family_persons]

    validate_persons(family_persons)

    assert [p.to_dict() for p in family_persons] == before
