"""Tests for merging edited persons back into an imported GEDCOM document."""

import copy

from famgraph.mapping import gedcom_to_persons
from famgraph.merging import insert_after_last, merge_gedcom_nodes, update_event_date
from famgraph.models import GedcomNode, Person, PersonData, Relations
from famgraph.parsing import export_gedcom, parse_gedcom


def records(nodes, tag):
    return [n for n in nodes if n.tag == tag]


def find(nodes, xref):
    return next(n for n in nodes if n.xref_id == xref)


class TestMergeGedcomNodes:

    def test_unchanged_persons_reproduce_the_document(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = gedcom_to_persons(original)

        merged = merge_gedcom_nodes(original, persons)

        assert export_gedcom(merged, include_envelope=False) == sample_gedcom_text

    def test_original_nodes_are_not_modified(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        snapshot = copy.deepcopy(original)
        persons = gedcom_to_persons(original)
        persons[0].data.first_name = "Johnny"

        merge_gedcom_nodes(original, persons)

        assert original == snapshot

    def test_custom_tag_survives_field_edits(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = {p.id: p for p in gedcom_to_persons(original)}
        persons["I1"].data.first_name = "Johnny"
        persons["I1"].data.birth_day = "2 JAN 1900"

        merged = merge_gedcom_nodes(original, list(persons.values()))
        john = find(merged, "@I1@")

        assert john.sub_tag("_CUSTOM").value == "keep me"
        name = john.sub_tag("NAME")
        assert name.value == "Johnny /Smith/"
        assert [c.tag for c in name.children] == ["GIVN", "SURN"]
        birth = john.sub_tag("BIRT")
        assert birth.sub_tag("DATE").value == "2 JAN 1900"
        assert birth.sub_tag("PLAC").value == "Boston"

    def test_unknown_records_pass_through(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        merged = merge_gedcom_nodes(original, gedcom_to_persons(original))

        assert merged[0].tag == "HEAD"
        assert merged[-1].tag == "TRLR"
        source = find(merged, "@S1@")
        assert source.sub_tag("TITL").value == "Parish register"
        family = find(merged, "@F1@")
        assert family.sub_tag("MARR").sub_tag("DATE").value == "1925"

    def test_deleted_person_is_removed_everywhere(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = {p.id: p for p in gedcom_to_persons(original)}
        del persons["I3"]
        persons["I1"].rels.children = []
        persons["I2"].rels.children = []

        merged = merge_gedcom_nodes(original, list(persons.values()))

        assert "@I3@" not in [n.xref_id for n in merged]
        family = find(merged, "@F1@")
        assert family.sub_tags("CHIL") == []
        assert family.sub_tag("HUSB").value == "@I1@"

    def test_note_change_rewrites_only_note(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = {p.id: p for p in gedcom_to_persons(original)}
        persons["I2"].data.note = "Loves roses"

        merged = merge_gedcom_nodes(original, list(persons.values()))
        jane = find(merged, "@I2@")

        assert jane.sub_tag("NOTE").value == "Loves roses; wikiId:Q42; wikiLoaded:true"
        assert [c.tag for c in jane.children] == ["NAME", "SEX", "NOTE", "FAMS"]

    def test_cleared_gender_drops_sex(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = {p.id: p for p in gedcom_to_persons(original)}
        persons["I3"].data.gender = None

        merged = merge_gedcom_nodes(original, list(persons.values()))

        assert find(merged, "@I3@").sub_tag("SEX") is None

    def test_new_person_and_family_are_inserted_after_their_kind(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = {p.id: p for p in gedcom_to_persons(original)}
        persons["I3"].rels.spouses.append("I4")
        persons["I4"] = Person(
            id="I4",
            data=PersonData(first_name="Ann", last_name="Lee", gender="F"),
            rels=Relations(spouses=["I3"]),
        )

        merged = merge_gedcom_nodes(original, list(persons.values()))
        tags = [(n.tag, n.xref_id) for n in merged]

        assert tags.index(("INDI", "@I4@")) == tags.index(("INDI", "@I3@")) + 1
        assert tags.index(("FAM", "@F2@")) == tags.index(("FAM", "@F1@")) + 1
        new_family = find(merged, "@F2@")
        assert [(c.tag, c.value) for c in new_family.children] == [("HUSB", "@I3@"), ("WIFE", "@I4@")]
        assert find(merged, "@I3@").sub_tag("FAMS").value == "@F2@"
        assert find(merged, "@I4@").sub_tag("FAMS").value == "@F2@"

    def test_removed_family_is_dropped(self, sample_gedcom_text):
        original = parse_gedcom(sample_gedcom_text)
        persons = {p.id: p for p in gedcom_to_persons(original)}
        for person in persons.values():
            person.rels.spouses = []
            person.rels.children = []
            person.rels.father = None
            person.rels.mother = None

        merged = merge_gedcom_nodes(original, list(persons.values()))

        assert records(merged, "FAM") == []
        assert find(merged, "@I1@").sub_tags("FAMS") == []
        assert find(merged, "@I3@").sub_tags("FAMC") == []

    def test_family_xrefs_are_stable_across_exports(self):
        text = (
            "0 HEAD\n0 @I1@ INDI\n1 SEX M\n0 @I2@ INDI\n1 SEX F\n0 @I3@ INDI\n"
            "0 @F5@ FAM\n1 HUSB @I1@\n1 WIFE @I2@\n1 CHIL @I3@\n0 TRLR"
        )
        original = parse_gedcom(text)
        persons = gedcom_to_persons(original)

        first = merge_gedcom_nodes(original, persons)
        second = merge_gedcom_nodes(original, persons)

        assert [n.xref_id for n in records(first, "FAM")] == ["@F5@"]
        assert export_gedcom(first, include_envelope=False) == export_gedcom(second, include_envelope=False)


class TestHelpers:

    def test_insert_before_trailer_when_no_record_of_kind(self):
        nodes = [GedcomNode(level=0, tag="HEAD"), GedcomNode(level=0, tag="TRLR")]
        insert_after_last(nodes, [GedcomNode(level=0, tag="FAM", xref_id="@F1@")], "FAM")
        assert [n.tag for n in nodes] == ["HEAD", "FAM", "TRLR"]

    def test_insert_at_end_without_trailer(self):
        nodes = [GedcomNode(level=0, tag="HEAD")]
        insert_after_last(nodes, [GedcomNode(level=0, tag="INDI")], "INDI")
        assert [n.tag for n in nodes] == ["HEAD", "INDI"]

    def test_event_date_added_to_missing_event(self):
        node = GedcomNode(level=0, tag="INDI")
        update_event_date(node, "DEAT", "1990")
        death = node.sub_tag("DEAT")
        assert death.level == 1
        assert death.sub_tag("DATE").level == 2
        assert death.sub_tag("DATE").value == "1990"

    def test_event_date_removed_keeps_event(self):
        node = parse_gedcom("0 @I1@ INDI\n1 DEAT\n2 DATE 1990\n2 PLAC Paris")[0]
        update_event_date(node, "DEAT", None)
        assert [c.tag for c in node.sub_tag("DEAT").children] == ["PLAC"]
