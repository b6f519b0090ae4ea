"""Tests for GEDCOM parsing and serialization."""

import pytest

from famgraph.exceptions import GedcomExportError, GedcomImportError
from famgraph.models import GedcomNode
from famgraph.parsing import (
    export_gedcom,
    parse_gedcom,
    parse_gedcom_file,
    read_gedcom_file,
    write_gedcom_file,
)


class TestParseGedcom:

    def test_nesting_follows_levels(self, sample_gedcom_text):
        roots = parse_gedcom(sample_gedcom_text)

        assert [r.tag for r in roots] == ["HEAD", "INDI", "INDI", "INDI", "FAM", "SOUR", "TRLR"]
        john = roots[1]
        assert john.xref_id == "@I1@"
        assert [c.tag for c in john.children] == ["NAME", "SEX", "BIRT", "_CUSTOM", "FAMS"]
        name = john.sub_tag("NAME")
        assert [c.tag for c in name.children] == ["GIVN", "SURN"]
        assert name.children[0].level == 2
        birth = john.sub_tag("BIRT")
        assert birth.sub_tag("DATE").value == "1 JAN 1900"
        assert birth.sub_tag("PLAC").value == "Boston"

    def test_values_keep_inner_spaces(self):
        roots = parse_gedcom("0 @I1@ INDI\n1 NAME Robert Sargent /Shriver/ III")
        assert roots[0].children[0].value == "Robert Sargent /Shriver/ III"

    def test_malformed_lines_are_skipped(self):
        text = "0 HEAD\nnot a gedcom line\n1 SOUR test\n   \n@@ broken\n0 TRLR"
        roots = parse_gedcom(text)

        assert [r.tag for r in roots] == ["HEAD", "TRLR"]
        assert [c.tag for c in roots[0].children] == ["SOUR"]

    def test_lines_are_trimmed_and_crlf_tolerated(self):
        roots = parse_gedcom("  0 HEAD  \r\n  1 CHAR UTF-8\r\n0 TRLR\r\n")
        assert roots[0].children[0].value == "UTF-8"
        assert roots[1].tag == "TRLR"

    def test_unicode_line_separators_stay_in_values(self):
        """Only LF and CRLF end a line; NEL and U+2028 are value characters."""
        text = "0 @I1@ INDI\n1 NAME Ann\u2028Marie /Lee/\n1 NOTE wait\x85 then more text\n0 TRLR\n"
        roots = parse_gedcom(text)

        assert [r.tag for r in roots] == ["INDI", "TRLR"]
        indi = roots[0]
        assert indi.sub_tag("NAME").value == "Ann\u2028Marie /Lee/"
        assert indi.sub_tag("NOTE").value == "wait\x85 then more text"

    def test_level_jump_back_closes_records(self):
        text = "0 @I1@ INDI\n1 BIRT\n2 DATE 1900\n3 _X deep\n1 SEX M\n0 @I2@ INDI"
        roots = parse_gedcom(text)

        assert len(roots) == 2
        assert [c.tag for c in roots[0].children] == ["BIRT", "SEX"]
        assert roots[0].children[0].children[0].children[0].tag == "_X"

    def test_tag_without_value(self):
        node = parse_gedcom("0 @F1@ FAM")[0]
        assert node.tag == "FAM"
        assert node.value is None

    def test_empty_text(self):
        assert parse_gedcom("") == []


class TestExportGedcom:

    def test_fresh_export_has_envelope(self):
        nodes = [GedcomNode(level=0, tag="INDI", xref_id="@I1@",
                            children=[GedcomNode(level=1, tag="NAME", value="John /Smith/")])]
        text = export_gedcom(nodes)

        lines = text.split("\n")
        assert lines[:5] == ["0 HEAD", "1 SOUR famgraph", "1 GEDC", "2 VERS 5.5.1", "1 CHAR UTF-8"]
        assert lines[5:7] == ["0 @I1@ INDI", "1 NAME John /Smith/"]
        assert lines[-1] == "0 TRLR"

    def test_merge_export_has_no_envelope(self):
        nodes = [GedcomNode(level=0, tag="HEAD"), GedcomNode(level=0, tag="TRLR")]
        assert export_gedcom(nodes, include_envelope=False) == "0 HEAD\n0 TRLR"

    def test_reparse_reproduces_document(self, sample_gedcom_text):
        roots = parse_gedcom(sample_gedcom_text)
        assert export_gedcom(roots, include_envelope=False) == sample_gedcom_text


class TestFiles:

    def test_write_then_parse_file(self, tmp_path):
        path = tmp_path / "tree.ged"
        write_gedcom_file(path, "0 HEAD\n0 TRLR")
        assert [r.tag for r in parse_gedcom_file(path)] == ["HEAD", "TRLR"]

    def test_read_utf8_with_bom(self, tmp_path):
        path = tmp_path / "bom.ged"
        path.write_bytes("\ufeff0 @I1@ INDI\n1 NAME José /Núñez/".encode("utf-8"))
        assert read_gedcom_file(path).startswith("0 @I1@ INDI")
        assert "Núñez" in read_gedcom_file(path)

    def test_read_latin1_fallback(self, tmp_path):
        path = tmp_path / "latin.ged"
        path.write_bytes("1 NAME Jos\xe9 //".encode("latin-1"))
        assert read_gedcom_file(path) == "1 NAME José //"

    def test_latin1_ellipsis_byte_survives_parsing(self, tmp_path):
        path = tmp_path / "cp1252.ged"
        path.write_bytes(b"0 @I1@ INDI\n1 NOTE wait\x85 then more text\n0 TRLR\n")

        roots = parse_gedcom_file(path)

        assert roots[0].sub_tag("NOTE").value == "wait\x85 then more text"
        assert "1 NOTE wait\x85 then more text" in export_gedcom(roots, include_envelope=False).split("\n")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(GedcomImportError):
            read_gedcom_file(tmp_path / "missing.ged")

    def test_unwritable_path_raises(self, tmp_path):
        with pytest.raises(GedcomExportError):
            write_gedcom_file(tmp_path / "no" / "such" / "dir" / "out.ged", "0 HEAD")
