"""Data classes for family tree entities."""

from dataclasses import dataclass, field
from typing import Any

GENDERS = ("M", "F", "U")


@dataclass
class PersonData:
    first_name: str = ""
    last_name: str | None = None
    suffix: str | None = None
    birth_day: str | None = None  # free-form, never parsed as a calendar date
    death_day: str | None = None
    gender: str | None = None  # M, F or U
    avatar: str | None = None
    note: str | None = None


@dataclass
class Relations:
    father: str | None = None
    mother: str | None = None
    spouses: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)


@dataclass
class Person:
    id: str
    data: PersonData = field(default_factory=PersonData)
    rels: Relations = field(default_factory=Relations)
    wiki_id: str | None = None
    wiki_loaded: bool | None = None

    @property
    def gender(self) -> str | None:
        return self.data.gender

    def parent_ids(self) -> list[str]:
        """Father then mother, skipping unset slots."""
        return [p for p in (self.rels.father, self.rels.mother) if p]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase layout used by the persistence store."""
        data = {
            "firstName": self.data.first_name,
            "lastName": self.data.last_name,
            "suffix": self.data.suffix,
            "birthDay": self.data.birth_day,
            "deathDay": self.data.death_day,
            "gender": self.data.gender,
            "avatar": self.data.avatar,
            "note": self.data.note,
        }
        rels = {
            "father": self.rels.father,
            "mother": self.rels.mother,
            "spouses": list(self.rels.spouses),
            "children": list(self.rels.children),
        }
        result = {
            "id": self.id,
            "wikiId": self.wiki_id,
            "wikiLoaded": self.wiki_loaded,
            "rels": {k: v for k, v in rels.items() if v is not None},
            "data": {k: v for k, v in data.items() if v is not None},
        }
        return {k: v for k, v in result.items() if v is not None}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Person":
        data = raw.get("data") or {}
        rels = raw.get("rels") or {}
        return cls(
            id=str(raw["id"]),
            wiki_id=raw.get("wikiId"),
            wiki_loaded=raw.get("wikiLoaded"),
            data=PersonData(
                first_name=data.get("firstName") or "",
                last_name=data.get("lastName"),
                suffix=data.get("suffix"),
                birth_day=data.get("birthDay"),
                death_day=data.get("deathDay"),
                gender=data.get("gender"),
                avatar=data.get("avatar"),
                note=data.get("note"),
            ),
            rels=Relations(
                father=rels.get("father") or None,
                mother=rels.get("mother") or None,
                spouses=list(rels.get("spouses") or []),
                children=list(rels.get("children") or []),
            ),
        )


@dataclass
class GedcomNode:
    """One line of a GEDCOM document plus its nested sub-records."""

    level: int
    tag: str
    xref_id: str | None = None  # "@ID@"
    value: str | None = None
    children: list["GedcomNode"] = field(default_factory=list)

    def sub_tag(self, tag: str) -> "GedcomNode | None":
        """First direct child with the given tag."""
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def sub_tags(self, tag: str) -> list["GedcomNode"]:
        return [child for child in self.children if child.tag == tag]


def xref_to_id(value: str | None) -> str:
    """Strip the @ delimiters from a cross-reference ('@I1@' -> 'I1')."""
    return (value or "").replace("@", "")


def id_to_xref(person_id: str) -> str:
    return f"@{person_id}@"


def format_name(person: Person) -> str:
    suffix = f" {person.data.suffix}" if person.data.suffix else ""
    return f"{person.data.first_name} {person.data.last_name or ''}{suffix}".strip()


def format_dates(person: Person) -> str | None:
    birth = person.data.birth_day
    death = person.data.death_day
    if birth and death:
        return f"{birth} - {death}"
    if birth:
        return f"Born: {birth}"
    if death:
        return f"Died: {death}"
    return None
