"""Family tree editing, GEDCOM interchange and hierarchical layout."""

__version__ = "0.1.0"
