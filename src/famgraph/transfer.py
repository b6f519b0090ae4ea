"""GEDCOM import and export workflows around the family tree store."""

import logging
from pathlib import Path

from famgraph.exceptions import FamGraphError
from famgraph.mapping import gedcom_to_persons, persons_to_gedcom
from famgraph.merging import merge_gedcom_nodes
from famgraph.parsing import export_gedcom, parse_gedcom, read_gedcom_file, write_gedcom_file
from famgraph.store import FamilyTreeStore

logger = logging.getLogger(__name__)


def import_gedcom_text(store: FamilyTreeStore, text: str, name: str | None = None) -> bool:
    """
    Replace the tree with the contents of a GEDCOM document.

    The store is cleared first; that is not undone when the import fails.

    Returns:
        True when the document was loaded
    """
    store.clear_data()
    store.set_is_loading(True)
    try:
        nodes = parse_gedcom(text)
        persons = gedcom_to_persons(nodes)
        store.set_original_gedcom_nodes(nodes)
        store.set_family_tree_name(name)
        store.set_data(persons)
    except Exception:
        logger.exception("Error importing GEDCOM")
        store.notifier.error("Failed to import GEDCOM file.")
        store.set_is_loading(False)
        return False

    logger.info("Imported %d persons from %s", len(persons), name or "GEDCOM text")
    return True


def import_gedcom_file(store: FamilyTreeStore, filepath: Path | str) -> bool:
    filepath = Path(filepath)
    store.clear_data()
    try:
        text = read_gedcom_file(filepath)
    except FamGraphError:
        logger.exception("Error reading %s", filepath)
        store.notifier.error("Failed to import GEDCOM file.")
        return False
    return import_gedcom_text(store, text, name=filepath.stem)


def build_export_text(store: FamilyTreeStore) -> str:
    """
    Render the current persons as GEDCOM.

    With a retained original document the persons are merged into it and the
    original's own header and trailer are kept; otherwise a fresh document is
    written with a generated envelope.
    """
    if store.original_gedcom_nodes:
        nodes = merge_gedcom_nodes(store.original_gedcom_nodes, store.persons)
        return export_gedcom(nodes, include_envelope=False)
    return export_gedcom(persons_to_gedcom(store.persons), include_envelope=True)


def export_gedcom_text(store: FamilyTreeStore) -> str | None:
    store.set_is_loading(True)
    try:
        text = build_export_text(store)
    except Exception:
        logger.exception("Error exporting GEDCOM")
        store.notifier.error("Failed to export GEDCOM file.")
        return None
    finally:
        store.set_is_loading(False)

    store.set_has_unsaved_changes(False)
    return text


def export_gedcom_file(store: FamilyTreeStore, filepath: Path | str) -> bool:
    filepath = Path(filepath)
    store.set_is_loading(True)
    try:
        write_gedcom_file(filepath, build_export_text(store))
    except Exception:
        logger.exception("Error exporting GEDCOM to %s", filepath)
        store.notifier.error("Failed to export GEDCOM file.")
        return False
    finally:
        store.set_is_loading(False)

    store.set_has_unsaved_changes(False)
    logger.info("Exported %d persons to %s", store.total_persons, filepath)
    return True
