"""
famgraph CLI - import, export, lay out and inspect a family tree

The tree lives in a local SQLite store between invocations.
"""

import json
from pathlib import Path

import click

from famgraph.config import load_settings
from famgraph.database import PersonStorage
from famgraph.demo import load_demo_data
from famgraph.exceptions import FamGraphError
from famgraph.layout import GraphvizLayoutEngine
from famgraph.logging_config import get_project_logger
from famgraph.parsing import parse_gedcom_file
from famgraph.plotting import plot_layout
from famgraph.store import FamilyTreeStore
from famgraph.transfer import export_gedcom_file, import_gedcom_file
from famgraph.validation import validate_persons


def _open_store(ctx) -> FamilyTreeStore:
    settings = ctx.obj["settings"]
    engine = ctx.obj.get("engine") or GraphvizLayoutEngine(prog=settings.graphviz_prog)
    return FamilyTreeStore(storage=PersonStorage(settings.db_path), engine=engine)


def _fail_on_notification(store: FamilyTreeStore) -> None:
    errors = [n for n in store.notifier.history if n.color == "red"]
    if errors:
        raise click.ClickException(errors[-1].message)


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose logging')
@click.option('--db', type=click.Path(dir_okay=False, path_type=Path), help='SQLite store to use')
@click.pass_context
def cli(ctx, verbose, db):
    """famgraph - Family Tree Tools"""
    ctx.ensure_object(dict)
    settings = load_settings()
    if db:
        settings.db_path = db
    ctx.obj['settings'] = settings
    ctx.obj['logger'] = get_project_logger(verbose, settings.log_level)


@cli.command('import')
@click.argument('gedcom_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_(ctx, gedcom_file):
    """Replace the stored tree with a GEDCOM file"""
    store = _open_store(ctx)
    if not import_gedcom_file(store, gedcom_file):
        _fail_on_notification(store)
    click.echo(f"Imported {store.total_persons} persons from {gedcom_file}")


@cli.command()
@click.argument('output', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--original', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Merge into this GEDCOM file instead of writing a fresh one')
@click.pass_context
def export(ctx, output, original):
    """Write the stored tree as GEDCOM"""
    store = _open_store(ctx)
    store.restore(recalculate=False)
    if original:
        try:
            store.set_original_gedcom_nodes(parse_gedcom_file(original))
        except FamGraphError as e:
            raise click.ClickException(str(e))
    if not export_gedcom_file(store, output):
        _fail_on_notification(store)
    click.echo(f"Exported {store.total_persons} persons to {output}")


@cli.command()
@click.option('--json', 'json_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Write positioned nodes and edges as JSON')
@click.option('--png', 'png_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Render the tree to an image')
@click.pass_context
def layout(ctx, json_path, png_path):
    """Compute the tree layout"""
    store = _open_store(ctx)
    store.restore()
    _fail_on_notification(store)

    if json_path:
        json_path.write_text(json.dumps(store.layout.to_dict(), indent=2), encoding="utf-8")
        click.echo(f"Layout written to {json_path}")
    if png_path:
        plot_layout(store.layout, store.data, png_path)
        click.echo(f"Image written to {png_path}")
    if not json_path and not png_path:
        click.echo(json.dumps(store.layout.to_dict(), indent=2))


@cli.command()
@click.pass_context
def check(ctx):
    """Report relationship inconsistencies"""
    store = _open_store(ctx)
    store.restore(recalculate=False)
    warnings = validate_persons(store.data)
    for warning in warnings:
        click.echo(f"WARNING: {warning}")
    if warnings:
        ctx.exit(1)
    click.echo("No problems found")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show tree statistics"""
    store = _open_store(ctx)
    store.restore()
    if store.family_tree_name:
        click.echo(store.family_tree_name)
    for key, value in store.stats().items():
        click.echo(f"{key}: {value}")


@cli.command()
@click.pass_context
def demo(ctx):
    """Load the demo family"""
    store = _open_store(ctx)
    load_demo_data(store)
    click.echo(f"Loaded {store.total_persons} demo persons")


@cli.command()
@click.pass_context
def clear(ctx):
    """Delete the stored tree"""
    store = _open_store(ctx)
    store.clear_data()
    click.echo("Family tree cleared")


if __name__ == '__main__':
    cli()
