"""Click CLI for inspecting the component graph of a project."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from block_graph import __version__
from block_graph.errors import BlockGraphError
from block_graph.models import Location
from block_graph.project import Project

_TYPE_COLORS = {
    "interface": "cyan",
    "block": "green",
    "page": "magenta",
    "global": "yellow",
    "virtual": "blue",
}


def _project(ctx: click.Context) -> Project:
    obj = ctx.find_root().obj
    if "project" not in obj:
        try:
            obj["project"] = Project.load(obj["root"])
        except BlockGraphError as e:
            raise click.ClickException(str(e))
    return obj["project"]


def _rel(project: Project, path: Path | None) -> str:
    if path is None:
        return "-"
    try:
        return str(path.relative_to(project.root))
    except ValueError:
        return str(path)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--root", "-C",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Project directory (holding .pzlrrc)",
)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity")
@click.pass_context
def cli(ctx: click.Context, root: Path, verbose: int):
    """block-graph: resolve layered components, their dependencies and entry chunks."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {"root": root}


@cli.command()
@click.argument("name")
@click.option("--skip", "-s", default=0, show_default=True, help="Start the search at this layer")
@click.option("--context", "context", type=click.Path(path_type=Path), help="File the reference comes from")
@click.pass_context
def resolve(ctx: click.Context, name: str, skip: int, context: Path | None):
    """Show where NAME resolves across the layers."""
    project = _project(ctx)
    try:
        result = project.resolver.block(name, skip=skip, context=context)
    except BlockGraphError as e:
        raise click.ClickException(str(e))

    if result is None:
        raise click.ClickException(f"{name} does not resolve")
    if isinstance(result, Location):
        click.echo(f"{result.path}  {click.style(f'layer {result.from_layer - 1}', dim=True)}")
    else:
        click.echo(str(result))


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--no-lock", is_flag=True, help="Ignore and do not write the lock file")
@click.pass_context
def blocks(ctx: click.Context, names: tuple[str, ...], no_lock: bool):
    """List components (all of them when no NAMES are given)."""
    project = _project(ctx)
    try:
        block_map = project.blocks.get_all(names or None, use_lock=not no_lock)
    except BlockGraphError as e:
        raise click.ClickException(str(e))

    if not block_map:
        click.echo("No components found.")
        return

    by_type: dict[str, int] = {}
    for name in sorted(block_map):
        block = block_map[name]
        kind = block.type.value
        by_type[kind] = by_type.get(kind, 0) + 1
        extra = " (mixin)" if block.mixin else (f" extends {block.parent}" if block.parent else "")
        click.echo(
            f"  {click.style(kind, fg=_TYPE_COLORS.get(kind, 'white')):>20}  "
            f"{name}{extra}  "
            f"{click.style(_rel(project, block.manifest), dim=True)}"
        )

    click.echo("\nSummary:")
    for kind, count in sorted(by_type.items()):
        click.echo(f"  {kind}: {count}")


@cli.command()
@click.argument("name")
@click.option("--own", is_flag=True, help="Only the component's own declarations")
@click.pass_context
def deps(ctx: click.Context, name: str, own: bool):
    """Show dependencies and libraries of NAME."""
    project = _project(ctx)
    try:
        block = project.blocks.get(name)
        dependencies = block.get_dependencies(only_own=own)
        libs = block.get_libs(only_own=own)
    except BlockGraphError as e:
        raise click.ClickException(str(e))

    click.echo(click.style(name, fg="cyan"))
    click.echo("Dependencies:")
    for dep in dependencies:
        click.echo(f"  {dep}")
    click.echo("Libraries:")
    for lib in libs:
        click.echo(f"  {lib}")


@cli.command()
@click.argument("name")
@click.pass_context
def runtime(ctx: click.Context, name: str):
    """Show the runtime closure of NAME."""
    project = _project(ctx)
    try:
        result = project.blocks.get(name).get_runtime_dependencies()
    except BlockGraphError as e:
        raise click.ClickException(str(e))

    for unit in result.runtime:
        marker = click.style(" (parent)", dim=True) if unit in result.parents else ""
        click.echo(f"  {unit}{marker}")
    if result.libs:
        click.echo("Libraries: " + ", ".join(sorted(result.libs)))


@cli.command()
@click.pass_context
def entries(ctx: click.Context):
    """List entry points and the foundations they build on."""
    config = _project(ctx).get_build_config()
    if not len(config):
        click.echo("No entries found.")
        return
    for name, chain in config.dependencies.items():
        click.echo(f"  {' -> '.join(chain) if len(chain) > 1 else name}")


@cli.command()
@click.pass_context
def union(ctx: click.Context):
    """Split entry runtime graphs into common chunks."""
    project = _project(ctx)
    try:
        result = project.get_build_config().get_union_entry_points()
    except BlockGraphError as e:
        raise click.ClickException(str(e))

    for name, units in result.entry.items():
        click.echo(click.style(name, fg="cyan"))
        for unit in units.values():
            click.echo(f"  {unit.name}{' (parent)' if unit.is_parent else ''}")
        if name in result.dependencies:
            click.echo(click.style(f"  depends on: {', '.join(result.dependencies[name]) or '-'}", dim=True))


@cli.command(name="hash")
@click.pass_context
def hash_(ctx: click.Context):
    """Print the project graph hash."""
    click.echo(_project(ctx).blocks.project_hash())


@cli.command()
@click.option("--port", "-p", default=8430, help="Port number")
@click.option("--host", default="127.0.0.1", help="Host address")
@click.pass_context
def serve(ctx: click.Context, port: int, host: str):
    """Serve the graph over a read-only HTTP API."""
    try:
        import uvicorn
    except ImportError:
        raise click.ClickException(
            "uvicorn is required for the HTTP API. "
            "Install with: pip install 'block-graph[web]'"
        )

    from block_graph.web import create_app

    click.echo(f"Serving block-graph API at http://{host}:{port}")
    uvicorn.run(create_app(_project(ctx)), host=host, port=port, log_level="info")


if __name__ == "__main__":
    cli()
