import json
from pathlib import Path
from typing import List, Optional

import typer

from cli import commands

app = typer.Typer(add_completion=False)


@app.command("explore")
def explore(
    person_id: int,
    depth: int = typer.Option(1, "--depth", "-d", min=0, help="Hops to expand"),
    relation_type: Optional[List[str]] = typer.Option(
        None, "--type", "-t", help="kinship, association or office (repeatable)"
    ),
    include_reciprocal: bool = typer.Option(False, "--reciprocal", help="Follow relations in both directions"),
    proximity_radius: Optional[float] = typer.Option(None, "--radius", help="Keep persons within this many degrees"),
    max_nodes: Optional[int] = typer.Option(None, "--max-nodes", min=1),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List nodes and edges"),
    db: Optional[Path] = typer.Option(None, "--db", dir_okay=False, help="CBDB SQLite file"),
) -> None:
    """Explore the relation network around a person."""
    result = commands.explore(
        person_id,
        depth,
        relation_type or [],
        include_reciprocal=include_reciprocal,
        proximity_radius=proximity_radius,
        max_nodes=max_nodes,
        db_path=db,
    )
    if as_json:
        typer.echo(commands.network_json(result))
        return
    for line in commands.print_network_report(result, verbose=verbose):
        typer.echo(line)


@app.command("recursive")
def recursive(
    person_id: int,
    max_degrees: int = typer.Option(1, "--degrees", "-d", min=0),
    relation_type: Optional[List[str]] = typer.Option(None, "--type", "-t"),
    max_nodes: Optional[int] = typer.Option(None, "--max-nodes", min=1),
    as_json: bool = typer.Option(False, "--json"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    db: Optional[Path] = typer.Option(None, "--db", dir_okay=False),
) -> None:
    """Explore a network with one recursive SQL query (kinship unless --type is given)."""
    result = commands.recursive(person_id, max_degrees, relation_type or None, max_nodes, db_path=db)
    if as_json:
        typer.echo(commands.network_json(result))
        return
    for line in commands.print_network_report(result, verbose=verbose):
        typer.echo(line)


@app.command("path")
def path(
    from_person: int,
    to_person: int,
    depth: int = typer.Option(2, "--depth", "-d", min=0, help="Hops to expand from each person"),
    relation_type: Optional[List[str]] = typer.Option(None, "--type", "-t"),
    include_reciprocal: bool = typer.Option(False, "--reciprocal"),
    db: Optional[Path] = typer.Option(None, "--db", dir_okay=False),
) -> None:
    """Find the shortest chain of relations between two persons."""
    pathway = commands.path(
        from_person, to_person, depth, relation_type or [], include_reciprocal, db_path=db
    )
    for line in commands.print_pathway(pathway):
        typer.echo(line)
    if pathway is None:
        raise typer.Exit(code=1)


@app.command("stats")
def stats(
    person_id: int,
    db: Optional[Path] = typer.Option(None, "--db", dir_okay=False),
) -> None:
    """Show relation counts for a person."""
    typer.echo(json.dumps(commands.stats(person_id, db_path=db), indent=2))


@app.command("init-db")
def init_db(db: Optional[Path] = typer.Option(None, "--db", dir_okay=False)) -> None:
    """Create an empty database with the CBDB tables used for networks."""
    path = commands.create_db(db)
    typer.echo(f"Initialized {path}")


@app.command("load-table")
def load_table(
    table: str,
    file: Path = typer.Option(..., "--file", exists=True, dir_okay=False, readable=True),
    db: Optional[Path] = typer.Option(None, "--db", dir_okay=False),
) -> None:
    """Append rows from a CSV export to a CBDB table."""
    count = commands.load_table(table, file, db_path=db)
    typer.echo(f"Loaded {count} rows into {table}")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Run the API server."""
    import uvicorn
    uvicorn.run("api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
