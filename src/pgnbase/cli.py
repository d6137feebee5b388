"""Command-line interface for pgnbase."""

import json
import logging
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv

from .config import load_settings, parse_batch_size
from .database import DB_SUFFIX, get_db_info, rename_db
from .errors import PgnBaseError
from .importer import import_archive
from .logging_utils import set_level
from .models import Outcome
from .query import GameQuery, PlayerQuery, Sort, get_games, get_player_game_info, get_players
from .speed import Speed


def _resolve_db(ctx: click.Context, db: str) -> Path:
    """Return an existing path as-is, otherwise look the name up in the data dir."""
    path = Path(db)
    if path.exists():
        return path
    name = path.name if path.suffix == DB_SUFFIX else path.name + DB_SUFFIX
    return ctx.obj["settings"].db_dir / name


def _run(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except PgnBaseError as err:
        raise click.ClickException(str(err)) from err


def _truncate(text: str, width: int) -> str:
    return (text[: width - 3] + "...") if len(text) > width else text


def _echo_json(response) -> None:
    payload = {"count": response.count, "data": [item.to_dict() for item in response.data]}
    click.echo(json.dumps(payload, indent=2))


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Application data directory (default: $PGNBASE_DATA_DIR or ~/.pgnbase)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    """pgnbase - Build and query databases of chess games from PGN archives."""
    load_dotenv()
    ctx.ensure_object(dict)
    settings = _run(load_settings)
    if data_dir is not None:
        settings = replace(settings, data_dir=data_dir)
    ctx.obj["settings"] = settings
    set_level(logging.DEBUG if verbose else logging.INFO)


@main.command(name="import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--batch-size", type=int, default=None, help="Games written per transaction.")
@click.pass_context
def import_cmd(ctx: click.Context, source: Path, batch_size: int | None) -> None:
    """Convert a PGN archive (.pgn, .pgn.bz2, .pgn.zst) into a database."""
    settings = ctx.obj["settings"]
    size = _run(parse_batch_size, batch_size) if batch_size is not None else settings.batch_size

    click.echo(f"Importing {source}...")
    destination, stats = _run(import_archive, source, settings.data_dir, batch_size=size)
    click.echo(
        f"Done: {stats.games_imported} game(s) imported, "
        f"{stats.games_skipped} skipped -> {destination}"
    )


@main.command()
@click.argument("db")
@click.pass_context
def info(ctx: click.Context, db: str) -> None:
    """Show the title, size and row counts of a database."""
    result = _run(get_db_info, _resolve_db(ctx, db))
    click.echo(f"Title:   {result.title}")
    click.echo(f"File:    {result.description}")
    click.echo(f"Players: {result.player_count}")
    click.echo(f"Games:   {result.game_count}")
    click.echo(f"Size:    {result.storage_size} bytes")


@main.command()
@click.argument("db")
@click.argument("title")
@click.pass_context
def rename(ctx: click.Context, db: str, title: str) -> None:
    """Set the title of a database."""
    _run(rename_db, _resolve_db(ctx, db), title)
    click.echo(f"Renamed to {title!r}.")


@main.command()
@click.argument("db")
@click.option("--player", "player1", default=None, help="Games with this player as white.")
@click.option(
    "--speed",
    type=click.Choice([s.label for s in Speed], case_sensitive=False),
    default=None,
)
@click.option(
    "--outcome",
    type=click.Choice([o.result for o in Outcome]),
    default=None,
)
@click.option("--sort", type=click.Choice([s.value for s in Sort]), default=None)
@click.option("--limit", type=click.IntRange(min=0), default=None)
@click.option("--offset", type=click.IntRange(min=0), default=None)
@click.option("--no-count", "skip_count", is_flag=True, help="Do not count matches.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.pass_context
def games(ctx: click.Context, db: str, as_json: bool, **filters) -> None:
    """Search the games of a database."""
    query = _run(GameQuery.from_dict, filters)
    response = _run(get_games, _resolve_db(ctx, db), query)

    if as_json:
        _echo_json(response)
        return

    if not response.data:
        click.echo("No games found.")
    else:
        click.echo(
            f"{'ID':<8} {'White':<20} {'Black':<20} {'Date':<12} "
            f"{'Result':<8} {'Speed':<15} {'Ratings'}"
        )
        click.echo("-" * 100)
        for row in response.data:
            game = row.game
            speed = game.speed.label if game.speed is not None else "-"
            click.echo(
                f"{game.id:<8} {_truncate(row.white.name, 20):<20} "
                f"{_truncate(row.black.name, 20):<20} {game.date:<12} "
                f"{game.outcome.result:<8} {speed:<15} "
                f"{game.white_rating or '-'}/{game.black_rating or '-'}"
            )
    if response.count is not None:
        click.echo(f"{response.count} matching game(s).")


@main.command()
@click.argument("db")
@click.option("--name", default=None, help="Case-insensitive name substring.")
@click.option("--limit", type=click.IntRange(min=0), default=None)
@click.option("--offset", type=click.IntRange(min=0), default=None)
@click.option("--no-count", "skip_count", is_flag=True, help="Do not count matches.")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.pass_context
def players(ctx: click.Context, db: str, as_json: bool, **filters) -> None:
    """List the players of a database."""
    query = _run(PlayerQuery.from_dict, filters)
    response = _run(get_players, _resolve_db(ctx, db), query)

    if as_json:
        _echo_json(response)
        return

    if not response.data:
        click.echo("No players found.")
    else:
        click.echo(f"{'ID':<8} {'Name':<30} {'Rating':<8} {'Games'}")
        click.echo("-" * 60)
        for player in response.data:
            click.echo(
                f"{player.id:<8} {_truncate(player.name, 30):<30} "
                f"{player.rating or '-':<8} {player.game_count}"
            )
    if response.count is not None:
        click.echo(f"{response.count} matching player(s).")


@main.command()
@click.argument("db")
@click.argument("player_id", type=int)
@click.pass_context
def stats(ctx: click.Context, db: str, player_id: int) -> None:
    """Show a player's wins, losses and draws."""
    result = _run(get_player_game_info, _resolve_db(ctx, db), player_id)
    click.echo(f"Won: {result.won}  Lost: {result.lost}  Drawn: {result.draw}")


if __name__ == "__main__":
    main()
