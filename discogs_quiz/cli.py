"""
Discogs Quiz — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Build a ``DiscogsSession`` over the SQLite token store.
  4. Execute action (login, collection listing, recommendation).
  5. Report result to stdout; library errors become ``[ERROR]`` + exit 1.

Install and run::

    pip install -e .
    discogs-quiz --help
    discogs-quiz validate-config
    discogs-quiz login --user alice
    discogs-quiz collection --user alice --search miles --sort year
    discogs-quiz recommend --user alice --mood relaxed --tempo slow --genre Jazz
"""

from __future__ import annotations

import json
import random
import webbrowser
from pathlib import Path
from typing import List, Optional

import typer

from discogs_quiz.taxonomy.preferences import (
    Decade,
    FormatPreference,
    Language,
    QUIZ_GENRES,
    Mood,
    Tempo,
)

app = typer.Typer(
    name="discogs-quiz",
    help="Discogs Quiz — pick an album from your own Discogs collection.",
    add_completion=False,
)

DEFAULT_USER = "default"


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from discogs_quiz.config import load_config
    from discogs_quiz.errors import ConfigError

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except ConfigError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:  # pydantic ValidationError, TOMLDecodeError
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from discogs_quiz.utils.logging import configure_logging
    configure_logging(config.logging)


def _open_session(config, db_path: Optional[str] = None):
    """Build a ``DiscogsSession`` over the SQLite token store, or exit."""
    from discogs_quiz.db.repositories.token_repo import SqliteTokenStore
    from discogs_quiz.errors import ConfigError
    from discogs_quiz.ingestion.session import DiscogsSession

    store = SqliteTokenStore(
        db_path or config.storage.token_db_path,
        wal_mode=config.storage.wal_mode,
        busy_timeout_ms=config.storage.busy_timeout_ms,
    )
    try:
        return DiscogsSession(config.discogs, store)
    except ConfigError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


def _console_agent(authorize_url: str) -> str:
    """Open the authorization page and read the callback URL from stdin."""
    typer.echo("Authorize this app on Discogs:")
    typer.echo(f"  {authorize_url}")
    try:
        webbrowser.open(authorize_url)
    except webbrowser.Error:
        typer.echo("  (could not open a browser; open the URL manually)")
    return typer.prompt("Paste the full callback URL you were redirected to")


def _format_artists(artists) -> str:
    return ", ".join(a.name for a in artists) or "Unknown Artist"


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields (secrets masked).",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    discogs = config.discogs

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  API base URL:     {discogs.base_url}")
    typer.echo(f"  Callback URL:     {discogs.callback_url}")
    typer.echo(f"  Relay:            {discogs.proxy_url or '(direct)'}")
    typer.echo(f"  Credentials set:  {'yes' if discogs.has_credentials else 'NO'}")
    typer.echo(f"  Token DB:         {config.storage.token_db_path}")
    typer.echo(f"  Detail spacing:   {config.details.min_interval_s}s")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        dumped = config.model_dump()
        for key in ("consumer_key", "consumer_secret"):
            if dumped["discogs"].get(key):
                dumped["discogs"][key] = "***"
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    if not discogs.has_credentials:
        typer.echo("[WARN] Set DISCOGS_CONSUMER_KEY / DISCOGS_CONSUMER_SECRET to log in.")
    typer.echo("[OK] Config valid.")


@app.command("login")
def login(
    user: str = typer.Option(DEFAULT_USER, "--user", help="Local user id to store tokens under."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override token DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Authorize this app with Discogs (OAuth 1.0a) and store the tokens."""
    from discogs_quiz.auth.flow import AuthFlowController
    from discogs_quiz.errors import DiscogsQuizError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_session(config, db_path) as session:
        controller = AuthFlowController(session)
        try:
            tokens = controller.authenticate(user, _console_agent)
        except DiscogsQuizError as exc:
            typer.echo(f"[ERROR] Login failed ({controller.state.value}): {exc}", err=True)
            raise typer.Exit(code=1)

    typer.echo(f"[OK] Logged in as Discogs user '{tokens.username}' (local user '{user}').")


@app.command("logout")
def logout(
    user: str = typer.Option(DEFAULT_USER, "--user", help="Local user id."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override token DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Forget the stored Discogs tokens for a user."""
    from discogs_quiz.auth.flow import AuthFlowController

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_session(config, db_path) as session:
        AuthFlowController(session).sign_out(user)
    typer.echo(f"[OK] Signed out local user '{user}'.")


@app.command("whoami")
def whoami(
    user: str = typer.Option(DEFAULT_USER, "--user", help="Local user id."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override token DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Show which Discogs account is stored for a user."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_session(config, db_path) as session:
        tokens = session.token_store.get(user)

    if tokens is None:
        typer.echo(f"Local user '{user}' is not logged in. Run 'discogs-quiz login'.")
        raise typer.Exit(code=1)
    typer.echo(f"Local user '{user}' → Discogs user '{tokens.username}'.")


@app.command("collection")
def collection(
    user: str = typer.Option(DEFAULT_USER, "--user", help="Local user id."),
    search: str = typer.Option("", "--search", "-s", help="Filter by title, artist or genre."),
    sort: str = typer.Option(
        "date_added", "--sort", help="title | artist | year | date_added (newest first)."
    ),
    limit: int = typer.Option(50, "--limit", min=1, help="Maximum rows to print."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override token DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List your Discogs collection with optional search and sort."""
    from discogs_quiz.errors import DiscogsQuizError
    from discogs_quiz.ingestion.collection import CollectionFetcher
    from discogs_quiz.recommendations.browse import (
        SortKey,
        search_collection,
        sort_collection,
    )

    try:
        sort_key = SortKey(sort)
    except ValueError:
        valid = ", ".join(k.value for k in SortKey)
        typer.echo(f"[ERROR] Unknown sort '{sort}'. Valid: {valid}", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_session(config, db_path) as session:
        try:
            result = CollectionFetcher(session, config.collection).fetch_all(user)
        except DiscogsQuizError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)

    items = sort_collection(search_collection(result.items, search), sort_key)
    typer.echo(f"{len(items)} of {len(result)} releases")
    if result.is_partial:
        typer.echo(
            f"[WARN] Collection incomplete: page {result.failed_page} failed ({result.error})."
        )
    typer.echo("")
    for item in items[:limit]:
        info = item.basic_information
        year = info.year or "----"
        typer.echo(f"  {year}  {_format_artists(info.artists)} — {info.title}")
    if len(items) > limit:
        typer.echo(f"  ... {len(items) - limit} more")


@app.command("recommend")
def recommend_cmd(
    user: str = typer.Option(DEFAULT_USER, "--user", help="Local user id."),
    mood: Mood = typer.Option(..., "--mood", help="How you want to feel."),
    tempo: Tempo = typer.Option(..., "--tempo", help="Preferred pace."),
    genre: Optional[List[str]] = typer.Option(
        None,
        "--genre",
        "-g",
        help=f"Preferred genre. Repeatable. Quiz choices: {', '.join(QUIZ_GENRES)}.",
    ),
    decade: Decade = typer.Option(Decade.ANY, "--decade", help="Release decade or 'any'."),
    format_: FormatPreference = typer.Option(
        FormatPreference.BOTH, "--format", help="album | single | both."
    ),
    language: Language = typer.Option(Language.ALL, "--language", help="Recorded only."),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Seed for the close-match pick (reproducible runs)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the recommendation as JSON."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override token DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Answer the quiz on the command line and get one album from your collection.

    \b
    Steps:
      1. Log in through the browser if no tokens are stored.
      2. Fetch the full collection.
      3. Filter (broadening if needed), fetch details for the top candidates.
      4. Score, rank and pick among close matches.
    """
    from discogs_quiz.errors import DiscogsQuizError
    from discogs_quiz.models.quiz import QuizAnswers
    from discogs_quiz.pipeline.recommend import RecommendPipeline, RunStatus

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    answers = QuizAnswers(
        mood=mood.value,
        tempo=tempo.value,
        genres=tuple(genre or ()),
        decade=decade,
        format=format_,
        language=language,
    )
    rng = random.Random(seed) if seed is not None else None

    def _progress(completed: int, total: int) -> None:
        typer.echo(f"  release details {completed}/{total}", err=True)

    with _open_session(config, db_path) as session:
        pipeline = RecommendPipeline(config, session, rng=rng)
        try:
            result = pipeline.run(user, answers, agent=_console_agent, on_progress=_progress)
        except DiscogsQuizError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)

    if not result.collection_complete:
        typer.echo("[WARN] Collection fetch stopped early; results may be incomplete.")

    if result.status is RunStatus.EMPTY_COLLECTION:
        typer.echo("Your Discogs collection is empty. Add some releases first.")
        raise typer.Exit(code=0)
    if result.status is RunStatus.NO_MATCH or result.recommendation is None:
        typer.echo("No match in your collection. Try different answers.")
        raise typer.Exit(code=0)

    rec = result.recommendation
    if as_json:
        typer.echo(rec.model_dump_json(indent=2))
        return

    release = rec.release_data
    typer.echo("")
    typer.echo(f"  {_format_artists(release.artists)} — {release.title}")
    if release.year:
        typer.echo(f"  Year:  {release.year}")
    if release.genres:
        typer.echo(f"  Genre: {', '.join(release.genres + release.styles)}")
    typer.echo(f"  Match: {rec.match_score}")
    for reason in rec.reasons:
        typer.echo(f"    - {reason}")
    if result.broaden_step.value != "none":
        typer.echo(f"  (filters broadened: {result.broaden_step.value})")
    typer.echo("")
    typer.echo("[OK] Enjoy the record.")


if __name__ == "__main__":
    app()
