"""Entry-point for the Media Hunter application."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from media_hunter.bootstrap import initialize_app
from media_hunter.config import AppConfig
from media_hunter.logging_utils import (
    DEFAULT_LOG_FORMAT,
    configure_logging,
    get_log_file_path,
    resolve_log_level,
)
from media_hunter.services.api_client import CatalogApiClient
from media_hunter.services.catalog import MediaFilters
from media_hunter.services.curriculum import CurriculumLoader, SnapshotGradeSource
from media_hunter.services.lesson_plan import format_lesson_plan, generate_lesson_plan
from media_hunter.services.models import Role, User
from media_hunter.services.moderation import ModerationError, ModerationWorkflow
from media_hunter.services.naming import build_export_name
from media_hunter.services.progress import ProgressStore
from media_hunter.services.results import Failure
from media_hunter.services.session import CatalogSession
from media_hunter.services.storage import CatalogRepository, format_report_digest
from media_hunter.ui.console import ConsoleUI
from media_hunter.ui.modern import ModernUI
from media_hunter.web import create_app


LOGGER = logging.getLogger("media_hunter.cli")


cli = typer.Typer(add_completion=False, help="Media Hunter management commands")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

log_level_option = typer.Option("INFO", "--log-level", help="Logging verbosity.", show_default=True)


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


style_option = typer.Option(
    UIStyle.MODERN,
    "--style",
    "-s",
    help="Select the curriculum presentation style.",
    show_default=True,
)


def _prepare_logging(storage_root: Path, level: str = "INFO") -> None:
    try:
        numeric_level = resolve_log_level(level)
    except ValueError as error:
        raise typer.BadParameter(str(error), param_hint="--log-level") from error
    log_file = get_log_file_path(storage_root)
    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    configure_logging(numeric_level, handlers=[file_handler, stream_handler])


def _resolve_user(config: AppConfig, user_id: str) -> User:
    for seed in config.users:
        if seed.user_id == user_id:
            return User(
                user_id=seed.user_id,
                name=seed.name,
                role=Role.parse(seed.role),
                avatar_color=seed.avatar_color,
            )
    return User(user_id=user_id, name=user_id, role=Role.STUDENT)


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, log_level="INFO")


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    log_level: str = log_level_option,
) -> None:
    """Run the catalog backend."""

    app_config = initialize_app()
    _prepare_logging(app_config.storage_root, log_level)

    repository = CatalogRepository(app_config)
    app = create_app(repository, config=app_config)
    server_config = uvicorn.Config(app, host=host, port=port, log_config=None)
    server = uvicorn.Server(server_config)
    LOGGER.info("Serving catalog API on http://%s:%s/api", host, port)
    server.run()


@cli.command()
def seed(log_level: str = log_level_option) -> None:
    """Import the grade snapshots and the user roster into the database."""

    config = initialize_app()
    _prepare_logging(config.storage_root, log_level)

    repository = CatalogRepository(config)
    source = SnapshotGradeSource(config.grades_root, extended_grades=config.extended_grades)
    imported = 0
    for info in config.grades:
        outcome = source.fetch(info.grade_id)
        if isinstance(outcome, Failure):
            LOGGER.warning("Skipping grade %s: %s", info.grade_id, outcome.describe())
            typer.echo(f"Grade {info.grade_id}: skipped ({outcome.reason})")
            continue
        counts = repository.replace_grade(outcome.value, info)
        imported += 1
        typer.echo(
            f"Grade {info.grade_id}: {counts['categories']} categories, "
            f"{counts['topics']} topics, {counts['media']} media"
        )

    users = repository.upsert_users(config.users)
    typer.echo(f"Seeded {imported} grades and {users} users.")


@cli.command()
def browse(
    grade: str = typer.Argument(..., help="Grade to open, e.g. 11"),
    user: Optional[str] = typer.Option(None, help="Roster user id to browse as"),
    category: Optional[str] = typer.Option(None, help="Restrict topics to this category id"),
    query: str = typer.Option("", help="Search topic names, descriptions and subtopics"),
    media_type: str = typer.Option("all", "--type", help="Media type filter"),
    age: str = typer.Option("all", help="Age-appropriate filter: all, true or false"),
    style: UIStyle = style_option,
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging verbosity."),
) -> None:
    """Print a grade's curriculum with the viewer's watched marks."""

    config = initialize_app()
    _prepare_logging(config.storage_root, log_level)

    viewer = _resolve_user(config, user) if user else None
    with CatalogApiClient.from_config(config) as api:
        session = CatalogSession(
            CurriculumLoader.from_config(config, api),
            ProgressStore.from_config(config, api),
            viewer=viewer,
        )
        session.init(grade)
        if category:
            try:
                session.select_category(category)
            except KeyError as error:
                raise typer.BadParameter(str(error), param_hint="--category") from error
        session.set_filters(MediaFilters.parse(media_type, age))
        if style is UIStyle.MODERN:
            ModernUI(session).run(query)
        else:
            ConsoleUI(session, write=typer.echo).run(query)


@cli.command("lesson-plan")
def lesson_plan(
    grade: str = typer.Argument(..., help="Grade containing the media"),
    title: str = typer.Argument(..., help="Media title"),
    output: Optional[Path] = typer.Option(None, help="Write the plan to this file"),
) -> None:
    """Print a lesson plan for a media item."""

    config = initialize_app()
    _prepare_logging(config.storage_root, "WARNING")

    with CatalogApiClient.from_config(config) as api:
        tree = CurriculumLoader.from_config(config, api).load_grade(grade)

    wanted = title.strip().lower()
    for _category, topic in tree.iter_topics():
        for media in topic.media:
            if media.title.lower() == wanted:
                text = format_lesson_plan(generate_lesson_plan(media, topic))
                if output is None:
                    typer.echo(text)
                else:
                    output.write_text(text, encoding="utf-8")
                    typer.echo(f"Lesson plan saved to: {output}")
                return

    typer.echo(f"No media titled '{title}' in grade {grade}.", err=True)
    raise typer.Exit(code=1)


@cli.command()
def credit(
    media_id: int = typer.Argument(..., help="Catalog id of the media"),
    user: str = typer.Option(..., help="Teacher or admin user id giving credit"),
    unwatch: bool = typer.Option(False, "--unwatch", help="Remove credit instead of giving it"),
) -> None:
    """Mark a media item watched (or unwatched) for every student."""

    config = initialize_app()
    _prepare_logging(config.storage_root, "WARNING")

    actor = _resolve_user(config, user)
    with CatalogApiClient.from_config(config) as api:
        workflow = ModerationWorkflow(
            api,
            ProgressStore.from_config(config, api),
            CurriculumLoader.from_config(config, api),
        )
        try:
            outcome = workflow.bulk_credit(actor, {"id": media_id}, watched=not unwatch)
        except ModerationError as error:
            typer.echo(str(error), err=True)
            raise typer.Exit(code=1) from error

    if outcome.degraded:
        reason = outcome.failure.describe() if outcome.failure else "unknown failure"
        typer.echo(f"Backend unavailable ({reason}); only {actor.user_id} was updated.")
        raise typer.Exit(code=2)
    typer.echo(f"Updated {outcome.students_updated} students.")


@cli.command("export-reports")
def export_reports(
    output_dir: Path = typer.Option(Path("."), help="Directory for the digest file"),
) -> None:
    """Write pending media reports to a plain-text digest."""

    config = initialize_app()
    _prepare_logging(config.storage_root, "WARNING")

    repository = CatalogRepository(config)
    rows = repository.pending_report_details()
    digest = format_report_digest(rows, generated_at=datetime.now(timezone.utc).isoformat())
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / build_export_name("media-reports")
    target.write_text(digest, encoding="utf-8")
    typer.echo(f"Exported {len(rows)} pending reports to: {target}")


if __name__ == "__main__":
    cli()
