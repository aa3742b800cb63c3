"""``tagged-tasks`` command-line entry point.

A thin layer over ``TaskStore``: it parses arguments, runs one operation and
prints the JSON response envelope.

Examples:
    tagged-tasks move --from 5 --to 7
    tagged-tasks move --from 3.2 --to 9 --tag feature
    tagged-tasks move-tags 1,2 --from-tag backlog --to-tag in-progress --with-dependencies
    tagged-tasks validate-deps --tag backlog
"""

import logging
from pathlib import Path
from typing import Optional

import click

from tagged_tasks.cli.output import emit_error, emit_exception, emit_success
from tagged_tasks.config import StoreConfig, set_config
from tagged_tasks.core.errors import TaskStoreError
from tagged_tasks.core.models import InvalidTaskIdError
from tagged_tasks.core.move import MoveRequest
from tagged_tasks.core.service import TaskStore

logger = logging.getLogger(__name__)


def _store(ctx: click.Context) -> TaskStore:
    return ctx.obj["store"]


@click.group()
@click.option(
    "--file",
    "-f",
    "tasks_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Tasks file (default from config: .taskmaster/tasks/tasks.json).",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, exists=True),
    help="TOML config file to load instead of the default locations.",
)
@click.option("--log-level", help="Override the configured log level.")
@click.pass_context
def cli(
    ctx: click.Context,
    tasks_file: Optional[Path],
    config_file: Optional[str],
    log_level: Optional[str],
) -> None:
    """Manage tagged task files."""
    config = StoreConfig.from_env(config_file)
    if log_level:
        config.log_level = log_level.upper()
    config.setup_logging()
    set_config(config)
    ctx.ensure_object(dict)
    ctx.obj["store"] = TaskStore(tasks_file, config=config)


@cli.command("move")
@click.option("--from", "from_ids", required=True, help="Source ID(s), comma separated (e.g. 5 or 3.2,4).")
@click.option("--to", "to_ids", required=True, help="Destination ID(s), one per source ID.")
@click.option("--tag", help="Tag to move within (default: active tag).")
@click.option("--overwrite", is_flag=True, help="Replace an item already holding a destination ID.")
@click.pass_context
def move_cmd(ctx: click.Context, from_ids: str, to_ids: str, tag: Optional[str], overwrite: bool) -> None:
    """Move, renumber, promote or demote tasks within one tag."""
    store = _store(ctx)
    try:
        result = store.move_tasks(from_ids, source_tag=tag, new_ids=to_ids, allow_overwrite=overwrite)
    except (TaskStoreError, InvalidTaskIdError) as exc:
        emit_exception(exc)
    emit_success(result.to_dict(), warnings=result.warnings)


@cli.command("move-tags")
@click.argument("task_ids")
@click.option("--from-tag", required=True, help="Tag the tasks currently belong to.")
@click.option("--to-tag", required=True, help="Tag to move the tasks into.")
@click.option("--with-dependencies", is_flag=True, help="Move dependencies along with the tasks.")
@click.option("--ignore-dependencies", is_flag=True, help="Drop dependency edges that would cross tags.")
@click.option("--create-tag", is_flag=True, help="Create the destination tag if it does not exist.")
@click.pass_context
def move_tags_cmd(
    ctx: click.Context,
    task_ids: str,
    from_tag: str,
    to_tag: str,
    with_dependencies: bool,
    ignore_dependencies: bool,
    create_tag: bool,
) -> None:
    """Move TASK_IDS (comma separated) from one tag to another."""
    store = _store(ctx)
    try:
        request = MoveRequest.create(
            task_ids,
            from_tag,
            to_tag,
            with_dependencies=with_dependencies,
            ignore_dependencies=ignore_dependencies,
            create_destination=create_tag,
        )
        result = store.move(request)
    except (TaskStoreError, InvalidTaskIdError) as exc:
        emit_exception(exc)
    emit_success(result.to_dict(), warnings=result.warnings)


@cli.command("validate-deps")
@click.option("--tag", help="Tag to check (default: active tag).")
@click.pass_context
def validate_deps_cmd(ctx: click.Context, tag: Optional[str]) -> None:
    """Report invalid dependency edges and cycles."""
    try:
        report = _store(ctx).validate_dependencies(tag)
    except TaskStoreError as exc:
        emit_exception(exc)
    emit_success(report.to_dict())


@cli.command("fix-deps")
@click.option("--tag", help="Tag to fix (default: active tag).")
@click.pass_context
def fix_deps_cmd(ctx: click.Context, tag: Optional[str]) -> None:
    """Remove missing, self-referencing and duplicate dependency edges."""
    try:
        report = _store(ctx).fix_dependencies(tag)
    except TaskStoreError as exc:
        emit_exception(exc)
    data = report.to_dict()
    data["removed"] = len(report.issues)
    emit_success(data)


@cli.command("use-tag")
@click.argument("name")
@click.pass_context
def use_tag_cmd(ctx: click.Context, name: str) -> None:
    """Make NAME the active tag."""
    if not name.strip():
        emit_error(
            "Tag name must not be empty",
            code="VALIDATION_ERROR",
            error_type="validation",
            remediation="Pass the name of an existing tag",
        )
    try:
        active = _store(ctx).use_tag(name)
    except TaskStoreError as exc:
        emit_exception(exc)
    emit_success({"current_tag": active})


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
