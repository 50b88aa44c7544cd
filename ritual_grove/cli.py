"""Command-line entry point.

Usage::

    ritual-grove create rituals/blog ./my-blog --answers answers.yaml
    ritual-grove create rituals/blog ./my-blog --defaults --save-answers .ritual/answers.yaml
    ritual-grove migrate rituals/blog ./my-blog --direction up --sqlite app.db
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Optional

from rich.panel import Panel

from ritual_grove.config import GeneratorConfig
from ritual_grove.errors import AnswerValidationError, RitualError
from ritual_grove.generator.files import FileGenerator
from ritual_grove.generator.variables import Variables
from ritual_grove.manifest import Manifest, QuestionType
from ritual_grove.migration.runner import MigrationRunner, connection_executor
from ritual_grove.questionnaire.controller import Controller
from ritual_grove.questionnaire.persistence import AnswerPersistence
from ritual_grove.questionnaire.prompts import AnswerCollector
from ritual_grove.utils import (
    console,
    load_answers,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    setup_logging,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ritual-grove",
        description="Generate projects from declarative rituals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", default=None, help="JSON configuration file (default: from environment)")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Answer a ritual's questions and generate a project")
    create.add_argument("ritual", help="Path to the ritual directory")
    create.add_argument("output", help="Directory the project is generated into")
    create.add_argument("--answers", "-a", default=None, help="YAML/JSON file with pre-supplied answers")
    create.add_argument("--defaults", action="store_true", help="Accept defaults without prompting")
    create.add_argument("--save-answers", default=None, help="Write the collected answers (secrets masked)")

    migrate = sub.add_parser("migrate", help="Run a ritual's migrations against a project")
    migrate.add_argument("ritual", help="Path to the ritual directory")
    migrate.add_argument("project", help="Project directory scripts run in")
    migrate.add_argument("--direction", choices=["up", "down"], default="up")
    migrate.add_argument("--dry-run", action="store_true", help="Record migrations without executing them")
    migrate.add_argument("--sqlite", default=None, help="SQLite database SQL statements are executed against")
    return parser


def cmd_create(args: argparse.Namespace, config: GeneratorConfig) -> None:
    manifest = Manifest.load(args.ritual)
    answers = load_answers(args.answers) if args.answers else {}

    controller = Controller(manifest.questions)
    collected = AnswerCollector(controller, answers, use_defaults=args.defaults, console=console).collect()
    missing = controller.missing_required()
    if missing:
        raise AnswerValidationError(missing[0], f"unanswered required questions: {', '.join(missing)}")

    variables = Variables()
    if config.env_prefix:
        variables.set_from_environment(config.env_prefix)
    variables.set_from_answers(collected)
    variables.add_computed()

    secrets = [q.name for q in manifest.questions if q.type is QuestionType.PASSWORD]
    logger.debug("Variables: %s", variables.mask_secrets(secrets))

    generator = FileGenerator(variables, config)
    written = generator.generate_files(manifest, args.ritual, args.output)

    if args.save_answers:
        AnswerPersistence(args.save_answers).save_with_secrets(collected, secrets)

    if not written:
        print_warning("No files were written.")

    print_summary_table(
        {
            "Ritual": manifest.ritual.name or args.ritual,
            "Output": args.output,
            "Answers": len(collected),
            "Files written": len(written),
        },
        title="Generation",
    )
    print_success("Project generated.")


def cmd_migrate(args: argparse.Namespace, config: GeneratorConfig) -> None:
    manifest = Manifest.load(args.ritual)
    migrations = list(manifest.migrations)
    for migration in migrations:
        MigrationRunner.validate_migration(migration)
    if args.direction == "down":
        migrations.reverse()

    connection: Optional[sqlite3.Connection] = sqlite3.connect(args.sqlite) if args.sqlite else None
    try:
        runner = MigrationRunner(
            args.project,
            dry_run=args.dry_run or config.dry_run,
            sql_executor=connection_executor(connection) if connection is not None else None,
        )
        try:
            runner.run_chain(migrations, args.direction)
        finally:
            for record in runner.get_records():
                console.print(
                    f"  {record.from_version} -> {record.to_version}  "
                    f"[bold]{record.status.value}[/bold]"
                    + (f"  [red]{record.error}[/red]" if record.error else "")
                )
    finally:
        if connection is not None:
            connection.close()

    print_success(f"{len(runner.get_records())} migration(s) processed.")


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for ``ritual-grove``."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = GeneratorConfig.load(Path(args.config)) if args.config else GeneratorConfig.from_env()
        console.print(Panel(f"[bold]ritual-grove {args.command}[/bold]", style="cyan"))
        if args.command == "create":
            cmd_create(args, config)
        else:
            cmd_migrate(args, config)
    except (RitualError, FileNotFoundError) as exc:
        print_error(f"Error: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
