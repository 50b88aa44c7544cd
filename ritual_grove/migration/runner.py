"""Sequencing and recording of ritual version migrations.

The runner never talks to a database or the OS directly: SQL statements,
scripts and inline code are handed to injected collaborators.  What it owns
is the order of execution and an append-only log with exactly one
``MigrationRecord`` per attempted step.

``run_chain(..., "down")`` executes migrations in the order given.  Callers
must pass the list already reversed (newest first); the runner does not
reorder it.
"""

from __future__ import annotations

import logging
import stat
import subprocess
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, Field

from ritual_grove.errors import ConfigurationError, MigrationError
from ritual_grove.manifest import Migration, MigrationHandler

logger = logging.getLogger(__name__)

SQLExecutor = Callable[[str], None]
ScriptRunner = Callable[[Path, Path], None]
CodeRunner = Callable[[str], None]

DIRECTIONS = ("up", "down")


class MigrationStatus(str, Enum):
    PENDING = "pending"
    APPLIED = "applied"
    ROLLED_BACK = "rolledback"
    SKIPPED = "skipped"
    FAILED = "failed"


class MigrationRecord(BaseModel):
    """Outcome of one migration attempt."""
    from_version: str
    to_version: str
    description: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    error: Optional[str] = None
    applied_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class _StepFailure(Exception):
    pass


def run_script(script: Path, cwd: Path) -> None:
    """Run *script* as a blocking subprocess inside *cwd*.

    The script is made executable first.  There is no timeout.

    Raises:
        subprocess.CalledProcessError: If the script exits non-zero.
    """
    mode = script.stat().st_mode
    script.chmod(mode | stat.S_IXUSR | stat.S_IXGRP)
    subprocess.run([str(script)], cwd=str(cwd), check=True, capture_output=True, text=True)


def connection_executor(connection: Any) -> SQLExecutor:
    """Adapt a DB-API connection into a statement executor that commits."""

    def execute(statement: str) -> None:
        connection.execute(statement)
        connection.commit()

    return execute


class MigrationRunner:
    """Executes migrations forward or backward and records every attempt.

    Args:
        project_path: Directory scripts are resolved against and run in.
        dry_run: Record steps as skipped without executing anything.
        sql_executor: Executes one SQL statement.  Without one, statements
            are only checked for emptiness.
        script_runner: ``(script_path, cwd) -> None``; defaults to
            :func:`run_script`.
        code_runner: Executes inline migration code.  Without one, a step
            with inline code fails.
    """

    def __init__(
        self,
        project_path: str | Path,
        *,
        dry_run: bool = False,
        sql_executor: Optional[SQLExecutor] = None,
        script_runner: Optional[ScriptRunner] = None,
        code_runner: Optional[CodeRunner] = None,
    ) -> None:
        self.project_path = Path(project_path)
        self.dry_run = dry_run
        self.sql_executor = sql_executor
        self.script_runner = script_runner or run_script
        self.code_runner = code_runner
        self._records: list[MigrationRecord] = []

    # -- Validation ---------------------------------------------------------------

    @staticmethod
    def validate_migration(migration: Migration) -> None:
        """Check a migration's handlers before it is run.

        Raises:
            ConfigurationError: If ``up`` is empty, a non-idempotent migration
                lacks ``down``, or a handler mixes several kinds.
        """
        label = f"{migration.from_version}->{migration.to_version}"
        if migration.up.is_empty():
            raise ConfigurationError(f"migration {label} has no up handler")
        if not migration.idempotent and migration.down.is_empty():
            raise ConfigurationError(f"non-idempotent migration {label} requires a down handler")
        for direction, handler in (("up", migration.up), ("down", migration.down)):
            if len(handler.kinds()) > 1:
                raise ConfigurationError(
                    f"migration {label} {direction} handler defines more than one of "
                    f"{', '.join(handler.kinds())}"
                )

    # -- Execution ----------------------------------------------------------------

    def run_up(self, migration: Migration) -> MigrationRecord:
        """Apply *migration*.

        Raises:
            MigrationError: If the step failed (after recording it).
        """
        return self._run(
            migration.up,
            from_version=migration.from_version,
            to_version=migration.to_version,
            description=migration.description,
            success=MigrationStatus.APPLIED,
            direction="up",
        )

    def run_down(self, migration: Migration) -> MigrationRecord:
        """Roll *migration* back.  The record shows the versions swapped."""
        return self._run(
            migration.down,
            from_version=migration.to_version,
            to_version=migration.from_version,
            description=f"Rollback: {migration.description}",
            success=MigrationStatus.ROLLED_BACK,
            direction="down",
        )

    def run_chain(self, migrations: Iterable[Migration], direction: str) -> list[MigrationRecord]:
        """Run *migrations* in the given order, stopping at the first failure.

        For ``"down"`` the list must already be in rollback order.

        Raises:
            ConfigurationError: For an unknown direction (nothing is run).
            MigrationError: At the first failed step.
        """
        if direction not in DIRECTIONS:
            raise ConfigurationError(f"invalid direction: {direction} (must be 'up' or 'down')")

        step = self.run_up if direction == "up" else self.run_down
        records: list[MigrationRecord] = []
        for migration in migrations:
            try:
                records.append(step(migration))
            except MigrationError as exc:
                raise MigrationError(
                    exc.from_version,
                    exc.to_version,
                    f"migration chain failed at {migration.from_version}->{migration.to_version}: {exc}",
                ) from exc
        return records

    # -- Record log ---------------------------------------------------------------

    def get_records(self) -> list[MigrationRecord]:
        return list(self._records)

    def get_applied_migrations(self) -> list[MigrationRecord]:
        return [r for r in self._records if r.status is MigrationStatus.APPLIED]

    def get_failed_migrations(self) -> list[MigrationRecord]:
        return [r for r in self._records if r.status is MigrationStatus.FAILED]

    # -- Internals ----------------------------------------------------------------

    def _run(
        self,
        handler: MigrationHandler,
        *,
        from_version: str,
        to_version: str,
        description: str,
        success: MigrationStatus,
        direction: str,
    ) -> MigrationRecord:
        record = MigrationRecord(from_version=from_version, to_version=to_version, description=description)
        self._records.append(record)

        if self.dry_run:
            record.status = MigrationStatus.SKIPPED
            logger.info("Dry run: skipping %s migration %s -> %s", direction, from_version, to_version)
            return record

        try:
            self._execute(handler)
        except _StepFailure as exc:
            record.status = MigrationStatus.FAILED
            record.error = str(exc)
            logger.error("%s migration %s -> %s failed: %s", direction, from_version, to_version, exc)
            raise MigrationError(from_version, to_version, f"{direction} migration failed: {exc}") from exc.__cause__

        record.status = success
        logger.info("%s migration %s -> %s: %s", direction, from_version, to_version, success.value)
        return record

    def _execute(self, handler: MigrationHandler) -> None:
        kinds = handler.kinds()
        if not kinds:
            raise _StepFailure("migration handler is empty")
        if len(kinds) > 1:
            raise _StepFailure(f"migration handler defines more than one of {', '.join(kinds)}")

        if handler.sql:
            self._execute_sql(handler.sql)
        elif handler.script:
            self._execute_script(handler.script)
        else:
            self._execute_code(handler.code)

    def _execute_sql(self, statements: list[str]) -> None:
        for statement in statements:
            if not statement.strip():
                raise _StepFailure("empty SQL statement")
            if self.sql_executor is None:
                logger.debug("No SQL executor configured; not executing: %s", statement)
                continue
            try:
                self.sql_executor(statement)
            except Exception as exc:
                raise _StepFailure(f"SQL execution failed: {exc}") from exc

    def _execute_script(self, script: str) -> None:
        full_path = self.project_path / script
        if not full_path.is_file():
            raise _StepFailure(f"script not found: {script}")
        try:
            self.script_runner(full_path, self.project_path)
        except subprocess.CalledProcessError as exc:
            output = (exc.stderr or "").strip() if isinstance(exc.stderr, str) else ""
            detail = f": {output}" if output else ""
            raise _StepFailure(f"script execution failed: {exc}{detail}") from exc
        except Exception as exc:
            raise _StepFailure(f"script execution failed: {exc}") from exc

    def _execute_code(self, code: str) -> None:
        if self.code_runner is None:
            raise _StepFailure("inline code execution is not supported without a code runner")
        try:
            self.code_runner(code)
        except Exception as exc:
            raise _StepFailure(f"code execution failed: {exc}") from exc
