#!/usr/bin/env python3
"""
Migration Orchestrator
======================

Drives one v3 -> v4 run as strictly sequential passes:

    guild -> category -> ticket (archived channels, roles, users, messages)

Each row goes through its entity migrator on its own. A failing row is
logged with its entity type and source id and the pass carries on; a bad
record never halts the run. A stop request is only honoured between rows.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Type

from core.errors import RecordMigrationError
from core.migrators import MIGRATORS, EntityMigrator, MigrationOutcome, OutcomeStatus
from core.resolver import ReferenceResolver
from core.source_reader import LegacySource
from core.target_store import TargetStore

logger = logging.getLogger(__name__)


@dataclass
class EntityStats:
    attempted: int = 0
    migrated: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class MigrationReport:
    """Outcome of a run: per-entity counts plus every contained failure"""
    entities: Dict[str, EntityStats] = field(default_factory=OrderedDict)
    failures: List[RecordMigrationError] = field(default_factory=list)
    interrupted: bool = False
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    def stats(self, entity: str) -> EntityStats:
        if entity not in self.entities:
            self.entities[entity] = EntityStats()
        return self.entities[entity]

    def failures_for(self, entity: str) -> List[RecordMigrationError]:
        return [failure for failure in self.failures if failure.entity == entity]

    @property
    def duration(self) -> float:
        return (self.finished_at or time.time()) - self.started_at

    def summary_lines(self) -> List[str]:
        lines = []
        for entity, stats in self.entities.items():
            lines.append(f"  {entity:<10} migrated: {stats.migrated:<6} skipped: {stats.skipped:<6} "
                         f"failed: {stats.failed}")
        lines.append(f"  Failures: {len(self.failures)}")
        lines.append(f"  Duration: {self.duration:.1f}s")
        if self.interrupted:
            lines.append("  Run was interrupted before all rows were visited")
        return lines


class MigrationOrchestrator:
    """Runs every entity pass in dependency order"""

    def __init__(self, source: LegacySource, store: TargetStore,
                 resolver: Optional[ReferenceResolver] = None,
                 migrators: Optional[Iterable[Type[EntityMigrator]]] = None):
        self.source = source
        self.store = store
        self.resolver = resolver or ReferenceResolver(store)
        self.migrators = [cls(source, store, self.resolver) for cls in (migrators or MIGRATORS)]
        self._stop_requested = False

    def request_stop(self):
        """Stop after the row currently being migrated"""
        if not self._stop_requested:
            logger.warning("Stop requested; finishing the current record")
        self._stop_requested = True

    def run(self) -> MigrationReport:
        report = MigrationReport()
        logger.info("Starting migration")

        for migrator in self.migrators:
            report.stats(migrator.entity)
            self._run_pass(migrator, report)
            if self._stop_requested:
                report.interrupted = True
                break

        report.finished_at = time.time()
        logger.info(f"Migration finished with {len(report.failures)} failed records")
        if report.interrupted:
            self._flush_logs()
        return report

    def _run_pass(self, migrator: EntityMigrator, report: MigrationReport):
        stats = report.stats(migrator.entity)
        for row in migrator.source_rows():
            if self._stop_requested:
                return
            self.migrate_row(migrator, row, report)
        logger.debug(f"Finished {migrator.entity} pass: {stats}")

    def migrate_row(self, migrator: EntityMigrator, row: Dict[str, Any],
                    report: MigrationReport) -> Optional[MigrationOutcome]:
        """Migrate one row, containing any failure to that row"""
        stats = report.stats(migrator.entity)
        source_id = migrator.record_id(row)
        stats.attempted += 1
        logger.info(f"Migrating {migrator.entity} {source_id}...")

        try:
            outcome = migrator.migrate(row)
        except Exception as e:
            failure = RecordMigrationError(migrator.entity, source_id, e)
            stats.failed += 1
            report.failures.append(failure)
            logger.error(failure.message)
            logger.debug(f"{migrator.entity} {source_id} failure detail", exc_info=True)
            return None

        if outcome.status is OutcomeStatus.SKIPPED:
            stats.skipped += 1
            logger.info(f"Skipped {migrator.entity} {source_id}: {outcome.detail}")
        else:
            stats.migrated += 1
            migrator.register(row, outcome)
        return outcome

    def _flush_logs(self):
        for handler in logging.getLogger().handlers:
            handler.flush()
