"""Detection Service — runs all detectors for a project and persists the suggestions.

Invariants:
    - Detectors run in parallel worker threads over one immutable snapshot
    - Corroboration and persistence run on the event loop, one chunk per source table,
      one commit per chunk: a timeout leaves whole tables persisted, never half a table
    - A candidate with a stale reference is dropped with a warning; the run continues
    - Re-running on an unchanged schema leaves ids, scores and statuses unchanged
    - Every run leaves a DetectionRun row (COMPLETED or FAILED), whatever the failure
    - candidate_count counts SUGGESTED rows inserted or refreshed; curated
      (CONFIRMED or REJECTED) rows that were re-detected are counted as skipped

Design Decisions:
    - DETECTORS is a plain ordered tuple: adding a detector is one line, there is
      no registry or plugin discovery
    - asyncio.to_thread over a process pool: detectors are light and share the snapshot
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import groupby

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.config import Settings, get_settings
from schemalink.core.candidates import Candidate, CorroboratedCandidate, DetectorOutput
from schemalink.core.corroborate import corroborate
from schemalink.core.detect_name_convention import detect_name_convention
from schemalink.core.detect_sp_join import detect_sp_join
from schemalink.core.domain_types import DETECTION_ALGORITHM_VERSION, RunStatus
from schemalink.core.errors import InvalidReferenceError, UniquenessConflictError
from schemalink.core.repository_protocols import SchemaRegistry
from schemalink.models.detection_run import DetectionRun
from schemalink.services.entity_registry import EntityRegistry
from schemalink.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)

DETECTORS = (
    ("name_convention", detect_name_convention),
    ("sp_join", detect_sp_join),
)


@dataclass
class DetectionResult:
    run_id: int
    candidate_count: int = 0
    created_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    warnings: list[str] = field(default_factory=list)


class DetectionService:
    """Orchestrates snapshot → detectors → corroboration → store."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        registry: SchemaRegistry | None = None,
        store: RelationshipStore | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.registry = registry or EntityRegistry(db)
        self.store = store or RelationshipStore(db)

    async def detect_candidates(
        self, project_id: int, actor_id: int | None = None,
    ) -> DetectionResult:
        started = time.monotonic()
        run = DetectionRun(
            project_id=project_id,
            algorithm_version=DETECTION_ALGORITHM_VERSION,
            status=RunStatus.RUNNING.value,
            started_by=actor_id,
        )
        self.db.add(run)
        await self.db.commit()
        result = DetectionResult(run_id=run.id)

        try:
            snapshot = await self.registry.load_snapshot(project_id)
            config = self.settings.detection_config(project_id)
            outputs = await asyncio.gather(*(
                asyncio.to_thread(detector, snapshot, config)
                for _, detector in DETECTORS
            ))
            candidates = self._collect(project_id, outputs, result)
            merged = corroborate(candidates, config.corroboration_bonus)
            await self._persist(project_id, merged, result)
        except Exception:
            await self.db.rollback()
            run = await self.db.get(DetectionRun, result.run_id, populate_existing=True)
            await self._finish(run, result, RunStatus.FAILED)
            raise

        await self._finish(run, result, RunStatus.COMPLETED)
        logger.info(
            f"Detection run {run.id} finished: {result.candidate_count} candidates",
            extra={
                "project_id": project_id,
                "candidate_count": result.candidate_count,
                "created_count": result.created_count,
                "updated_count": result.updated_count,
                "skipped_count": result.skipped_count,
                "warning_count": len(result.warnings),
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return result

    async def latest_run(self, project_id: int) -> DetectionRun | None:
        rows = await self.db.execute(
            select(DetectionRun)
            .where(DetectionRun.project_id == project_id)
            .order_by(DetectionRun.id.desc())
            .limit(1),
        )
        return rows.scalar_one_or_none()

    def _collect(
        self, project_id: int, outputs: list[DetectorOutput], result: DetectionResult,
    ) -> list[Candidate]:
        candidates: list[Candidate] = []
        for (name, _), output in zip(DETECTORS, outputs):
            logger.debug(
                f"Detector {name} produced {len(output.candidates)} candidates",
                extra={"project_id": project_id, "detector": name},
            )
            candidates.extend(output.candidates)
            result.warnings.extend(output.warnings)
        return candidates

    async def _persist(
        self,
        project_id: int,
        merged: list[CorroboratedCandidate],
        result: DetectionResult,
    ) -> None:
        ordered = sorted(merged, key=lambda c: c.source_table_id)
        for _, chunk in groupby(ordered, key=lambda c: c.source_table_id):
            for candidate in chunk:
                try:
                    outcome = await self.store.upsert_logical_fk(project_id, candidate)
                except (InvalidReferenceError, UniquenessConflictError) as e:
                    result.warnings.append(e.message)
                    continue
                if not outcome.is_suggestion:
                    result.skipped_count += 1
                    continue
                result.candidate_count += 1
                if outcome.created:
                    result.created_count += 1
                else:
                    result.updated_count += 1
            await self.db.commit()

    async def _finish(
        self, run: DetectionRun, result: DetectionResult, status: RunStatus,
    ) -> None:
        run.status = status.value
        run.candidates_found = result.candidate_count
        run.created_count = result.created_count
        run.updated_count = result.updated_count
        run.skipped_count = result.skipped_count
        run.warnings = list(result.warnings)
        run.finished_at = datetime.now(timezone.utc)
        self.db.add(run)
        await self.db.commit()
