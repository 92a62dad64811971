# src/toons_library/stats_orchestrator.py

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AbstractSet, Callable, Iterable, List, Optional

from .credential_store import CredentialRecord, CredentialStore
from .error_handler import RemoteApiError
from .esi_client import EsiClient
from .queue_stats import CROP_SKILLS, ProgressStat, aggregate, extraction_count, trained_points

lib_logger = logging.getLogger("toons_library")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StatOutcome:
    """Result of the stats pipeline for one character: a stat or the error."""

    name: str
    stat: Optional[ProgressStat] = None
    error: Optional[RemoteApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class StatsReport:
    stats: List[ProgressStat] = field(default_factory=list)
    failures: List[StatOutcome] = field(default_factory=list)

    @property
    def total_extractions(self) -> int:
        return sum(extraction_count(stat.total_points) for stat in self.stats)


def rank_stats(stats: Iterable[ProgressStat]) -> List[ProgressStat]:
    """Most points first; ties keep their input order."""
    return sorted(stats, key=lambda s: s.total_points, reverse=True)


class StatsOrchestrator:
    """
    Computes ProgressStat for many characters concurrently.

    One task per character: refresh token -> trained skills -> skill queue ->
    aggregate. A RemoteApiError only removes that character from the report.
    """

    def __init__(
        self,
        client: EsiClient,
        tracked_skill_ids: AbstractSet[int] = CROP_SKILLS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.tracked_skill_ids = tracked_skill_ids
        self._clock = clock

    async def compute_one(self, record: CredentialRecord) -> ProgressStat:
        lib_logger.info(f"Refreshing API token for {record.name}")
        tokens = await self.client.refresh(record.refresh_token)

        lib_logger.info(f"Pulling skills for {record.name}")
        skills = await self.client.get_skills(tokens, record.character_id)
        static_points = trained_points(skills.skills, self.tracked_skill_ids)

        lib_logger.info(f"Pulling queue for {record.name}")
        queue = await self.client.get_skill_queue(tokens, record.character_id)

        stat = aggregate(queue, self._clock(), self.tracked_skill_ids, name=record.name)
        stat.total_points += static_points
        return stat

    async def _outcome(self, record: CredentialRecord) -> StatOutcome:
        try:
            return StatOutcome(name=record.name, stat=await self.compute_one(record))
        except RemoteApiError as e:
            return StatOutcome(name=record.name, error=e)

    async def gather_outcomes(self, records: Iterable[CredentialRecord]) -> List[StatOutcome]:
        """One outcome per record, in record order, whatever the completion order."""
        return list(await asyncio.gather(*(self._outcome(r) for r in records)))

    async def build_report(self, records: Iterable[CredentialRecord]) -> StatsReport:
        report = StatsReport()
        stats = []
        for outcome in await self.gather_outcomes(records):
            if outcome.ok:
                stats.append(outcome.stat)
            else:
                lib_logger.error(
                    f"Skipping {outcome.name}: {outcome.error.stage} stage failed: {outcome.error}"
                )
                report.failures.append(outcome)
        report.stats = rank_stats(stats)
        return report

    async def compute_all(
        self, store: CredentialStore, identity_filter: Optional[str] = None
    ) -> List[ProgressStat]:
        """
        Ranked stats for every stored character, or the one matching
        `identity_filter` (exact name, then prefix).

        Raises:
            NotFoundError: if identity_filter matches nothing
        """
        report = await self.report_for(store, identity_filter)
        return report.stats

    async def report_for(
        self, store: CredentialStore, identity_filter: Optional[str] = None
    ) -> StatsReport:
        if identity_filter is not None:
            records = [store.require(identity_filter)]
        else:
            records = store.records()
        return await self.build_report(records)
