# src/toons_library/queue_stats.py
"""
Point-in-time progress for the tracked ("crop") skills of one character.

Training is linear between a queue entry's start and finish dates, so a single
snapshot of the queue is enough to know how many skill points have been earned
right now, without polling.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AbstractSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict

lib_logger = logging.getLogger("toons_library")

# Skills whose points count towards extraction.
CROP_SKILLS = frozenset({3412, 3551, 13278, 21718, 25739, 25810, 25811})

# Skill points consumed by one extraction.
EXTRACTION_THRESHOLD = 500_000


class QueuedSkill(BaseModel):
    """
    One entry of /characters/{id}/skillqueue/.

    start_date and finish_date are omitted by ESI while the queue is paused.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    skill_id: int
    queue_position: int
    finished_level: int
    start_date: Optional[datetime] = None
    finish_date: Optional[datetime] = None
    training_start_sp: int = 0
    level_start_sp: int = 0
    level_end_sp: int = 0


@dataclass
class ProgressStat:
    name: str
    total_points: int = 0
    is_training: bool = False
    queued_count: int = 0

    @property
    def extractions(self) -> float:
        return self.total_points / EXTRACTION_THRESHOLD


@dataclass(frozen=True)
class QueueContribution:
    training: bool = False
    queued: bool = False
    points: int = 0


def extraction_count(points: int) -> int:
    return points // EXTRACTION_THRESHOLD


def _timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def classify_entry(
    entry: QueuedSkill,
    now: datetime,
    tracked_skill_ids: AbstractSet[int] = CROP_SKILLS,
) -> QueueContribution:
    """
    Decide what one queue entry contributes at `now`.

    - untracked skill: nothing
    - not started (or paused queue): queued, 0 points
    - finished: level_end_sp - training_start_sp
    - training: that amount scaled by elapsed/total time, truncated
    A zero or negative duration counts as finished once started.
    """
    if entry.skill_id not in tracked_skill_ids:
        return QueueContribution()

    if entry.start_date is None or entry.finish_date is None:
        return QueueContribution(queued=True)

    now_ts = _timestamp(now)
    start = _timestamp(entry.start_date)
    finish = _timestamp(entry.finish_date)
    if start >= now_ts:
        return QueueContribution(queued=True)

    trainable = max(0, entry.level_end_sp - entry.training_start_sp)
    if now_ts > finish or finish <= start:
        lib_logger.debug(f"Skill {entry.skill_id} trained: {trainable} SP")
        return QueueContribution(points=trainable)

    # Value between 0.0 and 1.0: progress through the level in training.
    pct = (now_ts - start) / (finish - start)
    points = int(trainable * pct)
    lib_logger.debug(f"Skill {entry.skill_id} training: {pct:.4f} * {trainable} SP = {points}")
    return QueueContribution(training=True, points=points)


def aggregate(
    entries: Iterable[QueuedSkill],
    now: datetime,
    tracked_skill_ids: AbstractSet[int] = CROP_SKILLS,
    name: str = "",
) -> ProgressStat:
    stat = ProgressStat(name=name)
    for entry in entries:
        contribution = classify_entry(entry, now, tracked_skill_ids)
        if contribution.training:
            stat.is_training = True
        if contribution.queued:
            stat.queued_count += 1
        stat.total_points += contribution.points
    return stat


def trained_points(skills: Iterable, tracked_skill_ids: AbstractSet[int] = CROP_SKILLS) -> int:
    """Sum skillpoints_in_skill over already trained tracked skills."""
    return sum(
        skill.skillpoints_in_skill
        for skill in skills
        if skill.skill_id in tracked_skill_ids
    )
