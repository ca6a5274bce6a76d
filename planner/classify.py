import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from planner.models import Planning

logger = logging.getLogger(__name__)


class PlanningBucket(StrEnum):
    ACTIVE = "active"
    UPCOMING = "upcoming"
    PAST = "past"


EMPTY_MESSAGES: dict[PlanningBucket, str] = {
    PlanningBucket.ACTIVE: "There are no active plannings for today",
    PlanningBucket.UPCOMING: "No upcoming plannings found",
    PlanningBucket.PAST: "No past plannings found",
}


def classify(planning: Planning, today: date) -> PlanningBucket | None:
    """
    Bucket a planning relative to ``today`` (both ends inclusive for active).

    Returns None for a planning that ends before it starts.
    """
    if planning.start_date > planning.end_date:
        return None
    if planning.start_date > today:
        return PlanningBucket.UPCOMING
    if planning.end_date < today:
        return PlanningBucket.PAST
    return PlanningBucket.ACTIVE


@dataclass(frozen=True, slots=True)
class PlanningPartition:
    active: list[Planning] = field(default_factory=list)
    upcoming: list[Planning] = field(default_factory=list)
    past: list[Planning] = field(default_factory=list)
    # start_date > end_date; kept apart instead of guessing a bucket
    invalid: list[Planning] = field(default_factory=list)

    def bucket(self, bucket: PlanningBucket) -> list[Planning]:
        return getattr(self, bucket.value)

    def counts(self) -> dict[str, int]:
        return {
            "active": len(self.active),
            "upcoming": len(self.upcoming),
            "past": len(self.past),
            "invalid": len(self.invalid),
        }


def partition(plannings: Iterable[Planning], today: date) -> PlanningPartition:
    result = PlanningPartition()
    for planning in plannings:
        bucket = classify(planning, today)
        if bucket is None:
            logger.warning(
                "planning %s ends (%s) before it starts (%s)",
                planning.id,
                planning.end_date,
                planning.start_date,
            )
            result.invalid.append(planning)
        else:
            result.bucket(bucket).append(planning)
    return result
