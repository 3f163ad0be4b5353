"""Visit analytics for the membership card.

Pure computation over a member's visit history: no database or network
access, so every rule here is directly testable.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from app.core.clock import as_utc
from app.visit.models import VisitRecord

DEFAULT_PROFILE_NAME = "Member"
RECENT_VISIT_COUNT = 2


@dataclass(frozen=True)
class MembershipProfile:
    name: str = DEFAULT_PROFILE_NAME
    avatar_url: str = ""


@dataclass(frozen=True)
class RecentVisit:
    date: datetime
    store_name: str


@dataclass(frozen=True)
class MembershipStats:
    total_visits: int
    favorite_store_id: str | None
    favorite_store_name: str | None
    visits_by_store: dict[str, int]
    recent_visits: tuple[RecentVisit, ...]


@dataclass(frozen=True)
class MembershipCharts:
    companion_industry: dict[str, int] = field(default_factory=dict)
    companion_job_type: dict[str, int] = field(default_factory=dict)
    visit_purpose: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MembershipCard:
    profile: MembershipProfile
    stats: MembershipStats
    charts: MembershipCharts


def count_labels(labels: Iterable[str | None]) -> dict[str, int]:
    """Frequency of each non-empty label, most frequent first."""
    counter = Counter(label for label in labels if label)
    return dict(counter.most_common())


def _newest_first(visits: Iterable[VisitRecord]) -> list[VisitRecord]:
    return sorted(visits, key=lambda v: as_utc(v.check_in_at), reverse=True)


class AnalyticsAggregator:
    """Builds the membership card view from visit records."""

    def __init__(self, recent_count: int = RECENT_VISIT_COUNT):
        self._recent_count = recent_count

    def build_membership_card(
        self,
        visits: Sequence[VisitRecord],
        profile: MembershipProfile | None = None,
    ) -> MembershipCard:
        return MembershipCard(
            profile=profile or MembershipProfile(),
            stats=self.build_stats(visits),
            charts=self.build_charts(visits),
        )

    def build_stats(self, visits: Sequence[VisitRecord]) -> MembershipStats:
        ordered = _newest_first(visits)
        visits_by_store = dict(Counter(v.store_id for v in ordered))
        favorite_id = self.favorite_store(ordered)
        favorite_name = next(
            (v.store_name for v in ordered if v.store_id == favorite_id), None
        )
        return MembershipStats(
            total_visits=len(ordered),
            favorite_store_id=favorite_id,
            favorite_store_name=favorite_name,
            visits_by_store=visits_by_store,
            recent_visits=tuple(
                RecentVisit(date=as_utc(v.check_in_at), store_name=v.store_name)
                for v in ordered[: self._recent_count]
            ),
        )

    @staticmethod
    def favorite_store(visits: Iterable[VisitRecord]) -> str | None:
        """Most visited store id.

        Ties go to the store visited most recently, then to the lowest store
        id. None when there are no visits.
        """
        counts: Counter[str] = Counter()
        latest: dict[str, datetime] = {}
        for visit in visits:
            counts[visit.store_id] += 1
            check_in_at = as_utc(visit.check_in_at)
            if visit.store_id not in latest or check_in_at > latest[visit.store_id]:
                latest[visit.store_id] = check_in_at
        if not counts:
            return None
        # max() keeps the first of equal keys, so iterate ids in ascending order.
        return max(sorted(counts), key=lambda s: (counts[s], latest[s]))

    @staticmethod
    def build_charts(visits: Sequence[VisitRecord]) -> MembershipCharts:
        surveys = [v.survey for v in visits if v.survey is not None]
        return MembershipCharts(
            companion_industry=count_labels(
                label for s in surveys for label in s.companion_industries
            ),
            companion_job_type=count_labels(
                label for s in surveys for label in s.companion_job_types
            ),
            visit_purpose=count_labels(s.visit_purpose for s in surveys),
        )
