"""
Unmatched KPI diagnostics.

Lists KPI records that report against no BOQ activity, with the closest
activity names in the same project as suggestions. Unmatched records are a
normal steady state; this is a review aid and never feeds the report
aggregation.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from rapidfuzz import fuzz, process

from ..config import get_config
from ..domain.entities import Activity, KPIRecord
from .matching import projects_match, record_matches

logger = logging.getLogger(__name__)


# Reasons a record is unmatched
REASON_UNKNOWN_INPUT_TYPE = "unknown_input_type"
REASON_MISSING_NAME = "missing_activity_name"
REASON_NO_ACTIVITY = "no_matching_activity"


@dataclass
class NameSuggestion:
    activity_name: str
    score: float
    zone: str = ""

    def to_dict(self) -> Dict:
        return {
            'activity_name': self.activity_name,
            'score': self.score,
            'zone': self.zone,
        }


@dataclass
class UnmatchedRecord:
    """A KPI record no activity claims, plus candidate activity names."""
    index: int
    record: KPIRecord
    reason: str
    suggestions: List[NameSuggestion] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'index': self.index,
            'activity_name': self.record.activity_name,
            'project_code': self.record.project_code,
            'project_full_code': self.record.project_full_code,
            'zone': self.record.zone,
            'input_type': self.record.input_type,
            'quantity': self.record.quantity,
            'reason': self.reason,
            'suggestions': [s.to_dict() for s in self.suggestions],
        }


def suggest_activity_names(
    record: KPIRecord,
    activities: Sequence[Activity],
    min_score: Optional[float] = None,
    limit: Optional[int] = None,
) -> List[NameSuggestion]:
    """
    Closest activity names for a record, restricted to its project.

    Scored with rapidfuzz token_sort_ratio on normalized names; only scores
    at or above `min_score` are kept, best first.
    """
    config = get_config()
    if min_score is None:
        min_score = config.suggestion_min_score
    if limit is None:
        limit = config.max_suggestions

    query = record.normalized_name
    if not query or limit <= 0:
        return []

    candidates = {}
    for activity in activities:
        name = activity.normalized_name
        if name and name not in candidates and projects_match(activity, record):
            candidates[name] = activity
    if not candidates:
        return []

    names = list(candidates)
    results = process.extract(
        query,
        names,
        scorer=fuzz.token_sort_ratio,
        limit=limit,
        score_cutoff=min_score,
    )
    return [
        NameSuggestion(
            activity_name=candidates[name].name,
            score=round(float(score), 1),
            zone=candidates[name].zone_display,
        )
        for name, score, _ in results
    ]


def find_unmatched_records(
    activities: Sequence[Activity],
    kpis: Sequence[KPIRecord],
    min_score: Optional[float] = None,
    max_suggestions: Optional[int] = None,
) -> List[UnmatchedRecord]:
    """
    Find KPI records that match no activity.

    Records with an unrecognized input type are reported too: the
    aggregators ignore them whatever they match.

    Returns:
        UnmatchedRecord list in KPI input order
    """
    unmatched = []
    for index, record in enumerate(kpis):
        if record.kind is None:
            reason = REASON_UNKNOWN_INPUT_TYPE
        elif not record.normalized_name:
            reason = REASON_MISSING_NAME
        elif any(record_matches(activity, record) for activity in activities):
            continue
        else:
            reason = REASON_NO_ACTIVITY

        suggestions = []
        if reason != REASON_MISSING_NAME:
            suggestions = suggest_activity_names(record, activities, min_score, max_suggestions)
        unmatched.append(UnmatchedRecord(index, record, reason, suggestions))

    logger.info(f"{len(unmatched)} of {len(kpis)} KPI records are unmatched")
    return unmatched
