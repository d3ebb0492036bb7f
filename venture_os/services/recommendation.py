"""
Recommendation Scorer — "which project should I work on next?"

Pure scoring (``score_project``) is kept separate from the database fetch
(``collect_signals``) so the arithmetic can be tested without a session.

Usage:
    from venture_os.services.recommendation import generate_recommendation
    result = generate_recommendation()
    # -> Recommendation(project=<Project>, score=71.0, reason="Deadline in 3 days, ...")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import joinedload

from venture_os.models.project import ACTIVE_PROJECT_STATUSES, FocusSession, Project, Sprint, Task
from venture_os.utils.helpers import as_utc, utcnow

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# Weights & thresholds
# ═════════════════════════════════════════════════════════════════════════════

MAX_CANDIDATES = 10

# Days-until-deadline → score, first matching bound wins.
DEADLINE_STEPS = ((0, 100), (3, 90), (7, 70), (14, 40))
DEADLINE_FAR_SCORE = 10

# Fixed "sprint activity" component used when a sprint is running.
SPRINT_ACTIVITY_BONUS = 80

WEIGHTS_WITH_SPRINT = {
    "deadline": 0.30,
    "sprint": 0.25,
    "overdue": 0.15,
    "neglect": 0.15,
    "blocked": 0.10,
}

# Sums to 0.90, not 1.0: a project without a sprint tops out at 90.
WEIGHTS_WITHOUT_SPRINT = {
    "deadline": 0.40,
    "overdue": 0.20,
    "neglect": 0.20,
    "blocked": 0.10,
}

# A deadline further out than this does not produce a reason clause.
DEADLINE_REASON_DAYS = 7
NEGLECT_REASON_DAYS = 3

NO_PROJECTS_REASON = "No active projects found."
FALLBACK_REASON = "Recently active project requires your focus."
DEFAULT_REASON = "General maintenance"


# ═════════════════════════════════════════════════════════════════════════════
# Data classes
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class ProjectSignals:
    """Everything the scorer needs to know about one candidate project."""
    project: Any
    deadline: datetime | None = None
    overdue_tasks: int = 0
    blocked_tasks: int = 0
    last_session_at: datetime | None = None
    has_active_sprint: bool = False


@dataclass
class ScoredProject:
    project: Any
    score: float
    components: dict[str, float] = field(default_factory=dict)
    reasons: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons) if self.reasons else DEFAULT_REASON


@dataclass
class Recommendation:
    project: Any
    reason: str
    score: float = 0.0
    ranking: list[ScoredProject] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "recommended_project": self.project.to_dict() if self.project is not None else None,
            "reason": self.reason,
            "score": self.score,
            "ranking": [
                {
                    "project_id": s.project.id,
                    "name": s.project.name,
                    "score": s.score,
                    "components": s.components,
                    "reason": s.reason,
                }
                for s in self.ranking
            ],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Component scores (pure)
# ═════════════════════════════════════════════════════════════════════════════

def days_until(deadline: datetime, now: datetime) -> int:
    """Calendar days from ``now`` to ``deadline`` (negative when past)."""
    return (as_utc(deadline).date() - as_utc(now).date()).days


def deadline_score(deadline: datetime | None, now: datetime) -> int:
    if deadline is None:
        return 0
    days = days_until(deadline, now)
    for bound, score in DEADLINE_STEPS:
        if days <= bound:
            return score
    return DEADLINE_FAR_SCORE


def overdue_score(count: int) -> int:
    return min(count * 10, 100)


def neglect_score(last_session_at: datetime | None, now: datetime) -> int:
    if last_session_at is None:
        return 100
    days = max(days_until(now, last_session_at), 0)
    return min(days * 10, 100)


def blocked_score(count: int) -> int:
    return min(count * 20, 100)


def _reasons(signals: ProjectSignals, now: datetime) -> list[str]:
    reasons = []
    if signals.deadline is not None:
        days = days_until(signals.deadline, now)
        if days < 0:
            reasons.append(f"Deadline overdue by {-days} day{'s' if days != -1 else ''}")
        elif days == 0:
            reasons.append("Deadline today")
        elif days <= DEADLINE_REASON_DAYS:
            reasons.append(f"Deadline in {days} day{'s' if days != 1 else ''}")
    if signals.overdue_tasks:
        n = signals.overdue_tasks
        reasons.append(f"{n} overdue task{'s' if n != 1 else ''}")
    if signals.last_session_at is None:
        reasons.append("Never started")
    else:
        idle = days_until(now, signals.last_session_at)
        if idle >= NEGLECT_REASON_DAYS:
            reasons.append(f"No focus for {idle} days")
    if signals.blocked_tasks:
        n = signals.blocked_tasks
        reasons.append(f"{n} blocked task{'s' if n != 1 else ''}")
    if signals.has_active_sprint:
        reasons.append("Sprint in progress")
    return reasons


def score_project(signals: ProjectSignals, now: datetime | None = None) -> ScoredProject:
    """Weighted urgency score for one project (0–100)."""
    now = now or utcnow()
    components = {
        "deadline": deadline_score(signals.deadline, now),
        "overdue": overdue_score(signals.overdue_tasks),
        "neglect": neglect_score(signals.last_session_at, now),
        "blocked": blocked_score(signals.blocked_tasks),
    }
    if signals.has_active_sprint:
        components["sprint"] = SPRINT_ACTIVITY_BONUS
        weights = WEIGHTS_WITH_SPRINT
    else:
        weights = WEIGHTS_WITHOUT_SPRINT

    total = sum(components[name] * weight for name, weight in weights.items())
    return ScoredProject(
        project=signals.project,
        score=round(total, 2),
        components=components,
        reasons=_reasons(signals, now),
    )


def rank_projects(signals: list[ProjectSignals], now: datetime | None = None) -> Recommendation:
    """Pick the top project from pre-collected signals.

    ``signals`` must already be ordered most-recently-updated first; that
    order breaks ties and provides the fallback pick.
    """
    if not signals:
        return Recommendation(project=None, reason=NO_PROJECTS_REASON)

    now = now or utcnow()
    scored = [score_project(s, now) for s in signals]
    ranking = sorted(scored, key=lambda s: s.score, reverse=True)
    top = ranking[0]
    if top.score == 0:
        return Recommendation(project=signals[0].project, reason=FALLBACK_REASON, ranking=ranking)
    return Recommendation(project=top.project, reason=top.reason, score=top.score, ranking=ranking)


# ═════════════════════════════════════════════════════════════════════════════
# Fetch
# ═════════════════════════════════════════════════════════════════════════════

def collect_signals(now: datetime | None = None) -> list[ProjectSignals]:
    """Load the candidate projects and their task/session/sprint signals."""
    now = now or utcnow()
    projects = (
        Project.query.options(joinedload(Project.contract))
        .filter(Project.status.in_(ACTIVE_PROJECT_STATUSES))
        .order_by(Project.updated_at.desc())
        .limit(MAX_CANDIDATES)
        .all()
    )
    if not projects:
        return []

    ids = [p.id for p in projects]
    signals = {p.id: ProjectSignals(project=p) for p in projects}

    open_tasks = Task.query.filter(Task.project_id.in_(ids), Task.status != "Done").all()
    for task in open_tasks:
        s = signals[task.project_id]
        if task.status == "Blocked":
            s.blocked_tasks += 1
        if task.due_date is not None and as_utc(task.due_date) < now:
            s.overdue_tasks += 1

    sessions = (
        FocusSession.query.filter(FocusSession.project_id.in_(ids))
        .order_by(FocusSession.started_at.desc())
        .all()
    )
    for session in sessions:
        s = signals[session.project_id]
        if s.last_session_at is None:
            s.last_session_at = as_utc(session.ended_at or session.started_at)

    for sprint in Sprint.query.filter(Sprint.project_id.in_(ids), Sprint.status == "active").all():
        s = signals[sprint.project_id]
        s.has_active_sprint = True
        if sprint.planned_end_at is not None:
            s.deadline = as_utc(sprint.planned_end_at)

    for project in projects:
        s = signals[project.id]
        if s.deadline is None and project.contract is not None and project.contract.end_date:
            s.deadline = as_utc(project.contract.end_date)

    return [signals[pid] for pid in ids]


def generate_recommendation(now: datetime | None = None) -> Recommendation:
    now = now or utcnow()
    result = rank_projects(collect_signals(now), now)
    logger.debug("Recommendation: %s (%s)", getattr(result.project, "id", None), result.reason)
    return result
