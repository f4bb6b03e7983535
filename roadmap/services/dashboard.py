"""
Сводные показатели для дашбордов пользователя и проекта.

Все вычисления над уже загруженными строками вынесены в чистые функции,
чтобы их можно было проверять без базы данных.
"""
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

import roadmap.repo.dashboard as dashboard_repo
import roadmap.repo.project as project_repo
from roadmap.core.exceptions import ValidationError
from roadmap.models.feature import Feature, FeatureStatus, FeaturePriority
from roadmap.models.project import Project
from roadmap.models.user import User
from roadmap.schemas.notification import Activity
from roadmap.schemas.project import ProjectSummary
from roadmap.schemas.stage import StageWithCount
from roadmap.services import access
from roadmap.utils.dates import as_utc, utc_now

logger = logging.getLogger(__name__)

TIMEFRAMES = {"week": 7, "month": 30, "all": None}
PERIODS = {"7d": 7, "30d": 30, "90d": 90}
RECENT_ACTIVITY_LIMIT = 15
FOLLOWED_PROJECTS_LIMIT = 6


def engagement_score(feature_count: int, vote_count: int, activity_count: int) -> int:
    """Оценка вовлеченности 0..100: фича весит 2, голос 1, действие 0.5"""
    total = feature_count * 2 + vote_count + activity_count * 0.5
    return min(100, int(round(total / 10)))


def progress_color(progress: int) -> str:
    if progress >= 80:
        return "#10B981"
    if progress >= 50:
        return "#F59E0B"
    return "#EF4444"


def average(values: Iterable[float]) -> int:
    values = list(values)
    if not values:
        return 0
    return int(round(sum(values) / len(values)))


def completion_rate(features: List[Feature]) -> int:
    if not features:
        return 0
    completed = sum(1 for f in features if f.status == FeatureStatus.COMPLETED)
    return int(round(completed * 100 / len(features)))


def avg_votes_per_feature(features: List[Feature]) -> float:
    if not features:
        return 0.0
    return round(sum(f.vote_count for f in features) / len(features), 1)


def engagement_rate(feature_count: int, follower_count: int) -> int:
    if not follower_count:
        return 0
    return int(round(feature_count * 100 / follower_count))


def status_breakdown(features: List[Feature]) -> Dict[str, int]:
    counts = Counter(f.status for f in features)
    return {status.value: counts.get(status, 0) for status in FeatureStatus}


def priority_breakdown(features: List[Feature]) -> Dict[str, int]:
    counts = Counter(f.priority for f in features)
    return {priority.value: counts.get(priority, 0) for priority in FeaturePriority}


def generate_insights(feature_count: int, project_count: int, score: int) -> List[str]:
    insights = []
    if score > 80:
        insights.append("You're highly engaged! Keep up the great work contributing to the community.")
    if feature_count > 10:
        insights.append(f"You've suggested {feature_count} features - you're full of ideas!")
    if project_count == 0:
        insights.append("Ready to start your first project? Create one to begin your roadmap journey!")
    return insights[:3]


def timeframe_start(timeframe: str, now: datetime) -> Optional[datetime]:
    if timeframe not in TIMEFRAMES:
        raise ValidationError("Timeframe must be one of week, month, all")
    days = TIMEFRAMES[timeframe]
    return now - timedelta(days=days) if days else None


def daily_series(dates: Iterable[datetime], start: date, days: int) -> List[Dict[str, Any]]:
    """Количество событий по дням, включая дни без событий"""
    counts = Counter(as_utc(d).date() for d in dates if d is not None)
    series = []
    for offset in range(days + 1):
        day = start + timedelta(days=offset)
        series.append({"date": day.isoformat(), "count": counts.get(day, 0)})
    return series


async def _summaries(db: AsyncSession, projects: List[Project], user: User) -> List[ProjectSummary]:
    ids = [p.id for p in projects]
    feature_counts = await project_repo.count_features_by_project(db, ids)
    follower_counts = await project_repo.count_followers_by_project(db, ids)
    member_counts = await project_repo.count_members_by_project(db, ids)
    summaries = []
    for p in projects:
        summaries.append(
            ProjectSummary.model_validate(p).model_copy(
                update={
                    "feature_count": feature_counts.get(p.id, 0),
                    "follower_count": follower_counts.get(p.id, 0),
                    "member_count": member_counts.get(p.id, 0),
                    "role": await access.get_role(db, p, user),
                }
            )
        )
    return summaries


async def get_user_dashboard(db: AsyncSession, *, user: User, timeframe: str = "week") -> Dict[str, Any]:
    since = timeframe_start(timeframe, utc_now())

    projects = await project_repo.get_projects_for_user(db, user.id)
    project_ids = [p.id for p in projects]
    summaries = await _summaries(db, projects, user)

    user_features = await dashboard_repo.get_user_features(db, user.id)
    total_votes = await dashboard_repo.count_user_votes(db, user.id)
    follows = await dashboard_repo.count_user_follows(db, user.id)
    recent = await dashboard_repo.get_recent_activity(db, user.id, project_ids, since, RECENT_ACTIVITY_LIMIT)

    score = engagement_score(len(user_features), total_votes, len(recent))

    followed = await project_repo.get_followed_projects(db, user.id, limit=FOLLOWED_PROJECTS_LIMIT)
    followed_features = await dashboard_repo.get_project_features(db, [p.id for p in followed])
    followed_summaries = []
    for summary in await _summaries(db, followed, user):
        progress = average(f.progress for f in followed_features if f.project_id == summary.id)
        followed_summaries.append(summary.model_copy(update={"progress": progress}))

    return {
        "summary": {
            "total_projects": len(projects),
            "total_features": len(user_features),
            "total_votes": total_votes,
            "engagement_score": score,
            "completion_rate": completion_rate(user_features),
            "followed_projects": follows,
        },
        "progress": {
            "overall_progress": average(p.progress for p in projects),
            "projects_progress": [
                {
                    "id": s.id,
                    "title": s.title,
                    "progress": s.progress,
                    "color": progress_color(s.progress),
                    "feature_count": s.feature_count,
                    "follower_count": s.follower_count,
                }
                for s in summaries[:5]
            ],
            "feature_status": status_breakdown(user_features),
        },
        "recent_activity": [Activity.model_validate(a) for a in recent],
        "projects": {
            "owned": [s for s in summaries if s.owner_id == user.id][:6],
            "collaborating": [s for s in summaries if s.owner_id != user.id][:6],
            "trending": sorted(summaries, key=lambda s: s.follower_count, reverse=True)[:3],
            "needing_attention": [s for s in summaries if s.progress < 30][:3],
        },
        "followed_projects": followed_summaries,
        "quick_stats": {
            "features_this_period": await dashboard_repo.count_user_features(db, user.id, since),
            "comments_this_period": await dashboard_repo.count_user_comments(db, user.id, since),
            "votes_this_period": await dashboard_repo.count_user_votes(db, user.id, since),
            "new_follows": await dashboard_repo.count_user_follows(db, user.id, since),
            "timeframe": timeframe,
        },
        "insights": generate_insights(len(user_features), len(projects), score),
    }


async def get_project_dashboard(db: AsyncSession, *, project_id: int, user: Optional[User]) -> Dict[str, Any]:
    project, role = await access.get_visible_project(db, project_id, user)

    features = await dashboard_repo.get_project_features(db, [project.id])
    stages = await project_repo.get_stages_by_project(db, project.id)
    follower_count = await project_repo.count_followers(db, project.id)
    member_count = (await project_repo.count_members_by_project(db, [project.id])).get(project.id, 0)

    stage_stats = []
    for stage in stages:
        stage_features = [f for f in features if f.stage_id == stage.id]
        stage_stats.append(
            StageWithCount.model_validate(stage).model_copy(update={"feature_count": len(stage_features)}).model_dump()
            | {"average_progress": average(f.progress for f in stage_features)}
        )

    summary = ProjectSummary.model_validate(project).model_copy(
        update={
            "feature_count": len(features),
            "follower_count": follower_count,
            "member_count": member_count,
            "role": role,
        }
    )

    return {
        "project": summary,
        "analytics": {
            "completion_rate": completion_rate(features),
            "avg_votes_per_feature": avg_votes_per_feature(features),
            "engagement_rate": engagement_rate(len(features), follower_count),
            "priority_breakdown": priority_breakdown(features),
            "status_breakdown": status_breakdown(features),
            "stages": stage_stats,
        },
    }


async def get_stats(db: AsyncSession, *, user: User, period: str = "30d") -> Dict[str, Any]:
    """Ряды по дням для графиков: активность и новые фичи в проектах пользователя"""
    if period not in PERIODS:
        raise ValidationError("Period must be one of 7d, 30d, 90d")
    days = PERIODS[period]
    now = utc_now()
    start = now - timedelta(days=days)

    projects = await project_repo.get_projects_for_user(db, user.id)
    project_ids = [p.id for p in projects]

    activity_dates = await dashboard_repo.get_activity_dates(db, user.id, project_ids, start)
    feature_dates = await dashboard_repo.get_feature_dates(db, project_ids, start)

    return {
        "period": period,
        "activity_over_time": daily_series(activity_dates, start.date(), days),
        "feature_trends": daily_series(feature_dates, start.date(), days),
        "project_progress": [
            {"id": p.id, "title": p.title, "progress": p.progress, "color": progress_color(p.progress)}
            for p in projects
        ],
    }
