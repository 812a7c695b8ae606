"""Admin alerts: raise, acknowledge, resolve, dismiss, and summarise.

Status moves forward only: ``active`` -> ``acknowledged`` -> ``resolved`` or
``dismissed``. Resolved and dismissed are terminal.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from arena.models import Alert, User
from arena.models.alert import ALERT_SEVERITIES, ALERT_STATUSES, ALERT_TYPES

logger = logging.getLogger("arena.alerts")


class AlertNotFound(LookupError):
    pass


class AlertError(ValueError):
    pass


async def get_alert(session: AsyncSession, alert_id: int, for_update: bool = False) -> Alert:
    q = select(Alert).where(Alert.id == alert_id)
    if for_update:
        q = q.with_for_update()
    alert = (await session.execute(q)).scalar_one_or_none()
    if not alert:
        raise AlertNotFound("Alert not found")
    return alert


async def create_alert(
    session: AsyncSession,
    title: str,
    message: str,
    type: str = "info",
    severity: str = "medium",
    created_by: Optional[User] = None,
    related_tournament_id: Optional[int] = None,
    related_user_id: Optional[int] = None,
    extra: Optional[dict] = None,
) -> Alert:
    title = (title or "").strip()
    message = (message or "").strip()
    if not title:
        raise AlertError("Title is required")
    if not message:
        raise AlertError("Message is required")
    if type not in ALERT_TYPES:
        raise AlertError(f"Type must be one of: {', '.join(ALERT_TYPES)}")
    if severity not in ALERT_SEVERITIES:
        raise AlertError(f"Severity must be one of: {', '.join(ALERT_SEVERITIES)}")
    alert = Alert(
        title=title[:255],
        message=message,
        type=type,
        severity=severity,
        status="active",
        created_by_id=created_by.id if created_by else None,
        related_tournament_id=related_tournament_id,
        related_user_id=related_user_id,
        extra=extra or {},
    )
    session.add(alert)
    await session.flush()
    logger.info("Alert %s raised (%s/%s): %s", alert.id, type, severity, title)
    return alert


async def acknowledge_alert(session: AsyncSession, alert_id: int, user: User) -> Alert:
    alert = await get_alert(session, alert_id, for_update=True)
    if alert.status in ("resolved", "dismissed"):
        raise AlertError("Cannot acknowledge a resolved or dismissed alert")
    if alert.status == "acknowledged":
        raise AlertError("Alert is already acknowledged")
    now = datetime.utcnow()
    alert.status = "acknowledged"
    alert.acknowledged_by_id = user.id
    alert.acknowledged_at = now
    alert.updated_at = now
    await session.flush()
    return alert


async def resolve_alert(session: AsyncSession, alert_id: int, user: User) -> Alert:
    alert = await get_alert(session, alert_id, for_update=True)
    if alert.status == "dismissed":
        raise AlertError("Cannot resolve a dismissed alert")
    if alert.status == "resolved":
        raise AlertError("Alert is already resolved")
    now = datetime.utcnow()
    alert.status = "resolved"
    alert.resolved_by_id = user.id
    alert.resolved_at = now
    alert.updated_at = now
    await session.flush()
    return alert


async def dismiss_alert(session: AsyncSession, alert_id: int, user: User) -> Alert:
    alert = await get_alert(session, alert_id, for_update=True)
    if alert.status == "resolved":
        raise AlertError("Cannot dismiss a resolved alert")
    if alert.status == "dismissed":
        raise AlertError("Alert is already dismissed")
    now = datetime.utcnow()
    alert.status = "dismissed"
    alert.dismissed_by_id = user.id
    alert.dismissed_at = now
    alert.updated_at = now
    await session.flush()
    return alert


async def bulk_acknowledge(session: AsyncSession, alert_ids: Iterable[int], user: User) -> int:
    """Acknowledge every still-active alert among alert_ids. Returns how many changed."""
    ids = list(set(alert_ids))
    if not ids:
        return 0
    now = datetime.utcnow()
    result = await session.execute(
        update(Alert)
        .where(Alert.id.in_(ids), Alert.status == "active")
        .values(status="acknowledged", acknowledged_by_id=user.id, acknowledged_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def alert_summary(session: AsyncSession, recent: int = 5) -> dict:
    """Counts by status, type and severity, plus the most recent alerts."""
    by_status = dict((await session.execute(select(Alert.status, func.count()).group_by(Alert.status))).all())
    by_type = dict((await session.execute(select(Alert.type, func.count()).group_by(Alert.type))).all())
    by_severity = dict(
        (await session.execute(select(Alert.severity, func.count()).group_by(Alert.severity))).all()
    )
    latest = (
        await session.execute(select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc()).limit(recent))
    ).scalars().all()
    summary = {"total": sum(by_status.values())}
    for status in ALERT_STATUSES:
        summary[status] = by_status.get(status, 0)
    summary["byType"] = by_type
    summary["bySeverity"] = by_severity
    summary["recent"] = list(latest)
    return summary
