"""API routes for admin alerts: raise, list, acknowledge, resolve, dismiss, summary."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import select

from arena.models import Alert, User
from arena.models.base import async_session_factory
from arena.services import alerts as alerts_svc
from web.api.utils import alert_to_dto, service_error
from web.auth import require_admin_user

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


class AlertCreate(BaseModel):
    title: str
    message: str
    type: str = "info"
    severity: str = "medium"
    related_tournament_id: Optional[int] = None
    related_user_id: Optional[int] = None
    metadata: Optional[dict] = None


class BulkAcknowledge(BaseModel):
    alert_ids: List[int]


@router.post("", status_code=201)
async def create_alert(body: AlertCreate, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        try:
            alert = await alerts_svc.create_alert(
                session,
                title=body.title,
                message=body.message,
                type=body.type,
                severity=body.severity,
                created_by=admin,
                related_tournament_id=body.related_tournament_id,
                related_user_id=body.related_user_id,
                extra=body.metadata,
            )
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        return alert_to_dto(alert)


@router.get("")
async def list_alerts(
    status: Optional[str] = None,
    type: Optional[str] = None,
    severity: Optional[str] = None,
    admin: User = Depends(require_admin_user),
):
    """List alerts, newest first. Optional status/type/severity filters."""
    async with async_session_factory() as session:
        q = select(Alert).order_by(Alert.created_at.desc(), Alert.id.desc())
        if status:
            q = q.where(Alert.status == status)
        if type:
            q = q.where(Alert.type == type)
        if severity:
            q = q.where(Alert.severity == severity)
        result = await session.execute(q)
        return [alert_to_dto(a) for a in result.scalars().all()]


@router.get("/stats/summary")
async def alert_summary(admin: User = Depends(require_admin_user)):
    """Counts by status, type and severity, with the latest alerts."""
    async with async_session_factory() as session:
        summary = await alerts_svc.alert_summary(session)
        summary["recent"] = [alert_to_dto(a) for a in summary["recent"]]
        return summary


@router.post("/bulk/acknowledge")
async def bulk_acknowledge(body: BulkAcknowledge, admin: User = Depends(require_admin_user)):
    """Acknowledge every listed alert that is still active."""
    async with async_session_factory() as session:
        count = await alerts_svc.bulk_acknowledge(session, body.alert_ids, admin)
        await session.commit()
        return {"ok": True, "acknowledgedCount": count}


@router.get("/{alert_id}")
async def get_alert(alert_id: int, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        alert = await session.get(Alert, alert_id)
        if not alert:
            raise HTTPException(404, "Alert not found")
        return alert_to_dto(alert)


async def _transition(alert_id: int, admin: User, action) -> dict:
    async with async_session_factory() as session:
        try:
            alert = await action(session, alert_id, admin)
            await session.commit()
        except (ValueError, LookupError) as e:
            await session.rollback()
            raise service_error(e)
        return alert_to_dto(alert)


@router.post("/{alert_id}/acknowledge")
async def acknowledge_alert(alert_id: int, admin: User = Depends(require_admin_user)):
    return await _transition(alert_id, admin, alerts_svc.acknowledge_alert)


@router.post("/{alert_id}/resolve")
async def resolve_alert(alert_id: int, admin: User = Depends(require_admin_user)):
    return await _transition(alert_id, admin, alerts_svc.resolve_alert)


@router.post("/{alert_id}/dismiss")
async def dismiss_alert(alert_id: int, admin: User = Depends(require_admin_user)):
    return await _transition(alert_id, admin, alerts_svc.dismiss_alert)
