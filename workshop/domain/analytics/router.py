"""Analytics router - Dashboard summary and callback reports"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    """Dependency injection for AnalyticsService"""
    return AnalyticsService(db)


@router.get("/summary")
async def get_summary(
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Job counts, repair time and status breakdown for the dashboard"""
    return service.get_summary(current_user)


@router.get("/callbacks")
async def get_callback_analytics(
    fromDate: Optional[date] = Query(None),
    toDate: Optional[date] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Callback performance per staff member (admins only)"""
    if current_user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    if fromDate and toDate and fromDate > toDate:
        raise HTTPException(status_code=422, detail="fromDate must be on or before toDate")
    return service.get_callback_analytics(current_user, fromDate, toDate)
