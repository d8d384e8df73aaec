"""Analytics repository - Tenant-scoped reads for dashboard aggregates"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import CallbackRequest, Customer, Job, User


class AnalyticsRepository:
    """Repository for analytics queries"""

    @staticmethod
    def get_jobs(db: Session, business_id: int) -> list[Job]:
        return db.query(Job).filter(Job.business_id == business_id).all()

    @staticmethod
    def count_customers(db: Session, business_id: int) -> int:
        return db.query(Customer).filter(Customer.business_id == business_id).count()

    @staticmethod
    def get_users(db: Session, business_id: int) -> list[User]:
        return db.query(User).filter(User.business_id == business_id).all()

    @staticmethod
    def get_callbacks(
        db: Session,
        business_id: int,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> list[CallbackRequest]:
        """Callbacks requested inside [from_date, to_date)"""
        query = db.query(CallbackRequest).filter(CallbackRequest.business_id == business_id)
        if from_date is not None:
            query = query.filter(CallbackRequest.requested_at >= from_date)
        if to_date is not None:
            query = query.filter(CallbackRequest.requested_at < to_date)
        return query.order_by(CallbackRequest.requested_at.asc()).all()
