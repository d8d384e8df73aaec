"""
Notification Service
In-app notifications for mechanics and customer emails for job events.
Callers treat every method as fire-and-forget; failures raise and are
handled by the outbox dispatcher.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..email_service import send_job_booked_email, send_job_ready_for_pickup_email
from ..models import Notification, User

logger = logging.getLogger(__name__)


class NotificationService:
    """Delivers job notifications to staff and customers"""

    def __init__(self, db: Session):
        self.db = db

    def _wants_job_notifications(self, user_id: int, business_id: int) -> bool:
        user = (
            self.db.query(User)
            .filter(User.id == user_id, User.business_id == business_id)
            .first()
        )
        if not user:
            logger.warning(f"⚠️ Notification target user {user_id} not found in business {business_id}")
            return False
        return bool(user.is_active and user.job_notifications)

    def _create(self, **fields) -> Notification:
        notification = Notification(**fields)
        self.db.add(notification)
        self.db.commit()
        return notification

    async def notify_job_assignment(
        self,
        job_id: int,
        job_code: str,
        assigned_to: int,
        business_id: int,
        description: Optional[str] = None,
    ) -> Optional[Notification]:
        """Tell a mechanic a job has been assigned to them"""
        if not self._wants_job_notifications(assigned_to, business_id):
            return None

        logger.info(f"🔔 Notifying user {assigned_to} of assignment to job {job_code}")
        return self._create(
            business_id=business_id,
            user_id=assigned_to,
            type="job_assigned",
            title=f"New job assigned: {job_code}",
            description=description,
            entity_type="job",
            entity_id=job_id,
            priority="high",
            link=f"/workshop/jobs/{job_id}",
        )

    async def notify_job_reassignment(
        self,
        job_id: int,
        job_code: str,
        previous_assignee: Optional[int],
        new_assignee: Optional[int],
        business_id: int,
        description: Optional[str] = None,
    ) -> list[Notification]:
        """Notify the previous assignee (unassigned) and the new one (assigned)"""
        created = []

        if previous_assignee and self._wants_job_notifications(previous_assignee, business_id):
            logger.info(f"🔔 Notifying user {previous_assignee} of unassignment from job {job_code}")
            created.append(
                self._create(
                    business_id=business_id,
                    user_id=previous_assignee,
                    type="job_unassigned",
                    title=f"Job unassigned: {job_code}",
                    description=description,
                    entity_type="job",
                    entity_id=job_id,
                    priority="high",
                    link=f"/workshop/jobs/{job_id}",
                )
            )

        if new_assignee:
            notification = await self.notify_job_assignment(
                job_id, job_code, new_assignee, business_id, description
            )
            if notification:
                created.append(notification)

        return created

    async def send_ready_for_pickup_email(
        self, customer_email: str, job: dict, customer_name: str = "there", business_name: str = "Workshop"
    ) -> dict:
        """Email the customer that the job is ready for collection"""
        response = await send_job_ready_for_pickup_email(
            to=customer_email,
            customer_name=customer_name,
            business_name=business_name,
            job=job,
        )
        logger.info(f"✅ Ready for pickup email sent for job {job.get('jobCode')} to {customer_email}")
        return response

    async def send_job_booked_email(
        self,
        customer_email: str,
        job: dict,
        business_id: int,
        customer_name: str = "there",
        business_name: str = "Workshop",
    ) -> dict:
        """Email the booking receipt for a new job"""
        response = await send_job_booked_email(
            to=customer_email,
            customer_name=customer_name,
            business_name=business_name,
            business_id=business_id,
            job=job,
        )
        logger.info(f"✅ Job receipt email sent for job {job.get('jobCode')} to {customer_email}")
        return response
