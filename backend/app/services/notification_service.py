"""Notification service — queues in-app notifications for group-trip events.

Notifications are added to the caller's session, so they commit (or roll back)
together with the change that triggered them. Delivery is someone else's job.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates in-app notifications for group-trip coordination events."""

    async def send_join_request(
        self, db: AsyncSession, admin_id: str, trip_title: str, requester_id: str, trip_id: uuid.UUID
    ) -> Notification:
        return await self._create(
            db,
            user_id=admin_id,
            type="join_request",
            title="New Join Request",
            body=f"User {requester_id} asked to join '{trip_title}'.",
            reference_id=trip_id,
            payload={"requester_id": requester_id},
        )

    async def send_request_decision(
        self, db: AsyncSession, user_id: str, trip_title: str, accepted: bool, trip_id: uuid.UUID
    ) -> Notification:
        verdict = "confirmed" if accepted else "declined"
        return await self._create(
            db,
            user_id=user_id,
            type="join_decision",
            title="Join Request Confirmed" if accepted else "Join Request Declined",
            body=f"Your request to join '{trip_title}' was {verdict}.",
            reference_id=trip_id,
            payload={"accepted": accepted},
        )

    async def send_new_poll(
        self, db: AsyncSession, recipient_ids: list[str], trip_title: str,
        question: str, trip_id: uuid.UUID, poll_index: int,
    ) -> list[Notification]:
        return [
            await self._create(
                db,
                user_id=recipient_id,
                type="new_poll",
                title="New Trip Poll",
                body=f"Vote on '{question}' for '{trip_title}'.",
                reference_id=trip_id,
                payload={"poll_index": poll_index},
            )
            for recipient_id in recipient_ids
        ]

    async def _create(
        self, db: AsyncSession, user_id: str, type: str, title: str, body: str,
        reference_id: uuid.UUID | None = None, payload: dict | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            body=body,
            reference_type="group_trip",
            reference_id=reference_id,
            payload=payload or {},
        )
        db.add(notification)
        logger.debug(f"Queued {type} notification for {user_id}")
        return notification


notification_service = NotificationService()
