"""Travel group service — persistent communities that travelers join."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.social import TravelGroup, TravelGroupMember
from app.services.social_graph_service import SocialGraphService, social_graph_service

logger = logging.getLogger(__name__)

GROUP_PRIVACY = ("public", "private")


class TravelGroupService:
    def __init__(self, graph: SocialGraphService):
        self.graph = graph

    async def get_group(self, db: AsyncSession, group_id: uuid.UUID) -> TravelGroup:
        result = await db.execute(select(TravelGroup).where(TravelGroup.id == group_id))
        group = result.scalar_one_or_none()
        if not group:
            raise LookupError("Group not found")
        return group

    async def create_group(self, db: AsyncSession, admin_id: str, data: dict) -> TravelGroup:
        name = (data.get("name") or "").strip()
        description = (data.get("description") or "").strip()
        if not name or not description:
            raise ValueError("Group name and description are required")
        privacy = data.get("privacy") or "public"
        if privacy not in GROUP_PRIVACY:
            raise ValueError(f"privacy must be one of {', '.join(GROUP_PRIVACY)}")

        await self.graph.get_or_create_profile(db, admin_id)
        group = TravelGroup(
            name=name,
            description=description,
            category=data.get("category"),
            cover=data.get("cover"),
            admin_id=admin_id,
            member_count=1,
            privacy=privacy,
            post_approval=bool(data.get("post_approval", False)),
            member_approval=bool(data.get("member_approval", False)),
            tags=list(data.get("tags") or []),
            location=data.get("location"),
            members=[TravelGroupMember(user_id=admin_id, role="admin")],
        )
        db.add(group)
        await db.commit()

        logger.info(f"Created travel group {group.id} '{name}' by {admin_id}")
        return group

    async def join_group(self, db: AsyncSession, user_id: str, group_id: uuid.UUID) -> dict:
        group = await self.get_group(db, group_id)

        if any(m.user_id == user_id for m in group.members):
            return {"joined": False, "already_member": True, "message": "Already a member of this group"}

        if group.privacy == "private" and group.member_approval:
            return {"joined": False, "already_member": False, "message": "This group requires admin approval to join"}

        await self.graph.get_or_create_profile(db, user_id)
        group.members.append(TravelGroupMember(user_id=user_id, role="member"))
        await db.flush()

        count = await db.execute(
            select(func.count(TravelGroupMember.id)).where(TravelGroupMember.group_id == group.id)
        )
        group.member_count = count.scalar() or 0
        group.last_activity = utcnow()
        await db.commit()

        logger.info(f"User {user_id} joined travel group {group.id}")
        return {"joined": True, "already_member": False, "message": f"Welcome to {group.name}!"}


travel_group_service = TravelGroupService(social_graph_service)
