"""
app/repositories/person_directory_repository.py

Team member directory lookups backed by the team_members table.
"""

from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import PersonLink
from app.domain.interfaces import PersonLookupField
from app.normalizers.field_normalizers import identifier_key
from db.models.team_member import TeamMember


class SqlPersonDirectory:
    """
    Case-insensitive person lookup by display name or external (DA) id.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def lookup(
        self,
        identifier: str,
        *,
        by: str,
        scope_id: str | None = None,
        active_only: bool = True,
    ) -> PersonLink | None:
        key = identifier_key(identifier)
        if not key:
            return None

        if by == PersonLookupField.NAME:
            column = TeamMember.name
        elif by == PersonLookupField.EXTERNAL_ID:
            column = TeamMember.external_id
        else:
            raise ValueError(f"Unsupported lookup field: {by!r}")

        stmt = select(TeamMember).where(func.lower(func.trim(column)) == key)
        if active_only:
            stmt = stmt.where(TeamMember.is_active.is_(True))
        if scope_id:
            # Members without a manager are visible to every manager.
            stmt = stmt.where(
                or_(TeamMember.manager_id == scope_id, TeamMember.manager_id.is_(None))
            )
        stmt = stmt.order_by(TeamMember.manager_id.is_(None), TeamMember.created_at)

        try:
            member = self._session.execute(stmt).scalars().first()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        if member is None:
            return None
        return PersonLink(
            person_id=str(member.id),
            display_name=member.name,
            external_id=member.external_id,
            contact=member.email,
        )
