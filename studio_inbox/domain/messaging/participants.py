"""Participant directory - who may see a thread"""

from typing import Iterable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ...models import Profile, Thread, ThreadParticipant
from ...shared.timeutils import utcnow


class ParticipantDirectory:
    """
    Resolves thread membership.

    A thread's effective participants are its owning client (if any) plus
    every profile added through thread_participants. Rows are never removed.
    """

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.clock = clock

    def participants_of(self, thread_id: int) -> set[str]:
        """Effective participant ids for a thread"""
        members = {
            row.profile_id
            for row in self.db.query(ThreadParticipant.profile_id).filter(
                ThreadParticipant.thread_id == thread_id
            )
        }
        owner = self.db.query(Thread.client_id).filter(Thread.id == thread_id).scalar()
        if owner:
            members.add(owner)
        return members

    def is_visible_to(self, identity_id: str, thread_id: int) -> bool:
        """True iff the identity owns the thread or was added as a participant"""
        owned = (
            self.db.query(Thread.id)
            .filter(Thread.id == thread_id, Thread.client_id == identity_id)
            .first()
        )
        if owned:
            return True
        joined = (
            self.db.query(ThreadParticipant.id)
            .filter(
                ThreadParticipant.thread_id == thread_id,
                ThreadParticipant.profile_id == identity_id,
            )
            .first()
        )
        return joined is not None

    def visible_thread_ids(self, identity_id: str) -> set[int]:
        """Every thread the identity owns or participates in"""
        participant_threads = select(ThreadParticipant.thread_id).where(
            ThreadParticipant.profile_id == identity_id
        )
        rows = (
            self.db.query(Thread.id)
            .filter(or_(Thread.client_id == identity_id, Thread.id.in_(participant_threads)))
            .all()
        )
        return {row.id for row in rows}

    def add_participants(self, thread_id: int, profile_ids: Iterable[str]) -> list[ThreadParticipant]:
        """Add profiles to a thread, skipping ones already present. Flushes only."""
        existing = {
            row.profile_id
            for row in self.db.query(ThreadParticipant.profile_id).filter(
                ThreadParticipant.thread_id == thread_id
            )
        }
        added = []
        for profile_id in dict.fromkeys(profile_ids):
            if profile_id in existing:
                continue
            row = ThreadParticipant(thread_id=thread_id, profile_id=profile_id, joined_at=self.clock())
            self.db.add(row)
            added.append(row)
        self.db.flush()
        return added

    def get_profiles(self, profile_ids: Iterable[str]) -> dict[str, Profile]:
        """Look up profiles by id"""
        ids = list(dict.fromkeys(profile_ids))
        if not ids:
            return {}
        return {p.id: p for p in self.db.query(Profile).filter(Profile.id.in_(ids)).all()}

    def participant_profiles(self, thread_id: int) -> list[Profile]:
        """Profiles of every effective participant, ordered by first name"""
        ids = self.participants_of(thread_id)
        if not ids:
            return []
        return (
            self.db.query(Profile)
            .filter(Profile.id.in_(list(ids)))
            .order_by(Profile.first_name, Profile.last_name)
            .all()
        )

    def visible_contacts(self, viewer_id: str) -> list[Profile]:
        """Every profile the viewer can start a conversation with"""
        return (
            self.db.query(Profile)
            .filter(Profile.id != viewer_id)
            .order_by(Profile.first_name, Profile.last_name)
            .all()
        )
