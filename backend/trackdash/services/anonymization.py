"""Translation between real student identifiers and anonymous ones.

Every student-keyed table stores anonymous ids only, so callers translate
whatever identifier they receive before touching a loader.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import or_
from sqlmodel import Session, select

from ..dataloaders.loader import DataLoader, LoaderRegistry
from ..db import threaded_batch
from ..models import AnonymousId


logger = logging.getLogger(__name__)


def new_anonymous_id() -> str:
    return uuid4().hex[:16]


@threaded_batch
def batch_anonymous_ids(session: Session, student_ids: List[str]) -> List[str]:
    keys = set(student_ids)
    rows = session.exec(
        select(AnonymousId).where(
            or_(AnonymousId.student_id.in_(keys), AnonymousId.anonymous_id.in_(keys))
        )
    ).all()
    anonymous = {row.anonymous_id for row in rows}
    by_real_id = {row.student_id: row.anonymous_id for row in rows}

    result: List[str] = []
    for student_id in student_ids:
        if student_id in anonymous:
            result.append(student_id)
        else:
            # Identificadores desconocidos se devuelven tal cual
            result.append(by_real_id.get(student_id, student_id))
    return result


class AnonymizationService:
    def __init__(self, session: Session, registry: Optional[LoaderRegistry] = None) -> None:
        self.session = session
        self.loader: DataLoader[str, str] = DataLoader(
            lambda keys: batch_anonymous_ids(session, keys),
            name="anonymous_ids",
            registry=registry,
        )

    async def get_anonymous_id_or_get_it_back(self, student_id: str) -> str:
        return await self.loader.load(student_id)

    def register(self, student_id: str) -> str:
        """Return the anonymous id of *student_id*, creating it when missing."""
        existing = self.session.exec(
            select(AnonymousId).where(
                or_(AnonymousId.student_id == student_id, AnonymousId.anonymous_id == student_id)
            )
        ).first()
        if existing:
            return existing.anonymous_id
        mapping = AnonymousId(student_id=student_id, anonymous_id=new_anonymous_id())
        self.session.add(mapping)
        self.session.commit()
        self.session.refresh(mapping)
        logger.info(f"Registered anonymous id for student {student_id}")
        return mapping.anonymous_id
