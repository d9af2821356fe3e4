import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from ..db import get_session
from ..models import Persistence, utc_now
from ..security import ADMIN, get_current_user, require_roles
from ..services.control_channel import reset_data_loaders_cache


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/persistence", tags=["persistence"])


class PersistenceRead(BaseModel):
    user: str
    key: str
    data: Dict[str, Any]
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class PersistenceWrite(BaseModel):
    data: Dict[str, Any]

    model_config = ConfigDict(extra="forbid")


# Declarado antes de /{key} para que la ruta fija tenga prioridad
@router.post("/reset-dataloaders-cache", response_model=int)
def reset_dataloaders_cache(request: Request, user=Depends(require_roles(ADMIN))):
    channel = getattr(request.app.state, "control_channel", None)
    count = reset_data_loaders_cache(channel)
    logger.info(f"Dataloaders cache reset requested by {user.email}: {count}")
    return count


@router.get("/users/{user_email}", response_model=List[PersistenceRead])
def user_persistences(user_email: str, session=Depends(get_session), user=Depends(require_roles(ADMIN))):
    return session.exec(select(Persistence).where(Persistence.user == user_email)).all()


@router.post("/users/{user_email}/reset", response_model=int)
def reset_persistence(user_email: str, session=Depends(get_session), user=Depends(require_roles(ADMIN))):
    rows = session.exec(select(Persistence).where(Persistence.user == user_email)).all()
    now = utc_now()
    for row in rows:
        row.data = {}
        row.timestamp = now
        session.add(row)
    session.commit()
    return len(rows)


def _find(session, email: str, key: str) -> Optional[Persistence]:
    return session.exec(
        select(Persistence).where(Persistence.user == email, Persistence.key == key)
    ).first()


def _upsert(session, email: str, key: str, data: Dict[str, Any]) -> Persistence:
    row = _find(session, email, key)
    if row:
        row.data = data
        row.timestamp = utc_now()
    else:
        row = Persistence(user=email, key=key, data=data, timestamp=utc_now())
    session.add(row)
    session.commit()
    return row


@router.get("/{key}", response_model=Optional[PersistenceRead])
def get_persistence_value(key: str, session=Depends(get_session), user=Depends(get_current_user)):
    return _find(session, user.email, key)


@router.put("/{key}", response_model=PersistenceRead)
def set_persistence_value(
    key: str,
    payload: PersistenceWrite,
    session=Depends(get_session),
    user=Depends(get_current_user),
):
    try:
        try:
            row = _upsert(session, user.email, key, payload.data)
        except IntegrityError:
            # Otra escritura creó la fila entre la lectura y el insert: se actualiza
            session.rollback()
            row = _upsert(session, user.email, key, payload.data)
    except SQLAlchemyError:
        logger.exception(f"Error storing persistence value {key!r} of {user.email}")
        session.rollback()
        raise
    session.refresh(row)
    return row
