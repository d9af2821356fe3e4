from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import select

from ..db import get_session
from ..models import Program, StudentProgram, UserProgram
from ..resolvers.student import assert_program_rights
from ..security import ADMIN, get_current_user, require_roles


router = APIRouter(prefix="/programs", tags=["programs"])


class DirectorGrant(BaseModel):
    email: str


@router.get("/", response_model=List[Program])
def list_programs(session=Depends(get_session), user=Depends(require_roles(ADMIN))):
    return session.exec(select(Program).order_by(Program.id)).all()


@router.post("/", response_model=Program)
def create_program(program: Program, session=Depends(get_session), user=Depends(require_roles(ADMIN))):
    if session.get(Program, program.id):
        raise HTTPException(status_code=400, detail="El programa ya existe")
    session.add(program)
    session.commit()
    session.refresh(program)
    return program


@router.get("/mine", response_model=List[Program])
def my_programs(session=Depends(get_session), user=Depends(get_current_user)):
    statement = (
        select(Program)
        .join(UserProgram, UserProgram.program == Program.id)
        .where(UserProgram.email == user.email)
        .order_by(Program.id)
    )
    return session.exec(statement).all()


@router.get("/{program_id}/curriculums", response_model=List[str])
def program_curriculums(program_id: str, session=Depends(get_session), user=Depends(get_current_user)):
    assert_program_rights(session, user, program_id)
    curriculums = session.exec(
        select(StudentProgram.curriculum)
        .where(StudentProgram.program_id == program_id)
        .distinct()
        .order_by(StudentProgram.curriculum)
    ).all()
    return list(curriculums)


@router.post("/{program_id}/directors", response_model=UserProgram)
def grant_director(
    program_id: str,
    payload: DirectorGrant,
    session=Depends(get_session),
    user=Depends(require_roles(ADMIN)),
):
    if not session.get(Program, program_id):
        raise HTTPException(status_code=404, detail="Programa no encontrado")
    existing = session.exec(
        select(UserProgram).where(UserProgram.email == payload.email, UserProgram.program == program_id)
    ).first()
    if existing:
        return existing
    right = UserProgram(email=payload.email, program=program_id)
    session.add(right)
    session.commit()
    session.refresh(right)
    return right


@router.delete("/{program_id}/directors/{email}")
def revoke_director(
    program_id: str,
    email: str,
    session=Depends(get_session),
    user=Depends(require_roles(ADMIN)),
):
    right = session.exec(
        select(UserProgram).where(UserProgram.email == email, UserProgram.program == program_id)
    ).first()
    if not right:
        raise HTTPException(status_code=404, detail="Permiso no encontrado")
    session.delete(right)
    session.commit()
    return {"ok": True}
