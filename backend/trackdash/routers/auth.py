from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field
from sqlmodel import select

from ..db import get_session
from ..models import User, UserRoleEnum
from ..security import (
    ADMIN,
    DIRECTOR,
    STUDENT,
    verify_password,
    get_password_hash,
    create_access_token,
    get_current_user,
    require_roles,
)


router = APIRouter(prefix="/auth", tags=["auth"])


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    must_change_password: bool = False


def _token_for(user: User) -> TokenResponse:
    token = create_access_token(user.email, extra={"role": user.role})
    return TokenResponse(access_token=token, must_change_password=user.must_change_password)


@router.post("/token", response_model=TokenResponse)
def login(form_data: OAuth2PasswordRequestForm = Depends(), session=Depends(get_session)):
    user = session.exec(select(User).where(User.email == form_data.username)).first()
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Credenciales inválidas")
    return _token_for(user)


class UserRead(BaseModel):
    email: str
    full_name: str
    role: str
    student_id: Optional[str] = None


def _read(user: User) -> UserRead:
    return UserRead(email=user.email, full_name=user.full_name, role=user.role, student_id=user.student_id)


def _ensure_email_free(session, email: str) -> None:
    if session.exec(select(User).where(User.email == email)).first():
        raise HTTPException(status_code=400, detail="Usuario ya existe")


def _create_user(session, email: str, full_name: str, password: str, role: str, student_id: Optional[str] = None) -> User:
    user = User(
        email=email,
        full_name=full_name,
        hashed_password=get_password_hash(password),
        role=role,
        student_id=student_id,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


class SignupRequest(BaseModel):
    email: str
    full_name: str
    password: str
    role: Optional[UserRoleEnum] = None
    student_id: Optional[str] = None


@router.post("/signup", response_model=TokenResponse)
def signup(payload: SignupRequest, session=Depends(get_session)):
    """Public self-registration.

    The account is a director without program rights, so it sees no student
    until an admin grants it a program. Roles and student ids are only
    assigned through ``POST /auth/users``.
    """
    if payload.student_id is not None or payload.role not in (None, UserRoleEnum.director):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Solo un administrador puede asignar roles o identificadores de estudiante",
        )
    _ensure_email_free(session, payload.email)
    user = _create_user(session, payload.email, payload.full_name, payload.password, DIRECTOR)
    return _token_for(user)


class UserCreateRequest(BaseModel):
    email: str
    full_name: str
    password: str = Field(min_length=6)
    role: UserRoleEnum = UserRoleEnum.director
    student_id: Optional[str] = None


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreateRequest, session=Depends(get_session), _admin=Depends(require_roles(ADMIN))):
    _ensure_email_free(session, payload.email)
    student_id = payload.student_id.strip() if payload.student_id else None
    if payload.role.value == STUDENT:
        if not student_id:
            raise HTTPException(status_code=400, detail="Las cuentas de estudiante requieren un identificador")
        linked = session.exec(select(User).where(User.student_id == student_id)).first()
        if linked:
            raise HTTPException(status_code=400, detail="El identificador ya está asociado a otra cuenta")
    elif student_id:
        raise HTTPException(status_code=400, detail="Solo las cuentas de estudiante llevan identificador")
    user = _create_user(session, payload.email, payload.full_name, payload.password, payload.role.value, student_id)
    return _read(user)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=6)
    new_password: str = Field(min_length=8)


@router.post("/change-password", response_model=TokenResponse)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session=Depends(get_session),
):
    if not verify_password(payload.current_password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Contraseña actual incorrecta")
    if payload.current_password == payload.new_password:
        raise HTTPException(status_code=400, detail="La nueva contraseña debe ser diferente")
    user.hashed_password = get_password_hash(payload.new_password)
    user.must_change_password = False
    session.add(user)
    session.commit()
    session.refresh(user)
    return _token_for(user)


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(get_current_user)):
    return _read(user)
