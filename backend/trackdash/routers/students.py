from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from ..dataloaders.context import Loaders, get_loaders
from ..db import get_session
from ..models import StudentAdmission, StudentDropout, StudentEmployed, StudentTerm
from ..resolvers.student import StudentResolver, filter_students, find_student, list_students
from ..security import get_current_user


router = APIRouter(prefix="/students", tags=["students"])


class StudentSearch(BaseModel):
    student_id: Optional[str] = None
    program_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class StudentSummaryRead(BaseModel):
    id: str
    name: str
    state: str
    programs: List[str]
    curriculums: List[str]
    start_year: int
    mention: str
    progress: float


class StudentDetailRead(StudentSummaryRead):
    terms: List[StudentTerm]
    dropout: Optional[StudentDropout] = None
    admission: Optional[StudentAdmission] = None
    employed: Optional[StudentEmployed] = None
    n_cycles: List[str]
    n_courses_cycles: List[int]


@router.post("/search", response_model=Optional[StudentDetailRead])
async def search_student(
    payload: StudentSearch,
    session=Depends(get_session),
    loaders: Loaders = Depends(get_loaders),
    user=Depends(get_current_user),
):
    root = await find_student(session, loaders, user, payload.student_id, payload.program_id)
    if root is None:
        return None
    return await StudentResolver(loaders).resolve_detail(root)


@router.get("/", response_model=List[StudentSummaryRead])
async def get_students(
    program_id: str,
    last_n_years: int = Query(default=2, ge=0),
    session=Depends(get_session),
    loaders: Loaders = Depends(get_loaders),
    user=Depends(get_current_user),
):
    roots = await list_students(session, loaders, user, program_id, last_n_years)
    return await StudentResolver(loaders).resolve_summaries(roots)


@router.get("/filter", response_model=List[StudentSummaryRead])
async def get_students_filter(
    program_id: str,
    curriculum: str,
    session=Depends(get_session),
    loaders: Loaders = Depends(get_loaders),
    user=Depends(get_current_user),
):
    roots = await filter_students(session, loaders, user, program_id, curriculum)
    return await StudentResolver(loaders).resolve_summaries(roots)
