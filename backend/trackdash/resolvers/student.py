"""Student field resolvers and the student lookup operations.

Fields are resolved from a :class:`StudentRoot` projection through the
request loaders, so resolving many students at once costs one query per
loader rather than one per student.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlmodel import Session, select

from ..dataloaders.context import Loaders
from ..dataloaders.student import StudentListItem
from ..db import run_in_session
from ..models import StudentAdmission, StudentDropout, StudentEmployed, StudentProgram, StudentTerm, User, UserProgram
from ..security import is_student


STUDENT_NOT_FOUND = "Estudiante no encontrado"
PROGRAM_NOT_FOUND = "Programa no encontrado"
STUDENT_LIST_UNAUTHORIZED = "No tienes permisos sobre el listado de estudiantes de este programa"


class StudentRoot(BaseModel):
    id: str
    name: str = ""
    state: str = ""
    programs: Optional[List[str]] = None
    # Currículum ya conocido al construir la raíz (p. ej. desde el listado)
    curriculum: Optional[str] = None
    program: Optional[str] = None


def _uniq(values) -> List[Any]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _not_found(detail: str = STUDENT_NOT_FOUND) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class StudentResolver:
    def __init__(self, loaders: Loaders) -> None:
        self.loaders = loaders

    async def programs(self, root: StudentRoot) -> List[str]:
        if root.programs is not None:
            return root.programs
        rows = await self.loaders.student_programs.load(root.id)
        return _uniq(row.program_id for row in rows)

    async def terms(self, root: StudentRoot) -> List[StudentTerm]:
        return await self.loaders.student_terms.load({"student_id": root.id, "programs": root.programs})

    async def curriculums(self, root: StudentRoot) -> List[str]:
        return _uniq(term.curriculum for term in await self.terms(root))

    async def start_year(self, root: StudentRoot) -> int:
        last = await self.loaders.student_last_program.load(root.id)
        return last.start_year if last is not None else 0

    async def mention(self, root: StudentRoot) -> str:
        last = await self.loaders.student_last_program.load(root.id)
        return last.mention if last is not None else ""

    async def progress(self, root: StudentRoot) -> float:
        last = await self.loaders.student_last_program.load(root.id)
        return last.completion if last is not None else -1

    async def dropout(self, root: StudentRoot) -> Optional[StudentDropout]:
        return await self.loaders.student_dropout.load(root.id)

    async def admission(self, root: StudentRoot) -> Optional[StudentAdmission]:
        return await self.loaders.student_admission.load(root.id)

    async def employed(self, root: StudentRoot) -> Optional[StudentEmployed]:
        return await self.loaders.student_employed.load(root.id)

    async def _cycle_scope(self, root: StudentRoot) -> Optional[Tuple[str, str]]:
        programs = await self.programs(root)
        if not programs:
            return None
        program_id = programs[0]
        if root.curriculum is not None:
            return program_id, root.curriculum
        rows: List[StudentProgram] = await self.loaders.student_programs.load(root.id)
        for row in rows:
            if row.program_id == program_id:
                return program_id, row.curriculum
        return None

    async def n_cycles(self, root: StudentRoot) -> List[str]:
        scope = await self._cycle_scope(root)
        if scope is None:
            return []
        program_id, curriculum = scope
        return await self.loaders.curriculum_cycles.load({"program_id": program_id, "curriculum": curriculum})

    async def n_courses_cycles(self, root: StudentRoot) -> List[int]:
        """Flat ``[total, approved, total, approved, ...]`` list, one pair per cycle."""
        scope = await self._cycle_scope(root)
        if scope is None:
            return []
        program_id, curriculum = scope
        cycles = await self.loaders.curriculum_cycles.load({"program_id": program_id, "curriculum": curriculum})

        values: List[int] = []
        # Secuencial a propósito: el orden de los pares es el orden de n_cycles
        for course_cat in cycles:
            n_courses = await self.loaders.cycle_course_count.load(
                {"program_id": program_id, "curriculum": curriculum, "course_cat": course_cat}
            )
            n_approved = await self.loaders.cycle_approved_count.load(
                {
                    "program_id": program_id,
                    "curriculum": curriculum,
                    "student_id": root.id,
                    "course_cat": course_cat,
                }
            )
            values.append(int(n_courses))
            values.append(int(n_approved))
        return values

    async def resolve_summary(self, root: StudentRoot) -> Dict[str, Any]:
        programs, curriculums, start_year, mention, progress = await asyncio.gather(
            self.programs(root),
            self.curriculums(root),
            self.start_year(root),
            self.mention(root),
            self.progress(root),
        )
        return {
            "id": root.id,
            "name": root.name,
            "state": root.state,
            "programs": programs,
            "curriculums": curriculums,
            "start_year": start_year,
            "mention": mention,
            "progress": progress,
        }

    async def resolve_summaries(self, roots: List[StudentRoot]) -> List[Dict[str, Any]]:
        return list(await asyncio.gather(*(self.resolve_summary(root) for root in roots)))

    async def resolve_detail(self, root: StudentRoot) -> Dict[str, Any]:
        summary, terms, dropout, admission, employed, n_cycles, n_courses_cycles = await asyncio.gather(
            self.resolve_summary(root),
            self.terms(root),
            self.dropout(root),
            self.admission(root),
            self.employed(root),
            self.n_cycles(root),
            self.n_courses_cycles(root),
        )
        summary.update(
            terms=terms,
            dropout=dropout,
            admission=admission,
            employed=employed,
            n_cycles=n_cycles,
            n_courses_cycles=n_courses_cycles,
        )
        return summary


def _director_owns_student(session: Session, email: str, program_id: str, student_id: str) -> bool:
    authorized_programs = session.exec(
        select(UserProgram.program).where(UserProgram.email == email, UserProgram.program == program_id)
    ).all()
    if not authorized_programs:
        return False
    enrollment = session.exec(
        select(StudentProgram.program_id).where(
            StudentProgram.student_id == student_id,
            StudentProgram.program_id.in_(list(authorized_programs)),
        )
    ).first()
    return enrollment is not None


def assert_program_rights(session: Session, user: User, program_id: str) -> None:
    right = session.exec(
        select(UserProgram).where(UserProgram.email == user.email, UserProgram.program == program_id)
    ).first()
    if not right:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=STUDENT_LIST_UNAUTHORIZED)


async def find_student(
    session: Session,
    loaders: Loaders,
    user: User,
    student_id: Optional[str] = None,
    program_id: Optional[str] = None,
) -> Optional[StudentRoot]:
    anonymization = loaders.anonymization

    if is_student(user):
        if not user.student_id:
            raise _not_found()
        own_id = await anonymization.get_anonymous_id_or_get_it_back(user.student_id)
        data = await loaders.student_via_programs.load(own_id)
        if data is None:
            raise _not_found()
        return StudentRoot(
            id=own_id,
            name=data.name,
            state=data.state,
            programs=[data.program_id],
            curriculum=data.curriculum,
            program=data.program_id,
        )

    if student_id is None:
        raise _not_found()
    if program_id is None:
        raise _not_found(PROGRAM_NOT_FOUND)
    if student_id == "":
        return None

    student_id = await anonymization.get_anonymous_id_or_get_it_back(student_id)

    # Sin permisos y estudiante inexistente responden igual para no filtrar existencia
    if not await run_in_session(session, _director_owns_student, session, user.email, program_id, student_id):
        raise _not_found()

    data = await loaders.student_via_programs.load(student_id)
    if data is None:
        raise _not_found()

    return StudentRoot(
        id=student_id,
        name=data.name,
        state=data.state,
        programs=[program_id],
        curriculum=data.curriculum,
        program=data.program_id,
    )


def _root_from_item(item: StudentListItem) -> StudentRoot:
    return StudentRoot(
        id=item.id,
        name=item.name,
        state=item.state,
        curriculum=item.curriculum,
        program=item.program_id,
    )


async def list_students(
    session: Session,
    loaders: Loaders,
    user: User,
    program_id: str,
    last_n_years: int = 2,
    today: Optional[date] = None,
) -> List[StudentRoot]:
    await run_in_session(session, assert_program_rights, session, user, program_id)

    items = await loaders.student_list.load(program_id)
    since_year = (today or date.today()).year - last_n_years
    return [_root_from_item(item) for item in items if (item.last_term or 0) / 10 >= since_year]


async def filter_students(
    session: Session,
    loaders: Loaders,
    user: User,
    program_id: str,
    curriculum: str,
) -> List[StudentRoot]:
    await run_in_session(session, assert_program_rights, session, user, program_id)

    items = await loaders.student_list_filter.load({"program_id": program_id, "curriculum": curriculum})
    return [_root_from_item(item) for item in items]
