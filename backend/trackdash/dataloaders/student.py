from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlmodel import Session, SQLModel, select

from ..db import threaded_batch
from ..models import (
    Student,
    StudentAdmission,
    StudentDropout,
    StudentEmployed,
    StudentProgram,
    StudentTerm,
)


TRecord = TypeVar("TRecord", bound=SQLModel)


class StudentBase(SQLModel):
    id: str
    name: str
    state: str
    program_id: str
    curriculum: str


class StudentListItem(SQLModel):
    id: str
    name: str
    state: str
    program_id: str
    curriculum: str
    start_year: int
    last_term: int


def program_recency(row: StudentProgram):
    # Más reciente primero: último periodo, luego año de ingreso, luego código de programa
    return (-row.last_term, -row.start_year, row.program_id, row.curriculum)


def sort_programs(rows: Iterable[StudentProgram]) -> List[StudentProgram]:
    return sorted(rows, key=program_recency)


def _group_by(rows: Iterable[Any], attr: str) -> Dict[Any, List[Any]]:
    grouped: Dict[Any, List[Any]] = defaultdict(list)
    for row in rows:
        grouped[getattr(row, attr)].append(row)
    return grouped


def _programs_by_student(session: Session, student_ids: Sequence[str]) -> Dict[str, List[StudentProgram]]:
    rows = session.exec(
        select(StudentProgram).where(StudentProgram.student_id.in_(set(student_ids)))
    ).all()
    return {student_id: sort_programs(items) for student_id, items in _group_by(rows, "student_id").items()}


@threaded_batch
def batch_student_via_programs(session: Session, student_ids: List[str]) -> List[Optional[StudentBase]]:
    students = {
        row.id: row
        for row in session.exec(select(Student).where(Student.id.in_(set(student_ids)))).all()
    }
    programs = _programs_by_student(session, student_ids)

    result: List[Optional[StudentBase]] = []
    for student_id in student_ids:
        student = students.get(student_id)
        rows = programs.get(student_id)
        if student is None or not rows:
            result.append(None)
            continue
        last = rows[0]
        result.append(
            StudentBase(
                id=student.id,
                name=student.name,
                state=student.state,
                program_id=last.program_id,
                curriculum=last.curriculum,
            )
        )
    return result


@threaded_batch
def batch_student_programs(session: Session, student_ids: List[str]) -> List[List[StudentProgram]]:
    programs = _programs_by_student(session, student_ids)
    return [programs.get(student_id, []) for student_id in student_ids]


@threaded_batch
def batch_student_last_program(session: Session, student_ids: List[str]) -> List[Optional[StudentProgram]]:
    programs = _programs_by_student(session, student_ids)
    return [(programs.get(student_id) or [None])[0] for student_id in student_ids]


@threaded_batch
def batch_student_terms(session: Session, keys: List[Dict[str, Any]]) -> List[List[StudentTerm]]:
    """Terms of each ``{student_id, programs}`` key, oldest first.

    ``programs`` is an optional list of program ids; ``None`` means every
    program of the student.
    """

    student_ids = {key["student_id"] for key in keys}
    rows = session.exec(
        select(StudentTerm)
        .where(StudentTerm.student_id.in_(student_ids))
        .order_by(StudentTerm.year, StudentTerm.term, StudentTerm.id)
    ).all()
    by_student = _group_by(rows, "student_id")

    result: List[List[StudentTerm]] = []
    for key in keys:
        terms = by_student.get(key["student_id"], [])
        programs = key.get("programs")
        if programs is not None:
            allowed = set(programs)
            terms = [term for term in terms if term.program_id in allowed]
        result.append(list(terms))
    return result


def _list_items(rows: Iterable[Any]) -> List[StudentListItem]:
    # Un estudiante puede tener varias filas en el mismo programa (cambio de currículum)
    latest: Dict[str, StudentProgram] = {}
    students: Dict[str, Student] = {}
    for enrollment, student in rows:
        current = latest.get(student.id)
        if current is None or program_recency(enrollment) < program_recency(current):
            latest[student.id] = enrollment
            students[student.id] = student
    return [
        StudentListItem(
            id=student_id,
            name=students[student_id].name,
            state=students[student_id].state,
            program_id=enrollment.program_id,
            curriculum=enrollment.curriculum,
            start_year=enrollment.start_year,
            last_term=enrollment.last_term,
        )
        for student_id, enrollment in sorted(latest.items())
    ]


@threaded_batch
def batch_student_list(session: Session, program_ids: List[str]) -> List[List[StudentListItem]]:
    rows = session.exec(
        select(StudentProgram, Student)
        .join(Student, Student.id == StudentProgram.student_id)
        .where(StudentProgram.program_id.in_(set(program_ids)))
    ).all()
    by_program: Dict[str, list] = defaultdict(list)
    for enrollment, student in rows:
        by_program[enrollment.program_id].append((enrollment, student))
    return [_list_items(by_program.get(program_id, [])) for program_id in program_ids]


@threaded_batch
def batch_student_list_filter(session: Session, keys: List[Dict[str, str]]) -> List[List[StudentListItem]]:
    rows = session.exec(
        select(StudentProgram, Student)
        .join(Student, Student.id == StudentProgram.student_id)
        .where(
            StudentProgram.program_id.in_({key["program_id"] for key in keys}),
            StudentProgram.curriculum.in_({key["curriculum"] for key in keys}),
        )
    ).all()
    by_scope: Dict[tuple, list] = defaultdict(list)
    for enrollment, student in rows:
        by_scope[(enrollment.program_id, enrollment.curriculum)].append((enrollment, student))
    return [_list_items(by_scope.get((key["program_id"], key["curriculum"]), [])) for key in keys]


def _batch_single_record(model: Type[TRecord]):
    def batch(session: Session, student_ids: List[str]) -> List[Optional[TRecord]]:
        rows = session.exec(select(model).where(model.student_id.in_(set(student_ids)))).all()
        by_student = {row.student_id: row for row in rows}
        return [by_student.get(student_id) for student_id in student_ids]

    batch.__name__ = f"batch_{model.__tablename__}"
    return threaded_batch(batch)


batch_student_dropout = _batch_single_record(StudentDropout)
batch_student_admission = _batch_single_record(StudentAdmission)
batch_student_employed = _batch_single_record(StudentEmployed)
