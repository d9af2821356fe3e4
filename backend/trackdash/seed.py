from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from . import db
from .models import (
    CurriculumCourse,
    Program,
    Student,
    StudentAdmission,
    StudentCourse,
    StudentDropout,
    StudentEmployed,
    StudentProgram,
    StudentTerm,
    User,
    UserProgram,
)
from .security import get_password_hash, verify_password
from .services.anonymization import AnonymizationService


DEFAULT_ADMIN_EMAIL = "admin@trackdash.dev"
DEFAULT_ADMIN_PASSWORD = "admin123"
DEFAULT_ADMIN_NAME = "Administrador Demo"

DEFAULT_DIRECTOR_EMAIL = "director@trackdash.dev"
DEFAULT_DIRECTOR_PASSWORD = "director123"
DEFAULT_DIRECTOR_NAME = "Dirección de Carrera"

DEMO_STUDENT_PASSWORD = "student123"


def ensure_default_admin(session: Optional[Session] = None, force_password_reset: bool = False) -> User:
    """Create a default admin user for local development if none exists."""
    owns_session = session is None
    session = session or Session(db.engine)
    try:
        existing = session.exec(select(User).where(User.email == DEFAULT_ADMIN_EMAIL)).first()
        if existing:
            updated = False
            if existing.role != "admin":
                existing.role = "admin"
                updated = True
            if not existing.is_active:
                existing.is_active = True
                updated = True
            if not force_password_reset and not verify_password(DEFAULT_ADMIN_PASSWORD, existing.hashed_password):
                existing.hashed_password = get_password_hash(DEFAULT_ADMIN_PASSWORD)
                updated = True
            if updated:
                session.add(existing)
                session.commit()
                session.refresh(existing)
            return existing
        user = User(
            email=DEFAULT_ADMIN_EMAIL,
            full_name=DEFAULT_ADMIN_NAME,
            hashed_password=get_password_hash(DEFAULT_ADMIN_PASSWORD),
            role="admin",
            is_active=True,
            must_change_password=force_password_reset,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    finally:
        if owns_session:
            session.close()


def ensure_demo_data() -> None:
    """Populate the dashboard tables with deterministic demo data for the UI."""
    with Session(db.engine) as session:
        ensure_default_admin(session)
        director = _get_or_create_user(
            session,
            email=DEFAULT_DIRECTOR_EMAIL,
            full_name=DEFAULT_DIRECTOR_NAME,
            role="director",
            password=DEFAULT_DIRECTOR_PASSWORD,
        )
        program_map = _ensure_programs(session)
        for program_id in program_map:
            _ensure_user_program(session, director.email, program_id)
        _ensure_curriculum(session)
        _ensure_students(session)


def _get_or_create_user(
    session: Session,
    *,
    email: str,
    full_name: str,
    role: str,
    password: str,
    **extra,
) -> User:
    user = session.exec(select(User).where(User.email == email)).first()
    if user:
        return user

    user = User(
        email=email,
        full_name=full_name,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True,
        **extra,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _ensure_programs(session: Session) -> Dict[str, Program]:
    data = [
        {"id": "1707", "name": "Ingeniería Civil Informática"},
        {"id": "1708", "name": "Ingeniería Civil Industrial"},
    ]
    program_map: Dict[str, Program] = {}
    for item in data:
        program = session.get(Program, item["id"])
        if not program:
            program = Program(**item)
            session.add(program)
            session.commit()
            session.refresh(program)
        program_map[program.id] = program
    return program_map


def _ensure_user_program(session: Session, email: str, program_id: str) -> None:
    existing = session.exec(
        select(UserProgram).where(UserProgram.email == email, UserProgram.program == program_id)
    ).first()
    if not existing:
        session.add(UserProgram(email=email, program=program_id))
        session.commit()


# (código, nombre, ciclo, semestre)
_CURRICULUM_2015: List[tuple] = [
    ("MAT021", "Matemática I", "Plan Común", 1),
    ("FIS100", "Introducción a la Física", "Plan Común", 1),
    ("INF134", "Estructuras de Datos", "Licenciatura", 3),
    ("INF253", "Lenguajes de Programación", "Licenciatura", 4),
    ("INF236", "Análisis y Diseño de Software", "Especialidad", 7),
    ("INF285", "Computación Científica", "Especialidad", 8),
]


def _ensure_curriculum(session: Session) -> None:
    for program_id in ("1707", "1708"):
        for code, name, course_cat, semester in _CURRICULUM_2015:
            existing = session.exec(
                select(CurriculumCourse).where(
                    CurriculumCourse.program_id == program_id,
                    CurriculumCourse.curriculum == "2015",
                    CurriculumCourse.course_code == code,
                )
            ).first()
            if existing:
                continue
            session.add(
                CurriculumCourse(
                    program_id=program_id,
                    curriculum="2015",
                    course_code=code,
                    course_name=name,
                    course_cat=course_cat,
                    semester=semester,
                    credits=3,
                )
            )
    session.commit()


_DEMO_STUDENTS: List[Dict[str, Any]] = [
    {
        "rut": "19123456-7",
        "name": "Camila Rojas",
        "state": "active",
        "program_id": "1707",
        "start_year": 2019,
        "mention": "Ciencias de la Computación",
        "completion": 0.65,
        "terms": [(2019, 1), (2019, 2), (2020, 1), (2020, 2)],
        "approved": ["MAT021", "FIS100", "INF134"],
        "dropout": {"prob_dropout": 0.18, "model_accuracy": 0.82, "active": True},
        "admission": {"type_admission": "PSU", "initial_test": 650.0, "final_test": 5.8},
        "employed": None,
    },
    {
        "rut": "18987654-3",
        "name": "Matías Soto",
        "state": "graduated",
        "program_id": "1707",
        "start_year": 2014,
        "mention": "",
        "completion": 1.0,
        "terms": [(2015, 1), (2015, 2), (2016, 1), (2016, 2)],
        "approved": [code for code, *_ in _CURRICULUM_2015],
        "dropout": None,
        "admission": {"type_admission": "PSU", "initial_test": 700.0, "final_test": 6.1},
        "employed": {"employed": True, "institution_type": "privada", "months_to_first_job": 3},
    },
    {
        "rut": "20111222-K",
        "name": "Javiera Muñoz",
        "state": "active",
        "program_id": "1708",
        "start_year": 2020,
        "mention": "",
        "completion": 0.3,
        "terms": [(2020, 1), (2020, 2)],
        "approved": ["MAT021"],
        "dropout": {"prob_dropout": 0.42, "model_accuracy": 0.77, "active": True},
        "admission": None,
        "employed": None,
    },
]


def _ensure_students(session: Session) -> None:
    anonymization = AnonymizationService(session)
    for item in _DEMO_STUDENTS:
        student_id = anonymization.register(item["rut"])
        if session.get(Student, student_id):
            continue
        session.add(Student(id=student_id, name=item["name"], state=item["state"]))
        last_year, last_period = item["terms"][-1]
        session.add(
            StudentProgram(
                student_id=student_id,
                program_id=item["program_id"],
                curriculum="2015",
                start_year=item["start_year"],
                mention=item["mention"],
                completion=item["completion"],
                last_term=last_year * 10 + last_period,
            )
        )
        for year, period in item["terms"]:
            session.add(
                StudentTerm(
                    student_id=student_id,
                    program_id=item["program_id"],
                    curriculum="2015",
                    year=year,
                    term=period,
                    situation="Regular",
                )
            )
        first_year, first_period = item["terms"][0]
        for code in item["approved"]:
            session.add(
                StudentCourse(
                    student_id=student_id,
                    program_id=item["program_id"],
                    curriculum="2015",
                    course_code=code,
                    year=first_year,
                    term=first_period,
                    state="A",
                    grade=5.5,
                )
            )
        if item["dropout"]:
            session.add(StudentDropout(student_id=student_id, **item["dropout"]))
        if item["admission"]:
            session.add(StudentAdmission(student_id=student_id, **item["admission"]))
        if item["employed"]:
            session.add(StudentEmployed(student_id=student_id, **item["employed"]))
        session.commit()
        _get_or_create_user(
            session,
            email=f"{item['rut'].lower()}@estudiantes.trackdash.dev",
            full_name=item["name"],
            role="student",
            password=DEMO_STUDENT_PASSWORD,
            student_id=item["rut"],
        )
