from datetime import datetime, timezone
from typing import Any, Dict, Optional
from enum import Enum
from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserRoleEnum(str, Enum):
    admin = "admin"
    director = "director"
    student = "student"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    full_name: str
    hashed_password: str
    role: str = Field(index=True)  # valores permitidos: admin, director, student
    is_active: bool = Field(default=True)
    must_change_password: bool = Field(default=False, nullable=False)
    # Identificador del estudiante (real o anónimo) para cuentas con rol student
    student_id: Optional[str] = Field(default=None, index=True, sa_column_kwargs={"nullable": True})


class Program(SQLModel, table=True):
    id: str = Field(primary_key=True, max_length=64)
    name: str
    description: Optional[str] = None
    is_active: bool = Field(default=True)


class UserProgram(SQLModel, table=True):
    """Derecho de un usuario (director) sobre el listado de estudiantes de un programa."""

    __table_args__ = (
        UniqueConstraint("email", "program", name="uq_user_program"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True)
    program: str = Field(foreign_key="program.id", index=True)


class AnonymousId(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(index=True, unique=True)
    anonymous_id: str = Field(index=True, unique=True)


class Student(SQLModel, table=True):
    # Siempre en el espacio de identificadores anónimos
    id: str = Field(primary_key=True, max_length=64)
    name: str
    state: str = Field(default="active")


class StudentProgram(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("student_id", "program_id", "curriculum", name="uq_student_program_curriculum"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(foreign_key="student.id", index=True)
    program_id: str = Field(foreign_key="program.id", index=True)
    curriculum: str = Field(index=True)
    start_year: int
    mention: str = Field(default="")
    completion: float = Field(default=0.0, description="Avance de la carrera (0-1)")
    last_term: int = Field(default=0, description="Último periodo cursado: año*10+periodo")


class StudentTerm(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(foreign_key="student.id", index=True)
    program_id: str = Field(foreign_key="program.id", index=True)
    curriculum: str
    year: int
    term: int
    situation: str = Field(default="")
    semestral_grade: float = Field(default=0.0)
    cumulated_grade: float = Field(default=0.0)
    program_grade: float = Field(default=0.0)
    comments: str = Field(default="")


class CurriculumCourse(SQLModel, table=True):
    """Malla curricular: ramos de un (programa, currículum) agrupados por ciclo."""

    __table_args__ = (
        UniqueConstraint("program_id", "curriculum", "course_code", name="uq_curriculum_course"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    program_id: str = Field(foreign_key="program.id", index=True)
    curriculum: str = Field(index=True)
    course_code: str = Field(index=True)
    course_name: str = Field(default="")
    course_cat: str = Field(index=True, description="Ciclo o categoría del ramo")
    semester: int = Field(default=1)
    credits: int = Field(default=0)


class StudentCourse(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: str = Field(foreign_key="student.id", index=True)
    program_id: str = Field(foreign_key="program.id", index=True)
    curriculum: str
    course_code: str = Field(index=True)
    year: int
    term: int
    state: str = Field(description="A = aprobado, R = reprobado, C = cursando")
    grade: Optional[float] = None


class StudentDropout(SQLModel, table=True):
    student_id: str = Field(foreign_key="student.id", primary_key=True)
    prob_dropout: Optional[float] = None
    model_accuracy: Optional[float] = None
    active: bool = Field(default=True)
    explanation: Optional[str] = None


class StudentAdmission(SQLModel, table=True):
    student_id: str = Field(foreign_key="student.id", primary_key=True)
    type_admission: str
    initial_test: Optional[float] = None
    final_test: Optional[float] = None
    active: bool = Field(default=True)


class StudentEmployed(SQLModel, table=True):
    student_id: str = Field(foreign_key="student.id", primary_key=True)
    employed: bool = Field(default=False)
    institution_type: Optional[str] = None
    educational_system: Optional[str] = None
    months_to_first_job: Optional[int] = None
    description: Optional[str] = None


class Persistence(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("user", "key", name="uq_persistence_user_key"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user: str = Field(index=True)
    key: str = Field(index=True)
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    timestamp: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


class Configuration(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    value: str
