import os
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional
from uuid import uuid4

# Configurar SQLite de pruebas antes de importar la app
TEST_DB_PATH = os.path.abspath("test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["APP_ENV"] = "dev"
os.environ.pop("LOADER_RESET_CHANNEL_URL", None)

try:
    os.remove(TEST_DB_PATH)
except FileNotFoundError:
    pass

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, select  # noqa: E402

import trackdash.db as db  # noqa: E402
from trackdash.models import (  # noqa: E402
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
from trackdash.security import get_password_hash  # noqa: E402
from trackdash.services.anonymization import AnonymizationService  # noqa: E402


CURRENT_YEAR = date.today().year


@pytest.fixture(scope="session")
def client():
    import trackdash.main as main

    db.init_db()
    assert TEST_DB_PATH in str(db.engine.url), f"Engine apunta a {db.engine.url}"

    client = TestClient(main.app)
    yield client
    client.close()


@pytest.fixture()
def session(client):
    with Session(db.engine) as session:
        yield session


def _auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


TEST_PASSWORD = "secret123"
ADMIN_EMAIL = "admin@test.com"


def login(client: TestClient, email: str, password: str = TEST_PASSWORD) -> str:
    res = client.post(
        "/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert res.status_code == 200, res.text
    return res.json()["access_token"]


def _ensure_admin() -> None:
    # El primer admin no puede crearse por la API
    with Session(db.engine) as session:
        if session.exec(select(User).where(User.email == ADMIN_EMAIL)).first() is None:
            session.add(
                User(
                    email=ADMIN_EMAIL,
                    full_name="Admin Test",
                    hashed_password=get_password_hash(TEST_PASSWORD),
                    role="admin",
                )
            )
            session.commit()


def create_and_login(client: TestClient, role: str, email: Optional[str] = None, student_id: Optional[str] = None) -> str:
    """Create an account through the admin endpoint and return its token."""
    _ensure_admin()
    email = email or f"{role}-{uuid4().hex[:8]}@test.com"
    if email != ADMIN_EMAIL:
        payload = {
            "email": email,
            "full_name": f"{role.title()} Test",
            "password": TEST_PASSWORD,
            "role": role,
        }
        if student_id is not None:
            payload["student_id"] = student_id
        # Una cuenta ya creada se reutiliza
        client.post("/auth/users", json=payload, headers=_auth_headers(login(client, ADMIN_EMAIL)))
    return login(client, email)


@pytest.fixture()
def admin_token(client: TestClient):
    _ensure_admin()
    return login(client, ADMIN_EMAIL)


@pytest.fixture()
def admin_headers(admin_token: str):
    return _auth_headers(admin_token)


CYCLES = [
    # (código, ciclo, semestre)
    ("MAT021", "Plan Común", 1),
    ("FIS100", "Plan Común", 2),
    ("INF134", "Licenciatura", 3),
    ("INF253", "Licenciatura", 4),
    ("INF239", "Licenciatura", 5),
    ("INF236", "Especialidad", 7),
]


@dataclass
class DashboardData:
    """Identifiers of one isolated program with its students."""

    program_id: str
    other_program_id: str
    curriculum: str
    director_email: str
    director_token: str
    # rut -> id anónimo
    students: Dict[str, str] = field(default_factory=dict)
    ruts: List[str] = field(default_factory=list)

    @property
    def director_headers(self) -> Dict[str, str]:
        return _auth_headers(self.director_token)


def _add_student(
    session: Session,
    anonymization: AnonymizationService,
    rut: str,
    name: str,
    enrollments: List[dict],
    approved: Optional[Dict[str, List[str]]] = None,
) -> str:
    student_id = anonymization.register(rut)
    session.add(Student(id=student_id, name=name, state="active"))
    for enrollment in enrollments:
        terms = enrollment.pop("terms")
        last_year, last_period = terms[-1]
        session.add(
            StudentProgram(
                student_id=student_id,
                last_term=last_year * 10 + last_period,
                **enrollment,
            )
        )
        for year, period in terms:
            session.add(
                StudentTerm(
                    student_id=student_id,
                    program_id=enrollment["program_id"],
                    curriculum=enrollment["curriculum"],
                    year=year,
                    term=period,
                    situation="Regular",
                )
            )
    for program_id, codes in (approved or {}).items():
        for code in codes:
            session.add(
                StudentCourse(
                    student_id=student_id,
                    program_id=program_id,
                    curriculum="2015",
                    course_code=code,
                    year=CURRENT_YEAR - 1,
                    term=1,
                    state="A",
                    grade=5.0,
                )
            )
    session.commit()
    return student_id


@pytest.fixture()
def dashboard(client: TestClient, session: Session) -> DashboardData:
    """Program with curriculum cycles, three students and a director with rights on it."""
    suffix = uuid4().hex[:8]
    program_id = f"P{suffix}"
    other_program_id = f"Q{suffix}"
    curriculum = "2015"

    session.add(Program(id=program_id, name="Ingeniería de Prueba"))
    session.add(Program(id=other_program_id, name="Programa Ajeno"))
    session.commit()

    for program in (program_id, other_program_id):
        for code, course_cat, semester in CYCLES:
            session.add(
                CurriculumCourse(
                    program_id=program,
                    curriculum=curriculum,
                    course_code=code,
                    course_cat=course_cat,
                    semester=semester,
                )
            )
    session.commit()

    anonymization = AnonymizationService(session)
    data = DashboardData(
        program_id=program_id,
        other_program_id=other_program_id,
        curriculum=curriculum,
        director_email=f"director-{suffix}@test.com",
        director_token="",
    )

    recent = f"R{suffix}-1"
    data.students[recent] = _add_student(
        session,
        anonymization,
        recent,
        "Estudiante Reciente",
        [
            {
                "program_id": program_id,
                "curriculum": curriculum,
                "start_year": CURRENT_YEAR - 1,
                "mention": "Computación",
                "completion": 0.4,
                "terms": [(CURRENT_YEAR - 1, 1), (CURRENT_YEAR - 1, 2), (CURRENT_YEAR, 1)],
            }
        ],
        approved={program_id: ["MAT021", "FIS100", "INF134"]},
    )
    session.add(StudentDropout(student_id=data.students[recent], prob_dropout=0.25, model_accuracy=0.8))
    session.add(StudentAdmission(student_id=data.students[recent], type_admission="PSU", initial_test=640.0))
    session.commit()

    old = f"R{suffix}-2"
    data.students[old] = _add_student(
        session,
        anonymization,
        old,
        "Estudiante Antiguo",
        [
            {
                "program_id": program_id,
                "curriculum": curriculum,
                "start_year": CURRENT_YEAR - 8,
                "mention": "",
                "completion": 1.0,
                "terms": [(CURRENT_YEAR - 8, 1), (CURRENT_YEAR - 6, 2)],
            }
        ],
        approved={program_id: [code for code, _, _ in CYCLES]},
    )
    session.add(StudentEmployed(student_id=data.students[old], employed=True, months_to_first_job=4))
    session.commit()

    outsider = f"R{suffix}-3"
    data.students[outsider] = _add_student(
        session,
        anonymization,
        outsider,
        "Estudiante de Otro Programa",
        [
            {
                "program_id": other_program_id,
                "curriculum": curriculum,
                "start_year": CURRENT_YEAR - 2,
                "mention": "",
                "completion": 0.5,
                "terms": [(CURRENT_YEAR - 2, 1), (CURRENT_YEAR, 1)],
            }
        ],
    )
    data.ruts = [recent, old, outsider]

    session.add(UserProgram(email=data.director_email, program=program_id))
    session.commit()
    data.director_token = create_and_login(client, "director", email=data.director_email)
    return data
