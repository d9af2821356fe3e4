import asyncio
import threading
from contextlib import contextmanager

from sqlalchemy import event

import trackdash.db as db
from trackdash.dataloaders.context import Loaders
from trackdash.dataloaders.loader import LoaderRegistry
from trackdash.models import StudentProgram
from trackdash.resolvers.student import StudentResolver, StudentRoot

from conftest import CURRENT_YEAR


@contextmanager
def count_queries():
    statements = []

    def _before_execute(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", _before_execute)
    try:
        yield statements
    finally:
        event.remove(db.engine, "before_cursor_execute", _before_execute)


def _loaders(session):
    return Loaders(session, registry=LoaderRegistry())


def test_via_programs_and_missing_keys(session, dashboard):
    recent = dashboard.students[dashboard.ruts[0]]

    async def scenario():
        loaders = _loaders(session)
        return await asyncio.gather(
            loaders.student_via_programs.load(recent),
            loaders.student_via_programs.load("does-not-exist"),
            loaders.student_dropout.load("does-not-exist"),
            loaders.student_terms.load({"student_id": "does-not-exist", "programs": None}),
        )

    found, missing, dropout, terms = asyncio.run(scenario())
    assert found.name == "Estudiante Reciente"
    assert found.program_id == dashboard.program_id
    assert found.curriculum == dashboard.curriculum
    assert missing is None
    assert dropout is None
    assert terms == []


def test_terms_are_ordered_and_scoped_by_programs(session, dashboard):
    recent = dashboard.students[dashboard.ruts[0]]

    async def scenario():
        loaders = _loaders(session)
        return await asyncio.gather(
            loaders.student_terms.load({"student_id": recent, "programs": None}),
            loaders.student_terms.load({"student_id": recent, "programs": [dashboard.other_program_id]}),
        )

    all_terms, scoped = asyncio.run(scenario())
    assert [(term.year, term.term) for term in all_terms] == [
        (CURRENT_YEAR - 1, 1),
        (CURRENT_YEAR - 1, 2),
        (CURRENT_YEAR, 1),
    ]
    assert scoped == []


def test_last_program_prefers_most_recent_term(session, dashboard):
    student_id = dashboard.students[dashboard.ruts[0]]
    session.add(
        StudentProgram(
            student_id=student_id,
            program_id=dashboard.other_program_id,
            curriculum=dashboard.curriculum,
            start_year=CURRENT_YEAR - 5,
            mention="Antigua",
            completion=0.9,
            last_term=(CURRENT_YEAR - 4) * 10 + 2,
        )
    )
    session.commit()

    async def scenario():
        loaders = _loaders(session)
        return await asyncio.gather(
            loaders.student_last_program.load(student_id),
            loaders.student_programs.load(student_id),
        )

    last, programs = asyncio.run(scenario())
    assert last.program_id == dashboard.program_id
    assert [row.program_id for row in programs] == [dashboard.program_id, dashboard.other_program_id]


def test_cycles_follow_curriculum_order_and_counts(session, dashboard):
    recent = dashboard.students[dashboard.ruts[0]]
    scope = {"program_id": dashboard.program_id, "curriculum": dashboard.curriculum}

    async def scenario():
        loaders = _loaders(session)
        cycles = await loaders.curriculum_cycles.load(scope)
        totals = await loaders.cycle_course_count.load_many([{**scope, "course_cat": cycle} for cycle in cycles])
        approved = await loaders.cycle_approved_count.load_many(
            [{**scope, "course_cat": cycle, "student_id": recent} for cycle in cycles]
        )
        return cycles, totals, approved

    cycles, totals, approved = asyncio.run(scenario())
    assert cycles == ["Plan Común", "Licenciatura", "Especialidad"]
    assert totals == [2, 3, 1]
    assert approved == [2, 1, 0]


def test_student_list_loaders(session, dashboard):
    async def scenario():
        loaders = _loaders(session)
        return await asyncio.gather(
            loaders.student_list.load(dashboard.program_id),
            loaders.student_list_filter.load({"program_id": dashboard.program_id, "curriculum": "1999"}),
            loaders.student_list_filter.load({"curriculum": dashboard.curriculum, "program_id": dashboard.program_id}),
        )

    listed, no_curriculum, filtered = asyncio.run(scenario())
    listed_ids = {item.id for item in listed}
    assert listed_ids == {dashboard.students[dashboard.ruts[0]], dashboard.students[dashboard.ruts[1]]}
    assert no_curriculum == []
    assert {item.id for item in filtered} == listed_ids


def test_resolving_many_students_batches_queries(session, dashboard):
    roots = [StudentRoot(id=student_id) for student_id in dashboard.students.values()]

    async def resolve(resolver, items):
        return await resolver.resolve_summaries(items)

    with count_queries() as single:
        asyncio.run(resolve(StudentResolver(_loaders(session)), roots[:1]))
    with count_queries() as many:
        summaries = asyncio.run(resolve(StudentResolver(_loaders(session)), roots))

    assert len(summaries) == 3
    assert len(many) == len(single)


def test_batch_queries_leave_the_event_loop_free(session, dashboard):
    recent = dashboard.students[dashboard.ruts[0]]
    query_threads = set()

    def _record_thread(conn, cursor, statement, parameters, context, executemany):
        query_threads.add(threading.get_ident())

    async def scenario():
        loaders = _loaders(session)
        return threading.get_ident(), await asyncio.gather(
            loaders.student_via_programs.load(recent),
            loaders.student_dropout.load(recent),
            loaders.curriculum_cycles.load({"program_id": dashboard.program_id, "curriculum": dashboard.curriculum}),
        )

    event.listen(db.engine, "before_cursor_execute", _record_thread)
    try:
        loop_thread, (student, dropout, cycles) = asyncio.run(scenario())
    finally:
        event.remove(db.engine, "before_cursor_execute", _record_thread)

    assert student.name == "Estudiante Reciente"
    assert dropout.prob_dropout == 0.25
    assert cycles == ["Plan Común", "Licenciatura", "Especialidad"]
    assert query_threads
    assert loop_thread not in query_threads
