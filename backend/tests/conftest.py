import asyncio
import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CACHE_ENABLED", "false")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from examroom.core.cache import CacheManager
from examroom.core.database import build_async_engine, create_db_and_tables
from examroom.models import Exam, ExamAssignment, Question, Student
from examroom.services.exam_session import EngineTimings, ExamSessionController
from examroom.services.session_monitor import MonitorTimings
from examroom.services.session_store import SessionStore
from examroom.utils.fingerprint import DeviceSignals

LAPTOP = DeviceSignals(
    user_agent="Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0",
    language="en-US",
    screen_width=1920,
    screen_height=1080,
    color_depth=24,
    timezone_offset=-300,
    cookies_enabled=True,
    hardware_concurrency=8,
    platform="Linux x86_64",
)

TABLET = DeviceSignals(
    user_agent="Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) Safari/604.1",
    language="en-GB",
    screen_width=1024,
    screen_height=768,
    color_depth=32,
    timezone_offset=-300,
    cookies_enabled=True,
    hardware_concurrency=4,
    platform="iPad",
)

# Loops that would otherwise tick during a test are pushed far out; tests
# drive ticks by hand unless they shorten a specific interval.
SLOW = 3600.0


def fast_timings(**overrides) -> EngineTimings:
    monitor = MonitorTimings(
        heartbeat_interval=SLOW,
        device_check_interval=SLOW,
        status_check_interval=SLOW,
        stale_verification_seconds=15,
        heartbeat_max_failures=3,
        redirect_grace_seconds=0.01,
    )
    values = dict(
        timer_tick_seconds=SLOW,
        fullscreen_check_interval=SLOW,
        fullscreen_warning_debounce=5,
        answer_save_throttle=0.05,
        max_violations=3,
        violation_reset_seconds=SLOW,
        redirect_grace_seconds=0.01,
        monitor=monitor,
    )
    values.update(overrides)
    return EngineTimings(**values)


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'examroom.db'}")
    await create_db_and_tables(engine)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield factory
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return SessionStore(session_factory, cache=CacheManager(enabled=False))


async def add_student(session_factory, student_id="S1001", name="Aigerim Sadykova", grade="10", section="A"):
    async with session_factory() as db:
        student = Student(student_id=student_id, name=name, grade=grade, section=section)
        db.add(student)
        await db.commit()
        await db.refresh(student)
        return student


async def add_exam(session_factory, exam_code="MATH10", questions=None, **fields):
    values = dict(
        title="Algebra midterm",
        description="Chapters 1-4",
        duration=30,
        total_marks=0,
        grade="10",
        section="A",
        questions_shuffled=False,
        options_shuffled=False,
        fullscreen_required=False,
        show_results=True,
        exam_active=True,
        created_by=7,
    )
    values.update(fields)
    async with session_factory() as db:
        exam = Exam(exam_code=exam_code, **values)
        db.add(exam)
        await db.flush()
        for question_fields in questions if questions is not None else default_questions():
            db.add(Question(exam_id=exam.id, **question_fields))
        await db.commit()
        await db.refresh(exam)
        return exam


async def assign(session_factory, exam, student):
    async with session_factory() as db:
        db.add(ExamAssignment(exam_id=exam.id, student_id=student.id))
        await db.commit()


def default_questions():
    return [
        {
            "question_type": "mcq",
            "question_text": "2 + 2 = ?",
            "marks": 1,
            "options": {"options": ["3", "4", "5", "22"], "correct_option_id": 1},
        },
        {
            "question_type": "true_false",
            "question_text": "Zero is an even number.",
            "marks": 1,
            "options": [{"text": "True", "correct": True}, {"text": "False", "correct": False}],
        },
        {
            "question_type": "mcq",
            "question_text": "Which is prime?",
            "marks": 2,
            "options": [{"text": "4"}, {"text": "6"}, {"text": "7", "correct": True}, {"text": "9"}],
        },
    ]


@pytest.fixture
async def seeded(session_factory):
    student = await add_student(session_factory)
    exam = await add_exam(session_factory)
    return student, exam


@pytest.fixture
async def make_controller(store):
    controllers = []

    def factory(student_code="S1001", exam_code="MATH10", signals=LAPTOP, timings=None, **kwargs):
        controller = ExamSessionController(
            store, student_code, exam_code, signals=signals, timings=timings or fast_timings(), **kwargs
        )
        controllers.append(controller)
        return controller

    yield factory

    for controller in controllers:
        await controller.close()


async def wait_for(condition, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)
