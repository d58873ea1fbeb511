import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import select, update

from examroom.core.exceptions import (
    ActiveSessionConflict,
    ActiveSessionElsewhere,
    ExamValidationError,
    InvalidSessionState,
    SessionAccessDenied,
    SubmissionError,
)
from examroom.models import ExamSession, ProctoringViolation, Result, SessionSecurity, StudentAnswer
from examroom.services.exam_session import OTHER_DEVICE_REASON, VIOLATION_LIMIT_REASON, ExamStatus
from examroom.services.session_monitor import TerminationReason
from examroom.utils.shuffle import index_for
from examroom.utils.timezone import get_naive_now

from conftest import TABLET, add_exam, add_student, assign, fast_timings, wait_for


async def fetch_session(session_factory, session_id):
    async with session_factory() as db:
        result = await db.execute(select(ExamSession).filter(ExamSession.id == session_id))
        return result.scalars().first()


async def fetch_all(session_factory, model, **filters):
    async with session_factory() as db:
        result = await db.execute(select(model).filter_by(**filters))
        return result.scalars().all()


async def started(make_controller, **kwargs):
    controller = make_controller(**kwargs)
    await controller.load()
    await controller.start()
    return controller


def answer_correctly(question):
    return question.correct_option_id


CAPITALS = {"France": "Paris", "Japan": "Tokyo", "Kenya": "Nairobi", "Peru": "Lima"}


def capitals_question(marks=4):
    pairs = [
        {"sideA": country, "sideB": city, "correctMatch": "ABCD"[position]}
        for position, (country, city) in enumerate(CAPITALS.items())
    ]
    return {"question_type": "matching", "question_text": "Match each country to its capital", "marks": marks, "matching_pairs": pairs}


def blanks_question():
    return {
        "question_type": "fill_blank",
        "question_text": "The capital of Italy is [b1] and the capital of Spain is [b2].",
        "marks": 2,
        "blanks": [{"id": "b1", "answer": "Rome"}, {"id": "b2", "answer": "Madrid"}],
    }


class TestLoad:
    async def test_new_attempt_shows_instructions(self, seeded, make_controller):
        controller = make_controller()
        await controller.load()
        assert controller.status == ExamStatus.INSTRUCTIONS
        assert controller.time_remaining == 30 * 60
        assert controller.session_id is None
        snapshot = controller.snapshot()
        assert snapshot.exam.question_count == 3
        assert snapshot.questions == []

    async def test_unknown_student(self, seeded, make_controller):
        with pytest.raises(ExamValidationError) as exc:
            await make_controller(student_code="NOPE").load()
        assert exc.value.status_code == 404

    async def test_unknown_exam(self, seeded, make_controller):
        with pytest.raises(ExamValidationError, match="Exam not found"):
            await make_controller(exam_code="NOPE").load()

    async def test_inactive_exam(self, session_factory, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, exam_active=False)
        with pytest.raises(ExamValidationError, match="not currently active"):
            await make_controller().load()

    async def test_grade_mismatch(self, session_factory, make_controller):
        await add_student(session_factory, grade="9")
        await add_exam(session_factory)
        with pytest.raises(ExamValidationError, match="grade"):
            await make_controller().load()

    async def test_section_mismatch(self, session_factory, make_controller):
        await add_student(session_factory, section="B")
        await add_exam(session_factory)
        with pytest.raises(ExamValidationError, match="section"):
            await make_controller().load()

    async def test_not_assigned(self, session_factory, make_controller):
        await add_student(session_factory)
        other = await add_student(session_factory, student_id="S2002", name="Dias")
        exam = await add_exam(session_factory)
        await assign(session_factory, exam, other)
        with pytest.raises(ExamValidationError, match="not assigned"):
            await make_controller().load()

    async def test_assigned_student_may_load(self, session_factory, make_controller):
        student = await add_student(session_factory)
        exam = await add_exam(session_factory)
        await assign(session_factory, exam, student)
        controller = make_controller()
        await controller.load()
        assert controller.status == ExamStatus.INSTRUCTIONS

    async def test_exam_without_questions(self, session_factory, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, questions=[])
        with pytest.raises(ExamValidationError, match="No questions"):
            await make_controller().load()

    async def test_active_session_for_another_exam(self, session_factory, seeded, make_controller):
        await add_exam(session_factory, exam_code="PHYS10", title="Physics quiz")
        physics = await started(make_controller, exam_code="PHYS10")

        with pytest.raises(ActiveSessionElsewhere) as exc:
            await make_controller().load()
        assert exc.value.exam_code == "PHYS10"
        assert exc.value.session_id == physics.session_id

    async def test_submitted_attempt_shows_completed(self, seeded, make_controller):
        first = await started(make_controller)
        await first.submit()

        again = make_controller()
        await again.load()
        assert again.status == ExamStatus.COMPLETED
        assert again.grade == first.grade
        assert again.finished.is_set()


class TestStart:
    async def test_start_creates_session_and_security(self, session_factory, seeded, make_controller):
        controller = await started(make_controller)

        assert controller.status == ExamStatus.IN_PROGRESS
        assert controller.token
        assert controller.monitor.is_active()
        assert len(controller.monitor.tasks) == 3

        exam_session = await fetch_session(session_factory, controller.session_id)
        assert exam_session.status == "in_progress"
        assert exam_session.time_remaining == 1800
        assert exam_session.question_order == [q.id for q in controller.questions]

        security = await fetch_all(session_factory, SessionSecurity, session_id=controller.session_id)
        assert len(security) == 1
        assert security[0].is_active
        assert security[0].device_fingerprint == controller.fingerprint

    async def test_cannot_start_twice(self, seeded, make_controller):
        controller = await started(make_controller)
        with pytest.raises(InvalidSessionState):
            await controller.start()

    async def test_duplicate_active_session_conflicts(self, seeded, make_controller):
        first = make_controller()
        second = make_controller()
        await first.load()
        await second.load()
        await first.start()
        with pytest.raises(ActiveSessionConflict):
            await second.start()
        assert second.status == ExamStatus.INSTRUCTIONS

    async def test_shuffled_exam_keeps_answer_keys(self, session_factory, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, questions_shuffled=True, options_shuffled=True)
        controller = await started(make_controller)

        assert sorted(q.id for q in controller.questions) == sorted(q.id for q in controller._base_questions)
        for question in controller.questions:
            assert question.options[question.correct_option_id].is_correct

    async def test_snapshot_hides_answer_keys(self, seeded, make_controller):
        controller = await started(make_controller)
        snapshot = controller.snapshot()
        assert len(snapshot.questions) == 3
        assert "correct_option_id" not in snapshot.questions[0]
        assert all("is_correct" not in option for option in snapshot.questions[0]["options"])
        assert snapshot.answers == [None, None, None]

    async def test_token_check(self, seeded, make_controller):
        controller = await started(make_controller)
        controller.verify_token(controller.token)
        with pytest.raises(SessionAccessDenied):
            controller.verify_token("forged")
        with pytest.raises(SessionAccessDenied):
            controller.verify_token(None)


class TestResume:
    async def test_restores_answers_order_and_time(self, session_factory, store, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, questions_shuffled=True, options_shuffled=True)
        first = await started(make_controller)
        await first.set_answer(0, 1)
        await first.set_answer(2, 0)
        await wait_for_rows(store, first.session_id, 2)
        await first.close()

        async with session_factory() as db:
            await db.execute(update(ExamSession).values(time_remaining=123))
            await db.commit()

        second = make_controller()
        await second.load()

        assert second.status == ExamStatus.IN_PROGRESS
        assert second.is_resuming
        assert second.session_id == first.session_id
        assert second.time_remaining == 123
        assert second.questions == first.questions
        assert second.answers.answers == [1, None, 0]

    async def test_restores_matching_and_fill_blank_answers(self, session_factory, store, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, questions_shuffled=True, questions=[capitals_question(), blanks_question()])
        first = await started(make_controller)
        kinds = [question.question_type for question in first.questions]
        matching, blanks = kinds.index("matching"), kinds.index("fill_blank")

        letters = [pair.correct_match for pair in first.questions[matching].pairs]
        letters[3] = None
        await first.set_answer(matching, letters)
        await first.set_answer(blanks, {"b1": " rome ", "b2": ""})
        await wait_for_rows(store, first.session_id, 2)
        await first.close()

        second = make_controller()
        await second.load()

        assert second.questions == first.questions
        assert second.answers.get_answer(matching) == letters
        assert second.answers.get_answer(blanks) == {"b1": " rome ", "b2": ""}

        score = await second.submit()
        assert score.question_results[matching].earned_marks == 3.0
        assert score.question_results[blanks].earned_marks == 1.0
        assert score.total_marks == 4.0
        assert score.correct_count == 0

    async def test_resume_with_no_time_left_submits(self, session_factory, seeded, make_controller):
        first = await started(make_controller)
        await first.close()
        async with session_factory() as db:
            await db.execute(update(ExamSession).values(time_remaining=0))
            await db.commit()

        second = make_controller()
        await second.load()
        await asyncio.wait_for(second.finished.wait(), timeout=2)
        assert second.status == ExamStatus.COMPLETED

    async def test_fresh_session_on_other_device_is_refused(self, session_factory, seeded, make_controller):
        first = await started(make_controller)

        second = make_controller(signals=TABLET)
        await second.load()

        assert second.status == ExamStatus.TERMINATED
        assert second.termination_reason == OTHER_DEVICE_REASON
        assert first.status == ExamStatus.IN_PROGRESS
        assert (await fetch_session(session_factory, first.session_id)).status == "in_progress"

    async def test_stale_session_is_taken_over(self, session_factory, store, seeded, make_controller):
        first = await started(make_controller)
        async with session_factory() as db:
            await db.execute(update(SessionSecurity).values(last_verified=first_seen_long_ago()))
            await db.commit()

        second = make_controller(signals=TABLET)
        await second.load()
        assert second.status == ExamStatus.IN_PROGRESS
        record = await store.get_security(first.session_id, first.token)
        assert record.device_fingerprint == second.fingerprint

        event = await first.monitor.device_check_tick()
        assert event.reason == TerminationReason.DEVICE_TAKEOVER
        first.monitor.terminate(event.reason)
        assert first.status == ExamStatus.TERMINATED
        assert first.termination_reason == TerminationReason.DEVICE_TAKEOVER
        assert second.status == ExamStatus.IN_PROGRESS

    async def test_inactive_security_record_is_terminated(self, store, seeded, make_controller):
        first = await started(make_controller)
        await first.close()
        await store.deactivate_security(first.session_id)

        second = make_controller()
        await second.load()
        assert second.status == ExamStatus.TERMINATED
        assert second.termination_reason == TerminationReason.SECURITY_INACTIVE


def first_seen_long_ago():
    return get_naive_now() - timedelta(seconds=120)


async def wait_for_rows(store, session_id, count):
    for _ in range(200):
        if len(await store.load_answers(session_id)) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("answers were not persisted")


class TestAnswers:
    async def test_answer_is_persisted(self, store, seeded, make_controller):
        controller = await started(make_controller)
        stored = await controller.set_answer(1, 0)
        assert stored == 0
        await wait_for_rows(store, controller.session_id, 1)
        rows = await store.load_answers(controller.session_id)
        assert rows[0]["question_id"] == controller.questions[1].id
        assert rows[0]["selected_option_id"] == 0

    async def test_rapid_changes_are_throttled(self, store, seeded, make_controller, monkeypatch):
        controller = await started(make_controller)
        writes = []
        original = store.save_answer

        async def counting(session_id, question_id, values):
            writes.append(values["selected_option_id"])
            await original(session_id, question_id, values)

        monkeypatch.setattr(store, "save_answer", counting)

        for value in (0, 1, 2, 3):
            await controller.set_answer(0, value)
        await wait_for(lambda: len(writes) == 1)

        await controller.set_answer(0, 1)
        await controller.set_answer(0, 2)
        await wait_for(lambda: len(writes) == 2)
        await asyncio.sleep(0.1)

        assert writes == [3, 2]
        rows = await store.load_answers(controller.session_id)
        assert rows[0]["selected_option_id"] == 2

    async def test_flag_is_persisted_immediately(self, store, seeded, make_controller):
        controller = await started(make_controller)
        assert await controller.toggle_flag(2) is True
        rows = await store.load_answers(controller.session_id)
        assert rows[0]["is_flagged"] is True
        assert controller.snapshot().flagged == [2]

    async def test_invalid_answer_is_rejected(self, seeded, make_controller):
        controller = await started(make_controller)
        with pytest.raises(InvalidSessionState):
            await controller.set_answer(0, 17)
        assert controller.status == ExamStatus.IN_PROGRESS

    async def test_save_errors_are_tolerated(self, store, seeded, make_controller, monkeypatch):
        controller = await started(make_controller)
        calls = []

        async def failing(*args, **kwargs):
            calls.append(args)
            raise ConnectionError("database unavailable")

        monkeypatch.setattr(store, "save_answer", failing)
        await controller.set_answer(0, 1)
        await wait_for(lambda: len(calls) == 1)
        assert controller.status == ExamStatus.IN_PROGRESS
        assert controller.answers.get_answer(0) == 1

    async def test_stopped_monitor_routes_to_terminated(self, seeded, make_controller):
        controller = await started(make_controller)
        controller.monitor.stop()
        with pytest.raises(InvalidSessionState):
            await controller.set_answer(0, 1)
        assert controller.status == ExamStatus.TERMINATED
        assert controller.termination_reason == TerminationReason.SECURITY_INACTIVE

    async def test_answers_rejected_before_start(self, seeded, make_controller):
        controller = make_controller()
        await controller.load()
        with pytest.raises(InvalidSessionState):
            await controller.set_answer(0, 1)


class TestSubmit:
    async def test_scenario_a_manual_submit(self, session_factory, make_controller):
        await add_student(session_factory, student_id="S000123", name="Test Student")
        await add_exam(session_factory, exam_code="482913", questions=[
            {"question_type": "mcq", "question_text": "Q1", "marks": 1,
             "options": {"options": ["a", "b", "c"], "correct_option_id": 2}},
            {"question_type": "mcq", "question_text": "Q2", "marks": 1,
             "options": {"options": ["a", "b", "c"], "correct_option_id": 0}},
        ])
        controller = await started(make_controller, student_code="S000123", exam_code="482913")
        for index, question in enumerate(controller.questions):
            await controller.set_answer(index, answer_correctly(question))

        score = await controller.submit()

        assert score.total_marks == 2
        assert score.total_possible_marks == 2
        assert score.percent == 100
        assert score.correct_count == 2
        assert controller.status == ExamStatus.COMPLETED
        assert controller.grade == "A"
        assert not controller.monitor.is_active()

        exam_session = await fetch_session(session_factory, controller.session_id)
        assert exam_session.status == "submitted"
        assert exam_session.score == 2
        results = await fetch_all(session_factory, Result, student_id=exam_session.student_id)
        assert results[0].grade == "A"
        assert results[0].total_marks_obtained == 2
        assert results[0].comments.startswith("Scored 2 out of 2 marks")
        answers = await fetch_all(session_factory, StudentAnswer, session_id=controller.session_id)
        assert len(answers) == 2
        assert all(row.is_correct for row in answers)
        security = await fetch_all(session_factory, SessionSecurity, session_id=controller.session_id)
        assert not security[0].is_active

    async def test_scenario_c_matching_partial_credit(self, session_factory, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, questions=[capitals_question(marks=4)])
        controller = await started(make_controller)

        pairs = controller.questions[0].pairs
        for pair in pairs:
            assert pairs[index_for(pair.correct_match)].side_b == CAPITALS[pair.side_a]

        letters = [pair.correct_match for pair in pairs]
        letters[3] = letters[2]
        await controller.set_answer(0, letters)
        score = await controller.submit()

        result = score.question_results[0]
        assert result.earned_marks == 3.0
        assert result.correct_parts == 3
        assert result.is_fully_correct is False
        assert score.total_marks == 3.0
        assert score.correct_count == 0

        exam_session = await fetch_session(session_factory, controller.session_id)
        assert exam_session.score == 3.0
        answers = await fetch_all(session_factory, StudentAnswer, session_id=controller.session_id)
        assert answers[0].answer_payload == letters
        assert answers[0].is_correct is False

    async def test_scenario_b_timer_expiry(self, session_factory, store, seeded, make_controller, monkeypatch):
        completions = []
        original = store.complete_session

        async def counting(**kwargs):
            completions.append(kwargs["session_id"])
            return await original(**kwargs)

        monkeypatch.setattr(store, "complete_session", counting)
        controller = await started(make_controller, timings=fast_timings(timer_tick_seconds=0.01))
        controller.time_remaining = 3

        await asyncio.wait_for(controller.finished.wait(), timeout=2)
        await asyncio.sleep(0.05)

        assert completions == [controller.session_id]
        assert controller.status == ExamStatus.COMPLETED
        assert controller.result.total_marks == 0
        assert controller.result.percent == 0
        assert controller.monitor.is_terminated
        assert not controller.monitor.is_active()
        assert (await fetch_session(session_factory, controller.session_id)).status == "submitted"

    async def test_timer_fires_auto_submit_once(self, seeded, make_controller):
        controller = await started(make_controller)
        controller.time_remaining = 2
        fired = [controller.tick_timer() for _ in range(6)]
        assert fired == [False, True, False, False, False, False]
        assert controller.time_remaining == 0

    async def test_second_submit_returns_result(self, seeded, make_controller):
        controller = await started(make_controller)
        first = await controller.submit()
        again = await controller.submit()
        assert again == first

    async def test_failed_submit_rolls_back(self, store, seeded, make_controller, monkeypatch):
        controller = await started(make_controller)
        original = store.complete_session
        old_monitor = controller.monitor

        async def failing(**kwargs):
            raise ConnectionError("database unavailable")

        monkeypatch.setattr(store, "complete_session", failing)
        with pytest.raises(SubmissionError):
            await controller.submit()

        assert controller.status == ExamStatus.IN_PROGRESS
        assert controller.monitor is not old_monitor
        assert controller.monitor.is_active()
        assert not controller._timer_task.done()

        monkeypatch.setattr(store, "complete_session", original)
        score = await controller.submit()
        assert score is not None
        assert controller.status == ExamStatus.COMPLETED

    async def test_submit_before_start(self, seeded, make_controller):
        controller = make_controller()
        await controller.load()
        with pytest.raises(InvalidSessionState):
            await controller.submit()

    async def test_hidden_results(self, session_factory, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, show_results=False)
        controller = await started(make_controller)
        await controller.submit()
        snapshot = controller.snapshot()
        assert snapshot.status == ExamStatus.COMPLETED
        assert snapshot.result is None


class TestViolations:
    async def test_limit_terminates_exam(self, session_factory, seeded, make_controller):
        controller = await started(make_controller)

        assert await controller.report_violation("tab_switch") == 1
        assert await controller.report_violation("tab_switch") == 2
        assert controller.warning_message.startswith("Final warning")
        await controller.report_violation("copy_attempt", severity="high")

        assert controller.status == ExamStatus.TERMINATED
        assert controller.termination_reason == VIOLATION_LIMIT_REASON
        await wait_for(lambda: controller.redirect_home)

        exam_session = await fetch_session(session_factory, controller.session_id)
        assert exam_session.status == "terminated"
        assert exam_session.terminated_reason == VIOLATION_LIMIT_REASON
        results = await fetch_all(session_factory, Result, exam_id=exam_session.exam_id)
        assert results[0].grade == "F"
        assert results[0].total_marks_obtained == 0
        violations = await fetch_all(session_factory, ProctoringViolation, session_id=controller.session_id)
        assert len(violations) == 3

        again = make_controller()
        await again.load()
        assert again.status == ExamStatus.TERMINATED
        assert again.termination_reason == VIOLATION_LIMIT_REASON

    async def test_quiet_period_resets_count(self, seeded, make_controller):
        controller = await started(make_controller, timings=fast_timings(violation_reset_seconds=0.05))
        await controller.report_violation("tab_switch")
        await controller.report_violation("tab_switch")
        await wait_for(lambda: controller.violation_count == 0)
        await controller.report_violation("tab_switch")
        assert controller.status == ExamStatus.IN_PROGRESS

    async def test_submit_while_violation_is_written_keeps_result(
        self, session_factory, store, seeded, make_controller, monkeypatch
    ):
        controller = await started(make_controller)
        await controller.report_violation("tab_switch")
        await controller.report_violation("tab_switch")

        writing = asyncio.Event()
        release = asyncio.Event()
        original = store.log_violation

        async def slow_log_violation(*args, **kwargs):
            writing.set()
            await release.wait()
            return await original(*args, **kwargs)

        monkeypatch.setattr(store, "log_violation", slow_log_violation)
        third = asyncio.create_task(controller.report_violation("tab_switch"))
        await writing.wait()
        for index, question in enumerate(controller.questions):
            await controller.set_answer(index, answer_correctly(question))
        score = await controller.submit()
        release.set()
        assert await third == 2

        assert score.total_marks == 4
        assert controller.status == ExamStatus.COMPLETED
        assert controller.termination_reason is None
        exam_session = await fetch_session(session_factory, controller.session_id)
        assert exam_session.status == "submitted"
        results = await fetch_all(session_factory, Result, exam_id=exam_session.exam_id)
        assert results[0].total_marks_obtained == 4
        assert results[0].grade == "A"

    async def test_late_termination_does_not_touch_submitted_session(self, session_factory, store, seeded, make_controller):
        controller = await started(make_controller)
        for index, question in enumerate(controller.questions):
            await controller.set_answer(index, answer_correctly(question))
        await controller.submit()

        recorded = await store.terminate_session(
            controller.session_id, controller.exam, controller.student.id, VIOLATION_LIMIT_REASON
        )

        assert recorded is False
        exam_session = await fetch_session(session_factory, controller.session_id)
        assert exam_session.status == "submitted"
        assert exam_session.terminated_reason is None
        results = await fetch_all(session_factory, Result, exam_id=exam_session.exam_id)
        assert results[0].grade == "A"
        assert results[0].total_marks_obtained == 4


class TestFullscreen:
    async def test_warning_is_debounced(self, session_factory, make_controller):
        await add_student(session_factory)
        await add_exam(session_factory, fullscreen_required=True)
        controller = await started(make_controller)
        assert controller.fullscreen_requested

        assert controller.check_fullscreen(now=100.0) is True
        assert controller.fullscreen_warning
        assert controller.check_fullscreen(now=102.0) is False
        assert controller.check_fullscreen(now=106.0) is True

        async def logged():
            rows = await fetch_all(session_factory, ProctoringViolation, session_id=controller.session_id)
            return len(rows)

        for _ in range(100):
            if await logged() == 2:
                break
            await asyncio.sleep(0.01)
        assert await logged() == 2
        assert controller.violation_count == 0

        controller.report_fullscreen(True)
        assert not controller.fullscreen_warning
        assert not controller.fullscreen_requested
        assert controller.check_fullscreen(now=200.0) is False

    async def test_not_required(self, seeded, make_controller):
        controller = await started(make_controller)
        assert not controller.fullscreen_requested
        assert controller.check_fullscreen(now=100.0) is False
        assert controller._watchdog_task is None


class TestCleanup:
    async def test_close_leaves_nothing_running(self, session_factory, seeded, make_controller):
        controller = await started(make_controller, timings=fast_timings(timer_tick_seconds=0.01))
        await controller.set_answer(0, 1)
        await controller.close()
        assert controller.pending_tasks() == []
        assert (await fetch_session(session_factory, controller.session_id)).status == "in_progress"

    async def test_submit_leaves_nothing_running(self, seeded, make_controller):
        controller = await started(make_controller)
        await controller.submit()
        await asyncio.sleep(0.01)
        assert controller.pending_tasks() == []

    async def test_monitor_termination_leaves_nothing_running(self, seeded, make_controller):
        controller = await started(make_controller)
        controller.monitor.terminate(TerminationReason.CONNECTION_LOST)
        assert controller.status == ExamStatus.TERMINATED
        await wait_for(lambda: controller.redirect_home)
        await asyncio.sleep(0.01)
        assert controller.pending_tasks() == []
        assert controller.finished.is_set()

    async def test_violation_termination_leaves_nothing_running(self, seeded, make_controller):
        controller = await started(make_controller)
        for _ in range(3):
            await controller.report_violation("tab_switch")
        await wait_for(lambda: controller.redirect_home)
        await asyncio.sleep(0.01)
        assert controller.pending_tasks() == []
