from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from ..core.exceptions import InvalidSessionState
from ..schemas.exam import ExamQuestion, QuestionType


def empty_answer(question: ExamQuestion) -> Any:
    if question.question_type == QuestionType.MATCHING:
        return [None] * len(question.pairs)
    if question.question_type == QuestionType.FILL_BLANK:
        return {blank.id: "" for blank in question.blanks}
    return None


def initialize_answers(questions: Sequence[ExamQuestion]) -> List[Any]:
    return [empty_answer(question) for question in questions]


def is_answered(answer: Any) -> bool:
    if answer is None:
        return False
    if isinstance(answer, list):
        return any(slot for slot in answer)
    if isinstance(answer, dict):
        return any(str(value).strip() for value in answer.values())
    return True


class AnswerStore:
    """
    The student's answers, one slot per question in display order.

    Unanswered questions hold an empty slot (None, a list of None, or a map of
    empty strings), never a missing entry.
    """

    def __init__(self, questions: Sequence[ExamQuestion]):
        self.questions = list(questions)
        self.answers: List[Any] = initialize_answers(self.questions)
        self.flags: Set[int] = set()
        self._index_by_id = {question.id: index for index, question in enumerate(self.questions)}

    def __len__(self) -> int:
        return len(self.answers)

    def index_of(self, question_id: int) -> Optional[int]:
        return self._index_by_id.get(question_id)

    def _question(self, index: int) -> ExamQuestion:
        if not 0 <= index < len(self.questions):
            raise InvalidSessionState(f"Question index {index} is out of range")
        return self.questions[index]

    def coerce(self, index: int, value: Any) -> Any:
        """Validate an incoming answer against the question type at ``index``."""
        question = self._question(index)

        if question.question_type == QuestionType.MATCHING:
            if value is None:
                return empty_answer(question)
            if not isinstance(value, list):
                raise InvalidSessionState("Matching answers must be a list of letters")
            # Blank or whitespace-only slots are unanswered.
            slots = [str(slot).strip().upper() or None if slot is not None else None for slot in value]
            slots = slots[:len(question.pairs)]
            return slots + [None] * (len(question.pairs) - len(slots))

        if question.question_type == QuestionType.FILL_BLANK:
            if value is None:
                return empty_answer(question)
            if not isinstance(value, dict):
                raise InvalidSessionState("Fill-in-the-blank answers must map blank ids to text")
            return {blank.id: str(value.get(blank.id) or "") for blank in question.blanks}

        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidSessionState("Choice answers must be an option index")
        if not 0 <= value < len(question.options):
            raise InvalidSessionState(f"Option {value} does not exist")
        return value

    def set_answer(self, index: int, value: Any) -> Any:
        self.answers[index] = self.coerce(index, value)
        return self.answers[index]

    def get_answer(self, index: int) -> Any:
        self._question(index)
        return self.answers[index]

    def toggle_flag(self, index: int) -> bool:
        self._question(index)
        if index in self.flags:
            self.flags.discard(index)
            return False
        self.flags.add(index)
        return True

    def restore(self, saved_rows: Iterable[Dict[str, Any]]) -> int:
        """
        Put persisted answers back at their display positions.

        Rows are matched by question id, so the stored shuffle order decides
        where each answer lands. Returns how many rows were restored.
        """
        restored = 0
        for row in saved_rows:
            index = self.index_of(row.get("question_id"))
            if index is None:
                continue
            question = self.questions[index]
            raw = row.get("selected_option_id") if question.is_choice else row.get("answer_payload")
            try:
                self.answers[index] = self.coerce(index, raw)
            except InvalidSessionState:
                self.answers[index] = empty_answer(question)
            if row.get("is_flagged"):
                self.flags.add(index)
            restored += 1
        return restored

    def storage_fields(self, index: int) -> Dict[str, Any]:
        """Column values for persisting the answer at ``index``."""
        question = self._question(index)
        answer = self.answers[index]
        if question.is_choice:
            return {"selected_option_id": answer, "answer_payload": None}
        return {"selected_option_id": None, "answer_payload": answer}

    def stats(self) -> Dict[str, int]:
        answered = sum(1 for answer in self.answers if is_answered(answer))
        return {
            "answered": answered,
            "unanswered": len(self.answers) - answered,
            "flagged": len(self.flags),
        }
