import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

PASSAGE_PATTERN = re.compile(r"\[PASSAGE_HTML\]([\s\S]*?)\[/PASSAGE_HTML\]\n*")


class QuestionType:
    MCQ = "mcq"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    MATCHING = "matching"
    PASSAGE_MCQ = "passage_mcq"

    CHOICE_TYPES = (MCQ, TRUE_FALSE, PASSAGE_MCQ)


class ChoiceOption(BaseModel):
    id: int
    text: str
    image: Optional[str] = None
    is_correct: bool = False


class MatchingPair(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    side_a: str = Field("", alias="sideA")
    side_b: str = Field("", alias="sideB")
    correct_match: Optional[str] = Field(None, alias="correctMatch")


class Blank(BaseModel):
    id: str
    answer: str = ""


class ExamInfo(BaseModel):
    id: int
    exam_code: str
    title: str
    description: Optional[str] = None
    duration: int
    total_marks: float = 0
    grade: Optional[str] = None
    section: Optional[str] = None
    questions_shuffled: bool = False
    options_shuffled: bool = False
    fullscreen_required: bool = True
    show_results: bool = True
    exam_active: bool = True
    created_by: Optional[int] = None

    class Config:
        from_attributes = True


class StudentInfo(BaseModel):
    id: int
    student_id: str
    name: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None

    class Config:
        from_attributes = True


class ExamQuestion(BaseModel):
    """A question normalized for taking, answer key included."""

    id: int
    question_type: str = QuestionType.MCQ
    question_text: str = ""
    passage_html: str = ""
    has_passage: bool = False
    image_url: Optional[str] = None
    marks: float = 1
    options: List[ChoiceOption] = []
    correct_option_id: Optional[int] = None
    pairs: List[MatchingPair] = []
    blanks: List[Blank] = []

    @property
    def is_choice(self) -> bool:
        return self.question_type in QuestionType.CHOICE_TYPES

    def client_view(self) -> Dict[str, Any]:
        """The question as shown to the student: no answer key."""
        view = {
            "id": self.id,
            "question_type": self.question_type,
            "question_text": self.question_text,
            "passage_html": self.passage_html,
            "has_passage": self.has_passage,
            "image_url": self.image_url,
            "marks": self.marks,
        }
        if self.is_choice:
            view["options"] = [{"id": o.id, "text": o.text, "image": o.image} for o in self.options]
        elif self.question_type == QuestionType.MATCHING:
            view["column_a"] = [p.side_a for p in self.pairs]
            view["column_b"] = [p.side_b for p in self.pairs]
        elif self.question_type == QuestionType.FILL_BLANK:
            view["blank_ids"] = [b.id for b in self.blanks]
        return view


def parse_question_text(text: Optional[str]) -> Dict[str, Any]:
    text = text or ""
    match = PASSAGE_PATTERN.search(text)
    if match:
        return {
            "passage_html": match.group(1),
            "question_text": PASSAGE_PATTERN.sub("", text, count=1).strip(),
            "has_passage": True,
        }
    return {"passage_html": "", "question_text": text, "has_passage": False}


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing question payload: {e}")
            return None
    return value


def parse_options(raw: Any, question_type: str):
    """Normalize either stored options shape into ChoiceOptions plus the correct index."""
    options: List[ChoiceOption] = []
    correct_index = None
    parsed = _load_json(raw)

    if isinstance(parsed, dict) and isinstance(parsed.get("options"), list):
        images = parsed.get("option_images") or []
        correct_index = parsed.get("correct_option_id")
        options = [
            ChoiceOption(
                id=index,
                text=str(text),
                image=images[index] if index < len(images) else None,
                is_correct=index == correct_index,
            )
            for index, text in enumerate(parsed["options"])
        ]
    elif isinstance(parsed, list):
        for index, opt in enumerate(parsed):
            opt = opt if isinstance(opt, dict) else {"text": str(opt)}
            is_correct = bool(opt.get("correct", False))
            if is_correct:
                correct_index = index
            options.append(ChoiceOption(
                id=index,
                text=opt.get("text") or f"Option {chr(65 + index)}",
                image=opt.get("image"),
                is_correct=is_correct,
            ))

    if not options:
        defaults = ["True", "False"] if question_type == QuestionType.TRUE_FALSE else ["Option A", "Option B", "Option C", "Option D"]
        options = [ChoiceOption(id=index, text=text) for index, text in enumerate(defaults)]

    return options, correct_index


def parse_question(row: Dict[str, Any]) -> ExamQuestion:
    """Build an ExamQuestion from a stored question row (as a dict)."""
    question_type = row.get("question_type") or QuestionType.MCQ
    text_parts = parse_question_text(row.get("question_text"))
    if text_parts["has_passage"] and question_type == QuestionType.MCQ:
        question_type = QuestionType.PASSAGE_MCQ

    question = ExamQuestion(
        id=row["id"],
        question_type=question_type,
        image_url=row.get("image_url"),
        marks=row.get("marks") if row.get("marks") is not None else 1,
        **text_parts,
    )

    if question.is_choice:
        question.options, question.correct_option_id = parse_options(row.get("options"), question_type)
    elif question_type == QuestionType.MATCHING:
        pairs = _load_json(row.get("matching_pairs")) or []
        question.pairs = [MatchingPair(**pair) for pair in pairs if isinstance(pair, dict)]
    elif question_type == QuestionType.FILL_BLANK:
        blanks = _load_json(row.get("blanks")) or []
        question.blanks = [
            Blank(id=str(blank.get("id")), answer=str(blank.get("answer", "")))
            for blank in blanks if isinstance(blank, dict) and blank.get("id") is not None
        ]
    return question
