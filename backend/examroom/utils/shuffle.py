"""
Seeded shuffling of questions, options and matching pairs.

Every permutation here is a pure function of its input and a string seed, so a
student sees the same arrangement each time the same seed is replayed.
"""
import string
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

_LCG_MULTIPLIER = 1103515245
_LCG_INCREMENT = 12345
_LCG_MODULUS = 2 ** 31

LETTERS = string.ascii_uppercase


def seed_hash(seed: str) -> int:
    """31-bit non-negative hash of a seed string."""
    h = 0
    for char in seed:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    return h & 0x7FFFFFFF


class SeededRandom:
    """Linear congruential generator yielding floats in [0, 1)."""

    def __init__(self, seed: str):
        self.state = seed_hash(seed)

    def random(self) -> float:
        self.state = (self.state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return self.state / _LCG_MODULUS


def seeded_shuffle(items: Sequence[T], seed: str) -> List[T]:
    shuffled = list(items)
    rng = SeededRandom(seed)
    for i in range(len(shuffled) - 1, 0, -1):
        j = int(rng.random() * (i + 1))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def build_seed(student_id: Any, exam_id: Any, exam_code: str, nonce: str = "") -> str:
    """Seed for one attempt. Computed once at session creation and stored."""
    seed = f"{student_id}-{exam_id}-{exam_code}"
    if nonce:
        seed = f"{seed}-{nonce}"
    return seed


def item_seed(session_seed: str, question_id: Any) -> str:
    return f"{session_seed}-{question_id}"


def shuffle_options_with_seed(options: Sequence[T], seed: str, correct_index: Optional[int]) -> Tuple[List[T], Optional[int]]:
    """
    Shuffle options and relocate the correct answer.

    The correct option is found again by identity first, then by equality, so
    duplicate option texts still resolve to the option that was actually moved.
    """
    shuffled = seeded_shuffle(options, seed)
    if correct_index is None or not 0 <= correct_index < len(options):
        return shuffled, correct_index

    correct = options[correct_index]
    for index, option in enumerate(shuffled):
        if option is correct:
            return shuffled, index
    for index, option in enumerate(shuffled):
        if option == correct:
            return shuffled, index
    return shuffled, correct_index


def letter_for(index: int) -> str:
    return LETTERS[index]


def index_for(letter: Optional[str]) -> Optional[int]:
    if not letter:
        return None
    letter = letter.strip().upper()
    if len(letter) != 1 or letter not in LETTERS:
        return None
    return LETTERS.index(letter)


def shuffle_matching_pairs(pairs: Sequence[Dict[str, Any]], seed: str) -> List[Dict[str, Any]]:
    """
    Shuffle Column B of a matching question.

    Column A keeps its order. Each pair's ``correctMatch`` letter is rewritten
    to the new position of the Column B entry it pointed to before.
    """
    positions = seeded_shuffle(range(len(pairs)), seed)
    new_position = {old: new for new, old in enumerate(positions)}

    shuffled = []
    for row, pair in enumerate(pairs):
        target = index_for(pair.get("correctMatch"))
        if target is not None and target in new_position:
            correct_match = letter_for(new_position[target])
        else:
            correct_match = pair.get("correctMatch")
        shuffled.append({
            **pair,
            "sideB": pairs[positions[row]].get("sideB"),
            "correctMatch": correct_match,
        })
    return shuffled
