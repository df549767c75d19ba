"""Puzzle generation for each level type.

All randomness comes from the ``random.Random`` handed to ``LevelGenerator``,
so a seeded generator always yields the same puzzles.
"""

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .content import ContentBank, Verse, default_bank
from .errors import ContentConfigurationError, ValidationError
from .levels import EASY, HARD, INTRO, MCQ, MEDIUM, LevelDefinition

FRAGMENT_COUNTS: Dict[str, int] = {EASY: 4, MEDIUM: 5, HARD: 6}
REFERENCE_DISTRACTORS = 4
MAX_SHUFFLE_ATTEMPTS = 8


def normalize(text: str) -> str:
    return ' '.join(text.split())


@dataclass(frozen=True)
class Fragment:
    index: int
    text: str


@dataclass(frozen=True)
class LevelAnswer:
    """Player input for a level. Fragment levels use ``order``, mcq uses ``choice``,
    hard additionally needs ``reference``."""

    order: Optional[Tuple[int, ...]] = None
    choice: Optional[str] = None
    reference: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LevelAnswer':
        order = data.get('order')
        if order is not None:
            try:
                order = tuple(int(i) for i in order)
            except (TypeError, ValueError):
                raise ValidationError('order must be a list of fragment ids')
        return cls(order=order, choice=data.get('choice') or None, reference=data.get('reference') or None)


@dataclass(frozen=True)
class FragmentPuzzle:
    level_type: str
    content_id: str
    fragments: Tuple[Fragment, ...]
    order: Tuple[int, ...]
    reference: str
    prompt: Optional[str] = None
    reference_options: Tuple[str, ...] = field(default=())

    # Clients address fragments by presentation position, never by their true index

    def presented(self) -> List[Fragment]:
        return [self.fragments[i] for i in self.order]

    def answer_ids(self) -> Tuple[int, ...]:
        """Presentation ids that rebuild the text in reading order."""
        return tuple(self.order.index(i) for i in range(len(self.fragments)))

    def check(self, answer: LevelAnswer) -> bool:
        if not answer.order:
            raise ValidationError('select at least one fragment before submitting')
        if self.reference_options and not answer.reference:
            raise ValidationError('select a reference before submitting')
        if any(not 0 <= p < len(self.order) for p in answer.order):
            raise ValidationError('unknown fragment id')
        in_order = [self.order[p] for p in answer.order] == list(range(len(self.fragments)))
        if self.reference_options:
            return in_order and answer.reference == self.reference
        return in_order

    def to_dict(self, reference_shown: Optional[str] = None) -> Dict[str, Any]:
        return {
            'kind': 'fragments',
            'level_type': self.level_type,
            'content_id': self.content_id,
            'prompt': self.prompt,
            'fragments': [{'id': p, 'text': f.text} for p, f in enumerate(self.presented())],
            'reference': reference_shown,
            'reference_options': list(self.reference_options),
        }


@dataclass(frozen=True)
class OptionPuzzle:
    level_type: str
    content_id: str
    prompt: str
    options: Tuple[str, ...]
    answer: str
    reference: str

    def check(self, answer: LevelAnswer) -> bool:
        if not answer.choice:
            raise ValidationError('select an option before submitting')
        return answer.choice == self.answer

    def to_dict(self, reference_shown: Optional[str] = None) -> Dict[str, Any]:
        return {
            'kind': 'options',
            'level_type': self.level_type,
            'content_id': self.content_id,
            'prompt': self.prompt,
            'options': list(self.options),
            'reference': reference_shown,
        }


def reference_hint(puzzle, elapsed: int, duration: int) -> Optional[str]:
    """Reference text the player may see ``elapsed`` seconds into the level.

    Medium reveals only the book until half the budget has passed; hard never
    reveals it since picking it is part of the answer.
    """
    if puzzle.level_type == HARD:
        return None
    if puzzle.level_type == MEDIUM and elapsed * 2 < duration:
        book = puzzle.reference.rsplit(' ', 1)[0]
        return book
    return puzzle.reference


class LevelGenerator:

    def __init__(self, bank: Optional[ContentBank] = None, rng: Optional[random.Random] = None):
        self.bank = bank or default_bank()
        self.rng = rng or random.Random()

    def select_content(self, level_type: str):
        items = self.bank.items_for(level_type)
        if not items:
            raise ContentConfigurationError(f"no content for level type {level_type!r}")
        return self.rng.choice(items)

    @staticmethod
    def split_into_fragments(text: str, count: int) -> List[str]:
        """Split ``text`` into ``count`` contiguous word groups.

        Groups are as even as possible, earlier groups absorbing the remainder.
        ``' '.join(result) == normalize(text)`` always holds.
        """
        words = normalize(text).split()
        if not words:
            return []
        count = max(1, min(count, len(words)))
        size, extra = divmod(len(words), count)
        fragments = []
        start = 0
        for i in range(count):
            end = start + size + (1 if i < extra else 0)
            fragments.append(' '.join(words[start:end]))
            start = end
        return fragments

    def shuffle(self, items: Sequence) -> List:
        """Return a permutation of ``items`` that never keeps every element in place.

        Identity is judged by position, so lists with repeated values are safe.
        Falls back to a one-step rotation if sampling keeps producing the identity.
        """
        items = list(items)
        n = len(items)
        if n < 2:
            return items
        identity = list(range(n))
        positions = list(identity)
        for _ in range(MAX_SHUFFLE_ATTEMPTS):
            self.rng.shuffle(positions)
            if positions != identity:
                return [items[i] for i in positions]
        return items[1:] + items[:1]

    def _options(self, correct: str, distractors: Sequence[str]) -> Tuple[str, ...]:
        options = [correct] + [d for d in distractors if d != correct]
        return tuple(self.rng.sample(options, len(options)))

    def _reference_distractors(self, verse: Verse) -> List[str]:
        seen = {verse.reference}
        pool = []
        for other in self.bank.other_verses(verse.id):
            if other.reference not in seen:
                seen.add(other.reference)
                pool.append(other.reference)
        if len(pool) < REFERENCE_DISTRACTORS:
            raise ContentConfigurationError(
                f"need {REFERENCE_DISTRACTORS} distractor references, bank has {len(pool)}"
            )
        return self.rng.sample(pool, REFERENCE_DISTRACTORS)

    def _fragment_puzzle(self, level_type, content_id, pieces, reference, prompt=None, reference_options=()):
        fragments = tuple(Fragment(i, text) for i, text in enumerate(pieces))
        order = tuple(self.shuffle(range(len(fragments))))
        return FragmentPuzzle(
            level_type=level_type,
            content_id=content_id,
            fragments=fragments,
            order=order,
            reference=reference,
            prompt=prompt,
            reference_options=tuple(reference_options),
        )

    def generate(self, level: LevelDefinition):
        level_type = level.level_type
        item = self.select_content(level_type)
        if level_type == INTRO:
            return self._fragment_puzzle(level_type, item.id, item.missing_fragments, item.reference,
                                         prompt=item.visible_text)
        if level_type == MCQ:
            return OptionPuzzle(
                level_type=level_type,
                content_id=item.id,
                prompt=item.incomplete_text,
                options=self._options(item.correct_ending, item.wrong_options),
                answer=item.correct_ending,
                reference=item.reference,
            )
        pieces = self.split_into_fragments(item.text, FRAGMENT_COUNTS[level_type])
        reference_options = ()
        if level_type == HARD:
            reference_options = self._options(item.reference, self._reference_distractors(item))
        return self._fragment_puzzle(level_type, item.id, pieces, item.reference,
                                     reference_options=reference_options)
