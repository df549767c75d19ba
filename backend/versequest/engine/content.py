"""Static content bank.

Three shapes of item:

- ``Verse``: full text, assembled from fragments on the easy/medium/hard levels
- ``IntroItem``: a verse with a gap, filled by ordering its missing fragments
- ``McqItem``: an unfinished verse and a set of candidate endings
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ContentConfigurationError
from .levels import EASY, HARD, INTRO, LEVEL_TYPES, MCQ, MEDIUM


@dataclass(frozen=True)
class Verse:
    id: str
    text: str
    reference: str
    difficulty: str


@dataclass(frozen=True)
class IntroItem:
    id: str
    visible_text: str
    missing_fragments: Tuple[str, ...]
    reference: str


@dataclass(frozen=True)
class McqItem:
    id: str
    incomplete_text: str
    correct_ending: str
    wrong_options: Tuple[str, ...]
    reference: str


VERSES: Tuple[Verse, ...] = (
    Verse('1', 'For God so loved the world that he gave his one and only Son, that whoever believes in him shall not perish but have eternal life.', 'John 3:16', EASY),
    Verse('2', 'I can do all things through him who strengthens me.', 'Philippians 4:13', EASY),
    Verse('3', 'Trust in the Lord with all your heart and do not rely on your own insight.', 'Proverbs 3:5', EASY),
    Verse('4', 'The Lord is my shepherd, I shall not want.', 'Psalm 23:1', EASY),
    Verse('5', 'Be still, and know that I am God; I will be exalted among the nations, I will be exalted in the earth.', 'Psalm 46:10', MEDIUM),
    Verse('6', 'For surely I know the plans I have for you, says the Lord, plans for your welfare and not for harm, to give you a future with hope.', 'Jeremiah 29:11', MEDIUM),
    Verse('7', 'And we know that in all things God works for the good of those who love him, who have been called according to his purpose.', 'Romans 8:28', MEDIUM),
    Verse('8', 'Do not worry about anything, but in everything by prayer and supplication with thanksgiving let your requests be made known to God.', 'Philippians 4:6', MEDIUM),
    Verse('9', 'The Lord will fight for you; you need only to be still.', 'Exodus 14:14', MEDIUM),
    Verse('10', 'Cast all your anxiety on him because he cares for you.', '1 Peter 5:7', MEDIUM),
    Verse('11', 'But those who wait for the Lord shall renew their strength, they shall mount up with wings like eagles, they shall run and not be weary, they shall walk and not faint.', 'Isaiah 40:31', HARD),
    Verse('12', 'Do not fear, for I am with you; do not be dismayed, for I am your God. I will strengthen you and help you; I will uphold you with my victorious right hand.', 'Isaiah 41:10', HARD),
    Verse('13', 'For God has not given us a spirit of cowardice, but rather a spirit of power and love and self-control.', '2 Timothy 1:7', HARD),
    Verse('14', 'The Lord your God is in your midst, a warrior who gives victory; he will rejoice over you with gladness, he will renew you in his love, he will exult over you with loud singing.', 'Zephaniah 3:17', HARD),
    Verse('15', 'In the beginning was the Word, and the Word was with God, and the Word was God.', 'John 1:1', HARD),
    Verse('16', 'Love is patient, love is kind; love does not envy, love does not boast, it is not arrogant.', '1 Corinthians 13:4', MEDIUM),
    Verse('17', 'Jesus answered, I am the way and the truth and the life. No one comes to the Father except through me.', 'John 14:6', HARD),
    Verse('18', 'Come to me, all you who are weary and are carrying heavy burdens, and I will give you rest.', 'Matthew 11:28', MEDIUM),
    Verse('19', 'The Lord is near to the brokenhearted and saves the crushed in spirit.', 'Psalm 34:18', MEDIUM),
    Verse('20', 'For where two or three gather in my name, there am I with them.', 'Matthew 18:20', EASY),
)

INTRO_ITEMS: Tuple[IntroItem, ...] = (
    IntroItem('i1', 'The Lord is my shepherd, ____', ('I shall', 'not', 'want.'), 'Psalm 23:1'),
    IntroItem('i2', 'I can do all things ____', ('through him', 'who', 'strengthens me.'), 'Philippians 4:13'),
    IntroItem('i3', 'Cast all your anxiety on him ____', ('because', 'he cares', 'for you.'), '1 Peter 5:7'),
    IntroItem('i4', 'The Lord will fight for you; ____', ('you need', 'only to', 'be still.'), 'Exodus 14:14'),
    IntroItem('i5', 'For where two or three gather in my name, ____', ('there', 'am I', 'with them.'), 'Matthew 18:20'),
)

MCQ_ITEMS: Tuple[McqItem, ...] = (
    McqItem(
        'm1', 'Trust in the Lord with all your heart and ...',
        'do not rely on your own insight.',
        ('you will never be tired.', 'keep your eyes on the road.', 'the sea will open before you.'),
        'Proverbs 3:5',
    ),
    McqItem(
        'm2', 'Come to me, all you who are weary and are carrying heavy burdens, and ...',
        'I will give you rest.',
        ('I will give you bread.', 'you will carry them no more.', 'you shall be first.'),
        'Matthew 11:28',
    ),
    McqItem(
        'm3', 'In the beginning was the Word, and the Word was with God, and ...',
        'the Word was God.',
        ('the Word was light.', 'the Word became flesh.', 'God saw that it was good.'),
        'John 1:1',
    ),
    McqItem(
        'm4', 'The Lord is near to the brokenhearted and ...',
        'saves the crushed in spirit.',
        ('heals the sick in body.', 'feeds the hungry at night.', 'lifts up the proud.'),
        'Psalm 34:18',
    ),
    McqItem(
        'm5', 'Love is patient, love is kind; love does not envy, ...',
        'love does not boast, it is not arrogant.',
        ('love never sleeps, it is always watchful.', 'love is loud, it is never silent.', 'love keeps a record of wrongs.'),
        '1 Corinthians 13:4',
    ),
)


class ContentBank:
    """Read-only view over the items, indexed by the level type that uses them."""

    def __init__(self, verses: Sequence[Verse] = VERSES, intro_items: Sequence[IntroItem] = INTRO_ITEMS,
                 mcq_items: Sequence[McqItem] = MCQ_ITEMS):
        self.verses = tuple(verses)
        self.intro_items = tuple(intro_items)
        self.mcq_items = tuple(mcq_items)

    def items_for(self, level_type: str) -> List:
        if level_type == INTRO:
            return list(self.intro_items)
        if level_type == MCQ:
            return list(self.mcq_items)
        if level_type in (EASY, MEDIUM, HARD):
            return [v for v in self.verses if v.difficulty == level_type]
        raise ContentConfigurationError(f"unknown level type: {level_type!r}")

    def other_verses(self, exclude_id: str) -> List[Verse]:
        return [v for v in self.verses if v.id != exclude_id]

    def validate(self) -> Dict[str, int]:
        """Check every level type can be served; returns item counts per type."""
        counts = {}
        for level_type in LEVEL_TYPES:
            items = self.items_for(level_type)
            if not items:
                raise ContentConfigurationError(f"content bank has no items for level type {level_type!r}")
            counts[level_type] = len(items)
        for item in self.mcq_items:
            if not item.wrong_options:
                raise ContentConfigurationError(f"mcq item {item.id} has no wrong options")
        return counts


_default_bank: Optional[ContentBank] = None


def default_bank() -> ContentBank:
    global _default_bank
    if _default_bank is None:
        _default_bank = ContentBank()
    return _default_bank
