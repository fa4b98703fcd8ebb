"""
Round references: where a match sits in a tournament.

Every round is one of four kinds. Each kind knows its display label, how it sorts
for display and which progression stage it belongs to, so nothing downstream has
to pattern-match on labels like "Semi-Final".
"""
import re
from typing import Dict, Optional, Tuple

# Stage families, ordered by when they happen inside a tournament.
LEAGUE_PHASE = 0
SWISS_PHASE = 1
GROUP_PHASE = 2
KNOCKOUT_PHASE = 3


def knockout_label(match_count: int) -> str:
    """Label for a knockout round produced by progression, keyed by its match count."""
    if match_count == 1:
        return "Final"
    elif match_count == 2:
        return "Semi-Final"
    elif match_count == 4:
        return "Quarter-Final"
    else:
        return f"Round of {match_count * 2}"


class RoundRef:
    kind = None

    def __eq__(self, other):
        return type(self) is type(other) and self._identity() == other._identity()

    def __hash__(self):
        return hash((self.kind, self._identity()))

    def __repr__(self):
        return f"{type(self).__name__}({self.label!r})"

    def _identity(self):
        raise NotImplementedError

    @property
    def label(self) -> str:
        raise NotImplementedError

    def sort_key(self) -> Tuple:
        raise NotImplementedError

    def stage_key(self) -> Tuple:
        raise NotImplementedError

    def to_dict(self) -> Dict:
        raise NotImplementedError


class LeagueRound(RoundRef):
    kind = 'league'

    def __init__(self, number: int):
        self.number = number

    def _identity(self):
        return self.number

    @property
    def label(self):
        return f"Round {self.number}"

    def sort_key(self):
        return (LEAGUE_PHASE, self.number)

    def stage_key(self):
        # A league is a single stage: it only finishes once every round is played.
        return (LEAGUE_PHASE, 0)

    def to_dict(self):
        return {'kind': self.kind, 'number': self.number}


class GroupRound(RoundRef):
    kind = 'group'

    def __init__(self, letter: str):
        self.letter = letter

    def _identity(self):
        return self.letter

    @property
    def label(self):
        return f"Group {self.letter}"

    def sort_key(self):
        return (GROUP_PHASE, self.letter)

    def stage_key(self):
        return (GROUP_PHASE, 0)

    def to_dict(self):
        return {'kind': self.kind, 'letter': self.letter}


class SwissRound(RoundRef):
    kind = 'swiss'

    def __init__(self, number: int):
        self.number = number

    def _identity(self):
        return self.number

    @property
    def label(self):
        return f"Swiss Round {self.number}"

    def sort_key(self):
        return (SWISS_PHASE, self.number)

    def stage_key(self):
        return (SWISS_PHASE, self.number)

    def to_dict(self):
        return {'kind': self.kind, 'number': self.number}


class KnockoutRound(RoundRef):
    """A knockout round with `size` bracket slots (twice its match count).

    The opening round of a bracket is always shown as "Round of N"; rounds created
    by progression follow the Quarter-Final / Semi-Final / Final ladder.
    """
    kind = 'knockout'

    def __init__(self, size: int, opening: bool = False):
        self.size = size
        self.opening = opening

    def _identity(self):
        return (self.size, self.opening)

    @property
    def match_slots(self) -> int:
        return self.size // 2

    @property
    def label(self):
        if self.size == 2:
            return "Final"
        if self.opening:
            return f"Round of {self.size}"
        return knockout_label(self.match_slots)

    @property
    def is_final(self) -> bool:
        return self.size == 2

    def sort_key(self):
        return (KNOCKOUT_PHASE, -self.size)

    def stage_key(self):
        return (KNOCKOUT_PHASE, -self.size)

    def to_dict(self):
        return {'kind': self.kind, 'size': self.size, 'opening': self.opening}


def round_from_dict(data: Dict) -> RoundRef:
    """Rebuild a round reference from its persisted form."""
    kind = data.get('kind')
    if kind == LeagueRound.kind:
        return LeagueRound(int(data['number']))
    if kind == GroupRound.kind:
        return GroupRound(str(data['letter']))
    if kind == SwissRound.kind:
        return SwissRound(int(data['number']))
    if kind == KnockoutRound.kind:
        return KnockoutRound(int(data['size']), bool(data.get('opening', False)))
    raise ValueError(f"Unknown round kind: {kind!r}")


_LABEL_PATTERNS = [
    (re.compile(r'^swiss round (\d+)$', re.I), lambda m: SwissRound(int(m.group(1)))),
    (re.compile(r'^round of (\d+)$', re.I), lambda m: KnockoutRound(int(m.group(1)), opening=True)),
    (re.compile(r'^round (\d+)$', re.I), lambda m: LeagueRound(int(m.group(1)))),
    (re.compile(r'^group ([a-z])$', re.I), lambda m: GroupRound(m.group(1).upper())),
    (re.compile(r'^quarter-?finals?$', re.I), lambda m: KnockoutRound(8)),
    (re.compile(r'^semi-?finals?$', re.I), lambda m: KnockoutRound(4)),
    (re.compile(r'^finals?$', re.I), lambda m: KnockoutRound(2)),
]


def round_from_label(label: str) -> Optional[RoundRef]:
    """Parse a human-written round label. Returns None when it is not recognised."""
    if not label:
        return None
    text = label.strip()
    for pattern, build in _LABEL_PATTERNS:
        match = pattern.match(text)
        if match:
            return build(match)
    return None
