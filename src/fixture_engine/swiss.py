"""
Swiss system pairing.

Round 1 pairs the shuffled roster in order. Every later round ranks teams on
their Swiss results and pairs neighbours in the table, never pairing two teams
that have already met while a rematch-free pairing exists.
"""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .errors import ConfigurationError, InsufficientTeams
from .rounds import SwissRound
from .standings import compute_standings, SWISS_TABLE

logger = logging.getLogger(__name__)

# Upper bound on search steps before settling for the greedy pairing
MAX_SEARCH_STEPS = 200000


def build_opponent_map(previous_matches: Sequence) -> Dict[str, Set[str]]:
    opponents = {}
    for match in previous_matches:
        opponents.setdefault(match.home_team_id, set()).add(match.away_team_id)
        opponents.setdefault(match.away_team_id, set()).add(match.home_team_id)
    return opponents


def rank_swiss_teams(team_ids: Sequence[str], previous_matches: Sequence) -> List[str]:
    """Team ids ordered by points, goal difference, goals for, then roster order."""
    swiss_matches = [m for m in previous_matches if isinstance(m.round, SwissRound)]
    table = compute_standings(team_ids, swiss_matches, group=SWISS_TABLE)
    return [standing.team_id for standing in table]


def _search_pairing(ranked: List[str], opponents: Dict[str, Set[str]]) -> Optional[List[Tuple[str, str]]]:
    """
    Depth-first search for a rematch-free pairing.

    The top remaining team always takes the nearest opponent it has not met, so the
    first branch explored is the plain adjacent pairing with swaps.
    """
    steps = [0]

    def search(remaining):
        if not remaining:
            return []
        steps[0] += 1
        if steps[0] > MAX_SEARCH_STEPS:
            return None
        first = remaining[0]
        played = opponents.get(first, set())
        for i in range(1, len(remaining)):
            candidate = remaining[i]
            if candidate in played:
                continue
            rest = search(remaining[1:i] + remaining[i + 1:])
            if rest is not None:
                return [(first, candidate)] + rest
        return None

    return search(list(ranked))


def _greedy_pairing(ranked: List[str], opponents: Dict[str, Set[str]]) -> List[Tuple[str, str]]:
    """Nearest unmet opponent, falling back to the next team when every one has been met."""
    unpaired = list(ranked)
    pairs = []
    while unpaired:
        first = unpaired.pop(0)
        played = opponents.get(first, set())
        pick = next((i for i, team in enumerate(unpaired) if team not in played), 0)
        pairs.append((first, unpaired.pop(pick)))
    return pairs


def pair_swiss_teams(ranked: Sequence[str], opponents: Dict[str, Set[str]]) -> List[Tuple[str, str]]:
    pairs = _search_pairing(list(ranked), opponents)
    if pairs is None:
        pairs = _greedy_pairing(list(ranked), opponents)
        rematches = [pair for pair in pairs if pair[1] in opponents.get(pair[0], set())]
        logger.warning("No rematch-free Swiss pairing found; %d rematch(es) scheduled", len(rematches))
    return pairs


def generate_swiss_round(team_ids: Sequence[str], round_number: int, previous_matches: Sequence) -> List[Dict]:
    """
    Fixtures for Swiss round `round_number`.

    previous_matches may contain any matches of the tournament; only Swiss rounds
    count towards the ranking and the rematch check.
    """
    if len(team_ids) < 2:
        raise InsufficientTeams(len(team_ids))
    if len(team_ids) % 2 != 0:
        raise ConfigurationError(
            f"Swiss format requires an even number of teams, got {len(team_ids)}."
        )
    if round_number < 1:
        raise ConfigurationError(f"Swiss round number must be at least 1, got {round_number}")

    if round_number == 1:
        ranked = list(team_ids)
        opponents = {}
    else:
        swiss_matches = [m for m in previous_matches if isinstance(m.round, SwissRound)]
        ranked = rank_swiss_teams(team_ids, swiss_matches)
        opponents = build_opponent_map(swiss_matches)

    round_ref = SwissRound(round_number)
    fixtures = []
    for number, (first, second) in enumerate(pair_swiss_teams(ranked, opponents), start=1):
        # Alternate which side hosts to spread home games
        home, away = (first, second) if number % 2 == 1 else (second, first)
        fixtures.append({
            'home': home,
            'away': away,
            'round': round_ref,
            'match_number': number,
            'matchday': round_number,
        })
    logger.info("Paired %s: %d match(es)", round_ref.label, len(fixtures))
    return fixtures
