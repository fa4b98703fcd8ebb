"""
Single elimination bracket generation and advancement.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ConfigurationError, InsufficientTeams
from .rounds import KnockoutRound


def calculate_bracket_size(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_teams))


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    bracket_size = calculate_bracket_size(num_teams)
    return bracket_size - num_teams


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = _generate_bracket_order(half_size)
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    result = []
    for u, l in zip(upper_half, lower_half):
        result.extend([u, l])
    return result


def create_knockout_round(seeded_team_ids: Sequence[str]) -> Tuple[List[Dict], Dict[int, str]]:
    """
    Create the opening round of a single elimination bracket.

    seeded_team_ids is in seed order (index 0 is seed 1). Seeds are placed with the
    standard bracket order and the top seeds receive byes when the team count is
    not a power of two.

    Returns (fixtures, byes): fixtures only for slots with two teams, and byes
    mapping slot number to the team that advances without playing.
    """
    num_teams = len(seeded_team_ids)
    if num_teams < 2:
        raise InsufficientTeams(num_teams)

    bracket_size = calculate_bracket_size(num_teams)
    seed_to_team = {seed: team for seed, team in enumerate(seeded_team_ids, start=1)}
    bracket_order = _generate_bracket_order(bracket_size)
    round_ref = KnockoutRound(bracket_size, opening=True)

    fixtures = []
    byes = {}
    for i in range(0, len(bracket_order), 2):
        slot = i // 2 + 1
        team1 = seed_to_team.get(bracket_order[i])
        team2 = seed_to_team.get(bracket_order[i + 1])

        # Byes always pair a real team with an empty seed
        if team2 is None:
            byes[slot] = team1
        elif team1 is None:
            byes[slot] = team2
        else:
            fixtures.append({
                'home': team1,
                'away': team2,
                'round': round_ref,
                'match_number': slot,
                'matchday': None,
            })
    return fixtures, byes


def match_winner(match) -> str:
    """
    Winner of an approved knockout match.

    The higher score wins; a draw is decided by the penalty shootout, which must be
    present and not level.
    """
    if not match.is_approved or not match.has_score:
        raise ConfigurationError(f"Match {match.match_id} is not completed.")
    if match.home_score > match.away_score:
        return match.home_team_id
    if match.away_score > match.home_score:
        return match.away_team_id

    if match.pk_home_score is None or match.pk_away_score is None:
        raise ConfigurationError(
            f"Match {match.match_id} ended in a draw without penalties. Knockout matches must have a winner."
        )
    if match.pk_home_score == match.pk_away_score:
        raise ConfigurationError(f"Match {match.match_id} has a level penalty shootout.")
    return match.home_team_id if match.pk_home_score > match.pk_away_score else match.away_team_id


def is_decisive(home_score, away_score, pk_home_score=None, pk_away_score=None) -> bool:
    if home_score != away_score:
        return True
    return pk_home_score is not None and pk_away_score is not None and pk_home_score != pk_away_score


def advancing_teams(round_ref: KnockoutRound, round_matches: Sequence, byes: Optional[Dict[int, str]] = None) -> List[str]:
    """
    Teams that advance from a knockout round, in bracket slot order.

    Each slot contributes either the winner of its match or the team holding a bye
    in that slot.
    """
    byes = byes or {}
    by_slot = {}
    for match in round_matches:
        if match.match_number in by_slot:
            raise ConfigurationError(f"Two matches share slot {match.match_number} in {round_ref.label}")
        by_slot[match.match_number] = match

    advancing = []
    for slot in range(1, round_ref.match_slots + 1):
        if slot in by_slot:
            advancing.append(match_winner(by_slot[slot]))
        elif slot in byes:
            advancing.append(byes[slot])
        else:
            raise ConfigurationError(f"Slot {slot} of {round_ref.label} has neither a match nor a bye")
    return advancing


def next_knockout_round(advancing: Sequence[str]) -> List[Dict]:
    """
    Pair advancing teams in bracket order: slot 1 plays slot 2, slot 3 plays slot 4.

    The order is preserved, never re-drawn, so the bracket path is fixed from the
    opening round.
    """
    if len(advancing) < 2 or len(advancing) % 2 != 0:
        raise ConfigurationError(f"Cannot pair {len(advancing)} advancing teams into a knockout round")
    if len(set(advancing)) != len(advancing):
        raise ConfigurationError("A team cannot advance twice into the same round")

    round_ref = KnockoutRound(len(advancing))
    fixtures = []
    for i in range(0, len(advancing), 2):
        fixtures.append({
            'home': advancing[i],
            'away': advancing[i + 1],
            'round': round_ref,
            'match_number': i // 2 + 1,
            'matchday': None,
        })
    return fixtures


def seed_teams_from_groups(group_standings: Dict[str, List], advance: int) -> List[str]:
    """
    Seeded list of teams advancing from groups.

    Seeding is done by group finish position:
    - All group winners get top seeds, in group letter order
    - All runners-up get the next seeds
    - etc.

    With the standard bracket order this keeps teams from the same group apart
    in the opening knockout round (A1 v B2, B1 v A2 for two groups).
    """
    if not group_standings:
        raise ConfigurationError("No group standings to seed a knockout bracket from")
    if advance is None or isinstance(advance, bool) or not isinstance(advance, int) or advance < 1:
        raise ConfigurationError(f"Invalid number of teams advancing per group: {advance!r}")

    letters = sorted(group_standings)
    for letter in letters:
        if len(group_standings[letter]) < advance:
            raise ConfigurationError(
                f"Group {letter} has {len(group_standings[letter])} teams, cannot advance {advance}"
            )

    seeded = []
    for position in range(advance):
        for letter in letters:
            seeded.append(group_standings[letter][position].team_id)

    if len(seeded) < 2:
        raise ConfigurationError("At least 2 teams must advance to start a knockout stage")
    return seeded
