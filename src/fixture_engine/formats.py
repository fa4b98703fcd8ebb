"""
Initial fixture generation for every tournament format.

Fixtures are plain dicts:
    {'home': team_id, 'away': team_id, 'round': RoundRef,
     'match_number': n, 'matchday': n or None}

Generation is deterministic for a given team order. Callers shuffle the roster
(see `shuffle_teams`) before handing it over.
"""
import logging
import random
import string
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from .elimination import create_knockout_round
from .errors import ConfigurationError, InsufficientTeams, SeedingError
from .models import CHAMPIONS_LEAGUE, CUP, LEAGUE, SWISS
from .rounds import GroupRound, LeagueRound
from .swiss import generate_swiss_round

logger = logging.getLogger(__name__)

BYE = None


def shuffle_teams(teams: Sequence, seed=None) -> List:
    """Return a shuffled copy of the roster. A seed makes the draw repeatable."""
    shuffled = list(teams)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def _check_roster(team_ids: Sequence[str], minimum: int = 2):
    if len(team_ids) < minimum:
        raise InsufficientTeams(len(team_ids), minimum)
    duplicates = [team for team, count in Counter(team_ids).items() if count > 1]
    if duplicates:
        raise ConfigurationError(f"Duplicate teams in roster: {', '.join(map(str, duplicates))}")


def fixture(home, away, round_ref, match_number, matchday=None) -> Dict:
    return {
        'home': home,
        'away': away,
        'round': round_ref,
        'match_number': match_number,
        'matchday': matchday,
    }


def round_robin_pairings(team_ids: Sequence[str], double: bool = False) -> List[List[Tuple[str, str]]]:
    """
    Circle method: fix the first team and rotate the rest one place per round.

    Returns one list of (home, away) pairs per round: n-1 rounds for even n, n rounds
    for odd n where every team sits out exactly once against the bye placeholder.
    With double=True the mirrored second leg follows with home and away swapped.
    """
    teams = list(team_ids)
    if len(teams) % 2 != 0:
        teams.append(BYE)

    num_teams = len(teams)
    rounds = []
    for round_idx in range(num_teams - 1):
        pairs = []
        for i in range(num_teams // 2):
            home = teams[i]
            away = teams[num_teams - 1 - i]
            # Alternate venue for the fixed team so it is not always at home
            if i == 0 and round_idx % 2 == 1:
                home, away = away, home
            if home is BYE or away is BYE:
                continue
            pairs.append((home, away))
        rounds.append(pairs)
        teams.insert(1, teams.pop())

    if double:
        rounds = rounds + [[(away, home) for home, away in pairs] for pairs in rounds]
    return rounds


def generate_league_fixtures(team_ids: Sequence[str], home_and_away: bool = False) -> List[Dict]:
    """Every team plays every other team once (twice with home_and_away)."""
    _check_roster(team_ids)
    fixtures = []
    for round_idx, pairs in enumerate(round_robin_pairings(team_ids, double=home_and_away)):
        round_ref = LeagueRound(round_idx + 1)
        for number, (home, away) in enumerate(pairs, start=1):
            fixtures.append(fixture(home, away, round_ref, number, matchday=round_idx + 1))
    return fixtures


def group_letter(index: int) -> str:
    if index >= len(string.ascii_uppercase):
        raise ConfigurationError(f"Too many groups: {index + 1} (maximum {len(string.ascii_uppercase)})")
    return string.ascii_uppercase[index]


def create_groups(team_ids: Sequence[str], group_size: int = 4) -> Dict[str, List[str]]:
    """
    Partition teams into balanced groups, keyed by letter.

    The group count is n // group_size (at least one). Teams are dealt snake-wise
    (A B C D, then D C B A) so consecutive teams in a seeded order spread out and
    group sizes differ by at most one.
    """
    _check_roster(team_ids)
    group_count = max(1, len(team_ids) // group_size)
    letters = [group_letter(i) for i in range(group_count)]
    groups = {letter: [] for letter in letters}

    for i, team_id in enumerate(team_ids):
        row = i // group_count
        pos = i % group_count
        index = pos if row % 2 == 0 else group_count - 1 - pos
        groups[letters[index]].append(team_id)
    return groups


def generate_group_fixtures(groups: Dict[str, List[str]], double: bool = False) -> List[Dict]:
    """Independent round robin inside each group, labelled "Group A", "Group B", ..."""
    fixtures = []
    for letter in sorted(groups):
        members = groups[letter]
        if len(members) < 2:
            raise SeedingError(f"Group {letter} has fewer than 2 teams.")
        round_ref = GroupRound(letter)
        number = 1
        for matchday, pairs in enumerate(round_robin_pairings(members, double=double), start=1):
            for home, away in pairs:
                fixtures.append(fixture(home, away, round_ref, number, matchday=matchday))
                number += 1
    return fixtures


def generate_cup_fixtures(team_ids: Sequence[str], group_stage: bool = True,
                          group_size: int = 4) -> Tuple[List[Dict], Dict[int, str]]:
    """
    Cup opening stage.

    With a group stage: single round robin groups, knockout deferred to progression.
    Without: only the opening knockout round, since later pairings depend on winners.
    Returns (fixtures, byes).
    """
    _check_roster(team_ids)
    if group_stage:
        groups = create_groups(team_ids, group_size)
        logger.info("Drew %d cup groups for %d teams", len(groups), len(team_ids))
        return generate_group_fixtures(groups), {}
    return create_knockout_round(team_ids)


def split_into_pots(teams: Sequence, pot_count: int) -> List[List[str]]:
    """
    Seeding pots for a Champions-League style draw.

    Uses each team's 'pot' attribute when every team has one; otherwise the
    ordered roster is cut into pot_count consecutive pots.
    """
    pot_values = [team.pot for team in teams]
    if teams and all(value is not None for value in pot_values):
        by_pot = {}
        for team in teams:
            by_pot.setdefault(team.pot, []).append(team.team_id)
        if len({type(key) for key in by_pot}) > 1:
            raise SeedingError("Pots must all be numbers or all be names, not a mix of both.")
        return [by_pot[key] for key in sorted(by_pot)]
    if any(value is not None for value in pot_values):
        raise SeedingError("Either every team or no team must be assigned a pot.")

    if len(teams) % pot_count != 0:
        raise SeedingError(
            f"{len(teams)} teams cannot be split into {pot_count} equal pots."
        )
    pot_size = len(teams) // pot_count
    team_ids = [team.team_id for team in teams]
    return [team_ids[i * pot_size:(i + 1) * pot_size] for i in range(pot_count)]


def draw_champions_league_groups(teams: Sequence, pot_count: int = 4,
                                 draw_order: Optional[Sequence[str]] = None) -> Dict[str, List[str]]:
    """
    Form one group per pot slot: group i takes the i-th team of every pot.

    Pots are built from the seeded roster order; draw_order (a shuffled list of
    team ids) then decides each team's position inside its pot.
    """
    _check_roster([team.team_id for team in teams])
    pots = split_into_pots(teams, pot_count)
    if draw_order is not None:
        position = {team_id: i for i, team_id in enumerate(draw_order)}
        pots = [sorted(pot, key=lambda team_id: position.get(team_id, len(position))) for pot in pots]
    group_count = len(pots[0])
    for index, pot in enumerate(pots, start=1):
        if len(pot) != group_count:
            raise SeedingError(
                f"Pot {index} has {len(pot)} teams but pot 1 has {group_count}; "
                "every pot must hold one team per group."
            )
    if len(pots) < 2:
        raise SeedingError("A group draw needs at least 2 pots.")

    groups = {}
    for i in range(group_count):
        groups[group_letter(i)] = [pot[i] for pot in pots]
    return groups


def generate_champions_league_fixtures(teams: Sequence, pot_count: int = 4,
                                       draw_order: Optional[Sequence[str]] = None) -> List[Dict]:
    """Seeded group draw with a double round robin in each group."""
    groups = draw_champions_league_groups(teams, pot_count, draw_order)
    logger.info("Drew %d Champions League groups from %d pots", len(groups), pot_count)
    return generate_group_fixtures(groups, double=True)


def generate_swiss_first_round(team_ids: Sequence[str]) -> List[Dict]:
    """Pair the (already shuffled) roster sequentially: 1v2, 3v4, ..."""
    _check_roster(team_ids)
    return generate_swiss_round(team_ids, 1, [])


def validate_fixtures(fixtures: List[Dict], roster: Sequence[str]):
    """
    Check a generated set of fixtures before anything is persisted.

    No team plays itself, every team is on the roster, no team appears twice in the
    same round and no pairing repeats within a round-robin cycle.
    """
    roster_set = set(roster)
    seen_in_round = {}
    pairings = Counter()
    for item in fixtures:
        home, away, round_ref = item['home'], item['away'], item['round']
        if home == away:
            raise ConfigurationError(f"{home} is drawn against itself in {round_ref.label}")
        for team_id in (home, away):
            if team_id not in roster_set:
                raise ConfigurationError(f"{team_id} is not registered in this tournament")

        # Groups share a label per group but play several matchdays
        slot = (round_ref, item.get('matchday'))
        teams_in_round = seen_in_round.setdefault(slot, set())
        for team_id in (home, away):
            if team_id in teams_in_round:
                raise ConfigurationError(f"{team_id} appears twice in {round_ref.label}")
            teams_in_round.add(team_id)

        pairings[(round_ref.stage_key(), home, away)] += 1

    # A pairing may appear once per venue (home and away legs), never more
    meetings = Counter()
    for (stage, home, away), count in pairings.items():
        if count > 1:
            raise ConfigurationError(f"Fixture {home} vs {away} is scheduled more than once")
        meetings[(stage, frozenset((home, away)))] += 1
    for (stage, pair), count in meetings.items():
        if count > 2:
            raise ConfigurationError(f"{' and '.join(sorted(pair))} meet {count} times in one cycle")


def generate_initial_fixtures(tournament, team_ids: Optional[Sequence[str]] = None) -> Tuple[List[Dict], Dict[int, str]]:
    """
    Produce the opening fixtures for a tournament.

    team_ids is the (shuffled) roster order; it defaults to registration order.
    Returns (fixtures, byes) where byes maps opening bracket slots to teams that
    skip the first knockout round.
    """
    settings = tournament.settings
    if team_ids is None:
        team_ids = tournament.team_ids
    team_ids = list(team_ids)
    byes = {}

    if tournament.format == LEAGUE:
        fixtures = generate_league_fixtures(team_ids, settings.get('home_and_away', False))
    elif tournament.format == CUP:
        fixtures, byes = generate_cup_fixtures(
            team_ids, settings.get('group_stage', True), settings.get('group_size', 4)
        )
    elif tournament.format == CHAMPIONS_LEAGUE:
        # Pots follow registration (seeding) order; the shuffled order only draws within pots
        fixtures = generate_champions_league_fixtures(
            tournament.teams, settings.get('pot_count', 4), draw_order=team_ids
        )
    elif tournament.format == SWISS:
        fixtures = generate_swiss_first_round(team_ids)
    else:
        raise ConfigurationError(f"Unknown tournament format: {tournament.format}")

    validate_fixtures(fixtures, team_ids)
    logger.info("Generated %d opening fixtures for %s (%s)",
                len(fixtures), tournament.tournament_id, tournament.format)
    return fixtures, byes
