"""
League, group and Swiss tables.

Standings are always recomputed from scratch over every approved match; nothing
is patched incrementally.
"""
from typing import Dict, List, Sequence

from .models import Standing
from .rounds import GroupRound, LeagueRound, SwissRound

WIN_POINTS = 3
DRAW_POINTS = 1

LEAGUE_TABLE = 'League'
SWISS_TABLE = 'Swiss'


def compute_standings(team_ids: Sequence[str], matches: Sequence, group: str = None) -> List[Standing]:
    """
    Calculate a table for the given teams from their approved matches.

    Ranking: points -> goal difference -> goals for -> roster order.
    Matches that are not approved, have no score or involve teams outside the
    table are ignored.
    """
    table = {team_id: Standing(team_id, group) for team_id in team_ids}
    order = {team_id: i for i, team_id in enumerate(team_ids)}

    for match in matches:
        if not match.is_approved or not match.has_score:
            continue
        if match.home_team_id not in table or match.away_team_id not in table:
            continue

        home = table[match.home_team_id]
        away = table[match.away_team_id]
        home.played += 1
        away.played += 1
        home.goals_for += match.home_score
        home.goals_against += match.away_score
        away.goals_for += match.away_score
        away.goals_against += match.home_score
        if match.away_score == 0:
            home.clean_sheets += 1
        if match.home_score == 0:
            away.clean_sheets += 1

        if match.home_score > match.away_score:
            home.wins += 1
            home.points += WIN_POINTS
            away.losses += 1
        elif match.away_score > match.home_score:
            away.wins += 1
            away.points += WIN_POINTS
            home.losses += 1
        else:
            home.draws += 1
            away.draws += 1
            home.points += DRAW_POINTS
            away.points += DRAW_POINTS

    ranked = sorted(
        table.values(),
        key=lambda s: (-s.points, -s.goal_difference, -s.goals_for, order[s.team_id])
    )
    for position, standing in enumerate(ranked, start=1):
        standing.ranking = position
    return ranked


def group_members(matches: Sequence) -> Dict[str, List[str]]:
    """Teams of each group, in the order they first appear in the fixtures."""
    members = {}
    for match in matches:
        if not isinstance(match.round, GroupRound):
            continue
        teams = members.setdefault(match.round.letter, [])
        for team_id in match.teams:
            if team_id not in teams:
                teams.append(team_id)
    return members


def compute_group_standings(matches: Sequence, roster: Sequence[str] = None) -> Dict[str, List[Standing]]:
    """One table per group, keyed by group letter."""
    members = group_members(matches)
    if roster is not None:
        order = {team_id: i for i, team_id in enumerate(roster)}
        members = {letter: sorted(teams, key=lambda t: order.get(t, len(order)))
                   for letter, teams in members.items()}
    tables = {}
    for letter in sorted(members):
        group_matches = [m for m in matches if m.round == GroupRound(letter)]
        tables[letter] = compute_standings(members[letter], group_matches, group=f"Group {letter}")
    return tables


def compute_tournament_standings(tournament, matches: Sequence) -> Dict[str, List[Standing]]:
    """
    Every table the tournament currently has.

    League rounds form a single table, each group its own table and Swiss rounds one
    table. Knockout matches never count towards a table.
    """
    roster = tournament.team_ids
    tables = {}

    league_matches = [m for m in matches if isinstance(m.round, LeagueRound)]
    if league_matches:
        tables[LEAGUE_TABLE] = compute_standings(roster, league_matches, group=LEAGUE_TABLE)

    for letter, table in compute_group_standings(matches, roster).items():
        tables[f"Group {letter}"] = table

    swiss_matches = [m for m in matches if isinstance(m.round, SwissRound)]
    if swiss_matches:
        tables[SWISS_TABLE] = compute_standings(roster, swiss_matches, group=SWISS_TABLE)

    return tables
