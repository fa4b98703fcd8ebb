"""
Print the opening fixtures for a roster file without starting a tournament.

    python src/generate_fixtures.py teams.yaml --format cup --seed 7

The roster is either a YAML list of team names, or a mapping of pot names to
lists of team names for a seeded Champions League draw.
"""
import argparse
import sys

import yaml

from fixture_engine.errors import TournamentError
from fixture_engine.formats import generate_initial_fixtures, shuffle_teams
from fixture_engine.models import FORMATS, LEAGUE, Team, Tournament
from fixture_engine.rounds import round_from_label
from fixture_engine.settings import merge_settings
from fixture_engine.storage import slugify


def load_teams(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)

    teams = []
    if isinstance(data, dict):
        for pot_name, team_names in data.items():
            for team_name in team_names or []:
                teams.append(Team(slugify(str(team_name)), str(team_name), attributes={'pot': pot_name}))
    elif isinstance(data, list):
        for team_name in data:
            teams.append(Team(slugify(str(team_name)), str(team_name)))
    else:
        raise ValueError(f"{file_path} must contain a list of teams or a mapping of pots to teams")
    return teams


def format_fixtures(tournament, fixtures, byes):
    """Fixtures grouped under '# <round label>' headers, in round order."""
    names = {team.team_id: team.name for team in tournament.teams}
    rounds = {}
    for item in fixtures:
        rounds.setdefault(item['round'], []).append(item)

    lines = []
    for round_ref in sorted(rounds, key=lambda r: r.sort_key()):
        if lines:
            lines.append('')
        lines.append(f"# {round_ref.label}")
        for item in rounds[round_ref]:
            lines.append(f"{names[item['home']]} vs {names[item['away']]}")
        if round_ref.kind == 'knockout':
            for slot in sorted(byes):
                lines.append(f"{names[byes[slot]]} (bye)")
    return '\n'.join(lines)


def main():
    parser = argparse.ArgumentParser(description='Generate opening fixtures for an eFootball tournament')
    parser.add_argument('teams_file', help='YAML roster: a list of teams or pots mapping to teams')
    parser.add_argument('--format', choices=FORMATS, default=LEAGUE, help='Tournament format')
    parser.add_argument('--seed', type=int, help='Random seed for a repeatable draw')
    parser.add_argument('--no-group-stage', action='store_true',
                        help='Cup only: go straight to the knockout bracket')
    parser.add_argument('--home-and-away', action='store_true',
                        help='League only: play every pairing twice')
    parser.add_argument('--round', dest='round_label',
                        help='Only print this round, e.g. "Group B" or "Round of 16"')
    args = parser.parse_args()

    try:
        teams = load_teams(args.teams_file)
        settings = merge_settings({
            'seed': args.seed,
            'group_stage': not args.no_group_stage,
            'home_and_away': args.home_and_away,
        })
        pots = {team.pot for team in teams if team.pot is not None}
        if pots:
            settings['pot_count'] = len(pots)

        tournament = Tournament('cli', 'CLI draw', args.format, teams=teams, settings=settings)
        order = shuffle_teams(tournament.team_ids, args.seed)
        fixtures, byes = generate_initial_fixtures(tournament, order)
        if args.round_label:
            wanted = round_from_label(args.round_label)
            if wanted is None:
                raise ValueError(f"Unknown round: {args.round_label}")
            fixtures = [item for item in fixtures if item['round'].label == wanted.label]
    except (OSError, ValueError, yaml.YAMLError, TournamentError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_fixtures(tournament, fixtures, byes))
    return 0


if __name__ == '__main__':
    sys.exit(main())
