from datetime import datetime

from .rounds import round_from_dict

LEAGUE = 'league'
CUP = 'cup'
CHAMPIONS_LEAGUE = 'champions-league'
SWISS = 'swiss'
FORMATS = (LEAGUE, CUP, CHAMPIONS_LEAGUE, SWISS)

# Tournament status
PENDING = 'pending'
OPEN_FOR_REGISTRATION = 'open_for_registration'
READY_TO_START = 'ready_to_start'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
TOURNAMENT_STATUSES = (PENDING, OPEN_FOR_REGISTRATION, READY_TO_START, IN_PROGRESS, COMPLETED)

# Match status
SCHEDULED = 'scheduled'
AWAITING_CONFIRMATION = 'awaiting_confirmation'
NEEDS_SECONDARY_EVIDENCE = 'needs_secondary_evidence'
DISPUTED = 'disputed'
APPROVED = 'approved'
MATCH_STATUSES = (SCHEDULED, AWAITING_CONFIRMATION, NEEDS_SECONDARY_EVIDENCE, DISPUTED, APPROVED)


def _parse_datetime(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class Team:
    def __init__(self, team_id, name=None, captain_id=None, attributes=None):
        self.team_id = team_id
        self.name = name if name else team_id
        self.captain_id = captain_id
        self.attributes = attributes if attributes else {}

    @property
    def pot(self):
        return self.attributes.get('pot')

    def to_dict(self):
        return {
            'team_id': self.team_id,
            'name': self.name,
            'captain_id': self.captain_id,
            'attributes': dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(data['team_id'], data.get('name'), data.get('captain_id'), data.get('attributes'))

    def __repr__(self):
        return f"Team(team_id={self.team_id}, name={self.name}, attributes={self.attributes})"


class Match:
    def __init__(self, match_id, tournament_id, round, home_team_id, away_team_id,
                 scheduled_at=None, status=SCHEDULED, home_score=None, away_score=None,
                 pk_home_score=None, pk_away_score=None, resolution_notes=None,
                 match_number=1, matchday=None):
        if home_team_id == away_team_id:
            raise ValueError(f"A team cannot play itself: {home_team_id}")
        if status not in MATCH_STATUSES:
            raise ValueError(f"Unknown match status: {status}")
        self.match_id = match_id
        self.tournament_id = tournament_id
        self.round = round
        self.home_team_id = home_team_id
        self.away_team_id = away_team_id
        self.scheduled_at = scheduled_at
        self.status = status
        self.home_score = home_score
        self.away_score = away_score
        self.pk_home_score = pk_home_score
        self.pk_away_score = pk_away_score
        self.resolution_notes = resolution_notes
        self.match_number = match_number  # bracket slot in knockout rounds
        self.matchday = matchday

    @property
    def teams(self):
        return (self.home_team_id, self.away_team_id)

    @property
    def is_approved(self):
        return self.status == APPROVED

    @property
    def has_score(self):
        return self.home_score is not None and self.away_score is not None

    def involves(self, team_id):
        return team_id in self.teams

    def to_dict(self):
        return {
            'match_id': self.match_id,
            'tournament_id': self.tournament_id,
            'round': self.round.to_dict(),
            'round_label': self.round.label,
            'home_team_id': self.home_team_id,
            'away_team_id': self.away_team_id,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'status': self.status,
            'home_score': self.home_score,
            'away_score': self.away_score,
            'pk_home_score': self.pk_home_score,
            'pk_away_score': self.pk_away_score,
            'resolution_notes': self.resolution_notes,
            'match_number': self.match_number,
            'matchday': self.matchday,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            match_id=data['match_id'],
            tournament_id=data.get('tournament_id'),
            round=round_from_dict(data['round']),
            home_team_id=data['home_team_id'],
            away_team_id=data['away_team_id'],
            scheduled_at=_parse_datetime(data.get('scheduled_at')),
            status=data.get('status', SCHEDULED),
            home_score=data.get('home_score'),
            away_score=data.get('away_score'),
            pk_home_score=data.get('pk_home_score'),
            pk_away_score=data.get('pk_away_score'),
            resolution_notes=data.get('resolution_notes'),
            match_number=data.get('match_number', 1),
            matchday=data.get('matchday'),
        )

    def __repr__(self):
        return (f"Match(match_id={self.match_id}, round={self.round.label}, "
                f"{self.home_team_id} vs {self.away_team_id}, status={self.status})")


class Standing:
    def __init__(self, team_id, group=None):
        self.team_id = team_id
        self.group = group
        self.played = 0
        self.wins = 0
        self.draws = 0
        self.losses = 0
        self.goals_for = 0
        self.goals_against = 0
        self.points = 0
        self.clean_sheets = 0
        self.ranking = 0

    @property
    def goal_difference(self):
        return self.goals_for - self.goals_against

    def to_dict(self):
        return {
            'team_id': self.team_id,
            'group': self.group,
            'played': self.played,
            'wins': self.wins,
            'draws': self.draws,
            'losses': self.losses,
            'goals_for': self.goals_for,
            'goals_against': self.goals_against,
            'goal_difference': self.goal_difference,
            'points': self.points,
            'clean_sheets': self.clean_sheets,
            'ranking': self.ranking,
        }

    def __repr__(self):
        return (f"Standing(team_id={self.team_id}, group={self.group}, points={self.points}, "
                f"goal_difference={self.goal_difference}, ranking={self.ranking})")


class Tournament:
    def __init__(self, tournament_id, name, format, teams=None, settings=None,
                 status=OPEN_FOR_REGISTRATION, revision=0, byes=None, champion_id=None):
        if status not in TOURNAMENT_STATUSES:
            raise ValueError(f"Unknown tournament status: {status}")
        self.tournament_id = tournament_id
        self.name = name
        self.format = format
        self.teams = teams if teams else []
        self.settings = settings if settings else {}
        self.status = status
        self.revision = revision  # bumped by every committed round
        self.byes = byes if byes else {}  # opening bracket slot -> team id
        self.champion_id = champion_id

    @property
    def team_ids(self):
        return [team.team_id for team in self.teams]

    def get_team(self, team_id):
        for team in self.teams:
            if team.team_id == team_id:
                return team
        return None

    def to_dict(self):
        return {
            'tournament_id': self.tournament_id,
            'name': self.name,
            'format': self.format,
            'status': self.status,
            'revision': self.revision,
            'teams': [team.to_dict() for team in self.teams],
            'settings': dict(self.settings),
            'byes': {int(slot): team_id for slot, team_id in self.byes.items()},
            'champion_id': self.champion_id,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            tournament_id=data['tournament_id'],
            name=data.get('name', data['tournament_id']),
            format=data['format'],
            teams=[Team.from_dict(t) for t in data.get('teams') or []],
            settings=data.get('settings') or {},
            status=data.get('status', OPEN_FOR_REGISTRATION),
            revision=data.get('revision', 0),
            byes={int(slot): team_id for slot, team_id in (data.get('byes') or {}).items()},
            champion_id=data.get('champion_id'),
        )

    def __repr__(self):
        return (f"Tournament(tournament_id={self.tournament_id}, format={self.format}, "
                f"status={self.status}, teams={len(self.teams)})")
