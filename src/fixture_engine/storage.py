"""
YAML file storage for tournaments.

Each tournament lives in its own directory:

    <data_dir>/<tournament_id>/tournament.yaml   tournament document and all matches
    <data_dir>/<tournament_id>/standings.yaml    derived tables
    <data_dir>/<tournament_id>/.lock             file lock guarding read-check-write

The tournament and its matches share one document so a new round and the
revision that records it are written with a single atomic replace.
"""
import os
import re
import logging

import yaml
from filelock import FileLock

from .errors import ConfigurationError, RoundConflict, TournamentNotFound
from .models import Match, Tournament

logger = logging.getLogger(__name__)

TOURNAMENT_FILE = 'tournament.yaml'
STANDINGS_FILE = 'standings.yaml'
LOCK_FILE = '.lock'


def slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def _write_yaml(path, data):
    """Write YAML to a temporary file, then move it over the target."""
    tmp_path = path + '.tmp'
    with open(tmp_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    os.replace(tmp_path, path)


def _read_yaml(path):
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


class TournamentStore:
    def __init__(self, data_dir, lock_timeout=10):
        self.data_dir = data_dir
        self.lock_timeout = lock_timeout
        os.makedirs(self.data_dir, exist_ok=True)

    def _tournament_dir(self, tournament_id):
        if not tournament_id or slugify(tournament_id) != tournament_id:
            raise TournamentNotFound(tournament_id)
        return os.path.join(self.data_dir, tournament_id)

    def _file_path(self, tournament_id, filename):
        return os.path.join(self._tournament_dir(tournament_id), filename)

    def exists(self, tournament_id):
        try:
            return os.path.exists(self._file_path(tournament_id, TOURNAMENT_FILE))
        except TournamentNotFound:
            return False

    def lock(self, tournament_id):
        """A fresh lock object per call, so each caller holds its own file handle."""
        directory = self._tournament_dir(tournament_id)
        if not os.path.isdir(directory):
            raise TournamentNotFound(tournament_id)
        return FileLock(os.path.join(directory, LOCK_FILE), timeout=self.lock_timeout)

    def new_tournament_id(self, name):
        base = slugify(name)
        candidate = base
        suffix = 2
        while os.path.exists(os.path.join(self.data_dir, candidate)):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def create(self, tournament):
        directory = self._tournament_dir(tournament.tournament_id)
        if os.path.exists(directory):
            raise ConfigurationError(f"Tournament already exists: {tournament.tournament_id}")
        os.makedirs(directory)
        self._write_document(tournament, [])
        logger.info("Created tournament %s (%s)", tournament.tournament_id, tournament.format)

    def list_tournaments(self):
        if not os.path.isdir(self.data_dir):
            return []
        return sorted(
            entry for entry in os.listdir(self.data_dir)
            if os.path.exists(os.path.join(self.data_dir, entry, TOURNAMENT_FILE))
        )

    def _load_document(self, tournament_id):
        path = self._file_path(tournament_id, TOURNAMENT_FILE)
        if not os.path.exists(path):
            raise TournamentNotFound(tournament_id)
        data = _read_yaml(path)
        if not data or 'tournament' not in data:
            raise ConfigurationError(f"Tournament file for {tournament_id} is empty or corrupt")
        return data

    def _write_document(self, tournament, matches):
        _write_yaml(self._file_path(tournament.tournament_id, TOURNAMENT_FILE), {
            'tournament': tournament.to_dict(),
            'matches': [match.to_dict() for match in matches],
        })

    def load(self, tournament_id):
        """Return (tournament, matches)."""
        data = self._load_document(tournament_id)
        try:
            tournament = Tournament.from_dict(data['tournament'])
            matches = [Match.from_dict(m) for m in data.get('matches') or []]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Tournament file for {tournament_id} is corrupt: {e}")
        return tournament, matches

    def load_tournament(self, tournament_id):
        return self.load(tournament_id)[0]

    def load_matches(self, tournament_id):
        return self.load(tournament_id)[1]

    def save(self, tournament, matches):
        self._write_document(tournament, matches)

    def commit_round(self, tournament, matches, expected_revision):
        """
        Compare-and-swap write of a tournament whose round changed.

        The stored revision must still equal expected_revision; the document is then
        written with the revision bumped. Raises RoundConflict otherwise, leaving the
        stored document untouched.
        """
        stored = self._load_document(tournament.tournament_id)
        actual = stored['tournament'].get('revision', 0)
        if actual != expected_revision:
            raise RoundConflict(expected_revision, actual)
        tournament.revision = expected_revision + 1
        self._write_document(tournament, matches)
        return tournament.revision

    def load_standings(self, tournament_id):
        path = self._file_path(tournament_id, STANDINGS_FILE)
        if not os.path.exists(path):
            return {}
        return _read_yaml(path) or {}

    def save_standings(self, tournament_id, tables):
        """tables maps a table name to a list of Standing objects."""
        _write_yaml(self._file_path(tournament_id, STANDINGS_FILE), {
            name: [standing.to_dict() for standing in table] for name, table in tables.items()
        })
