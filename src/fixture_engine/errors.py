"""
Errors raised by fixture generation and stage progression.

All of them are terminal for the request that triggered them: nothing is retried
and no partial round is ever written.
"""


class TournamentError(Exception):
    """Base class for every tournament failure reported to the organizer."""


class InsufficientTeams(TournamentError):
    def __init__(self, count, minimum=2):
        self.count = count
        self.minimum = minimum
        super().__init__(f"At least {minimum} teams are required, got {count}.")


class SeedingError(TournamentError):
    """Pots and groups do not line up."""


class ConfigurationError(TournamentError):
    """Settings or stored data make the requested step impossible."""


class IncompleteRound(TournamentError):
    def __init__(self, outstanding, round_label=None):
        self.outstanding = outstanding
        self.round_label = round_label
        super().__init__(f"Cannot progress: {outstanding} match(es) are still not approved.")


class AlreadyComplete(TournamentError):
    def __init__(self, tournament_id=None):
        self.tournament_id = tournament_id
        super().__init__("Tournament is already completed.")


class InvalidTransition(TournamentError):
    """The action is not allowed in the tournament's current status."""


class TournamentNotFound(TournamentError):
    def __init__(self, tournament_id):
        self.tournament_id = tournament_id
        super().__init__(f"Tournament not found: {tournament_id}")


class RoundConflict(TournamentError):
    """Another request already committed a round for this tournament."""

    def __init__(self, expected, actual):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Tournament was modified concurrently (expected revision {expected}, found {actual})."
        )
