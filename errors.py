class LeagueError(Exception):
    """Base class for league client errors"""


class ValidationError(LeagueError):
    """Input rejected locally, before any call reaches the contract"""


class TransientExternalError(LeagueError):
    """A contract read or write failed (network error, rejection, revert)"""

    def __init__(self, message, operation=None):
        super().__init__(message)
        self.operation = operation


class InconsistentSnapshotError(LeagueError):
    """A league snapshot violates one of the lifecycle invariants"""

    def __init__(self, league_id, problems):
        self.league_id = league_id
        self.problems = list(problems)
        super().__init__(f"League {league_id} snapshot is inconsistent: {'; '.join(self.problems)}")
