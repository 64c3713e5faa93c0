from matup.models.fixture import Fixture, FixtureParticipant
from matup.models.league import League, LeagueMember
from matup.models.legacy_match import LegacyMatch, MatchParticipant
from matup.models.profile import Profile
from matup.models.result_submission import ResultConfirmation, ResultSubmission
from matup.models.running_session import RunningSession, SessionRun

__all__ = [
    "League",
    "LeagueMember",
    "Profile",
    "Fixture",
    "FixtureParticipant",
    "ResultSubmission",
    "ResultConfirmation",
    "RunningSession",
    "SessionRun",
    "LegacyMatch",
    "MatchParticipant",
]
