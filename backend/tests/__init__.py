# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from matup.models.fixture import Fixture, FixtureParticipant  # noqa: F401
from matup.models.league import League, LeagueMember  # noqa: F401
from matup.models.legacy_match import LegacyMatch, MatchParticipant  # noqa: F401
from matup.models.profile import Profile  # noqa: F401
from matup.models.result_submission import ResultConfirmation, ResultSubmission  # noqa: F401
from matup.models.running_session import RunningSession, SessionRun  # noqa: F401
