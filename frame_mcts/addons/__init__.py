"""..."""
from .config import PlannerConfig, default_config, fast_config
from .errors import InvalidStateError, MalformedCollaboratorError, NoActionAvailableError, PlannerError
from .types import Action, EpisodeState, PlannerStats, WorldModel
