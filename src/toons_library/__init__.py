from .auth_flow import AuthExchangeFlow
from .callback_listener import CallbackListener, CallbackResult, await_callback
from .config import EsiConfig
from .credential_store import CredentialRecord, CredentialStore
from .esi_client import EsiClient, TokenPair
from .queue_stats import ProgressStat, QueuedSkill, aggregate
from .stats_orchestrator import StatsOrchestrator, StatsReport

__all__ = [
    "AuthExchangeFlow",
    "CallbackListener",
    "CallbackResult",
    "await_callback",
    "EsiConfig",
    "CredentialRecord",
    "CredentialStore",
    "EsiClient",
    "TokenPair",
    "ProgressStat",
    "QueuedSkill",
    "aggregate",
    "StatsOrchestrator",
    "StatsReport",
]
