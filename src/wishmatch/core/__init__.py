"""
wishmatch Core — matching, recency, contexts, registry and coordination.

Re-exports the primary classes for convenience::

    from wishmatch.core import ActionRegistry, ContextEngine, MatchCoordinator
"""

from wishmatch.core.config import WishmatchConfig
from wishmatch.core.context import ContextEngine, PathContexts, PathRule, Scope
from wishmatch.core.engine import MatchCoordinator
from wishmatch.core.matcher import MatchRank, TriggerMatch, best_match, rank
from wishmatch.core.recency import RecencyIndex
from wishmatch.core.registry import Action, ActionRegistry, NavigateDescriptor

__all__ = [
    "WishmatchConfig",
    "ContextEngine",
    "PathContexts",
    "PathRule",
    "Scope",
    "MatchCoordinator",
    "MatchRank",
    "TriggerMatch",
    "best_match",
    "rank",
    "RecencyIndex",
    "Action",
    "ActionRegistry",
    "NavigateDescriptor",
]
