"""
wishmatch Output Formatting

Renders query results for the CLI in console, JSON and compact form.
"""

import json
import shutil
from typing import List, Optional, Sequence, Tuple

from wishmatch.core.matcher import MatchRank
from wishmatch.core.registry import Action

RankedAction = Tuple[Action, Optional[MatchRank]]

_RANK_LABELS = {
    MatchRank.EQUALS: "equals",
    MatchRank.STARTS_WITH: "starts with",
    MatchRank.WORD_STARTS_WITH: "word starts with",
    MatchRank.CONTAINS: "contains",
    MatchRank.ACRONYM: "acronym",
    MatchRank.MATCHES: "in order",
}


def rank_label(rank: Optional[MatchRank]) -> str:
    return "recent" if rank is None else _RANK_LABELS.get(rank, "no match")


class ActionFormatter:
    """Format actions for different output modes."""

    # ── Helpers ───────────────────────────────────────────────────

    @staticmethod
    def _target(action: Action) -> str:
        return action.navigation.target if action.navigation else ""

    @staticmethod
    def _scope_text(action: Action) -> str:
        parts = [f"{kind}={','.join(labels)}" for kind, labels in action.scope.to_dict().items()]
        return " ".join(parts)

    # ── Console (human-friendly) ──────────────────────────────────

    @staticmethod
    def format_console(results: Sequence[RankedAction], fragment: str = "",
                       explain: bool = False) -> str:
        """
        Numbered list with trigger, id, target and usage.

        Args:
            results: Actions paired with the tier that ranked them.
            fragment: The query, echoed in the header.
            explain: Show which tier placed each action.
        """
        if not results:
            return "\n  No matching wishes.\n"

        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width
        count = len(results)

        out: List[str] = [f"\n{thin}"]
        out.append(f"  WISHMATCH — {count} match{'es' if count != 1 else ''} for {fragment!r}")
        out.append(thin)
        for index, (action, rank) in enumerate(results, start=1):
            out.append(f"  #{index}  {action.primary_trigger}  [{action.id}]")
            if len(action.triggers) > 1:
                out.append(f"      Also   : {', '.join(action.triggers[1:])}")
            target = ActionFormatter._target(action)
            if target:
                out.append(f"      Target : {target}")
            out.append(f"      Scope  : {ActionFormatter._scope_text(action)}")
            out.append(f"      Used   : {action.total_invocations}x")
            if explain:
                out.append(f"      Rank   : {rank_label(rank)}")
        out.append(thin)
        return "\n".join(out)

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(results: Sequence[RankedAction]) -> str:
        def _to_obj(action: Action, rank: Optional[MatchRank]) -> dict:
            obj = action.to_dict()
            obj["rank"] = rank_label(rank)
            return obj

        return json.dumps([_to_obj(a, r) for a, r in results], indent=2, allow_nan=False)

    # ── Compact (one line per result) ─────────────────────────────

    @staticmethod
    def format_compact(results: Sequence[RankedAction]) -> str:
        if not results:
            return "No matching wishes."
        return "\n".join(
            f"{action.id}\t{action.primary_trigger}\t{rank_label(rank)}"
            for action, rank in results
        )
