"""
wishmatch String Matcher

Scores a single trigger ("magic word") against a query fragment. The score
is one of seven tiers, best first::

    EQUALS > STARTS_WITH > WORD_STARTS_WITH > CONTAINS > ACRONYM > MATCHES > NO_MATCH

Comparison is case-insensitive throughout.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Sequence

from wishmatch.exceptions import InvalidMagicWordError

logger = logging.getLogger(__name__)

_PRIMITIVES = (str, int, float)


class MatchRank(IntEnum):
    """Match tiers; a higher value is a better match."""

    NO_MATCH = 0
    MATCHES = 1
    ACRONYM = 2
    CONTAINS = 3
    WORD_STARTS_WITH = 4
    STARTS_WITH = 5
    EQUALS = 6


@dataclass(frozen=True)
class TriggerMatch:
    """Best tier of an action plus the index of the trigger that produced it."""
    rank: MatchRank
    trigger_index: int = -1


NO_MATCH = TriggerMatch(MatchRank.NO_MATCH)


def normalize_word(value: Any, allow_none: bool = False) -> str:
    """
    Stringify a trigger or fragment.

    Strings, numbers and booleans are accepted. ``None`` becomes ``""``
    when *allow_none* is set (fragments); any other object is API misuse.

    Raises:
        InvalidMagicWordError: *value* is not a primitive.
    """
    if value is None and allow_none:
        return ""
    if isinstance(value, _PRIMITIVES):
        return str(value)
    raise InvalidMagicWordError(
        f"Magic words must be strings or numbers, got {type(value).__name__}: {value!r}"
    )


def acronym(text: str) -> str:
    """First character of every space-, then hyphen-delimited token."""
    letters = []
    for word in text.split(" "):
        for part in word.split("-"):
            letters.append(part[:1])
    return "".join(letters)


def _in_char_order(candidate: str, fragment: str) -> bool:
    """Greedy forward subsequence test."""
    position = 0
    for char in fragment:
        found = candidate.find(char, position)
        if found == -1:
            return False
        position = found + 1
    return True


def rank(candidate: Any, fragment: Any) -> MatchRank:
    """Score *candidate* (a trigger) against *fragment*."""
    candidate = normalize_word(candidate).lower()
    fragment = normalize_word(fragment, allow_none=True).lower()

    # too long
    if len(fragment) > len(candidate):
        return MatchRank.NO_MATCH

    if candidate == fragment:
        return MatchRank.EQUALS

    if candidate.startswith(fragment):
        return MatchRank.STARTS_WITH

    if " " + fragment in candidate:
        return MatchRank.WORD_STARTS_WITH

    if fragment in candidate:
        return MatchRank.CONTAINS
    elif len(fragment) == 1:
        # A lone character that never occurs cannot match any other way.
        return MatchRank.NO_MATCH

    if fragment in acronym(candidate):
        return MatchRank.ACRONYM

    if _in_char_order(candidate, fragment):
        return MatchRank.MATCHES
    return MatchRank.NO_MATCH


def best_match(triggers: Sequence[Any], fragment: Any) -> TriggerMatch:
    """Best tier across all *triggers*; the first trigger wins ties."""
    best = NO_MATCH
    for index, trigger in enumerate(triggers):
        trigger_rank = rank(trigger, fragment)
        if trigger_rank > best.rank:
            best = TriggerMatch(trigger_rank, index)
            if trigger_rank == MatchRank.EQUALS:
                break
    return best
