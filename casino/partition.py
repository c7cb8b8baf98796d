"""Partitioning cards into equal-sum groups.

Both captures and builds reduce to the same question: can a multiset of card
values be split into one or more disjoint groups that each add up to a
target? Hands are capped at ten cards, so a backtracking search is fast enough.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Union

from .cards import Card

CardOrValue = Union[Card, int]


def _values(items: Iterable[CardOrValue]) -> List[int] | None:
    values: List[int] = []
    for item in items:
        if isinstance(item, Card):
            if item.value is None:
                return None
            values.append(item.value)
        else:
            values.append(int(item))
    return values


def can_partition_into_sums(items: Iterable[CardOrValue], target: int) -> bool:
    """Return True if the items split into non-empty groups each summing to ``target``.

    Accepts cards or plain integers. Face cards make the input unpartitionable.
    """
    values = _values(items)
    if not values or target <= 0:
        return False
    total = sum(values)
    if total % target != 0:
        return False
    if any(value > target or value <= 0 for value in values):
        return False

    values.sort(reverse=True)
    group_count = total // target
    used = [False] * len(values)

    def fill(groups_left: int, start: int, remaining: int) -> bool:
        if groups_left == 0:
            return True
        if remaining == 0:
            return fill(groups_left - 1, 0, target)
        previous = None
        for index in range(start, len(values)):
            if used[index]:
                continue
            value = values[index]
            if value > remaining or value == previous:
                continue
            used[index] = True
            if fill(groups_left, index + 1, remaining - value):
                return True
            used[index] = False
            previous = value
            # The first card of a fresh group must be placed somewhere.
            if remaining == target:
                break
        return False

    return fill(group_count, 0, target)


def candidate_build_values(stack_cards: Sequence[Card], remaining_hand: Iterable[Card]) -> List[int]:
    """Return every value in the remaining hand that the stack could resolve to."""
    hand_values = sorted({card.value for card in remaining_hand if card.value is not None})
    return [value for value in hand_values if can_partition_into_sums(stack_cards, value)]
