"""
Choosing which pairs leave pool play for the knockout.
"""
from typing import Dict, List, Tuple

from champs.errors import ValidationError
from champs.models import Standing
from champs.standings import global_comparator, rank


def default_advance_count(total_pairs: int, pool_count: int) -> int:
    """Two per pool by default, never fewer than two, never more than everyone."""
    if total_pairs <= 0:
        return 0
    if pool_count <= 0:
        return total_pairs
    return min(total_pairs, max(2, pool_count * 2))


def parse_advance_count(raw, total_pairs: int, pool_count: int) -> int:
    """
    Read an admin-entered advance count.

    Blank means the default. Anything that is not a whole number, or is
    negative, is rejected; counts above the field size are clamped.
    """
    if raw is None or str(raw).strip() == '':
        return default_advance_count(total_pairs, pool_count)
    text = str(raw).strip()
    try:
        value = int(text)
    except ValueError:
        raise ValidationError("Advance count must be a whole number.")
    if value < 0:
        raise ValidationError("Advance count cannot be negative.")
    return min(value, max(0, total_pairs))


def select_qualifiers(pool_standings: Dict[int, List[Standing]],
                      advance_count: int) -> Tuple[List[Standing], List[Standing]]:
    """
    Pick `advance_count` qualifiers: an equal quota from every pool, then the
    best of the rest across all pools.

    Returns (qualifiers in seeding order, eliminated by pool and rank).
    """
    pool_numbers = sorted(pool_standings)
    all_standings = [s for number in pool_numbers for s in pool_standings[number]]
    safe_advance = max(0, min(advance_count, len(all_standings)))
    per_pool = safe_advance // len(pool_numbers) if pool_numbers else 0

    selected = set()
    for number in pool_numbers:
        for standing in pool_standings[number][:per_pool]:
            selected.add(standing.entrant.id)

    candidates = rank([s for s in all_standings if s.entrant.id not in selected], global_comparator)
    remaining = max(0, safe_advance - len(selected))
    for standing in candidates[:remaining]:
        selected.add(standing.entrant.id)

    qualifiers = rank([s for s in all_standings if s.entrant.id in selected], global_comparator)
    eliminated = sorted(
        (s for s in all_standings if s.entrant.id not in selected),
        key=lambda s: (s.pool_number, s.pool_rank),
    )
    return qualifiers, eliminated
