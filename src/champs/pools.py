"""
Pool generation: balanced pool sizes, snake-draft assignment and round-robin
fixtures.
"""
import logging
import math
from itertools import combinations
from typing import List, Tuple

from champs.errors import StateError, ValidationError
from champs.models import Pool, PoolMatch
from champs.seeding import has_duplicate_seeds

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 3
MAX_POOL_SIZE = 4


def seeded_order(entrants) -> list:
    """Order pairs for the draft: seed, then strength, then id."""
    return sorted(entrants, key=lambda e: (e.seed_key, e.strength, str(e.id)))


def calculate_pool_sizes(total: int, target_size: int) -> List[int]:
    """
    Split `total` pairs into pools of 3-4.

    Starts from ceil(total / target_size) pools and only ever removes pools
    while the smallest would be undersized. When no split fits (fewer than 3
    pairs, or 5) the result is a single pool holding everyone.
    """
    if target_size not in (MIN_POOL_SIZE, MAX_POOL_SIZE):
        raise ValidationError(f"Pool size must be {MIN_POOL_SIZE} or {MAX_POOL_SIZE}.")
    if total <= 0:
        return []

    pool_count = max(1, math.ceil(total / target_size))
    while pool_count > 1:
        smallest = total // pool_count
        largest = math.ceil(total / pool_count)
        if smallest >= MIN_POOL_SIZE and largest <= MAX_POOL_SIZE:
            break
        if smallest < MIN_POOL_SIZE and largest <= MAX_POOL_SIZE:
            pool_count -= 1
            continue
        break

    base = total // pool_count
    extra = total % pool_count
    return [base + 1 if i < extra else base for i in range(pool_count)]


def snake_assign(ordered, sizes: List[int]) -> List[list]:
    """Deal pairs into pools left-to-right, then right-to-left, and so on."""
    pools = [[] for _ in sizes]
    cursor = 0
    draft_round = 0
    while cursor < len(ordered):
        indices = list(range(len(pools)))
        if draft_round % 2 == 1:
            indices.reverse()
        for idx in indices:
            if cursor >= len(ordered):
                break
            if len(pools[idx]) >= sizes[idx]:
                continue
            pools[idx].append(ordered[cursor])
            cursor += 1
        draft_round += 1
    return pools


def pool_match_id(event, pool_number, match_order):
    return f"{event}:pool{pool_number}:m{match_order}"


def generate_round_robin(pool: Pool) -> List[PoolMatch]:
    fixtures = []
    for order, (pair_a, pair_b) in enumerate(combinations(pool.entrants, 2), start=1):
        fixtures.append(PoolMatch(
            id=pool_match_id(pool.event, pool.pool_number, order),
            event=pool.event,
            pool_number=pool.pool_number,
            match_order=order,
            pair_a_id=pair_a.id,
            pair_b_id=pair_b.id,
        ))
    return fixtures


def assign_pools(entrants, target_size: int) -> Tuple[List[Pool], List[PoolMatch]]:
    """
    Build pools and their round-robin fixtures for one event.

    Every pair must already carry a seed; pairs are drafted in seed order so
    each pool gets an even spread of seeds.
    """
    if not entrants:
        return [], []

    unseeded = [e.id for e in entrants if e.seed_order is None]
    if unseeded:
        raise StateError("Save seeding first for all pairs.")

    events = {e.event for e in entrants}
    if len(events) > 1:
        raise ValidationError("Pools are generated one event at a time.")
    event = events.pop()
    if has_duplicate_seeds(entrants):
        raise StateError("Seeds must be unique; save seeding again before locking pools.")

    ordered = seeded_order(entrants)
    sizes = calculate_pool_sizes(len(ordered), target_size)
    groups = snake_assign(ordered, sizes)

    pools = [Pool(event, number, members) for number, members in enumerate(groups, start=1)]
    fixtures = []
    for pool in pools:
        fixtures.extend(generate_round_robin(pool))

    logger.debug("%s: %d pairs into pools %s, %d fixtures",
                 event, len(ordered), sizes, len(fixtures))
    return pools, fixtures

