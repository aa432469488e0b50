"""
Pool standings.

Ranking is a chain of tagged comparators folded left to right. Every chain ends
on the pair id, so two standings never compare equal.
"""
import logging
from functools import cmp_to_key
from typing import Callable, Dict, List

from champs.errors import ConsistencyError, ValidationError
from champs.models import Standing

logger = logging.getLogger(__name__)

ASC = 'asc'
DESC = 'desc'

_KEYS = {
    'wins': lambda s: s.wins,
    'point_diff': lambda s: s.point_diff,
    'points_for': lambda s: s.points_for,
    'pool_rank': lambda s: s.pool_rank,
    'seed': lambda s: s.entrant.seed_key,
    'strength': lambda s: s.entrant.strength,
    'id': lambda s: str(s.entrant.id),
}


def by_key(name: str, direction: str) -> Callable:
    key = _KEYS[name]

    def compare(a, b):
        ka, kb = key(a), key(b)
        if ka == kb:
            return 0
        result = -1 if ka < kb else 1
        return -result if direction == DESC else result

    compare.tag = (name, direction)
    return compare


def head_to_head(h2h: Dict[frozenset, str]) -> Callable:
    """The winner of the pairs' own meeting ranks first, when they met."""

    def compare(a, b):
        winner = h2h.get(frozenset((a.entrant.id, b.entrant.id)))
        if winner == a.entrant.id:
            return -1
        if winner == b.entrant.id:
            return 1
        return 0

    compare.tag = ('head_to_head', DESC)
    return compare


def chain(*comparators) -> Callable:
    def compare(a, b):
        for comparator in comparators:
            result = comparator(a, b)
            if result:
                return result
        return 0

    compare.tags = [c.tag for c in comparators]
    return compare


def pool_comparator(h2h: Dict[frozenset, str]) -> Callable:
    return chain(
        by_key('wins', DESC),
        by_key('point_diff', DESC),
        by_key('points_for', DESC),
        head_to_head(h2h),
        by_key('seed', ASC),
        by_key('strength', ASC),
        by_key('id', ASC),
    )


# Cross-pool ranking used for wildcards and bracket seeding. It has no
# head-to-head step; in-pool rank stands in for it.
global_comparator = chain(
    by_key('wins', DESC),
    by_key('point_diff', DESC),
    by_key('points_for', DESC),
    by_key('pool_rank', ASC),
    by_key('seed', ASC),
    by_key('strength', ASC),
    by_key('id', ASC),
)


def rank(standings, comparator) -> List[Standing]:
    return sorted(standings, key=cmp_to_key(comparator))


def compute_standings(entrants, fixtures) -> Dict:
    """
    Calculate ranked standings for every pool of one event.

    Returns: {'pools': {pool_number: [Standing, ...]},
              'scored_matches': n, 'expected_matches': n}

    Ranking: wins -> point_diff -> points_for -> head-to-head -> seed ->
    strength -> id
    """
    by_id = {e.id: e for e in entrants}
    standings = {}
    h2h = {}

    for match in fixtures:
        for pair_id in (match.pair_a_id, match.pair_b_id):
            if pair_id not in by_id:
                raise ConsistencyError(
                    f"Pool {match.pool_number}, match {match.match_order}: pair {pair_id} does not exist."
                )
            if pair_id not in standings:
                standings[pair_id] = Standing(by_id[pair_id], match.pool_number)

    scored_matches = 0
    for match in fixtures:
        if not match.is_scored:
            continue
        if match.pair_a_score == match.pair_b_score:
            raise ValidationError(
                f"Pool {match.pool_number}, match {match.match_order}: a match score cannot be tied."
            )
        scored_matches += 1
        a = standings[match.pair_a_id]
        b = standings[match.pair_b_id]
        a.record(match.pair_a_score, match.pair_b_score)
        b.record(match.pair_b_score, match.pair_a_score)
        winner = match.pair_a_id if match.pair_a_score > match.pair_b_score else match.pair_b_id
        h2h[frozenset((match.pair_a_id, match.pair_b_id))] = winner

    by_pool = {}
    for standing in standings.values():
        by_pool.setdefault(standing.pool_number, []).append(standing)

    comparator = pool_comparator(h2h)
    pools = {}
    for pool_number in sorted(by_pool):
        ranked = rank(by_pool[pool_number], comparator)
        for index, standing in enumerate(ranked, start=1):
            standing.pool_rank = index
        pools[pool_number] = ranked

    logger.debug("standings: %d pools, %d/%d matches scored",
                 len(pools), scored_matches, len(fixtures))
    return {
        'pools': pools,
        'scored_matches': scored_matches,
        'expected_matches': len(fixtures),
    }
