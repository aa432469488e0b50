"""
Unit tests for pool standings and the tie-break chain.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from champs.errors import ConsistencyError, ValidationError
from champs.models import MIXED_DOUBLES, PoolMatch
from champs.pools import assign_pools
from champs.standings import compute_standings, global_comparator, pool_comparator


def fixture(order, a, b, score_a=None, score_b=None, pool=1):
    return PoolMatch(f"mixed_doubles:pool{pool}:m{order}", MIXED_DOUBLES, pool, order, a, b, score_a, score_b)


@pytest.fixture
def four_pairs(make_pairs):
    return make_pairs(4)


class TestComputeStandings:
    """Tests for compute_standings."""

    def test_counts_only_scored_matches(self, four_pairs):
        fixtures = [
            fixture(1, 'p01', 'p02', 21, 15),
            fixture(2, 'p01', 'p03'),
            fixture(3, 'p02', 'p03', 21, 18),
        ]
        result = compute_standings(four_pairs, fixtures)
        assert result['scored_matches'] == 2
        assert result['expected_matches'] == 3

        table = {s.entrant.id: s for s in result['pools'][1]}
        assert table['p01'].played == 1
        assert table['p01'].wins == 1
        assert table['p02'].played == 2
        assert table['p02'].points_for == 36
        assert table['p02'].points_against == 39
        assert table['p02'].point_diff == -3
        assert table['p03'].played == 1

    def test_ranks_by_wins_then_diff(self, four_pairs):
        fixtures = [
            fixture(1, 'p01', 'p02', 10, 21),
            fixture(2, 'p01', 'p03', 21, 19),
            fixture(3, 'p02', 'p03', 21, 5),
        ]
        ranked = compute_standings(four_pairs, fixtures)['pools'][1]
        assert [s.entrant.id for s in ranked] == ['p02', 'p01', 'p03']
        assert [s.pool_rank for s in ranked] == [1, 2, 3]

    def test_head_to_head_breaks_tie(self, four_pairs):
        """Test p03 ranks above p02 on level wins, diff and points because it beat p02."""
        fixtures = [
            fixture(1, 'p01', 'p02', 19, 21),
            fixture(2, 'p01', 'p03', 21, 19),
            fixture(3, 'p01', 'p04', 21, 5),
            fixture(4, 'p02', 'p03', 19, 21),
            fixture(5, 'p02', 'p04', 21, 10),
            fixture(6, 'p03', 'p04', 21, 10),
        ]
        ranked = compute_standings(four_pairs, fixtures)['pools'][1]
        assert [s.entrant.id for s in ranked] == ['p01', 'p03', 'p02', 'p04']
        p02, p03 = ranked[2], ranked[1]
        assert (p02.wins, p02.point_diff, p02.points_for) == (p03.wins, p03.point_diff, p03.points_for)

    def test_seed_breaks_tie_when_nothing_played(self, four_pairs):
        fixtures = [
            fixture(1, 'p03', 'p01'),
            fixture(2, 'p03', 'p02'),
            fixture(3, 'p01', 'p02'),
        ]
        ranked = compute_standings(four_pairs, fixtures)['pools'][1]
        assert [s.entrant.id for s in ranked] == ['p01', 'p02', 'p03']

    def test_pools_kept_apart(self, ten_pairs, score_fixtures):
        _, fixtures = assign_pools(ten_pairs, 3)
        score_fixtures(fixtures)
        pools = compute_standings(ten_pairs, fixtures)['pools']
        assert sorted(pools) == [1, 2, 3]
        assert [s.entrant.id for s in pools[1]] == ['p01', 'p06', 'p07', 'p10']
        assert [s.entrant.id for s in pools[3]] == ['p03', 'p04', 'p09']

    def test_tied_score_rejected(self, four_pairs):
        with pytest.raises(ValidationError):
            compute_standings(four_pairs, [fixture(1, 'p01', 'p02', 21, 21)])

    def test_unknown_pair(self, four_pairs):
        with pytest.raises(ConsistencyError):
            compute_standings(four_pairs, [fixture(1, 'p01', 'ghost', 21, 10)])

    def test_deterministic(self, ten_pairs, score_fixtures):
        _, fixtures = assign_pools(ten_pairs, 3)
        score_fixtures(fixtures)
        first = compute_standings(ten_pairs, fixtures)
        second = compute_standings(list(reversed(ten_pairs)), list(reversed(fixtures)))
        for number in first['pools']:
            assert ([s.to_dict() for s in first['pools'][number]]
                    == [s.to_dict() for s in second['pools'][number]])


class TestComparators:
    """Tests for the comparator chains."""

    def test_pool_chain_order(self):
        tags = [tag[0] for tag in pool_comparator({}).tags]
        assert tags == ['wins', 'point_diff', 'points_for', 'head_to_head', 'seed', 'strength', 'id']

    def test_global_chain_order(self):
        tags = [tag[0] for tag in global_comparator.tags]
        assert tags == ['wins', 'point_diff', 'points_for', 'pool_rank', 'seed', 'strength', 'id']
