"""
Tests for knockout stage propagation, invalidation and result entry.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from champs.elimination import create_knockout_matches
from champs.errors import ConsistencyError, StateError, ValidationError
from champs.models import DECIDED, LOCKED, PENDING, MIXED_DOUBLES, Standing
from champs.progression import (
    apply_mutations,
    champion,
    group_by_stage,
    invalidate_downstream,
    propagate_stage,
    record_result,
    record_stage_results,
    set_stage_format,
)

SEMI_1 = "mixed_doubles:ko1:m1"
SEMI_2 = "mixed_doubles:ko1:m2"
FINAL = "mixed_doubles:ko2:m1"


@pytest.fixture
def bracket(make_pairs):
    """Factory for fresh knockout rows from the first n seeds."""
    def make(count, best_of=1):
        qualifiers = [Standing(pair, 1) for pair in make_pairs(count)]
        return create_knockout_matches(MIXED_DOUBLES, qualifiers, best_of)
    return make


def play(matches, match_id, games):
    return apply_mutations(matches, record_result(matches, match_id, games))


def by_id(matches):
    return {m.id: m for m in matches}


class TestPropagation:
    """Tests for propagate_stage."""

    def test_final_locked_until_both_semis_decided(self, bracket):
        matches = play(bracket(4), SEMI_1, [(21, 10)])
        final = by_id(matches)[FINAL]
        assert by_id(matches)[SEMI_1].state == DECIDED
        assert final.state == LOCKED
        assert final.pair_a_id is None

    def test_winners_fill_next_stage(self, bracket):
        matches = play(bracket(4), SEMI_1, [(21, 10)])
        matches = play(matches, SEMI_2, [(15, 21)])
        final = by_id(matches)[FINAL]
        assert (final.pair_a_id, final.pair_b_id) == ('p01', 'p03')
        assert final.state == PENDING

    def test_propagation_is_idempotent(self, bracket):
        """Test running propagation again with nothing new changes nothing."""
        matches = play(bracket(4), SEMI_1, [(21, 10)])
        matches = play(matches, SEMI_2, [(21, 15)])
        matches = play(matches, FINAL, [(21, 19)])
        assert propagate_stage(matches) == []
        assert propagate_stage(apply_mutations(matches, propagate_stage(matches))) == []

    def test_byes_and_winners_meet(self, bracket):
        """Test six seeds: byes for 1 and 2 wait for the 4v5 and 3v6 winners."""
        matches = bracket(6)
        matches = play(matches, "mixed_doubles:ko1:m2", [(21, 18)])
        assert by_id(matches)["mixed_doubles:ko2:m1"].state == LOCKED
        matches = play(matches, "mixed_doubles:ko1:m4", [(12, 21)])
        stage_two = group_by_stage(matches)[2]
        assert [(m.pair_a_id, m.pair_b_id) for m in stage_two] == [('p01', 'p04'), ('p02', 'p06')]
        assert all(m.is_unlocked for m in stage_two)

    def test_champion(self, bracket):
        matches = play(bracket(4), SEMI_1, [(21, 10)])
        matches = play(matches, SEMI_2, [(21, 15)])
        assert champion(matches) is None
        matches = play(matches, FINAL, [(18, 21)])
        assert champion(matches) == 'p02'

    def test_stage_unlock_needs_whole_previous_stage(self, bracket):
        """Test no stage after the first opens while any earlier match is undecided."""
        matches = bracket(8)
        for order in (1, 2, 3):
            matches = play(matches, f"mixed_doubles:ko1:m{order}", [(21, 5)])
        assert all(not m.is_unlocked for m in group_by_stage(matches)[2])


class TestInvalidation:
    """Tests for changing a result after later stages moved on."""

    @pytest.fixture
    def finished(self, bracket):
        matches = play(bracket(4), SEMI_1, [(21, 10)])
        matches = play(matches, SEMI_2, [(21, 15)])
        return play(matches, FINAL, [(21, 19)])

    def test_new_winner_resets_final(self, finished):
        matches = play(finished, SEMI_1, [(10, 21)])
        final = by_id(matches)[FINAL]
        assert (final.pair_a_id, final.pair_b_id) == ('p04', 'p02')
        assert final.winner_pair_id is None
        assert final.games is None
        assert final.state == PENDING
        assert champion(matches) is None

    def test_same_winner_new_score_clears_final(self, finished):
        matches = play(finished, SEMI_1, [(21, 12)])
        final = by_id(matches)[FINAL]
        assert (final.pair_a_id, final.pair_b_id) == ('p01', 'p02')
        assert final.pair_a_score is None
        assert final.winner_pair_id is None

    def test_resubmitting_same_result_keeps_final(self, finished):
        assert record_result(finished, SEMI_1, [(21, 10)]) == []

    def test_clearing_a_result_locks_later_stages(self, finished):
        matches = play(finished, SEMI_2, [(None, None)])
        final = by_id(matches)[FINAL]
        assert by_id(matches)[SEMI_2].state == PENDING
        assert final.state == LOCKED
        assert final.pair_a_id is None and final.pair_b_id is None

    def test_invalidate_downstream(self, finished):
        mutations = invalidate_downstream(finished, 1)
        assert [m['id'] for m in mutations] == [FINAL]
        cleared = apply_mutations(finished, mutations)
        assert invalidate_downstream(cleared, 1) == []


class TestRecordResult:
    """Tests for single match entry errors."""

    def test_locked_match(self, bracket):
        with pytest.raises(StateError):
            record_result(bracket(4), FINAL, [(21, 10)])

    def test_unknown_match(self, bracket):
        with pytest.raises(ConsistencyError):
            record_result(bracket(4), "mixed_doubles:ko9:m1", [(21, 10)])

    def test_invalid_games(self, bracket):
        with pytest.raises(ValidationError):
            record_result(bracket(4), SEMI_1, [(21, 21)])

    def test_input_not_modified(self, bracket):
        matches = bracket(4)
        record_result(matches, SEMI_1, [(21, 10)])
        assert by_id(matches)[SEMI_1].winner_pair_id is None


class TestStageResults:
    """Tests for saving a whole stage at once."""

    def test_saves_every_match(self, bracket):
        matches = bracket(4)
        mutations = record_stage_results(matches, 1, {SEMI_1: [(21, 10)], SEMI_2: [(21, 15)]})
        matches = apply_mutations(matches, mutations)
        assert champion(matches) is None
        assert (by_id(matches)[FINAL].pair_a_id, by_id(matches)[FINAL].pair_b_id) == ('p01', 'p02')

    def test_all_or_nothing(self, bracket):
        """Test one bad match rejects the whole stage and names the match."""
        matches = bracket(4)
        with pytest.raises(ValidationError, match="^Match 2: "):
            record_stage_results(matches, 1, {SEMI_1: [(21, 10)], SEMI_2: [(21, 21)]})

    def test_locked_stage(self, bracket):
        with pytest.raises(StateError):
            record_stage_results(bracket(4), 2, {FINAL: [(21, 10)]})

    def test_match_from_another_stage(self, bracket):
        with pytest.raises(ConsistencyError):
            record_stage_results(bracket(4), 1, {FINAL: [(21, 10)]})

    def test_missing_stage(self, bracket):
        with pytest.raises(ConsistencyError):
            record_stage_results(bracket(4), 5, {})


class TestStageFormat:
    """Tests for switching a stage between best of 1 and best of 3."""

    def test_change_before_start(self, bracket):
        matches = bracket(4)
        mutations = set_stage_format(matches, 1, 3)
        assert {m['id'] for m in mutations} == {SEMI_1, SEMI_2}
        assert {m.best_of for m in apply_mutations(matches, mutations) if m.stage == 1} == {3}

    def test_unchanged_format_is_no_op(self, bracket):
        assert set_stage_format(bracket(4), 1, 1) == []

    def test_rejected_after_start(self, bracket):
        matches = play(bracket(4), SEMI_1, [(21, 10)])
        with pytest.raises(ValidationError, match="after stage has started"):
            set_stage_format(matches, 1, 3)

    def test_byes_do_not_count_as_started(self, bracket):
        """Test a decided bye does not freeze the stage format."""
        assert len(set_stage_format(bracket(6), 1, 3)) == 4

    def test_invalid_format(self, bracket):
        with pytest.raises(ValidationError):
            set_stage_format(bracket(4), 1, 2)
