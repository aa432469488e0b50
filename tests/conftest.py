"""
Shared pytest fixtures for the club championships tests.
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from champs.models import Entrant, KnockoutMatch, MIXED_DOUBLES


def _pair(index, event=MIXED_DOUBLES, seeded=True, levels=None):
    level_one, level_two = levels if levels else (min(7, 1 + index // 3), min(7, 2 + index // 3))
    return Entrant(
        id=f"p{index:02d}",
        event=event,
        player_one_name=f"Player {index}A",
        player_one_level=level_one,
        player_two_name=f"Player {index}B",
        player_two_level=level_two,
        seed_order=index if seeded else None,
        level_doubles_type='mens_doubles' if event != MIXED_DOUBLES else None,
    )


@pytest.fixture
def make_pairs():
    """Factory for n pairs p01..pNN seeded 1..n in one event."""
    def make(count, event=MIXED_DOUBLES, seeded=True):
        return [_pair(i, event=event, seeded=seeded) for i in range(1, count + 1)]
    return make


@pytest.fixture
def ten_pairs(make_pairs):
    return make_pairs(10)


@pytest.fixture
def score_fixtures():
    """Score fixtures in place; the better seed wins every match 21-15 unless told otherwise."""
    def score(fixtures, results=None):
        results = results or {}
        for match in fixtures:
            if match.id in results:
                match.pair_a_score, match.pair_b_score = results[match.id]
            else:
                match.pair_a_score, match.pair_b_score = 21, 15
        return fixtures
    return score


@pytest.fixture
def knockout_match():
    """Factory for a single knockout match."""
    def make(pair_a_id='p01', pair_b_id='p02', best_of=1, is_unlocked=True, **kwargs):
        return KnockoutMatch(
            id=kwargs.pop('id', 'mixed_doubles:ko1:m1'),
            event=kwargs.pop('event', MIXED_DOUBLES),
            stage=kwargs.pop('stage', 1),
            match_order=kwargs.pop('match_order', 1),
            pair_a_id=pair_a_id,
            pair_b_id=pair_b_id,
            best_of=best_of,
            is_unlocked=is_unlocked,
            **kwargs
        )
    return make


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point CHAMPS_DATA_DIR at an empty temporary directory."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv('CHAMPS_DATA_DIR', str(data_dir))
    return str(data_dir)


@pytest.fixture
def service(temp_data_dir):
    from champs.service import ChampsService
    return ChampsService()
