"""
Suggesting which pool match to put on court next.
"""
import logging
from typing import Dict, List, Optional

from champs.errors import ConsistencyError, StateError
from champs.models import EVENTS, PoolMatch

logger = logging.getLogger(__name__)


class FairnessScheduler:
    """
    Works over every pool match of every event at once, since players can be
    entered in both events.

    Candidates are ranked by, in order: how far both pairs lag the busiest
    pair of their event, how far their players lag the busiest player, how
    much the players still have queued, how even the two pairs' match counts
    are, and how much the two pairs still have left to play. Pool number and
    match order break any remaining tie.
    """

    def __init__(self, fixtures, entrants, busy=None):
        self.fixtures = list(fixtures)
        self.pairs = {e.id: e for e in entrants}
        self.played_by_pair = {}
        self.played_by_player = {}
        self.pending_by_player = {}
        self.remaining_by_pair = {}
        self._count()
        self.busy = set(busy) if busy is not None else self.busy_players()

    def _players(self, pair_id) -> List[str]:
        pair = self.pairs.get(pair_id)
        return pair.players if pair else []

    def _match_players(self, match) -> List[str]:
        return self._players(match.pair_a_id) + self._players(match.pair_b_id)

    def _count(self):
        for match in self.fixtures:
            if match.is_scored:
                for pair_id in (match.pair_a_id, match.pair_b_id):
                    self.played_by_pair[pair_id] = self.played_by_pair.get(pair_id, 0) + 1
                    for player in self._players(pair_id):
                        self.played_by_player[player] = self.played_by_player.get(player, 0) + 1
                continue

            for pair_id in (match.pair_a_id, match.pair_b_id):
                self.remaining_by_pair[pair_id] = self.remaining_by_pair.get(pair_id, 0) + 1
                for player in self._players(pair_id):
                    self.pending_by_player[player] = self.pending_by_player.get(player, 0) + 1

    def busy_players(self) -> set:
        """Normalized names of everyone in a match currently marked as playing."""
        busy = set()
        for match in self.fixtures:
            if match.is_playing:
                busy.update(self._match_players(match))
        return busy

    def _score(self, match, max_played_in_event, max_played_by_player):
        a_played = self.played_by_pair.get(match.pair_a_id, 0)
        b_played = self.played_by_pair.get(match.pair_b_id, 0)
        players = self._match_players(match)

        pair_wait_debt = (max_played_in_event - a_played) + (max_played_in_event - b_played)
        player_wait_debt = sum(max_played_by_player - self.played_by_player.get(p, 0) for p in players)
        player_backlog = sum(self.pending_by_player.get(p, 0) for p in players)
        pair_balance_gap = abs(a_played - b_played)
        remaining_work = (self.remaining_by_pair.get(match.pair_a_id, 0)
                          + self.remaining_by_pair.get(match.pair_b_id, 0))

        return (-pair_wait_debt, -player_wait_debt, -player_backlog, pair_balance_gap,
                -remaining_work, match.pool_number, match.match_order)

    def recommend(self, event) -> Optional[PoolMatch]:
        """Best unscored, not-in-play match of `event` whose players are all free."""
        event_matches = [m for m in self.fixtures if m.event == event]
        event_pairs = {pid for m in event_matches for pid in (m.pair_a_id, m.pair_b_id)}
        max_played_in_event = max([0] + [self.played_by_pair.get(pid, 0) for pid in event_pairs])
        max_played_by_player = max([0] + list(self.played_by_player.values()))

        candidates = [
            m for m in event_matches
            if not m.is_playing
            and not m.is_scored
            and not any(p in self.busy for p in self._match_players(m))
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda m: self._score(m, max_played_in_event, max_played_by_player))

    def recommend_by_event(self) -> Dict:
        events = {}
        for event in EVENTS:
            events[event] = {
                'recommended': self.recommend(event),
                'in_play': len([m for m in self.fixtures if m.event == event and m.is_playing]),
            }
        return {
            'events': events,
            'in_play_total': len([m for m in self.fixtures if m.is_playing]),
            'busy_players': len(self.busy),
        }

    def toggle_playing(self, match_id) -> dict:
        """
        Flip a match's in-play flag and return the mutation.

        Turning it on is refused for a scored match and for a match with a
        player already on court elsewhere. Turning it off always works.
        """
        match = next((m for m in self.fixtures if m.id == match_id), None)
        if match is None:
            raise ConsistencyError(f"Pool match {match_id} does not exist.")

        if match.is_playing:
            return {'id': match.id, 'is_playing': False}

        if match.is_scored:
            raise StateError("Cannot mark a scored match as playing.")

        busy_elsewhere = set()
        for other in self.fixtures:
            if other.is_playing and other.id != match.id:
                busy_elsewhere.update(self._match_players(other))
        if any(p in busy_elsewhere for p in self._match_players(match)):
            logger.warning("refused to start %s: a player is already in play", match.id)
            raise StateError("One or more players are already in play.")

        return {'id': match.id, 'is_playing': True}


def busy_players(fixtures, entrants) -> set:
    return FairnessScheduler(fixtures, entrants).busy


def recommend_next_match(fixtures, entrants, busy, event) -> Optional[str]:
    """Id of the fairest match to play next in `event` given the `busy` player keys."""
    match = FairnessScheduler(fixtures, entrants, busy=busy).recommend(event)
    return match.id if match else None


def recommend_by_event(fixtures, entrants) -> Dict:
    return FairnessScheduler(fixtures, entrants).recommend_by_event()


def toggle_playing(fixtures, entrants, match_id) -> dict:
    return FairnessScheduler(fixtures, entrants).toggle_playing(match_id)
