"""
Admin operations over a championships data directory.

Each operation reads the whole snapshot under the store lock, validates, runs
the engine and writes everything back. Nothing is written when an error is
raised.
"""
import functools
import logging
from typing import Dict, List, Optional

from champs import config
from champs.elimination import bracket_summary, create_knockout_matches
from champs.errors import ChampsError, ConsistencyError, StateError, ValidationError
from champs.models import EVENT_LABEL, EVENTS, handicap_starts
from champs.pools import assign_pools
from champs.progression import record_result, record_stage_results, set_stage_format
from champs.qualifiers import parse_advance_count, select_qualifiers
from champs.resolver import parse_games, parse_score
from champs.scheduler import FairnessScheduler
from champs.seeding import new_entrant, save_seed_order, step_readiness
from champs.standings import compute_standings
from champs.store import SnapshotStore

logger = logging.getLogger(__name__)


def _logged(func):
    """Log rejected requests; consistency failures at ERROR."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except ConsistencyError as e:
            logger.error("%s failed: %s", func.__name__, e)
            raise
        except ChampsError as e:
            logger.warning("%s rejected: %s", func.__name__, e)
            raise

    return wrapper


def _check_event(event):
    if event not in EVENTS:
        raise ValidationError("Invalid event type.")
    return event


def _pool_scores(raw_a, raw_b):
    try:
        a = parse_score(raw_a)
        b = parse_score(raw_b)
    except ValidationError:
        raise ValidationError("scores must be whole numbers or blank.")
    if (a is None) != (b is None):
        raise ValidationError("enter both scores or leave both blank.")
    if a is not None and a == b:
        raise ValidationError("a match score cannot be tied.")
    return a, b


def _parse_best_of(raw):
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        raise ValidationError("Format must be best of 1 or 3.")


class ChampsService:
    def __init__(self, data_dir=None, settings=None, store=None):
        self.data_dir = data_dir or config.get_data_dir()
        self.settings = settings if settings is not None else config.load_settings(self.data_dir)
        self.store = store or SnapshotStore(self.data_dir, self.settings['lock_timeout_seconds'])

    # Pairs and seeding

    @_logged
    def add_entrant(self, event, player_one_name, player_one_level, player_two_name,
                    player_two_level, level_doubles_type=None):
        entrant = new_entrant(event, player_one_name, player_one_level, player_two_name,
                              player_two_level, level_doubles_type)
        with self.store.transaction() as snapshot:
            snapshot.entrants.append(entrant)
        logger.info("added %s pair %s", entrant.event, entrant.label())
        return entrant

    @_logged
    def remove_entrant(self, entrant_id):
        with self.store.transaction() as snapshot:
            entrant = next((e for e in snapshot.entrants if e.id == entrant_id), None)
            if entrant is None:
                raise ConsistencyError(f"Pair {entrant_id} does not exist.")
            snapshot.entrants = [e for e in snapshot.entrants if e.id != entrant_id]

            # Fixtures that name the pair can no longer be played.
            fixtures = snapshot.event_pool_matches(entrant.event)
            if any(entrant_id in (m.pair_a_id, m.pair_b_id) for m in fixtures):
                snapshot.replace_pool_matches(entrant.event, [])
                snapshot.replace_knockout_matches(entrant.event, [])
                logger.info("%s: pools and knockout cleared", entrant.event)
        logger.info("removed %s pair %s", entrant.event, entrant_id)
        return entrant

    @_logged
    def save_seeding(self, event, ordered_ids) -> int:
        _check_event(event)
        with self.store.transaction() as snapshot:
            mutations = save_seed_order(snapshot.entrants, event, ordered_ids)
            snapshot.apply(snapshot.entrants, mutations)
            snapshot.replace_pool_matches(event, [])
            snapshot.replace_knockout_matches(event, [])
        logger.info("%s: saved seeding for %d pairs, pools and knockout reset", event, len(mutations))
        return len(mutations)

    # Pools

    @_logged
    def lock_pools(self, event=None, pool_size=None) -> Dict[str, list]:
        """
        Generate pools and fixtures for `event`, or for every event that has
        pairs. Replaces any existing pools and clears the knockout.
        """
        events = [_check_event(event)] if event else list(EVENTS)
        created = {}
        with self.store.transaction() as snapshot:
            active = [ev for ev in events if snapshot.event_entrants(ev)]
            if not active:
                raise StateError("No pairs available to lock.")
            for ev in active:
                size = pool_size if pool_size is not None else self.settings['pool_size'][ev]
                try:
                    size = int(size)
                except (TypeError, ValueError):
                    raise ValidationError("Pool size must be 3 or 4.")
                pools, fixtures = assign_pools(snapshot.event_entrants(ev), size)
                snapshot.replace_pool_matches(ev, fixtures)
                snapshot.replace_knockout_matches(ev, [])
                created[ev] = pools
        for ev, pools in created.items():
            logger.info("%s: locked %d pools (%s)", ev, len(pools), ', '.join(str(len(p)) for p in pools))
        return created

    def _find_pool_match(self, snapshot, match_id):
        match = next((m for m in snapshot.pool_matches if m.id == match_id), None)
        if match is None:
            raise ConsistencyError(f"Pool match {match_id} does not exist.")
        return match

    @staticmethod
    def _score_changes(match, a, b):
        if match.pair_a_score == a and match.pair_b_score == b:
            return None
        # A scored match only changes by clearing it first.
        if match.is_scored and a is not None and b is not None:
            raise StateError(f"Pool {match.pool_number}, match {match.match_order}: "
                             "already scored, clear it before entering a new result.")
        changes = {'id': match.id, 'pair_a_score': a, 'pair_b_score': b}
        if a is not None and b is not None and match.is_playing:
            changes['is_playing'] = False
        return changes

    @_logged
    def record_pool_score(self, match_id, raw_a, raw_b):
        with self.store.transaction() as snapshot:
            match = self._find_pool_match(snapshot, match_id)
            try:
                a, b = _pool_scores(raw_a, raw_b)
            except ValidationError as e:
                raise ValidationError(f"Pool {match.pool_number}, match {match.match_order}: {e}") from e
            changes = self._score_changes(match, a, b)
            if changes:
                snapshot.apply(snapshot.pool_matches, [changes])
                snapshot.replace_knockout_matches(match.event, [])
        if changes:
            logger.info("%s: pool %d match %d scored %s-%s, knockout reset",
                        match.event, match.pool_number, match.match_order, a, b)
        return match

    @_logged
    def record_pool_scores(self, event, entries) -> int:
        """
        Save several pool scores of one event. `entries` maps match id to
        (a, b); every row is checked before anything is written.
        """
        _check_event(event)
        with self.store.transaction() as snapshot:
            fixtures = snapshot.event_pool_matches(event)
            if not fixtures:
                raise StateError("No pool matches found for this event.")
            by_id = {m.id: m for m in fixtures}
            unknown = [match_id for match_id in entries if match_id not in by_id]
            if unknown:
                raise ConsistencyError(f"Pool matches {', '.join(sorted(unknown))} are not in {event}.")

            mutations = []
            for match in fixtures:
                if match.id not in entries:
                    continue
                raw_a, raw_b = entries[match.id]
                try:
                    a, b = _pool_scores(raw_a, raw_b)
                except ValidationError as e:
                    raise ValidationError(f"Pool {match.pool_number}, match {match.match_order}: {e}") from e
                changes = self._score_changes(match, a, b)
                if changes:
                    mutations.append(changes)

            if mutations:
                snapshot.apply(snapshot.pool_matches, mutations)
                snapshot.replace_knockout_matches(event, [])
        logger.info("%s: updated %d pool scores", event, len(mutations))
        return len(mutations)

    @_logged
    def toggle_playing(self, match_id) -> bool:
        with self.store.transaction() as snapshot:
            self._find_pool_match(snapshot, match_id)
            scheduler = FairnessScheduler(snapshot.pool_matches, snapshot.entrants)
            mutation = scheduler.toggle_playing(match_id)
            snapshot.apply(snapshot.pool_matches, [mutation])
        logger.info("%s %s", match_id, 'on court' if mutation['is_playing'] else 'off court')
        return mutation['is_playing']

    def recommendations(self) -> Dict:
        snapshot = self.store.read()
        by_id = {e.id: e for e in snapshot.entrants}
        summary = FairnessScheduler(snapshot.pool_matches, snapshot.entrants).recommend_by_event()
        for event, info in summary['events'].items():
            match = info['recommended']
            if match is None:
                continue
            info['recommended'] = {
                'match': match.to_dict(),
                'pair_a': by_id[match.pair_a_id].label() if match.pair_a_id in by_id else None,
                'pair_b': by_id[match.pair_b_id].label() if match.pair_b_id in by_id else None,
                'handicap': handicap_starts(by_id.get(match.pair_a_id), by_id.get(match.pair_b_id)),
            }
        return summary

    # Standings and knockout

    def _advance_count(self, snapshot, event, raw):
        if raw is None:
            raw = self.settings['advance_count'].get(event)
        pool_count = len({m.pool_number for m in snapshot.event_pool_matches(event)})
        return parse_advance_count(raw, len(snapshot.event_entrants(event)), pool_count)

    @_logged
    def standings(self, event, advance_count=None) -> Dict:
        """Ranked pools for `event` and who would qualify right now."""
        _check_event(event)
        snapshot = self.store.read()
        table = compute_standings(snapshot.event_entrants(event), snapshot.event_pool_matches(event))
        advance = self._advance_count(snapshot, event, advance_count)
        qualifiers, eliminated = select_qualifiers(table['pools'], advance)
        return {
            'event': EVENT_LABEL[event],
            'pools': table['pools'],
            'scored_matches': table['scored_matches'],
            'expected_matches': table['expected_matches'],
            'advance_count': advance,
            'qualifiers': qualifiers,
            'eliminated': eliminated,
        }

    @_logged
    def init_knockout(self, event, advance_count=None, best_of=None) -> List:
        _check_event(event)
        best_of = _parse_best_of(best_of if best_of is not None else self.settings['default_best_of'])
        with self.store.transaction() as snapshot:
            fixtures = snapshot.event_pool_matches(event)
            if not fixtures:
                raise StateError("Lock pools before starting the knockout.")
            table = compute_standings(snapshot.event_entrants(event), fixtures)
            advance = self._advance_count(snapshot, event, advance_count)
            qualifiers, _ = select_qualifiers(table['pools'], advance)
            matches = create_knockout_matches(event, qualifiers, best_of)
            snapshot.replace_knockout_matches(event, matches)
        logger.info("%s: knockout created for %d qualifiers, %d matches", event, len(qualifiers), len(matches))
        return matches

    def _event_knockout(self, snapshot, match_id):
        match = next((m for m in snapshot.knockout_matches if m.id == match_id), None)
        if match is None:
            raise ConsistencyError(f"Knockout match {match_id} does not exist.")
        return match, snapshot.event_knockout_matches(match.event)

    @_logged
    def record_knockout_result(self, match_id, raw_games):
        with self.store.transaction() as snapshot:
            match, event_matches = self._event_knockout(snapshot, match_id)
            if not match.is_unlocked:
                raise StateError("This stage is locked until previous stage is complete.")
            games = parse_games(raw_games, match.best_of)
            mutations = record_result(event_matches, match_id, games)
            snapshot.apply(snapshot.knockout_matches, mutations)
        logger.info("%s: %s now %s", match.event, match_id, match.state)
        return match

    @_logged
    def record_stage_results(self, event, stage, entries) -> int:
        """Save a whole knockout stage. `entries` maps match id to raw games."""
        _check_event(event)
        with self.store.transaction() as snapshot:
            event_matches = snapshot.event_knockout_matches(event)
            by_id = {m.id: m for m in event_matches}
            parsed = {}
            for match_id, raw_games in entries.items():
                match = by_id.get(match_id)
                if match is None:
                    raise ConsistencyError(f"Knockout match {match_id} does not exist.")
                try:
                    parsed[match_id] = parse_games(raw_games, match.best_of)
                except ValidationError as e:
                    raise ValidationError(f"Match {match.match_order}: {e}") from e
            mutations = record_stage_results(event_matches, int(stage), parsed)
            snapshot.apply(snapshot.knockout_matches, mutations)
        logger.info("%s: stage %s saved, %d match update(s)", event, stage, len(mutations))
        return len(mutations)

    @_logged
    def set_stage_format(self, event, stage, best_of) -> int:
        _check_event(event)
        best_of = _parse_best_of(best_of)
        with self.store.transaction() as snapshot:
            mutations = set_stage_format(snapshot.event_knockout_matches(event), int(stage), best_of)
            snapshot.apply(snapshot.knockout_matches, mutations)
        logger.info("%s: stage %s set to best of %d", event, stage, best_of)
        return len(mutations)

    @_logged
    def bracket(self, event) -> Optional[Dict]:
        _check_event(event)
        snapshot = self.store.read()
        return bracket_summary(snapshot.event_knockout_matches(event))

    def readiness(self) -> Dict[str, bool]:
        snapshot = self.store.read()
        return step_readiness(snapshot.entrants, snapshot.pool_matches, snapshot.knockout_matches)

    @_logged
    def finalize(self) -> Dict[str, int]:
        """Wipe the championships: knockout, pools, then pairs."""
        with self.store.transaction() as snapshot:
            cleared = {
                'knockout_matches': len(snapshot.knockout_matches),
                'pool_matches': len(snapshot.pool_matches),
                'entrants': len(snapshot.entrants),
            }
            snapshot.knockout_matches = []
            snapshot.pool_matches = []
            snapshot.entrants = []
        logger.info("finalized: cleared %s", cleared)
        return cleared
