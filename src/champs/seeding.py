"""
Entering pairs and fixing their seed order.
"""
import uuid
from typing import Dict, List

from champs.errors import ConsistencyError, ValidationError
from champs.models import (EVENTS, LEVEL_DOUBLES, LEVEL_DOUBLES_TYPES, LEVELS, Entrant,
                           normalize_name)


def _level(value):
    try:
        level = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError("Invalid player level.")
    if level not in LEVELS:
        raise ValidationError("Invalid player level.")
    return level


def new_entrant(event, player_one_name, player_one_level, player_two_name, player_two_level,
                level_doubles_type=None, entrant_id=None) -> Entrant:
    """
    Validate a pair entry and build the Entrant, unseeded.

    Level doubles pairs must say whether they are mens or womens doubles;
    mixed pairs never carry a type.
    """
    event = str(event or '').strip()
    player_one_name = str(player_one_name or '').strip()
    player_two_name = str(player_two_name or '').strip()
    if not event or not player_one_name or not player_two_name:
        raise ValidationError("Missing required fields.")
    if event not in EVENTS:
        raise ValidationError("Invalid event type.")

    level_one = _level(player_one_level)
    level_two = _level(player_two_level)

    if event == LEVEL_DOUBLES:
        level_doubles_type = str(level_doubles_type or '').strip()
        if level_doubles_type not in LEVEL_DOUBLES_TYPES:
            raise ValidationError("Choose mens or womens doubles.")
    else:
        level_doubles_type = None

    if normalize_name(player_one_name) == normalize_name(player_two_name):
        raise ValidationError("Players must be different.")

    return Entrant(
        id=entrant_id or uuid.uuid4().hex,
        event=event,
        player_one_name=player_one_name,
        player_one_level=level_one,
        player_two_name=player_two_name,
        player_two_level=level_two,
        level_doubles_type=level_doubles_type,
    )


def save_seed_order(entrants, event, ordered_ids) -> List[dict]:
    """
    Seed the listed pairs 1..n in the order given. Pairs left out follow
    them, keeping their previous relative order, so seeds stay unique.
    """
    ordered_ids = list(ordered_ids or [])
    if not ordered_ids:
        raise ValidationError("No pairs supplied.")
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Duplicate ids in request.")

    event_pairs = [e for e in entrants if e.event == event]
    in_event = {e.id for e in event_pairs}
    if any(pair_id not in in_event for pair_id in ordered_ids):
        raise ConsistencyError("Some pairs are missing for this event.")

    listed = set(ordered_ids)
    rest = sorted((e for e in event_pairs if e.id not in listed),
                  key=lambda e: (e.seed_key, e.strength, str(e.id)))
    full_order = ordered_ids + [e.id for e in rest]
    return [{'id': pair_id, 'seed_order': index} for index, pair_id in enumerate(full_order, start=1)]


def has_duplicate_seeds(entrants) -> bool:
    seeds = [e.seed_order for e in entrants if e.seed_order is not None]
    return len(seeds) != len(set(seeds))


def is_fully_seeded(entrants, event) -> bool:
    event_pairs = [e for e in entrants if e.event == event]
    return (bool(event_pairs)
            and all(e.seed_order is not None for e in event_pairs)
            and not has_duplicate_seeds(event_pairs))


def step_readiness(entrants, pool_matches, knockout_matches) -> Dict[str, bool]:
    """
    Which admin steps can be opened. Each step needs the one before it, and
    every event that has pairs must be ready, not just one of them.
    """
    active = [event for event in EVENTS if any(e.event == event for e in entrants)]
    has_pairs = bool(active)
    pools = has_pairs and all(is_fully_seeded(entrants, event) for event in active)
    knockout_setup = pools and all(any(m.event == event for m in pool_matches) for event in active)
    knockout = knockout_setup and all(any(m.event == event for m in knockout_matches) for event in active)
    return {
        'has_pairs': has_pairs,
        'seeding': has_pairs,
        'pools': pools,
        'knockout_setup': knockout_setup,
        'knockout_matches': knockout,
        'finalize': knockout,
    }
