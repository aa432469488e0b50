"""
Moving winners through the knockout.

Everything here is pure: functions take the full list of an event's knockout
matches and return mutations, dicts of ``{'id': match_id, field: value, ...}``,
which the caller applies in order. Applying the same propagation twice yields
no further mutations.
"""
import logging
from typing import Dict, List

from champs.errors import ConsistencyError, StateError, ValidationError
from champs.models import KnockoutMatch
from champs.resolver import GAMES_FOR_FORMAT, resolve_or_raise

logger = logging.getLogger(__name__)

_CLEARED = {
    'games': None,
    'pair_a_score': None,
    'pair_b_score': None,
    'winner_pair_id': None,
}


def group_by_stage(matches) -> Dict[int, List[KnockoutMatch]]:
    stages = {}
    for match in matches:
        stages.setdefault(match.stage, []).append(match)
    for stage in stages:
        stages[stage].sort(key=lambda m: m.match_order)
    return dict(sorted(stages.items()))


def apply_mutations(matches, mutations) -> List[KnockoutMatch]:
    """Return copies of `matches` with `mutations` applied in order."""
    updated = {m.id: m.copy() for m in matches}
    for mutation in mutations:
        target = updated.get(mutation['id'])
        if target is None:
            raise ConsistencyError(f"Knockout match {mutation['id']} does not exist.")
        for field, value in mutation.items():
            if field != 'id':
                setattr(target, field, value)
    return [updated[m.id] for m in matches]


def _apply_in_place(match, mutation):
    for field, value in mutation.items():
        if field != 'id':
            setattr(match, field, value)


def propagate_stage(matches) -> List[dict]:
    """
    Fill later stages from decided earlier ones.

    Walks stages in order and stops at the first stage with an undecided
    match. Match i of stage s+1 is fed by matches 2i and 2i+1 of stage s.
    A next-stage match that already holds the right pairs and is unlocked
    is left alone so its entered scores survive.
    """
    working = [m.copy() for m in matches]
    stages = group_by_stage(working)
    if not stages:
        return []

    mutations = []
    last_stage = max(stages)
    for stage in range(1, last_stage):
        current = stages.get(stage, [])
        following = stages.get(stage + 1, [])
        if not current or not following:
            continue
        if any(m.winner_pair_id is None for m in current):
            break

        for index, target in enumerate(following):
            source_a = current[2 * index] if 2 * index < len(current) else None
            source_b = current[2 * index + 1] if 2 * index + 1 < len(current) else None
            pair_a = source_a.winner_pair_id if source_a else None
            pair_b = source_b.winner_pair_id if source_b else None

            if target.is_unlocked and target.pair_a_id == pair_a and target.pair_b_id == pair_b:
                continue

            auto_winner = None
            if (pair_a is None) != (pair_b is None):
                auto_winner = pair_a or pair_b

            mutation = dict(_CLEARED, id=target.id, pair_a_id=pair_a, pair_b_id=pair_b,
                            winner_pair_id=auto_winner, is_unlocked=True)
            _apply_in_place(target, mutation)
            mutations.append(mutation)

    if mutations:
        logger.debug("propagation touched %s", [m['id'] for m in mutations])
    return mutations


def invalidate_downstream(matches, from_stage: int) -> List[dict]:
    """Reset every match in stages after `from_stage` to empty and locked."""
    mutations = []
    for match in matches:
        if match.stage <= from_stage:
            continue
        if (match.pair_a_id is None and match.pair_b_id is None and match.games is None
                and not match.has_score and match.winner_pair_id is None and not match.is_unlocked):
            continue
        mutations.append(dict(_CLEARED, id=match.id, pair_a_id=None, pair_b_id=None, is_unlocked=False))
    return mutations


def _result_mutation(match, resolution):
    """Mutation for a resolved match, or None when nothing changes."""
    changes = {
        'games': [tuple(g) for g in resolution.games] if resolution.games else None,
        'pair_a_score': resolution.pair_a_score,
        'pair_b_score': resolution.pair_b_score,
        'winner_pair_id': resolution.winner_pair_id,
    }
    current = {
        'games': [tuple(g) for g in match.games] if match.games else None,
        'pair_a_score': match.pair_a_score,
        'pair_b_score': match.pair_b_score,
        'winner_pair_id': match.winner_pair_id,
    }
    if changes == current:
        return None
    return dict(changes, id=match.id)


def _commit(matches, resolved, stage):
    """Write resolved results, clear later stages if a decided result moved, then propagate."""
    mutations = []
    reopened = False
    for match, resolution in resolved:
        mutation = _result_mutation(match, resolution)
        if mutation is None:
            continue
        if match.winner_pair_id is not None:
            reopened = True
        mutations.append(mutation)

    working = apply_mutations(matches, mutations)
    if reopened:
        cleared = invalidate_downstream(working, stage)
        if cleared:
            logger.info("result change in stage %d reset %d later match(es)", stage, len(cleared))
        mutations.extend(cleared)
        working = apply_mutations(working, cleared)

    mutations.extend(propagate_stage(working))
    return mutations


def record_result(matches, match_id, games) -> List[dict]:
    """Record the games of one knockout match and return the resulting mutations."""
    target = next((m for m in matches if m.id == match_id), None)
    if target is None:
        raise ConsistencyError(f"Knockout match {match_id} does not exist.")
    if not target.is_unlocked:
        raise StateError("This stage is locked until previous stage is complete.")

    resolution = resolve_or_raise(target, games)
    return _commit(matches, [(target, resolution)], target.stage)


def stage_matches(matches, stage) -> List[KnockoutMatch]:
    return group_by_stage(matches).get(stage, [])


def record_stage_results(matches, stage, entries) -> List[dict]:
    """
    Record a whole stage at once. `entries` maps match id to games; matches
    left out keep what they have.

    Nothing is written unless every match validates. Errors name the match.
    """
    in_stage = stage_matches(matches, stage)
    if not in_stage:
        raise ConsistencyError(f"No knockout matches for stage {stage}.")
    if any(not m.is_unlocked for m in in_stage):
        raise StateError("This stage is currently locked.")

    known = {m.id for m in in_stage}
    unknown = [match_id for match_id in entries if match_id not in known]
    if unknown:
        raise ConsistencyError(f"Matches {', '.join(sorted(unknown))} are not in stage {stage}.")

    resolved = []
    for match in in_stage:
        games = entries.get(match.id, match.games)
        try:
            resolved.append((match, resolve_or_raise(match, games)))
        except (ValidationError, StateError) as e:
            raise type(e)(f"Match {match.match_order}: {e}") from e

    return _commit(matches, resolved, stage)


def set_stage_format(matches, stage, best_of) -> List[dict]:
    """
    Switch a stage between best of 1 and best of 3. Refused once any real
    match in the stage has a score.
    """
    if best_of not in GAMES_FOR_FORMAT:
        raise ValidationError("Format must be best of 1 or 3.")
    in_stage = stage_matches(matches, stage)
    if not in_stage:
        raise ConsistencyError(f"No knockout matches for stage {stage}.")
    if any(m.has_both_slots and m.has_score for m in in_stage):
        raise ValidationError("Cannot change format after stage has started.")
    return [{'id': m.id, 'best_of': best_of} for m in in_stage if m.best_of != best_of]


def champion(matches):
    """The winner of the final, once it is decided."""
    stages = group_by_stage(matches)
    if not stages:
        return None
    final = stages[max(stages)]
    if len(final) != 1:
        return None
    return final[0].winner_pair_id
