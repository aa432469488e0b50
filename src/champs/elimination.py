"""
Single elimination bracket generation for the knockout stage.
"""
import math
from typing import Dict, List, Optional

from champs.errors import ValidationError
from champs.models import KnockoutMatch
from champs.progression import apply_mutations, champion, group_by_stage, propagate_stage

BEST_OF_CHOICES = (1, 3)


def stage_label(stage: int, total_stages: int) -> str:
    """Get the name of a knockout stage counted from the first round."""
    if total_stages <= 0:
        return f"Stage {stage}"
    if stage == total_stages:
        return "Final"
    elif stage == total_stages - 1:
        return "Semifinal"
    elif stage == total_stages - 2:
        return "Quarterfinal"
    else:
        return f"Round {stage}"


def calculate_bracket_size(num_pairs: int) -> int:
    """Smallest power of two holding every qualifier."""
    if num_pairs <= 1:
        return 1
    return 2 ** math.ceil(math.log2(num_pairs))


def calculate_byes(num_pairs: int) -> int:
    """Empty first-round slots, handed to the top seeds."""
    if num_pairs <= 1:
        return 0
    return calculate_bracket_size(num_pairs) - num_pairs


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """Seed numbers in slot order, so seeds 1 and 2 can only meet in the final."""
    if bracket_size <= 1:
        return [1]

    upper_half = _generate_bracket_order(bracket_size // 2)

    # each seed meets its complement
    result = []
    for seed in upper_half:
        result.extend([seed, bracket_size + 1 - seed])

    return result


def knockout_match_id(event, stage, match_order):
    return f"{event}:ko{stage}:m{match_order}"


def build_bracket(qualifiers) -> Dict:
    """
    Place qualifiers (already in seeding order) into a seeded bracket.

    Returns dict with:
    - 'seeded': list of (seed, standing)
    - 'bracket_size': power of 2 holding every qualifier
    - 'rounds': number of knockout stages (0 means no bracket)
    - 'stage_one_matches': list of dicts with match_order, seeds,
      pair_a_id, pair_b_id and auto_winner_id (set for byes)
    """
    seeded = [(index, standing) for index, standing in enumerate(qualifiers, start=1)]
    bracket_size = calculate_bracket_size(len(seeded))
    rounds = int(math.log2(bracket_size)) if bracket_size > 1 else 0
    seed_to_pair = {seed: standing.entrant.id for seed, standing in seeded}

    stage_one_matches = []
    if rounds > 0:
        bracket_order = _generate_bracket_order(bracket_size)
        for i in range(0, len(bracket_order), 2):
            seed_a = bracket_order[i]
            seed_b = bracket_order[i + 1]
            pair_a = seed_to_pair.get(seed_a)
            pair_b = seed_to_pair.get(seed_b)

            # Handle byes - the seeded pair walks through
            if pair_a is not None and pair_b is None:
                auto_winner = pair_a
            elif pair_b is not None and pair_a is None:
                auto_winner = pair_b
            else:
                auto_winner = None

            stage_one_matches.append({
                'match_order': i // 2 + 1,
                'seeds': (seed_a, seed_b),
                'pair_a_id': pair_a,
                'pair_b_id': pair_b,
                'auto_winner_id': auto_winner,
            })

    return {
        'seeded': seeded,
        'bracket_size': bracket_size,
        'rounds': rounds,
        'stage_one_matches': stage_one_matches,
    }


def create_knockout_matches(event, qualifiers, best_of: int = 1) -> List[KnockoutMatch]:
    """
    Create every knockout row for an event.

    Stage 1 is unlocked straight away with byes already decided; later stages
    start locked and empty and are filled by propagation.
    """
    if best_of not in BEST_OF_CHOICES:
        raise ValidationError("Format must be best of 1 or 3.")

    bracket = build_bracket(qualifiers)
    rounds = bracket['rounds']
    if rounds <= 0:
        return []

    matches = []
    for stage in range(1, rounds + 1):
        match_count = 2 ** (rounds - stage)
        for match_order in range(1, match_count + 1):
            match_id = knockout_match_id(event, stage, match_order)
            if stage == 1:
                base = bracket['stage_one_matches'][match_order - 1]
                matches.append(KnockoutMatch(
                    id=match_id,
                    event=event,
                    stage=stage,
                    match_order=match_order,
                    pair_a_id=base['pair_a_id'],
                    pair_b_id=base['pair_b_id'],
                    best_of=best_of,
                    winner_pair_id=base['auto_winner_id'],
                    is_unlocked=True,
                ))
            else:
                matches.append(KnockoutMatch(
                    id=match_id,
                    event=event,
                    stage=stage,
                    match_order=match_order,
                    best_of=best_of,
                ))

    return apply_mutations(matches, propagate_stage(matches))


def bracket_summary(matches) -> Optional[Dict]:
    """
    Get bracket data formatted for display. Returns None when the event has no
    knockout rows.
    """
    if not matches:
        return None

    stages = group_by_stage(matches)
    total_stages = max(stages)
    first_stage = stages.get(1, [])

    rounds = {}
    matches_per_stage = {}
    for stage, stage_matches in stages.items():
        label = stage_label(stage, total_stages)
        rounds[label] = [m.to_dict() for m in stage_matches]
        matches_per_stage[label] = len([m for m in stage_matches if not m.is_bye])

    return {
        'bracket_size': len(first_stage) * 2,
        'total_rounds': total_stages,
        'byes': sum(1 for m in first_stage if m.is_bye),
        'rounds': rounds,
        'matches_per_stage': matches_per_stage,
        'champion': champion(matches),
    }
