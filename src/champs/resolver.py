"""
Turning entered game scores into a knockout match result.
"""
import math
from collections import namedtuple

from champs.errors import StateError, ValidationError

Resolution = namedtuple('Resolution', ['pair_a_score', 'pair_b_score', 'games', 'winner_pair_id', 'error'])

GAMES_FOR_FORMAT = {1: 1, 3: 3}


def parse_score(raw):
    """Blank -> None, a whole non-negative number -> int, anything else is rejected."""
    if raw is None or isinstance(raw, bool):
        if raw is None:
            return None
        raise ValidationError("Scores must be whole numbers.")
    text = str(raw).strip()
    if text == '':
        return None
    try:
        value = float(text)
    except ValueError:
        raise ValidationError("Scores must be whole numbers.")
    if not math.isfinite(value) or not value.is_integer() or value < 0:
        raise ValidationError("Scores must be whole numbers.")
    return int(value)


def _check_game(a, b):
    if (a is None) != (b is None):
        raise ValidationError("Enter both scores for each game you fill.")
    if a is not None and a == b:
        raise ValidationError("A game score cannot be tied.")


def parse_games(raw_games, best_of):
    """
    Parse raw (a, b) score entries for a match played as best of `best_of`.

    Always returns exactly as many games as the format allows, blank games
    padded with (None, None).
    """
    if best_of not in GAMES_FOR_FORMAT:
        raise ValidationError("Format must be best of 1 or 3.")
    game_count = GAMES_FOR_FORMAT[best_of]
    raw_games = list(raw_games or [])

    games = []
    for index, raw in enumerate(raw_games):
        raw_a, raw_b = raw
        a = parse_score(raw_a)
        b = parse_score(raw_b)
        if index >= game_count:
            if a is not None or b is not None:
                raise ValidationError(f"Best-of-{best_of} allows at most {game_count} game score"
                                      f"{'s' if game_count > 1 else ''}.")
            continue
        _check_game(a, b)
        games.append((a, b))

    while len(games) < game_count:
        games.append((None, None))
    return games


def _failed(error):
    return Resolution(None, None, None, None, error)


def resolve_match(match, games):
    """
    Work out the aggregate score and winner of a knockout match.

    Never raises: problems come back in `error` as a ValidationError or
    StateError instance. Best-of-1 reports the points of its single game;
    best-of-3 reports games won.
    """
    games = [tuple(g) for g in (games or [])]
    entered = [g for g in games if g[0] is not None or g[1] is not None]

    if match.pair_a_id is None and match.pair_b_id is None:
        return _failed(StateError("Both pairs are not set for this match yet."))
    if match.is_bye:
        if entered:
            return _failed(ValidationError("A bye has no score to enter."))
        return Resolution(None, None, None, match.pair_a_id or match.pair_b_id, None)

    if match.best_of not in GAMES_FOR_FORMAT:
        return _failed(ValidationError("Format must be best of 1 or 3."))

    for a, b in games:
        for score in (a, b):
            if score is not None and (isinstance(score, bool) or not isinstance(score, int) or score < 0):
                return _failed(ValidationError("Scores must be whole numbers."))
        try:
            _check_game(a, b)
        except ValidationError as e:
            return _failed(e)

    # No gaps like game 1 filled, game 2 blank, game 3 filled.
    seen_blank = False
    for a, b in games:
        filled = a is not None and b is not None
        if not filled:
            seen_blank = True
        elif seen_blank:
            return _failed(ValidationError("Fill game scores in order without skipping games."))

    completed = [g for g in games if g[0] is not None]
    limit = GAMES_FOR_FORMAT[match.best_of]
    if len(completed) > limit:
        if match.best_of == 1:
            return _failed(ValidationError("Best-of-1 allows only one game score."))
        return _failed(ValidationError("Best-of-3 allows at most three game scores."))

    if not completed:
        return Resolution(None, None, None, None, None)

    won_a = sum(1 for a, b in completed if a > b)
    won_b = len(completed) - won_a

    if match.best_of == 1:
        a, b = completed[0]
        winner = match.pair_a_id if a > b else match.pair_b_id
        return Resolution(a, b, completed, winner, None)

    # Best-of-3: 2-0 finishes after two games, 1-1 needs a third.
    winner = None
    if max(won_a, won_b) >= 2:
        winner = match.pair_a_id if won_a > won_b else match.pair_b_id
    return Resolution(won_a, won_b, completed, winner, None)


def resolve_or_raise(match, games):
    resolution = resolve_match(match, games)
    if resolution.error is not None:
        raise resolution.error
    return resolution
