"""
Plain records for the club championships: pairs, pool matches, standings and
knockout matches.
"""
import copy

LEVEL_DOUBLES = 'level_doubles'
MIXED_DOUBLES = 'mixed_doubles'
EVENTS = (LEVEL_DOUBLES, MIXED_DOUBLES)

EVENT_LABEL = {
    LEVEL_DOUBLES: 'Level doubles',
    MIXED_DOUBLES: 'Mixed doubles',
}

LEVELS = {1, 2, 3, 4, 5, 6, 7}
REC_LEVEL = 7
LEVEL_DOUBLES_TYPES = {'mens_doubles', 'womens_doubles'}
WOMENS_DOUBLES_BONUS = 3

# Sorts unseeded pairs after every seeded one.
UNSEEDED = float('inf')


def normalize_name(value):
    return str(value or '').strip().lower()


def level_label(level):
    """Display label for a player level: 'Team 1'..'Team 6' or 'Rec'."""
    try:
        n = int(level)
    except (TypeError, ValueError):
        return str(level if level is not None else '')
    if 1 <= n <= 6:
        return f"Team {n}"
    if n == REC_LEVEL:
        return 'Rec'
    return str(level)


def calculate_pair_strength(player_one_level, player_two_level, event, level_doubles_type=None):
    base = int(player_one_level) + int(player_two_level)
    if event == LEVEL_DOUBLES and level_doubles_type == 'womens_doubles':
        return base + WOMENS_DOUBLES_BONUS
    return base


def pool_name(pool_number):
    """'Pool A' for pool 1, falling back to 'Pool 27' past the alphabet."""
    alphabet = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'
    if 1 <= pool_number <= len(alphabet):
        return f"Pool {alphabet[pool_number - 1]}"
    return f"Pool {pool_number}"


class Entrant:
    def __init__(self, id, event, player_one_name, player_one_level, player_two_name,
                 player_two_level, seed_order=None, level_doubles_type=None):
        self.id = id
        self.event = event
        self.player_one_name = player_one_name
        self.player_one_level = player_one_level
        self.player_two_name = player_two_name
        self.player_two_level = player_two_level
        self.seed_order = seed_order
        self.level_doubles_type = level_doubles_type

    @property
    def strength(self):
        # Recomputed from the levels every time so a stored value can never go stale.
        return calculate_pair_strength(self.player_one_level, self.player_two_level,
                                       self.event, self.level_doubles_type)

    @property
    def seed_key(self):
        return self.seed_order if self.seed_order is not None else UNSEEDED

    @property
    def players(self):
        return [name for name in (normalize_name(self.player_one_name),
                                  normalize_name(self.player_two_name)) if name]

    def label(self):
        return (f"{self.player_one_name} ({level_label(self.player_one_level)}) + "
                f"{self.player_two_name} ({level_label(self.player_two_level)})")

    def to_dict(self):
        return {
            'id': self.id,
            'event': self.event,
            'player_one_name': self.player_one_name,
            'player_one_level': self.player_one_level,
            'player_two_name': self.player_two_name,
            'player_two_level': self.player_two_level,
            'seed_order': self.seed_order,
            'level_doubles_type': self.level_doubles_type,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            event=data['event'],
            player_one_name=data['player_one_name'],
            player_one_level=data['player_one_level'],
            player_two_name=data['player_two_name'],
            player_two_level=data['player_two_level'],
            seed_order=data.get('seed_order'),
            level_doubles_type=data.get('level_doubles_type'),
        )

    def __repr__(self):
        return f"Entrant(id={self.id}, event={self.event}, seed={self.seed_order}, strength={self.strength})"


class Pool:
    def __init__(self, event, pool_number, entrants=None):
        self.event = event
        self.pool_number = pool_number
        self.entrants = entrants if entrants else []

    @property
    def name(self):
        return pool_name(self.pool_number)

    def __len__(self):
        return len(self.entrants)

    def __repr__(self):
        return f"Pool(event={self.event}, number={self.pool_number}, entrants={[e.id for e in self.entrants]})"


class PoolMatch:
    def __init__(self, id, event, pool_number, match_order, pair_a_id, pair_b_id,
                 pair_a_score=None, pair_b_score=None, is_playing=False):
        self.id = id
        self.event = event
        self.pool_number = pool_number
        self.match_order = match_order
        self.pair_a_id = pair_a_id
        self.pair_b_id = pair_b_id
        self.pair_a_score = pair_a_score
        self.pair_b_score = pair_b_score
        self.is_playing = is_playing

    @property
    def is_scored(self):
        return self.pair_a_score is not None and self.pair_b_score is not None

    def to_dict(self):
        return {
            'id': self.id,
            'event': self.event,
            'pool_number': self.pool_number,
            'match_order': self.match_order,
            'pair_a_id': self.pair_a_id,
            'pair_b_id': self.pair_b_id,
            'pair_a_score': self.pair_a_score,
            'pair_b_score': self.pair_b_score,
            'is_playing': self.is_playing,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            event=data['event'],
            pool_number=data['pool_number'],
            match_order=data['match_order'],
            pair_a_id=data['pair_a_id'],
            pair_b_id=data['pair_b_id'],
            pair_a_score=data.get('pair_a_score'),
            pair_b_score=data.get('pair_b_score'),
            is_playing=bool(data.get('is_playing', False)),
        )

    def __repr__(self):
        return (f"PoolMatch(id={self.id}, pool={self.pool_number}, order={self.match_order}, "
                f"{self.pair_a_id} {self.pair_a_score}-{self.pair_b_score} {self.pair_b_id})")


class Standing:
    """A pair's record inside its pool. Derived on demand, never stored."""

    def __init__(self, entrant, pool_number):
        self.entrant = entrant
        self.pool_number = pool_number
        self.pool_rank = 0
        self.played = 0
        self.wins = 0
        self.losses = 0
        self.points_for = 0
        self.points_against = 0
        self.point_diff = 0

    def record(self, scored, conceded):
        self.played += 1
        self.points_for += scored
        self.points_against += conceded
        self.point_diff = self.points_for - self.points_against
        if scored > conceded:
            self.wins += 1
        else:
            self.losses += 1

    def to_dict(self):
        return {
            'pair_id': self.entrant.id,
            'pair': self.entrant.label(),
            'pool_number': self.pool_number,
            'pool_rank': self.pool_rank,
            'played': self.played,
            'wins': self.wins,
            'losses': self.losses,
            'points_for': self.points_for,
            'points_against': self.points_against,
            'point_diff': self.point_diff,
        }

    def __repr__(self):
        return (f"Standing(pair={self.entrant.id}, pool={self.pool_number}, rank={self.pool_rank}, "
                f"wins={self.wins}, diff={self.point_diff})")


LOCKED = 'locked'
PENDING = 'pending'
DECIDED = 'decided'


class KnockoutMatch:
    def __init__(self, id, event, stage, match_order, pair_a_id=None, pair_b_id=None,
                 best_of=1, games=None, pair_a_score=None, pair_b_score=None,
                 winner_pair_id=None, is_unlocked=False):
        self.id = id
        self.event = event
        self.stage = stage
        self.match_order = match_order
        self.pair_a_id = pair_a_id
        self.pair_b_id = pair_b_id
        self.best_of = best_of
        self.games = games
        self.pair_a_score = pair_a_score
        self.pair_b_score = pair_b_score
        self.winner_pair_id = winner_pair_id
        self.is_unlocked = is_unlocked

    @property
    def is_bye(self):
        return (self.pair_a_id is None) != (self.pair_b_id is None)

    @property
    def has_both_slots(self):
        return self.pair_a_id is not None and self.pair_b_id is not None

    @property
    def has_score(self):
        return self.pair_a_score is not None or self.pair_b_score is not None

    @property
    def state(self):
        if self.winner_pair_id is not None:
            return DECIDED
        if self.is_unlocked and (self.pair_a_id is not None or self.pair_b_id is not None):
            return PENDING
        return LOCKED

    def copy(self):
        return copy.deepcopy(self)

    def to_dict(self):
        return {
            'id': self.id,
            'event': self.event,
            'stage': self.stage,
            'match_order': self.match_order,
            'pair_a_id': self.pair_a_id,
            'pair_b_id': self.pair_b_id,
            'best_of': self.best_of,
            'games': [list(g) for g in self.games] if self.games is not None else None,
            'pair_a_score': self.pair_a_score,
            'pair_b_score': self.pair_b_score,
            'winner_pair_id': self.winner_pair_id,
            'is_unlocked': self.is_unlocked,
        }

    @classmethod
    def from_dict(cls, data):
        games = data.get('games')
        return cls(
            id=data['id'],
            event=data['event'],
            stage=data['stage'],
            match_order=data['match_order'],
            pair_a_id=data.get('pair_a_id'),
            pair_b_id=data.get('pair_b_id'),
            best_of=data.get('best_of', 1),
            games=[tuple(g) for g in games] if games is not None else None,
            pair_a_score=data.get('pair_a_score'),
            pair_b_score=data.get('pair_b_score'),
            winner_pair_id=data.get('winner_pair_id'),
            is_unlocked=bool(data.get('is_unlocked', False)),
        )

    def __repr__(self):
        return (f"KnockoutMatch(id={self.id}, stage={self.stage}, order={self.match_order}, "
                f"{self.pair_a_id} vs {self.pair_b_id}, winner={self.winner_pair_id}, state={self.state})")


def handicap_starts(pair_a, pair_b):
    """
    Starting scores for a pairing of unequal strength.

    Level 1 is the top team, so the pair with the lower strength number is the
    stronger one and starts behind by 2 * (diff + 1) points, capped at 10.
    Returns None when either pair is missing.
    """
    if pair_a is None or pair_b is None:
        return None
    a_strength = pair_a.strength
    b_strength = pair_b.strength
    if a_strength == b_strength:
        return {'pair_a_start': 0, 'pair_b_start': 0}

    handicap = min(10, 2 * (abs(a_strength - b_strength) + 1))
    if a_strength < b_strength:
        return {'pair_a_start': -handicap, 'pair_b_start': 0}
    return {'pair_a_start': 0, 'pair_b_start': -handicap}
