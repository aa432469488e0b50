"""
Operator command line for running a championships from a data directory.
"""
import argparse
import logging
import sys

import yaml

from champs.errors import ChampsError
from champs.models import EVENTS
from champs.service import ChampsService


def _game(text):
    """'21-15' -> ('21', '15'); '-' or '' -> blank game."""
    text = text.strip()
    if text in ('', '-'):
        return (None, None)
    left, sep, right = text.partition('-')
    if not sep:
        raise argparse.ArgumentTypeError(f"Game score must look like 21-15, got {text!r}")
    return (left, right)


def _dump(data):
    print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), end='')


def _standing_rows(standings):
    return [s.to_dict() for s in standings]


def cmd_add(service, args):
    entrant = service.add_entrant(args.event, args.player_one, args.level_one,
                                  args.player_two, args.level_two, args.type)
    _dump(entrant.to_dict())


def cmd_remove(service, args):
    service.remove_entrant(args.pair_id)
    print(f"Removed {args.pair_id}")


def cmd_seed(service, args):
    count = service.save_seeding(args.event, args.pair_ids)
    print(f"Seeded {count} pairs; pools and knockout reset")


def cmd_lock_pools(service, args):
    created = service.lock_pools(args.event, args.pool_size)
    _dump({event: {pool.name: [e.label() for e in pool.entrants] for pool in pools}
           for event, pools in created.items()})


def cmd_score(service, args):
    match = service.record_pool_score(args.match_id, args.pair_a_score, args.pair_b_score)
    _dump(match.to_dict())


def cmd_playing(service, args):
    playing = service.toggle_playing(args.match_id)
    print(f"{args.match_id}: {'playing' if playing else 'not playing'}")


def cmd_next(service, args):
    _dump(service.recommendations())


def cmd_standings(service, args):
    result = service.standings(args.event, args.advance)
    _dump({
        'event': result['event'],
        'scored': f"{result['scored_matches']}/{result['expected_matches']}",
        'pools': {number: _standing_rows(rows) for number, rows in result['pools'].items()},
        'advance_count': result['advance_count'],
        'qualifiers': [s.entrant.id for s in result['qualifiers']],
        'eliminated': [s.entrant.id for s in result['eliminated']],
    })


def cmd_init_knockout(service, args):
    matches = service.init_knockout(args.event, args.advance, args.best_of)
    _dump([m.to_dict() for m in matches if m.stage == 1])


def cmd_result(service, args):
    match = service.record_knockout_result(args.match_id, args.games)
    _dump(match.to_dict())


def cmd_format(service, args):
    changed = service.set_stage_format(args.event, args.stage, args.best_of)
    print(f"Stage {args.stage}: best of {args.best_of} ({changed} matches changed)")


def cmd_bracket(service, args):
    summary = service.bracket(args.event)
    if summary is None:
        print("No knockout for this event yet")
        return
    _dump(summary)


def cmd_status(service, args):
    _dump(service.readiness())


def cmd_finalize(service, args):
    if not args.yes:
        print("Refusing to finalize without --yes", file=sys.stderr)
        return 1
    _dump(service.finalize())


def build_parser():
    parser = argparse.ArgumentParser(
        prog='champs',
        description='Run club championships: seeding, pools, knockout'
    )
    parser.add_argument(
        '--data-dir',
        help='Data directory (default: $CHAMPS_DATA_DIR or ./data)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log debug output'
    )
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('add', help='Enter a pair')
    p.add_argument('event', choices=EVENTS)
    p.add_argument('player_one')
    p.add_argument('level_one')
    p.add_argument('player_two')
    p.add_argument('level_two')
    p.add_argument('--type', choices=['mens_doubles', 'womens_doubles'],
                   help='Required for level doubles')
    p.set_defaults(func=cmd_add)

    p = sub.add_parser('remove', help='Remove a pair')
    p.add_argument('pair_id')
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser('seed', help='Save seed order, strongest first')
    p.add_argument('event', choices=EVENTS)
    p.add_argument('pair_ids', nargs='+')
    p.set_defaults(func=cmd_seed)

    p = sub.add_parser('lock-pools', help='Generate pools and fixtures')
    p.add_argument('--event', choices=EVENTS, help='Only this event (default: every event with pairs)')
    p.add_argument('--pool-size', type=int, choices=[3, 4])
    p.set_defaults(func=cmd_lock_pools)

    p = sub.add_parser('score', help='Enter a pool match score (blank both to clear)')
    p.add_argument('match_id')
    p.add_argument('pair_a_score')
    p.add_argument('pair_b_score')
    p.set_defaults(func=cmd_score)

    p = sub.add_parser('playing', help='Toggle a pool match on or off court')
    p.add_argument('match_id')
    p.set_defaults(func=cmd_playing)

    p = sub.add_parser('next', help='Recommend the next pool match per event')
    p.set_defaults(func=cmd_next)

    p = sub.add_parser('standings', help='Pool standings and current qualifiers')
    p.add_argument('event', choices=EVENTS)
    p.add_argument('--advance', help='How many pairs go through')
    p.set_defaults(func=cmd_standings)

    p = sub.add_parser('init-knockout', help='Build the knockout from pool standings')
    p.add_argument('event', choices=EVENTS)
    p.add_argument('--advance', help='How many pairs go through')
    p.add_argument('--best-of', type=int, choices=[1, 3])
    p.set_defaults(func=cmd_init_knockout)

    p = sub.add_parser('result', help='Enter knockout game scores, e.g. 21-15 18-21 21-10')
    p.add_argument('match_id')
    p.add_argument('games', nargs='*', type=_game)
    p.set_defaults(func=cmd_result)

    p = sub.add_parser('format', help='Set a stage to best of 1 or 3')
    p.add_argument('event', choices=EVENTS)
    p.add_argument('stage', type=int)
    p.add_argument('best_of', type=int, choices=[1, 3])
    p.set_defaults(func=cmd_format)

    p = sub.add_parser('bracket', help='Show the knockout bracket')
    p.add_argument('event', choices=EVENTS)
    p.set_defaults(func=cmd_bracket)

    p = sub.add_parser('status', help='Which steps are ready')
    p.set_defaults(func=cmd_status)

    p = sub.add_parser('finalize', help='Clear pairs, pools and knockout')
    p.add_argument('--yes', action='store_true', help='Confirm')
    p.set_defaults(func=cmd_finalize)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        service = ChampsService(data_dir=args.data_dir)
        return args.func(service, args) or 0
    except ChampsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
