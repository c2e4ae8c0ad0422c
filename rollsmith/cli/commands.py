#!/usr/bin/env python3
"""
Command-line interface for rollsmith.

Provides commands for rolling formulas, stepping dice by size, simplifying
formulas and serving the web API from the terminal.
"""

import argparse
import json
import sys

from rollsmith.core.config import get_config
from rollsmith.core.errors import RollError
from rollsmith.core.logging_config import setup_logging
from rollsmith.dice import CheckRoll, DamageRoll, Roll, simplify_formula, size_roll


def _load_data(text):
    """Parse the --data argument."""
    if not text:
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON for --data: {e}")
    if not isinstance(data, dict):
        raise ValueError("--data must be a JSON object")
    return data


def cmd_roll(args):
    """Roll a formula."""
    try:
        data = _load_data(args.data)
        options = {}

        if args.check:
            roll_class = CheckRoll
            if args.static is not None:
                options['static_roll'] = args.static
            if args.bonus:
                options['bonus'] = args.bonus
        elif args.damage:
            roll_class = DamageRoll
            if args.damage_type:
                options['damage_type'] = {'values': args.damage_type, 'custom': ''}
            if args.critical:
                options['type'] = DamageRoll.TYPES.CRITICAL.value
        else:
            roll_class = Roll

        roll = roll_class(args.formula, data, options).evaluate(
            minimize=args.min, maximize=args.max
        )

        if args.json:
            print(roll.to_json())
            return

        print(f"✓ {roll.formula} = {roll.total}")
        if roll.flavor:
            print(f"  Flavor: {roll.flavor}")
        for die in roll.dice:
            results = ', '.join(
                str(r['result']) if r['active'] else f"({r['result']})"
                for r in die.results
            )
            print(f"  {die.expression}: [{results}] = {die.total}")
        if isinstance(roll, CheckRoll):
            flags = [name for name, value in (
                ('critical', roll.is_crit),
                ('fumble', roll.is_fumble),
                ('natural 20', roll.is_nat20),
                ('natural 1', roll.is_nat1),
                ('misfire', roll.is_misfire),
            ) if value]
            if flags:
                print(f"  Flags: {', '.join(flags)}")
        if isinstance(roll, DamageRoll):
            print(f"  Damage: {', '.join(roll.damage_types)}"
                  f"{' (critical)' if roll.is_critical else ''}")
        if roll.warning:
            print("  ⚠ A data reference was missing and replaced with 0", file=sys.stderr)
    except (RollError, ValueError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_size(args):
    """Step a die expression by size."""
    try:
        initial = args.initial
        if initial is not None and initial.lstrip('-').isdigit():
            initial = int(initial)
        size_die = size_roll(args.count, args.faces, args.delta, initial)
        print(size_die.formula)
    except RollError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_simplify(args):
    """Simplify a formula without rolling."""
    try:
        data = _load_data(args.data)
        print(simplify_formula(args.formula, data))
    except (RollError, ValueError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_serve(args):
    """Run the web API."""
    from rollsmith.web.server import create_app

    config = get_config()
    app = create_app(config)
    print(f"✓ Serving rollsmith API on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


def main(argv=None):
    config = get_config()
    setup_logging(level=config.log_level, log_file=config.log_file)

    parser = argparse.ArgumentParser(
        description='rollsmith - dice formula evaluation',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # ========== roll command ==========
    parser_roll = subparsers.add_parser('roll', help='Roll a formula')
    parser_roll.add_argument('formula', help='Roll formula, e.g. "1d20 + @mod"')
    parser_roll.add_argument('--data', help='Roll data as JSON')
    kind = parser_roll.add_mutually_exclusive_group()
    kind.add_argument('--check', action='store_true', help='Roll as a d20 check')
    kind.add_argument('--damage', action='store_true', help='Roll as damage')
    parser_roll.add_argument('--static', type=int, help='Static check result (take 10/20)')
    parser_roll.add_argument('--bonus', help='Situational bonus formula for checks')
    parser_roll.add_argument('--damage-type', action='append', help='Damage type (repeatable)')
    parser_roll.add_argument('--critical', action='store_true', help='Mark damage as critical')
    extreme = parser_roll.add_mutually_exclusive_group()
    extreme.add_argument('--min', action='store_true', help='Resolve every die to 1')
    extreme.add_argument('--max', action='store_true', help='Resolve every die to its maximum')
    parser_roll.add_argument('--json', action='store_true', help='Print the serialized roll')
    parser_roll.set_defaults(func=cmd_roll)

    # ========== size command ==========
    parser_size = subparsers.add_parser('size', help='Step dice by size')
    parser_size.add_argument('count', type=int, help='Number of dice')
    parser_size.add_argument('faces', type=int, help='Die faces')
    parser_size.add_argument('delta', type=int, help='Size steps (negative steps down)')
    parser_size.add_argument('--initial', help='Initial size: index 0-8 or letter (F D T S M L H G C)')
    parser_size.set_defaults(func=cmd_size)

    # ========== simplify command ==========
    parser_simplify = subparsers.add_parser('simplify', help='Simplify a formula')
    parser_simplify.add_argument('formula', help='Roll formula')
    parser_simplify.add_argument('--data', help='Roll data as JSON')
    parser_simplify.set_defaults(func=cmd_simplify)

    # ========== serve command ==========
    parser_serve = subparsers.add_parser('serve', help='Run the web API')
    parser_serve.add_argument('--host', default=config.host, help='Host to bind to')
    parser_serve.add_argument('--port', type=int, default=config.port, help='Port to bind to')
    parser_serve.add_argument('--debug', action='store_true', default=config.debug,
                              help='Enable debug mode')
    parser_serve.set_defaults(func=cmd_serve)

    # Parse and execute
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
