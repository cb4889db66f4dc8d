"""metis-engine run <action.json> --session <session.yaml> [--trigger T] [--seed N]"""

import random
from pathlib import Path

from metis_engine.cli.output import die, load_action, print_result, run_async
from metis_engine.constants import Trigger
from metis_engine.sessions.mission_session import load_session
from metis_engine.utils.errors import SessionLookupError


def register(subparsers):
    p = subparsers.add_parser("run", help="Execute an action's effects against a session snapshot")
    p.add_argument("action_file", help="Path to an action JSON file")
    p.add_argument("--session", "-s", required=True, dest="session_file",
                   help="Path to a session snapshot (YAML or JSON)")
    p.add_argument("--trigger", "-t",
                   choices=Trigger.ALL + list(Trigger.LEGACY_ALIASES),
                   help="Run only this trigger's batch (default: the full action lifecycle)")
    p.add_argument("--seed", type=int, help="Seed for the success roll")
    p.set_defaults(handler=handle)


def handle(args, engine):
    store, action = load_action(args.action_file)
    try:
        session = load_session(Path(args.session_file))
    except FileNotFoundError:
        die(f"session file not found: {args.session_file}")
    except ValueError as e:
        die(str(e))

    engine.persistence = store
    if args.seed is not None:
        engine.executor.rng = random.Random(args.seed).random

    async def _run():
        await engine.start_session(session)
        try:
            if args.trigger:
                outcomes = await engine.run_trigger(action.effects, args.trigger, session, action.source)
                return {"trigger": args.trigger, "outcomes": [o.to_dict() for o in outcomes]}
            result = await engine.execute_action(action, session)
            return result.to_dict()
        finally:
            await engine.end_session(session)

    try:
        result = run_async(_run())
    except (SessionLookupError, ValueError) as e:
        die(str(e))

    result["session"] = session.to_dict()
    print_result(result)
