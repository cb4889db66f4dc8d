"""metis-engine targets [--environment ID]"""

from metis_engine.cli.output import die, print_result


def register(subparsers):
    p = subparsers.add_parser("targets", help="List installed environments and their targets")
    p.add_argument("--environment", "-e", help="Only show this environment")
    p.set_defaults(handler=handle)


def handle(args, engine):
    if args.environment:
        environment = engine.registry.get(args.environment)
        if environment is None:
            die(f"unknown environment: {args.environment}")
        print_result(environment.to_json())
        return
    print_result({"environments": engine.registry.to_json()})
