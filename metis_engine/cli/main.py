"""metis-engine entry point.

Verbs:
- targets: list installed environments and targets
- migrate: show or write migrated effect args for an action file
- run: execute an action file against a session snapshot
"""

import argparse
import logging
from pathlib import Path

from metis_engine.cli.verbs import migrate, run, targets
from metis_engine.engine import EffectEngine
from metis_engine.utils.config_loader import get_engine_config_loader
from metis_engine.utils.logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metis-engine",
        description="Run and inspect METIS mission effects",
    )
    parser.add_argument(
        "--project-path", "-p",
        default=".",
        help="Project root path (default: current directory)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="verb", required=True)

    targets.register(sub)
    migrate.register(sub)
    run.register(sub)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    project_path = Path(args.project_path).resolve()
    config_loader = get_engine_config_loader()
    logging_config = config_loader.logging_config(project_path)
    configure_logging(
        level=logging.DEBUG if args.debug else logging_config.get("level"),
        file_logging=bool(logging_config.get("file_logging", False)),
        console_level=logging.DEBUG if args.debug else logging.WARNING,
    )

    engine = EffectEngine.with_builtins(config_loader=config_loader, project_path=project_path)
    args.handler(args, engine)


if __name__ == "__main__":
    main()
