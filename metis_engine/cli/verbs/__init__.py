"""CLI verb modules. Each exposes ``register(subparsers)`` and ``handle(args, engine)``."""
