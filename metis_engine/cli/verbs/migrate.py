"""metis-engine migrate <action.json> [--write]"""

from metis_engine.cli.output import load_action, print_result
from metis_engine.utils.errors import MigrationError


def register(subparsers):
    p = subparsers.add_parser("migrate", help="Show (or write) migrated effect args")
    p.add_argument("action_file", help="Path to an action JSON file")
    p.add_argument("--write", action="store_true",
                   help="Write migrated args and versions back to the file")
    p.set_defaults(handler=handle)


def handle(args, engine):
    store, action = load_action(args.action_file)

    results = []
    for effect in action.effects:
        entry = {
            "effectId": effect.id,
            "name": effect.name,
            "fromVersion": effect.target_environment_version,
        }
        target = engine.registry.resolve(effect.target_id, effect.environment_id)
        if target is None:
            entry["error"] = f"unresolved target '{effect.target_id}'"
            results.append(entry)
            continue
        try:
            migration = target.migrate(effect.target_environment_version, effect.args)
        except MigrationError as e:
            entry["error"] = e.message
            results.append(entry)
            continue

        entry.update(
            toVersion=migration.version if migration.migrated else effect.target_environment_version,
            applied=migration.applied,
            args=migration.args,
        )
        if args.write and migration.migrated:
            effect.args = migration.args
            effect.target_environment_version = migration.version
        results.append(entry)

    if args.write:
        store.save(action)
    print_result({"actionKey": action.action_key, "effects": results})
