"""File-access target: grants or revokes a force's access to a mission file."""

from typing import Any, Dict

from metis_engine.constants import MetisTargetId
from metis_engine.environments.metis.base import MetisTarget
from metis_engine.executor.context import EffectExecutionContext
from metis_engine.targets.args import ArgSpec, ArgType, Dependency

GRANT = "grant"
REVOKE = "revoke"


class FileAccessTarget(MetisTarget):
    ID = MetisTargetId.FILE_ACCESS
    NAME = "File Access"
    DESCRIPTION = "Grants or revokes a force's access to a mission file."
    ARGS = [
        ArgSpec(id="fileMetadata", name="File", type=ArgType.FILE, required=True),
        ArgSpec(id="forceMetadata", name="Force", type=ArgType.FORCE, required=True),
        ArgSpec(
            id="access",
            name="Access",
            type=ArgType.DROPDOWN,
            required=True,
            default=GRANT,
            options=[
                {"id": GRANT, "name": "Grant", "value": GRANT},
                {"id": REVOKE, "name": "Revoke", "value": REVOKE},
            ],
            dependencies=[Dependency.truthy("fileMetadata")],
        ),
    ]

    async def apply(self, context: EffectExecutionContext, args: Dict[str, Any]) -> None:
        file_id = args["fileMetadata"]["fileId"]
        force_key = args["forceMetadata"]["forceKey"]
        if args["access"] == GRANT:
            context.grant_file_access(file_id, force_key)
        else:
            context.revoke_file_access(file_id, force_key)
