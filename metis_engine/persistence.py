"""Persistence hooks for effect records.

The engine only persists when migrations are configured to be durable
(``executor.persist_migrations``). ``EffectPersistence`` is the hook it
calls; ``ActionFileStore`` implements it over a JSON action file:

    {
      "forceKey": "f1",
      "nodeKey": "n1",
      "actionKey": "a1",
      "effects": [{"_id": "...", "targetId": "...", ...}]
    }
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from metis_engine.executor.effects import ActionRecord, EffectRecord
from metis_engine.utils.errors import ActionFileError

logger = logging.getLogger(__name__)


class EffectPersistence(ABC):
    """Hook the executor calls after durably migrating an effect."""

    @abstractmethod
    def save_effect(self, effect: EffectRecord) -> None:
        """Persist the effect's current args and version."""


class ActionFileStore(EffectPersistence):
    """Loads and saves one action (and its effects) as a JSON file.

    The loaded ``ActionRecord`` is kept, so effects migrated in place by the
    executor are written back with ``save_effect``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.action: Optional[ActionRecord] = None

    def load(self) -> ActionRecord:
        """Load the action file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ActionFileError: If the JSON is invalid or does not describe an action.
        """
        content = self.path.read_text()

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ActionFileError(f"Invalid JSON in action file: {e}", path=str(self.path), cause=e)

        try:
            self.action = ActionRecord.model_validate(data)
        except ValidationError as e:
            raise ActionFileError(f"Invalid action file structure: {e}", path=str(self.path), cause=e)

        logger.debug(f"Loaded {len(self.action.effects)} effect(s) from {self.path}")
        return self.action

    def save(self, action: Optional[ActionRecord] = None) -> Path:
        """Write the action to the file.

        Raises:
            ActionFileError: If there is nothing to save.
            FileNotFoundError: If the parent directory doesn't exist.
        """
        action = action or self.action
        if action is None:
            raise ActionFileError("No action loaded", path=str(self.path))
        self.path.write_text(json.dumps(action.to_json(), indent=2))
        self.action = action
        return self.path

    def save_effect(self, effect: EffectRecord) -> None:
        """Write back the action holding ``effect``.

        Raises:
            ActionFileError: If the effect does not belong to the loaded action.
        """
        if self.action is None or not any(e.id == effect.id for e in self.action.effects):
            raise ActionFileError(
                f"Effect '{effect.id}' does not belong to the loaded action",
                path=str(self.path),
            )
        effects = [effect if e.id == effect.id else e for e in self.action.effects]
        # The loaded action only changes once the file has been written.
        self.save(self.action.model_copy(update={"effects": effects}))
        logger.info(
            f"Persisted effect '{effect.id}' at version {effect.target_environment_version}"
        )
