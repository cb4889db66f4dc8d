"""Effect and action records as persisted by the mission document.

Records are parsed from JSON with pydantic. Field aliases follow the stored
camelCase names; snake_case names are accepted too.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from metis_engine.constants import ENVIRONMENT_ID_INFER, Trigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectSource:
    """The force/node/action an effect is attached to.

    All keys are None for mission-hosted (session lifecycle) effects.
    """

    force_key: Optional[str] = None
    node_key: Optional[str] = None
    action_key: Optional[str] = None


class EffectRecord(BaseModel):
    """A configured invocation of one target."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", min_length=1)
    local_key: str = Field(default="", alias="localKey")
    name: str = ""
    description: str = ""
    target_id: str = Field(..., alias="targetId", min_length=1)
    environment_id: str = Field(default=ENVIRONMENT_ID_INFER, alias="environmentId")
    target_environment_version: str = Field(default="0.0.0", alias="targetEnvironmentVersion")
    trigger: str
    order: int = Field(default=1, ge=1)
    args: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("trigger", mode="before")
    @classmethod
    def normalize_trigger(cls, value: Any) -> str:
        """Map legacy trigger names and reject unknown ones."""
        if isinstance(value, str):
            value = Trigger.LEGACY_ALIASES.get(value, value)
        if value not in Trigger.ALL:
            raise ValueError(f"Unknown trigger: {value!r}")
        return value

    @field_validator("environment_id", mode="before")
    @classmethod
    def default_environment(cls, value: Any) -> str:
        return value or ENVIRONMENT_ID_INFER

    @property
    def infers_environment(self) -> bool:
        return self.environment_id == ENVIRONMENT_ID_INFER

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ActionRecord(BaseModel):
    """A mission action and the effects attached to it."""

    model_config = ConfigDict(populate_by_name=True)

    action_key: Optional[str] = Field(default=None, alias="actionKey")
    node_key: Optional[str] = Field(default=None, alias="nodeKey")
    force_key: Optional[str] = Field(default=None, alias="forceKey")
    effects: List[EffectRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_orders(self):
        """Warn (but keep going) when an order is reused within one trigger."""
        counts = Counter((e.trigger, e.order) for e in self.effects)
        for (trigger, order), count in counts.items():
            if count > 1:
                logger.warning(
                    f"Action '{self.action_key}' has {count} '{trigger}' effects "
                    f"with order {order}"
                )
        return self

    @property
    def source(self) -> EffectSource:
        return EffectSource(self.force_key, self.node_key, self.action_key)

    def effects_for(self, trigger: str) -> List[EffectRecord]:
        return [e for e in self.effects if e.trigger == trigger]

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
