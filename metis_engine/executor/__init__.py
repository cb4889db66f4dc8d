"""Effect records, execution context and executor."""

from metis_engine.executor.context import EffectExecutionContext, EffectView
from metis_engine.executor.effect_executor import (
    ActionOutcome,
    EffectExecutor,
    EffectOutcome,
    OutcomeKind,
)
from metis_engine.executor.effects import ActionRecord, EffectRecord, EffectSource

__all__ = [
    "ActionOutcome",
    "ActionRecord",
    "EffectExecutionContext",
    "EffectExecutor",
    "EffectOutcome",
    "EffectRecord",
    "EffectSource",
    "EffectView",
    "OutcomeKind",
]
