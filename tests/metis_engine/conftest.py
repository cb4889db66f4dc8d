"""Shared fixtures for METIS engine tests."""

import copy

import pytest

from metis_engine.environments import register_builtin_environments
from metis_engine.executor.effect_executor import EffectExecutor
from metis_engine.executor.effects import EffectRecord, EffectSource
from metis_engine.sessions.mission_session import MissionSession
from metis_engine.stores.target_env_store import StoreRegistry
from metis_engine.targets.registry import TargetEnvironmentRegistry
from metis_engine.utils.config_loader import get_engine_config_loader

SESSION_DATA = {
    "sessionId": "s1",
    "forces": [
        {
            "key": "f1",
            "name": "Friendly Force",
            "resources": 10,
            "nodes": [
                {
                    "key": "n1",
                    "name": "Recon",
                    "opened": True,
                    "actions": [
                        {"key": "a1", "successChance": 0.5, "processTime": 1000},
                        {"key": "a2", "successChance": 0.9, "processTime": 0},
                    ],
                    "children": [
                        {
                            "key": "n2",
                            "name": "Infiltrate",
                            "actions": [{"key": "a3", "successChance": 1.0, "processTime": 0}],
                            "children": [{"key": "n3", "name": "Extract"}],
                        }
                    ],
                }
            ],
        },
        {
            "key": "f2",
            "name": "Opposing Force",
            "resources": 3,
            "allowNegativeResources": True,
            "nodes": [{"key": "m1", "name": "Defend"}],
        },
    ],
    "files": [{"id": "file-1", "name": "Briefing", "access": ["f1"]}],
}


@pytest.fixture(autouse=True)
def _setup_user_space(tmp_path, monkeypatch):
    """Point user space at a temporary directory for every test."""
    user_space = tmp_path / "user_space"
    user_space.mkdir()
    monkeypatch.setenv("METIS_USER_SPACE", str(user_space))

    get_engine_config_loader().clear_cache()
    yield user_space
    get_engine_config_loader().clear_cache()


@pytest.fixture
def registry():
    return TargetEnvironmentRegistry()


@pytest.fixture
def metis_registry(registry):
    return register_builtin_environments(registry)


@pytest.fixture
def stores():
    return StoreRegistry()


@pytest.fixture
def session_data():
    return copy.deepcopy(SESSION_DATA)


@pytest.fixture
def session(session_data):
    return MissionSession.from_dict(session_data)


@pytest.fixture
def source():
    return EffectSource(force_key="f1", node_key="n1", action_key="a1")


@pytest.fixture
def executor(metis_registry, stores):
    return EffectExecutor(metis_registry, stores)


@pytest.fixture
def make_effect():
    """Factory for effect records with sensible defaults."""
    counter = {"n": 0}

    def _make(**fields) -> EffectRecord:
        counter["n"] += 1
        data = {
            "_id": f"effect-{counter['n']}",
            "localKey": str(counter["n"]),
            "name": f"Effect {counter['n']}",
            "targetId": "output",
            "environmentId": "metis",
            "targetEnvironmentVersion": "1.0.0",
            "trigger": "execution-success",
            "order": counter["n"],
            "args": {},
        }
        data.update(fields)
        return EffectRecord.model_validate(data)

    return _make
