"""Engine configuration loader.

YAML configs cascade: packaged defaults -> user space -> project space.
Later layers are deep-merged over earlier ones.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from metis_engine.utils.path_utils import get_project_metis_path, get_user_metis_path

logger = logging.getLogger(__name__)

DEFAULTS_DIR = Path(__file__).parent.parent / "config"


class ConfigLoader:
    """Base loader for YAML configs with extends support."""

    def __init__(self, config_name: str):
        self.config_name = config_name
        self._cache: Dict[str, Any] = {}

    def load(self, project_path: Optional[Path] = None) -> Dict[str, Any]:
        """Load config with packaged defaults -> user -> project cascade."""
        cache_key = str(project_path)
        if cache_key in self._cache:
            return self._cache[cache_key]

        config: Dict[str, Any] = {}

        defaults_path = DEFAULTS_DIR / self.config_name
        if defaults_path.exists():
            config = self._merge(config, self._load_yaml(defaults_path))

        user_config_path = get_user_metis_path() / "config" / self.config_name
        if user_config_path.exists():
            logger.debug(f"Merging user config: {user_config_path}")
            config = self._merge(config, self._load_yaml(user_config_path))

        project_dir = get_project_metis_path(project_path)
        if project_dir is not None:
            project_config_path = project_dir / "config" / self.config_name
            if project_config_path.exists():
                logger.debug(f"Merging project config: {project_config_path}")
                config = self._merge(config, self._load_yaml(project_config_path))

        self._cache[cache_key] = config
        return config

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data

    def _merge(self, base: Dict, override: Dict) -> Dict:
        """Deep merge override into base.

        Merge semantics:
        - `extends` key: skipped (metadata only)
        - Dicts: recursive deep merge
        - Everything else: replace
        """
        result = dict(base)
        for key, value in override.items():
            if key == "extends":
                continue
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value
        return result

    def clear_cache(self):
        self._cache.clear()


class EngineConfigLoader(ConfigLoader):
    def __init__(self):
        super().__init__("engine.yaml")

    def persist_migrations(self, project_path: Optional[Path] = None) -> bool:
        return bool(self.load(project_path).get("executor", {}).get("persist_migrations", False))

    def log_outcomes(self, project_path: Optional[Path] = None) -> bool:
        return bool(self.load(project_path).get("executor", {}).get("log_outcomes", True))

    def global_partition(self, project_path: Optional[Path] = None) -> str:
        return str(self.load(project_path).get("store", {}).get("global_partition", "<global>"))

    def logging_config(self, project_path: Optional[Path] = None) -> Dict[str, Any]:
        return dict(self.load(project_path).get("logging", {}))


_engine_config_loader: Optional[EngineConfigLoader] = None


def get_engine_config_loader() -> EngineConfigLoader:
    global _engine_config_loader
    if _engine_config_loader is None:
        _engine_config_loader = EngineConfigLoader()
    return _engine_config_loader


def load(project_path: Optional[Path] = None) -> Dict[str, Any]:
    return get_engine_config_loader().load(project_path)
