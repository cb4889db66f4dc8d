"""Session-scoped store partitions for target scripts."""

from metis_engine.stores.target_env_store import StoreRegistry, StoreState, TargetEnvStore

__all__ = ["StoreRegistry", "StoreState", "TargetEnvStore"]
