"""
Engine Configuration
Thresholds and layout constants used by the dependency graph engine
"""

import os
from dataclasses import dataclass, fields
import logging

logger = logging.getLogger(__name__)

ENV_PREFIX = "DEPGRAPH_"


@dataclass
class EngineConfig:
    """Configuration for analysis thresholds and visualization layout"""
    # A node is on the critical path when |slack| is below this value
    critical_slack_epsilon: float = 0.01

    # Validation warnings
    deep_chain_threshold: int = 5
    many_dependencies_threshold: int = 10

    # Critical nodes with more dependents than this are bottlenecks
    bottleneck_dependents_threshold: int = 2

    default_tree_depth: int = 5

    # Visualization
    level_spacing: int = 150
    layout_width: int = 800
    cycle_delay_hours: int = 24

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config, overriding defaults from DEPGRAPH_* environment variables"""
        overrides = {}
        for field in fields(cls):
            raw = os.environ.get(ENV_PREFIX + field.name.upper())
            if raw is None:
                continue
            caster = float if field.type in (float, "float") else int
            try:
                overrides[field.name] = caster(raw)
            except ValueError:
                logger.error(f"Ignoring invalid value for {ENV_PREFIX}{field.name.upper()}: {raw!r}")
        return cls(**overrides)
