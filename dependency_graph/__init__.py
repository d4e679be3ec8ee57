"""
Task dependency graph engine
Cycle detection, validation, critical path scheduling and impact analysis over task snapshots
"""

from .config import EngineConfig
from .models import (
    Task,
    TaskDataError,
    DependencyNode,
    DependencyEdge,
    DependencyGraph,
    ValidationIssue,
    ValidationResult,
    estimate_duration,
)
from .graph_builder import DependencyGraphBuilder
from .cycle_detector import CycleDetector
from .critical_path import CriticalPathAnalyzer
from .validator import DependencyValidator
from .visualizer import DependencyVisualizer
from .analysis import DependencyGraphService

__all__ = [
    'EngineConfig',
    'Task',
    'TaskDataError',
    'DependencyNode',
    'DependencyEdge',
    'DependencyGraph',
    'ValidationIssue',
    'ValidationResult',
    'estimate_duration',
    'DependencyGraphBuilder',
    'CycleDetector',
    'CriticalPathAnalyzer',
    'DependencyValidator',
    'DependencyVisualizer',
    'DependencyGraphService',
]
