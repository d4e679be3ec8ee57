"""
Dependency Validator
Reports circular, self and dangling dependencies as data, plus structural warnings
"""

from typing import Dict, Iterable, List, Mapping, Optional
import logging

from .config import EngineConfig
from .cycle_detector import CycleDetector
from .graph_builder import DependencyGraphBuilder
from .models import Task, ValidationIssue, ValidationResult, coerce_tasks

logger = logging.getLogger(__name__)


class DependencyValidator:
    """Validates the dependency structure of a task snapshot"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def validate(self, tasks: Iterable) -> ValidationResult:
        """Validate a snapshot. A task may produce several errors at once."""
        snapshot = coerce_tasks(tasks)
        builder = DependencyGraphBuilder()
        builder.build(snapshot)
        detector = CycleDetector(builder)
        result = ValidationResult()

        for cycle in detector.detect_circular_dependencies()['cycles']:
            result.errors.append(ValidationIssue(
                type='circular',
                message=f"Circular dependency detected: {cycle['description']}",
                task_ids=cycle['path']
            ))

        for task in snapshot:
            deps = builder.get_dependencies(task.id)

            if task.id in deps:
                result.errors.append(ValidationIssue(
                    type='self',
                    message=f'Task "{task.title}" cannot depend on itself',
                    task_ids=[task.id]
                ))

            for dep_id in builder.get_missing_dependencies(task.id):
                result.errors.append(ValidationIssue(
                    type='nonexistent',
                    message=f'Task "{task.title}" depends on non-existent task: {dep_id}',
                    task_ids=[task.id, dep_id]
                ))

            depth = builder.dependency_depth(task.id)
            if depth > self.config.deep_chain_threshold:
                result.warnings.append(ValidationIssue(
                    type='deep_chain',
                    message=f'Task "{task.title}" has a deep dependency chain ({depth} levels)',
                    task_ids=[task.id]
                ))

            if len(task.dependencies) > self.config.many_dependencies_threshold:
                result.warnings.append(ValidationIssue(
                    type='many_dependencies',
                    message=f'Task "{task.title}" has many dependencies ({len(task.dependencies)})',
                    task_ids=[task.id]
                ))

        if not result.is_valid:
            logger.info(f"Dependency validation found {len(result.errors)} errors "
                        f"and {len(result.warnings)} warnings")
        return result

    def bulk_validate(self, tasks: Iterable, updates: Iterable[Mapping]) -> ValidationResult:
        """Preview a batch of dependency replacements without committing them.

        ``updates`` holds ``{'task_id': ..., 'dependencies': [...]}`` entries.
        Entries for unknown tasks are ignored; when a task appears more than
        once the last entry wins.
        """
        replacements: Dict[str, List[str]] = {}
        for update in updates:
            replacements[str(update['task_id'])] = [str(dep) for dep in update.get('dependencies') or []]

        preview: List[Task] = []
        for task in coerce_tasks(tasks):
            if task.id in replacements:
                task = task.with_dependencies(replacements[task.id])
            preview.append(task)

        return self.validate(preview)
