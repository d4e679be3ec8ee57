"""
Data models for the task dependency graph
Tasks are the read-only input; everything else is derived per analysis call
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Dict, Iterable, List, Mapping, Optional

TASK_STATUSES = ("todo", "in-progress", "done", "failed", "cancelled")
TASK_PRIORITIES = ("high", "medium", "low")

PRIORITY_WEIGHTS = {
    'high': 3,
    'medium': 2,
    'low': 1
}


class TaskDataError(ValueError):
    """Raised when a task snapshot breaks the input contract (missing or duplicate ids)"""


@dataclass(frozen=True)
class Task:
    """Data model for a work item supplied by the task service"""
    id: str
    title: str = ""
    status: str = "todo"
    priority: str = "medium"
    dependencies: List[str] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping) -> "Task":
        """Create a task from a plain mapping (e.g. decoded JSON)"""
        if not isinstance(data, Mapping):
            raise TaskDataError(f"Task record must be a mapping, got {type(data).__name__}")
        task_id = data.get('id')
        if task_id is None or task_id == '':
            raise TaskDataError(f"Task record has no id: {dict(data)!r}")
        dependencies = data.get('dependencies') or []
        if isinstance(dependencies, str):
            raise TaskDataError(f"Dependencies of task {task_id} must be a list of ids")
        return cls(
            id=str(task_id),
            title=data.get('title') or str(task_id),
            status=data.get('status') or 'todo',
            priority=data.get('priority') or 'medium',
            dependencies=[str(dep) for dep in dependencies],
            description=data.get('description') or ''
        )

    def with_dependencies(self, dependencies: Iterable[str]) -> "Task":
        """Return a copy of this task with its dependency list replaced"""
        return replace(self, dependencies=list(dependencies))

    def to_dict(self) -> Dict:
        return asdict(self)


def coerce_tasks(tasks: Iterable) -> List[Task]:
    """Normalize a snapshot to Task objects and enforce unique ids"""
    result = []
    seen = set()
    for item in tasks:
        task = item if isinstance(item, Task) else Task.from_dict(item)
        if task.id in seen:
            raise TaskDataError(f"Duplicate task id in snapshot: {task.id}")
        seen.add(task.id)
        result.append(task)
    return result


def estimate_duration(task: Task) -> float:
    """Heuristic duration: priority weight plus a capped complexity bonus from the description"""
    base = PRIORITY_WEIGHTS.get(task.priority, 1)
    complexity_bonus = min(len(task.description or '') / 500, 2)
    return base + complexity_bonus


@dataclass
class DependencyNode:
    """One node per task, carrying structure and CPM schedule values"""
    id: str
    title: str
    status: str
    priority: str
    dependencies: List[str]
    dependents: List[str]
    duration: float
    level: int = 0
    critical_path: bool = False
    slack: float = 0.0
    earliest_start: float = 0.0
    earliest_finish: float = 0.0
    latest_start: float = 0.0
    latest_finish: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class DependencyEdge:
    """Edge from a dependency to the task that depends on it"""
    source: str
    target: str
    critical: bool = False

    def to_dict(self) -> Dict:
        return {'from': self.source, 'to': self.target, 'critical': self.critical}


@dataclass
class DependencyGraph:
    """Full derived graph for one task snapshot"""
    nodes: List[DependencyNode]
    edges: List[DependencyEdge]
    cycles: List[List[str]]
    critical_path: List[str]
    bottlenecks: List[str]
    levels: List[List[DependencyNode]]
    project_duration: float = 0.0

    def get_node(self, task_id: str) -> Optional[DependencyNode]:
        for node in self.nodes:
            if node.id == task_id:
                return node
        return None

    @property
    def node_map(self) -> Dict[str, DependencyNode]:
        return {node.id: node for node in self.nodes}

    def to_dict(self) -> Dict:
        return {
            'nodes': [node.to_dict() for node in self.nodes],
            'edges': [edge.to_dict() for edge in self.edges],
            'cycles': [list(cycle) for cycle in self.cycles],
            'critical_path': list(self.critical_path),
            'bottlenecks': list(self.bottlenecks),
            'levels': [[node.id for node in level] for level in self.levels],
            'project_duration': self.project_duration
        }


@dataclass
class ValidationIssue:
    """A single validation error or warning"""
    type: str
    message: str
    task_ids: List[str]

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class ValidationResult:
    """Outcome of a validation pass; warnings never affect validity"""
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def errors_of_type(self, issue_type: str) -> List[ValidationIssue]:
        return [issue for issue in self.errors if issue.type == issue_type]

    def warnings_of_type(self, issue_type: str) -> List[ValidationIssue]:
        return [issue for issue in self.warnings if issue.type == issue_type]

    def to_dict(self) -> Dict:
        return {
            'is_valid': self.is_valid,
            'errors': [issue.to_dict() for issue in self.errors],
            'warnings': [issue.to_dict() for issue in self.warnings]
        }
