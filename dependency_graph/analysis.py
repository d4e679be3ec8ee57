"""
Dependency Graph Service
Entry points for graph construction, validation and structural queries.

Every call rebuilds its own indices from the supplied snapshot and keeps
nothing afterwards, so a service instance can be shared freely.
"""

from collections import deque
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional
import logging

from .config import EngineConfig
from .critical_path import CriticalPathAnalyzer
from .cycle_detector import CycleDetector, cycle_key
from .graph_builder import DependencyGraphBuilder
from .models import DependencyGraph, Task, ValidationResult, coerce_tasks
from .validator import DependencyValidator
from .visualizer import DependencyVisualizer

logger = logging.getLogger(__name__)

SCENARIO_TYPES = ("add_dependency", "remove_dependency")


class DependencyGraphService:
    """Builds dependency graphs and answers queries over task snapshots"""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.validator = DependencyValidator(self.config)

    def _builder(self, tasks: Iterable) -> DependencyGraphBuilder:
        builder = DependencyGraphBuilder()
        builder.build(tasks)
        return builder

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def build_graph(self, tasks: Iterable) -> DependencyGraph:
        """Generate the complete dependency graph for a snapshot"""
        builder = self._builder(tasks)
        return self._graph_from_builder(builder)

    def _graph_from_builder(self, builder: DependencyGraphBuilder) -> DependencyGraph:
        nodes = builder.create_nodes()
        edges = builder.create_edges()
        cycles = CycleDetector(builder).detect_all_cycles()
        if cycles:
            logger.warning(f"Scheduling a graph with {len(cycles)} cycles; slack values are not meaningful")

        analyzer = CriticalPathAnalyzer(nodes, self.config)
        analysis = analyzer.analyze()
        analyzer.apply(analysis)

        critical = set(analysis['critical_path'])
        for edge in edges:
            edge.critical = edge.source in critical and edge.target in critical

        levels: Dict[int, list] = {}
        for node in nodes:
            levels.setdefault(node.level, []).append(node)

        return DependencyGraph(
            nodes=nodes,
            edges=edges,
            cycles=cycles,
            critical_path=analysis['critical_path'],
            bottlenecks=analysis['bottlenecks'],
            levels=[levels[level] for level in sorted(levels)],
            project_duration=analysis['total_duration']
        )

    def graph_stats(self, tasks: Iterable) -> Dict:
        return self._builder(tasks).get_graph_stats()

    # ------------------------------------------------------------------
    # Structure checks
    # ------------------------------------------------------------------

    def detect_cycles(self, tasks: Iterable) -> Dict:
        """Detect circular dependencies: has_cycle, cycles (path + description), affected_tasks"""
        return CycleDetector(self._builder(tasks)).detect_circular_dependencies()

    def strongly_connected_components(self, tasks: Iterable) -> List[List[str]]:
        return CycleDetector(self._builder(tasks)).find_strongly_connected_components()

    def validate(self, tasks: Iterable) -> ValidationResult:
        return self.validator.validate(tasks)

    def bulk_validate(self, tasks: Iterable, updates: Iterable[Mapping]) -> ValidationResult:
        return self.validator.bulk_validate(tasks, updates)

    def critical_path_analysis(self, tasks: Iterable) -> Dict:
        """CPM analysis: critical path, total duration, slack times, parallel levels, bottlenecks"""
        builder = self._builder(tasks)
        return CriticalPathAnalyzer(builder.create_nodes(), self.config).analyze()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def processable_tasks(self, tasks: Iterable) -> List[Task]:
        """Todo tasks whose dependencies all exist and are done"""
        builder = self._builder(tasks)
        processable = []
        for task in builder.tasks.values():
            if task.status != 'todo':
                continue
            deps = [builder.get_task(dep_id) for dep_id in task.dependencies]
            if all(dep is not None and dep.status == 'done' for dep in deps):
                processable.append(task)
        return processable

    def blocking_tasks(self, tasks: Iterable) -> List[Task]:
        """Unfinished tasks that hold up at least one todo task"""
        builder = self._builder(tasks)
        blocking = []
        for task in builder.tasks.values():
            if task.status == 'done':
                continue
            for dependent_id in builder.get_dependents(task.id):
                if builder.get_task(dependent_id).status == 'todo':
                    blocking.append(task)
                    break
        return blocking

    def dependency_tree(self, tasks: Iterable, task_id: str, max_depth: Optional[int] = None) -> Optional[Dict]:
        """Expand a task's dependencies recursively.

        A task already placed anywhere in the tree is not expanded again, and
        nothing deeper than ``max_depth`` is included. Returns None for an
        unknown task.
        """
        if max_depth is None:
            max_depth = self.config.default_tree_depth
        builder = self._builder(tasks)
        visited = set()

        def build_tree(current_id: str, depth: int) -> Optional[Dict]:
            if depth > max_depth or current_id in visited:
                return None
            visited.add(current_id)
            task = builder.get_task(current_id)
            if task is None:
                return None

            children = []
            for dep_id in builder.get_dependencies(current_id):
                subtree = build_tree(dep_id, depth + 1)
                if subtree is not None:
                    children.append(subtree)

            return {
                'id': task.id,
                'title': task.title,
                'status': task.status,
                'priority': task.priority,
                'dependencies': children
            }

        return build_tree(task_id, 0)

    def _transitive_dependents(self, builder: DependencyGraphBuilder, task_id: str) -> List[str]:
        # Breadth-first with a visited set, so cycles terminate
        seen = {task_id}
        ordered = []
        queue = deque(builder.get_dependents(task_id))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            ordered.append(current)
            queue.extend(builder.get_dependents(current))
        return ordered

    def impact_analysis(self, tasks: Iterable, task_id: str) -> Dict:
        """Which tasks completing ``task_id`` unblocks, directly and transitively"""
        builder = self._builder(tasks)
        analysis = CriticalPathAnalyzer(builder.create_nodes(), self.config).analyze()

        if builder.get_task(task_id) is None:
            direct, total = [], []
        else:
            direct = builder.get_dependents(task_id)
            total = self._transitive_dependents(builder, task_id)

        return {
            'direct_impact': direct,
            'total_impact': total,
            'critical_path_tasks': analysis['critical_tasks']
        }

    def analyze_delay_impact(self, tasks: Iterable, task_id: str, delay: float) -> Optional[Dict]:
        """Estimate how delaying one task shifts its dependents and the project.

        Times are in the same units as task durations. Returns None for an
        unknown task.
        """
        builder = self._builder(tasks)
        if builder.get_task(task_id) is None:
            return None

        graph = self._graph_from_builder(builder)
        node_map = graph.node_map
        affected = self._transitive_dependents(builder, task_id)

        critical_path_impact = node_map[task_id].critical_path or any(
            node_map[affected_id].critical_path for affected_id in affected
        )
        shift = delay if critical_path_impact else 0.0

        delayed_tasks = []
        for affected_id in affected:
            node = node_map[affected_id]
            delayed_tasks.append({
                'task_id': affected_id,
                'delay': shift,
                'new_start': node.earliest_start + shift,
                'new_finish': node.earliest_finish + shift
            })

        return {
            'task_id': task_id,
            'delay': delay,
            'affected_tasks': affected,
            'critical_path_impact': critical_path_impact,
            'original_project_duration': graph.project_duration,
            'new_project_duration': graph.project_duration + shift,
            'delayed_tasks': delayed_tasks
        }

    def find_bottlenecks(self, tasks: Iterable) -> List[Dict]:
        """Rank tasks that many others wait on, most dependents first"""
        builder = self._builder(tasks)
        threshold = self.config.bottleneck_dependents_threshold
        ranked = []
        for task in builder.tasks.values():
            count = len(builder.get_dependents(task.id))
            urgent = task.priority == 'high' and task.status != 'done'
            if count > threshold or (count > 1 and urgent):
                ranked.append({
                    'task_id': task.id,
                    'title': task.title,
                    'dependents_count': count,
                    'priority': task.priority,
                    'status': task.status
                })
        ranked.sort(key=lambda entry: entry['dependents_count'], reverse=True)
        return ranked

    def suggest_dependencies(self, tasks: Iterable, task_id: str, limit: int = 5) -> List[Dict]:
        """Suggest completed tasks with similar titles as candidate dependencies"""
        builder = self._builder(tasks)
        current = builder.get_task(task_id)
        if current is None:
            return []

        title_words = [word for word in current.title.lower().split() if len(word) > 3]
        suggestions = []
        for task in builder.tasks.values():
            if task.id == task_id or task.id in current.dependencies or task.status != 'done':
                continue
            other_words = set(task.title.lower().split())
            common = [word for word in title_words if word in other_words]
            if len(common) >= 2:
                suggestions.append({
                    'task_id': task.id,
                    'title': task.title,
                    'reason': "Similar title and completed status",
                    'confidence': 75
                })
        return suggestions[:limit]

    # ------------------------------------------------------------------
    # Visualization projections
    # ------------------------------------------------------------------

    def _visualizer(self, tasks: Iterable) -> DependencyVisualizer:
        return DependencyVisualizer(self.build_graph(tasks), self.config)

    def format_graph_for_visualization(self, tasks: Iterable) -> Dict:
        return self._visualizer(tasks).format_graph()

    def format_dependency_tree(self, tasks: Iterable, task_id: str, max_depth: Optional[int] = None) -> Dict:
        snapshot = coerce_tasks(tasks)
        tree = self.dependency_tree(snapshot, task_id, max_depth)
        return self._visualizer(snapshot).format_tree(tree, task_id)

    def format_critical_path_for_visualization(self, tasks: Iterable) -> Dict:
        return self._visualizer(tasks).format_critical_path()

    def format_circular_dependencies(self, tasks: Iterable) -> Dict:
        snapshot = coerce_tasks(tasks)
        return self._visualizer(snapshot).format_cycles(self.detect_cycles(snapshot))

    # ------------------------------------------------------------------
    # What-if
    # ------------------------------------------------------------------

    def apply_scenario(self, tasks: Iterable, scenario: Mapping) -> List[Task]:
        """Return a mutated copy of the snapshot; the input is left untouched"""
        scenario_type = scenario.get('type')
        if scenario_type not in SCENARIO_TYPES:
            raise ValueError(f"Unknown what-if scenario type: {scenario_type!r}")
        changes = scenario.get('changes') or {}
        target = changes.get('task_id')
        dependency_id = changes.get('dependency_id')
        if not target or not dependency_id:
            raise ValueError("What-if scenario changes need task_id and dependency_id")

        modified = []
        for task in coerce_tasks(tasks):
            if task.id == target:
                if scenario_type == 'add_dependency':
                    task = task.with_dependencies(task.dependencies + [dependency_id])
                else:
                    task = task.with_dependencies(d for d in task.dependencies if d != dependency_id)
            modified.append(task)
        return modified

    def what_if(self, tasks: Iterable, scenario: Mapping) -> Dict:
        """Evaluate a hypothetical dependency change against the current snapshot"""
        original_tasks = coerce_tasks(tasks)
        modified_tasks = self.apply_scenario(original_tasks, scenario)

        original = self.build_graph(original_tasks)
        modified = self.build_graph(modified_tasks)
        validation = self.validate(modified_tasks)

        original_edges = {(edge.source, edge.target) for edge in original.edges}
        modified_edges = {(edge.source, edge.target) for edge in modified.edges}
        original_cycles = {cycle_key(cycle) for cycle in original.cycles}

        return {
            'scenario': dict(scenario),
            'impact': {
                'validation': validation.to_dict(),
                'critical_path_before': original.critical_path,
                'critical_path_after': modified.critical_path,
                'project_duration_before': original.project_duration,
                'project_duration_after': modified.project_duration
            },
            'graph_deltas': {
                'original_node_count': len(original.nodes),
                'new_node_count': len(modified.nodes),
                'original_edge_count': len(original.edges),
                'new_edge_count': len(modified.edges),
                'added_edges': [{'from': s, 'to': t} for s, t in sorted(modified_edges - original_edges)],
                'removed_edges': [{'from': s, 'to': t} for s, t in sorted(original_edges - modified_edges)],
                'new_cycles': [cycle for cycle in modified.cycles if cycle_key(cycle) not in original_cycles]
            },
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
