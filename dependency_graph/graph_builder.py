"""
Dependency Graph Builder
Builds the task dependency graph, adjacency indices and node levels from a task snapshot
"""

import networkx as nx
from typing import Dict, Iterable, List, Optional
import logging

from .models import Task, DependencyNode, DependencyEdge, coerce_tasks, estimate_duration

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """Builds a directed graph where every edge points from a dependency to its dependent.

    A builder is meant to be used for a single snapshot: construct one per
    analysis call, call ``build`` and query it. ``build`` may be called again
    and always discards every previous index first.
    """

    def __init__(self):
        self.graph = nx.DiGraph()
        self.tasks: Dict[str, Task] = {}
        self.adjacency: Dict[str, List[str]] = {}
        self.reverse_adjacency: Dict[str, List[str]] = {}
        self.levels: Dict[str, int] = {}

    def build(self, tasks: Iterable) -> nx.DiGraph:
        """Rebuild all indices from the given tasks"""
        snapshot = coerce_tasks(tasks)

        self.graph = nx.DiGraph()
        self.tasks = {}
        self.adjacency = {}
        self.reverse_adjacency = {}
        self.levels = {}

        for task in snapshot:
            self.tasks[task.id] = task
            self.graph.add_node(task.id,
                                title=task.title,
                                status=task.status,
                                priority=task.priority,
                                duration=estimate_duration(task))

        for task in snapshot:
            # dict.fromkeys keeps declared order while dropping repeats
            deps = list(dict.fromkeys(task.dependencies))
            self.adjacency[task.id] = deps
            for dep_id in deps:
                self.reverse_adjacency.setdefault(dep_id, []).append(task.id)
                if dep_id in self.tasks:
                    self.graph.add_edge(dep_id, task.id)

        self._assign_levels()

        logger.debug(f"Built dependency graph with {self.graph.number_of_nodes()} tasks "
                     f"and {self.graph.number_of_edges()} edges")
        return self.graph

    def _assign_levels(self):
        """Compute the longest-path level of every task.

        Levels are assigned over the condensation of the graph in topological
        order, so the pass is iterative and linear in the graph size. A task
        outside any cycle gets ``1 + max(level of its dependencies)``. Every
        member of a cycle gets the same conservative level: the highest level
        reachable from outside the cycle plus the number of cycle members,
        which matches walking the loop once before meeting a revisited task.
        """
        condensed = nx.condensation(self.graph)
        cyclic_count = 0

        for component in nx.topological_sort(condensed):
            members = condensed.nodes[component]['members']
            if len(members) == 1:
                task_id = next(iter(members))
                if not self.graph.has_edge(task_id, task_id):
                    # Dangling dependencies have no dependencies of their own, so they count as level 0
                    deps = self.adjacency[task_id]
                    self.levels[task_id] = 1 + max(self.levels.get(dep, 0) for dep in deps) if deps else 0
                    continue

            cyclic_count += len(members)
            outside = [self.levels.get(dep, 0) + 1
                       for task_id in members
                       for dep in self.adjacency[task_id]
                       if dep not in members]
            level = max(outside, default=0) + len(members)
            for task_id in members:
                self.levels[task_id] = level

        if cyclic_count:
            logger.debug(f"{cyclic_count} tasks sit in a dependency cycle")

    def dependency_depth(self, task_id: str) -> int:
        """Depth of the dependency chain below a task (0 for unknown ids)"""
        return self.levels.get(task_id, 0)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.tasks.get(task_id)

    def get_dependencies(self, task_id: str) -> List[str]:
        """Get declared dependencies of a task, including dangling ones"""
        return list(self.adjacency.get(task_id, []))

    def get_dependents(self, task_id: str) -> List[str]:
        """Get tasks that depend on this task"""
        return list(self.reverse_adjacency.get(task_id, []))

    def get_missing_dependencies(self, task_id: str) -> List[str]:
        """Get dependency ids that do not resolve to a task in the snapshot"""
        return [dep for dep in self.adjacency.get(task_id, []) if dep not in self.tasks]

    def create_nodes(self) -> List[DependencyNode]:
        """Create unscheduled nodes in snapshot order.

        Node dependencies are the task's declared list as given, repeats included.
        Repeats collapse only in the adjacency indices and the edge list.
        """
        nodes = []
        for task_id, task in self.tasks.items():
            nodes.append(DependencyNode(
                id=task.id,
                title=task.title,
                status=task.status,
                priority=task.priority,
                dependencies=list(task.dependencies),
                dependents=self.get_dependents(task_id),
                duration=self.graph.nodes[task_id]['duration'],
                level=self.levels.get(task_id, 0)
            ))
        return nodes

    def create_edges(self) -> List[DependencyEdge]:
        """One edge per declared dependency, dangling references included"""
        return [DependencyEdge(source=dep_id, target=task_id)
                for task_id, deps in self.adjacency.items()
                for dep_id in deps]

    def get_graph_stats(self) -> Dict:
        """Get statistics about the dependency graph"""
        node_count = self.graph.number_of_nodes()
        return {
            'total_tasks': node_count,
            'total_dependencies': sum(len(deps) for deps in self.adjacency.values()),
            'dangling_dependencies': sum(len(self.get_missing_dependencies(t)) for t in self.tasks),
            'is_connected': nx.is_weakly_connected(self.graph) if node_count > 0 else False,
            'density': nx.density(self.graph),
            'max_level': max(self.levels.values()) if self.levels else 0
        }
