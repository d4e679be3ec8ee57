"""
Cycle Detector
Detects circular task dependencies and strongly connected components
"""

import networkx as nx
from typing import Dict, List, Optional
import logging

from .graph_builder import DependencyGraphBuilder

logger = logging.getLogger(__name__)

_EXHAUSTED = object()


def cycle_key(cycle: List[str]) -> tuple:
    """Rotation-independent key for a closed cycle path, so [B, A, B] and [A, B, A] compare equal"""
    body = list(cycle[:-1]) if len(cycle) > 1 and cycle[0] == cycle[-1] else list(cycle)
    if not body:
        return ()
    start = body.index(min(body))
    return tuple(body[start:] + body[:start])



class CycleDetector:
    """Detects cycles in a built dependency graph"""

    def __init__(self, builder: DependencyGraphBuilder):
        self.builder = builder
        self.graph = builder.graph
        self.cycles: List[List[str]] = []

    def detect_all_cycles(self) -> List[List[str]]:
        """Find cycles with a depth-first search over declared dependencies.

        Each cycle is a closed walk: the last id repeats the first. The search
        starts from every unvisited task so disconnected components are
        covered. Self-dependencies are left to validation.
        """
        adjacency = self.builder.adjacency
        tasks = self.builder.tasks
        visited = set()
        cycles = []

        for start in tasks:
            if start in visited:
                continue

            visited.add(start)
            path = [start]
            on_stack = {start}
            frontier = [iter(adjacency.get(start, []))]

            while frontier:
                dep_id = next(frontier[-1], _EXHAUSTED)
                if dep_id is _EXHAUSTED:
                    frontier.pop()
                    on_stack.discard(path.pop())
                    continue

                if dep_id == path[-1] or dep_id not in tasks:
                    continue

                if dep_id not in visited:
                    visited.add(dep_id)
                    path.append(dep_id)
                    on_stack.add(dep_id)
                    frontier.append(iter(adjacency.get(dep_id, [])))
                elif dep_id in on_stack:
                    cycle_start = path.index(dep_id)
                    cycles.append(path[cycle_start:] + [dep_id])

        self.cycles = cycles
        if cycles:
            logger.info(f"Found {len(cycles)} cycles in dependency graph")
        return cycles

    def find_strongly_connected_components(self) -> List[List[str]]:
        """Find strongly connected components that contain more than one task"""
        # NetworkX uses Tarjan's algorithm by default
        sccs = [sorted(scc) for scc in nx.strongly_connected_components(self.graph) if len(scc) > 1]
        logger.debug(f"Found {len(sccs)} significant strongly connected components")
        return sccs

    def affected_tasks(self, cycles: Optional[List[List[str]]] = None) -> List[str]:
        """Ids appearing in any cycle, in first-seen order"""
        if cycles is None:
            cycles = self.cycles
        affected = {}
        for cycle in cycles:
            for task_id in cycle:
                affected.setdefault(task_id, None)
        return list(affected)

    def describe_cycle(self, cycle: List[str]) -> str:
        """Generate a human-readable description of the cycle from task titles"""
        names = []
        for task_id in cycle:
            task = self.builder.get_task(task_id)
            names.append(f'"{task.title}"' if task else task_id)
        return " → ".join(names)

    def detect_circular_dependencies(self) -> Dict:
        """Get a summary of circular dependencies"""
        cycles = self.detect_all_cycles()
        return {
            'has_cycle': bool(cycles),
            'cycles': [
                {'path': cycle, 'description': self.describe_cycle(cycle)}
                for cycle in cycles
            ],
            'affected_tasks': self.affected_tasks(cycles)
        }

    def is_dag(self) -> bool:
        """Check if the graph is a Directed Acyclic Graph (DAG)"""
        return nx.is_directed_acyclic_graph(self.graph)

    def get_topological_order(self) -> Optional[List[str]]:
        """Get an execution order (dependencies first) if the graph is a DAG"""
        if self.is_dag():
            return list(nx.topological_sort(self.graph))
        return None
