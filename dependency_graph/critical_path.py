"""
Critical Path Analyzer
Forward/backward CPM passes producing earliest/latest times, slack and the critical set
"""

from typing import Dict, List, Optional
import logging

from .config import EngineConfig
from .models import DependencyNode

logger = logging.getLogger(__name__)


class CriticalPathAnalyzer:
    """Computes a CPM schedule over dependency nodes that already carry levels.

    The passes assume a DAG. On cyclic input every value is still defined,
    but slack is not meaningful; run validation first to find out.
    """

    def __init__(self, nodes: List[DependencyNode], config: Optional[EngineConfig] = None):
        self.nodes = nodes
        self.config = config or EngineConfig()
        self.durations = {node.id: node.duration for node in nodes}
        self.earliest_start: Dict[str, float] = {}
        self.earliest_finish: Dict[str, float] = {}
        self.latest_start: Dict[str, float] = {}
        self.latest_finish: Dict[str, float] = {}
        self.slack_times: Dict[str, float] = {}
        self.project_finish = 0.0

    def _by_level(self) -> List[DependencyNode]:
        # sorted() is stable, so ties keep snapshot order
        return sorted(self.nodes, key=lambda node: node.level)

    def forward_pass(self):
        for node in self._by_level():
            finishes = [self.earliest_finish.get(dep_id, 0.0) for dep_id in node.dependencies]
            start = max([0.0] + finishes)
            self.earliest_start[node.id] = start
            self.earliest_finish[node.id] = start + self.durations[node.id]

    def backward_pass(self) -> float:
        self.project_finish = max(self.earliest_finish.values(), default=0.0)
        for node in reversed(self._by_level()):
            # A dependent always sits on a higher level in a DAG, so its latest start is known here
            successor_starts = [self.latest_start.get(dep_id, self.project_finish)
                                for dep_id in node.dependents]
            finish = min(successor_starts) if successor_starts else self.project_finish
            self.latest_finish[node.id] = finish
            self.latest_start[node.id] = finish - self.durations[node.id]
        return self.project_finish

    def is_critical(self, task_id: str) -> bool:
        return abs(self.slack_times.get(task_id, 0.0)) < self.config.critical_slack_epsilon

    def analyze(self) -> Dict:
        """Run both passes and return the critical path analysis"""
        self.forward_pass()
        project_finish = self.backward_pass()

        critical_tasks = []
        for node in self.nodes:
            slack = self.latest_start[node.id] - self.earliest_start[node.id]
            self.slack_times[node.id] = slack
            if self.is_critical(node.id):
                critical_tasks.append(node.id)

        levels = {node.id: node.level for node in self.nodes}
        critical_path = sorted(critical_tasks, key=lambda task_id: levels[task_id])

        dependents = {node.id: node.dependents for node in self.nodes}
        bottlenecks = [task_id for task_id in critical_tasks
                       if len(dependents[task_id]) > self.config.bottleneck_dependents_threshold]

        logger.info(f"Critical path has {len(critical_path)} tasks, project duration {project_finish:.2f}")
        return {
            'critical_path': critical_path,
            'total_duration': project_finish,
            'critical_tasks': critical_tasks,
            'bottlenecks': bottlenecks,
            'slack_times': dict(self.slack_times),
            'levels': self.parallel_levels()
        }

    def parallel_levels(self) -> List[Dict]:
        """Group tasks sharing an earliest start; each group can run concurrently"""
        groups: Dict[float, List[str]] = {}
        for node in self.nodes:
            # Rounding merges starts that differ only by float accumulation error
            key = round(self.earliest_start.get(node.id, 0.0), 6)
            groups.setdefault(key, []).append(node.id)

        return [
            {'level': index, 'start': start, 'tasks': groups[start], 'can_start_in_parallel': True}
            for index, start in enumerate(sorted(groups))
        ]

    def apply(self, analysis: Dict):
        """Write schedule values and critical flags back onto the nodes"""
        critical = set(analysis['critical_path'])
        for node in self.nodes:
            node.earliest_start = self.earliest_start[node.id]
            node.earliest_finish = self.earliest_finish[node.id]
            node.latest_start = self.latest_start[node.id]
            node.latest_finish = self.latest_finish[node.id]
            node.slack = self.slack_times[node.id]
            node.critical_path = node.id in critical
