"""
Dependency Visualizer
Projects dependency graphs into render-ready data, plotly figures and pandas tables
"""

import plotly.graph_objects as go
import pandas as pd
from typing import Dict, List, Optional, Tuple
import logging

from .config import EngineConfig
from .models import DependencyGraph, DependencyNode

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    'done': '#10b981',         # green
    'in-progress': '#3b82f6',  # blue
    'failed': '#ef4444',       # red
    'cancelled': '#6b7280',    # gray
}

PRIORITY_COLORS = {
    'high': '#f59e0b',    # amber
    'medium': '#8b5cf6',  # purple
}

LOW_PRIORITY_COLOR = '#06b6d4'  # cyan

SEVERITY_COLORS = {
    'critical': '#FF4444',
    'warning': '#FFAA00',
    'info': '#44AA44'
}


def node_color(node: DependencyNode) -> str:
    """Color by status; unfinished work is colored by priority"""
    if node.status in STATUS_COLORS:
        return STATUS_COLORS[node.status]
    return PRIORITY_COLORS.get(node.priority, LOW_PRIORITY_COLOR)


def node_size(node: DependencyNode) -> int:
    """Size grows with priority, critical path membership and dependent count"""
    size = 20
    if node.priority == 'high':
        size += 10
    elif node.priority == 'medium':
        size += 5

    if node.critical_path:
        size += 8

    dependents_count = len(node.dependents)
    if dependents_count > 3:
        size += min(dependents_count * 2, 15)

    return size


def cycle_severity(cycle_tasks: List[Dict]) -> str:
    """critical if any member is high priority or in progress, warning if any is todo, else info"""
    if any(t['priority'] == 'high' or t['status'] == 'in-progress' for t in cycle_tasks):
        return 'critical'
    if any(t['status'] == 'todo' for t in cycle_tasks):
        return 'warning'
    return 'info'


def cycle_suggestions(path: List[str]) -> List[str]:
    """Suggest ways to break a cycle given its closed path"""
    suggestions = []
    # A closed walk over two tasks has three entries
    if len(path) <= 3:
        suggestions.append("Remove the direct dependency between these two tasks")
    else:
        suggestions.append("Break the cycle by removing one dependency in the chain")
    suggestions.append("Consider creating a new parent task to consolidate circular logic")
    suggestions.append("Review if these tasks truly depend on each other or can be parallelized")
    return suggestions


class DependencyVisualizer:
    """Creates visualization data for a built dependency graph"""

    def __init__(self, graph: DependencyGraph, config: Optional[EngineConfig] = None):
        self.graph = graph
        self.config = config or EngineConfig()
        self.node_map = graph.node_map
        self.layout_cache = {}

    def _get_graph_layout(self) -> Dict[str, Tuple[float, float]]:
        """Hierarchical layout: one row per level, tasks spread evenly across the width"""
        if 'hierarchical' not in self.layout_cache:
            pos = {}
            width = self.config.layout_width
            for index, level in enumerate(self.graph.levels):
                for position, node in enumerate(level):
                    x = (position + 1) * (width / (len(level) + 1))
                    pos[node.id] = (x, index * self.config.level_spacing)
            self.layout_cache['hierarchical'] = pos
        return self.layout_cache['hierarchical']

    def format_graph(self) -> Dict:
        """Format graph data for D3-style node/link renderers"""
        pos = self._get_graph_layout()
        bottlenecks = set(self.graph.bottlenecks)

        nodes = []
        for node in self.graph.nodes:
            x, y = pos.get(node.id, (0.0, 0.0))
            nodes.append({
                'id': node.id,
                'label': node.title,
                'status': node.status,
                'priority': node.priority,
                'level': node.level,
                'x': x,
                'y': y,
                'color': node_color(node),
                'size': node_size(node),
                'critical_path': node.critical_path,
                'bottleneck': node.id in bottlenecks,
                'slack': node.slack,
                'dependencies': list(node.dependencies),
                'dependents': list(node.dependents)
            })

        links = [{
            'source': edge.source,
            'target': edge.target,
            'critical': edge.critical,
            'type': 'critical' if edge.critical else 'dependency',
            'strength': 3 if edge.critical else 1
        } for edge in self.graph.edges]

        layout = {
            'type': 'hierarchical',
            'levels': [{
                'level': index,
                'nodes': [node.id for node in level],
                'y': index * self.config.level_spacing
            } for index, level in enumerate(self.graph.levels)]
        }

        metadata = {
            'total_nodes': len(nodes),
            'total_edges': len(links),
            'max_depth': max((node.level for node in self.graph.nodes), default=0),
            'critical_path_length': len(self.graph.critical_path),
            'has_cycles': bool(self.graph.cycles)
        }

        return {'nodes': nodes, 'links': links, 'layout': layout, 'metadata': metadata}

    def format_tree(self, tree: Optional[Dict], root_task_id: str) -> Dict:
        """Flatten a dependency tree into rows and parent/child paths"""
        rows = []
        paths = []

        def flatten(node: Dict, parent: str, level: int):
            children = node.get('dependencies') or []
            rows.append({
                'id': node['id'],
                'title': node['title'],
                'status': node['status'],
                'priority': node['priority'],
                'level': level,
                'parent': parent,
                'children': [child['id'] for child in children],
                'expanded': level < 2,
                'has_children': bool(children)
            })
            if parent:
                paths.append({'from': parent, 'to': node['id'], 'type': 'child'})
            for child in children:
                flatten(child, node['id'], level + 1)

        if tree:
            flatten(tree, '', 0)

        root_node = self.node_map.get(root_task_id)
        if root_node is not None:
            root = {
                'id': root_node.id,
                'title': root_node.title,
                'status': root_node.status,
                'priority': root_node.priority,
                'level': 0
            }
        else:
            root = rows[0] if rows else None

        return {'root': root, 'tree': rows, 'paths': paths}

    def format_critical_path(self) -> Dict:
        """Critical path rows, a full timeline, bottlenecks and the per-level schedule"""
        critical_path = []
        for task_id in self.graph.critical_path:
            node = self.node_map[task_id]
            critical_path.append({
                'id': task_id,
                'title': node.title,
                'status': node.status,
                'duration': node.duration,
                'start_time': node.earliest_start,
                'end_time': node.earliest_finish,
                'slack': node.slack
            })

        timeline = [{
            'task_id': node.id,
            'start': node.earliest_start,
            'end': node.earliest_finish,
            'level': node.level,
            'critical': node.critical_path,
            'label': node.title
        } for node in self.graph.nodes]

        bottlenecks = []
        for task_id in self.graph.bottlenecks:
            node = self.node_map[task_id]
            bottlenecks.append({
                'task_id': task_id,
                'title': node.title,
                'impact': len(node.dependents),
                'dependents_count': len(node.dependents)
            })

        schedule = [{
            'level': index,
            'tasks': [node.id for node in level],
            'start_time': min(node.earliest_start for node in level),
            'end_time': max(node.earliest_finish for node in level),
            'parallel_capacity': len(level)
        } for index, level in enumerate(self.graph.levels)]

        return {
            'critical_path': critical_path,
            'timeline': timeline,
            'bottlenecks': bottlenecks,
            'schedule': schedule
        }

    def format_cycles(self, circular: Dict) -> Dict:
        """Describe detected cycles with severity, suggestions and affected tasks.

        ``circular`` is the result of cycle detection on the same snapshot.
        """
        cycles = []
        affected: Dict[str, Dict] = {}

        for index, cycle in enumerate(circular['cycles']):
            cycle_id = f"cycle_{index}"
            path = cycle['path']
            cycle_tasks = []
            for task_id in path:
                node = self.node_map.get(task_id)
                cycle_tasks.append({
                    'id': task_id,
                    'title': node.title if node else task_id,
                    'status': node.status if node else 'unknown',
                    'priority': node.priority if node else 'medium'
                })

            cycles.append({
                'id': cycle_id,
                'description': cycle['description'],
                'tasks': cycle_tasks,
                'paths': [{'from': path[i], 'to': path[i + 1]} for i in range(len(path) - 1)],
                'severity': cycle_severity(cycle_tasks),
                'suggestions': cycle_suggestions(path)
            })

            # The closing id repeats the first; count each task once per cycle
            for task_id in dict.fromkeys(path):
                node = self.node_map.get(task_id)
                entry = affected.setdefault(task_id, {
                    'id': task_id,
                    'title': node.title if node else task_id,
                    'priority': node.priority if node else 'medium',
                    'in_cycles': 0,
                    'cycle_ids': []
                })
                entry['in_cycles'] += 1
                entry['cycle_ids'].append(cycle_id)

        affected_nodes = list(affected.values())
        impact = {
            'total_tasks_affected': len(affected_nodes),
            'critical_tasks_blocked': sum(1 for n in affected_nodes if n['priority'] == 'high'),
            'estimated_delay': len(circular['cycles']) * self.config.cycle_delay_hours
        }

        return {'cycles': cycles, 'affected_nodes': affected_nodes, 'impact': impact}

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def schedule_table(self) -> pd.DataFrame:
        """CPM schedule as a table, earliest start first"""
        rows = [{
            'Task': node.id,
            'Title': node.title,
            'Level': node.level,
            'Duration': round(node.duration, 2),
            'ES': round(node.earliest_start, 2),
            'EF': round(node.earliest_finish, 2),
            'LS': round(node.latest_start, 2),
            'LF': round(node.latest_finish, 2),
            'Slack': round(node.slack, 2),
            'Critical': node.critical_path
        } for node in self.graph.nodes]
        df = pd.DataFrame(rows, columns=['Task', 'Title', 'Level', 'Duration', 'ES', 'EF',
                                         'LS', 'LF', 'Slack', 'Critical'])
        return df.sort_values(['ES', 'Level'], kind='stable').reset_index(drop=True)

    def cycles_table(self, circular: Dict) -> pd.DataFrame:
        """One row per detected cycle"""
        formatted = self.format_cycles(circular)
        rows = [{
            'Cycle ID': cycle['id'],
            'Cycle Path': " → ".join(task['id'] for task in cycle['tasks']),
            'Length': len(cycle['tasks']) - 1,
            'Severity': cycle['severity'],
            'Description': cycle['description']
        } for cycle in formatted['cycles']]
        return pd.DataFrame(rows, columns=['Cycle ID', 'Cycle Path', 'Length', 'Severity', 'Description'])

    # ------------------------------------------------------------------
    # Plotly figures
    # ------------------------------------------------------------------

    def create_dependency_graph_plot(self) -> go.Figure:
        """Create an interactive hierarchical dependency graph"""
        if not self.graph.nodes:
            return self._create_empty_plot("No tasks to visualize")

        pos = self._get_graph_layout()
        fig = go.Figure(data=self._create_edge_traces(pos) + [self._create_node_trace(pos)],
                        layout=self._get_plot_layout("Task Dependency Graph"))
        fig.update_yaxes(autorange='reversed')
        return fig

    def _create_node_trace(self, pos: Dict) -> go.Scatter:
        node_x = []
        node_y = []
        hover = []
        for node in self.graph.nodes:
            x, y = pos[node.id]
            node_x.append(x)
            node_y.append(y)

            hover_text = f"<b>{node.title}</b><br>"
            hover_text += f"Status: {node.status}<br>"
            hover_text += f"Priority: {node.priority}<br>"
            hover_text += f"Dependencies: {len(node.dependencies)}<br>"
            hover_text += f"Dependents: {len(node.dependents)}<br>"
            hover_text += f"Slack: {node.slack:.2f}"
            if node.critical_path:
                hover_text += "<br><b>On critical path</b>"
            hover.append(hover_text)

        return go.Scatter(
            x=node_x, y=node_y,
            mode='markers+text',
            text=[node.id for node in self.graph.nodes],
            textposition="middle center",
            textfont=dict(size=8),
            hovertemplate='%{hovertext}<extra></extra>',
            hovertext=hover,
            marker=dict(
                size=[node_size(node) for node in self.graph.nodes],
                color=[node_color(node) for node in self.graph.nodes],
                line=dict(width=2, color='white'),
                opacity=0.9
            ),
            name="Tasks"
        )

    def _create_edge_traces(self, pos: Dict) -> List[go.Scatter]:
        regular_x, regular_y = [], []
        critical_x, critical_y = [], []

        for edge in self.graph.edges:
            # Dangling dependencies have no position
            if edge.source not in pos or edge.target not in pos:
                continue
            x0, y0 = pos[edge.source]
            x1, y1 = pos[edge.target]
            if edge.critical:
                critical_x.extend([x0, x1, None])
                critical_y.extend([y0, y1, None])
            else:
                regular_x.extend([x0, x1, None])
                regular_y.extend([y0, y1, None])

        traces = []
        if regular_x:
            traces.append(go.Scatter(
                x=regular_x, y=regular_y,
                line=dict(width=1, color='#888'),
                hoverinfo='none',
                mode='lines',
                name="Dependencies"
            ))
        if critical_x:
            traces.append(go.Scatter(
                x=critical_x, y=critical_y,
                line=dict(width=3, color='#FF4444'),
                hoverinfo='none',
                mode='lines',
                name="Critical Path"
            ))
        return traces

    def create_timeline_chart(self) -> go.Figure:
        """Gantt-style chart of earliest start/finish per task"""
        if not self.graph.nodes:
            return self._create_empty_plot("No tasks to schedule")

        ordered = sorted(self.graph.nodes, key=lambda node: (node.earliest_start, node.level))
        fig = go.Figure(data=[go.Bar(
            x=[node.duration for node in ordered],
            y=[node.title for node in ordered],
            base=[node.earliest_start for node in ordered],
            orientation='h',
            marker_color=['#FF4444' if node.critical_path else '#4444FF' for node in ordered],
            customdata=[[node.earliest_start, node.earliest_finish] for node in ordered],
            hovertemplate='%{y}: %{customdata[0]:.2f} → %{customdata[1]:.2f}<extra></extra>'
        )])
        fig.update_layout(
            title="Critical Path Timeline",
            xaxis_title="Schedule Time",
            yaxis=dict(autorange='reversed'),
            plot_bgcolor='white'
        )
        return fig

    def create_cycle_severity_chart(self, circular: Dict) -> go.Figure:
        """Bar chart of cycle counts per severity"""
        formatted = self.format_cycles(circular)
        if not formatted['cycles']:
            return self._create_empty_plot("No cycles detected")

        distribution = {severity: 0 for severity in SEVERITY_COLORS}
        for cycle in formatted['cycles']:
            distribution[cycle['severity']] += 1

        fig = go.Figure(data=[go.Bar(
            x=list(distribution.keys()),
            y=list(distribution.values()),
            marker_color=list(SEVERITY_COLORS.values()),
            text=list(distribution.values()),
            textposition='auto'
        )])
        fig.update_layout(
            title="Cycle Severity Distribution",
            xaxis_title="Severity",
            yaxis_title="Number of Cycles",
            plot_bgcolor='white'
        )
        return fig

    def _get_plot_layout(self, title: str) -> dict:
        return dict(
            title=title,
            showlegend=True,
            hovermode='closest',
            margin=dict(b=20, l=5, r=5, t=40),
            annotations=[dict(
                text="Hover over tasks for details. Red edges mark the critical path.",
                showarrow=False,
                xref="paper", yref="paper",
                x=0.005, y=-0.002,
                xanchor='left', yanchor='bottom',
                font=dict(color="#888", size=12)
            )],
            xaxis=dict(showgrid=False, zeroline=False, showticklabels=False),
            yaxis=dict(showgrid=False, zeroline=False, showticklabels=False),
            plot_bgcolor='white'
        )

    def _create_empty_plot(self, message: str) -> go.Figure:
        fig = go.Figure()
        fig.add_annotation(
            text=message,
            xref="paper", yref="paper",
            x=0.5, y=0.5,
            showarrow=False,
            font=dict(size=16, color="gray")
        )
        fig.update_layout(
            xaxis=dict(showgrid=False, zeroline=False, showticklabels=False),
            yaxis=dict(showgrid=False, zeroline=False, showticklabels=False),
            plot_bgcolor='white'
        )
        return fig
