import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from dotenv import load_dotenv

from dependency_graph import (
    DependencyGraphService,
    DependencyVisualizer,
    EngineConfig,
    TaskDataError,
)

load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================================
# INPUT
# =============================================================================

def load_tasks(path: str) -> Optional[List[Dict]]:
    """Load a task snapshot from a JSON file (a list, or an object with a "tasks" list)"""
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        logger.error(f"Could not read task file {path}: {e}")
        return None
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse task file {path}: {e}")
        return None

    if isinstance(data, dict):
        data = data.get('tasks', [])
    if not isinstance(data, list):
        logger.error(f"Task file {path} must contain a list of tasks")
        return None
    return data


def parse_scenario(args) -> Dict:
    return {
        'type': args.type,
        'changes': {'task_id': args.task_id, 'dependency_id': args.dependency_id}
    }

# =============================================================================
# COMMANDS
# =============================================================================

def run_command(args, service: DependencyGraphService, tasks: List[Dict]):
    """Run one analysis command and return a JSON-serializable result"""
    command = args.command

    if command == 'graph':
        graph = service.build_graph(tasks)
        visualizer = DependencyVisualizer(graph, service.config)
        if args.plot:
            visualizer.create_dependency_graph_plot().write_html(args.plot)
            logger.info(f"Wrote dependency graph plot to {args.plot}")
        return visualizer.format_graph() if args.viz else graph.to_dict()

    if command == 'cycles':
        if args.viz:
            return service.format_circular_dependencies(tasks)
        return service.detect_cycles(tasks)

    if command == 'validate':
        return service.validate(tasks).to_dict()

    if command == 'critical-path':
        if args.plot:
            visualizer = DependencyVisualizer(service.build_graph(tasks), service.config)
            visualizer.create_timeline_chart().write_html(args.plot)
            logger.info(f"Wrote critical path timeline to {args.plot}")
        if args.table:
            visualizer = DependencyVisualizer(service.build_graph(tasks), service.config)
            print(visualizer.schedule_table().to_string(index=False))
        if args.viz:
            return service.format_critical_path_for_visualization(tasks)
        return service.critical_path_analysis(tasks)

    if command == 'processable':
        return [task.to_dict() for task in service.processable_tasks(tasks)]

    if command == 'blocking':
        return [task.to_dict() for task in service.blocking_tasks(tasks)]

    if command == 'tree':
        if args.viz:
            return service.format_dependency_tree(tasks, args.task_id, args.max_depth)
        return service.dependency_tree(tasks, args.task_id, args.max_depth)

    if command == 'impact':
        return service.impact_analysis(tasks, args.task_id)

    if command == 'delay':
        return service.analyze_delay_impact(tasks, args.task_id, args.delay)

    if command == 'what-if':
        return service.what_if(tasks, parse_scenario(args))

    if command == 'bottlenecks':
        return service.find_bottlenecks(tasks)

    if command == 'suggest':
        return service.suggest_dependencies(tasks, args.task_id)

    raise ValueError(f"Unknown command: {command}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description='Task dependency graph analysis')
    ap.add_argument('--tasks', required=True, help='JSON file with the task snapshot')
    ap.add_argument('--log-level', default='INFO')
    sub = ap.add_subparsers(dest='command', required=True)

    graph = sub.add_parser('graph', help='Build the full dependency graph')
    graph.add_argument('--viz', action='store_true', help='Output visualization-ready data')
    graph.add_argument('--plot', help='Write an interactive HTML plot to this path')

    cycles = sub.add_parser('cycles', help='Detect circular dependencies')
    cycles.add_argument('--viz', action='store_true')

    sub.add_parser('validate', help='Validate dependency structure')

    cpm = sub.add_parser('critical-path', help='Critical path analysis')
    cpm.add_argument('--viz', action='store_true')
    cpm.add_argument('--plot', help='Write an HTML timeline to this path')
    cpm.add_argument('--table', action='store_true', help='Print the schedule table')

    sub.add_parser('processable', help='Tasks ready to start')
    sub.add_parser('blocking', help='Tasks holding up todo work')
    sub.add_parser('bottlenecks', help='Rank structural bottlenecks')

    tree = sub.add_parser('tree', help='Dependency tree of a task')
    tree.add_argument('task_id')
    tree.add_argument('--max-depth', type=int, default=None)
    tree.add_argument('--viz', action='store_true')

    impact = sub.add_parser('impact', help='Tasks unblocked by completing a task')
    impact.add_argument('task_id')

    delay = sub.add_parser('delay', help='Effect of delaying a task')
    delay.add_argument('task_id')
    delay.add_argument('delay', type=float)

    what_if = sub.add_parser('what-if', help='Evaluate a hypothetical dependency change')
    what_if.add_argument('type', choices=['add_dependency', 'remove_dependency'])
    what_if.add_argument('task_id')
    what_if.add_argument('dependency_id')

    suggest = sub.add_parser('suggest', help='Suggest dependencies for a task')
    suggest.add_argument('task_id')

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO),
                        stream=sys.stderr)

    tasks = load_tasks(args.tasks)
    if tasks is None:
        return 1

    service = DependencyGraphService(EngineConfig.from_env())
    try:
        result = run_command(args, service, tasks)
    except TaskDataError as e:
        logger.error(f"Invalid task data: {e}")
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == '__main__':
    sys.exit(main())
