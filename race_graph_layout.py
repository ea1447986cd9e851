# race_graph_layout.py

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Iterable, Iterator, Mapping, Optional

import numpy as np

from graph_assembler import AssembledGraph, assemble_graph
from race_graph_data import BranchCommits, BranchRef, ColorWeight, CommitRecord, GraphEdge, GraphNode, RaceLayout, ShapeKind

PREFERRED_TRUNK_NAMES = ("main", "master")
TRUNK_COLUMN = 0
DEFAULT_MAGNITUDE = 1


@dataclass
class LayoutConfig:
    lane_width: float = 5.0
    timeline_gap: float = 5.0
    height_scale: float = 0.05
    baseline_offset: float = -4.0
    camera_offset: tuple[float, float, float] = (0.0, 20.0, 40.0)  # above and behind the race direction
    damping_factor: float = 0.05
    tick_interval_ms: int = 50
    cube_size: float = 1.5

    @classmethod
    def from_settings(cls, overrides: Optional[Mapping[str, Any]]) -> "LayoutConfig":
        """Builds a config from the ``layout`` section of the settings file, ignoring unknown keys."""
        config = cls()
        if not overrides:
            return config
        known = {f.name for f in fields(cls)}
        for key, value in overrides.items():
            if key not in known:
                logging.debug("Ignoring unknown layout setting %s", key)
                continue
            try:
                if key == "camera_offset":
                    x, y, z = value
                    setattr(config, key, (float(x), float(y), float(z)))
                elif key == "tick_interval_ms":
                    setattr(config, key, max(1, int(value)))
                else:
                    setattr(config, key, float(value))
            except (TypeError, ValueError):
                logging.warning("Ignoring invalid layout setting %s=%r", key, value)
        return config


class ColumnAssignment:
    def __init__(self, column: Optional[int] = None, branch_name: Optional[str] = None):
        self.column: Optional[int] = column
        self.branch_name: Optional[str] = branch_name
        self.is_main_branch: bool = False

    def __repr__(self) -> str:
        return f"ColumnAssignment(column={self.column}, branch={self.branch_name!r}, main={self.is_main_branch})"


def find_trunk_name(branches: list[BranchRef]) -> Optional[str]:
    """The first branch named main/master, else the first branch, else None."""
    for branch in branches:
        if branch.name in PREFERRED_TRUNK_NAMES:
            return branch.name
    return branches[0].name if branches else None


def branch_lanes(branches: list[BranchRef], trunk_name: Optional[str]) -> dict[str, int]:
    """Trunk sits at lane 0, the other branches fan out as +1, -1, +2, -2, ... in list order."""
    lanes: dict[str, int] = {}
    if trunk_name is not None:
        lanes[trunk_name] = TRUNK_COLUMN
    fanned = 0
    for branch in branches:
        if branch.name in lanes:
            continue
        magnitude = fanned // 2 + 1
        lanes[branch.name] = magnitude if fanned % 2 == 0 else -magnitude
        fanned += 1
    return lanes


def walk_order(branches: list[BranchRef], trunk_name: Optional[str]) -> list[BranchRef]:
    """Every non-trunk branch walks before the trunk so feature branches claim their commits first."""
    others = [b for b in branches if b.name != trunk_name]
    trunk = [b for b in branches if b.name == trunk_name]
    return others + trunk


def walk_first_parent(records: Mapping[str, CommitRecord], head_sha: str) -> Iterator[str]:
    """Yields the head and its first-parent ancestors until the chain leaves the fetched window."""
    seen: set[str] = set()
    current_sha: Optional[str] = head_sha
    while current_sha and current_sha in records and current_sha not in seen:
        seen.add(current_sha)
        yield current_sha
        parents = records[current_sha].parents
        current_sha = parents[0] if parents else None


def assign_columns(graph: AssembledGraph) -> dict[str, ColumnAssignment]:
    """
    Computes the lane, owning branch and main-branch flag of every commit in ``graph``.

    Column and branch name are first-writer-wins. The trunk walk comes last and
    only fills unclaimed commits, but flags every commit it reaches as main,
    including ones a feature branch already owns. Commits no walk reaches fall
    back to the trunk lane.
    """
    assignments = {sha: ColumnAssignment() for sha in graph.records}
    if not graph.branches:
        for assignment in assignments.values():
            assignment.column = TRUNK_COLUMN
        return assignments

    trunk_name = find_trunk_name(graph.branches)
    lanes = branch_lanes(graph.branches, trunk_name)

    for branch in walk_order(graph.branches, trunk_name):
        is_trunk = branch.name == trunk_name
        claimed = 0
        for sha in walk_first_parent(graph.records, branch.head_sha):
            assignment = assignments[sha]
            if assignment.column is None:
                assignment.column = lanes[branch.name]
                assignment.branch_name = branch.name
                claimed += 1
            if is_trunk:
                assignment.is_main_branch = True
        logging.debug("Branch %s claimed %d commits in lane %d", branch.name, claimed, lanes[branch.name])

    for assignment in assignments.values():
        if assignment.column is None:
            assignment.column = TRUNK_COLUMN
            if trunk_name is not None:
                assignment.is_main_branch = True
    return assignments


def has_renderable_commits(branch_commits: Iterable[BranchCommits]) -> bool:
    return any(not record.detail_failed for pair in branch_commits if pair.commits for record in pair.commits)


def build_nodes(graph: AssembledGraph, assignments: Mapping[str, ColumnAssignment]) -> list[GraphNode]:
    """Wraps every commit in a node, leaving out commits whose details could not be fetched."""
    nodes = []
    dropped = 0
    for sha, record in graph.records.items():
        if record.detail_failed:
            dropped += 1
            continue
        node = GraphNode(record)
        assignment = assignments[sha]
        node.column = assignment.column if assignment.column is not None else TRUNK_COLUMN
        node.branch_name = assignment.branch_name
        node.is_main_branch = assignment.is_main_branch
        nodes.append(node)
    if dropped:
        logging.debug("Left out %d commits without details", dropped)
    return nodes


def order_timeline(nodes: Iterable[GraphNode]) -> list[GraphNode]:
    """Sorts newest first (stable for equal dates) and sets the dense timeline index."""
    ordered = sorted(nodes, key=lambda n: n.author_date, reverse=True)
    for index, node in enumerate(ordered):
        node.timeline_index = index
    return ordered


def change_magnitude(record: CommitRecord) -> int:
    if record.stats and record.stats.total:
        return record.stats.total
    return DEFAULT_MAGNITUDE


def project_layout(nodes: list[GraphNode], config: LayoutConfig) -> list[GraphNode]:
    """Assigns position, height, shape and color weight to timeline-ordered nodes."""
    if not nodes:
        return nodes

    max_magnitude = max(max((n.record.stats.total for n in nodes if n.record.stats), default=0), 1)

    for node in nodes:
        magnitude = change_magnitude(node.record)
        node.height = magnitude * config.height_scale
        node.position = np.array(
            [
                node.column * config.lane_width,
                config.baseline_offset + node.height / 2,
                -node.timeline_index * config.timeline_gap,
            ],
            dtype=float,
        )
        node.shape = ShapeKind.MERGE if node.is_merge else ShapeKind.REGULAR

        changes = node.record.stats.total if node.record.stats else 0
        node.color_weight = ColorWeight(is_trunk=node.is_main_branch, t=math.sqrt(max(changes, 0) / max_magnitude))
    return nodes


def build_edges(nodes: list[GraphNode]) -> list[GraphEdge]:
    """Child-to-parent edges; parents outside the fetched window are skipped."""
    known = {node.sha for node in nodes}
    edges = []
    for node in nodes:
        for parent_sha in node.parents:
            if parent_sha in known:
                edges.append(GraphEdge(node.sha, parent_sha, node.is_merge))
    return edges


def calculate_race_layout(branch_commits: Iterable[BranchCommits], config: LayoutConfig) -> RaceLayout:
    """Runs the full pipeline: assemble, assign columns, order, project, connect."""
    graph = assemble_graph(branch_commits)
    if not graph.records:
        return RaceLayout(trunk_name=find_trunk_name(graph.branches))

    assignments = assign_columns(graph)
    nodes = order_timeline(build_nodes(graph, assignments))
    project_layout(nodes, config)
    edges = build_edges(nodes)

    trunk_name = find_trunk_name(graph.branches)
    logging.info("Laid out %d commits, %d edges, trunk=%s", len(nodes), len(edges), trunk_name)
    return RaceLayout(nodes=nodes, edges=edges, trunk_name=trunk_name)
