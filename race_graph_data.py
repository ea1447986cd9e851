# race_graph_data.py

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import numpy as np

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_author_date(raw: Optional[str]) -> datetime:
    """Parses an ISO 8601 timestamp as sent by the REST API (``2024-05-01T12:00:00Z``).

    Missing or unparsable values sort as the oldest possible commit.
    """
    if not raw:
        return EPOCH
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CommitStats:
    def __init__(self, additions: int = 0, deletions: int = 0, total: int = 0):
        self.additions: int = additions
        self.deletions: int = deletions
        self.total: int = total

    @classmethod
    def from_api(cls, payload: Optional[dict]) -> Optional["CommitStats"]:
        if not payload:
            return None
        return cls(
            additions=int(payload.get("additions") or 0),
            deletions=int(payload.get("deletions") or 0),
            total=int(payload.get("total") or 0),
        )

    def __repr__(self) -> str:
        return f"CommitStats(+{self.additions}, -{self.deletions}, total={self.total})"


class CommitRecord:
    """A commit as delivered by a fetch source. Never mutated by the layout code."""

    def __init__(
        self,
        sha: str,
        parents: list[str],
        author_name: str,
        author_date: datetime,
        message: str,
        stats: Optional[CommitStats] = None,
        author_login: Optional[str] = None,
        avatar_url: Optional[str] = None,
        html_url: str = "",
        url: str = "",
    ):
        self.sha: str = sha
        self.parents: list[str] = list(parents)
        self.author_name: str = author_name
        self.author_date: datetime = author_date
        self.message: str = message
        self.stats: Optional[CommitStats] = stats
        self.author_login: Optional[str] = author_login
        self.avatar_url: Optional[str] = avatar_url
        self.html_url: str = html_url
        self.url: str = url  # detail endpoint, used to fetch stats
        # Set by the fetch source when the detail request failed. Such commits still
        # steer lane assignment but are left out of the positioned graph.
        self.detail_failed: bool = False

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "CommitRecord":
        author = payload.get("author") or {}
        commit_meta = payload.get("commit") or {}
        commit_author = commit_meta.get("author") or {}
        return cls(
            sha=payload["sha"],
            parents=[p["sha"] for p in payload.get("parents") or [] if p.get("sha")],
            author_name=commit_author.get("name") or "",
            author_date=parse_author_date(commit_author.get("date")),
            message=commit_meta.get("message") or "",
            stats=CommitStats.from_api(payload.get("stats")),
            author_login=author.get("login"),
            avatar_url=author.get("avatar_url"),
            html_url=payload.get("html_url") or "",
            url=payload.get("url") or "",
        )

    def with_details(self, detail: dict[str, Any]) -> "CommitRecord":
        """Returns a copy carrying the change statistics of a detail payload."""
        enriched = CommitRecord.from_api(detail)
        if not enriched.url:
            enriched.url = self.url
        if enriched.stats is None:
            enriched.stats = self.stats
        return enriched

    @property
    def display_author(self) -> str:
        return self.author_login or self.author_name or "N/A"

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    def __repr__(self) -> str:
        return (
            f"CommitRecord(sha='{self.sha[:7]}', "
            f"parents={[p[:7] for p in self.parents]}, "
            f"date={self.author_date.isoformat()}, "
            f"message='{self.message[:20]}...')"
        )


class BranchRef:
    def __init__(self, name: str, head_sha: str):
        self.name: str = name
        self.head_sha: str = head_sha

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "BranchRef":
        return cls(payload["name"], (payload.get("commit") or {}).get("sha", ""))

    def __eq__(self, other) -> bool:
        return isinstance(other, BranchRef) and (self.name, self.head_sha) == (other.name, other.head_sha)

    def __hash__(self) -> int:
        return hash((self.name, self.head_sha))

    def __repr__(self) -> str:
        return f"BranchRef('{self.name}', head='{self.head_sha[:7]}')"


class BranchCommits:
    """A branch together with the commits fetched for it (newest first)."""

    def __init__(self, branch: BranchRef, commits: list[CommitRecord]):
        self.branch: BranchRef = branch
        self.commits: list[CommitRecord] = commits

    def __repr__(self) -> str:
        return f"BranchCommits({self.branch!r}, commits={len(self.commits)})"


class ShapeKind(Enum):
    REGULAR = "regular"
    MERGE = "merge"


@dataclass(frozen=True)
class ColorWeight:
    is_trunk: bool
    t: float = 0.0  # 0 = calm hue, 1 = hot hue


class GraphNode:
    def __init__(self, record: CommitRecord):
        self.record: CommitRecord = record

        # Filled by the column assignment
        self.column: int = 0
        self.branch_name: Optional[str] = None
        self.is_main_branch: bool = False

        # Filled by the timeline ordering
        self.timeline_index: int = -1

        # Filled by the layout projection
        self.position: np.ndarray = np.zeros(3)
        self.height: float = 0.0
        self.shape: ShapeKind = ShapeKind.REGULAR
        self.color_weight: ColorWeight = ColorWeight(is_trunk=False)

    @property
    def sha(self) -> str:
        return self.record.sha

    @property
    def parents(self) -> list[str]:
        return self.record.parents

    @property
    def author_date(self) -> datetime:
        return self.record.author_date

    @property
    def is_merge(self) -> bool:
        return len(self.record.parents) > 1

    def __repr__(self) -> str:
        return (
            f"GraphNode(sha='{self.sha[:7]}', "
            f"column={self.column}, branch={self.branch_name!r}, "
            f"main={self.is_main_branch}, index={self.timeline_index}, "
            f"position={self.position.tolist()})"
        )


@dataclass(frozen=True)
class GraphEdge:
    from_sha: str  # child
    to_sha: str  # parent
    is_merge_edge: bool


@dataclass
class RaceLayout:
    """The static positioned graph handed to playback and presentation."""

    nodes: list[GraphNode] = field(default_factory=list)  # reveal order, newest first
    edges: list[GraphEdge] = field(default_factory=list)
    trunk_name: Optional[str] = None

    def node_map(self) -> dict[str, GraphNode]:
        return {node.sha: node for node in self.nodes}

    def __len__(self) -> int:
        return len(self.nodes)
