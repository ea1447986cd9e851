"""Builders for commit records and graph nodes shared by the tests."""

import os
import sys
from datetime import datetime, timedelta, timezone

import numpy as np
from PyQt6.QtWidgets import QApplication

from race_graph_data import BranchCommits, BranchRef, CommitRecord, CommitStats, GraphNode

BASE_DATE = datetime(2024, 3, 1, tzinfo=timezone.utc)


def make_record(sha, parents=(), hours=0, total=None):
    stats = CommitStats(additions=total, deletions=0, total=total) if total is not None else None
    return CommitRecord(
        sha=sha,
        parents=list(parents),
        author_name="Ada",
        author_date=BASE_DATE + timedelta(hours=hours),
        message=f"Commit {sha}",
        stats=stats,
    )


def make_node(sha, parents=(), hours=0, total=None, column=0, index=0, main=False):
    node = GraphNode(make_record(sha, parents, hours, total))
    node.column = column
    node.timeline_index = index
    node.is_main_branch = main
    return node


def positioned_node(sha, position, height=1.0):
    node = make_node(sha)
    node.position = np.array(position, dtype=float)
    node.height = height
    return node


def fork_pairs():
    """main -> A -> C and feat -> B -> C."""
    c = make_record("C", hours=0)
    a = make_record("A", ["C"], hours=2)
    b = make_record("B", ["C"], hours=1)
    return [
        BranchCommits(BranchRef("main", "A"), [a, c]),
        BranchCommits(BranchRef("feat", "B"), [b, c]),
    ]


def qt_app():
    """The shared QApplication; widgets render offscreen unless a platform is set."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv if hasattr(sys, "argv") else [])
    return app
