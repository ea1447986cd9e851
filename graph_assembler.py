# graph_assembler.py

import logging
from typing import Iterable, Mapping, Optional

from race_graph_data import BranchCommits, BranchRef, CommitRecord


class AssembledGraph:
    """Deduplicated commits of all fetched branches plus the branches that produced them."""

    def __init__(self, records: dict[str, CommitRecord], branches: list[BranchRef]):
        self.records: dict[str, CommitRecord] = records  # insertion order = first-seen order
        self.branches: list[BranchRef] = branches

    def __contains__(self, sha: str) -> bool:
        return sha in self.records

    def __len__(self) -> int:
        return len(self.records)

    def get(self, sha: str) -> Optional[CommitRecord]:
        return self.records.get(sha)

    def __repr__(self) -> str:
        return f"AssembledGraph(commits={len(self.records)}, branches={[b.name for b in self.branches]})"


def assemble_graph(branch_commits: Iterable[BranchCommits]) -> AssembledGraph:
    """
    Unions the per-branch commit lists into one mapping keyed by sha.

    The input is processed in the given (branch list) order and the first record
    seen for a sha wins; merge bases show up in several branch histories.
    Pairs whose commit list is missing are treated as absent branches.
    """
    records: dict[str, CommitRecord] = {}
    branches: list[BranchRef] = []
    duplicates = 0

    for pair in branch_commits:
        if pair.commits is None:
            logging.debug("Skipping branch %s without commit data", pair.branch.name)
            continue
        branches.append(pair.branch)
        for record in pair.commits:
            if record.sha in records:
                duplicates += 1
                continue
            records[record.sha] = record

    logging.debug(
        "Assembled %d commits from %d branches (%d shared occurrences)", len(records), len(branches), duplicates
    )
    return AssembledGraph(records, branches)


def pair_in_branch_order(
    branches: list[BranchRef], commits_by_branch: Mapping[str, Optional[list[CommitRecord]]]
) -> list[BranchCommits]:
    """
    Re-associates fetch results with the branch list.

    ``commits_by_branch`` may have been filled in any completion order; the result
    follows ``branches``. Branches whose fetch failed (missing or ``None``) are dropped.
    """
    pairs = []
    for branch in branches:
        commits = commits_by_branch.get(branch.name)
        if commits is None:
            continue
        pairs.append(BranchCommits(branch, commits))
    return pairs
