# local_repo_source.py

import logging
import os

import git
import git.exc

from github_client import COMMITS_PER_BRANCH, MAX_BRANCHES, MalformedRepoUrlError
from race_graph_data import BranchCommits, BranchRef, CommitRecord, CommitStats


def commit_to_record(commit: git.Commit) -> CommitRecord:
    """Converts a GitPython commit, including its diff stats, into a CommitRecord."""
    totals = commit.stats.total
    stats = CommitStats(
        additions=totals.get("insertions", 0),
        deletions=totals.get("deletions", 0),
        total=totals.get("lines", 0),
    )
    return CommitRecord(
        sha=commit.hexsha,
        parents=[p.hexsha for p in commit.parents],
        author_name=commit.author.name or "",
        author_date=commit.authored_datetime,
        message=commit.message.strip(),
        stats=stats,
    )


def load_local_repository(
    repo_path: str, max_branches: int = MAX_BRANCHES, max_count: int = COMMITS_PER_BRANCH
) -> list[BranchCommits]:
    """Reads local branch heads and their newest commits from a clone on disk."""
    if not repo_path or not os.path.isdir(repo_path):
        raise MalformedRepoUrlError(f"Not a folder: {repo_path}")
    try:
        repo = git.Repo(repo_path)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
        raise MalformedRepoUrlError(f"Selected folder is not a valid Git repository: {repo_path}") from e

    result = []
    converted: dict[str, CommitRecord] = {}
    for head in list(repo.heads)[:max_branches]:
        try:
            commits = list(repo.iter_commits(head, max_count=max_count))
        except git.GitCommandError as e:
            logging.warning("Reading branch %s failed: %s", head.name, e)
            continue
        records = []
        for commit in commits:
            if commit.hexsha not in converted:
                converted[commit.hexsha] = commit_to_record(commit)
            records.append(converted[commit.hexsha])
        result.append(BranchCommits(BranchRef(head.name, head.commit.hexsha), records))

    logging.info("Loaded %d branches, %d commits from %s", len(result), len(converted), repo_path)
    return result
