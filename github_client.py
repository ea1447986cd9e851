# github_client.py

import asyncio
import logging
import re
from typing import Any, Optional

import aiohttp

from graph_assembler import pair_in_branch_order
from race_graph_data import BranchCommits, BranchRef, CommitRecord

API_ROOT = "https://api.github.com"
MAX_BRANCHES = 10
COMMITS_PER_BRANCH = 30
DETAIL_BATCH_SIZE = 50
REQUEST_TIMEOUT_SECONDS = 15

_URL_PREFIX = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/", re.IGNORECASE)


class RepositoryFetchError(Exception):
    """Base class for errors that abort a whole fetch cycle."""


class MalformedRepoUrlError(RepositoryFetchError):
    pass


class BranchListError(RepositoryFetchError):
    pass


def parse_repo_url(text: str) -> tuple[str, str]:
    """
    Extracts (owner, repo) from ``https://github.com/owner/repo`` or ``owner/repo``.

    Trailing slashes, a ``.git`` suffix and deeper paths (``/tree/main``) are ignored.
    """
    cleaned = _URL_PREFIX.sub("", (text or "").strip())
    parts = cleaned.split("/")
    owner = parts[0].strip()
    repo = parts[1].strip() if len(parts) > 1 else ""
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        raise MalformedRepoUrlError("Please enter a valid GitHub repository URL.")
    return owner, repo


class GitHubClient:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_root: str = API_ROOT,
        max_branches: int = MAX_BRANCHES,
        commits_per_branch: int = COMMITS_PER_BRANCH,
    ):
        self.session = session
        self.api_root = api_root.rstrip("/")
        self.max_branches = max_branches
        self.commits_per_branch = commits_per_branch

    async def _get_json(self, url: str, params: Optional[dict] = None) -> tuple[int, Any]:
        async with self.session.get(url, params=params, headers={"Accept": "application/vnd.github+json"}) as response:
            if response.status != 200:
                return response.status, None
            return response.status, await response.json()

    async def fetch_branches(self, owner: str, repo: str) -> list[BranchRef]:
        url = f"{self.api_root}/repos/{owner}/{repo}/branches"
        try:
            status, payload = await self._get_json(url, {"per_page": 100})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BranchListError(f"Failed to fetch branches: {e}") from e
        if status != 200 or not isinstance(payload, list):
            raise BranchListError(f"Failed to fetch branches ({status}). Check the repository URL.")
        return [BranchRef.from_api(item) for item in payload[: self.max_branches]]

    async def fetch_branch_commits(self, owner: str, repo: str, branch: BranchRef) -> Optional[list[CommitRecord]]:
        """The newest commits of one branch, or None when the request fails."""
        url = f"{self.api_root}/repos/{owner}/{repo}/commits"
        try:
            status, payload = await self._get_json(url, {"sha": branch.name, "per_page": self.commits_per_branch})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logging.warning("Commit list for branch %s failed: %s", branch.name, e)
            return None
        if status != 200 or not isinstance(payload, list):
            logging.warning("Commit list for branch %s failed with status %s", branch.name, status)
            return None
        return [CommitRecord.from_api(item) for item in payload]

    async def fetch_commit_detail(self, record: CommitRecord) -> Optional[CommitRecord]:
        if not record.url:
            return record
        status, payload = await self._get_json(record.url)
        if status != 200 or not isinstance(payload, dict):
            logging.warning("Detail for commit %s failed with status %s", record.short_sha, status)
            return None
        return record.with_details(payload)

    async def fetch_commit_details(self, records: list[CommitRecord]) -> dict[str, CommitRecord]:
        """Fetches details in batches; commits whose detail failed are left out."""
        detailed: dict[str, CommitRecord] = {}
        for start in range(0, len(records), DETAIL_BATCH_SIZE):
            batch = records[start : start + DETAIL_BATCH_SIZE]
            results = await asyncio.gather(*(self.fetch_commit_detail(r) for r in batch), return_exceptions=True)
            for record, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logging.warning("Detail for commit %s raised %s", record.short_sha, result)
                    continue
                if result is not None:
                    detailed[record.sha] = result
        return detailed

    async def fetch_repository(self, repo_url: str) -> list[BranchCommits]:
        owner, repo = parse_repo_url(repo_url)
        branches = await self.fetch_branches(owner, repo)
        logging.info("Fetching %d branches of %s/%s", len(branches), owner, repo)

        results = await asyncio.gather(*(self.fetch_branch_commits(owner, repo, b) for b in branches))
        commits_by_branch = {branch.name: commits for branch, commits in zip(branches, results)}
        pairs = pair_in_branch_order(branches, commits_by_branch)

        unique: dict[str, CommitRecord] = {}
        for pair in pairs:
            for record in pair.commits:
                unique.setdefault(record.sha, record)
        detailed = await self.fetch_commit_details(list(unique.values()))
        logging.info("Fetched details for %d of %d commits", len(detailed), len(unique))

        # Commits without details stay in the lists so branch walks pass through them
        for sha, record in unique.items():
            if sha not in detailed:
                record.detail_failed = True
                detailed[sha] = record

        return [BranchCommits(pair.branch, [detailed[r.sha] for r in pair.commits]) for pair in pairs]


async def fetch_repository(repo_url: str, max_branches: int = MAX_BRANCHES, commits_per_branch: int = COMMITS_PER_BRANCH):
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        client = GitHubClient(session, max_branches=max_branches, commits_per_branch=commits_per_branch)
        return await client.fetch_repository(repo_url)
