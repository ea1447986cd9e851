import asyncio
import os
import sys
import unittest

import aiohttp

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from github_client import BranchListError, GitHubClient, MalformedRepoUrlError, parse_repo_url
from race_graph_layout import LayoutConfig, calculate_race_layout

API = "https://api.test"


def commit_payload(sha, parents=(), date="2024-05-01T12:00:00Z", stats=None):
    payload = {
        "sha": sha,
        "url": f"{API}/repos/o/r/commits/{sha}",
        "html_url": f"https://github.com/o/r/commit/{sha}",
        "parents": [{"sha": p} for p in parents],
        "commit": {"author": {"name": "Ada", "date": date}, "message": f"Commit {sha}"},
        "author": {"login": "ada", "avatar_url": "https://avatars.test/ada"},
    }
    if stats is not None:
        payload["stats"] = {"additions": stats, "deletions": 0, "total": stats}
    return payload


class FakeGitHubClient(GitHubClient):
    """Serves canned responses keyed by (url, branch sha param)."""

    def __init__(self, routes, delays=None):
        super().__init__(session=None, api_root=API)
        self.routes = routes
        self.delays = delays or {}
        self.requested = []

    async def _get_json(self, url, params=None):
        key = (url, (params or {}).get("sha"))
        self.requested.append(key)
        await asyncio.sleep(self.delays.get(key, 0))
        response = self.routes.get(key, (404, None))
        if isinstance(response, Exception):
            raise response
        return response


def branch_routes(branches):
    return {(f"{API}/repos/o/r/branches", None): (200, [{"name": n, "commit": {"sha": s}} for n, s in branches])}


def commits_key(branch):
    return (f"{API}/repos/o/r/commits", branch)


def detail_key(sha):
    return (f"{API}/repos/o/r/commits/{sha}", None)


class TestParseRepoUrl(unittest.TestCase):
    def test_accepted_forms(self):
        for text in (
            "https://github.com/octo/hello",
            "http://www.github.com/octo/hello/",
            "github.com/octo/hello.git",
            "octo/hello",
            "  https://github.com/octo/hello/tree/main  ",
        ):
            with self.subTest(text=text):
                self.assertEqual(parse_repo_url(text), ("octo", "hello"))

    def test_rejected_forms(self):
        for text in ("", "   ", "https://github.com/", "https://github.com/octo", "octo/", "/hello"):
            with self.subTest(text=text):
                with self.assertRaises(MalformedRepoUrlError):
                    parse_repo_url(text)


class TestFetchRepository(unittest.IsolatedAsyncioTestCase):
    async def test_branch_list_failure_aborts(self):
        client = FakeGitHubClient({})
        with self.assertRaises(BranchListError):
            await client.fetch_repository("o/r")

    async def test_branch_list_network_error_aborts(self):
        client = FakeGitHubClient({(f"{API}/repos/o/r/branches", None): aiohttp.ClientError("offline")})
        with self.assertRaises(BranchListError):
            await client.fetch_repository("o/r")

    async def test_malformed_url_sends_no_request(self):
        client = FakeGitHubClient({})
        with self.assertRaises(MalformedRepoUrlError):
            await client.fetch_repository("not-a-repo")
        self.assertEqual(client.requested, [])

    async def test_details_are_merged_and_results_follow_branch_order(self):
        routes = branch_routes([("main", "A"), ("feat", "B")])
        routes[commits_key("main")] = (200, [commit_payload("A", ["C"]), commit_payload("C")])
        routes[commits_key("feat")] = (200, [commit_payload("B", ["C"]), commit_payload("C")])
        for sha, total in (("A", 10), ("B", 20), ("C", 30)):
            routes[detail_key(sha)] = (200, commit_payload(sha, stats=total))
        # feat finishes long before main
        client = FakeGitHubClient(routes, delays={commits_key("main"): 0.05})

        pairs = await client.fetch_repository("https://github.com/o/r")

        self.assertEqual([p.branch.name for p in pairs], ["main", "feat"])
        self.assertEqual([r.sha for r in pairs[0].commits], ["A", "C"])
        self.assertEqual(pairs[1].commits[0].stats.total, 20)
        # C is shared, its detail is fetched once
        self.assertEqual(client.requested.count(detail_key("C")), 1)
        self.assertIs(pairs[0].commits[1], pairs[1].commits[1])

    async def test_failed_branch_is_dropped(self):
        routes = branch_routes([("main", "A"), ("broken", "X")])
        routes[commits_key("main")] = (200, [commit_payload("A")])
        routes[commits_key("broken")] = (500, None)
        routes[detail_key("A")] = (200, commit_payload("A", stats=1))
        client = FakeGitHubClient(routes)

        pairs = await client.fetch_repository("o/r")
        self.assertEqual([p.branch.name for p in pairs], ["main"])

    async def test_failed_detail_flags_commit(self):
        routes = branch_routes([("main", "A")])
        routes[commits_key("main")] = (200, [commit_payload("A", ["B"]), commit_payload("B")])
        routes[detail_key("A")] = (200, commit_payload("A", ["B"], stats=5))
        routes[detail_key("B")] = asyncio.TimeoutError()
        client = FakeGitHubClient(routes)

        pairs = await client.fetch_repository("o/r")
        self.assertEqual([r.sha for r in pairs[0].commits], ["A", "B"])
        self.assertFalse(pairs[0].commits[0].detail_failed)
        self.assertEqual(pairs[0].commits[0].stats.total, 5)
        self.assertTrue(pairs[0].commits[1].detail_failed)

        layout = calculate_race_layout(pairs, LayoutConfig())
        self.assertEqual([n.sha for n in layout.nodes], ["A"])

    async def test_failed_detail_keeps_lanes_of_older_commits(self):
        history = {
            "A": (["base"], "2024-05-04T00:00:00Z"),
            "F2": (["F1"], "2024-05-03T00:00:00Z"),
            "F1": (["base"], "2024-05-02T00:00:00Z"),
            "base": ([], "2024-05-01T00:00:00Z"),
        }

        def listed(*shas):
            return (200, [commit_payload(sha, *history[sha]) for sha in shas])

        routes = branch_routes([("main", "A"), ("feat", "F2")])
        routes[commits_key("main")] = listed("A", "base")
        routes[commits_key("feat")] = listed("F2", "F1", "base")
        for sha in ("A", "F2", "base"):
            routes[detail_key(sha)] = (200, commit_payload(sha, *history[sha], stats=1))
        routes[detail_key("F1")] = (500, None)
        client = FakeGitHubClient(routes)

        layout = calculate_race_layout(await client.fetch_repository("o/r"), LayoutConfig())
        node_map = layout.node_map()
        self.assertNotIn("F1", node_map)
        self.assertEqual((node_map["base"].column, node_map["base"].branch_name), (1, "feat"))
        self.assertEqual(sorted(n.timeline_index for n in layout.nodes), [0, 1, 2])

    async def test_branch_cap(self):
        names = [(f"b{i}", f"s{i}") for i in range(15)]
        routes = branch_routes(names)
        client = FakeGitHubClient(routes)
        branches = await client.fetch_branches("o", "r")
        self.assertEqual(len(branches), 10)
        self.assertEqual(branches[0].name, "b0")
        self.assertEqual(branches[0].head_sha, "s0")


if __name__ == "__main__":
    unittest.main()
