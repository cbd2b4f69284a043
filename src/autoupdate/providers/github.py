"""GitHub REST API provider."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from autoupdate.domain import BranchInput, File, PullRequest, PullRequestInput, Repository
from autoupdate.providers.base import PER_PAGE, HTTPProvider, ProviderError, strip_ref_prefix
from autoupdate.terraform.versions import sort_versions

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_URL = "https://api.github.com"


class GitHubProvider(HTTPProvider):
    """Provider backed by the GitHub v3 REST API.

    File changes are committed through the Git data API (tree + commit + ref)
    so no local clone is needed.
    """

    name = "github"
    default_base_url = DEFAULT_GITHUB_URL

    def auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _paginate(self, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            query = {**(params or {}), "per_page": PER_PAGE, "page": page}
            batch = self.request_list("GET", url, params=query)
            items.extend(batch)
            if len(batch) < PER_PAGE:
                return items
            page += 1

    @staticmethod
    def _repo_path(repo: Repository) -> str:
        return f"/repos/{repo.organization}/{repo.name}"

    def discover_repositories(self, organization: str) -> list[Repository]:
        try:
            data = self._paginate(f"/orgs/{organization}/repos")
        except ProviderError:
            # Not an organization; try it as a user account
            data = self._paginate(f"/users/{organization}/repos")

        with self.expect_shape("repository list"):
            return [
                Repository(
                    id=str(item.get("id", "")),
                    name=item["name"],
                    organization=organization,
                    default_branch=item.get("default_branch") or "main",
                    remote_url=item.get("clone_url", ""),
                    ssh_url=item.get("ssh_url", ""),
                    provider_name=self.name,
                )
                for item in data
                if not item.get("archived", False)
            ]

    def list_files(self, repo: Repository, suffix: str = "") -> list[File]:
        branch = strip_ref_prefix(repo.default_branch)
        data = self.request_json(
            "GET",
            f"{self._repo_path(repo)}/git/trees/{quote(branch, safe='')}",
            params={"recursive": "1"},
        )
        with self.expect_shape("tree"):
            if data.get("truncated"):
                logger.warning(f"Tree listing for {repo.full_name} was truncated by GitHub")

            return [
                File(
                    path=node["path"],
                    object_id=node.get("sha", ""),
                    is_dir=node.get("type") == "tree",
                )
                for node in data.get("tree", [])
                if not suffix or node["path"].endswith(suffix)
            ]

    def get_file_content(self, repo: Repository, path: str) -> str:
        resp = self.request(
            "GET",
            f"{self._repo_path(repo)}/contents/{quote(path)}",
            params={"ref": strip_ref_prefix(repo.default_branch)},
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        return resp.text

    def get_tags(self, repo: Repository) -> list[str]:
        items = self._paginate(f"{self._repo_path(repo)}/tags")
        with self.expect_shape("tag list"):
            return sort_versions([item["name"] for item in items])

    def has_file(self, repo: Repository, path: str) -> bool:
        return self.exists(
            f"{self._repo_path(repo)}/contents/{quote(path)}",
            params={"ref": strip_ref_prefix(repo.default_branch)},
        )

    def create_branch_with_changes(self, repo: Repository, branch: BranchInput) -> None:
        base = strip_ref_prefix(branch.base_branch)
        repo_path = self._repo_path(repo)

        with self.expect_shape("git data"):
            ref = self.request_json("GET", f"{repo_path}/git/ref/heads/{quote(base, safe='')}")
            base_sha = ref["object"]["sha"]
            base_commit = self.request_json("GET", f"{repo_path}/git/commits/{base_sha}")

            tree = self.request_json(
                "POST",
                f"{repo_path}/git/trees",
                json={
                    "base_tree": base_commit["tree"]["sha"],
                    "tree": [
                        {"path": c.path, "mode": "100644", "type": "blob", "content": c.content}
                        for c in branch.changes
                    ],
                },
            )

            commit = self.request_json(
                "POST",
                f"{repo_path}/git/commits",
                json={"message": branch.commit_message, "tree": tree["sha"], "parents": [base_sha]},
            )

            self.request(
                "POST",
                f"{repo_path}/git/refs",
                json={
                    "ref": f"refs/heads/{strip_ref_prefix(branch.branch_name)}",
                    "sha": commit["sha"],
                },
            )

    def create_pull_request(self, repo: Repository, pr: PullRequestInput) -> PullRequest:
        data = self.request_json(
            "POST",
            f"{self._repo_path(repo)}/pulls",
            json={
                "title": pr.title,
                "head": strip_ref_prefix(pr.source_branch),
                "base": strip_ref_prefix(pr.target_branch),
                "body": pr.description,
            },
        )
        if pr.auto_complete:
            logger.info(f"Auto-merge is not enabled automatically on GitHub ({repo.full_name})")
        with self.expect_shape("pull request"):
            return PullRequest(
                id=data["number"],
                title=data.get("title", pr.title),
                url=data.get("html_url", ""),
                status=data.get("state", "open"),
            )

    def pull_request_exists(self, repo: Repository, source_branch: str) -> bool:
        pulls = self.request_list(
            "GET",
            f"{self._repo_path(repo)}/pulls",
            params={
                "state": "open",
                "head": f"{repo.organization}:{strip_ref_prefix(source_branch)}",
            },
        )
        return len(pulls) > 0
