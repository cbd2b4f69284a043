"""GitLab REST API provider."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from autoupdate.domain import BranchInput, File, PullRequest, PullRequestInput, Repository
from autoupdate.providers.base import PER_PAGE, HTTPProvider, ProviderError, strip_ref_prefix
from autoupdate.terraform.versions import sort_versions

logger = logging.getLogger(__name__)

DEFAULT_GITLAB_URL = "https://gitlab.com/api/v4"


def _project_id(repo: Repository) -> str:
    return quote(repo.full_name, safe="")


class GitLabProvider(HTTPProvider):
    """Provider backed by the GitLab v4 REST API.

    Groups are searched including subgroups; a name that is not a group is
    treated as a user and their owned projects are listed instead.
    """

    name = "gitlab"
    default_base_url = DEFAULT_GITLAB_URL

    def auth_headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self.token}

    def _paginate(self, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page: str | int = 1
        while page:
            query = {**(params or {}), "per_page": PER_PAGE, "page": page}
            resp = self.request("GET", url, params=query)
            items.extend(self.decode(resp, "GET", url, expect_list=True))
            page = resp.headers.get("X-Next-Page", "")
        return items

    def _to_repository(self, project: dict[str, Any], organization: str) -> Repository:
        return Repository(
            id=str(project.get("id", "")),
            name=project["path"],
            organization=organization,
            default_branch=project.get("default_branch") or "main",
            remote_url=project.get("http_url_to_repo", ""),
            ssh_url=project.get("ssh_url_to_repo", ""),
            provider_name=self.name,
        )

    def discover_repositories(self, organization: str) -> list[Repository]:
        try:
            projects = self._paginate(
                f"/groups/{quote(organization, safe='')}/projects",
                params={"include_subgroups": "true", "archived": "false"},
            )
        except ProviderError:
            logger.debug(f"{organization} is not a GitLab group, listing owned projects")
            projects = self._paginate("/projects", params={"owned": "true"})
        with self.expect_shape("project list"):
            return [self._to_repository(p, organization) for p in projects]

    def list_files(self, repo: Repository, suffix: str = "") -> list[File]:
        nodes = self._paginate(
            f"/projects/{_project_id(repo)}/repository/tree",
            params={"recursive": "true", "ref": strip_ref_prefix(repo.default_branch)},
        )
        with self.expect_shape("tree"):
            return [
                File(
                    path=node["path"],
                    object_id=node.get("id", ""),
                    is_dir=node.get("type") == "tree",
                )
                for node in nodes
                if not suffix or node["path"].endswith(suffix)
            ]

    def get_file_content(self, repo: Repository, path: str) -> str:
        resp = self.request(
            "GET",
            f"/projects/{_project_id(repo)}/repository/files/{quote(path, safe='')}/raw",
            params={"ref": strip_ref_prefix(repo.default_branch)},
        )
        return resp.text

    def get_tags(self, repo: Repository) -> list[str]:
        tags = self._paginate(f"/projects/{_project_id(repo)}/repository/tags")
        with self.expect_shape("tag list"):
            return sort_versions([t["name"] for t in tags])

    def has_file(self, repo: Repository, path: str) -> bool:
        return self.exists(
            f"/projects/{_project_id(repo)}/repository/files/{quote(path, safe='')}",
            params={"ref": strip_ref_prefix(repo.default_branch)},
        )

    def create_branch_with_changes(self, repo: Repository, branch: BranchInput) -> None:
        self.request(
            "POST",
            f"/projects/{_project_id(repo)}/repository/commits",
            json={
                "branch": strip_ref_prefix(branch.branch_name),
                "start_branch": strip_ref_prefix(branch.base_branch),
                "commit_message": branch.commit_message,
                "actions": [
                    {"action": "update", "file_path": c.path, "content": c.content}
                    for c in branch.changes
                ],
            },
        )

    def create_pull_request(self, repo: Repository, pr: PullRequestInput) -> PullRequest:
        data = self.request_json(
            "POST",
            f"/projects/{_project_id(repo)}/merge_requests",
            json={
                "source_branch": strip_ref_prefix(pr.source_branch),
                "target_branch": strip_ref_prefix(pr.target_branch),
                "title": pr.title,
                "description": pr.description,
                "remove_source_branch": True,
            },
        )
        with self.expect_shape("merge request"):
            iid = data["iid"]

        if pr.auto_complete:
            try:
                self.request(
                    "PUT",
                    f"/projects/{_project_id(repo)}/merge_requests/{iid}/merge",
                    json={"merge_when_pipeline_succeeds": True},
                )
            except ProviderError as e:
                logger.warning(f"Could not enable auto-merge for !{iid}: {e}")

        return PullRequest(
            id=iid,
            title=data.get("title", pr.title),
            url=data.get("web_url", ""),
            status=data.get("state", "opened"),
        )

    def pull_request_exists(self, repo: Repository, source_branch: str) -> bool:
        requests = self.request_list(
            "GET",
            f"/projects/{_project_id(repo)}/merge_requests",
            params={"state": "opened", "source_branch": strip_ref_prefix(source_branch)},
        )
        return len(requests) > 0
