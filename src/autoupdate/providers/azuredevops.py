"""Azure DevOps Services / Server REST API provider."""

from __future__ import annotations

import base64
import logging
from typing import Any
from urllib.parse import quote

from autoupdate.domain import BranchInput, File, PullRequest, PullRequestInput, Repository
from autoupdate.providers.base import HTTPProvider, ProviderError, strip_ref_prefix
from autoupdate.terraform.versions import sort_versions

logger = logging.getLogger(__name__)

DEFAULT_AZURE_DEVOPS_URL = "https://dev.azure.com"
API_VERSION = "7.0"
CONTINUATION_HEADER = "x-ms-continuationtoken"
# oldObjectId for a ref that does not exist yet
EMPTY_OBJECT_ID = "0" * 40


def _heads(branch: str) -> str:
    return f"refs/heads/{strip_ref_prefix(branch)}"


class AzureDevOpsProvider(HTTPProvider):
    """Provider backed by the Azure DevOps Git REST API.

    An organization holds projects, and each project holds repositories;
    ``discover_repositories`` walks every project the token can see. Commits
    are made through the pushes API, so no clone is needed.
    """

    name = "azuredevops"
    default_base_url = DEFAULT_AZURE_DEVOPS_URL

    def auth_headers(self) -> dict[str, str]:
        # Personal access tokens use Basic auth with an empty user name
        encoded = base64.b64encode(f":{self.token}".encode()).decode()
        return {"Authorization": f"Basic {encoded}"}

    def _collect(self, url: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Gather ``value`` arrays across continuation-token pages."""
        items: list[dict[str, Any]] = []
        token = ""
        while True:
            query = {**(params or {}), "api-version": API_VERSION}
            if token:
                query["continuationToken"] = token
            resp = self.request("GET", url, params=query)
            data = self.decode(resp, "GET", url)
            with self.expect_shape("list"):
                items.extend(data["value"])
            token = resp.headers.get(CONTINUATION_HEADER, "")
            if not token:
                return items

    @staticmethod
    def _repo_path(repo: Repository) -> str:
        scope = quote(repo.organization, safe="")
        if repo.project:
            scope += "/" + quote(repo.project, safe="")
        return f"/{scope}/_apis/git/repositories/{quote(repo.id or repo.name, safe='')}"

    @staticmethod
    def _on_default_branch(repo: Repository) -> dict[str, str]:
        return {
            "versionDescriptor.version": strip_ref_prefix(repo.default_branch),
            "versionDescriptor.versionType": "branch",
        }

    def discover_repositories(self, organization: str) -> list[Repository]:
        org = quote(organization, safe="")
        repos: list[Repository] = []
        for project in self._collect(f"/{org}/_apis/projects"):
            with self.expect_shape("project list"):
                project_name = project["name"]
            items = self._collect(f"/{org}/{quote(project_name, safe='')}/_apis/git/repositories")
            with self.expect_shape("repository list"):
                repos.extend(
                    Repository(
                        id=item.get("id", ""),
                        name=item["name"],
                        organization=organization,
                        default_branch=strip_ref_prefix(item.get("defaultBranch") or "main"),
                        remote_url=item.get("remoteUrl", ""),
                        ssh_url=item.get("sshUrl", ""),
                        provider_name=self.name,
                        project=project_name,
                    )
                    for item in items
                    if not item.get("isDisabled", False)
                )
        return repos

    def list_files(self, repo: Repository, suffix: str = "") -> list[File]:
        items = self._collect(
            f"{self._repo_path(repo)}/items",
            params={"recursionLevel": "Full", **self._on_default_branch(repo)},
        )
        files: list[File] = []
        with self.expect_shape("item list"):
            for item in items:
                # Item paths are rooted ("/modules/net/main.tf"); the root itself is "/"
                path = item["path"].lstrip("/")
                if not path or (suffix and not path.endswith(suffix)):
                    continue
                is_dir = item.get("isFolder", False) or item.get("gitObjectType") == "tree"
                files.append(File(path=path, object_id=item.get("objectId", ""), is_dir=is_dir))
        return files

    def get_file_content(self, repo: Repository, path: str) -> str:
        resp = self.request(
            "GET",
            f"{self._repo_path(repo)}/items",
            params={
                "path": "/" + path.lstrip("/"),
                "$format": "octetStream",
                "api-version": API_VERSION,
                **self._on_default_branch(repo),
            },
        )
        return resp.text

    def get_tags(self, repo: Repository) -> list[str]:
        refs = self._collect(f"{self._repo_path(repo)}/refs", params={"filter": "tags/"})
        with self.expect_shape("tag list"):
            return sort_versions([ref["name"].removeprefix("refs/tags/") for ref in refs])

    def has_file(self, repo: Repository, path: str) -> bool:
        return self.exists(
            f"{self._repo_path(repo)}/items",
            params={
                "path": "/" + path.lstrip("/"),
                "api-version": API_VERSION,
                **self._on_default_branch(repo),
            },
        )

    def _branch_head(self, repo: Repository, branch: str) -> str:
        name = _heads(branch)
        # The filter is a prefix match, so "heads/main" also returns "heads/main-old"
        refs = self._collect(
            f"{self._repo_path(repo)}/refs", params={"filter": name.removeprefix("refs/")}
        )
        with self.expect_shape("branch"):
            for ref in refs:
                if ref["name"] == name:
                    return ref["objectId"]
        raise ProviderError(f"{self.name}: branch {name} not found in {repo.full_name}")

    def create_branch_with_changes(self, repo: Repository, branch: BranchInput) -> None:
        base_commit = self._branch_head(repo, branch.base_branch)
        self.request(
            "POST",
            f"{self._repo_path(repo)}/pushes",
            params={"api-version": API_VERSION},
            json={
                "refUpdates": [
                    {"name": _heads(branch.branch_name), "oldObjectId": EMPTY_OBJECT_ID}
                ],
                "commits": [
                    {
                        "comment": branch.commit_message,
                        "parents": [base_commit],
                        "changes": [
                            {
                                "changeType": change.change_type,
                                "item": {"path": "/" + change.path.lstrip("/")},
                                "newContent": {
                                    "content": base64.b64encode(change.content.encode()).decode(),
                                    "contentType": "base64encoded",
                                },
                            }
                            for change in branch.changes
                        ],
                    }
                ],
            },
        )

    def create_pull_request(self, repo: Repository, pr: PullRequestInput) -> PullRequest:
        url = f"{self._repo_path(repo)}/pullrequests"
        data = self.request_json(
            "POST",
            url,
            params={"api-version": API_VERSION},
            json={
                "sourceRefName": _heads(pr.source_branch),
                "targetRefName": _heads(pr.target_branch),
                "title": pr.title,
                "description": pr.description,
            },
        )
        with self.expect_shape("pull request"):
            pr_id = data["pullRequestId"]
            creator = (data.get("createdBy") or {}).get("id", "")

        if pr.auto_complete:
            self._enable_auto_complete(repo, pr_id, creator)

        web_url = f"{repo.remote_url}/pullrequest/{pr_id}" if repo.remote_url else ""
        return PullRequest(
            id=pr_id,
            title=data.get("title", pr.title),
            url=web_url or data.get("url", ""),
            status=data.get("status", "active"),
        )

    def _enable_auto_complete(self, repo: Repository, pr_id: int, creator: str) -> None:
        if not creator:
            logger.warning(f"Could not enable auto-complete for PR {pr_id}: no creator id")
            return
        try:
            self.request(
                "PATCH",
                f"{self._repo_path(repo)}/pullrequests/{pr_id}",
                params={"api-version": API_VERSION},
                json={"autoCompleteSetBy": {"id": creator}},
            )
        except ProviderError as e:
            logger.warning(f"Could not enable auto-complete for PR {pr_id}: {e}")

    def pull_request_exists(self, repo: Repository, source_branch: str) -> bool:
        data = self.request_json(
            "GET",
            f"{self._repo_path(repo)}/pullrequests",
            params={
                "searchCriteria.sourceRefName": _heads(source_branch),
                "searchCriteria.status": "active",
                "api-version": API_VERSION,
            },
        )
        with self.expect_shape("pull request list"):
            return len(data["value"]) > 0
