"""Tests for the GitHub provider using a mocked HTTP transport."""

import json

import httpx
import pytest

from autoupdate.domain import BranchInput, FileChange, PullRequestInput, Repository
from autoupdate.providers.base import ProviderError
from autoupdate.providers.github import GitHubProvider
from autoupdate.terraform.resolver import TagResolver

BASE_URL = "https://api.github.com"


def _provider(handler):
    client = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return GitHubProvider("tok", client=client)


@pytest.fixture
def gh_repo():
    return Repository(name="infra-live", organization="acme", default_branch="main")


class TestAuth:
    def test_bearer_token(self):
        headers = GitHubProvider("secret", client=httpx.Client()).auth_headers()
        assert headers["Authorization"] == "Bearer secret"
        assert headers["Accept"] == "application/vnd.github+json"


class TestDiscoverRepositories:
    def test_lists_org_repositories(self):
        def handler(request):
            assert request.url.path == "/orgs/acme/repos"
            return httpx.Response(
                200,
                json=[
                    {"id": 1, "name": "mod-net", "default_branch": "master"},
                    {"id": 2, "name": "old", "archived": True},
                ],
            )

        repos = _provider(handler).discover_repositories("acme")

        assert [r.name for r in repos] == ["mod-net"]
        assert repos[0].default_branch == "master"
        assert repos[0].organization == "acme"
        assert repos[0].provider_name == "github"

    def test_falls_back_to_user(self):
        def handler(request):
            if request.url.path.startswith("/orgs/"):
                return httpx.Response(404, json={"message": "Not Found"})
            assert request.url.path == "/users/someone/repos"
            return httpx.Response(200, json=[{"id": 3, "name": "dotfiles"}])

        repos = _provider(handler).discover_repositories("someone")
        assert [r.name for r in repos] == ["dotfiles"]
        assert repos[0].default_branch == "main"

    def test_paginates(self):
        pages = []

        def handler(request):
            page = int(request.url.params["page"])
            pages.append(page)
            count = 100 if page == 1 else 1
            return httpx.Response(
                200, json=[{"id": i, "name": f"r{page}-{i}"} for i in range(count)]
            )

        repos = _provider(handler).discover_repositories("acme")

        assert pages == [1, 2]
        assert len(repos) == 101


class TestFiles:
    def test_list_files_filters_suffix(self, gh_repo):
        def handler(request):
            assert request.url.path == "/repos/acme/infra-live/git/trees/main"
            assert request.url.params["recursive"] == "1"
            return httpx.Response(
                200,
                json={
                    "tree": [
                        {"path": "modules", "type": "tree", "sha": "a"},
                        {"path": "main.tf", "type": "blob", "sha": "b"},
                        {"path": "README.md", "type": "blob", "sha": "c"},
                    ]
                },
            )

        files = _provider(handler).list_files(gh_repo, ".tf")

        assert [f.path for f in files] == ["main.tf"]
        assert files[0].object_id == "b"
        assert files[0].is_dir is False

    def test_get_file_content_raw(self, gh_repo):
        def handler(request):
            assert request.url.path == "/repos/acme/infra-live/contents/live/terragrunt.hcl"
            assert request.headers["Accept"] == "application/vnd.github.raw+json"
            assert request.url.params["ref"] == "main"
            return httpx.Response(200, text='app_image = "my-app:1.0.0"\n')

        content = _provider(handler).get_file_content(gh_repo, "live/terragrunt.hcl")
        assert content == 'app_image = "my-app:1.0.0"\n'

    def test_has_file(self, gh_repo):
        def handler(request):
            if request.url.path.endswith("CHANGELOG.md"):
                return httpx.Response(200, json={})
            return httpx.Response(404)

        provider = _provider(handler)
        assert provider.has_file(gh_repo, "CHANGELOG.md") is True
        assert provider.has_file(gh_repo, "HISTORY.md") is False

    def test_server_error_raises(self, gh_repo):
        provider = _provider(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(ProviderError, match="500"):
            provider.get_file_content(gh_repo, "main.tf")

    def test_transport_error_raises(self, gh_repo):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError, match="failed"):
            _provider(handler).list_files(gh_repo)

    def test_timeout_raises(self, gh_repo):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderError, match="timed out"):
            _provider(handler).get_tags(gh_repo)


class TestTags:
    def test_sorted_newest_first(self, gh_repo):
        def handler(request):
            assert request.url.path == "/repos/acme/infra-live/tags"
            return httpx.Response(
                200, json=[{"name": "v1.2.0"}, {"name": "v1.10.0"}, {"name": "v1.9.0"}]
            )

        assert _provider(handler).get_tags(gh_repo) == ["v1.10.0", "v1.9.0", "v1.2.0"]


class TestBranchAndPullRequest:
    def test_create_branch_with_changes(self, gh_repo):
        calls = []

        def handler(request):
            body = json.loads(request.content) if request.content else None
            calls.append((request.method, request.url.path, body))
            path = request.url.path
            if path.endswith("/git/ref/heads/main"):
                return httpx.Response(200, json={"object": {"sha": "base"}})
            if path.endswith("/git/commits/base"):
                return httpx.Response(200, json={"tree": {"sha": "base-tree"}})
            if path.endswith("/git/trees"):
                return httpx.Response(201, json={"sha": "new-tree"})
            if path.endswith("/git/commits"):
                return httpx.Response(201, json={"sha": "new-commit"})
            if path.endswith("/git/refs"):
                return httpx.Response(201, json={})
            return httpx.Response(404)

        branch = BranchInput(
            branch_name="chore/upgrade-mod-net-v2.0.0",
            base_branch="refs/heads/main",
            changes=[FileChange(path="main.tf", content="new")],
            commit_message="chore(deps): upgraded",
        )
        _provider(handler).create_branch_with_changes(gh_repo, branch)

        methods = [(m, p.rsplit("/git/", 1)[1]) for m, p, _ in calls]
        assert methods == [
            ("GET", "ref/heads/main"),
            ("GET", "commits/base"),
            ("POST", "trees"),
            ("POST", "commits"),
            ("POST", "refs"),
        ]
        assert calls[2][2]["base_tree"] == "base-tree"
        assert calls[2][2]["tree"][0] == {
            "path": "main.tf",
            "mode": "100644",
            "type": "blob",
            "content": "new",
        }
        assert calls[3][2] == {
            "message": "chore(deps): upgraded",
            "tree": "new-tree",
            "parents": ["base"],
        }
        assert calls[4][2] == {
            "ref": "refs/heads/chore/upgrade-mod-net-v2.0.0",
            "sha": "new-commit",
        }

    def test_create_pull_request(self, gh_repo):
        def handler(request):
            body = json.loads(request.content)
            assert body["head"] == "chore/x"
            assert body["base"] == "main"
            assert body["body"] == "desc"
            return httpx.Response(
                201,
                json={"number": 42, "title": body["title"], "html_url": "https://gh/pr/42"},
            )

        pr = _provider(handler).create_pull_request(
            gh_repo,
            PullRequestInput(
                source_branch="chore/x", target_branch="main", title="t", description="desc"
            ),
        )

        assert (pr.id, pr.title, pr.url, pr.status) == (42, "t", "https://gh/pr/42", "open")

    def test_pull_request_exists(self, gh_repo):
        def handler(request):
            assert request.url.params["head"] == "acme:chore/x"
            assert request.url.params["state"] == "open"
            return httpx.Response(200, json=[{"number": 1}])

        assert _provider(handler).pull_request_exists(gh_repo, "chore/x") is True

    def test_no_pull_request(self, gh_repo):
        provider = _provider(lambda request: httpx.Response(200, json=[]))
        assert provider.pull_request_exists(gh_repo, "chore/x") is False


class TestMalformedResponses:
    def test_html_body_raises_provider_error(self, gh_repo):
        provider = _provider(lambda request: httpx.Response(200, text="<html>proxy</html>"))
        with pytest.raises(ProviderError, match="invalid JSON"):
            provider.get_tags(gh_repo)

    def test_resolver_treats_html_tags_as_unknown(self, gh_repo):
        def handler(request):
            if request.url.path == "/orgs/acme/repos":
                return httpx.Response(200, json=[{"id": 7, "name": "mod-net"}])
            return httpx.Response(200, text="<html>proxy</html>")

        resolver = TagResolver(_provider(handler), gh_repo)
        assert resolver.resolve("git::https://github.com/acme/mod-net.git") == []

    def test_missing_field_raises_provider_error(self, gh_repo):
        provider = _provider(lambda request: httpx.Response(200, json=[{"commit": {}}]))
        with pytest.raises(ProviderError, match="unexpected tag list response"):
            provider.get_tags(gh_repo)

    def test_object_instead_of_list(self):
        provider = _provider(lambda request: httpx.Response(200, json={"message": "hi"}))
        with pytest.raises(ProviderError, match="did not return a list"):
            provider.discover_repositories("acme")

    def test_pull_request_without_number(self, gh_repo):
        provider = _provider(lambda request: httpx.Response(201, json={"title": "t"}))
        with pytest.raises(ProviderError, match="unexpected pull request response"):
            provider.create_pull_request(
                gh_repo,
                PullRequestInput(
                    source_branch="chore/x", target_branch="main", title="t", description="d"
                ),
            )
