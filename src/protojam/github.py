import base64
import re
from urllib.parse import urlparse

import httpx

from protojam import config

_NAME_PATTERN = re.compile(r"^[\w.\-]+$")


class GitHubError(Exception):
    def __init__(self, message: str, status_code: int = 502, host_status: int | None = None):
        self.message = message
        self.status_code = status_code
        self.host_status = host_status
        super().__init__(message)


class AccessError(GitHubError):
    """Credential invalid or under-scoped, or the target is missing."""

    @property
    def is_permission_problem(self) -> bool:
        return self.host_status in (403, 404)


def parse_repository(value: str) -> tuple[str, str]:
    """Accept ``owner/repo`` or a github.com URL."""
    value = value.strip().rstrip("/")
    if value.endswith(".git"):
        value = value[:-4]

    if "://" in value or value.startswith(("github.com", "www.github.com")):
        if "://" not in value:
            value = f"https://{value}"
        parsed = urlparse(value)
        if parsed.hostname not in ("github.com", "www.github.com"):
            raise GitHubError("Not a GitHub URL", status_code=400)
        parts = [p for p in parsed.path.strip("/").split("/") if p]
    else:
        parts = [p for p in value.split("/") if p]
        if len(parts) != 2:
            raise GitHubError("Invalid repository, expected owner/repo", status_code=400)

    if len(parts) < 2:
        raise GitHubError("Invalid GitHub repository URL, expected github.com/owner/repo", status_code=400)

    owner, repo = parts[0], parts[1]
    if not _NAME_PATTERN.match(owner) or not _NAME_PATTERN.match(repo):
        raise GitHubError("Invalid owner or repo name", status_code=400)

    return owner, repo


def _api(path: str) -> str:
    return config.get_config().github_api_url.rstrip("/") + path


def _make_headers(token: str | None) -> dict[str, str]:
    headers = {"Accept": "application/vnd.github.v3+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def _request(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    token: str | None,
    **kwargs,
) -> httpx.Response:
    try:
        return await client.request(method, _api(path), headers=_make_headers(token), **kwargs)
    except httpx.HTTPError as exc:
        raise GitHubError(f"Failed to connect to GitHub: {exc}") from exc


def _error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    message = data.get("message", "") if isinstance(data, dict) else ""
    errors = data.get("errors") if isinstance(data, dict) else None
    if isinstance(errors, list):
        extra = "; ".join(
            e.get("message", "") if isinstance(e, dict) else str(e) for e in errors
        ).strip("; ")
        if extra:
            message = f"{message} ({extra})"
    return message or resp.text[:200]


def _handle_error(resp: httpx.Response, context: str) -> None:
    if resp.status_code < 400:
        return
    status = resp.status_code
    if status == 401:
        raise AccessError("Invalid authentication token.", status_code=401, host_status=status)
    if status == 403:
        if "rate limit" in resp.text.lower():
            raise GitHubError("GitHub API rate limit exceeded", status_code=429, host_status=status)
        raise AccessError(
            'Insufficient permissions. Please ensure your token has the "repo" scope.',
            status_code=403,
            host_status=status,
        )
    if status == 404:
        raise AccessError(f"{context}: not found or inaccessible", status_code=404, host_status=status)
    if status == 422:
        raise GitHubError(f"{context}: {_error_detail(resp)}", status_code=422, host_status=status)
    raise GitHubError(
        f"GitHub API error ({status}): {_error_detail(resp)}", status_code=502, host_status=status
    )


async def fetch_repository(client: httpx.AsyncClient, owner: str, repo: str, token: str | None) -> dict:
    resp = await _request(client, "GET", f"/repos/{owner}/{repo}", token)
    _handle_error(resp, f"Repository {owner}/{repo}")
    return resp.json()


async def list_repositories(client: httpx.AsyncClient, token: str | None) -> list[dict]:
    resp = await _request(
        client, "GET", "/user/repos", token, params={"sort": "updated", "per_page": "100"}
    )
    _handle_error(resp, "Repositories")
    return resp.json()


async def fetch_contents(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    path: str,
    token: str | None,
) -> list[dict] | dict:
    resp = await _request(client, "GET", f"/repos/{owner}/{repo}/contents/{path}", token)
    _handle_error(resp, f"Contents of '{path or '/'}'")
    return resp.json()


async def fetch_tree(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    tree_sha: str,
    token: str | None,
    recursive: bool = False,
) -> list[dict]:
    params = {"recursive": "1"} if recursive else None
    resp = await _request(client, "GET", f"/repos/{owner}/{repo}/git/trees/{tree_sha}", token, params=params)
    _handle_error(resp, "Repository tree")
    return resp.json().get("tree", [])


def decode_content(data: dict) -> str | None:
    """Inline content of a contents-API file entry, or None when omitted."""
    content = data.get("content")
    if content is None:
        return None
    if data.get("encoding") == "base64":
        return base64.b64decode(content).decode("utf-8", errors="replace")
    return content


async def fetch_branch_head(
    client: httpx.AsyncClient, owner: str, repo: str, branch: str, token: str | None
) -> str:
    resp = await _request(client, "GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}", token)
    _handle_error(resp, f"Branch '{branch}'")
    return resp.json()["object"]["sha"]


async def fetch_commit_tree(
    client: httpx.AsyncClient, owner: str, repo: str, commit_sha: str, token: str | None
) -> str:
    resp = await _request(client, "GET", f"/repos/{owner}/{repo}/git/commits/{commit_sha}", token)
    _handle_error(resp, f"Commit {commit_sha}")
    return resp.json()["tree"]["sha"]


async def create_tree(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    base_tree: str,
    entries: list[dict],
    token: str | None,
) -> str:
    resp = await _request(
        client,
        "POST",
        f"/repos/{owner}/{repo}/git/trees",
        token,
        json={"base_tree": base_tree, "tree": entries},
    )
    _handle_error(resp, "Tree")
    return resp.json()["sha"]


async def create_commit(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    message: str,
    tree_sha: str,
    parent_sha: str,
    token: str | None,
) -> str:
    resp = await _request(
        client,
        "POST",
        f"/repos/{owner}/{repo}/git/commits",
        token,
        json={"message": message, "tree": tree_sha, "parents": [parent_sha]},
    )
    _handle_error(resp, "Commit")
    return resp.json()["sha"]


async def create_ref(
    client: httpx.AsyncClient, owner: str, repo: str, branch: str, sha: str, token: str | None
) -> None:
    resp = await _request(
        client,
        "POST",
        f"/repos/{owner}/{repo}/git/refs",
        token,
        json={"ref": f"refs/heads/{branch}", "sha": sha},
    )
    _handle_error(resp, f"Branch '{branch}'")


async def update_ref(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    branch: str,
    sha: str,
    token: str | None,
    force: bool = True,
) -> None:
    resp = await _request(
        client,
        "PATCH",
        f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
        token,
        json={"sha": sha, "force": force},
    )
    _handle_error(resp, f"Branch '{branch}'")


async def create_pull_request(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    title: str,
    body: str,
    head: str,
    base: str,
    token: str | None,
) -> dict:
    resp = await _request(
        client,
        "POST",
        f"/repos/{owner}/{repo}/pulls",
        token,
        json={"title": title, "body": body, "head": head, "base": base},
    )
    _handle_error(resp, "Pull request")
    return resp.json()
