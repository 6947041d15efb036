import logging

import httpx

from protojam import config, github, models

logger = logging.getLogger(__name__)

_TREE_TYPES = {"blob": "file", "tree": "directory"}
_CONTENTS_TYPES = {"file": "file", "dir": "directory"}


def _entries_from_contents(listing: list[dict]) -> list[models.FileEntry]:
    entries = []
    for item in listing:
        kind = _CONTENTS_TYPES.get(item.get("type", ""))
        if kind is None:
            # symlinks and submodules carry no browsable content
            continue
        content = github.decode_content(item) if kind == "file" else None
        entries.append(models.FileEntry(path=item["path"], type=kind, content=content))
    return entries


def _entries_from_tree(tree: list[dict]) -> list[models.FileEntry]:
    return [
        models.FileEntry(path=item["path"], type=_TREE_TYPES[item["type"]])
        for item in tree
        if item.get("type") in _TREE_TYPES
    ]


async def _fill_manifests(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    entries: list[models.FileEntry],
    token: str | None,
) -> None:
    wanted = set(config.get_config().manifest_files)
    for entry in entries:
        if entry.type != "file" or entry.content is not None or entry.path not in wanted:
            continue
        try:
            data = await github.fetch_contents(client, owner, repo, entry.path, token)
        except github.GitHubError as exc:
            logger.warning(f"Content of {entry.path} not available: {exc.message}")
            continue
        if isinstance(data, dict):
            entry.content = github.decode_content(data)


async def fetch_snapshot(
    client: httpx.AsyncClient,
    owner: str,
    repo: str,
    token: str | None,
    recursive: bool | None = None,
) -> list[models.FileEntry]:
    """Read the target repository's file listing as a flat ``FileEntry`` list.

    The root contents listing is used by default; with ``recursive`` the full
    Git tree of the default branch is expanded instead. Files listed in
    ``manifest_files`` get their content fetched when the listing omits it.
    """
    if recursive is None:
        recursive = config.get_config().snapshot_recursive

    try:
        if recursive:
            info = await github.fetch_repository(client, owner, repo, token)
            branch = info.get("default_branch")
            if not branch:
                return []
            head = await github.fetch_branch_head(client, owner, repo, branch, token)
            tree_sha = await github.fetch_commit_tree(client, owner, repo, head, token)
            tree = await github.fetch_tree(client, owner, repo, tree_sha, token, recursive=True)
            entries = _entries_from_tree(tree)
        else:
            listing = await github.fetch_contents(client, owner, repo, "", token)
            entries = _entries_from_contents(listing if isinstance(listing, list) else [])
    except github.AccessError as exc:
        if exc.is_permission_problem:
            raise github.AccessError(
                "Unable to access repository. Please ensure your token has the "
                '"repo" scope and you have access to this repository.',
                status_code=exc.status_code,
                host_status=exc.host_status,
            ) from exc
        raise
    except github.GitHubError as exc:
        raise github.GitHubError(
            "Failed to analyze repository structure. Please try again.",
            status_code=exc.status_code,
            host_status=exc.host_status,
        ) from exc

    await _fill_manifests(client, owner, repo, entries, token)
    logger.info(f"Snapshot of {owner}/{repo}: {len(entries)} entries")
    return entries
