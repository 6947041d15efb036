import enum
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone

import httpx

from protojam import config, github, models

logger = logging.getLogger(__name__)

BLOB_MODE = "100644"


class PublishStep(str, enum.Enum):
    IDLE = "idle"
    VALIDATING_REPO = "validating_repo"
    RESOLVING_BASE_BRANCH = "resolving_base_branch"
    BUILDING_TREE = "building_tree"
    CREATING_COMMIT = "creating_commit"
    UPDATING_BRANCH = "updating_branch"
    CREATING_PR = "creating_pr"
    DONE = "done"
    ERRORED = "errored"


class PublishError(Exception):
    """A failed publish step, with the host status and the original cause."""

    default_status = 502

    def __init__(
        self,
        message: str,
        step: PublishStep,
        host_status: int | None = None,
        cause: BaseException | None = None,
    ):
        self.message = message
        self.step = step
        self.host_status = host_status
        self.cause = cause
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.default_status


class RepoAccessError(PublishError):
    @property
    def status_code(self) -> int:
        return self.host_status if self.host_status in (401, 403, 404) else self.default_status


class BaseBranchError(PublishError):
    default_status = 404


class EmptyChangeSetError(PublishError):
    default_status = 422


class DuplicatePRError(PublishError):
    default_status = 409


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def generate_branch_name(
    plan: models.IntegrationPlan,
    now: datetime | None = None,
    prefix: str | None = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    prefix = prefix or config.get_config().branch_prefix
    slug = slugify(plan.route or plan.title) or "prototype"
    stamp = f"{now:%Y%m%d-%H%M%S}-{now.microsecond // 1000:03d}"
    return f"{prefix}-{slug}-{stamp}".lower()


def _publishable(f: models.FileChange) -> bool:
    return bool(f.path and f.content)


def tree_entries(files: list[models.FileChange]) -> list[dict]:
    entries = []
    for f in files:
        if not _publishable(f):
            logger.warning(f"Skipping invalid file for tree: {f.path or '<no path>'}")
            continue
        entries.append({"path": f.path, "mode": BLOB_MODE, "type": "blob", "content": f.content})
    return entries


def render_pr_body(plan: models.IntegrationPlan) -> str:
    lines = [plan.pull_request_description or plan.description, "", "## Integration Details", ""]
    if plan.route:
        lines.append(f"- **Route**: `{plan.route}`")
    lines.append(f"- **Target Directory**: `{plan.target_directory}`")
    lines.append(f"- **Files**: {sum(1 for f in plan.files if _publishable(f))}")
    if plan.integration_steps:
        lines += ["", "## Changes Overview", ""]
        for number, step in enumerate(plan.integration_steps, start=1):
            lines += [f"### {number}. {step}", ""]
    return "\n".join(lines).rstrip() + "\n"


def _already_exists(exc: github.GitHubError) -> bool:
    return exc.host_status == 422 and "already exists" in exc.message.lower()


class Publisher:
    """Turn an ``IntegrationPlan`` into a branch, a commit and a pull request.

    Steps run strictly in order and nothing is retried: the first failure
    moves the publisher to ``ERRORED`` and raises a ``PublishError``. A fresh
    attempt always picks a fresh branch name.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        owner: str,
        repo: str,
        token: str | None,
        on_step: Callable[[PublishStep], None] | None = None,
    ):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.token = token
        self.on_step = on_step
        self.step = PublishStep.IDLE

    def _enter(self, step: PublishStep) -> None:
        self.step = step
        logger.info(f"Publish {self.owner}/{self.repo}: {step.value}")
        if self.on_step:
            self.on_step(step)

    def _fail(self, error: PublishError) -> PublishError:
        logger.error(f"Publish failed at {error.step.value}: {error.message}")
        self._enter(PublishStep.ERRORED)
        return error

    def _wrap(self, exc: github.GitHubError, action: str) -> PublishError:
        return self._fail(
            PublishError(f"{action}. {exc.message}", self.step, exc.host_status, exc)
        )

    async def _validate_repo(self) -> None:
        self._enter(PublishStep.VALIDATING_REPO)
        try:
            await github.fetch_repository(self.client, self.owner, self.repo, self.token)
        except github.AccessError as exc:
            if exc.host_status == 404:
                message = f"Repository {self.owner}/{self.repo} not found or inaccessible"
            else:
                message = exc.message
            raise self._fail(RepoAccessError(message, self.step, exc.host_status, exc)) from exc
        except github.GitHubError as exc:
            raise self._wrap(exc, "Failed to validate repository") from exc

    async def _resolve_base(self, base_branch: str) -> tuple[str, str]:
        self._enter(PublishStep.RESOLVING_BASE_BRANCH)
        try:
            base_sha = await github.fetch_branch_head(
                self.client, self.owner, self.repo, base_branch, self.token
            )
        except github.AccessError as exc:
            if exc.host_status == 404:
                raise self._fail(
                    BaseBranchError(
                        f"Branch '{base_branch}' not found. Please verify the base branch name.",
                        self.step,
                        exc.host_status,
                        exc,
                    )
                ) from exc
            raise self._wrap(exc, "Failed to resolve base branch") from exc
        except github.GitHubError as exc:
            raise self._wrap(exc, "Failed to resolve base branch") from exc

        try:
            base_tree = await github.fetch_commit_tree(
                self.client, self.owner, self.repo, base_sha, self.token
            )
        except github.GitHubError as exc:
            raise self._wrap(exc, "Failed to read base commit") from exc
        return base_sha, base_tree

    async def _build_tree(self, plan: models.IntegrationPlan, base_tree: str) -> str:
        self._enter(PublishStep.BUILDING_TREE)
        entries = tree_entries(plan.files)
        if not entries:
            raise self._fail(
                EmptyChangeSetError("No valid files to publish in this plan", self.step)
            )
        logger.info(f"Tree: {len(entries)} of {len(plan.files)} files")
        try:
            return await github.create_tree(
                self.client, self.owner, self.repo, base_tree, entries, self.token
            )
        except github.GitHubError as exc:
            raise self._wrap(exc, "Failed to create tree") from exc

    async def _commit(self, plan: models.IntegrationPlan, tree_sha: str, parent_sha: str) -> str:
        self._enter(PublishStep.CREATING_COMMIT)
        try:
            return await github.create_commit(
                self.client, self.owner, self.repo, plan.title, tree_sha, parent_sha, self.token
            )
        except github.GitHubError as exc:
            raise self._wrap(exc, "Failed to create commit") from exc

    async def _point_branch(self, branch: str, commit_sha: str) -> None:
        self._enter(PublishStep.UPDATING_BRANCH)
        try:
            await github.create_ref(self.client, self.owner, self.repo, branch, commit_sha, self.token)
            return
        except github.GitHubError as exc:
            if not _already_exists(exc):
                raise self._wrap(exc, "Failed to create branch") from exc
            logger.warning(f"Branch {branch} already exists, force-updating it")

        try:
            await github.update_ref(self.client, self.owner, self.repo, branch, commit_sha, self.token)
        except github.GitHubError as exc:
            raise self._wrap(exc, "Failed to update existing branch") from exc

    async def _open_pull_request(
        self, plan: models.IntegrationPlan, branch: str, base_branch: str
    ) -> dict:
        self._enter(PublishStep.CREATING_PR)
        marker = config.get_config().pr_title_marker
        title = f"{marker} {plan.pull_request_title or plan.title}".strip()
        try:
            return await github.create_pull_request(
                self.client,
                self.owner,
                self.repo,
                title,
                render_pr_body(plan),
                branch,
                base_branch,
                self.token,
            )
        except github.GitHubError as exc:
            if _already_exists(exc):
                raise self._fail(
                    DuplicatePRError(
                        f"A pull request already exists for branch '{branch}'. "
                        "Resolve the existing pull request first.",
                        self.step,
                        exc.host_status,
                        exc,
                    )
                ) from exc
            raise self._wrap(exc, "Failed to create pull request") from exc

    async def publish(
        self,
        plan: models.IntegrationPlan,
        base_branch: str | None = None,
        now: datetime | None = None,
    ) -> models.PublishResult:
        base_branch = base_branch or config.get_config().github_pr_branch
        if not plan.files:
            raise self._fail(
                EmptyChangeSetError("The integration plan contains no files", self.step)
            )

        await self._validate_repo()
        base_sha, base_tree = await self._resolve_base(base_branch)
        branch = generate_branch_name(plan, now)
        tree_sha = await self._build_tree(plan, base_tree)
        commit_sha = await self._commit(plan, tree_sha, base_sha)
        await self._point_branch(branch, commit_sha)
        pr = await self._open_pull_request(plan, branch, base_branch)

        self._enter(PublishStep.DONE)
        logger.info(f"Opened pull request #{pr['number']} from {branch}")
        return models.PublishResult(url=pr["html_url"], number=pr["number"], branch=branch)
