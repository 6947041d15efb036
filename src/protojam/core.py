import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from protojam import archive, config, github, llm, models, planner, publisher, snapshot, tree

logger = logging.getLogger(__name__)


@dataclass
class IntegrationSession:
    """State for one user session, passed explicitly to every pipeline stage."""

    token: str | None
    owner: str
    repo: str
    base_branch: str = field(default_factory=lambda: config.get_config().github_pr_branch)
    on_progress: Callable[[models.UploadState], None] | None = None

    prototype_files: list[models.PrototypeFile] = field(default_factory=list)
    structure: list[models.FileEntry] = field(default_factory=list)
    plan: models.IntegrationPlan | None = None
    analysis: models.ProjectStructureAnalysis | None = None
    dependencies: list[models.DependencyFinding] = field(default_factory=list)
    tree_nodes: list[models.TreeNode] = field(default_factory=list)
    state: models.UploadState = field(default_factory=models.UploadState)

    @classmethod
    def for_repository(cls, repository: str, token: str | None = None, **kwargs) -> "IntegrationSession":
        owner, repo = github.parse_repository(repository)
        return cls(token=token or config.get_config().github_token, owner=owner, repo=repo, **kwargs)

    @property
    def repo_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _set_state(self, status: str, message: str | None = None, phase: str | None = None) -> None:
        self.state = models.UploadState(status=status, message=message, phase=phase)
        logger.info(f"[{self.repo_name}] {status}{f' ({phase})' if phase else ''}: {message or ''}")
        if self.on_progress:
            self.on_progress(self.state)

    def reset(self) -> None:
        self.prototype_files = []
        self.structure = []
        self._discard_plan()
        self.state = models.UploadState()

    def _discard_plan(self) -> None:
        self.plan = None
        self.analysis = None
        self.dependencies = []
        self.tree_nodes = []

    def ingest(self, uploads: list[tuple[str, bytes]]) -> list[models.PrototypeFile]:
        self._set_state("uploading")
        try:
            files = archive.ingest_files(uploads)
        except archive.IngestError as exc:
            self._set_state("error", f"Failed to process files. {exc.message}")
            raise
        self.prototype_files = files
        self._discard_plan()
        return files

    async def load_snapshot(self, client: httpx.AsyncClient) -> list[models.FileEntry]:
        try:
            self.structure = await snapshot.fetch_snapshot(client, self.owner, self.repo, self.token)
        except github.GitHubError as exc:
            self._set_state("error", exc.message)
            raise
        self._set_state("success", 'Files uploaded successfully. Click "Analyze Integration" to proceed.')
        return self.structure

    async def analyze(self) -> models.IntegrationPlan:
        self._discard_plan()
        self._set_state("processing", "Analyzing codebases...", "analyzing")
        self._set_state("processing", "Generating integration plan...", "generating")
        try:
            plan, analysis, findings = await planner.generate_plan(
                self.repo_name, self.prototype_files, self.structure
            )
        except llm.PlanGenerationError as exc:
            self._set_state("error", exc.message)
            raise

        self.plan = plan
        self.analysis = analysis
        self.dependencies = findings
        self.tree_nodes = tree.build_tree(self.structure, plan.files)
        self._set_state("success", "Analysis complete! Review the integration plan below.")
        return plan

    async def publish(self, client: httpx.AsyncClient) -> models.PublishResult:
        if self.plan is None:
            raise publisher.EmptyChangeSetError(
                "No integration plan to publish. Analyze the prototype first.",
                publisher.PublishStep.IDLE,
            )
        self._set_state("processing", "Creating pull request...", "publishing")
        pub = publisher.Publisher(client, self.owner, self.repo, self.token)
        try:
            result = await pub.publish(self.plan, self.base_branch)
        except publisher.PublishError as exc:
            self._set_state("error", f"Failed to create pull request. {exc.message}")
            raise
        self._set_state("success", "Pull request created successfully!")
        return result


def github_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=config.get_config().github_timeout)


async def analyze_prototype(
    repository: str,
    uploads: list[tuple[str, bytes]],
    token: str | None = None,
) -> IntegrationSession:
    session = IntegrationSession.for_repository(repository, token)
    session.ingest(uploads)
    async with github_client() as client:
        await session.load_snapshot(client)
    await session.analyze()
    return session


async def publish_plan(
    repository: str,
    plan: models.IntegrationPlan,
    base_branch: str | None = None,
    token: str | None = None,
) -> models.PublishResult:
    session = IntegrationSession.for_repository(repository, token)
    if base_branch:
        session.base_branch = base_branch
    session.plan = plan
    async with github_client() as client:
        return await session.publish(client)


async def list_repositories(token: str | None = None) -> list[models.Repository]:
    token = token or config.get_config().github_token
    async with github_client() as client:
        data = await github.list_repositories(client, token)
    return [models.Repository.model_validate(item) for item in data]
