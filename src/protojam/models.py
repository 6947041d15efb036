from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PrototypeFile(BaseModel):
    path: str
    content: str


class FileEntry(BaseModel):
    path: str
    type: Literal["file", "directory"]
    content: str | None = None


class TreeNode(BaseModel):
    name: str
    path: str
    type: Literal["file", "directory"]
    children: list["TreeNode"] | None = None
    is_target_location: bool = False
    is_original_prototype_path: bool = False


class DependencyFinding(BaseModel):
    package: str
    existing_alternative: str | None = None


class ProjectStructureAnalysis(BaseModel):
    frontend_directory: str | None = None
    framework: str = "unknown"
    styling: str = "unknown"
    state_management: str = "unknown"
    typescript: bool = False
    directories: dict[str, str | None] = {}


class FileChange(BaseModel):
    path: str
    content: str
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    original_path: str | None = None
    changes: list[str] | None = None


class IntegrationPlan(BaseModel):
    title: str
    description: str
    target_directory: str
    integration_steps: list[str] = []
    files: list[FileChange] = []
    route: str | None = None
    pull_request_title: str | None = None
    pull_request_description: str | None = None


# Shape the LLM is asked to return. Field names follow the JSON it emits.

class _LLMModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PlannedFile(_LLMModel):
    path: str
    content: str | None = None
    original_path: str | None = Field(default=None, alias="originalPath")
    changes: list[str] | None = None

    @model_validator(mode="after")
    def _has_body(self) -> "PlannedFile":
        if self.content is None and not self.changes:
            raise ValueError(f"file '{self.path}' has neither content nor changes")
        return self


class PlannedPullRequest(_LLMModel):
    title: str
    description: str
    route: str
    files: list[PlannedFile]


class PlanResponse(_LLMModel):
    title: str
    description: str
    target_directory: str = Field(alias="targetDirectory")
    integration_steps: list[str] = Field(alias="integrationSteps")
    pull_request: PlannedPullRequest = Field(alias="pullRequest")


class UploadState(BaseModel):
    status: Literal["idle", "uploading", "processing", "success", "error"] = "idle"
    message: str | None = None
    phase: Literal["analyzing", "generating", "publishing"] | None = None


class AnalysisResponse(BaseModel):
    plan: IntegrationPlan
    analysis: ProjectStructureAnalysis
    dependencies: list[DependencyFinding]
    tree: list[TreeNode]


class PublishRequest(BaseModel):
    repository: str
    plan: IntegrationPlan
    base_branch: str | None = None


class PublishResult(BaseModel):
    url: str
    number: int
    branch: str


class Repository(BaseModel):
    full_name: str
    description: str | None = None
    private: bool = False
    updated_at: str | None = None


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
    step: str | None = None
