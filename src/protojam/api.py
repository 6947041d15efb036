import logging

from fastapi import FastAPI, File, Form, Header, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from protojam import archive, core, github, llm, models, publisher

logger = logging.getLogger(__name__)


app = FastAPI(title="ProtoJam Prototype Integrator")


def _error(status_code: int, message: str, step: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=models.ErrorResponse(message=message, step=step).model_dump(exclude_none=True),
    )


@app.exception_handler(archive.IngestError)
async def ingest_error_handler(request: Request, exc: archive.IngestError) -> JSONResponse:
    logger.warning(f"Ingest error: {exc}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(github.GitHubError)
async def github_error_handler(request: Request, exc: github.GitHubError) -> JSONResponse:
    logger.error(f"GitHub error: {exc}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(llm.PlanGenerationError)
async def plan_error_handler(request: Request, exc: llm.PlanGenerationError) -> JSONResponse:
    logger.error(f"Plan generation error: {exc}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(publisher.PublishError)
async def publish_error_handler(request: Request, exc: publisher.PublishError) -> JSONResponse:
    logger.error(f"Publish error at {exc.step.value}: {exc}")
    return _error(exc.status_code, f"Failed to create pull request. {exc.message}", exc.step.value)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = "; ".join(
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in exc.errors()
    )
    return _error(422, messages)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error")
    return _error(500, "Internal server error")


@app.get("/")
async def root():
    return {
        "service": "ProtoJam Prototype Integrator",
        "usage": (
            "POST /analyze (multipart: repository, files) to get an integration plan, "
            "then POST /publish with {\"repository\", \"plan\"} to open a pull request"
        ),
        "docs": "/docs",
    }


@app.get("/repositories", response_model=list[models.Repository])
async def repositories(
    x_github_token: str | None = Header(default=None),
) -> list[models.Repository]:
    return await core.list_repositories(x_github_token)


@app.post("/analyze", response_model=models.AnalysisResponse)
async def analyze(
    repository: str = Form(...),
    files: list[UploadFile] = File(...),
    x_github_token: str | None = Header(default=None),
) -> models.AnalysisResponse:
    uploads = [(f.filename or "upload", await f.read()) for f in files]
    session = await core.analyze_prototype(repository, uploads, x_github_token)
    return models.AnalysisResponse(
        plan=session.plan,
        analysis=session.analysis,
        dependencies=session.dependencies,
        tree=session.tree_nodes,
    )


@app.post("/publish", response_model=models.PublishResult)
async def publish(
    request: models.PublishRequest,
    x_github_token: str | None = Header(default=None),
) -> models.PublishResult:
    return await core.publish_plan(
        request.repository, request.plan, request.base_branch, x_github_token
    )
