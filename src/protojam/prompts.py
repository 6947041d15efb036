import json
from datetime import datetime, timezone

from protojam import models

PLAN_SYSTEM_PROMPT = """\
You are an expert software developer specializing in code integration and \
migration. Today is {today}. You are familiar with modern web app frameworks \
like NextJS, TailwindCSS, Shadcn/UI, etc. Mistakes erode trust, so be \
accurate and thorough.

Respond with a JSON object containing exactly these fields:
- "title": A short title for the integration.
- "description": A clear, step-by-step integration plan (markdown allowed) \
with the reasoning behind each decision.
- "targetDirectory": The directory in the target repository chosen as the \
integration root.
- "integrationSteps": An ordered list of human-readable instructions.
- "pullRequest": An object with:
  - "title": The pull request title.
  - "description": The pull request description.
  - "route": The page route (or short identifier) where the prototype will \
be accessible.
  - "files": A list of objects, one per file to add or modify, each with \
"path" (relative to the repository root), "content" (the COMPLETE file \
content after changes), optionally "originalPath" (the prototype path it was \
adapted from) and "changes" (a list of short descriptions of what changed).

Only output valid JSON. No markdown fences, no extra text.\
"""

PLAN_TASK = """\
Task:
Create a detailed integration plan that places every prototype file in the \
target repository. Follow existing directory patterns and naming \
conventions, keep related files close together, reuse packages the target \
already depends on where an alternative is listed above, and translate \
framework-specific code to the target's framework and styling system. \
Provide complete file contents, not fragments.\
"""


def build_system_prompt(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return PLAN_SYSTEM_PROMPT.format(today=now.date().isoformat())


def _format_directories(directories: dict[str, str | None]) -> str:
    return "\n".join(
        f"- {category.capitalize()} Location: {path or 'Not found'}"
        for category, path in directories.items()
    )


def build_plan_prompt(
    repo_name: str,
    structure: list[models.FileEntry],
    analysis: models.ProjectStructureAnalysis,
    findings: list[models.DependencyFinding],
    files: list[models.PrototypeFile],
) -> str:
    listing = "\n".join(
        f"{entry.path}/" if entry.type == "directory" else entry.path for entry in structure
    )
    dependency_json = json.dumps(
        [f.model_dump() for f in findings],
        indent=2,
    )
    prototype = "\n\n".join(f"--- {f.path} ---\n{f.content}" for f in files)

    return (
        "Integrate the following prototype code into a production codebase.\n\n"
        "Context:\n"
        f"- Target Repository: {repo_name}\n"
        f"- Framework: {analysis.framework}\n"
        f"- Styling: {analysis.styling}\n"
        f"- State Management: {analysis.state_management}\n"
        f"- TypeScript: {'yes' if analysis.typescript else 'no'}\n"
        f"- Frontend Directory: {analysis.frontend_directory or 'Not found'}\n"
        f"- Prototype Files: {', '.join(f.path for f in files) or 'none'}\n"
        f"\nRepository Structure:\n{listing or '(empty)'}\n"
        f"\nDirectory Analysis:\n{_format_directories(analysis.directories)}\n"
        f"\nDependency Analysis:\n{dependency_json}\n"
        f"\n{PLAN_TASK}\n"
        f"\nPrototype Files Content:\n{prototype or '(no files)'}\n"
    )
