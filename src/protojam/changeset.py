from typing import NamedTuple

from protojam import config, models


class LineCounts(NamedTuple):
    additions: int
    deletions: int


def count_changes(content: str) -> LineCounts:
    # Textual heuristic over +/- prefixed lines, not a diff against the target.
    lines = content.split("\n")
    additions = sum(1 for line in lines if line.startswith("+"))
    deletions = sum(1 for line in lines if line.startswith("-"))
    return LineCounts(additions, deletions)


def materialize(change: models.FileChange) -> models.FileChange:
    additions, deletions = count_changes(change.content)
    return change.model_copy(update={"additions": additions, "deletions": deletions})


def from_planned(planned: models.PlannedFile) -> models.FileChange:
    content = planned.content
    if not content:
        content = "\n".join(planned.changes or [])
    return materialize(
        models.FileChange(
            path=planned.path,
            content=content,
            original_path=planned.original_path,
            changes=planned.changes,
        )
    )


def plan_document(title: str, description: str) -> models.FileChange:
    content = f"# {title}\n\n{description}"
    return models.FileChange(
        path=config.PLAN_DOCUMENT_PATH,
        content=content,
        additions=len(content.split("\n")),
        deletions=0,
    )
