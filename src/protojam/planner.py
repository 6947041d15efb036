import logging
import time

from protojam import analyzer, changeset, llm, models, prompts

logger = logging.getLogger(__name__)


def build_plan(response: models.PlanResponse) -> models.IntegrationPlan:
    pr = response.pull_request
    files = [changeset.from_planned(f) for f in pr.files]
    files.append(changeset.plan_document(response.title, response.description))
    return models.IntegrationPlan(
        title=response.title,
        description=response.description,
        target_directory=response.target_directory,
        integration_steps=response.integration_steps,
        files=files,
        route=pr.route,
        pull_request_title=pr.title,
        pull_request_description=pr.description,
    )


async def generate_plan(
    repo_name: str,
    files: list[models.PrototypeFile],
    structure: list[models.FileEntry],
) -> tuple[models.IntegrationPlan, models.ProjectStructureAnalysis, list[models.DependencyFinding]]:
    analysis = analyzer.analyze_structure(structure)
    findings = analyzer.analyze_dependencies(files, analyzer.find_manifest(structure))
    logger.info(
        f"Analyzed {repo_name}: framework={analysis.framework} styling={analysis.styling} "
        f"state={analysis.state_management} typescript={analysis.typescript} "
        f"dependencies={len(findings)}"
    )

    user_prompt = prompts.build_plan_prompt(repo_name, structure, analysis, findings, files)
    logger.info(f"Plan prompt: {len(files)} prototype files, {len(user_prompt)} chars")

    t0 = time.monotonic()
    response = await llm.request_plan(prompts.build_system_prompt(), user_prompt)
    logger.info(f"Plan generated in {time.monotonic() - t0:.1f}s")

    plan = build_plan(response)
    logger.info(f"Plan '{plan.title}': {len(plan.files)} files, {len(plan.integration_steps)} steps")
    return plan, analysis, findings
