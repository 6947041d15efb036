import json

import httpx
import pytest
import respx

from protojam import analyzer, llm, models, planner, prompts
from tests.conftest import OPENAI_COMPLETIONS, completion


class TestBuildPlanPrompt:
    def test_embeds_context(self, structure, prototype_files):
        analysis = analyzer.analyze_structure(structure)
        findings = analyzer.analyze_dependencies(prototype_files, analyzer.find_manifest(structure))
        prompt = prompts.build_plan_prompt("acme/web", structure, analysis, findings, prototype_files)

        assert "Target Repository: acme/web" in prompt
        assert "Framework: next.js" in prompt
        assert "TypeScript: yes" in prompt
        assert "Components Location: src/components" in prompt
        assert '"existing_alternative": "date-fns"' in prompt
        assert "--- Demo.jsx ---" in prompt
        assert "src/components/" in prompt

    def test_empty_inputs(self):
        prompt = prompts.build_plan_prompt("acme/web", [], models.ProjectStructureAnalysis(), [], [])
        assert "Prototype Files: none" in prompt
        assert "(no files)" in prompt


class TestParsePlanResponse:
    def test_valid(self, plan_response):
        parsed = llm.parse_plan_response(json.dumps(plan_response))
        assert parsed.target_directory == "src/pages"
        assert parsed.pull_request.files[0].original_path == "Demo.jsx"

    def test_empty(self):
        with pytest.raises(llm.PlanGenerationError, match="empty"):
            llm.parse_plan_response("")

    def test_invalid_json(self):
        with pytest.raises(llm.PlanGenerationError, match="invalid JSON"):
            llm.parse_plan_response("{not json")

    def test_missing_field(self, plan_response):
        del plan_response["pullRequest"]
        with pytest.raises(llm.PlanGenerationError, match="plan schema"):
            llm.parse_plan_response(json.dumps(plan_response))

    def test_wrong_type(self, plan_response):
        plan_response["integrationSteps"] = "do it"
        with pytest.raises(llm.PlanGenerationError, match="plan schema"):
            llm.parse_plan_response(json.dumps(plan_response))

    def test_file_without_body(self, plan_response):
        plan_response["pullRequest"]["files"] = [{"path": "a.ts"}]
        with pytest.raises(llm.PlanGenerationError, match="plan schema"):
            llm.parse_plan_response(json.dumps(plan_response))


class TestBuildPlan:
    def test_materializes_files(self, plan_response):
        plan = planner.build_plan(models.PlanResponse.model_validate(plan_response))

        assert [f.path for f in plan.files] == ["src/pages/demo.tsx", "src/lib/format.ts", "integration_plan.md"]
        demo, fmt, doc = plan.files
        assert (demo.additions, demo.deletions) == (0, 0)
        assert demo.original_path == "Demo.jsx"
        assert fmt.content == "+export const fmt = 1\n-const old = 0"
        assert (fmt.additions, fmt.deletions) == (1, 1)
        assert doc.content == "# Add demo page\n\nAdds the demo prototype as a page."
        assert plan.route == "/demo"
        assert plan.integration_steps == ["Move Demo into pages", "Replace moment with date-fns"]


class TestGeneratePlan:
    @pytest.mark.asyncio
    @respx.mock
    async def test_end_to_end(self, structure, prototype_files, plan_response):
        route = respx.post(OPENAI_COMPLETIONS).mock(
            return_value=httpx.Response(200, json=completion(json.dumps(plan_response)))
        )

        plan, analysis, findings = await planner.generate_plan("acme/web", prototype_files, structure)

        assert route.call_count == 1
        request = json.loads(route.calls[0].request.content)
        assert request["model"] == "o3-mini"
        assert request["response_format"]["type"] == "json_schema"
        assert "pullRequest" in request["response_format"]["json_schema"]["schema"]["properties"]
        assert "Demo.jsx" in request["messages"][1]["content"]
        assert plan.title == "Add demo page"
        assert analysis.framework == "next.js"
        assert any(f.package == "moment" and f.existing_alternative == "date-fns" for f in findings)

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_prototype_files(self, plan_response):
        route = respx.post(OPENAI_COMPLETIONS).mock(
            return_value=httpx.Response(200, json=completion(json.dumps(plan_response)))
        )

        plan, _, findings = await planner.generate_plan("acme/web", [], [])

        assert findings == []
        assert route.call_count == 1
        assert plan.files[-1].path == "integration_plan.md"

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_failure_is_not_retried(self, structure, prototype_files):
        route = respx.post(OPENAI_COMPLETIONS).mock(
            return_value=httpx.Response(500, json={"error": {"message": "boom"}})
        )

        with pytest.raises(llm.PlanGenerationError, match="OpenAI API key"):
            await planner.generate_plan("acme/web", prototype_files, structure)
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_response(self, structure, prototype_files):
        respx.post(OPENAI_COMPLETIONS).mock(
            return_value=httpx.Response(200, json=completion(json.dumps({"title": "only a title"})))
        )

        with pytest.raises(llm.PlanGenerationError, match="plan schema"):
            await planner.generate_plan("acme/web", prototype_files, structure)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch, structure, prototype_files):
        monkeypatch.delenv("OPENAI_API_KEY")

        with pytest.raises(llm.PlanGenerationError, match="No OpenAI API key"):
            await planner.generate_plan("acme/web", prototype_files, structure)
