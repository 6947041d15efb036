import json
import logging
from functools import lru_cache

from openai import AsyncOpenAI
from pydantic import ValidationError

from protojam import config, models

logger = logging.getLogger(__name__)

PLAN_SCHEMA_NAME = "integration_plan"


class PlanGenerationError(Exception):
    def __init__(self, message: str, status_code: int = 502):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@lru_cache
def _get_client(api_key: str, base_url: str) -> AsyncOpenAI:
    # A failed plan request is retried by the user, never by the client.
    return AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)


def plan_response_format() -> dict:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": PLAN_SCHEMA_NAME,
            "schema": models.PlanResponse.model_json_schema(by_alias=True),
        },
    }


def parse_plan_response(text: str | None) -> models.PlanResponse:
    if not text:
        raise PlanGenerationError("LLM returned an empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PlanGenerationError(f"LLM returned invalid JSON: {exc}") from exc
    try:
        return models.PlanResponse.model_validate(data)
    except ValidationError as exc:
        raise PlanGenerationError(
            f"LLM response does not match the plan schema: {exc.error_count()} error(s): {exc}"
        ) from exc


async def request_plan(system_prompt: str, user_prompt: str) -> models.PlanResponse:
    cfg = config.get_config()
    if not cfg.openai_api_key:
        raise PlanGenerationError(
            "Failed to generate integration plan. No OpenAI API key is configured."
        )
    client = _get_client(cfg.openai_api_key, cfg.openai_base_url)

    try:
        response = await client.chat.completions.create(
            model=cfg.model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=plan_response_format(),
            timeout=cfg.llm_timeout,
        )
    except Exception as exc:
        logger.warning(f"LLM plan request failed: {exc}")
        raise PlanGenerationError(
            "Failed to generate integration plan. Please check your OpenAI API key "
            f"and model access, then try again. ({exc})"
        ) from exc

    if not response.choices:
        raise PlanGenerationError("LLM returned no choices")
    return parse_plan_response(response.choices[0].message.content)
