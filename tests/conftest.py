import base64
import json
import os

import pytest

os.environ["GITHUB_TOKEN"] = "test-github-token"
os.environ["OPENAI_API_KEY"] = "test-openai-key"

from protojam import config, llm, models  # noqa: E402

GITHUB_API = "https://api.github.com"
OPENAI_COMPLETIONS = "https://api.openai.com/v1/chat/completions"

PACKAGE_JSON = json.dumps(
    {
        "name": "acme-web",
        "dependencies": {"next": "14.1.0", "react": "18.2.0", "date-fns": "2.0.0", "zustand": "4.5.0"},
        "devDependencies": {"tailwindcss": "3.4.0", "typescript": "5.3.0"},
    }
)

SNAPSHOT = [
    {"path": "package.json", "type": "file", "content": PACKAGE_JSON},
    {"path": "README.md", "type": "file"},
    {"path": "src", "type": "directory"},
    {"path": "src/components", "type": "directory"},
    {"path": "src/lib", "type": "directory"},
    {"path": "src/hooks", "type": "directory"},
    {"path": "src/pages", "type": "directory"},
    {"path": "src/pages/index.tsx", "type": "file"},
]

PROTOTYPE_FILES = [
    {
        "path": "Demo.jsx",
        "content": (
            'import React, { useState } from "react";\n'
            'import moment from "moment";\n'
            "import axios from 'axios';\n"
            'import Button from "./Button";\n'
            "export default function Demo() { return null }\n"
        ),
    },
    {
        "path": "util.js",
        "content": 'const _ = require("lodash");\nconst cfg = require("../config");\n',
    },
]

PLAN_RESPONSE = {
    "title": "Add demo page",
    "description": "Adds the demo prototype as a page.",
    "targetDirectory": "src/pages",
    "integrationSteps": ["Move Demo into pages", "Replace moment with date-fns"],
    "pullRequest": {
        "title": "Integrate demo prototype",
        "description": "Integrates the demo prototype.",
        "route": "/demo",
        "files": [
            {
                "path": "src/pages/demo.tsx",
                "content": "export default function Demo(){return null}",
                "originalPath": "Demo.jsx",
                "changes": ["Converted to TypeScript"],
            },
            {
                "path": "src/lib/format.ts",
                "changes": ["+export const fmt = 1", "-const old = 0"],
            },
        ],
    },
}


def completion(content: str) -> dict:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "o3-mini",
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


def contents_item(path: str, kind: str, content: str | None = None) -> dict:
    item = {"path": path, "name": path.rsplit("/", 1)[-1], "type": kind}
    if content is not None:
        item["content"] = base64.b64encode(content.encode()).decode()
        item["encoding"] = "base64"
    return item


@pytest.fixture(autouse=True)
def _fresh_config():
    config.get_config.cache_clear()
    llm._get_client.cache_clear()
    yield
    config.get_config.cache_clear()
    llm._get_client.cache_clear()


@pytest.fixture
def structure():
    return [models.FileEntry(**e) for e in SNAPSHOT]


@pytest.fixture
def prototype_files():
    return [models.PrototypeFile(**f) for f in PROTOTYPE_FILES]


@pytest.fixture
def plan_response():
    return json.loads(json.dumps(PLAN_RESPONSE))


@pytest.fixture
def demo_plan():
    return models.IntegrationPlan(
        title="Add demo page",
        description="Adds the demo prototype.",
        target_directory="pages",
        integration_steps=["Create the page"],
        files=[
            models.FileChange(
                path="pages/demo.tsx",
                content="export default function Demo(){return null}",
            )
        ],
        route="/demo",
    )
