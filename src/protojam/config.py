from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    github_token: str | None = None
    github_api_url: str = "https://api.github.com"
    github_pr_branch: str = "main"
    github_timeout: float = 30.0

    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    model_name: str = "o3-mini"
    llm_timeout: float = 120.0

    branch_prefix: str = "feature/prototype-integration"
    pr_title_marker: str = "[Prototype]"
    snapshot_recursive: bool = False
    manifest_files: list[str] = ["package.json"]


@lru_cache
def get_config() -> Config:
    return Config()


ARCHIVE_EXTENSION = ".zip"

PLAN_DOCUMENT_PATH = "integration_plan.md"

# Checked in order, first existing top-level directory wins.
FRONTEND_DIRECTORIES = ("src", "app", "client", "frontend", "web")

# Substrings matched against directory paths, per semantic category.
DIRECTORY_PATTERNS = {
    "components": ("components", "ui"),
    "hooks": ("hooks",),
    "utils": ("utils", "lib", "helpers"),
    "types": ("types", "interfaces"),
    "pages": ("pages", "routes"),
    "features": ("features", "modules"),
}

# Package -> packages that can stand in for it, in order of preference.
DEPENDENCY_ALTERNATIVES = {
    "axios": ("fetch", "node-fetch", "got", "ky", "superagent"),
    "moment": ("date-fns", "dayjs", "luxon"),
    "lodash": ("ramda", "underscore"),
    "next-auth": ("@auth/core", "firebase-auth"),
    "styled-components": ("@emotion/styled", "@stitches/react", "tailwindcss"),
    "redux": ("zustand", "jotai", "recoil", "@tanstack/react-query"),
}

# Manifest key -> framework, first match wins.
FRAMEWORK_MARKERS = (
    ("next", "next.js"),
    ("nuxt", "nuxt"),
    ("@angular/core", "angular"),
    ("vue", "vue"),
    ("svelte", "svelte"),
    ("react", "react"),
)

STYLING_MARKERS = (
    ("tailwindcss", "tailwind"),
    ("styled-components", "styled-components"),
    ("@emotion/react", "emotion"),
    ("@emotion/styled", "emotion"),
    ("@mui/material", "material-ui"),
    ("@chakra-ui/react", "chakra-ui"),
    ("bootstrap", "bootstrap"),
    ("sass", "sass"),
)

STYLING_EXTENSIONS = (
    (".scss", "sass"),
    (".sass", "sass"),
    (".less", "less"),
    (".module.css", "css-modules"),
    (".css", "css"),
)

STATE_MANAGEMENT_MARKERS = (
    ("@reduxjs/toolkit", "redux"),
    ("redux", "redux"),
    ("zustand", "zustand"),
    ("jotai", "jotai"),
    ("recoil", "recoil"),
    ("mobx", "mobx"),
    ("pinia", "pinia"),
    ("vuex", "vuex"),
    ("@tanstack/react-query", "react-query"),
)

TYPESCRIPT_EXTENSIONS = (".ts", ".tsx")
