import json
import re

from protojam import config, models

# at most 2000 chars between "import" and "from"
_IMPORT_PATTERN = re.compile(r"""\bimport\b[^;'"]{0,2000}?\bfrom\s*['"]([^'"]+)['"]""")
_REQUIRE_PATTERN = re.compile(r"""require\(\s*['"]([^'"]+)['"]\s*\)""")

MANIFEST_PATH = "package.json"


def _is_external(specifier: str) -> bool:
    return not specifier.startswith((".", "/"))


def extract_dependencies(content: str) -> list[str]:
    found = [m.group(1) for m in _IMPORT_PATTERN.finditer(content)]
    found += [m.group(1) for m in _REQUIRE_PATTERN.finditer(content)]
    return list(dict.fromkeys(dep for dep in found if _is_external(dep)))


def collect_dependencies(files: list[models.PrototypeFile]) -> list[str]:
    seen: dict[str, None] = {}
    for f in files:
        for dep in extract_dependencies(f.content):
            seen.setdefault(dep, None)
    return list(seen)


def parse_manifest(content: str | None) -> dict[str, str]:
    if not content:
        return {}
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return {}
    if not isinstance(data, dict):
        return {}

    merged: dict[str, str] = {}
    for section in ("devDependencies", "dependencies"):
        deps = data.get(section)
        if isinstance(deps, dict):
            merged.update({str(k): str(v) for k, v in deps.items()})
    return merged


def find_manifest(structure: list[models.FileEntry]) -> dict[str, str]:
    entry = next(
        (e for e in structure if e.path == MANIFEST_PATH and e.type == "file"),
        None,
    )
    return parse_manifest(entry.content) if entry else {}


def find_alternative(dependency: str, existing: dict[str, str]) -> str | None:
    base = dependency.split("/")[0]
    for candidate in config.DEPENDENCY_ALTERNATIVES.get(base, ()):
        if candidate in existing:
            return candidate
    return None


def analyze_dependencies(
    files: list[models.PrototypeFile],
    existing: dict[str, str],
) -> list[models.DependencyFinding]:
    return [
        models.DependencyFinding(package=dep, existing_alternative=find_alternative(dep, existing))
        for dep in collect_dependencies(files)
    ]


def _first_marker(markers: tuple[tuple[str, str], ...], keys: dict[str, str]) -> str | None:
    return next((name for key, name in markers if key in keys), None)


def detect_framework(deps: dict[str, str]) -> str:
    return _first_marker(config.FRAMEWORK_MARKERS, deps) or "unknown"


def detect_styling(deps: dict[str, str], structure: list[models.FileEntry]) -> str:
    found = _first_marker(config.STYLING_MARKERS, deps)
    if found:
        return found
    files = [e.path.lower() for e in structure if e.type == "file"]
    for suffix, name in config.STYLING_EXTENSIONS:
        if any(p.endswith(suffix) for p in files):
            return name
    return "unknown"


def detect_state_management(deps: dict[str, str]) -> str:
    return _first_marker(config.STATE_MANAGEMENT_MARKERS, deps) or "unknown"


def detect_typescript(deps: dict[str, str], structure: list[models.FileEntry]) -> bool:
    if "typescript" in deps:
        return True
    return any(e.path.endswith(config.TYPESCRIPT_EXTENSIONS) for e in structure)


def detect_frontend_directory(structure: list[models.FileEntry]) -> str | None:
    top_level = {e.path for e in structure if e.type == "directory" and "/" not in e.path}
    return next((d for d in config.FRONTEND_DIRECTORIES if d in top_level), None)


def guess_directories(structure: list[models.FileEntry]) -> dict[str, str | None]:
    directories = [e.path for e in structure if e.type == "directory"]
    return {
        category: next((d for d in directories if any(s in d for s in needles)), None)
        for category, needles in config.DIRECTORY_PATTERNS.items()
    }


def analyze_structure(structure: list[models.FileEntry]) -> models.ProjectStructureAnalysis:
    deps = find_manifest(structure)
    return models.ProjectStructureAnalysis(
        frontend_directory=detect_frontend_directory(structure),
        framework=detect_framework(deps),
        styling=detect_styling(deps, structure),
        state_management=detect_state_management(deps),
        typescript=detect_typescript(deps, structure),
        directories=guess_directories(structure),
    )
