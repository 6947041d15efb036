from protojam import models


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def build_tree(
    structure: list[models.FileEntry],
    files: list[models.FileChange],
) -> list[models.TreeNode]:
    """Nest a flat snapshot listing by path segment and flag plan locations.

    ``is_target_location`` marks directories receiving a planned file,
    ``is_original_prototype_path`` marks paths a planned file was adapted from.
    """
    target_paths = {_parent(f.path) for f in files}
    original_paths = {f.original_path for f in files if f.original_path}

    # name -> (entry kind, children) keeps first-seen order per level
    root: dict[str, dict] = {}
    for entry in structure:
        parts = [p for p in entry.path.split("/") if p]
        level = root
        for index, part in enumerate(parts):
            is_last = index == len(parts) - 1
            node = level.get(part)
            if node is None:
                node = {
                    "path": "/".join(parts[: index + 1]),
                    "type": entry.type if is_last else "directory",
                    "children": {},
                }
                level[part] = node
            elif not is_last:
                node["type"] = "directory"
            level = node["children"]

    def convert(level: dict[str, dict]) -> list[models.TreeNode]:
        nodes = []
        for name, node in level.items():
            is_dir = node["type"] == "directory"
            nodes.append(
                models.TreeNode(
                    name=name,
                    path=node["path"],
                    type=node["type"],
                    children=convert(node["children"]) if is_dir else None,
                    is_target_location=node["path"] in target_paths,
                    is_original_prototype_path=node["path"] in original_paths,
                )
            )
        return nodes

    return convert(root)
