"""Walk, summarize and serialize a resolved graph."""

from __future__ import annotations

import json
import logging
import sys
from collections import deque
from typing import Any, Dict, Iterator, List

from constants import ExitCodes
from .node import PackageNode

logger = logging.getLogger(__name__)


def iter_nodes(root: PackageNode) -> Iterator[PackageNode]:
    """Breadth-first walk yielding each reachable node once."""
    seen = {id(root)}
    queue = deque([root])
    while queue:
        node = queue.popleft()
        yield node
        for child in node.dependencies_snapshot():
            if id(child) not in seen:
                seen.add(id(child))
                queue.append(child)


def failed_nodes(root: PackageNode) -> List[PackageNode]:
    return [node for node in iter_nodes(root) if node.error]


def graph_to_dict(root: PackageNode) -> Dict[str, Any]:
    """Flat JSON-ready view keyed by full name."""
    packages = {}
    for node in iter_nodes(root):
        packages[node.full_name] = {
            "name": node.name,
            "version": node.version,
            "tarball": node.tarball_url,
            "error": node.error,
            "dependencies": [child.full_name for child in node.dependencies_snapshot()],
        }
    return {"root": root.full_name, "packages": packages}


def render_tree(root: PackageNode) -> str:
    """Indented text tree; subtrees already printed are marked ``(deduped)``."""
    lines: List[str] = []
    printed = set()
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        label = node.full_name + (" (error)" if node.error else "")
        children = node.dependencies_snapshot()
        if id(node) in printed and children:
            lines.append("  " * depth + label + " (deduped)")
            continue
        printed.add(id(node))
        lines.append("  " * depth + label)
        # reversed so the first child is rendered first
        stack.extend((child, depth + 1) for child in reversed(children))
    return "\n".join(lines)


def export_json(roots: List[PackageNode], path: str) -> None:
    """Write the graphs of ``roots`` to ``path`` as JSON.

    Args:
        roots: Resolved root nodes.
        path: File path to export the JSON.
    """
    data = [graph_to_dict(root) for root in roots]
    try:
        with open(path, "w", encoding="utf-8") as file:
            json.dump(data, file, ensure_ascii=False, indent=4)
        logger.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logger.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
