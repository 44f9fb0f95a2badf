from __future__ import annotations

import ast
import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

SRC = Path(__file__).resolve().parents[2] / "src"
PACKAGE = SRC / "warband"

# layer -> layers it must never import
FORBIDDEN_LAYERS = {
    "domain": {"application", "infrastructure", "presentation"},
    "application": {"infrastructure", "presentation"},
    "infrastructure": {"presentation"},
}
# third-party import -> layers allowed to use it
LIBRARY_HOMES = {
    "httpx": {"infrastructure"},
    "rich": {"presentation"},
    "dotenv": {"__main__"},
}


def _module_name(path: Path) -> str:
    return ".".join(path.relative_to(SRC).with_suffix("").parts)


def _layer(module: str) -> str:
    parts = module.split(".")
    return parts[1] if len(parts) > 1 else parts[0]


def _runtime_imports(tree: ast.AST) -> set[str]:
    """Absolute import targets, skipping anything under ``if TYPE_CHECKING:``."""
    found: set[str] = set()
    guarded: set[int] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.If) and isinstance(node.test, ast.Name) and node.test.id == "TYPE_CHECKING":
            guarded.update(id(child) for stmt in node.body for child in ast.walk(stmt))
    for node in ast.walk(tree):
        if id(node) in guarded:
            continue
        if isinstance(node, ast.Import):
            found.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            found.add(node.module)
    return found


def _graph() -> dict[str, set[str]]:
    graph: dict[str, set[str]] = {}
    for path in sorted(PACKAGE.rglob("*.py")):
        tree = ast.parse(path.read_text(encoding="utf-8"))
        graph[_module_name(path)] = _runtime_imports(tree)
    return graph


def _cycle(graph: dict[str, set[str]]) -> list[str]:
    internal = {name: {target for target in targets if target in graph} for name, targets in graph.items()}
    visiting: list[str] = []
    done: set[str] = set()

    def walk(node: str) -> list[str]:
        if node in visiting:
            return visiting[visiting.index(node):] + [node]
        if node in done:
            return []
        visiting.append(node)
        for target in sorted(internal[node]):
            found = walk(target)
            if found:
                return found
        visiting.pop()
        done.add(node)
        return []

    for node in sorted(internal):
        found = walk(node)
        if found:
            return found
    return []


class ArchitectureGuardrailTests(unittest.TestCase):
    def test_layers_only_import_downwards(self) -> None:
        violations = []
        for module, targets in _graph().items():
            forbidden = FORBIDDEN_LAYERS.get(_layer(module), set())
            for target in targets:
                if target.startswith("warband.") and _layer(target) in forbidden:
                    violations.append(f"{module} -> {target}")
        self.assertEqual([], violations)

    def test_third_party_libraries_stay_in_their_layer(self) -> None:
        violations = []
        for module, targets in _graph().items():
            for target in targets:
                library = target.split(".")[0]
                homes = LIBRARY_HOMES.get(library)
                if homes is not None and _layer(module) not in homes:
                    violations.append(f"{module} imports {library}")
        self.assertEqual([], violations)

    def test_runtime_import_graph_has_no_cycles(self) -> None:
        cycle = _cycle(_graph())
        self.assertEqual([], cycle, f"Import cycle: {' -> '.join(cycle)}")

    def test_packages_are_namespace_packages(self) -> None:
        self.assertEqual([], [str(path) for path in PACKAGE.rglob("__init__.py")])


if __name__ == "__main__":
    unittest.main()
