"""Tests for dependency-aware generation ordering."""

import pytest

from repo_migrator.graph import build_dependency_graph
from repo_migrator.models import SemanticMatch
from repo_migrator.planning import (
    build_target_dependency_map,
    get_generation_priority,
    order_target_files,
    order_target_paths,
)
from repo_migrator.planning.scheduler import (
    PRIORITY_API,
    PRIORITY_COMPONENT,
    PRIORITY_DEFAULT,
    PRIORITY_PAGE,
    PRIORITY_ROOT_CONFIG,
    PRIORITY_SHARED,
    PRIORITY_TEST,
)

TARGET_SOURCES = {
    "app/page.tsx": "src/app.js",
    "lib/utils.ts": "src/utils.js",
    "lib/constants.ts": "src/constants.js",
    "components/Header.tsx": "src/components/Header.js",
}


@pytest.fixture
def legacy_graph(make_file):
    return build_dependency_graph([
        make_file("src/app.js", "import u from './utils';\nimport H from './components/Header';\n"),
        make_file("src/utils.js", "import { C } from './constants';\n"),
        make_file("src/constants.js", "export const C = 1;\n"),
        make_file("src/components/Header.js", "export default () => null;\n"),
    ])


@pytest.fixture
def matches():
    return {
        target: SemanticMatch(primary_source_path=source, source_paths=[source], confidence=1.0)
        for target, source in TARGET_SOURCES.items()
    }


class TestGenerationPriority:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("package.json", PRIORITY_ROOT_CONFIG),
            ("tsconfig.json", PRIORITY_ROOT_CONFIG),
            ("next.config.mjs", PRIORITY_ROOT_CONFIG),
            ("lib/db.ts", PRIORITY_SHARED),
            ("src/hooks/useCart.ts", PRIORITY_SHARED),
            ("components/Header.tsx", PRIORITY_COMPONENT),
            ("app/api/users/route.ts", PRIORITY_API),
            ("pages/api/login.ts", PRIORITY_API),
            ("app/page.tsx", PRIORITY_PAGE),
            ("app/layout.tsx", PRIORITY_PAGE),
            ("README.md", PRIORITY_DEFAULT),
            ("components/Header.test.tsx", PRIORITY_COMPONENT),
            ("lib/__tests__/db.ts", PRIORITY_SHARED),
            ("app/page.spec.tsx", PRIORITY_PAGE),
            ("tests/cart.test.ts", PRIORITY_TEST),
            ("__tests__/home.tsx", PRIORITY_TEST),
        ],
    )
    def test_tiers(self, path, expected):
        assert get_generation_priority(path) == expected

    def test_nested_config_is_not_root(self):
        assert get_generation_priority("docs/package.json") == PRIORITY_DEFAULT


class TestTargetDependencyMap:
    def test_derived_edges_follow_legacy_imports(self, matches, legacy_graph):
        dependencies = build_target_dependency_map(list(TARGET_SOURCES), matches, legacy_graph)

        assert dependencies["app/page.tsx"] == {"lib/utils.ts", "components/Header.tsx", "lib/constants.ts"}
        assert dependencies["lib/utils.ts"] == {"lib/constants.ts"}
        assert dependencies["lib/constants.ts"] == set()
        assert dependencies["components/Header.tsx"] == set()

    def test_edges_to_unscheduled_targets_are_dropped(self, matches, legacy_graph):
        targets = ["app/page.tsx", "lib/utils.ts"]

        dependencies = build_target_dependency_map(targets, matches, legacy_graph)

        assert set(dependencies) == set(targets)
        assert dependencies["app/page.tsx"] == {"lib/utils.ts"}

    def test_unmatched_targets_have_no_edges(self, legacy_graph):
        dependencies = build_target_dependency_map(["README.md"], {"README.md": SemanticMatch()}, legacy_graph)
        assert dependencies == {"README.md": set()}


class TestOrderTargetPaths:
    def test_dependencies_come_first(self, matches, legacy_graph):
        paths = list(TARGET_SOURCES)
        dependencies = build_target_dependency_map(paths, matches, legacy_graph)

        order = order_target_paths(paths, dependencies)

        assert order == ["lib/constants.ts", "lib/utils.ts", "components/Header.tsx", "app/page.tsx"]
        for path, prerequisites in dependencies.items():
            for prerequisite in prerequisites:
                assert order.index(prerequisite) < order.index(path)

    def test_priority_breaks_ties(self):
        paths = ["tests/a.test.ts", "README.md", "app/page.tsx", "components/A.tsx", "lib/u.ts", "package.json"]

        order = order_target_paths(paths, {})

        assert order == ["package.json", "lib/u.ts", "components/A.tsx", "app/page.tsx", "README.md", "tests/a.test.ts"]

    def test_cycles_still_place_every_path_once(self):
        dependencies = {"b.ts": {"a.ts"}, "a.ts": {"b.ts"}, "c.ts": set()}

        order = order_target_paths(["a.ts", "b.ts", "c.ts"], dependencies)

        assert order == ["c.ts", "a.ts", "b.ts"]

    def test_duplicates_are_collapsed(self):
        assert order_target_paths(["a.ts", "a.ts"], {}) == ["a.ts"]


def test_order_target_files_returns_same_nodes(make_file, matches, legacy_graph):
    files = [make_file(path) for path in TARGET_SOURCES]

    ordered = order_target_files(files, matches, legacy_graph)

    assert [node.path for node in ordered] == [
        "lib/constants.ts", "lib/utils.ts", "components/Header.tsx", "app/page.tsx",
    ]
    assert all(any(node is original for original in files) for node in ordered)
