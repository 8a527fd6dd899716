"""Tests for import scanning and the legacy dependency graph."""

import pytest

from repo_migrator.graph import (
    analyze_imports,
    build_dependency_graph,
    get_related_files,
    resolve_graph_key,
    resolve_import_path,
)


@pytest.fixture
def scenario_graph(make_file):
    files = [
        make_file("src/app.js", "import utils from './utils';\nimport Header from './components/Header';\n"),
        make_file("src/utils.js", "import { X } from './constants';\nexport default X;\n"),
        make_file("src/components/Header.js", "export default function Header() {}\n"),
        make_file("src/constants.js", "export const X = 1;\n"),
    ]
    return build_dependency_graph(files)


class TestResolveImportPath:
    def test_sibling(self):
        assert resolve_import_path("src/app.js", "./utils") == "src/utils"

    def test_parent_directory(self):
        assert resolve_import_path("src/pages/Home.js", "../components/Header") == "src/components/Header"

    def test_parent_beyond_root_is_clamped(self):
        assert resolve_import_path("app.js", "../../lib/x") == "lib/x"

    def test_result_has_no_dot_segments(self):
        resolved = resolve_import_path("a/b/c.js", "./../.././d/./e")
        assert "." not in resolved.split("/")
        assert ".." not in resolved.split("/")
        assert resolved == "d/e"


class TestAnalyzeImports:
    def test_supported_import_forms(self):
        content = "\n".join([
            "import React from 'react';",
            "import { a, b } from './named';",
            "import * as ns from \"./namespace\";",
            "import './side-effect.css';",
            "const legacy = require('./legacy');",
            "const lazy = import('./lazy');",
            "export { c } from './reexport';",
            "import type { T } from './types';",
        ])

        imports = analyze_imports(content, "src/index.js")

        assert imports == [
            "src/named",
            "src/namespace",
            "src/side-effect.css",
            "src/legacy",
            "src/lazy",
            "src/reexport",
            "src/types",
        ]

    def test_bare_packages_are_ignored(self):
        assert analyze_imports("import x from '@scope/pkg';\nrequire('lodash');", "a.js") == []

    def test_multiline_named_import(self):
        content = "import {\n  one,\n  two,\n} from '../shared/util';\n"
        assert analyze_imports(content, "src/app/page.js") == ["src/shared/util"]


class TestBuildDependencyGraph:
    def test_keys_are_exactly_files_with_content(self, make_file, make_tree):
        tree = make_tree({"src/a.js": "import b from './b';", "src/b.js": "export default 1;"})
        tree.append(make_file("src/empty.js", ""))
        tree.append(make_file("src/none.js", None))

        graph = build_dependency_graph(tree)

        assert set(graph) == {"src/a.js", "src/b.js"}
        assert graph["src/a.js"] == ["src/b"]
        assert graph["src/b.js"] == []


class TestResolveGraphKey:
    def test_exact_extension_and_index(self):
        graph = {"src/a.js": [], "src/b.ts": [], "src/widgets/index.tsx": []}

        assert resolve_graph_key("src/a.js", graph) == "src/a.js"
        assert resolve_graph_key("src/b", graph) == "src/b.ts"
        assert resolve_graph_key("src/widgets", graph) == "src/widgets/index.tsx"
        assert resolve_graph_key("src/missing", graph) is None


class TestGetRelatedFiles:
    def test_transitive_dependencies_are_found(self, scenario_graph):
        related = get_related_files("src/app.js", scenario_graph, 10)

        assert "src/utils.js" in related
        assert "src/components/Header.js" in related
        assert "src/constants.js" in related
        assert "src/app.js" not in related

    def test_breadth_first_order(self, scenario_graph):
        related = get_related_files("src/app.js", scenario_graph, 10)
        assert related == ["src/utils.js", "src/components/Header.js", "src/constants.js"]

    def test_limit_is_respected(self, scenario_graph):
        assert len(get_related_files("src/app.js", scenario_graph, 1)) == 1

    def test_cycles_terminate(self):
        graph = {"a.js": ["b"], "b.js": ["a"]}
        assert get_related_files("a.js", graph, 10) == ["b.js"]

    def test_unknown_start(self, scenario_graph):
        assert get_related_files("nope.js", scenario_graph) == []
