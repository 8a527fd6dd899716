"""Prompt builders for the remote analysis, scaffold, generation and verification calls."""

import json

from repo_migrator.models import GeneratedFile, MigrationConfig

ANALYST_SYSTEM_INSTRUCTION = (
    "You are a Principal Software Architect planning the migration of a legacy "
    "repository. Respond with strict JSON only."
)
ARCHITECT_SYSTEM_INSTRUCTION = (
    "You are a Lead Architect designing the file structure of a new project. "
    "Respond with a strict JSON array of file paths only."
)
GENERATOR_SYSTEM_INSTRUCTION = (
    "You are an expert Senior Full-Stack Engineer. Output only the raw file content, "
    "never markdown fences or commentary."
)
VERIFIER_SYSTEM_INSTRUCTION = (
    "You are a strict code reviewer verifying cross-file consistency of a generated "
    "repository. Respond with strict JSON only."
)


def build_repo_analysis_prompt(file_list: list[str], readme: str, target_stack: str) -> str:
    return f"""Analyze the following repository file list and README to plan a migration.

Repository File Structure:
{json.dumps(file_list)}

README Content:
{readme}

Your task:
1. Detect the primary source language/framework.
2. The migration target is "{target_stack}".
3. Summarize the application architecture.
4. Write a visual description of the LEGACY system architecture for a diagram generator.
5. Map legacy source files to the files they will become in the new project. Paths may
   omit extensions or use "*" wildcards. Give each mapping a confidence between 0 and 1.
6. List migration notes that every generated file should respect.

Output strict JSON:
{{
  "summary": "Executive summary of the application",
  "complexity": "Low" | "Medium" | "High",
  "dependencies": ["inferred", "dependencies"],
  "patterns": ["architectural", "patterns"],
  "risks": ["migration", "risks"],
  "detectedFramework": "name of source framework",
  "recommendedTarget": "{target_stack}",
  "architectureDescription": "Detailed visual description of the legacy architecture",
  "semanticFileMappings": [
    {{"sourcePath": "src/components/Header.js", "targetPath": "components/Header.tsx",
      "rationale": "why", "confidence": 0.9}}
  ],
  "migrationNotes": ["cross-cutting notes"]
}}
"""


def build_scaffold_prompt(
    analysis_summary: str,
    config: MigrationConfig,
    include_tests: bool,
) -> str:
    if include_tests:
        test_requirement = (
            "Include test files (e.g. __tests__/*.test.tsx, *.spec.ts) for the main "
            f"components and utilities using {config.testing_library}."
        )
    else:
        test_requirement = "Do not include any test files or test configuration."

    return f"""Design a modern project structure to replace a legacy application.

Legacy Application Context:
{analysis_summary}

Test Suite Requirement:
{test_requirement}

User Configuration:
{config.describe()}

Task:
Design a clean, production-ready file structure for the new application.
Include standard files like `package.json`, `tsconfig.json`, `app/layout.tsx`, `app/page.tsx`,
and any components or lib utilities the legacy application likely needs.
Do not include node_modules, lock files or git files.

Output strict JSON as a flat array of file path strings:
["package.json", "app/layout.tsx", "app/page.tsx", "components/ui/Button.tsx"]
"""


def build_generation_prompt(
    target_path: str,
    source_context: str,
    related_context: str,
    config: MigrationConfig,
) -> str:
    return f"""Generate the code for one file in a new {config.target_stack} project,
migrating functionality from a legacy codebase.

Target File Path: {target_path}

User Configuration:
{config.describe()}

Legacy Code Context (Reference):
{source_context}

Related Files Context (Definitions/Exports from dependencies):
{related_context}

Instructions:
1. Generate the full content of `{target_path}`.
2. Follow the User Configuration strictly.
3. Use TypeScript, functional components and the selected UI framework.
4. Implement functionality equivalent to the legacy code where applicable.
5. Only import project files that exist in the planned structure or the related context.
6. If the file is `package.json`, include the dependencies the project needs.

Output ONLY the file content. Do not use markdown blocks.
"""


def build_verification_prompt(
    files: list[GeneratedFile],
    analysis_context: str,
    static_issues: list[str],
    pass_number: int,
) -> str:
    snapshot = json.dumps([file.model_dump() for file in files])
    issues = "\n".join(f"- {issue}" for issue in static_issues) or "- none"
    return f"""Verification pass {pass_number}.

Review the generated repository below for cross-file consistency: imports that point at
missing files or missing exports, mismatched component props, broken configuration.

Migration context:
{analysis_context}

Static checker findings:
{issues}

Generated files (JSON array of {{"path", "content"}}):
{snapshot}

Only propose fixes for paths that already exist. Each fix replaces the whole file.
Output strict JSON:
{{
  "passed": true | false,
  "issues": ["description of each remaining issue"],
  "fixedFiles": [{{"path": "existing/path.tsx", "content": "FULL FIXED CONTENT"}}]
}}
"""


def build_diagram_prompt(description: str) -> str:
    return (
        "Create a professional, high-level software architecture diagram.\n"
        "Style: whiteboard, technical, clean lines, blue and white color scheme.\n"
        f"System Description: {description}"
    )
