"""
Dependency generator

Computes the dependency manifest and grouped import statements of the
generated project from the set of node types a workflow uses. The output is
a pure function of that set: input order and duplicates do not matter.
"""

import logging
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from core.catalog.models import DependencyType, ImportKind, NodeCategory, NodeTypeDefinition
from .models import DependencyConflict, GeneratedDependencies, ImportInfo, IssueKind, ValidationIssue

logger = logging.getLogger(__name__)

BASELINE_REQUESTER = "baseline"

# Needed by every generated project regardless of its nodes
BASELINE_DEPENDENCIES: Dict[DependencyType, Dict[str, str]] = {
    DependencyType.DEPENDENCY: {
        "python-dotenv": ">=1.0.0",
        "fastapi": ">=0.110.0",
        "uvicorn": ">=0.29.0",
    },
    DependencyType.DEV: {
        "pytest": ">=8.0.0",
    },
}

DEPENDENCY_DESCRIPTIONS = {
    "python-dotenv": "Loads configuration from .env files",
    "fastapi": "HTTP server for webhooks and health checks",
    "uvicorn": "ASGI server running the FastAPI app",
    "httpx": "HTTP client",
    "slack-sdk": "Slack Web API client",
    "psycopg": "PostgreSQL driver",
    "openai": "OpenAI API client",
    "APScheduler": "Cron and interval scheduling",
    "mini-racer": "Embedded JavaScript engine for Code nodes",
    "pytest": "Test runner",
}

NO_CONSTRAINT = "*"

_CLAUSE = re.compile(r'^(\^|~=|~|===|==|>=|>)?\s*v?(\d+(?:\.\d+)*)')


def _normalize(parts: Tuple[int, ...]) -> Tuple[int, ...]:
    parts = list(parts)
    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def minimum_version(constraint: str) -> Optional[Tuple[int, ...]]:
    """
    Lowest version a constraint admits, or None when it has no lower bound.

    Accepts Poetry-style (^1.2, ~1.2, 1.2) and PEP 440 (>=1.2,<2, ~=1.2, ==1.2.*)
    constraints. "*", "latest" and upper-bound-only constraints have no minimum.
    """
    minimums = []
    for clause in constraint.split(","):
        clause = clause.strip()
        if not clause or clause.startswith(("<", "!=")):
            continue
        match = _CLAUSE.match(clause)
        if match:
            minimums.append(_normalize(tuple(int(p) for p in match.group(2).split("."))))
    return max(minimums) if minimums else None


def resolve_constraint(constraints: Iterable[str]) -> Tuple[str, bool]:
    """
    Pick one constraint among several requested for the same package.

    The highest minimum version wins, ties going to the lexicographically
    greatest text. Constraints without a minimum lose to any that has one.

    Returns:
        (chosen constraint, whether a minimum-based choice was possible)
    """
    distinct = sorted(set(constraints))
    if len(distinct) == 1:
        return distinct[0], True

    ranked = [(minimum_version(c), c) for c in distinct]
    ranked = [(version, text) for version, text in ranked if version is not None]
    if not ranked:
        return distinct[-1], False
    return max(ranked)[1], True


class DependencyGenerator:
    """Builds GeneratedDependencies for a set of node type definitions"""

    def __init__(self, python_version: str = ">=3.10"):
        self.python_version = python_version

    def generate(self, definitions: Iterable[NodeTypeDefinition]) -> GeneratedDependencies:
        unique = {d.type: d for d in definitions}
        ordered = [unique[key] for key in sorted(unique)]

        # (bucket, distribution) -> [(constraint, requester)]
        requests: Dict[Tuple[DependencyType, str], List[Tuple[str, str]]] = defaultdict(list)
        for bucket, packages in BASELINE_DEPENDENCIES.items():
            for package, constraint in packages.items():
                requests[(bucket, package)].append((constraint, BASELINE_REQUESTER))

        # (kind, module, whole-module import) -> merged import
        merged: Dict[Tuple[ImportKind, str, bool], ImportInfo] = {}
        for definition in ordered:
            for imp in definition.imports:
                self._merge_import(merged, imp)
                if imp.kind == ImportKind.EXTERNAL:
                    requests[(imp.dependency_type, imp.distribution)].append(
                        (imp.version or NO_CONSTRAINT, definition.type)
                    )

        result = GeneratedDependencies()
        buckets = {
            DependencyType.DEPENDENCY: {},
            DependencyType.DEV: {},
            DependencyType.PEER: {},
        }
        for (bucket, package), requested in sorted(requests.items(), key=lambda item: (item[0][0].value, item[0][1].lower())):
            buckets[bucket][package] = self._resolve(package, requested, result)

        runtime = buckets[DependencyType.DEPENDENCY]
        result.dependencies = runtime
        result.dev_dependencies = {k: v for k, v in buckets[DependencyType.DEV].items() if k not in runtime}
        result.peer_dependencies = {k: v for k, v in buckets[DependencyType.PEER].items() if k not in runtime}

        for kind in ImportKind:
            infos = sorted(
                (info for key, info in merged.items() if key[0] == kind),
                key=lambda info: (info.module, bool(info.symbols)),
            )
            result.imports[kind.value] = infos
            result.import_statements[kind.value] = [render_import(info) for info in infos]

        result.project_updates = self._project_updates(ordered)

        logger.info(
            f"Generated dependencies for {len(ordered)} node types: "
            f"{len(result.dependencies)} runtime, {len(result.dev_dependencies)} dev, "
            f"{len(result.conflicts)} conflicts"
        )
        return result

    def _merge_import(self, merged, imp) -> None:
        whole_module = not imp.symbols
        key = (imp.kind, imp.module, whole_module)
        existing = merged.get(key)
        if existing is None:
            merged[key] = ImportInfo(
                module=imp.module,
                kind=imp.kind,
                symbols=sorted(set(imp.symbols)),
                alias=imp.alias if whole_module else None,
                version=imp.version,
                package=imp.package,
            )
            return
        existing.symbols = sorted(set(existing.symbols) | set(imp.symbols))
        if existing.alias is None and whole_module:
            existing.alias = imp.alias

    def _resolve(self, package: str, requested: List[Tuple[str, str]], result: GeneratedDependencies) -> str:
        versioned = [(c, who) for c, who in requested if c != NO_CONSTRAINT]
        if not versioned:
            return NO_CONSTRAINT

        constraints = sorted({c for c, _ in versioned})
        resolved, resolvable = resolve_constraint(constraints)
        if len(constraints) > 1:
            conflict = DependencyConflict(
                package=package,
                constraints=constraints,
                resolved=resolved,
                requested_by=sorted({who for _, who in versioned}),
                resolvable=resolvable,
            )
            result.conflicts.append(conflict)
            logger.warning(f"Version conflict for {package}: {constraints}, using {resolved}")
        return resolved

    def _project_updates(self, definitions: List[NodeTypeDefinition]) -> Dict:
        trigger_names = [d.type.rsplit(".", 1)[-1].lower() for d in definitions if d.category == NodeCategory.TRIGGER]
        has_webhook = any("webhook" in name for name in trigger_names)
        has_cron = any("cron" in name or "schedule" in name for name in trigger_names)

        scripts = {
            "start": "python main.py",
            "dev": "uvicorn main:app --reload",
            "test": "pytest",
        }
        if has_webhook:
            scripts["start:webhook"] = "python main.py --mode=webhook"
        if has_cron:
            scripts["start:cron"] = "python main.py --mode=cron"

        return {"scripts": scripts, "requires-python": self.python_version}

    def conflict_warnings(self, dependencies: GeneratedDependencies) -> List[ValidationIssue]:
        warnings = []
        for conflict in dependencies.conflicts:
            if conflict.resolvable:
                message = (f"Package '{conflict.package}' requested as {', '.join(conflict.constraints)} "
                           f"by {', '.join(conflict.requested_by)}; using {conflict.resolved}")
            else:
                message = (f"Package '{conflict.package}' requested as {', '.join(conflict.constraints)} "
                           f"with no minimum version to compare; kept {conflict.resolved}, check manually")
            warnings.append(ValidationIssue.of(
                IssueKind.DEPENDENCY_CONFLICT, "DEPENDENCY_CONFLICT", message, path=conflict.package,
            ))
        return warnings


def render_import(info: ImportInfo) -> str:
    """import m | import m as a | from m import a, b"""
    if info.symbols:
        return f"from {info.module} import {', '.join(info.symbols)}"
    if info.alias:
        return f"import {info.module} as {info.alias}"
    return f"import {info.module}"


def generate_dependency_documentation(dependencies: GeneratedDependencies) -> str:
    """Markdown section describing the generated project's dependencies"""
    sections = ["## Dependencies\n", "This project uses the following dependencies:\n"]

    if dependencies.dependencies:
        sections.append("### Runtime Dependencies\n")
        for name, version in dependencies.dependencies.items():
            description = DEPENDENCY_DESCRIPTIONS.get(name, "Required dependency")
            sections.append(f"- **{name}** ({version}): {description}")
        sections.append("")

    if dependencies.dev_dependencies:
        sections.append("### Development Dependencies\n")
        for name, version in dependencies.dev_dependencies.items():
            description = DEPENDENCY_DESCRIPTIONS.get(name, "Development dependency")
            sections.append(f"- **{name}** ({version}): {description}")
        sections.append("")

    return "\n".join(sections)
