"""
Node mapper

Orchestrates one mapping run: validates the workflow graph, maps every
supported node (parameters, credentials), then aggregates the environment
manifest, credential templates and dependencies into a MappingResult.

A run moves Received -> Validated -> PerNodeMapped -> Aggregated -> Done, or
ends Failed at a validation gate. Content problems are recorded in the
validation report; map_workflow does not raise for them.
"""

import keyword
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from core.catalog import NodeRegistry, NodeTypeDefinition, register_builtin_node_types
from core.catalog.models import NodeCategory
from core.config import Settings
from core.errors import WorkflowParseError
from .credential_mapper import CredentialData, CredentialMapper, placeholder_for, to_upper_snake
from .dependency_generator import DependencyGenerator
from .graph import WorkflowGraph
from .models import (
    CredentialTemplate, EnvSource, EnvironmentVariable, IssueKind, MappedNode,
    MappingResult, MappingStatus, MappingSummary, OutputAccessor, ValidationIssue,
    ValidationReport, WorkflowData, WorkflowNode,
)
from .parameter_transformer import ParameterTransformer, TransformationContext

logger = logging.getLogger(__name__)

WorkflowInput = Union[WorkflowData, Dict[str, Any]]

_CAMEL_BOUNDARY = re.compile(r'([a-z0-9])([A-Z])')
_NON_IDENTIFIER = re.compile(r'[^0-9a-zA-Z]+')


def to_variable_name(name: str) -> str:
    """Python-safe snake_case variable for a node name"""
    text = _NON_IDENTIFIER.sub('_', _CAMEL_BOUNDARY.sub(r'\1_\2', name)).strip('_').lower()
    if not text:
        text = "node"
    if text[0].isdigit():
        text = f"node_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_node"
    return text


class NodeMapper:
    """
    Maps workflow graphs to code-generation-ready data.

    The registry is read once per run through a snapshot, so runs may execute
    in parallel with each other and with registrations.
    """

    def __init__(self, registry: NodeRegistry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or Settings()
        self.parameter_transformer = ParameterTransformer()
        self.credential_mapper = CredentialMapper()
        self.dependency_generator = DependencyGenerator(self.settings.generated_python_version)

    def map_workflow(
        self,
        workflow: WorkflowInput,
        strict: Optional[bool] = None,
        credentials: Optional[CredentialData] = None,
    ) -> MappingResult:
        """
        Map a workflow.

        Args:
            workflow: WorkflowData, or a parsed n8n workflow document
            strict: Fail on any unsupported type or structural error;
                defaults to settings.strict_mode
            credentials: Optional credential data keyed by credential id or name,
                used only to tell which variables are already set

        Returns:
            MappingResult with status done, or failed with the reasons in
            validation.errors
        """
        strict = self.settings.strict_mode if strict is None else strict
        report = ValidationReport()

        # Received
        if not isinstance(workflow, WorkflowData):
            try:
                workflow = WorkflowData.from_n8n(workflow)
            except WorkflowParseError as e:
                self._record(report, ValidationIssue.of(IssueKind.STRUCTURAL_ERROR, "INVALID_DOCUMENT", e.message))
                return self._failed(report, MappingSummary())

        types = self.registry.snapshot()
        summary = self._summarize(workflow, types)
        logger.info(
            f"Mapping workflow '{workflow.name or 'unnamed'}': {len(workflow.nodes)} nodes, "
            f"{len(workflow.connections)} connections, strict={strict}"
        )

        if not workflow.nodes:
            self._record(report, ValidationIssue.of(
                IssueKind.STRUCTURAL_ERROR, "EMPTY_WORKFLOW", "Workflow has no nodes"))
            return self._failed(report, summary)

        # Validated
        graph = WorkflowGraph(workflow)
        self._validate(workflow, graph, types, report)
        if strict and report.errors:
            logger.info(f"Strict mode: failing with {len(report.errors)} errors")
            return self._failed(report, summary)

        # PerNodeMapped
        nodes_by_id: Dict[str, WorkflowNode] = {}
        for node in workflow.nodes:
            nodes_by_id.setdefault(node.id, node)
        accessors = self._build_accessors(list(nodes_by_id.values()))
        node_names = set(workflow.node_names())

        mapped_nodes: List[MappedNode] = []
        parameter_env: Dict[str, List[str]] = {}
        for node_id in graph.execution_order():
            node = nodes_by_id[node_id]
            definition = types.get(node.type)
            if definition is None:
                continue
            mapped, env_names = self._map_node(node, definition, graph, accessors, node_names, credentials)
            mapped_nodes.append(mapped)
            parameter_env[node.id] = env_names
            for issue in mapped.errors + mapped.warnings:
                self._record(report, issue)

        # Aggregated
        environment, templates = self._aggregate_environment(mapped_nodes, parameter_env)
        dependencies = self.dependency_generator.generate(
            {node.definition.type: node.definition for node in mapped_nodes}.values()
        )
        for issue in self.dependency_generator.conflict_warnings(dependencies):
            self._record(report, issue)
        self._add_summary_warnings(mapped_nodes, environment, templates, report)

        result = MappingResult(
            status=MappingStatus.DONE,
            nodes=mapped_nodes,
            environment_variables=environment,
            credential_templates=templates,
            dependencies=dependencies,
            validation=report,
            summary=summary,
            execution_order=[node.id for node in mapped_nodes],
        )
        logger.info(
            f"Mapped {len(mapped_nodes)}/{len(workflow.nodes)} nodes: "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings, "
            f"{len(environment)} environment variables"
        )
        return result

    def get_workflow_mapping_stats(self, workflow: WorkflowInput) -> Dict[str, Any]:
        """Support statistics without mapping anything"""
        if not isinstance(workflow, WorkflowData):
            workflow = WorkflowData.from_n8n(workflow)
        summary = self._summarize(workflow, self.registry.snapshot())
        unsupported = list(dict.fromkeys(
            node.type for node in workflow.nodes if not self.registry.is_supported(node.type)
        ))
        return {
            "total_nodes": summary.total_nodes,
            "supported_nodes": summary.supported_nodes,
            "unsupported_nodes": summary.unsupported_nodes,
            "unsupported_node_types": unsupported,
            "supported_percentage": summary.supported_percentage,
        }

    def _record(self, report: ValidationReport, issue: ValidationIssue) -> None:
        logger.warning(str(issue))
        report.add(issue)

    def _failed(self, report: ValidationReport, summary: MappingSummary) -> MappingResult:
        return MappingResult(status=MappingStatus.FAILED, validation=report, summary=summary)

    def _summarize(self, workflow: WorkflowData, types: Mapping[str, NodeTypeDefinition]) -> MappingSummary:
        summary = MappingSummary(total_nodes=len(workflow.nodes), connections=len(workflow.connections))
        for node in workflow.nodes:
            definition = types.get(node.type)
            if definition is None:
                summary.unsupported_nodes += 1
                continue
            summary.supported_nodes += 1
            if definition.category == NodeCategory.TRIGGER:
                summary.trigger_nodes += 1
            elif definition.category == NodeCategory.ACTION:
                summary.action_nodes += 1
            else:
                summary.transform_nodes += 1
        return summary

    def _validate(self, workflow: WorkflowData, graph: WorkflowGraph,
                  types: Mapping[str, NodeTypeDefinition], report: ValidationReport) -> None:
        seen: Set[str] = set()
        for node in workflow.nodes:
            if node.id in seen:
                self._record(report, ValidationIssue.of(
                    IssueKind.STRUCTURAL_ERROR, "DUPLICATE_NODE_ID",
                    f"Node id '{node.id}' is used more than once",
                    node_id=node.id, node_name=node.name,
                ))
            seen.add(node.id)

        for conn in graph.orphans:
            missing = [end for end in (conn.source, conn.target) if end not in seen]
            self._record(report, ValidationIssue.of(
                IssueKind.STRUCTURAL_ERROR, "ORPHAN_CONNECTION",
                f"Connection {conn.source} -> {conn.target} references missing node "
                f"{', '.join(repr(m) for m in missing)}",
            ))

        for node in workflow.nodes:
            if node.type not in types:
                if node.type not in report.unsupported_nodes:
                    report.unsupported_nodes.append(node.type)
                self._record(report, ValidationIssue.of(
                    IssueKind.UNSUPPORTED_TYPE, "UNSUPPORTED_NODE_TYPE",
                    f"Node type '{node.type}' is not supported",
                    node_id=node.id, node_name=node.name,
                ))

        for cycle in graph.find_cycles():
            names = [graph.name_of(node_id) for node_id in cycle]
            self._record(report, ValidationIssue.of(
                IssueKind.GRAPH_WARNING, "CYCLE_DETECTED",
                f"Cycle detected: {' -> '.join(names + names[:1])}",
            ))

        if len(workflow.nodes) > self.settings.max_workflow_nodes:
            self._record(report, ValidationIssue.of(
                IssueKind.GRAPH_WARNING, "LARGE_WORKFLOW",
                f"Workflow has {len(workflow.nodes)} nodes, more than the configured "
                f"maximum of {self.settings.max_workflow_nodes}",
            ))

    def _build_accessors(self, nodes: List[WorkflowNode]) -> Dict[str, OutputAccessor]:
        base_names = [to_variable_name(node.name) for node in nodes]
        counts: Dict[str, int] = {}
        for name in base_names:
            counts[name] = counts.get(name, 0) + 1

        accessors = {}
        for node, name in zip(nodes, base_names):
            if counts[name] > 1:
                name = f"{name}_{to_upper_snake(node.id).lower() or 'node'}"
            accessors[node.id] = OutputAccessor(node_id=node.id, node_name=node.name, variable=name)
        return accessors

    def _map_node(self, node: WorkflowNode, definition: NodeTypeDefinition, graph: WorkflowGraph,
                  accessors: Dict[str, OutputAccessor], node_names: Set[str],
                  credentials: Optional[CredentialData]):
        context = TransformationContext(
            node_id=node.id,
            node_name=node.name,
            accessors={graph.name_of(a): accessors[a] for a in graph.ancestors(node.id)},
            node_names=node_names,
            cyclic_names={graph.name_of(p) for p in graph.cycle_peers(node.id)},
            direct_inputs=[graph.name_of(i) for i in graph.direct_inputs(node.id)],
        )
        transformation = self.parameter_transformer.transform(node.parameters, definition.parameters, context)
        mapped_credentials, credential_issues = self.credential_mapper.map_node_credentials(
            node, definition, credentials)

        errors = list(transformation.errors)
        warnings = list(transformation.warnings) + credential_issues
        for credential in mapped_credentials:
            errors.extend(credential.validation.errors)
            warnings.extend(credential.validation.warnings)

        if node.disabled:
            warnings.append(ValidationIssue.of(
                IssueKind.GRAPH_WARNING, "NODE_DISABLED",
                "Node is disabled in the workflow; it is mapped but may be skipped at runtime",
                node_id=node.id, node_name=node.name,
            ))

        logger.debug(
            f"Mapped node {node.name} ({node.type}): {len(transformation.parameters)} parameters, "
            f"{len(mapped_credentials)} credentials"
        )
        mapped = MappedNode(
            id=node.id,
            name=node.name,
            type=node.type,
            type_version=node.type_version,
            definition=definition,
            parameters=transformation.parameters,
            credentials=mapped_credentials,
            environment_variables=list(transformation.environment_variables),
            accessor=accessors[node.id],
            upstream=graph.direct_inputs(node.id),
            disabled=node.disabled,
            errors=errors,
            warnings=warnings,
        )
        return mapped, transformation.environment_variables

    def _aggregate_environment(self, mapped_nodes: List[MappedNode], parameter_env: Dict[str, List[str]]):
        environment: Dict[str, EnvironmentVariable] = {}
        templates: Dict[str, CredentialTemplate] = {}
        claimed: Dict[str, str] = {}  # variable -> owner
        final_names: Dict[Tuple[str, str], str] = {}  # (owner, field) -> variable

        # Names written in expressions are fixed, so they are claimed first
        for node in mapped_nodes:
            for name in parameter_env.get(node.id, []):
                claimed[name] = "$env"
                variable = environment.get(name)
                if variable is None:
                    environment[name] = EnvironmentVariable(
                        name=name,
                        description=f"Referenced by an expression in {node.name}",
                        required=True,
                        example=placeholder_for(name),
                        source=EnvSource.PARAMETER,
                        owners=[node.id],
                    )
                elif node.id not in variable.owners:
                    variable.owners.append(node.id)

        for node in mapped_nodes:
            for credential in node.credentials:
                owner = credential.owner_key
                template = templates.get(owner)
                if template is None:
                    template = templates[owner] = CredentialTemplate(
                        credential_type=credential.credential_type,
                        credential_id=credential.credential_id,
                        credential_name=credential.credential_name,
                    )
                if node.id not in template.node_ids:
                    template.node_ids.append(node.id)

                for mapping in credential.fields:
                    name = final_names.get((owner, mapping.field))
                    if name is None:
                        name = self._claim_name(mapping.env_var, owner, node.id, claimed)
                        final_names[(owner, mapping.field)] = name
                    mapping.env_var = name
                    template.fields[mapping.field] = name
                    if mapping.sensitive and mapping.field not in template.sensitive_fields:
                        template.sensitive_fields.append(mapping.field)
                    self._merge_credential_variable(environment, name, mapping, credential, node)

                node.environment_variables = sorted(
                    set(node.environment_variables) | {m.env_var for m in credential.fields}
                )

        environment = {name: environment[name] for name in sorted(environment)}
        return environment, templates

    def _claim_name(self, base: str, owner: str, node_id: str, claimed: Dict[str, str]) -> str:
        """
        Variable name for one credential field, unique across the manifest.

        A taken name gets the id of the first node using the credential,
        then a counter until the name is free or already this owner's.
        """
        name = base
        if claimed.get(name, owner) != owner:
            suffixed = f"{base}_{to_upper_snake(node_id)}"
            name = suffixed
            counter = 2
            while claimed.get(name, owner) != owner:
                name = f"{suffixed}_{counter}"
                counter += 1
            logger.debug(f"Environment variable {base} taken, using {name}")
        claimed[name] = owner
        return name

    def _merge_credential_variable(self, environment, name, mapping, credential, node) -> None:
        variable = environment.get(name)
        if variable is None:
            environment[name] = EnvironmentVariable(
                name=name,
                description=f"{mapping.field} for {credential.credential_type} credential",
                required=mapping.required,
                sensitive=mapping.sensitive,
                is_set=mapping.is_set,
                value=None if mapping.sensitive else mapping.value,
                example=placeholder_for(name),
                source=EnvSource.CREDENTIAL,
                owners=[node.id],
            )
            return
        variable.required = variable.required or mapping.required
        variable.is_set = variable.is_set or mapping.is_set
        if variable.value is None and not variable.sensitive:
            variable.value = mapping.value
        if node.id not in variable.owners:
            variable.owners.append(node.id)

    def _add_summary_warnings(self, mapped_nodes: List[MappedNode], environment: Dict[str, EnvironmentVariable],
                              templates: Dict[str, CredentialTemplate], report: ValidationReport) -> None:
        if not any(node.category == NodeCategory.TRIGGER for node in mapped_nodes):
            self._record(report, ValidationIssue.of(
                IssueKind.GRAPH_WARNING, "NO_TRIGGER",
                "No trigger nodes found. The workflow will need to be started manually.",
            ))

        unset = [variable for variable in environment.values() if not variable.is_set]
        if unset:
            self._record(report, ValidationIssue.of(
                IssueKind.GRAPH_WARNING, "ENVIRONMENT_VARIABLES_REQUIRED",
                f"{len(unset)} environment variables need to be configured",
            ))

        credential_fields = sum(len(template.fields) for template in templates.values())
        if credential_fields:
            self._record(report, ValidationIssue.of(
                IssueKind.GRAPH_WARNING, "CREDENTIALS_REQUIRED",
                f"{credential_fields} credential fields need to be configured",
            ))


def create_node_mapper(settings: Optional[Settings] = None) -> NodeMapper:
    """Build a mapper over a fresh registry holding the built-in node types"""
    settings = settings or Settings()
    registry = NodeRegistry(settings.registry_overwrite_policy)
    register_builtin_node_types(registry)
    return NodeMapper(registry, settings)
