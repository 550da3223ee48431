"""
Data models for the node mapping service.

Input side: WorkflowData and its nodes/connections, immutable once built.
Output side: MappedNode, MappingResult and the pieces they aggregate.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_serializer

from core.catalog.models import ImportKind, NodeCategory, NodeTypeDefinition
from core.errors import WorkflowParseError
from .expressions.ast_nodes import serialize_value


# ---------------------------------------------------------------------------
# Workflow input
# ---------------------------------------------------------------------------

class WorkflowModel(BaseModel):
    """Workflow input is a snapshot and never mutated"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CredentialReference(WorkflowModel):
    """A node's pointer at a stored credential"""
    type: str
    id: Optional[str] = None
    name: Optional[str] = None

    @property
    def key(self) -> str:
        return self.id or self.name or self.type


class WorkflowNode(WorkflowModel):
    id: str
    name: str
    type: str
    type_version: Union[int, float] = Field(default=1, alias="typeVersion")
    position: Optional[List[float]] = None  # cosmetic, ignored by mapping
    parameters: Dict[str, Any] = {}
    credentials: List[CredentialReference] = []
    disabled: bool = False


class WorkflowConnection(WorkflowModel):
    """(source, output slot) -> (target, input slot); endpoints are node ids"""
    source: str
    target: str
    source_output: str = "main"
    source_index: int = 0
    target_input: str = "main"
    target_index: int = 0


class WorkflowData(WorkflowModel):
    nodes: List[WorkflowNode] = []
    connections: List[WorkflowConnection] = []
    name: Optional[str] = None
    settings: Dict[str, Any] = {}

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def node_names(self) -> List[str]:
        return [node.name for node in self.nodes]

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @classmethod
    def from_n8n(cls, document: Dict[str, Any]) -> "WorkflowData":
        """
        Build WorkflowData from a parsed n8n workflow JSON document.

        Connection endpoints are given by node name in n8n exports; they are
        resolved to node ids by name first, then by id. Endpoints that match
        neither are kept verbatim so validation can report them as orphans.

        Raises:
            WorkflowParseError: if the document does not have the n8n shape
        """
        if not isinstance(document, dict):
            raise WorkflowParseError("Workflow document must be a JSON object")

        raw_nodes = document.get("nodes")
        if not isinstance(raw_nodes, list):
            raise WorkflowParseError("Workflow document must have a 'nodes' array")

        raw_connections = document.get("connections") or {}
        if not isinstance(raw_connections, dict):
            raise WorkflowParseError("Workflow 'connections' must be an object keyed by source node")

        try:
            nodes = [_parse_node(raw, index) for index, raw in enumerate(raw_nodes)]
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            raise WorkflowParseError("Invalid node in workflow document", {"errors": errors}) from e

        name_to_id = {node.name: node.id for node in nodes}

        def resolve(reference: str) -> str:
            return name_to_id.get(reference, reference)

        connections = []
        for source_ref, outputs in raw_connections.items():
            if not isinstance(outputs, dict):
                raise WorkflowParseError(f"Connections of '{source_ref}' must be an object keyed by output type")
            for output_type, slots in outputs.items():
                if not isinstance(slots, list):
                    raise WorkflowParseError(f"Output '{output_type}' of '{source_ref}' must be an array")
                for slot_index, slot in enumerate(slots):
                    # Flat lists of targets are treated as output slot 0
                    targets = [slot] if isinstance(slot, dict) else (slot or [])
                    output_index = 0 if isinstance(slot, dict) else slot_index
                    for target in targets:
                        if not isinstance(target, dict) or "node" not in target:
                            raise WorkflowParseError(
                                f"Connection target from '{source_ref}' must be an object with a 'node' field"
                            )
                        try:
                            target_index = int(target.get("index", 0))
                        except (TypeError, ValueError) as e:
                            raise WorkflowParseError(
                                f"Connection target index from '{source_ref}' must be an integer",
                                {"index": str(target.get("index"))},
                            ) from e
                        connections.append(WorkflowConnection(
                            source=resolve(str(source_ref)),
                            source_output=str(output_type),
                            source_index=output_index,
                            target=resolve(str(target["node"])),
                            target_input=str(target.get("type", "main")),
                            target_index=target_index,
                        ))

        return cls(
            nodes=nodes,
            connections=connections,
            name=document.get("name"),
            settings=document.get("settings") or {},
        )


def _parse_node(raw: Any, index: int) -> WorkflowNode:
    if not isinstance(raw, dict):
        raise WorkflowParseError(f"Node #{index} must be a JSON object")
    if "type" not in raw:
        raise WorkflowParseError(f"Node #{index} has no 'type'")

    data = dict(raw)
    # Older exports carry no ids; the display name is unique within a workflow
    data.setdefault("id", data.get("name") or f"node-{index}")
    data.setdefault("name", data["id"])
    data["id"] = str(data["id"])
    data["parameters"] = data.get("parameters") or {}
    data["credentials"] = _parse_credentials(data.get("credentials"))
    return WorkflowNode.model_validate(data)


def _parse_credentials(raw: Any) -> List[CredentialReference]:
    if not raw:
        return []
    if not isinstance(raw, dict):
        raise WorkflowParseError("Node 'credentials' must be an object keyed by credential type")

    references = []
    for cred_type, value in raw.items():
        if isinstance(value, dict):
            cred_id = value.get("id")
            references.append(CredentialReference(
                type=cred_type,
                id=str(cred_id) if cred_id is not None else None,
                name=value.get("name"),
            ))
        else:
            # Legacy shape: {"httpBasicAuth": "my-basic-auth"}
            references.append(CredentialReference(type=cred_type, name=str(value)))
    return references


# ---------------------------------------------------------------------------
# Validation report
# ---------------------------------------------------------------------------

class IssueKind(str, Enum):
    STRUCTURAL_ERROR = "StructuralError"
    UNSUPPORTED_TYPE = "UnsupportedTypeError"
    PARAMETER_WARNING = "ParameterValidationWarning"
    PARAMETER_ERROR = "ParameterValidationError"
    CREDENTIAL_ERROR = "CredentialValidationError"
    CREDENTIAL_WARNING = "CredentialValidationWarning"
    DEPENDENCY_CONFLICT = "DependencyConflictWarning"
    GRAPH_WARNING = "GraphWarning"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


_ERROR_KINDS = {
    IssueKind.STRUCTURAL_ERROR,
    IssueKind.UNSUPPORTED_TYPE,
    IssueKind.PARAMETER_ERROR,
    IssueKind.CREDENTIAL_ERROR,
}


class ValidationIssue(BaseModel):
    kind: IssueKind
    severity: Severity
    code: str
    message: str
    node_id: Optional[str] = None
    node_name: Optional[str] = None
    path: Optional[str] = None

    @classmethod
    def of(
        cls,
        kind: IssueKind,
        code: str,
        message: str,
        node_id: Optional[str] = None,
        node_name: Optional[str] = None,
        path: Optional[str] = None,
    ) -> "ValidationIssue":
        """Build an issue whose severity follows from its kind"""
        severity = Severity.ERROR if kind in _ERROR_KINDS else Severity.WARNING
        return cls(kind=kind, severity=severity, code=code, message=message,
                   node_id=node_id, node_name=node_name, path=path)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        where = f"{self.node_name}: " if self.node_name else ""
        return f"[{self.code}] {where}{self.message}"


class ValidationReport(BaseModel):
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []
    unsupported_nodes: List[str] = []

    @computed_field
    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, issue: ValidationIssue) -> None:
        if issue.is_error:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def extend(self, issues: List[ValidationIssue]) -> None:
        for issue in issues:
            self.add(issue)

    def of_kind(self, kind: IssueKind) -> List[ValidationIssue]:
        return [i for i in self.errors + self.warnings if i.kind == kind]


# ---------------------------------------------------------------------------
# Credentials and environment
# ---------------------------------------------------------------------------

class EnvSource(str, Enum):
    CREDENTIAL = "credential"
    PARAMETER = "parameter"


class FieldMapping(BaseModel):
    field: str
    env_var: str
    required: bool = True
    sensitive: bool = False
    is_set: bool = False
    value: Optional[str] = None  # supplied non-sensitive value only


class CredentialValidation(BaseModel):
    valid: bool = True
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []


class MappedCredential(BaseModel):
    credential_type: str
    credential_id: Optional[str] = None
    credential_name: Optional[str] = None
    node_id: str
    attached: bool = True  # False when a required credential had no reference
    fields: List[FieldMapping] = []
    validation: CredentialValidation = Field(default_factory=CredentialValidation)

    @property
    def owner_key(self) -> str:
        """Identity used to decide whether two mappings share variables"""
        return f"{self.credential_type}:{self.credential_id or self.credential_name or ''}"

    @property
    def environment_variables(self) -> Dict[str, str]:
        return {fm.field: fm.env_var for fm in self.fields}


class CredentialTemplate(BaseModel):
    credential_type: str
    credential_id: Optional[str] = None
    credential_name: Optional[str] = None
    node_ids: List[str] = []
    fields: Dict[str, str] = {}  # field -> environment variable
    sensitive_fields: List[str] = []


class EnvironmentVariable(BaseModel):
    name: str
    description: str = ""
    required: bool = True
    sensitive: bool = False
    is_set: bool = False
    value: Optional[str] = None  # never holds sensitive values
    example: str = ""
    source: EnvSource = EnvSource.CREDENTIAL
    owners: List[str] = []


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

class ImportInfo(BaseModel):
    module: str
    kind: ImportKind
    symbols: List[str] = []
    alias: Optional[str] = None
    version: Optional[str] = None
    package: Optional[str] = None


class DependencyConflict(BaseModel):
    package: str
    constraints: List[str]
    resolved: str
    requested_by: List[str] = []
    resolvable: bool = True


class GeneratedDependencies(BaseModel):
    dependencies: Dict[str, str] = {}
    dev_dependencies: Dict[str, str] = {}
    peer_dependencies: Dict[str, str] = {}
    imports: Dict[str, List[ImportInfo]] = {}
    import_statements: Dict[str, List[str]] = {}
    conflicts: List[DependencyConflict] = []
    project_updates: Dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Mapping output
# ---------------------------------------------------------------------------

class OutputAccessor(BaseModel):
    """How generated code reads a node's output"""
    node_id: str
    node_name: str
    variable: str


class MappedNode(BaseModel):
    id: str
    name: str
    type: str
    type_version: Union[int, float] = 1
    definition: NodeTypeDefinition
    parameters: Dict[str, Any] = {}
    credentials: List[MappedCredential] = []
    environment_variables: List[str] = []
    accessor: OutputAccessor
    upstream: List[str] = []
    disabled: bool = False
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    @field_serializer("parameters")
    def serialize_parameters(self, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return serialize_value(parameters)

    @property
    def category(self) -> NodeCategory:
        return self.definition.category

    @computed_field
    @property
    def valid(self) -> bool:
        return not self.errors


class MappingStatus(str, Enum):
    DONE = "done"
    FAILED = "failed"


class MappingSummary(BaseModel):
    total_nodes: int = 0
    supported_nodes: int = 0
    unsupported_nodes: int = 0
    trigger_nodes: int = 0
    action_nodes: int = 0
    transform_nodes: int = 0
    connections: int = 0

    @computed_field
    @property
    def supported_percentage(self) -> float:
        if not self.total_nodes:
            return 0.0
        return round(self.supported_nodes / self.total_nodes * 100, 2)


class MappingResult(BaseModel):
    status: MappingStatus = MappingStatus.DONE
    nodes: List[MappedNode] = []
    environment_variables: Dict[str, EnvironmentVariable] = {}
    credential_templates: Dict[str, CredentialTemplate] = {}
    dependencies: GeneratedDependencies = Field(default_factory=GeneratedDependencies)
    validation: ValidationReport = Field(default_factory=ValidationReport)
    summary: MappingSummary = Field(default_factory=MappingSummary)
    execution_order: List[str] = []

    @property
    def failed(self) -> bool:
        return self.status == MappingStatus.FAILED

    def get_node(self, node_id: str) -> Optional[MappedNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def required_environment_variables(self) -> List[EnvironmentVariable]:
        return [env for env in self.environment_variables.values() if env.required]
