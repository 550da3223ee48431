from pydantic import BaseModel, ConfigDict, Field
from typing import List, Any, Optional
from enum import Enum


# Node categories
class NodeCategory(str, Enum):
    TRIGGER = "trigger"
    ACTION = "action"
    TRANSFORM = "transform"


# Parameter Types
class ParamType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    OPTIONS = "options"


# Import kinds for the generated project
class ImportKind(str, Enum):
    EXTERNAL = "external-package"
    BUILTIN = "language-builtin"
    LOCAL = "generated-local"


# Dependency buckets for the generated project manifest
class DependencyType(str, Enum):
    DEPENDENCY = "dependency"
    DEV = "devDependency"
    PEER = "peerDependency"


class CatalogModel(BaseModel):
    """Catalog records are immutable once built"""
    model_config = ConfigDict(frozen=True)


# Parameter Definitions
class ParameterDefinition(CatalogModel):
    name: str
    type: ParamType = ParamType.STRING
    required: bool = False
    default: Optional[Any] = None
    options: Optional[List[Any]] = None  # allowed values for OPTIONS parameters
    description: Optional[str] = None


# Credential Definitions
class CredentialField(CatalogModel):
    name: str
    required: bool = True
    sensitive: bool = False  # passwords, tokens, secrets: masked by renderers
    description: Optional[str] = None


class CredentialDefinition(CatalogModel):
    name: str  # credential type name, e.g. "httpBasicAuth"
    required: bool = False
    fields: List[CredentialField] = []
    description: Optional[str] = None

    @property
    def required_fields(self) -> List[CredentialField]:
        return [f for f in self.fields if f.required]


# Import Definitions
class ImportDefinition(CatalogModel):
    module: str
    kind: ImportKind = ImportKind.EXTERNAL
    symbols: List[str] = []  # empty means "import module"
    version: Optional[str] = None  # e.g. "^0.27.0", ">=2.31"
    alias: Optional[str] = None
    package: Optional[str] = None  # distribution name when it differs from the module
    dependency_type: DependencyType = DependencyType.DEPENDENCY

    @property
    def distribution(self) -> str:
        """Name of the package on the index that provides this module"""
        return self.package or self.module.split(".")[0]


# Node Type Models
class NodeTypeDefinition(CatalogModel):
    type: str  # namespaced identifier, e.g. "n8n-nodes-base.httpRequest"
    display_name: str
    category: NodeCategory
    description: str = ""
    parameters: List[ParameterDefinition] = []
    credentials: List[CredentialDefinition] = []
    imports: List[ImportDefinition] = []
    inputs: List[str] = Field(default_factory=lambda: ["main"])
    outputs: List[str] = Field(default_factory=lambda: ["main"])

    def get_parameter(self, name: str) -> Optional[ParameterDefinition]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def get_credential(self, name: str) -> Optional[CredentialDefinition]:
        for cred in self.credentials:
            if cred.name == name:
                return cred
        return None
