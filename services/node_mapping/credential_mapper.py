"""
Credential mapper

Maps a node's credential references onto environment variables the generated
project reads at runtime. Never logs or returns raw secret values.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from core.catalog.models import CredentialDefinition, NodeTypeDefinition
from .models import (
    CredentialReference, CredentialValidation, FieldMapping, IssueKind,
    MappedCredential, ValidationIssue, WorkflowNode,
)

logger = logging.getLogger(__name__)

MASK = "********"

_CAMEL_BOUNDARY = re.compile(r'([a-z0-9])([A-Z])')
_ACRONYM_BOUNDARY = re.compile(r'([A-Z]+)([A-Z][a-z])')
_NON_ALNUM = re.compile(r'[^A-Za-z0-9]+')


def to_upper_snake(name: str) -> str:
    """httpBasicAuth -> HTTP_BASIC_AUTH, OAuth2Api -> O_AUTH2_API"""
    text = _ACRONYM_BOUNDARY.sub(r'\1_\2', name)
    text = _CAMEL_BOUNDARY.sub(r'\1_\2', text)
    return _NON_ALNUM.sub('_', text).strip('_').upper()


def to_env_name(credential_type: str, field: str) -> str:
    return f"{to_upper_snake(credential_type)}_{to_upper_snake(field)}"


def mask_value(value: Any) -> str:
    """Render a secret for templates and logs"""
    if value is None or value == "":
        return ""
    return MASK


def placeholder_for(env_name: str) -> str:
    return f"your_{env_name.lower()}_here"


CredentialData = Dict[str, Dict[str, Any]]


class CredentialMapper:
    """Builds MappedCredential records for nodes"""

    def map_node_credentials(
        self,
        node: WorkflowNode,
        definition: NodeTypeDefinition,
        credentials: Optional[CredentialData] = None,
    ) -> Tuple[List[MappedCredential], List[ValidationIssue]]:
        """
        Map every credential reference on a node, plus required credentials
        the node declares but has no reference for.

        Args:
            node: Workflow node being mapped
            definition: The node's resolved type definition
            credentials: Optional supplied credential data keyed by credential id or name

        Returns:
            (mapped credentials, issues that are not tied to one mapping)
        """
        mapped: List[MappedCredential] = []
        issues: List[ValidationIssue] = []
        referenced = set()

        for reference in node.credentials:
            cred_def = definition.get_credential(reference.type)
            if cred_def is None:
                issues.append(ValidationIssue.of(
                    IssueKind.CREDENTIAL_WARNING,
                    "UNDECLARED_CREDENTIAL",
                    f"Credential type '{reference.type}' is not used by {definition.type}; skipped",
                    node_id=node.id,
                    node_name=node.name,
                    path=reference.type,
                ))
                continue
            referenced.add(reference.type)
            data = _lookup_data(credentials, reference)
            mapped.append(self.map_credential(cred_def, node, reference, data))

        for cred_def in definition.credentials:
            if cred_def.required and cred_def.name not in referenced:
                mapped.append(self.map_credential(cred_def, node, None, None))

        for credential in mapped:
            state = "valid" if credential.validation.valid else f"{len(credential.validation.errors)} errors"
            logger.debug(f"Mapped credential {credential.credential_type} for {node.name}: {state}")

        return mapped, issues

    def map_credential(
        self,
        definition: CredentialDefinition,
        node: WorkflowNode,
        reference: Optional[CredentialReference],
        data: Optional[Dict[str, Any]],
    ) -> MappedCredential:
        fields: List[FieldMapping] = []
        validation = CredentialValidation()

        for cred_field in definition.fields:
            supplied = (data or {}).get(cred_field.name)
            is_set = supplied is not None and supplied != ""
            fields.append(FieldMapping(
                field=cred_field.name,
                env_var=to_env_name(definition.name, cred_field.name),
                required=cred_field.required,
                sensitive=cred_field.sensitive,
                is_set=is_set,
                value=str(supplied) if is_set and not cred_field.sensitive else None,
            ))

            if not cred_field.required or is_set:
                continue
            if reference is None:
                message = (f"Required credential '{definition.name}' is not attached; "
                           f"field '{cred_field.name}' has no value")
            elif data is not None:
                message = f"Credential '{definition.name}' is missing required field '{cred_field.name}'"
            else:
                continue
            validation.errors.append(ValidationIssue.of(
                IssueKind.CREDENTIAL_ERROR,
                "MISSING_CREDENTIAL_FIELD",
                message,
                node_id=node.id,
                node_name=node.name,
                path=f"{definition.name}.{cred_field.name}",
            ))

        validation.valid = not validation.errors
        return MappedCredential(
            credential_type=definition.name,
            credential_id=reference.id if reference else None,
            credential_name=reference.name if reference else None,
            node_id=node.id,
            attached=reference is not None,
            fields=fields,
            validation=validation,
        )


def _lookup_data(credentials: Optional[CredentialData], reference: CredentialReference) -> Optional[Dict[str, Any]]:
    if not credentials:
        return None
    for key in (reference.id, reference.name):
        if key is not None and key in credentials:
            return credentials[key]
    return None
