"""
formwright Intermediate Representation (IR) types.

The compiled form tree (FormAST and friends) and the signing workflow
records (FormInstance, Signatory, AccessLink). All types are re-exported
from this package.
"""

# Conditions
from .conditions import (
    ComparisonOperator,
    Condition,
)

# Fields
from .fields import (
    CHOICE_TYPES,
    NUMERIC_TYPES,
    STRING_TYPES,
    TEMPORAL_TYPES,
    FieldOption,
    FieldType,
    FormField,
)

# Document structure
from .form import (
    ConditionalBlock,
    Divider,
    FieldContainer,
    FormAST,
    FormConfig,
    FormMetadata,
    Page,
    Section,
)

# Instances and signing
from .instances import (
    EDITABLE_STATUSES,
    AccessLink,
    FormInstance,
    FormInstanceStatus,
    Signatory,
    SignatureData,
    SignatureType,
    SigningMode,
)

__all__ = [
    # Conditions
    "ComparisonOperator",
    "Condition",
    # Fields
    "CHOICE_TYPES",
    "NUMERIC_TYPES",
    "STRING_TYPES",
    "TEMPORAL_TYPES",
    "FieldOption",
    "FieldType",
    "FormField",
    # Document structure
    "ConditionalBlock",
    "Divider",
    "FieldContainer",
    "FormAST",
    "FormConfig",
    "FormMetadata",
    "Page",
    "Section",
    # Instances and signing
    "EDITABLE_STATUSES",
    "AccessLink",
    "FormInstance",
    "FormInstanceStatus",
    "Signatory",
    "SignatureData",
    "SignatureType",
    "SigningMode",
]
