"""Static lookup tables applied while resolving Starknet schemas.

These are specification-specific patches, matched by exact name only. They
are bundled into a Tables value that is passed explicitly into the resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .ir import Codec, FieldType

_FELT = FieldType("Felt", Codec("UfeHex"))

# Schemas mapped straight to a hand-written or runtime type instead of being
# generated. Keyed by raw schema name.
FIELD_TYPE_OVERRIDES: Mapping[str, FieldType] = MappingProxyType({
    "ADDRESS": _FELT,
    "STORAGE_KEY": _FELT,
    "TXN_HASH": _FELT,
    "FELT": _FELT,
    "BLOCK_HASH": _FELT,
    "CHAIN_ID": _FELT,
    "PROTOCOL_VERSION": _FELT,
    "ETH_ADDRESS": FieldType("EthAddress"),
    "EXECUTION_RESULT": FieldType("ExecutionResult"),
    "BLOCK_NUMBER": FieldType("int"),
    "NUM_AS_HEX": FieldType("int", Codec("NumAsHex")),
    "SIGNATURE": FieldType("list[Felt]", Codec("list[UfeHex]")),
    "EVENT_KEYS": FieldType("list[list[Felt]]", Codec("list[list[UfeHex]]")),
    "NODE_HASH_TO_NODE_MAPPING": FieldType("dict[Felt, MerkleNode]", Codec("MerkleNodeMap")),
    "CONTRACT_ABI": FieldType("list[LegacyContractAbiEntry]"),
    "CONTRACT_ENTRY_POINT_LIST": FieldType("list[ContractEntryPoint]"),
    "LEGACY_CONTRACT_ENTRY_POINT_LIST": FieldType("list[LegacyContractEntryPoint]"),
    "TXN_TYPE": FieldType("str"),
    "NESTED_CALL": FieldType("FunctionInvocation"),
    "HASH_256": FieldType("Hash256"),
    "L1_TXN_HASH": FieldType("Hash256"),
    "u64": FieldType("int", Codec("NumAsHex")),
    "u128": FieldType("int", Codec("NumAsHex")),
    "SUBSCRIPTION_BLOCK_ID": FieldType("ConfirmedBlockId"),
    "TXN_STATUS_RESULT": FieldType("TransactionStatus"),
})

# Renames applied after pascal-casing (and Txn -> Transaction).
TYPE_RENAMES: Mapping[str, str] = MappingProxyType({
    "CommonTransactionProperties": "TransactionMeta",
    "CommonReceiptProperties": "TransactionReceiptMeta",
    "InvokeTransactionReceiptProperties": "InvokeTransactionReceiptData",
    "PendingCommonReceiptProperties": "PendingTransactionReceiptMeta",
    "SierraContractClass": "FlattenedSierraClass",
    "LegacyContractClass": "CompressedLegacyContractClass",
    "DeprecatedContractClass": "CompressedLegacyContractClass",
    "ContractAbiEntry": "LegacyContractAbiEntry",
    "FunctionAbiEntry": "LegacyFunctionAbiEntry",
    "EventAbiEntry": "LegacyEventAbiEntry",
    "StructAbiEntry": "LegacyStructAbiEntry",
    "FunctionAbiType": "LegacyFunctionAbiType",
    "EventAbiType": "LegacyEventAbiType",
    "StructAbiType": "LegacyStructAbiType",
    "StructMember": "LegacyStructMember",
    "TypedParameter": "LegacyTypedParameter",
    "DeprecatedEntryPointsByType": "LegacyEntryPointsByType",
    "DeprecatedCairoEntryPoint": "LegacyContractEntryPoint",
    "DaMode": "DataAvailabilityMode",
    "L1DaMode": "L1DataAvailabilityMode",
    "TransactionStatus": "SequencerTransactionStatus",
})

# Field names for non-flattened allOf fragments whose lowercased schema name
# would be ambiguous.
ALL_OF_FIELD_NAMES: Mapping[str, str] = MappingProxyType({
    "TXN_RECEIPT": "receipt",
    "RECEIPT_BLOCK": "block",
})

# The flatten analysis does not look at method params, so these schemas look
# flatten-only while methods still reference them directly.
NON_FLATTEN_SCHEMAS: frozenset[str] = frozenset({
    "FUNCTION_CALL",
    "PENDING_STATE_UPDATE",
    "BLOCK_HEADER",
})

# Documentation word substitutions; the flag marks a case-insensitive match.
DOC_SUBSTITUTIONS: tuple[tuple[str, str, bool], ...] = (
    (r"\bethereum\b", "Ethereum", True),
    (r"\bstarknet\b", "Starknet", True),
    (r"\bstarknet\.io\b", "starknet.io", True),
    (r"\bl1\b", "L1", False),
    (r"\bl2\b", "L2", False),
    (r"\bunix\b", "Unix", False),
)


@dataclass(frozen=True)
class Tables:
    """Every override table the resolver consults."""

    field_type_overrides: Mapping[str, FieldType] = field(default_factory=lambda: FIELD_TYPE_OVERRIDES)
    type_renames: Mapping[str, str] = field(default_factory=lambda: TYPE_RENAMES)
    all_of_field_names: Mapping[str, str] = field(default_factory=lambda: ALL_OF_FIELD_NAMES)
    non_flatten_schemas: frozenset[str] = field(default=NON_FLATTEN_SCHEMAS)
    doc_substitutions: tuple[tuple[str, str, bool], ...] = DOC_SUBSTITUTIONS


DEFAULT_TABLES = Tables()
