"""Shared fixtures: a small Starknet-like spec, a profile and a loader.

The sample spec exercises every shape the generator handles: overridden
primitives, string enums and oneOf enums, an unsupported oneOf, flattened
allOf fragments, fixed and shared fields, a base64 payload, a wrapper, and
methods with zero, several and optional parameters.
"""

from __future__ import annotations

import copy
import importlib.util
import sys
from typing import Any

import pytest

from starknet_codegen import codegen
from starknet_codegen.loader import parse_spec
from starknet_codegen.profiles import GenerationProfile
from starknet_codegen.resolver import resolve_types


def _ref(name: str, **extra: Any) -> dict[str, Any]:
    return {"$ref": f"#/components/schemas/{name}", **extra}


SAMPLE_SPEC: dict[str, Any] = {
    "openrpc": "1.0.0-rc1",
    "info": {"version": "0.7.1", "title": "StarkNet Node API"},
    "servers": [],
    "methods": [
        {
            "name": "starknet_specVersion",
            "summary": "Returns the version of the Starknet JSON-RPC specification being used",
            "params": [],
            "result": {"name": "result", "description": "Semver", "schema": {"type": "string"}},
        },
        {
            "name": "starknet_getStorageAt",
            "summary": "Get the value of the storage at the given address and key",
            "params": [
                {
                    "name": "contract_address",
                    "description": "The address of the contract to read from",
                    "required": True,
                    "schema": _ref("ADDRESS"),
                },
                {
                    "name": "key",
                    "description": "The key to the storage value for the given contract",
                    "required": True,
                    "schema": _ref("STORAGE_KEY"),
                },
                {
                    "name": "block_number",
                    "required": False,
                    "schema": _ref("BLOCK_NUMBER"),
                },
            ],
            "result": {"name": "result", "schema": _ref("FELT")},
            "errors": [
                {"$ref": "#/components/errors/CONTRACT_NOT_FOUND"},
                {"$ref": "#/components/errors/BLOCK_NOT_FOUND"},
            ],
        },
        {
            "name": "starknet_addInvokeTransaction",
            "summary": "Submit a new transaction to be added to the chain",
            "params": [
                {
                    "name": "invoke_transaction",
                    "description": "The information needed to invoke the function",
                    "required": True,
                    "schema": _ref("INVOKE_TXN_V1"),
                },
            ],
            "result": {"name": "result", "schema": _ref("FELT")},
        },
    ],
    "components": {
        "contentDescriptors": {},
        "schemas": {
            "FELT": {
                "type": "string",
                "title": "Field element",
                "pattern": "^0x(0|[a-fA-F1-9]{1}[a-fA-F0-9]{0,62})$",
            },
            "ADDRESS": _ref("FELT", title="Address"),
            "STORAGE_KEY": {
                "type": "string",
                "title": "Storage key",
                "pattern": "^0x(0|[0-7]{1}[a-fA-F0-9]{0,62}$)",
            },
            "BLOCK_HASH": _ref("FELT", title="Block hash"),
            "BLOCK_NUMBER": {
                "type": "integer",
                "description": "The block's number (its height)",
                "minimum": 0,
            },
            "SIGNATURE": {"type": "array", "title": "Signature", "items": _ref("FELT")},
            "NUM_AS_HEX": {
                "type": "string",
                "title": "Number as hex",
                "pattern": "^0x[a-fA-F0-9]+$",
            },
            "ETH_ADDRESS": {
                "type": "string",
                "title": "Ethereum address",
                "pattern": "^0x[a-fA-F0-9]{40}$",
            },
            "BLOCK_TAG": {
                "type": "string",
                "title": "Block tag",
                "description": "A tag specifying a dynamic reference to a block",
                "enum": ["latest", "pending"],
            },
            "TAG_ALIAS": _ref("BLOCK_TAG"),
            "PRICE_UNIT_WEI": {"type": "string", "enum": ["WEI"]},
            "PRICE_UNIT_FRI": {"type": "string", "enum": ["FRI"]},
            "PRICE_UNIT": {
                "title": "Price unit",
                "oneOf": [_ref("PRICE_UNIT_WEI"), _ref("PRICE_UNIT_FRI")],
            },
            "BLOCK_ID": {
                "title": "Block id",
                "oneOf": [
                    {
                        "title": "Block hash",
                        "type": "object",
                        "properties": {"block_hash": _ref("BLOCK_HASH")},
                        "required": ["block_hash"],
                    },
                    _ref("BLOCK_TAG"),
                ],
            },
            "FOO_BAR": {
                "type": "object",
                "title": "Foo bar",
                "description": "a foo bar on starknet",
                "properties": {
                    "foo": _ref("FELT", description="The foo"),
                    "barBaz": {"type": "integer", "description": "Bar baz"},
                    "label": {"type": "string", "description": "A label"},
                    "kind": {"type": "string", "enum": ["A", "B"]},
                },
                "required": ["foo", "barBaz"],
            },
            "COMMON": {
                "type": "object",
                "properties": {
                    "sender_address": _ref("ADDRESS"),
                    "nonce": _ref("FELT"),
                },
                "required": ["sender_address", "nonce"],
            },
            "WITH_COMMON": {
                "title": "With common",
                "allOf": [
                    _ref("COMMON"),
                    {
                        "type": "object",
                        "properties": {"calldata": {"type": "array", "items": _ref("FELT")}},
                        "required": ["calldata"],
                    },
                ],
            },
            "INVOKE_TXN_V1": {
                "title": "Invoke transaction v1",
                "allOf": [
                    _ref("COMMON"),
                    {
                        "type": "object",
                        "properties": {
                            "type": {"type": "string", "enum": ["INVOKE"]},
                            "version": _ref("NUM_AS_HEX"),
                            "max_fee": _ref("FELT"),
                            "signature": _ref("SIGNATURE"),
                        },
                        "required": ["type", "version", "max_fee", "signature"],
                    },
                ],
            },
            "L1_HANDLER_TXN_TRACE": {
                "type": "object",
                "properties": {
                    "type": {"type": "string", "enum": ["L1_HANDLER"]},
                    "function_invocation": _ref("FUNCTION_INVOCATION"),
                },
                "required": ["type", "function_invocation"],
            },
            "FUNCTION_INVOCATION": {
                "type": "object",
                "properties": {
                    "contract_address": _ref("ADDRESS"),
                    "calls": {"type": "array", "items": _ref("NESTED_CALL")},
                },
                "required": ["contract_address", "calls"],
            },
            "NESTED_CALL": _ref("FUNCTION_INVOCATION"),
            "LEGACY_PROGRAM": {
                "type": "object",
                "properties": {
                    "program": {
                        "type": "string",
                        "description": "A base64 representation of the compressed program code",
                    },
                    "l1_address": _ref("ETH_ADDRESS"),
                },
                "required": ["program"],
            },
            "CHAIN_LABEL": {"type": "string", "title": "Chain label"},
            "CONTRACT_ERROR_DATA": {
                "type": "object",
                "properties": {
                    "revert_error": {"type": "string", "description": "the error raised"},
                },
                "required": ["revert_error"],
            },
            "RESOURCE_PRICE": {
                "type": "object",
                "properties": {"price_in_wei": _ref("FELT")},
                "required": ["price_in_wei"],
            },
        },
        "errors": {
            "BLOCK_NOT_FOUND": {"code": 24, "message": "Block not found"},
            "INVALID_BLOCK_HASH": {"code": 21, "message": "Invalid block hash"},
            "CONTRACT_NOT_FOUND": {"code": 20, "message": "Contract not found"},
            "CONTRACT_ERROR": {
                "code": 40,
                "message": "Contract error",
                "data": _ref("CONTRACT_ERROR_DATA"),
            },
            "UNEXPECTED_ERROR": {
                "code": 63,
                "message": "An unexpected error occurred",
                "data": {"type": "string", "description": "The error message"},
            },
        },
    },
}

SAMPLE_PROFILE: dict[str, Any] = {
    "version": "0.7.1",
    "flatten": {"selected": ["COMMON"]},
    "allow_unknown_field_types": ["RESOURCE_PRICE"],
    "fixed_fields": {
        "InvokeTransactionV1": [
            {"name": "type", "value": "INVOKE"},
            {"name": "version", "value": "0x1", "query_version": True},
        ],
        "L1HandlerTransactionTrace": [
            {"name": "type", "value": "L1_HANDLER", "must_be_present": False},
        ],
    },
    "shared_fields": {"L1HandlerTransactionTrace": ["function_invocation"]},
    "capabilities": {"ResourcePrice": ["Hash"], "BlockTag": ["Hash"]},
}


def sample_raw() -> dict[str, Any]:
    """A fresh, mutable copy of the sample spec document."""
    return copy.deepcopy(SAMPLE_SPEC)


def make_profile(**overrides: Any) -> GenerationProfile:
    return GenerationProfile.model_validate({**SAMPLE_PROFILE, **overrides})


@pytest.fixture
def spec():
    return parse_spec(sample_raw(), "sample.json")


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def result(spec, profile):
    return resolve_types(spec, profile)


@pytest.fixture
def load_generated(tmp_path):
    """Import generated source as a real module; unregistered on teardown."""
    loaded: list[str] = []

    def load(source: str, name: str = "generated_models"):
        path = tmp_path / f"{name}.py"
        path.write_text(source)
        module_spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(module_spec)
        # Pydantic resolves deferred annotations through sys.modules.
        sys.modules[name] = module
        loaded.append(name)
        module_spec.loader.exec_module(module)
        return module

    yield load

    for name in loaded:
        sys.modules.pop(name, None)


@pytest.fixture
def source(result, profile):
    text, _ = codegen.generate(result, profile)
    return text


@pytest.fixture
def models(source, load_generated):
    return load_generated(source)
