"""Tests for merging secondary specification documents."""

import pytest

from conftest import sample_raw
from starknet_codegen.errors import MergeError, SpecError
from starknet_codegen.loader import parse_spec
from starknet_codegen.normalizer import merge_specifications
from starknet_codegen.spec import Reference, StringPrimitive


def _secondary(schemas=None, errors=None, methods=None):
    raw = sample_raw()
    raw["methods"] = methods or []
    raw["components"]["schemas"] = schemas or {}
    raw["components"]["errors"] = errors or {}
    return parse_spec(raw, "secondary.json")


class TestMergeSpecifications:
    """Test the merge rules for methods, schemas and errors."""

    def test_no_secondary(self, spec):
        assert merge_specifications(spec) == spec

    def test_methods_concatenated(self, spec):
        method = sample_raw()["methods"][0]
        method["name"] = "starknet_traceTransaction"
        merged = merge_specifications(spec, _secondary(methods=[method]))
        assert [m.name for m in merged.methods] == [
            "starknet_specVersion",
            "starknet_getStorageAt",
            "starknet_addInvokeTransaction",
            "starknet_traceTransaction",
        ]

    def test_new_schema_appended(self, spec):
        merged = merge_specifications(spec, _secondary(schemas={"TRACE_FLAG": {"type": "string", "enum": ["SKIP_VALIDATE"]}}))
        assert list(merged.components.schemas)[-1] == "TRACE_FLAG"

    def test_ref_redefinition_ignored(self, spec):
        merged = merge_specifications(
            spec, _secondary(schemas={"FELT": {"$ref": "./api.json#/components/schemas/FELT"}}),
        )
        assert isinstance(merged.components.schemas["FELT"], StringPrimitive)

    def test_identical_redefinition_ignored(self, spec):
        chain_label = sample_raw()["components"]["schemas"]["CHAIN_LABEL"]
        merged = merge_specifications(spec, _secondary(schemas={"CHAIN_LABEL": chain_label}))
        assert merged.components.schemas == spec.components.schemas

    def test_conflicting_schema(self, spec):
        with pytest.raises(MergeError, match="CHAIN_LABEL"):
            merge_specifications(spec, _secondary(schemas={"CHAIN_LABEL": {"type": "string"}}))

    def test_conflicting_error(self, spec):
        with pytest.raises(MergeError, match="BLOCK_NOT_FOUND"):
            merge_specifications(
                spec, _secondary(errors={"BLOCK_NOT_FOUND": {"code": 25, "message": "Block not found"}}),
            )

    def test_error_ref_ignored(self, spec):
        merged = merge_specifications(
            spec,
            _secondary(errors={"BLOCK_NOT_FOUND": {"$ref": "./api.json#/components/errors/BLOCK_NOT_FOUND"}}),
        )
        assert not isinstance(merged.components.errors["BLOCK_NOT_FOUND"], Reference)
        assert merged.components.errors["BLOCK_NOT_FOUND"].code == 24

    def test_merge_error_is_spec_error(self):
        assert issubclass(MergeError, SpecError)

    def test_primary_untouched(self, spec):
        before = list(spec.components.schemas)
        merge_specifications(spec, _secondary(schemas={"EXTRA": {"type": "string"}}))
        assert list(spec.components.schemas) == before
