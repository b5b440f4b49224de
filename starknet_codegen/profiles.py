"""Generation profiles: per-spec-version options for the resolver.

Profiles are data. The bundled ones live in profiles.json next to this
module; a user file with the same shape can add versions or replace bundled
ones. Tables keyed by type use generated type names (``InvokeTransactionV1``)
and field tables use generated field names.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ProfileError
from .flatten import FlattenPolicy
from .ir import FixedField

logger = logging.getLogger(__name__)

PROFILES_PATH = Path(__file__).parent / "profiles.json"

# Capability markers a profile may attach to generated types.
KNOWN_CAPABILITIES = frozenset({"Hash"})


class _Config(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class FlattenSelection(_Config):
    selected: list[str]


class FixedFieldConfig(_Config):
    name: str
    value: Any
    query_version: bool = False
    must_be_present: bool = True


class GenerationProfile(_Config):
    version: str
    flatten: Literal["all"] | FlattenSelection = "all"
    ignore_types: list[str] = Field(default_factory=list)
    allow_unknown_field_types: list[str] = Field(default_factory=list)
    hybrid_types: list[str] = Field(default_factory=list)
    fixed_fields: dict[str, list[FixedFieldConfig]] = Field(default_factory=dict)
    shared_fields: dict[str, list[str]] = Field(default_factory=dict)
    capabilities: dict[str, list[str]] = Field(default_factory=dict)
    error_type_name: str = "StarknetError"
    method_prefix: str = "starknet_"
    support_imports: list[str] = Field(default_factory=list)

    @field_validator("capabilities")
    @classmethod
    def _known_capabilities(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        for type_name, markers in value.items():
            unknown = set(markers) - KNOWN_CAPABILITIES
            if unknown:
                raise ValueError(f"unknown capability markers for {type_name}: {sorted(unknown)}")
        return value

    @field_validator("fixed_fields")
    @classmethod
    def _query_versions_present(
        cls, value: dict[str, list[FixedFieldConfig]],
    ) -> dict[str, list[FixedFieldConfig]]:
        for type_name, fields in value.items():
            for fixed in fields:
                if fixed.query_version and not fixed.must_be_present:
                    raise ValueError(f"{type_name}.{fixed.name}: query version fields must be present")
                if fixed.query_version and not str(fixed.value).startswith("0x"):
                    raise ValueError(f"{type_name}.{fixed.name}: query version value must be hex")
        return value

    @property
    def flatten_policy(self) -> FlattenPolicy:
        if isinstance(self.flatten, FlattenSelection):
            return FlattenPolicy.only(self.flatten.selected)
        return FlattenPolicy.all()

    def fixed_field(self, type_name: str, field_name: str) -> FixedField | None:
        """Return the fixed-value descriptor for a field, if it has one."""
        for fixed in self.fixed_fields.get(type_name, ()):
            if fixed.name == field_name:
                return FixedField(
                    name=fixed.name,
                    value=fixed.value,
                    query_version=fixed.query_version,
                    must_be_present=fixed.must_be_present,
                )
        return None

    def is_shared(self, type_name: str, field_name: str) -> bool:
        return field_name in self.shared_fields.get(type_name, ())

    def capabilities_for(self, type_name: str) -> tuple[str, ...]:
        return tuple(dict.fromkeys(self.capabilities.get(type_name, ())))


def _read_profiles(path: Path) -> list[GenerationProfile]:
    """Read a profiles file: {"profiles": [...]}."""
    try:
        with open(path) as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ProfileError(f"{path}: unable to read profiles: {exc}") from exc

    if not isinstance(raw, dict) or set(raw) != {"profiles"}:
        raise ProfileError(f"{path}: expected an object with a single 'profiles' list")

    try:
        return [GenerationProfile.model_validate(item) for item in raw["profiles"]]
    except (ValidationError, TypeError) as exc:
        raise ProfileError(f"{path}: invalid profile:\n{exc}") from exc


def load_profiles(path: Path | None = None) -> dict[str, GenerationProfile]:
    """Load bundled profiles, then overlay profiles from path if given."""
    profiles = {p.version: p for p in _read_profiles(PROFILES_PATH)}
    if path is not None:
        for profile in _read_profiles(path):
            if profile.version in profiles:
                logger.debug("Profile %s replaced by %s", profile.version, path)
            profiles[profile.version] = profile
    return profiles


def get_profile(version: str, path: Path | None = None) -> GenerationProfile:
    """Find the profile for a spec version."""
    profiles = load_profiles(path)
    try:
        return profiles[version]
    except KeyError:
        known = ", ".join(sorted(profiles))
        raise ProfileError(f"Unable to find profile for spec {version} (known: {known})") from None
