"""Exceptions raised while loading specifications and generating code."""

from __future__ import annotations


class CodegenError(Exception):
    """Base class for every fatal generator error."""


class SpecError(CodegenError):
    """Raised when a specification document is malformed or non-conforming."""


class MergeError(SpecError):
    """Raised when two specification documents define the same entry differently."""


class ProfileError(CodegenError):
    """Raised for invalid or unknown generation profiles."""


class GenerationError(CodegenError):
    """Raised when the schema graph cannot be turned into types."""
