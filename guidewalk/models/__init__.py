"""
Guidewalk service models.

Guideline document shapes are defined in shared.schemas; this package adds
test cases and JSON schema export.
"""

from guidewalk.models.guideline import (
    SCHEMA_VERSION,
    TestCase,
    get_guideline_json_schema,
    write_guideline_schema_to_file,
)

__all__ = [
    "SCHEMA_VERSION",
    "TestCase",
    "get_guideline_json_schema",
    "write_guideline_schema_to_file",
]
