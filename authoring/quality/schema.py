"""JSON Schema checks for documents read from disk, such as local drafts."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import jsonschema
import orjson


@dataclass
class SchemaResult:
    ok: bool
    errors: List[str] = field(default_factory=list)


class SchemaRegistry:
    """Compiles ``<kind>.schema.json`` files from one directory on first use."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._validators: Dict[str, jsonschema.Draft202012Validator] = {}

    def validator(self, kind: str) -> jsonschema.Draft202012Validator:
        if kind not in self._validators:
            path = self._root / f"{kind}.schema.json"
            if not path.exists():
                raise FileNotFoundError(f"No {kind} schema at {path}")
            schema = orjson.loads(path.read_bytes())
            jsonschema.Draft202012Validator.check_schema(schema)
            self._validators[kind] = jsonschema.Draft202012Validator(schema)
        return self._validators[kind]

    def validate(self, kind: str, payload: Dict[str, Any]) -> SchemaResult:
        found = sorted(self.validator(kind).iter_errors(payload), key=lambda error: error.json_path)
        return SchemaResult(ok=not found, errors=[f"{error.json_path}: {error.message}" for error in found])

    def prune(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Drop top-level keys the schema does not declare."""
        declared = self.validator(kind).schema.get("properties", {})
        return {key: value for key, value in payload.items() if key in declared}
