"""
Layer definitions and the strategies that turn records into attribute values.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from geobatch.core.records import AREA, PATH, POINT, RECORD_KINDS
from geobatch.core.schema import FieldSpec, parse_fields

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

DEFAULT_GEOMETRY_TYPES = {
    POINT: "Point",
    PATH: "LineString",
    AREA: "MultiPolygon",
}


class LayerStrategy:
    """
    Decides, per record kind, whether a record becomes a feature and with which
    attribute values. Returning None drops the record.
    """

    kinds = ()

    def point(self, record, schema):
        return None

    def path(self, record, schema):
        return None

    def area(self, record, schema):
        return None


def coerce_value(value, field_spec):
    if value is None:
        return None

    try:
        if field_spec.type == "int":
            value = int(value)
            if not INT64_MIN <= value <= INT64_MAX:
                raise ValueError("out of 64-bit integer range")
            return value
        if field_spec.type == "float":
            return float(value)
        if field_spec.type == "bool":
            if isinstance(value, str):
                return value.lower() in ("1", "true", "yes")
            return bool(value)
    except (TypeError, ValueError, OverflowError):
        logging.debug(f"Could not convert {value!r} to {field_spec.type} for field '{field_spec.name}'")
        return None

    if field_spec.type == "str":
        if not isinstance(value, str):
            value = json.dumps(value) if isinstance(value, (dict, list)) else str(value)
        if field_spec.width is not None:
            value = value[: field_spec.width]
    return value


def map_properties(properties, schema, renames=None):
    if renames:
        properties = {renames.get(k, k): v for k, v in properties.items()}
    return {f.name: coerce_value(properties.get(f.name), f) for f in schema.fields}


class AttributeStrategy(LayerStrategy):
    """Copies record properties into the layer fields of the same name."""

    def __init__(self, kinds, required=None, renames=None):
        self.kinds = tuple(kinds)
        self.required = required
        self.renames = renames or {}

    def _map(self, record, schema):
        if record.kind not in self.kinds:
            return None
        if self.required and not record.properties.get(self.required):
            return None
        return map_properties(record.properties, schema, self.renames)

    def point(self, record, schema):
        return self._map(record, schema)

    def path(self, record, schema):
        return self._map(record, schema)

    def area(self, record, schema):
        return self._map(record, schema)


@dataclass
class LayerConfig:
    name: str
    kind: str
    fields: List[FieldSpec] = field(default_factory=list)
    geometry_type: Optional[str] = None
    required: Optional[str] = None
    renames: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.kind not in RECORD_KINDS:
            raise ValueError(f"Invalid kind '{self.kind}' for layer '{self.name}'. Expected one of {RECORD_KINDS}.")
        if self.geometry_type is None:
            self.geometry_type = DEFAULT_GEOMETRY_TYPES[self.kind]

    def strategy(self):
        return AttributeStrategy([self.kind], required=self.required, renames=self.renames)

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data["name"],
            kind=data["kind"],
            fields=parse_fields(data.get("fields", [])),
            geometry_type=data.get("geometry_type"),
            required=data.get("required"),
            renames=dict(data.get("renames") or {}),
        )

    def to_dict(self):
        out = {
            "name": self.name,
            "kind": self.kind,
            "geometry_type": self.geometry_type,
            "fields": [
                {"name": f.name, "type": f.type, **({"width": f.width} if f.width is not None else {})}
                for f in self.fields
            ],
        }
        if self.required:
            out["required"] = self.required
        if self.renames:
            out["renames"] = dict(self.renames)
        return out


def load_layer_configs(path):
    path = Path(path)
    logging.info(f"Reading layer definitions from {path}")
    with path.open("r") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("layers", [])

    configs = [LayerConfig.from_dict(d) for d in data]
    names = [c.name for c in configs]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate layer names in {path}: {names}")
    return configs
