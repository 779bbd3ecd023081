"""
Field schema for output layers.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from geobatch.core.errors import FieldCreationError, SchemaFrozenError

FIELD_TYPES = ("int", "str", "float", "date", "datetime", "bool")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str = "str"
    width: Optional[int] = None

    def to_ogr(self):
        """The fiona property type, e.g. 'str:64'."""
        if self.width is None:
            return self.type
        return f"{self.type}:{self.width}"


def parse_field(value):
    """
    Build a FieldSpec from a dict ({"name", "type", "width"}), a
    'name:type[:width]' string or an existing FieldSpec.
    """
    if isinstance(value, FieldSpec):
        return value

    if isinstance(value, str):
        parts = value.split(":")
        if len(parts) > 3 or not parts[0]:
            raise ValueError(f"Invalid field definition: '{value}'. Expected 'name:type[:width]'.")
        name = parts[0]
        field_type = parts[1] if len(parts) > 1 else "str"
        width = int(parts[2]) if len(parts) > 2 else None
        return FieldSpec(name, field_type, width)

    if isinstance(value, dict):
        if "name" not in value:
            raise ValueError(f"Field definition is missing a name: {value}")
        width = value.get("width")
        return FieldSpec(value["name"], value.get("type", "str"), int(width) if width is not None else None)

    raise ValueError(f"Unsupported field definition: {value!r}")


def parse_fields(values):
    return [parse_field(v) for v in values]


class LayerSchema:
    """
    Ordered field list of one layer. Installed exactly once, frozen afterwards.
    """

    def __init__(self, layer_name):
        self.layer_name = layer_name
        self.fields = []
        self._installed = False

    @property
    def installed(self):
        return self._installed

    def install(self, fields):
        if self._installed:
            raise SchemaFrozenError(
                f"Schema for layer '{self.layer_name}' is already installed.", layer_name=self.layer_name
            )

        seen = {f.name.lower() for f in self.fields}
        for field in fields:
            self._check_field(field, seen)
            seen.add(field.name.lower())
            self.fields.append(field)

        self._installed = True
        logging.debug(f"Installed {len(self.fields)} fields for layer '{self.layer_name}'")
        return self.properties()

    def _check_field(self, field, seen):
        def fail(reason):
            raise FieldCreationError(
                f"Creating field '{field.name}' for layer '{self.layer_name}' failed: {reason}",
                field_name=field.name,
                layer_name=self.layer_name,
            )

        if not field.name:
            fail("empty field name")
        if field.name.lower() in seen:
            fail("duplicate field name")
        if field.type not in FIELD_TYPES:
            fail(f"unsupported type '{field.type}'")
        if field.width is not None and (isinstance(field.width, bool) or field.width <= 0):
            fail(f"width must be a positive integer, got {field.width}")

    def add_field(self, field):
        if self._installed:
            raise SchemaFrozenError(
                f"Cannot add field '{field.name}' to layer '{self.layer_name}' after the layer has been created.",
                layer_name=self.layer_name,
            )
        self._check_field(field, {f.name.lower() for f in self.fields})
        self.fields.append(field)

    def properties(self):
        return {field.name: field.to_ogr() for field in self.fields}

    def field(self, name):
        for field in self.fields:
            if field.name == name:
                return field
        return None
