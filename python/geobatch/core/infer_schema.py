import logging

from geobatch.core.feeder import parse_line
from geobatch.core.layers import LayerConfig
from geobatch.core.records import AREA, PATH, POINT, RECORD_KINDS, record_from_feature
from geobatch.core.schema import FieldSpec

DEFAULT_LAYER_NAMES = {
    POINT: "points",
    PATH: "paths",
    AREA: "areas",
}

TYPE_NAMES = {
    "int": "int",
    "float": "float",
    "str": "str",
    "bool": "bool",
}


class SchemaFilter:
    def __init__(self, schema_writer):
        self.schema_writer = schema_writer
        self.count = 0
        self.passed = 0
        self.unparsed = 0

    def process(self, line):
        if not line.strip():
            return None

        self.count += 1
        feature = parse_line(line)
        if feature is None:
            self.unparsed += 1
            return None

        record = record_from_feature(feature, fallback_id=self.count)
        if record is None:
            return None

        self.passed += 1
        self.schema_writer.write(record)
        return record

    def written(self):
        return self.passed

    def size(self):
        return 0


class SchemaWriter:
    def __init__(self):
        self.kinds = {}

    def write(self, record):
        properties = self.kinds.setdefault(record.kind, {})
        for key, value in record.properties.items():
            if key not in properties:
                properties[key] = set()
            properties[key].add(type(value).__name__)

    def close(self):
        pass

    @staticmethod
    def _renames(properties):
        # Detect case-insensitive duplicates and create rename mapping
        seen_lower = {}
        renames = {}
        for key in properties.keys():
            key_lower = key.lower()
            if key_lower not in seen_lower:
                seen_lower[key_lower] = key
            else:
                suffix = 2
                while f"{key}_{suffix}".lower() in seen_lower:
                    suffix += 1
                new_key = f"{key}_{suffix}"
                renames[key] = new_key
                seen_lower[new_key.lower()] = new_key
                logging.warning(
                    f"Duplicate property name (case-insensitive): '{key}' conflicts with "
                    f"'{seen_lower[key_lower]}', renaming to '{new_key}'"
                )
        return renames

    @staticmethod
    def _field_type(types):
        types = types.copy()

        if "int" in types and "float" in types:
            types.remove("int")

        if "NoneType" in types and len(types) == 2:
            types.remove("NoneType")

        if len(types) == 1:
            return TYPE_NAMES.get(types.pop(), "str")
        return "str"

    def get_layer_configs(self, layer_names=None):
        layer_names = {**DEFAULT_LAYER_NAMES, **(layer_names or {})}

        if not self.kinds:
            logging.warning("No usable records found.")
            return []

        configs = []
        for kind in RECORD_KINDS:
            if kind not in self.kinds:
                continue
            properties = self.kinds[kind]
            renames = self._renames(properties)
            fields = [FieldSpec(renames.get(key, key), self._field_type(types)) for key, types in properties.items()]
            configs.append(LayerConfig(name=layer_names[kind], kind=kind, fields=fields, renames=renames))
        return configs
