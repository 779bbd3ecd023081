"""
Batched transactional feature writer for SQLite/SpatiaLite output layers.
"""

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path

import fiona
from fiona.crs import CRS

from geobatch.core.errors import (
    DataSourceError,
    FatalWriterError,
    FeatureCreationError,
    FieldCreationError,
    GeometryError,
    LayerCreationError,
    StoreDriverError,
)
from geobatch.core.geometry import GeometryFactory, to_ogr_geometry
from geobatch.core.layers import INT64_MAX, INT64_MIN, AttributeStrategy
from geobatch.core.records import AREA, PATH, POINT, RECORD_KINDS
from geobatch.core.schema import LayerSchema, parse_field, parse_fields

DRIVER = "SQLite"
EXTENSION = "sqlite"

# a window is committed once it holds more than this many features
TRANSACTION_SIZE = 10000

GEOMETRY_TYPES = ("Point", "LineString", "Polygon", "MultiPoint", "MultiLineString", "MultiPolygon")


@dataclass
class StoreOptions:
    spatialite: bool = True
    synchronous: bool = False
    cache_size_mb: int = 1024
    compress_geometry: bool = True

    def config_options(self):
        """GDAL config options in effect while the store is open."""
        return {
            "OGR_SQLITE_SYNCHRONOUS": "ON" if self.synchronous else "OFF",
            "OGR_SQLITE_CACHE": str(self.cache_size_mb),
        }

    def creation_options(self):
        options = {"SPATIAL_INDEX": "NO"}
        if self.spatialite:
            options["SPATIALITE"] = "YES"
            if self.compress_geometry:
                options["COMPRESS_GEOM"] = "YES"
        return options


def check_store_driver(driver=DRIVER):
    modes = fiona.supported_drivers.get(driver, "")
    if "w" not in modes and "a" not in modes:
        raise StoreDriverError(f"{driver} driver not available.")


class FeatureWriter:
    """
    Writes the records of one layer into its own store file.

    Features are collected into transaction windows that are committed once
    they grow past TRANSACTION_SIZE features, and once more on close.
    """

    def __init__(
        self,
        output_root,
        layer_name,
        geometry_type,
        fields,
        use_transaction=True,
        strategy=None,
        options=None,
        geometry_factory=None,
    ):
        self.output_root = output_root
        self.layer_name = layer_name
        self.geometry_type = geometry_type
        self.use_transaction = use_transaction
        self.strategy = strategy or AttributeStrategy(RECORD_KINDS)
        self.options = options or StoreOptions()
        self.factory = geometry_factory or GeometryFactory()
        self.schema = LayerSchema(layer_name)

        self.num_features = 0
        self.commit_count = 0
        self.written = 0
        self.skipped = 0
        self.ignored = 0

        self._pending = []
        self._in_transaction = False
        self._closed = False
        self._resources = contextlib.ExitStack()
        self._collection = None

        if geometry_type not in GEOMETRY_TYPES:
            raise LayerCreationError(
                f"Creation of layer '{layer_name}' failed: unsupported geometry type '{geometry_type}'.",
                layer_name=layer_name,
            )

        self.path = output_root.store_path(layer_name, EXTENSION)

        try:
            properties = self.schema.install(parse_fields(fields))
            self._collection = self._create_layer(properties)
        except BaseException:
            self._resources.close()
            raise

        self._start_transaction()

    def _create_layer(self, properties):
        check_store_driver()

        path = Path(self.path)
        if path.exists():
            logging.info(f"Replacing existing store {path}")
            try:
                path.unlink()
            except OSError as e:
                raise DataSourceError(
                    f"Creation of data source {path} for layer '{self.layer_name}' failed: {e}",
                    path=path,
                    layer_name=self.layer_name,
                ) from e

        schema = {"geometry": self.geometry_type, "properties": properties}
        try:
            # the SQLite driver reads its cache and sync settings when the store is opened
            with fiona.Env(**self.options.config_options()):
                collection = fiona.open(
                    str(path),
                    "w",
                    driver=DRIVER,
                    schema=schema,
                    crs=CRS.from_epsg(4326),
                    layer=self.layer_name,
                    **self.options.creation_options(),
                )
        except fiona.errors.SchemaError as e:
            raise FieldCreationError(
                f"Creating fields for layer '{self.layer_name}' failed: {e}", layer_name=self.layer_name
            ) from e
        except (fiona.errors.DriverError, fiona.errors.DriverIOError, OSError) as e:
            raise DataSourceError(
                f"Creation of data source {path} for layer '{self.layer_name}' failed: {e}",
                path=path,
                layer_name=self.layer_name,
            ) from e
        except (fiona.errors.FionaError, ValueError) as e:
            raise LayerCreationError(
                f"Creation of layer '{self.layer_name}' failed: {e}", path=path, layer_name=self.layer_name
            ) from e

        logging.info(f"Created layer '{self.layer_name}' ({self.geometry_type}) in {path}")
        return self._resources.enter_context(collection)

    def add_field(self, field):
        self.schema.add_field(parse_field(field))

    def _start_transaction(self):
        if self.use_transaction:
            self._in_transaction = True
            self.num_features = 0

    def _commit_transaction(self):
        pending, self._pending = self._pending, []
        if pending:
            self._write(pending)
        self._collection.flush()
        self.commit_count += 1
        logging.debug(f"Committed {len(pending)} features to layer '{self.layer_name}'")

    def _maybe_commit_transaction(self):
        self.num_features += 1
        if self.use_transaction and self.num_features > TRANSACTION_SIZE:
            self._commit_transaction()
            self._start_transaction()

    def _write(self, features):
        try:
            self._collection.writerecords(features)
        except (fiona.errors.FionaError, ValueError, TypeError, OverflowError, OSError) as e:
            raise FeatureCreationError(
                f"Failed to create feature in layer '{self.layer_name}'. e = {e}",
                path=self.path,
                layer_name=self.layer_name,
            ) from e

    def _validate(self, feature, record_id=None):
        where = f"layer '{self.layer_name}'" if record_id is None else f"layer '{self.layer_name}' (id = {record_id})"
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != self.geometry_type:
            raise FeatureCreationError(
                f"Failed to create feature in {where}: geometry type "
                f"{geometry.get('type')} does not match {self.geometry_type}",
                layer_name=self.layer_name,
            )
        names = set(feature.get("properties") or {})
        expected = {f.name for f in self.schema.fields}
        if names != expected:
            raise FeatureCreationError(
                f"Failed to create feature in {where}: properties "
                f"{sorted(names)} do not match fields {sorted(expected)}",
                layer_name=self.layer_name,
            )
        for field in self.schema.fields:
            value = feature["properties"][field.name]
            if field.type == "int" and value is not None and not (
                isinstance(value, int) and INT64_MIN <= value <= INT64_MAX
            ):
                raise FeatureCreationError(
                    f"Failed to create feature in {where}: value {value!r} of field '{field.name}' "
                    f"is not a 64-bit integer",
                    layer_name=self.layer_name,
                )

    def create_feature(self, feature, record_id=None):
        if self._closed:
            raise FeatureCreationError(
                f"Failed to create feature: layer '{self.layer_name}' is closed.", layer_name=self.layer_name
            )

        self._validate(feature, record_id)
        if self._in_transaction:
            self._pending.append(feature)
        else:
            self._write([feature])

        self.written += 1
        self._maybe_commit_transaction()

    def catch_geometry_error(self, e, record):
        self.skipped += 1
        logging.warning(
            f"Ignoring illegal geometry for {record.kind} with id = {record.id} "
            f"in layer '{self.layer_name}': {e}"
        )

    def _write_record(self, record, geom, properties):
        geometry = to_ogr_geometry(geom, self.geometry_type)
        if geometry is None:
            self.ignored += 1
            logging.warning(
                f"Skipping {record.kind} with id = {record.id}: incompatible geometry type "
                f"{geom.geom_type} (expected {self.geometry_type})"
            )
            return False

        self.create_feature({"type": "Feature", "geometry": geometry, "properties": properties}, record.id)
        return True

    def accept_point(self, record):
        properties = self.strategy.point(record, self.schema)
        if properties is None:
            self.ignored += 1
            return False
        return self._write_record(record, self.factory.make_point(record), properties)

    def accept_path(self, record):
        properties = self.strategy.path(record, self.schema)
        if properties is None:
            self.ignored += 1
            return False
        try:
            geom = self.factory.make_linestring(record)
        except GeometryError as e:
            self.catch_geometry_error(e, record)
            return False
        return self._write_record(record, geom, properties)

    def accept_area(self, record):
        properties = self.strategy.area(record, self.schema)
        if properties is None:
            self.ignored += 1
            return False
        try:
            geom = self.factory.make_multipolygon(record)
        except GeometryError as e:
            self.catch_geometry_error(e, record)
            return False
        return self._write_record(record, geom, properties)

    def accept(self, record):
        if record.kind == POINT:
            return self.accept_point(record)
        if record.kind == PATH:
            return self.accept_path(record)
        if record.kind == AREA:
            return self.accept_area(record)
        raise ValueError(f"Unknown record kind: {record.kind}")

    def size(self):
        if self.path and Path(self.path).exists():
            return Path(self.path).stat().st_size
        return 0

    def close(self, commit=True):
        if self._closed:
            return
        self._closed = True

        try:
            if self._in_transaction:
                if commit:
                    self._commit_transaction()
                elif self._pending:
                    logging.warning(
                        f"Discarding {len(self._pending)} uncommitted features of layer '{self.layer_name}'"
                    )
                    self._pending = []
                self._in_transaction = False
        finally:
            self._resources.close()

        logging.info(
            f"Closed layer '{self.layer_name}': {self.written} written, {self.skipped} skipped, "
            f"{self.commit_count} commits"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        fatal = exc_type is not None and issubclass(exc_type, FatalWriterError)
        self.close(commit=not fatal)
        return False
