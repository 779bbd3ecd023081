"""
Error types raised by the feature writers.

Fatal errors mean the output target cannot be trusted and are propagated to the
top-level caller. Geometry errors are per-record and recoverable.
"""


class FatalWriterError(Exception):
    """Unrecoverable failure of the output store or its surroundings."""

    def __init__(self, message, path=None, layer_name=None):
        super().__init__(message)
        self.path = path
        self.layer_name = layer_name


class WorkingDirectoryError(FatalWriterError):
    pass


class OutputDirectoryError(FatalWriterError):
    pass


class StoreDriverError(FatalWriterError):
    pass


class DataSourceError(FatalWriterError):
    pass


class LayerCreationError(FatalWriterError):
    pass


class FieldCreationError(FatalWriterError):
    def __init__(self, message, field_name=None, layer_name=None):
        super().__init__(message, layer_name=layer_name)
        self.field_name = field_name


class FeatureCreationError(FatalWriterError):
    pass


class SchemaFrozenError(FatalWriterError):
    pass


class GeometryError(Exception):
    """A record's coordinates do not form a usable geometry."""

    def __init__(self, message, record_id=None):
        super().__init__(message)
        self.record_id = record_id
