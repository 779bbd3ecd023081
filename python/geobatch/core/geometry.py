"""
Builds OGR-ready geometries from record coordinates with shapely.
"""

from shapely.errors import GEOSException
from shapely.geometry import LineString, MultiPolygon, Point, Polygon, mapping

from geobatch.core.errors import GeometryError

MULTI_TYPES = {
    "Point": "MultiPoint",
    "LineString": "MultiLineString",
    "Polygon": "MultiPolygon",
}


def fix_if_required(p):
    if p.is_valid:
        return p
    p = p.buffer(0)
    if not p.is_valid:
        raise ValueError("could not fix polygon")
    return p


def _dedupe_consecutive(coords):
    out = []
    for c in coords:
        c = tuple(c)
        if not out or out[-1] != c:
            out.append(c)
    return out


class GeometryFactory:
    def make_point(self, record):
        return Point(record.coordinates)

    def make_linestring(self, record):
        try:
            coords = _dedupe_consecutive(record.coordinates or [])
        except TypeError as e:
            raise GeometryError(f"invalid coordinates: {e}", record.id) from e

        if len(coords) < 2:
            raise GeometryError("need at least two distinct coordinates", record.id)

        try:
            return LineString(coords)
        except (ValueError, TypeError, GEOSException) as e:
            raise GeometryError(str(e), record.id) from e

    def make_multipolygon(self, record):
        if not record.coordinates:
            raise GeometryError("area without any polygon", record.id)

        polygons = []
        try:
            for rings in record.coordinates:
                if not rings:
                    raise GeometryError("polygon without an outer ring", record.id)
                polygon = fix_if_required(Polygon(rings[0], rings[1:]))
                polygons.extend(self._polygons(polygon))
        except (ValueError, TypeError, IndexError, GEOSException) as e:
            raise GeometryError(str(e), record.id) from e

        if not polygons:
            raise GeometryError("area collapsed to an empty geometry", record.id)

        return MultiPolygon(polygons)

    def _polygons(self, geom):
        if geom.is_empty:
            return []
        if geom.geom_type == "Polygon":
            return [geom]
        if geom.geom_type == "MultiPolygon":
            return list(geom.geoms)
        # buffer(0) of a bow-tie can hand back a collection
        return [g for g in getattr(geom, "geoms", []) if g.geom_type == "Polygon" and not g.is_empty]


def to_ogr_geometry(geom, layer_geometry_type):
    """
    GeoJSON-like mapping of geom, promoted to the multi type of the layer when
    the layer holds multi geometries.
    """
    geometry = dict(mapping(geom))
    geom_type = geometry["type"]
    if geom_type == layer_geometry_type:
        return geometry

    if MULTI_TYPES.get(geom_type) == layer_geometry_type:
        return {"type": layer_geometry_type, "coordinates": [geometry["coordinates"]]}

    if layer_geometry_type == "Polygon" and geom_type == "MultiPolygon" and len(geometry["coordinates"]) == 1:
        return {"type": "Polygon", "coordinates": geometry["coordinates"][0]}

    return None
