import json
import os

import fiona
import py7zr
from click.testing import CliRunner

from geobatch.cli import main_cli

FEATURES = [
    '{"type": "Feature", "id": 1, "geometry": {"type": "Point", "coordinates": [77.5946, 12.9716]}, "properties": {"name": "Bengaluru", "population": 8443675}}',
    '{"type": "Feature", "id": 2, "geometry": {"type": "Point", "coordinates": [78.4867, 17.3850]}, "properties": {"name": "Hyderabad", "population": 6809970}}',
    '{"type": "Feature", "id": 3, "geometry": {"type": "LineString", "coordinates": [[77, 12], [78, 13]]}, "properties": {"name": "NH44"}}',
    '{"type": "Feature", "id": 4, "geometry": {"type": "LineString", "coordinates": [[77, 12], [77, 12]]}, "properties": {"name": "broken"}}',
    '{"type": "Feature", "id": 5, "geometry": {"type": "Polygon", "coordinates": [[[77, 12], [78, 12], [78, 13], [77, 13], [77, 12]]]}, "properties": {"name": "Park"}}',
    '{"type": "Feature", "id": 6, "geometry": {"type": "Polygon", "coordinates": [[[77, 12], [78, 12], [78, 13], [77, 13], [77, 12]]]}, "properties": {}}',
    'not json',
]


def write_input(filename="test.geojsonl"):
    with open(filename, "w") as f:
        for line in FEATURES:
            f.write(line + "\n")


def read_properties(path, layer):
    with fiona.open(path, layer=layer) as collection:
        return [dict(f["properties"]) for f in collection]


def test_load_infers_layers():
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite"], catch_exceptions=False)
        assert result.exit_code == 0

        assert sorted(os.listdir("out")) == ["areas.sqlite", "paths.sqlite", "points.sqlite"]

        points = read_properties("out/points.sqlite", "points")
        assert sorted(p["name"] for p in points) == ["Bengaluru", "Hyderabad"]
        assert {p["population"] for p in points} == {8443675, 6809970}

        paths = read_properties("out/paths.sqlite", "paths")
        assert [p["name"] for p in paths] == ["NH44"]

        areas = read_properties("out/areas.sqlite", "areas")
        assert sorted(p["name"] or "" for p in areas) == ["", "Park"]


def test_load_from_7z_with_layer_file():
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()
        with py7zr.SevenZipFile("test.7z", "w") as archive:
            archive.write("test.geojsonl")

        layers = {
            "layers": [
                {"name": "buildings", "kind": "area", "required": "name", "fields": [{"name": "name", "type": "str", "width": 64}]},
                {"name": "cities", "kind": "point", "fields": ["name:str", "population:int"]},
            ]
        }
        with open("layers.json", "w") as f:
            json.dump(layers, f)

        result = runner.invoke(
            main_cli,
            ["load", "-i", "test.7z", "-o", "out", "-s", "layers.json", "--no-spatialite", "--cache-size", "64"],
            catch_exceptions=False,
        )
        assert result.exit_code == 0

        assert sorted(os.listdir("out")) == ["buildings.sqlite", "cities.sqlite"]
        assert read_properties("out/buildings.sqlite", "buildings") == [{"name": "Park"}]
        assert len(read_properties("out/cities.sqlite", "cities")) == 2


def test_load_without_transactions():
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()

        result = runner.invoke(
            main_cli,
            ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite", "--no-transactions"],
            catch_exceptions=False,
        )
        assert result.exit_code == 0
        assert len(read_properties("out/points.sqlite", "points")) == 2


def test_load_reports_skipped_geometry(caplog):
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite"], catch_exceptions=False)
        assert result.exit_code == 0
        assert "Ignoring illegal geometry for path with id = 4" in caplog.text
        assert "could not decode JSON" in caplog.text


def test_load_uncreatable_output_dir_fails(caplog):
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()
        with open("blocker", "w") as f:
            f.write("")

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "blocker/out", "--no-spatialite"])
        assert result.exit_code != 0
        assert "blocker/out" in caplog.text


def test_load_existing_output_dir():
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()
        os.mkdir("out")

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite"])
        assert result.exit_code != 0

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite", "--overwrite"], catch_exceptions=False)
        assert result.exit_code == 0
        assert len(read_properties("out/points.sqlite", "points")) == 2


def test_load_invalid_layer_file():
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        write_input()
        with open("layers.json", "w") as f:
            json.dump([{"name": "x", "kind": "volume"}], f)

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "-s", "layers.json"])
        assert result.exit_code == 2
        assert not os.path.exists("out")


def test_load_skips_non_object_lines(caplog):
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        with open("test.geojsonl", "w") as f:
            f.write(FEATURES[0] + "\n")
            f.write("[1, 2]\n")
            f.write('{"type": "Feature", "geometry": "POINT (1 2)", "properties": {"name": "wkt"}}\n')
            f.write(FEATURES[1] + "\n")

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite"], catch_exceptions=False)
        assert result.exit_code == 0
        assert "not a GeoJSON feature" in caplog.text
        assert sorted(p["name"] for p in read_properties("out/points.sqlite", "points")) == ["Bengaluru", "Hyderabad"]


def test_load_out_of_range_int():
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        with open("test.geojsonl", "w") as f:
            f.write('{"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 1]}, "properties": {"n": 1}}\n')
            f.write('{"type": "Feature", "geometry": {"type": "Point", "coordinates": [2, 2]}, "properties": {"n": %d}}\n' % 2**70)

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "--no-spatialite"], catch_exceptions=False)
        assert result.exit_code == 0
        assert read_properties("out/points.sqlite", "points") == [{"n": 1}, {"n": None}]


def test_load_invalid_utf8_fails(caplog):
    runner = CliRunner()
    with runner.isolated_filesystem() as td:
        os.chdir(td)
        with open("test.geojsonl", "wb") as f:
            f.write((FEATURES[0] + "\n").encode("utf-8"))
            f.write(b'{"type": "Feature", "properties": {"name": "\xff"}}\n')
        with open("layers.json", "w") as f:
            json.dump([{"name": "cities", "kind": "point", "fields": ["name:str"]}], f)

        result = runner.invoke(main_cli, ["load", "-i", "test.geojsonl", "-o", "out", "-s", "layers.json", "--no-spatialite"])
        assert result.exit_code == 1
        assert "Could not read test.geojsonl" in caplog.text
        assert not isinstance(result.exception, UnicodeDecodeError)
