from geobatch.core.feeder import RecordDispatcher, parse_line
from geobatch.core.records import POINT


class CollectingWriter:
    def __init__(self):
        self.records = []
        self.written = 0
        self.skipped = 0

    def accept(self, record):
        self.records.append(record)
        self.written += 1

    def size(self):
        return 0


def test_parse_line_only_returns_objects():
    assert parse_line('{"type": "Feature"}') == {"type": "Feature"}
    assert parse_line("[1, 2]") is None
    assert parse_line("42") is None
    assert parse_line('"x"') is None
    assert parse_line("not json") is None
    assert parse_line("   ") is None


def test_dispatcher_skips_malformed_lines(caplog):
    writer = CollectingWriter()
    dispatcher = RecordDispatcher([writer])

    lines = [
        '{"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 2]}, "properties": {"name": "a"}}',
        "[1, 2]",
        "42",
        "not json",
        '{"type": "Feature", "geometry": [1, 2], "properties": {}}',
        '{"type": "Feature", "geometry": {"type": "Point", "coordinates": [3, 4]}, "properties": [1]}',
        "",
    ]
    for line in lines:
        dispatcher.process(line)

    assert dispatcher.count == 6
    assert dispatcher.unparsed == 3
    assert dispatcher.passed == 2
    assert [r.kind for r in writer.records] == [POINT, POINT]
    assert writer.records[1].properties == {}
    assert dispatcher.written() == 2
    assert "not a GeoJSON feature" in caplog.text
