"""
Feeds GeoJSONL lines as typed records into feature writers.
"""

import json
import logging

from geobatch.core.records import record_from_feature


def parse_line(line):
    line = line.strip()
    if not line:
        return None
    try:
        feature = json.loads(line)
    except json.JSONDecodeError:
        logging.warning(f"Skipping line, could not decode JSON: {line}")
        return None

    if not isinstance(feature, dict):
        logging.warning(f"Skipping line, not a GeoJSON feature: {line}")
        return None
    return feature


class RecordDispatcher:
    """Hands every record to each writer; writers decide what they keep."""

    def __init__(self, writers):
        self.writers = list(writers)
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
        for writer in self.writers:
            writer.accept(record)
        return record

    def written(self):
        return sum(w.written for w in self.writers)

    def skipped(self):
        return sum(w.skipped for w in self.writers)

    def size(self):
        return sum(w.size() for w in self.writers)
