import logging
from pathlib import Path

import multivolumefile
import py7zr
from tqdm import tqdm

from geobatch.helpers import (
    get_geojsonl_file_info,
    readable_size,
)

from geobatch.core.streaming_7z import StreamingWriterFactory

from geobatch.core.infer_schema import (
    SchemaWriter,
    SchemaFilter,
)


class Updater:
    def __init__(self, pb):
        self.pb = pb

    def update_size(self, sz):
        self.pb.update(sz)

    def update_other_info(self, sink):
        self.pb.set_postfix(processed=sink.count,
                            written=sink.written(),
                            output_size=readable_size(sink.size()))


def process_archive(archive, sink, desc):
    target_file_info = get_geojsonl_file_info(archive)
    if target_file_info is None:
        raise FileNotFoundError("No .geojsonl file found in the archive.")

    target_file = target_file_info.filename
    file_size = target_file_info.uncompressed

    logging.info(f"Found geojsonl file: {target_file} (size: {file_size} bytes)")

    with tqdm(total=file_size, unit='B', unit_scale=True, desc=f"{desc} {target_file}") as pbar:
        updater = Updater(pbar)
        factory = StreamingWriterFactory(sink, updater)
        archive.extract(targets=[target_file], factory=factory)
        factory.streaming_io.flush_last_line()


def process_geojsonl(input_path, sink, desc):
    file_size = input_path.stat().st_size
    with tqdm(total=file_size, unit='B', unit_scale=True, desc=f"{desc} {input_path.name}") as pbar:
        updater = Updater(pbar)
        with input_path.open('rb') as f:
            for line in f:
                sink.process(line.decode('utf-8'))
                updater.update_size(len(line))
        updater.update_other_info(sink)


def process_input(input_path, sink, desc="Processing"):
    """
    Streams the records of a .geojsonl file, or of the single .geojsonl inside
    a (multi-volume) 7z archive, into sink.
    """
    archive_path = str(input_path)

    if archive_path.endswith('.7z.001'):
        base_path = archive_path.rsplit('.', 1)[0]
        with multivolumefile.open(base_path, 'rb') as multivolume_file:
            with py7zr.SevenZipFile(multivolume_file, 'r') as archive:
                process_archive(archive, sink, desc)
    elif archive_path.endswith('.7z'):
        with py7zr.SevenZipFile(archive_path, mode='r') as archive:
            process_archive(archive, sink, desc)
    else:
        process_geojsonl(Path(input_path), sink, desc)


def get_layer_configs_from_input(input_path):
    schema_writer = SchemaWriter()
    schema_filter = SchemaFilter(schema_writer)

    try:
        process_input(input_path, schema_filter, desc="Inferring layers from")
    except (OSError, py7zr.exceptions.Bad7zFile, UnicodeDecodeError) as e:
        logging.error(f"An error occurred: {e}")
        return None
    finally:
        schema_writer.close()

    return schema_writer.get_layer_configs()
