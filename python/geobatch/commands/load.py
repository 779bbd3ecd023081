import contextlib
import json
import logging

import click
import py7zr

from geobatch.commands.decorators import (
    add_log_level_option,
    add_store_options,
    get_store_options,
)
from geobatch.commands.input_common import (
    get_layer_configs_from_input,
    process_input,
)
from geobatch.core.errors import FatalWriterError
from geobatch.core.feeder import RecordDispatcher
from geobatch.core.layers import load_layer_configs
from geobatch.core.output_root import OutputRoot
from geobatch.core.writers import FeatureWriter


def write_layers(input_path, output_root, configs, options, use_transaction=True):
    with contextlib.ExitStack() as stack:
        writers = [
            stack.enter_context(
                FeatureWriter(
                    output_root,
                    config.name,
                    config.geometry_type,
                    config.fields,
                    use_transaction=use_transaction,
                    strategy=config.strategy(),
                    options=options,
                )
            )
            for config in configs
        ]
        dispatcher = RecordDispatcher(writers)
        process_input(input_path, dispatcher, desc="Loading")

    logging.info(
        f"Processed {dispatcher.count} lines: {dispatcher.passed} records, {dispatcher.unparsed} unparsed, "
        f"{dispatcher.written()} features written, {dispatcher.skipped()} illegal geometries skipped"
    )
    return writers


@click.command("load")
@click.option("-i", "--input", "input_path", required=True, type=click.Path(exists=True), help="Path to the input .geojsonl file or 7z archive containing one.")
@click.option("-o", "--output-dir", default="output", show_default=True, type=click.Path(), help="Directory, relative to the working directory, that receives one store per layer.")
@click.option("-s", "--layers", "layers_file", default=None, type=click.Path(exists=True), help="Path to a layer definition file. If not provided, one layer per record kind is inferred from the input.")
@add_store_options
@add_log_level_option(default="INFO")
def load(input_path, output_dir, layers_file, no_transactions, cache_size, no_spatialite, overwrite, log_level):
    """
    Loads point, path and area records into SQLite feature stores.
    """
    logging.basicConfig(level=getattr(logging, log_level.upper()),
                        format='%(asctime)s - %(levelname)s - %(message)s')
    logging.info(f"Processing {input_path}")

    if layers_file:
        try:
            configs = load_layer_configs(layers_file)
        except (ValueError, KeyError, TypeError) as e:
            raise click.UsageError(f"Invalid layer definition file {layers_file}: {e}")
    else:
        logging.info(f"Inferring layers from {input_path}")
        configs = get_layer_configs_from_input(input_path)

    if not configs:
        logging.error("No layers to write.")
        raise click.Abort()

    logging.info(f"Writing layers: {json.dumps([c.name for c in configs])}")

    output_root = OutputRoot(output_dir, exist_ok=overwrite)
    options = get_store_options(no_spatialite, cache_size)

    try:
        write_layers(input_path, output_root, configs, options, use_transaction=not no_transactions)
    except FatalWriterError as e:
        logging.error(str(e))
        raise click.Abort()
    except (OSError, py7zr.exceptions.Bad7zFile, UnicodeDecodeError) as e:
        logging.error(f"Could not read {input_path}: {e}")
        raise click.Abort()
