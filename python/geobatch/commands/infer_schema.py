import logging
from pathlib import Path
import json

import click

from geobatch.helpers import get_base_name
from geobatch.commands.decorators import add_log_level_option
from geobatch.commands.input_common import get_layer_configs_from_input


@click.command("infer-schema")
@click.option("-i", "--input", "input_path", required=True, type=click.Path(exists=True), help="Path to the input .geojsonl file or 7z archive containing one.")
@click.option("-o", "--output-file", type=click.Path(), help="Path for the output file where the layer definitions will be saved.")
@add_log_level_option(default="INFO")
def infer_schema(input_path, output_file, log_level):
    """
    Infers one layer definition per record kind from the input.
    """
    logging.basicConfig(level=getattr(logging, log_level.upper()),
                        format='%(asctime)s - %(levelname)s - %(message)s')
    logging.info(f"Processing {input_path} for schema inference.")

    input_path = Path(input_path)

    configs = get_layer_configs_from_input(input_path)
    if not configs:
        logging.error("Failed to infer schema.")
        raise click.Abort()

    base_name = get_base_name(input_path)

    if output_file:
        output_filename = output_file
    else:
        output_filename = input_path.with_name(f"{base_name}.layers.json")

    with open(output_filename, 'w') as f:
        json.dump({"layers": [c.to_dict() for c in configs]}, f, indent=4)

    logging.info(f"Schema inferred and saved to {output_filename}")
