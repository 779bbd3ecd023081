import click

from geobatch.commands.infer_schema import infer_schema
from geobatch.commands.load import load


@click.group()
def main_cli():
    """Batched loader of geographic records into SQLite feature stores"""
    pass


main_cli.add_command(load)
main_cli.add_command(infer_schema)

if __name__ == "__main__":
    main_cli()
