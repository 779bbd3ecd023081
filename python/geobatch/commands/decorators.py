"""
Common decorators for CLI commands.
"""

import functools

import click

from geobatch.core.writers import StoreOptions

DEFAULT_CACHE_SIZE_MB = StoreOptions.cache_size_mb


def add_log_level_option(default="WARNING"):
    """Decorator factory that adds a log-level option to a command."""

    def decorator(func):
        @click.option(
            "-l",
            "--log-level",
            default=default,
            type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
            help="Set the logging level.",
        )
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        return wrapper

    return decorator


def add_store_options(func):
    """Decorator that adds the output store options to a command."""

    @click.option(
        "--no-transactions",
        is_flag=True,
        help="Write every feature on its own instead of in batched transactions.",
    )
    @click.option(
        "--cache-size",
        default=DEFAULT_CACHE_SIZE_MB,
        show_default=True,
        type=click.IntRange(min=1),
        help="SQLite page cache size in megabytes.",
    )
    @click.option(
        "--no-spatialite",
        is_flag=True,
        help="Create plain SQLite stores instead of SpatiaLite ones.",
    )
    @click.option(
        "--overwrite",
        is_flag=True,
        help="Reuse an existing output directory, replacing store files already in it.",
    )
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    return wrapper


def get_store_options(no_spatialite, cache_size):
    return StoreOptions(spatialite=not no_spatialite, cache_size_mb=cache_size)
