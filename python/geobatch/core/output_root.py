"""
Output directory shared by the writers of one run.
"""

import logging
import os
import threading
from pathlib import Path

from geobatch.core.errors import OutputDirectoryError, WorkingDirectoryError

DIR_MODE = 0o755


class OutputRoot:
    """
    Resolves the output directory against the working directory and creates it
    at most once, no matter how many writers are handed this root.
    """

    def __init__(self, dirname, exist_ok=False):
        self.dirname = dirname
        self.exist_ok = exist_ok
        self._created = False
        self._lock = threading.Lock()
        self._path = None

    @property
    def created(self):
        return self._created

    @property
    def path(self):
        if self._path is None:
            self._path = self._resolve()
        return self._path

    def _resolve(self):
        dirname = Path(self.dirname)
        if dirname.is_absolute():
            return dirname
        try:
            cwd = os.getcwd()
        except OSError as e:
            raise WorkingDirectoryError(f"Could not get current directory. errno={e.errno}") from e
        return Path(cwd) / dirname

    def ensure(self):
        """Create the directory on first call, skip on every later call."""
        with self._lock:
            if self._created:
                return self.path
            path = self.path
            try:
                os.mkdir(path, DIR_MODE)
            except FileExistsError as e:
                if not (self.exist_ok and path.is_dir()):
                    raise OutputDirectoryError(
                        f"Could not create directory {path}. errno={e.errno}", path=path
                    ) from e
                logging.info(f"Reusing existing output directory {path}")
            except OSError as e:
                raise OutputDirectoryError(
                    f"Could not create directory {path}. errno={e.errno}", path=path
                ) from e
            else:
                logging.debug(f"Created output directory {path}")
            self._created = True
            return path

    def store_path(self, layer_name, extension="sqlite"):
        return self.ensure() / f"{layer_name}.{extension}"
