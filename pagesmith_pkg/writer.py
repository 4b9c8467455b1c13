"""
Output tree management: clean builds, page writes and plain-file propagation.
"""

import os
import shutil
import logging

from .errors import ConfigError, OutputError

logger = logging.getLogger('PageSmith.writer')


def _is_within(path, root):
    return os.path.commonpath([path, root]) == root


class OutputWriter:
    """Writes rendered pages and propagates plain files into ``output_dir``."""

    def __init__(self, input_dir, output_dir):
        self.input_dir = input_dir
        self.output_dir = output_dir

    def prepare(self):
        """
        Start a clean build: remove any previous output tree and recreate it.

        Refuses to run when deleting the output directory would delete the
        input directory.
        """
        output_root = os.path.realpath(self.output_dir)
        input_root = os.path.realpath(self.input_dir)
        if _is_within(input_root, output_root):
            raise ConfigError("Output directory must not contain the input directory", self.output_dir)

        if os.path.lexists(self.output_dir):
            logger.debug(f"Removing previous output tree {self.output_dir}")
            try:
                if os.path.isdir(self.output_dir) and not os.path.islink(self.output_dir):
                    shutil.rmtree(self.output_dir)
                else:
                    os.remove(self.output_dir)
            except OSError as e:
                raise OutputError(f"Unable to remove previous output: {e}", self.output_dir)

        try:
            os.makedirs(self.output_dir, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Unable to create output directory: {e}", self.output_dir)

    def destination(self, relative_path):
        path = os.path.join(self.output_dir, *relative_path.split('/'))
        if not _is_within(os.path.realpath(path), os.path.realpath(self.output_dir)):
            raise OutputError("Path escapes the output directory", relative_path)
        return path

    def write_page(self, page):
        """Write a page's final content to ``output_dir / page.output_path``."""
        path = self.destination(page.output_path)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(page.content)
        except OSError as e:
            raise OutputError(f"Unable to write page: {e}", path)
        logger.debug(f"Wrote {page.source} -> {path}")
        return path

    def propagate(self, relative_path):
        """
        Hard link (or copy) a plain file into the output tree.

        Anything already at the destination wins, which lets rendered pages
        shadow plain files of the same name. Returns True if the file was
        propagated.
        """
        source = os.path.join(self.input_dir, *relative_path.split('/'))
        path = self.destination(relative_path)
        if os.path.lexists(path):
            logger.debug(f"{relative_path} already exists in output, not propagating it")
            return False

        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
        except OSError as e:
            raise OutputError(f"Unable to create directory: {e}", os.path.dirname(path))

        try:
            os.link(source, path)
            logger.debug(f"Linked {source} -> {path}")
        except OSError as link_error:
            logger.debug(f"Hard link failed for {source} ({link_error}), copying instead")
            try:
                shutil.copy2(source, path)
            except OSError as e:
                raise OutputError(f"Unable to copy file: {e}", source)
        return True
