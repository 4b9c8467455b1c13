"""
Post-build directory copies into the output tree.
"""

import os
import shutil
import logging

from .errors import InputNotFoundError, OutputError

logger = logging.getLogger('PageSmith.copier')


def copy_tree(spec, output_dir):
    """
    Copy the contents of ``spec.input`` to ``output_dir / spec.output``.

    Existing files are left alone unless ``spec.overwrite`` is set. Returns
    the number of files copied.
    """
    if not os.path.isdir(spec.input):
        raise InputNotFoundError("Copy source is not a directory", spec.input)

    target_root = os.path.join(output_dir, spec.output) if spec.output else output_dir
    logger.info(f"Copying {spec.input} to {target_root}")

    copied = 0
    for dirpath, dirnames, filenames in os.walk(spec.input):
        dirnames.sort()
        relative_dir = os.path.relpath(dirpath, spec.input)
        target_dir = os.path.normpath(os.path.join(target_root, relative_dir))
        try:
            os.makedirs(target_dir, exist_ok=True)
            for filename in sorted(filenames):
                target = os.path.join(target_dir, filename)
                if os.path.exists(target) and not spec.overwrite:
                    logger.debug(f"Keeping existing {target}")
                    continue
                shutil.copy2(os.path.join(dirpath, filename), target)
                copied += 1
        except OSError as e:
            raise OutputError(f"Unable to copy directory: {e}", spec.input)

    return copied
