"""
Pre-build commands, e.g. a bundler that drops files into the input tree.
"""

import logging
import subprocess

from .errors import CommandError

logger = logging.getLogger('PageSmith.runner')


def run_command(spec, cwd=None):
    """Run one configured command. A launch failure or non-zero exit aborts the build."""
    args = [str(arg) for arg in spec.args]
    if args:
        logger.info(f"Running {spec.command} with args {args}")
    else:
        logger.info(f"Running {spec.command}")

    try:
        result = subprocess.run([spec.command, *args], cwd=cwd, check=False)
    except OSError as e:
        raise CommandError(f"Unable to run command: {e}", spec.command)

    if result.returncode != 0:
        raise CommandError(f"Command exited with status {result.returncode}", spec.command)
