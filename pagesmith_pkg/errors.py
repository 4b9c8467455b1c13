"""
Build error taxonomy for PageSmith.

Every fatal condition raised inside the pipeline is a BuildError subclass that
knows which process exit status it maps to. Only the command-line entry point
turns these into an exit; everything below it raises.
"""

# sysexits.h values
EX_OK = 0
EX_USAGE = 64
EX_DATAERR = 65
EX_NOINPUT = 66
EX_SOFTWARE = 70
EX_IOERR = 74
EX_CONFIG = 78


class BuildError(Exception):
    """Base class for errors that abort a build."""

    exit_code = EX_SOFTWARE
    category = 'internal'

    def __init__(self, message, path=None):
        # Both values go into args so the error survives pickling across worker processes
        super().__init__(message, path)
        self.message = message
        self.path = path

    def __str__(self):
        if self.path:
            return f"{self.message} ({self.path})"
        return self.message


class InputNotFoundError(BuildError):
    exit_code = EX_NOINPUT
    category = 'input-not-found'


class InputReadError(BuildError):
    exit_code = EX_IOERR
    category = 'input-unreadable'


class DataError(BuildError):
    """Input that was read but could not be parsed or rendered."""
    exit_code = EX_DATAERR
    category = 'input-unparseable'


class TemplateError(DataError):
    pass


class StylesheetError(DataError):
    pass


class OutputError(BuildError):
    exit_code = EX_IOERR
    category = 'output-write'


class ConfigError(BuildError):
    exit_code = EX_CONFIG
    category = 'config'


class RendererError(BuildError):
    """A renderer failed in a way the input cannot explain."""


class CommandError(BuildError):
    pass
