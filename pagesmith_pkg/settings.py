#!/usr/bin/env python3
"""
Settings loader for PageSmith static site builder.
Supports configuration from pagesmith.yml, pagesmith.yaml, pagesmith.json or pagesmith.toml files.
"""

import copy
import os
import json
import tomllib
import yaml
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Any, List, Optional

from .errors import ConfigError


@dataclass(frozen=True)
class Renderers:
    """Which pipeline stages are enabled. A disabled stage passes pages through."""
    data: bool = True
    template: bool = True
    sass: bool = True
    markdown: bool = True
    sanitizer: bool = False
    layout: bool = True
    minify: bool = False


@dataclass(frozen=True)
class DefaultDirs:
    """Names of the special directories, relative to the input directory."""
    data: str = '_data'
    layouts: str = '_layouts'
    includes: str = '_includes'


@dataclass(frozen=True)
class CommandSpec:
    command: str
    args: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CopySpec:
    input: str
    output: str = ''
    overwrite: bool = False


@dataclass(frozen=True)
class BuildConfig:
    """Typed view of the merged settings consumed by the build."""
    input_dir: str = 'site'
    output_dir: str = 'output'
    renderers: Renderers = field(default_factory=Renderers)
    dirs: DefaultDirs = field(default_factory=DefaultDirs)
    default_vars: Dict[str, Any] = field(default_factory=dict)
    mount: str = '/'
    frontmatter_format: str = 'toml'
    fragment_extensions: List[str] = field(default_factory=lambda: ['.inc'])
    strict_undefined: bool = False
    workers: Optional[int] = None
    parallel_threshold: int = 12
    commands: List[CommandSpec] = field(default_factory=list)
    copy: List[CopySpec] = field(default_factory=list)
    log_dir: Optional[str] = 'logs'

    @property
    def data_dir(self) -> str:
        return os.path.join(self.input_dir, self.dirs.data)

    @property
    def layout_dir(self) -> str:
        return os.path.join(self.input_dir, self.dirs.layouts)

    @property
    def include_dir(self) -> str:
        return os.path.join(self.input_dir, self.dirs.includes)


def _build_section(cls, value, key):
    """Instantiate one of the nested config dataclasses from a mapping."""
    if value is None:
        return cls()
    if isinstance(value, cls):
        return value
    if not isinstance(value, dict):
        raise ConfigError(f"Setting '{key}' must be a mapping, got {type(value).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(value) - known
    if unknown:
        raise ConfigError(f"Unknown keys in '{key}': {', '.join(sorted(unknown))}")
    return cls(**value)


def _to_int(value, key):
    if isinstance(value, bool):
        raise ConfigError(f"Setting '{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Setting '{key}' must be an integer, got {value!r}")


class PageSmithSettings:
    """Load and manage PageSmith configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'input': 'site',
        'output': 'output',
        'renderers': {},
        'dirs': {},
        'default_vars': {},
        'mount': '/',
        'frontmatter_format': 'toml',
        'fragment_extensions': ['.inc'],
        'strict_undefined': False,
        'workers': None,
        'parallel_threshold': 12,
        'commands': [],
        'copy': [],
        'log_dir': 'logs',
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['pagesmith.yml', 'pagesmith.yaml', 'pagesmith.json', 'pagesmith.toml']

    FRONTMATTER_FORMATS = ('toml', 'yaml')

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                if not isinstance(loaded_settings, dict):
                    raise ConfigError("Configuration file must contain a mapping", config_file)
                # Merge with defaults, giving preference to loaded settings
                self.settings.update(loaded_settings)
                print(f"Loaded configuration from: {os.path.relpath(config_file)}")

        return dict(self.settings)

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            if file_ext == '.toml':
                with open(config_path, 'rb') as f:
                    return tomllib.load(f)
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ConfigError(f"Unsupported config file format: {file_ext}", config_path)
        except PermissionError:
            raise ConfigError("Permission denied reading configuration file", config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in configuration file: {e}", config_path)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in configuration file: {e}", config_path)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in configuration file: {e}", config_path)
        except OSError as e:
            raise ConfigError(f"Error reading configuration file: {e}", config_path)

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Renderer toggles arrive as ``renderers.<name>`` keys and are merged
        into the ``renderers`` section rather than replacing it.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = dict(self.settings)
        renderers = dict(merged.get('renderers') or {})

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is None:
                continue
            if key.startswith('renderers.'):
                renderers[key.split('.', 1)[1]] = value
            else:
                merged[key] = value

        merged['renderers'] = renderers
        return merged

    def resolve_path(self, path: str) -> str:
        """Resolve a configured path; relative paths are taken from the config directory."""
        path = os.path.expanduser(str(path))
        if not os.path.isabs(path):
            path = os.path.join(self.config_dir, path)
        return os.path.normpath(path)

    def _resolve_copy(self, spec: CopySpec) -> CopySpec:
        return replace(spec, input=self.resolve_path(spec.input))

    def to_config(self, settings: Dict[str, Any] = None) -> BuildConfig:
        """Validate a merged settings dictionary and turn it into a BuildConfig."""
        settings = dict(self.settings if settings is None else settings)

        known = set(self.DEFAULT_SETTINGS)
        unknown = set(settings) - known
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}", self.config_file_path)

        frontmatter_format = str(settings['frontmatter_format']).lower()
        if frontmatter_format not in self.FRONTMATTER_FORMATS:
            raise ConfigError(f"frontmatter_format must be one of {', '.join(self.FRONTMATTER_FORMATS)}")

        default_vars = settings['default_vars'] or {}
        if not isinstance(default_vars, dict):
            raise ConfigError("default_vars must be a mapping")

        threshold = _to_int(settings['parallel_threshold'], 'parallel_threshold')
        if threshold < 1:
            raise ConfigError("parallel_threshold must be at least 1")

        workers = settings['workers']
        if workers is not None:
            workers = _to_int(workers, 'workers')
            if workers < 1:
                raise ConfigError("workers must be at least 1")

        fragments = settings['fragment_extensions'] or []
        if isinstance(fragments, str):
            fragments = [ext.strip() for ext in fragments.split(',')]

        input_dir = self.resolve_path(settings['input'])
        output_dir = self.resolve_path(settings['output'])
        log_dir = self.resolve_path(settings['log_dir']) if settings['log_dir'] else None

        return BuildConfig(
            input_dir=input_dir,
            output_dir=output_dir,
            renderers=_build_section(Renderers, settings['renderers'], 'renderers'),
            dirs=_build_section(DefaultDirs, settings['dirs'], 'dirs'),
            default_vars=dict(default_vars),
            mount=settings['mount'] or '/',
            frontmatter_format=frontmatter_format,
            fragment_extensions=['.' + ext.lstrip('.').lower() for ext in fragments if ext],
            strict_undefined=bool(settings['strict_undefined']),
            workers=workers,
            parallel_threshold=threshold,
            commands=[_build_section(CommandSpec, cmd, 'commands') for cmd in settings['commands'] or []],
            copy=[self._resolve_copy(_build_section(CopySpec, spec, 'copy')) for spec in settings['copy'] or []],
            log_dir=log_dir,
        )

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', 'json' or 'toml')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            'input': 'site',
            'output': 'output',
            'mount': '/',
            'frontmatter_format': 'toml',
            'renderers': {
                'data': True,
                'template': True,
                'sass': True,
                'markdown': True,
                'layout': True,
                'sanitizer': False,
                'minify': False,
            },
            'default_vars': {
                'lang': 'en',
            },
        }

        filename = f'pagesmith.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    # Custom YAML output with comments
                    f.write("# PageSmith Configuration File\n\n")
                    f.write("# Source and output trees\n")
                    f.write("input: site\n")
                    f.write("output: output\n")
                    f.write("mount: /\n\n")
                    f.write("# Frontmatter syntax: toml or yaml\n")
                    f.write("frontmatter_format: toml\n\n")
                    f.write("# Pipeline stages\n")
                    f.write("renderers:\n")
                    for name, enabled in sample_config['renderers'].items():
                        f.write(f"  {name}: {'true' if enabled else 'false'}\n")
                    f.write("\n# Variables every page starts with\n")
                    f.write("default_vars:\n")
                    f.write("  lang: en\n")
                elif file_format == 'json':
                    json.dump(sample_config, f, indent=2)
                elif file_format == 'toml':
                    f.write("# PageSmith Configuration File\n\n")
                    f.write('input = "site"\n')
                    f.write('output = "output"\n')
                    f.write('mount = "/"\n')
                    f.write('frontmatter_format = "toml"\n\n')
                    f.write("[renderers]\n")
                    for name, enabled in sample_config['renderers'].items():
                        f.write(f"{name} = {'true' if enabled else 'false'}\n")
                    f.write("\n[default_vars]\n")
                    f.write('lang = "en"\n')
                else:
                    raise ConfigError(f"Unsupported config file format: {file_format}")
        except OSError as e:
            raise ConfigError(f"Error writing configuration file: {e}", config_path)

        return config_path
