"""
Loaders for everything the build reads before rendering starts: pages and
their frontmatter, structured data files, and template fragments.
"""

import os
import json
import logging
import tomllib
import yaml

from .errors import InputReadError
from .models import DataRecord, Page

logger = logging.getLogger('PageSmith.loader')

FRONTMATTER_DELIMITER = '---'

DATA_EXTENSIONS = ('.yml', '.yaml', '.json', '.toml')


def _relative_name(path, root):
    return os.path.relpath(path, root).replace(os.sep, '/')


def _walk_files(root):
    """Yield every file under root in a stable order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if not name.startswith('.'))
        for filename in sorted(filenames):
            yield os.path.join(dirpath, filename)


def read_text(path):
    """Read a file that must exist. Any I/O failure aborts the build."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputReadError(f"Unable to read file: {e}", path)


def split_frontmatter(text):
    """
    Split ``text`` into (frontmatter, body).

    The frontmatter block must start on the first line with a line that is
    exactly ``---`` and ends at the next such line; both delimiter lines are
    discarded. Returns None when the text has no complete block.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return None

    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_DELIMITER:
            return ''.join(lines[1:index]), ''.join(lines[index + 1:])
    return None


def parse_frontmatter(block, frontmatter_format='toml', source=None):
    """
    Parse a frontmatter block into a dict.

    A block that cannot be parsed, or that is not a mapping, is logged and
    treated as empty so the page is still built.
    """
    try:
        if frontmatter_format == 'yaml':
            data = yaml.safe_load(block)
        else:
            data = tomllib.loads(block)
    except (yaml.YAMLError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Invalid frontmatter in {source}, ignoring it: {e}")
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Frontmatter in {source} is not a mapping, ignoring it")
        return {}
    return data


def load_page(path, relative_path, default_vars, template_enabled=True, frontmatter_format='toml'):
    """
    Load one input file as a Page.

    Returns None when the file is not a page: it has no frontmatter block
    (and the template stage is enabled), or it is not UTF-8 text. Such files
    are propagated to the output unchanged.
    """
    try:
        with open(path, 'rb') as f:
            raw = f.read()
    except OSError as e:
        raise InputReadError(f"Unable to read file: {e}", path)

    try:
        text = raw.decode('utf-8')
    except UnicodeDecodeError:
        logger.debug(f"{relative_path} is not UTF-8 text, treating it as a plain file")
        return None

    if not template_enabled:
        return Page(path=relative_path, data=dict(default_vars), content=text, source=relative_path)

    parts = split_frontmatter(text)
    if parts is None:
        logger.debug(f"{relative_path} does not contain frontmatter")
        return None

    block, body = parts
    frontmatter = parse_frontmatter(block, frontmatter_format, relative_path)

    data = dict(default_vars)
    data.update(frontmatter)
    return Page(path=relative_path, data=data, content=body, source=relative_path)


def _parse_data_file(path, text):
    ext = os.path.splitext(path)[1].lower()
    if ext in ('.yml', '.yaml'):
        return yaml.safe_load(text)
    if ext == '.json':
        return json.loads(text)
    return tomllib.loads(text)


def load_data(data_dir):
    """
    Load every structured data file under ``data_dir``.

    Records are named by their path relative to ``data_dir`` without the
    extension (``authors``, ``team/members``). A file that is not UTF-8 or
    fails to parse is dropped with a warning. When two files share a name
    (``site.json``, ``site.yml``) the one loaded last wins.
    """
    if not os.path.isdir(data_dir):
        logger.debug(f"No data directory at {data_dir}")
        return []

    records = []
    seen = {}
    for path in _walk_files(data_dir):
        if os.path.basename(path).startswith('.'):
            continue
        if not path.lower().endswith(DATA_EXTENSIONS):
            logger.debug(f"Skipping non-data file {path}")
            continue

        try:
            with open(path, 'rb') as f:
                raw = f.read()
        except OSError as e:
            raise InputReadError(f"Unable to read file: {e}", path)

        try:
            value = _parse_data_file(path, raw.decode('utf-8'))
        except (UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Unable to parse data file {path}, skipping it: {e}")
            continue

        name = os.path.splitext(_relative_name(path, data_dir))[0]
        if name in seen:
            logger.warning(f"Data file {path} replaces {seen[name]} as site.data.{name}")
            records = [record for record in records if record.name != name]
        seen[name] = path
        records.append(DataRecord(name=name, value=value if value is not None else {}))

    records.sort(key=lambda record: record.name)
    logger.debug(f"Loaded {len(records)} data records from {data_dir}")
    return records


def load_partials(include_dir):
    """Read every template fragment under ``include_dir`` into a name -> text table."""
    if not os.path.isdir(include_dir):
        logger.debug(f"No include directory at {include_dir}")
        return {}

    partials = {}
    for path in _walk_files(include_dir):
        if os.path.basename(path).startswith('.'):
            continue
        partials[_relative_name(path, include_dir)] = read_text(path)

    logger.debug(f"Loaded {len(partials)} partials from {include_dir}")
    return partials
