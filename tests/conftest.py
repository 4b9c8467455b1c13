"""Test configuration and fixtures for PageSmith tests."""

import pytest
import tempfile
import shutil
from pathlib import Path

from pagesmith_pkg.core import PageSmith
from pagesmith_pkg.settings import BuildConfig, DefaultDirs, Renderers


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def input_dir(temp_dir):
    """Create an empty site source directory."""
    path = Path(temp_dir) / 'site'
    path.mkdir()
    return path


@pytest.fixture
def output_dir(temp_dir):
    """Output directory path. Not created; the build does that."""
    return Path(temp_dir) / 'output'


@pytest.fixture
def write_file(input_dir):
    """Write a file relative to the site source directory."""
    def _write(relative_path, content):
        path = input_dir / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding='utf-8')
        return path
    return _write


@pytest.fixture
def make_config(input_dir, output_dir):
    """Build a BuildConfig pointing at the test directories, without a log file."""
    def _make(renderers=None, dirs=None, **overrides):
        overrides.setdefault('log_dir', None)
        return BuildConfig(
            input_dir=str(input_dir),
            output_dir=str(output_dir),
            renderers=Renderers(**(renderers or {})),
            dirs=DefaultDirs(**(dirs or {})),
            **overrides
        )
    return _make


@pytest.fixture
def build(make_config):
    """Run a full build and return its report."""
    def _build(**overrides):
        return PageSmith(make_config(**overrides)).build()
    return _build


@pytest.fixture
def read_output(output_dir):
    """Read a file from the output directory."""
    def _read(relative_path):
        return (output_dir / relative_path).read_text(encoding='utf-8')
    return _read


@pytest.fixture
def sample_site(write_file):
    """A small site with a layout, an include, data, a stylesheet and a plain file."""
    write_file('index.md', """---
title = "Home"
layout = "base.html"
---
# {{ page.data.title }}

{% include "greeting.html" %}
""")
    write_file('about.md', """---
title = "About"
---
About {{ site.data.team.name }}.
""")
    write_file('css/style.scss', """---
---
$accent: red;
body { a { color: $accent; } }
""")
    write_file('_layouts/base.html', "<html><title>{{ page.data.title }}</title>{{ page.content }}</html>")
    write_file('_includes/greeting.html', "Hello from {{ site.data.team.name }}")
    write_file('_data/team.yml', "name: The Team\n")
    write_file('robots.txt', "User-agent: *\n")
    write_file('images/pixel.png', b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR')
    return write_file
