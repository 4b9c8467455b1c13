#!/usr/bin/env python3
"""
Command-line interface for PageSmith - static site builder.
"""

import os
import sys
import argparse
import logging
from typing import List, Optional

from . import __version__
from .core import PageSmith
from .errors import BuildError
from .settings import PageSmithSettings

RENDERER_FLAGS = ['data', 'template', 'sass', 'markdown', 'layout']

STARTER_FILES = {
    'index.md': """---
title = "Welcome"
layout = "base.html"
---
# {{ page.data.title }}

This site was built by **PageSmith** from `{{ page.source }}`.

{% for other in site.pages %}{% if other.data.title %}
- {{ other.data.title }}
{% endif %}{% endfor %}
""",
    'style.scss': """---
---
$accent: #0a6ebd;

body {
  font-family: sans-serif;

  a { color: $accent; }
}
""",
    '_layouts/base.html': """<!DOCTYPE html>
<html lang="{{ page.data.lang }}">
<head>
  <meta charset="utf-8">
  <title>{{ page.data.title }} | {{ site.data.site.name }}</title>
  <link rel="stylesheet" href="{{ site.mount }}style.css">
</head>
<body>
  {% include "nav.html" %}
  <main>
{{ page.content }}
  </main>
</body>
</html>
""",
    '_includes/nav.html': """<nav><a href="{{ site.mount }}">{{ site.data.site.name }}</a></nav>
""",
    '_data/site.yml': """name: My PageSmith Site
tagline: Built with PageSmith
""",
}


def create_starter_structure(input_dir: str) -> None:
    """Create a starter site with a layout, an include, a data file and a stylesheet."""
    for relative_path, content in STARTER_FILES.items():
        path = os.path.join(input_dir, *relative_path.split('/'))
        if os.path.exists(path):
            print(f"File already exists: {path}")
            continue
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        print(f"Created: {path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='PageSmith - Static Site Builder')
    parser.add_argument('--input', type=str,
                        help='Input directory containing the site sources')
    parser.add_argument('--output', type=str,
                        help='Output directory for the generated site')
    parser.add_argument('--config-dir', type=str,
                        help='Directory to look for pagesmith.{yml,yaml,json,toml} in')
    for name in RENDERER_FLAGS:
        parser.add_argument(f'--no-{name}', dest=f'renderers.{name}', action='store_false', default=None,
                            help=f'Disable the {name} stage')
    parser.add_argument('--sanitize', dest='renderers.sanitizer', action='store_true', default=None,
                        help='Sanitize HTML output')
    parser.add_argument('--minify', dest='renderers.minify', action='store_true', default=None,
                        help='Minify CSS and JS output')
    parser.add_argument('--strict', dest='strict_undefined', action='store_true', default=None,
                        help='Treat undefined template variables as errors')
    parser.add_argument('--workers', type=int,
                        help='Maximum number of worker processes')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json', 'toml'],
                        help='Create a sample configuration file and starter site')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    settings_loader = PageSmithSettings(args.config_dir)

    try:
        # Handle init command
        if args.init:
            config_path = settings_loader.create_sample_config(args.init)
            print(f"Created sample configuration file: {config_path}")

            print("\nCreating starter site...")
            settings = settings_loader.load_settings()
            create_starter_structure(settings_loader.resolve_path(settings['input']))

            print("\nYour new PageSmith site is ready!")
            print("Edit the configuration file and sources, then run 'pagesmith' to build your site.")
            return

        # Load settings from configuration file
        settings_loader.load_settings()

        # Command line arguments take precedence over the config file
        args_dict = {k: v for k, v in vars(args).items() if v is not None and k not in ('init', 'config_dir')}
        final_settings = settings_loader.merge_with_args(args_dict)
        config = settings_loader.to_config(final_settings)

        generator = PageSmith(config)
        generator.build()
    except BuildError as e:
        logging.getLogger('PageSmith').error(f"Build failed [{e.category}]: {e}")
        sys.exit(e.exit_code)


if __name__ == '__main__':
    main()
