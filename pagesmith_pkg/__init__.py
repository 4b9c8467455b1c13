"""
PageSmith - a static site builder.

PageSmith turns a directory of mixed sources (markdown, Sass, templates and
data files) into a rendered output tree. Every page is loaded before any page
is rendered, so Jinja2 templates can read the whole site: all pages, all
plain files and all data files.
"""

__version__ = "1.0.0"

from .core import PageSmith
from .models import ContentType, DataRecord, Page, Site
from .settings import BuildConfig, PageSmithSettings

__all__ = ['PageSmith', 'BuildConfig', 'PageSmithSettings', 'ContentType', 'DataRecord', 'Page', 'Site']
