"""
Render stages.

Each stage turns one Page into the next Page (or None to drop it from the
output). Stages never mutate the page they are given and only read the Site
snapshot, so any number of pages can go through a pipeline concurrently.
"""

import os
import logging

import csscompressor
import jinja2
import mistune
import nh3
import rjsmin
import sass

from .errors import RendererError, StylesheetError, TemplateError
from .loaders import split_frontmatter
from .models import ContentType

logger = logging.getLogger('PageSmith.stages')

MARKDOWN_EXTENSIONS = ('md', 'markdown')
SASS_EXTENSIONS = ('scss', 'sass')

# Document structure on top of nh3's default allow-list
SANITIZER_EXTRA_TAGS = {
    'html', 'head', 'body', 'title', 'main', 'article', 'section',
    'header', 'footer', 'nav', 'aside', 'figure', 'figcaption',
}


def create_environment(partials, strict_undefined=False):
    """Jinja2 environment whose includes resolve from the partial registry."""
    return jinja2.Environment(
        loader=jinja2.DictLoader(dict(partials)),
        undefined=jinja2.StrictUndefined if strict_undefined else jinja2.Undefined,
        keep_trailing_newline=True,
        autoescape=False,
    )


def compile_template(env, text, source):
    try:
        return env.from_string(text)
    except jinja2.TemplateSyntaxError as e:
        raise TemplateError(f"Template syntax error on line {e.lineno}: {e.message}", source)


def render_template(template, page, site, source):
    try:
        return template.render(site=site, page=page)
    except jinja2.TemplateError as e:
        raise TemplateError(f"Unable to render template: {e}", source)
    except Exception as e:
        raise TemplateError(f"Unable to render template: {type(e).__name__}: {e}", source)


def create_markdown_parser():
    """Create a Mistune markdown parser that passes raw HTML through."""
    return mistune.create_markdown(
        escape=False,
        plugins=['strikethrough', 'table', 'url', 'task_lists', 'superscript', 'footnotes', 'def_list'],
    )


class Stage:
    """Identity stage. Disabled renderers are replaced by an instance of this class."""

    name = 'identity'

    def apply(self, page, site):
        return page

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class TemplateStage(Stage):
    """Render page content as a Jinja2 template with ``site`` and ``page`` in scope."""

    name = 'template'

    def __init__(self, env, fragment_extensions=()):
        self.env = env
        self.fragment_extensions = tuple(ext.lstrip('.').lower() for ext in fragment_extensions)

    def is_fragment(self, page):
        return page.extension in self.fragment_extensions

    def apply(self, page, site):
        if self.is_fragment(page):
            logger.debug(f"Skipping template fragment {page.source}")
            return None

        template = compile_template(self.env, page.content, page.source)
        content = render_template(template, page, site, page.source)
        return page.transform(content, ContentType.TEMPLATED)


class MarkupStage(Stage):
    """
    Content-type driven conversion: markdown to HTML, Sass/SCSS to CSS.

    Which transform applies depends only on the page's current extension, and
    content and extension always change together. Pages that already went
    through this stage no longer match either trigger.
    """

    name = 'markup'

    def __init__(self, markdown=True, stylesheets=True, include_paths=(), input_dir=None):
        self.markdown = markdown
        self.stylesheets = stylesheets
        self.include_paths = list(include_paths)
        self.input_dir = input_dir
        self.markdown_parser = create_markdown_parser() if markdown else None

    def apply(self, page, site):
        ext = page.extension
        if self.markdown and ext in MARKDOWN_EXTENSIONS:
            return page.transform(self.render_markdown(page), ContentType.HTML, 'html')
        if self.stylesheets and ext in SASS_EXTENSIONS:
            return page.transform(self.compile_stylesheet(page), ContentType.CSS, 'css')
        return page

    def render_markdown(self, page):
        logger.debug(f"Rendering markdown for {page.source}")
        try:
            return self.markdown_parser(page.content)
        except Exception as e:
            raise RendererError(f"Markdown renderer failed: {e}", page.source)

    def compile_stylesheet(self, page):
        logger.debug(f"Compiling stylesheet {page.source}")
        include_paths = list(self.include_paths)
        if self.input_dir:
            include_paths.insert(0, os.path.join(self.input_dir, os.path.dirname(page.source)))
        try:
            return sass.compile(
                string=page.content,
                include_paths=include_paths,
                indented=page.extension == 'sass',
                output_style='expanded',
            )
        except sass.CompileError as e:
            raise StylesheetError(f"Unable to compile stylesheet: {e}", page.source)


class LayoutStage(Stage):
    """
    Wrap a page in the layout its ``layout`` variable names.

    The layout is rendered with the same ``site`` and ``page`` context, so it
    places the already rendered body with ``{{ page.content }}``. Layouts are
    applied once; a layout naming another layout is not followed.
    """

    name = 'layout'

    def __init__(self, env, layout_dir):
        self.env = env
        self.layout_dir = layout_dir
        self._cache = {}

    def apply(self, page, site):
        name = page.data.get('layout')
        if name is None or name == '':
            return page
        if not isinstance(name, str):
            logger.warning(f"Ignoring non-string layout {name!r} in {page.source}")
            return page

        layout = self.load_layout(name)
        if layout is None:
            return page

        template, extension = layout
        content = render_template(template, page, site, page.source)
        return page.transform(content, ContentType.LAID_OUT, extension or None)

    def load_layout(self, name):
        """Return (template, extension) for a layout, or None if it can't be read."""
        if name in self._cache:
            return self._cache[name]

        root = os.path.realpath(self.layout_dir)
        path = os.path.realpath(os.path.join(self.layout_dir, name))
        layout = None
        if os.path.commonpath([root, path]) != root:
            logger.warning(f"Layout {name} resolves outside {self.layout_dir}, ignoring it")
        else:
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Unable to read layout {name}, leaving pages unwrapped: {e}")
            else:
                parts = split_frontmatter(text)
                if parts is not None:
                    text = parts[1]
                template = compile_template(self.env, text, path)
                layout = (template, os.path.splitext(name)[1].lstrip('.'))

        self._cache[name] = layout
        return layout


class SanitizeStage(Stage):
    """Allow-list HTML cleaning. Never fails a build; a cleaner error yields empty output."""

    name = 'sanitizer'

    def __init__(self, tags=None):
        self.tags = set(tags) if tags is not None else set(nh3.ALLOWED_TAGS) | SANITIZER_EXTRA_TAGS

    def apply(self, page, site):
        if page.extension != 'html':
            return page
        try:
            content = nh3.clean(page.content, tags=self.tags)
        except Exception as e:
            logger.warning(f"Sanitizer failed on {page.source}, writing empty output: {e}")
            content = ''
        return page.transform(content, ContentType.SANITIZED)


class MinifyStage(Stage):
    """Minify CSS and JS output."""

    name = 'minify'

    def apply(self, page, site):
        ext = page.extension
        try:
            if ext == 'css':
                content = csscompressor.compress(page.content)
            elif ext == 'js':
                content = rjsmin.jsmin(page.content)
            else:
                return page
        except Exception as e:
            logger.warning(f"Unable to minify {page.source}, keeping it as is: {e}")
            return page
        return page.transform(content, page.content_type)


class Pipeline:
    """Ordered stages a page passes through between loading and writing."""

    def __init__(self, stages):
        self.stages = list(stages)

    @classmethod
    def from_config(cls, config, partials):
        """Build the pipeline once; disabled renderers become identity stages."""
        renderers = config.renderers
        env = create_environment(partials, config.strict_undefined)

        stages = [
            TemplateStage(env, config.fragment_extensions) if renderers.template else Stage(),
            MarkupStage(
                markdown=renderers.markdown,
                stylesheets=renderers.sass,
                include_paths=[config.include_dir],
                input_dir=config.input_dir,
            ) if renderers.markdown or renderers.sass else Stage(),
            LayoutStage(env, config.layout_dir) if renderers.layout else Stage(),
            SanitizeStage() if renderers.sanitizer else Stage(),
            MinifyStage() if renderers.minify else Stage(),
        ]
        return cls(stages)

    def run(self, page, site):
        for stage in self.stages:
            page = stage.apply(page, site)
            if page is None:
                return None
        return page
