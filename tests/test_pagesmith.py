"""End-to-end tests for the PageSmith build."""

import logging
import sys

import pytest

from pagesmith_pkg import PageSmith
from pagesmith_pkg.errors import InputNotFoundError, StylesheetError, TemplateError
from pagesmith_pkg.settings import CommandSpec, CopySpec


def output_files(output_dir):
    return sorted(
        path.relative_to(output_dir).as_posix()
        for path in output_dir.rglob('*') if path.is_file()
    )


class TestPageSmith:
    """Test cases for full builds."""

    def test_markdown_page_in_layout(self, write_file, build, read_output):
        write_file('post.md', '---\ntitle = "Hi"\nlayout = "base.html"\n---\n# Hello {{ page.data.title }}')
        write_file('_layouts/base.html', '<html>{{ page.content }}</html>')

        build()

        assert read_output('post.html') == '<html><h1>Hello Hi</h1>\n</html>'

    def test_sample_site(self, sample_site, build, output_dir, read_output):
        report = build()

        assert output_files(output_dir) == [
            'about.html', 'css/style.css', 'images/pixel.png', 'index.html', 'robots.txt',
        ]
        assert read_output('index.html') == (
            '<html><title>Home</title><h1>Home</h1>\n<p>Hello from The Team</p>\n</html>'
        )
        assert read_output('about.html') == '<p>About The Team.</p>\n'
        assert 'color: red' in read_output('css/style.css')
        assert read_output('robots.txt') == 'User-agent: *\n'
        assert report.pages_written == 3
        assert report.files_propagated == 2
        assert report.data_records == 1

    def test_unparseable_data_file(self, write_file, build, read_output, caplog):
        """A broken data file is dropped, logged, and every page still renders."""
        write_file('_data/good.yml', 'name: Good\n')
        write_file('_data/broken.yml', 'name: [oops\n')
        write_file('index.html', '---\n---\n{{ site.data.good.name }}|{{ site.data.keys() | sort | join(",") }}')
        write_file('other.html', '---\n---\nother')

        with caplog.at_level(logging.WARNING):
            report = build()

        assert read_output('index.html') == 'Good|good'
        assert read_output('other.html') == 'other'
        assert report.data_records == 1
        assert 'broken.yml' in caplog.text

    def test_templates_see_unrendered_pages(self, write_file, build, read_output):
        """site.pages holds loaded frontmatter and raw content, never rendered output."""
        write_file('a.txt', '---\ntitle = "A"\n---\n'
                   '{% for p in site.pages %}[{{ p.source }}:{{ p.data.title }}:{{ p.content | trim }}]{% endfor %}')
        write_file('b.md', '---\ntitle = "B"\n---\n**bold {{ page.data.title }}**')

        build()

        listing = read_output('a.txt')
        assert '[b.md:B:**bold {{ page.data.title }}**]' in listing
        assert '<strong>' not in listing
        assert read_output('b.html') == '<p><strong>bold B</strong></p>\n'

    def test_default_vars_merge(self, write_file, build, read_output):
        write_file('a.txt', '---\ntitle = "Mine"\n---\n{{ page.data.title }} {{ page.data.lang }}')
        write_file('b.txt', '---\n---\n{{ page.data.title }} {{ page.data.lang }}')

        build(default_vars={'title': 'Default', 'lang': 'en'})

        assert read_output('a.txt') == 'Mine en'
        assert read_output('b.txt') == 'Default en'

    def test_pages_shadow_plain_files(self, write_file, build, read_output):
        write_file('a.md', '---\n---\nfrom the page')
        write_file('a.html', '<p>plain</p>')

        report = build()

        assert read_output('a.html') == '<p>from the page</p>\n'
        assert report.files_shadowed == 1
        assert report.files_propagated == 0

    def test_clean_build_removes_stale_output(self, write_file, build, output_dir):
        write_file('post.md', '---\n---\nbody')
        build()
        assert (output_dir / 'post.html').exists()

        # Same source, different output mapping
        build(renderers={'markdown': False})

        assert output_files(output_dir) == ['post.md']

    def test_special_directories_are_not_output(self, sample_site, write_file, build, output_dir):
        write_file('.git/config', 'secret')
        write_file('.env', 'SECRET=1')
        build()

        files = output_files(output_dir)
        assert not [f for f in files if f.startswith(('_', '.'))]

    def test_fragments_are_not_output(self, write_file, build, output_dir):
        write_file('header.inc', '---\n---\n{% if %}')
        write_file('partials/nav.inc', '<nav>{{ x }}</nav>')
        write_file('index.html', '---\n---\nhi')

        report = build()

        assert output_files(output_dir) == ['index.html']
        assert report.pages_skipped == 1
        assert report.files_propagated == 0

    def test_template_disabled_copies_pages_verbatim(self, write_file, build, read_output):
        write_file('post.md', '---\ntitle = "x"\n---\n# {{ raw }}')
        build(renderers={'template': False})

        html = read_output('post.html')
        assert '<h1>{{ raw }}</h1>' in html
        assert 'title' in html

    def test_data_disabled(self, write_file, build, read_output):
        write_file('_data/site.yml', 'name: X\n')
        write_file('index.html', '---\n---\n[{{ site.data.site }}]')
        build(renderers={'data': False})
        assert read_output('index.html') == '[]'

    def test_sanitizer(self, write_file, build, read_output):
        write_file('post.md', '---\nlayout = "base.html"\n---\nhi <script>alert(1)</script>')
        write_file('_layouts/base.html', '<main>{{ page.content }}</main>')
        build(renderers={'sanitizer': True})
        assert read_output('post.html') == '<main><p>hi </p>\n</main>'

    def test_minify(self, write_file, build, read_output):
        write_file('style.scss', '---\n---\nbody {\n  color: red;\n}\n')
        build(renderers={'minify': True})
        assert read_output('style.css') == 'body{color:red}'

    def test_yaml_frontmatter(self, write_file, build, read_output):
        write_file('index.html', '---\ntitle: Yaml\n---\n{{ page.data.title }}')
        build(frontmatter_format='yaml')
        assert read_output('index.html') == 'Yaml'

    def test_template_error_aborts_build(self, write_file, build):
        write_file('good.md', '---\n---\nfine')
        write_file('bad.md', '---\n---\n{% for %}')

        with pytest.raises(TemplateError) as excinfo:
            build()
        assert excinfo.value.path == 'bad.md'

    def test_stylesheet_error_aborts_build(self, write_file, build):
        write_file('bad.scss', '---\n---\nbody { color: $nope; }')
        with pytest.raises(StylesheetError):
            build()

    def test_missing_input_dir(self, make_config, temp_dir):
        config = make_config()
        config = type(config)(input_dir=f'{temp_dir}/missing', output_dir=config.output_dir, log_dir=None)
        with pytest.raises(InputNotFoundError):
            PageSmith(config).build()

    def test_commands_run_before_build(self, input_dir, build, read_output):
        generated = input_dir / 'generated.html'
        script = f"open({str(generated)!r}, 'w').write('---\\n---\\ngenerated')"

        build(commands=[CommandSpec(command=sys.executable, args=['-c', script])])

        assert read_output('generated.html') == 'generated'

    def test_copy_after_build(self, temp_dir, write_file, build, output_dir):
        from pathlib import Path
        static = Path(temp_dir) / 'static'
        static.mkdir()
        (static / 'robots.txt').write_text('from static')
        write_file('robots.txt', 'from site')

        build(copy=[CopySpec(input=str(static))])

        assert (output_dir / 'robots.txt').read_text() == 'from site'


class TestParallelBuild:
    """Builds that go through the process pool."""

    def make_site(self, write_file, count=15):
        for index in range(count):
            write_file(f'posts/post{index:02d}.md',
                       f'---\ntitle = "Post {index}"\nlayout = "base.html"\n---\n'
                       '# {{ page.data.title }}\n\n{{ site.pages | length }} pages, {{ site.files | length }} files')
            write_file(f'images/img{index:02d}.txt', f'plain {index}')
        write_file('_layouts/base.html', '<html>{{ page.content }}</html>')

    def test_parallel_matches_serial(self, write_file, build, output_dir):
        self.make_site(write_file)

        build(parallel_threshold=1000)
        serial = {name: (output_dir / name).read_text() for name in output_files(output_dir)}

        report = build(parallel_threshold=2, workers=2)
        parallel = {name: (output_dir / name).read_text() for name in output_files(output_dir)}

        assert parallel == serial
        assert report.pages_written == 15
        assert report.files_propagated == 15
        assert serial['posts/post03.html'] == '<html><h1>Post 3</h1>\n<p>15 pages, 15 files</p>\n</html>'

    def test_parallel_errors_abort_build(self, write_file, build):
        self.make_site(write_file)
        write_file('posts/broken.md', '---\n---\n{{ }')

        with pytest.raises(TemplateError) as excinfo:
            build(parallel_threshold=2, workers=2)
        assert excinfo.value.path == 'posts/broken.md'
