"""Tests for Page and Site."""

from types import MappingProxyType

import pytest

from pagesmith_pkg.models import ContentType, DataRecord, Page, Site, freeze


class TestPage:
    """Test cases for Page."""

    def test_extension(self):
        assert Page(path='posts/Hello.MD').extension == 'md'
        assert Page(path='Makefile').extension == ''

    def test_transform_changes_content_type_and_extension_together(self):
        page = Page(path='posts/a.md', content='# A', source='posts/a.md')
        result = page.transform('<h1>A</h1>', ContentType.HTML, 'html')

        assert result.path == 'posts/a.html'
        assert result.content == '<h1>A</h1>'
        assert result.content_type is ContentType.HTML
        assert result.source == 'posts/a.md'
        assert page.path == 'posts/a.md'

    def test_output_path_follows_content_type(self):
        assert Page(path='a.md', content_type=ContentType.HTML).output_path == 'a.html'
        assert Page(path='a.scss', content_type=ContentType.CSS).output_path == 'a.css'
        assert Page(path='a.htm', content_type=ContentType.SANITIZED).output_path == 'a.html'
        assert Page(path='a.xml', content_type=ContentType.LAID_OUT).output_path == 'a.xml'
        assert Page(path='a.md', content_type=ContentType.TEMPLATED).output_path == 'a.md'

    def test_pages_are_immutable(self):
        page = Page(path='a.md')
        with pytest.raises(AttributeError):
            page.content = 'changed'


class TestSite:
    """Test cases for the site snapshot."""

    def test_snapshot(self):
        site = Site.snapshot(
            [Page(path='a.md')], ['logo.png'], [DataRecord('nav', [1, 2])], mount='/docs/'
        )
        assert site.pages == (Page(path='a.md'),)
        assert site.files == ('logo.png',)
        assert site.data == {'nav': [1, 2]}
        assert site.mount == '/docs/'

    def test_view_is_a_read_only_copy(self):
        data = {'authors': {'alice': {'tags': ['a']}}}
        page = Page(path='a.md', data={'title': 'A'})
        site = Site.snapshot([page], [], [DataRecord('team', data)])

        view = site.view()

        assert isinstance(view.data, MappingProxyType)
        assert view.data['team']['authors']['alice']['tags'] == ('a',)
        with pytest.raises(TypeError):
            view.data['team']['authors']['bob'] = {}
        with pytest.raises(TypeError):
            view.pages[0].data['title'] = 'changed'

        # The original snapshot is not shared with the view
        data['authors']['bob'] = {}
        assert 'bob' not in view.data['team']['authors']
        assert page.data == {'title': 'A'}


def test_freeze_leaves_scalars_alone():
    assert freeze(3) == 3
    assert freeze('x') == 'x'
    assert freeze({1, 2}) == frozenset({1, 2})
