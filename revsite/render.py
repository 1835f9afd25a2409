"""
Dynamic pages. Pages are Jinja2 templates in the base directory: a request
for ``/about/`` is answered by rendering ``about/index.html``, if that
template exists. Templates get a ``rev_url()`` helper to refer to
revisioned assets by their logical name:

.. code-block:: html+jinja

    <link rel="stylesheet" href="{{ rev_url('/assets/main.css') }}">

When the transport supports it, the assets that a rendered page refers to
are pushed to the client along with the page.
"""

import os
import logging
import posixpath
from html.parser import HTMLParser
from urllib.parse import urlsplit

import jinja2

from . import _compat
from .errors import RenderError
from ._app import INTERNAL_ERROR_BODY
from .pipeline import Handler, PASS


logger = logging.getLogger("revsite")

HTML_TYPE = "text/html; charset=utf-8"


class TemplateRenderer:
    """ Rendering service for the templates in a directory. Uses an async
    Jinja2 environment with autoescaping enabled.
    """

    def __init__(self, directory, *, auto_reload=True):
        self._directory = os.path.realpath(directory)
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(self._directory),
            autoescape=True,
            auto_reload=auto_reload,
            enable_async=True,
        )

    @property
    def environment(self):
        """ The underlying ``jinja2.Environment``.
        """
        return self._env

    def filename(self, name):
        """ Get the filename of the template with the given name, or None
        if the name points outside of the template directory or is not a
        valid filename.
        """
        try:
            filename = os.path.realpath(os.path.join(self._directory, name))
        except ValueError:
            return None  # e.g. an embedded null byte
        if not filename.startswith(self._directory + os.sep):
            return None
        return filename

    async def exists(self, name):
        """ Whether a template with this name exists (as a regular file).
        """
        filename = self.filename(name)
        return filename is not None and await _compat.isfile(filename)

    async def render(self, name, context):
        """ Render the named template with the given context (a dict) and
        return the html. Raises ``RenderError`` if anything goes wrong.
        """
        try:
            template = await _compat.to_thread(self._env.get_template, name)
            return await template.render_async(**context)
        except Exception as err:
            raise RenderError(name, f"{type(err).__name__}: {err}") from err


class _AssetFinder(HTMLParser):
    """ Collect the urls of stylesheets, preloads and scripts.
    """

    PUSH_RELS = {"stylesheet", "preload", "modulepreload"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.urls = []

    def handle_starttag(self, tag, attrs):
        attrs = dict(attrs)
        if tag == "link":
            rels = set((attrs.get("rel") or "").lower().split())
            if rels & self.PUSH_RELS and attrs.get("href"):
                self.urls.append(attrs["href"])
        elif tag == "script" and attrs.get("src"):
            self.urls.append(attrs["src"])


def find_push_assets(html):
    """ Get the list of same-origin assets (root-relative paths) that the
    given html refers to via link and script tags. Queries and fragments
    are dropped, duplicates removed, order preserved.
    """
    finder = _AssetFinder()
    finder.feed(html)
    finder.close()
    paths = []
    for url in finder.urls:
        url = url.strip()
        if not url.startswith("/") or url.startswith("//"):
            continue  # Other origin, or relative
        path = urlsplit(url).path
        if path and path not in paths:
            paths.append(path)
    return paths


class PageRenderer(Handler):
    """ Render the index template that corresponds to the request path.
    Requests without a matching template pass. A template that fails to
    render results in a 500 response.
    """

    def __init__(self, renderer, manifest, *, index_document="index.html", push=True):
        self._renderer = renderer
        self._manifest = manifest
        self._index_document = index_document
        self._push = bool(push)

    def match(self, request):
        return request.method in ("GET", "HEAD")

    def template_name(self, path):
        """ Get the name of the template for the given url path.
        """
        return posixpath.join(path.lstrip("/"), self._index_document)

    def make_context(self, request):
        """ Create the render context for a request. A new one for each render.
        """
        return {
            "rev_url": self._manifest.resolve,
            "request_path": request.path,
            "query": request.querydict,
        }

    async def handle(self, request):
        name = self.template_name(request.path)
        logger.info(f"Looking for template {self._renderer.filename(name) or name}")
        if not await self._renderer.exists(name):
            return PASS

        try:
            html = await self._renderer.render(name, self.make_context(request))
        except RenderError as err:
            logger.error(str(err), exc_info=err.__cause__)
            return 500, {"content-type": "text/plain"}, INTERNAL_ERROR_BODY

        if self._push and request.supports_push:
            for path in find_push_assets(html):
                await request.push(path)

        return 200, {"content-type": HTML_TYPE}, html


class FallbackHandler(PageRenderer):
    """ Respond with the rendered not-found page for requests that accept
    html. Other requests pass, and end up with a plain 404.
    """

    def __init__(self, renderer, manifest, *, template="404.html"):
        super().__init__(renderer, manifest, push=False)
        self._template = template

    def match(self, request):
        return super().match(request) and request.accepts("text/html")

    async def handle(self, request):
        if not await self._renderer.exists(self._template):
            logger.warning(f"Not-found template {self._template!r} does not exist")
            return PASS
        try:
            html = await self._renderer.render(self._template, self.make_context(request))
        except RenderError as err:
            logger.error(str(err), exc_info=err.__cause__)
            return 500, {"content-type": "text/plain"}, INTERNAL_ERROR_BODY
        return 404, {"content-type": HTML_TYPE}, html
