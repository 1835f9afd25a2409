"""
Serving files from a directory tree.
"""

import os
import mimetypes
from email.utils import formatdate

from . import _compat
from ._app import guess_content_type_from_body
from .pipeline import Handler, PASS, make_etag


class StaticResponder(Handler):
    """ Serve files from the given directory. Requests for files that do
    not exist pass, so multiple responders can be stacked: the first one
    that has the file serves it.

    Parameters:

    * ``directory (str)``: the root of the file tree.
    * ``index (str or False)``: the file to serve for directory requests.
      False (the default) means directories are never served.
    * ``last_modified (bool)``: whether to set the ``last-modified``
      header. Default False; the etag is the only validator.
    * ``max_age (int)``: the max-age for the default cache-control header.
      A cache-control header set by an earlier stage takes precedence.
    """

    def __init__(self, directory, *, index=False, last_modified=False, max_age=0):
        self._directory = os.path.realpath(directory)
        self._index = index
        self._last_modified = bool(last_modified)
        self._max_age = int(max_age)

    def __repr__(self):
        return f"<StaticResponder {self._directory!r}>"

    @property
    def directory(self):
        return self._directory

    def match(self, request):
        return request.method in ("GET", "HEAD")

    def resolve(self, path):
        """ Get the filename on disk for the given url path, or None if the
        path falls outside of the directory or is not a valid filename.
        """
        relpath = path.replace("\\", "/").lstrip("/")
        try:
            filename = os.path.realpath(os.path.join(self._directory, relpath))
        except ValueError:
            return None  # e.g. an embedded null byte
        if filename != self._directory and not filename.startswith(
            self._directory + os.sep
        ):
            return None
        return filename

    async def handle(self, request):
        filename = self.resolve(request.path)
        if filename is None:
            return PASS
        if await _compat.to_thread(os.path.isdir, filename):
            if not self._index:
                return PASS
            filename = os.path.join(filename, self._index)
        if not await _compat.isfile(filename):
            return PASS

        body = await _compat.read_bytes(filename)

        headers = {}
        headers["cache-control"] = f"public, max-age={self._max_age:d}"
        ctype, _ = mimetypes.guess_type(filename)
        headers["content-type"] = ctype or guess_content_type_from_body(body)
        headers["content-length"] = str(len(body))
        headers["etag"] = make_etag(body)
        if self._last_modified:
            mtime = await _compat.to_thread(os.path.getmtime, filename)
            headers["last-modified"] = formatdate(mtime, usegmt=True)

        if request.headers.get("if-none-match") == headers["etag"]:
            for key in ("content-type", "content-length"):
                headers.pop(key)
            return 304, headers, b""

        if request.method == "HEAD":
            return 200, headers, b""
        return 200, headers, body
