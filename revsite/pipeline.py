"""
The request pipeline. A ``Pipeline`` holds an ordered list of handlers.
Each incoming request is offered to the handlers in turn; a handler either
produces a response (the request is handled) or returns None (pass), in
which case the next handler gets a go. Handlers that only decorate the
response (by adding headers or response filters to the request) always
pass.

A response is a tuple ``(status, headers, body)``, see
``normalize_response()``.
"""

import hashlib
from urllib.parse import quote

from ._app import normalize_response, guess_content_type_from_body, encode_body


PASS = None


def make_etag(body):
    """ Get a (quoted) etag for the given bytes.
    """
    return '"' + hashlib.sha256(body).hexdigest() + '"'


class Handler:
    """ Base class for pipeline handlers. Subclasses implement ``handle()``
    and can override ``match()`` to cheaply skip requests they don't apply to.
    """

    def match(self, request):
        """ Whether this handler applies to the given request.
        """
        return True

    async def handle(self, request):
        """ Handle the request. Return a response, or None to pass the
        request on to the next handler.
        """
        raise NotImplementedError()


class Pipeline:
    """ An ordered chain of handlers, usable as a revsite request handler
    (see ``to_asgi()``). A pipeline holds no per-request state, so one
    instance can be attached to any number of listeners.

    Responses with a bytes body get an etag (unless they have one) and
    a GET with a matching ``if-none-match`` header results in a 304.
    """

    def __init__(self, handlers, *, etag=True):
        self._handlers = list(handlers)
        self._etag = bool(etag)
        for handler in self._handlers:
            if not isinstance(handler, Handler):
                raise TypeError(f"Pipeline handlers must be Handler objects, not {handler!r}")

    @property
    def handlers(self):
        return tuple(self._handlers)

    async def __call__(self, request):
        for handler in self._handlers:
            if not handler.match(request):
                continue
            response = await handler.handle(request)
            if response is not PASS:
                break
        else:
            response = self.default_response(request)
        return self.finish(request, response)

    def default_response(self, request):
        """ The response for requests that no handler took care of.
        """
        return 404, {"content-type": "text/plain"}, b""

    def finish(self, request, response):
        """ Apply the request's response decoration to the given response.
        """
        status, headers, body = normalize_response(response)
        headers = dict(headers)
        headers.update(request.response_headers)

        if "content-type" not in headers and status != 304:
            headers["content-type"] = guess_content_type_from_body(body)
        body = encode_body(body)
        if not isinstance(body, bytes):
            return status, headers, body  # Streaming response

        if self._etag and status == 200:
            etag = headers.setdefault("etag", make_etag(body))
            if request.method in ("GET", "HEAD"):
                if request.headers.get("if-none-match") == etag:
                    status, body = 304, b""
                    for key in ("content-type", "content-length", "content-encoding"):
                        headers.pop(key, None)

        for response_filter in request.response_filters:
            status, headers, body = response_filter(request, status, headers, body)

        if request.method == "HEAD" and body:
            headers.setdefault("content-length", str(len(body)))
            body = b""

        return status, headers, body


class PrettyUrlRedirector(Handler):
    """ Redirect ``path/to/page/index.html`` to ``path/to/page/`` (301),
    keeping the query string.
    """

    def __init__(self, index_document="index.html"):
        self._suffix = "/" + index_document

    def match(self, request):
        return request.path.endswith(self._suffix)

    async def handle(self, request):
        parent = request.path[: -len(self._suffix)] + "/"
        # Never redirect to another host via a protocol-relative url
        parent = "/" + parent.lstrip("/")
        location = quote(parent) + request.search
        return 301, {"location": location, "content-type": "text/plain"}, b""


class CacheControlDecorator(Handler):
    """ Mark revisioned assets as immutable. Requests whose path matches the
    revisioned-name pattern get a long-lived immutable cache-control header,
    regardless of which handler produces the response. Only successful (2xx)
    and 304 responses are marked; errors are left alone.
    """

    def __init__(self, pattern, max_age):
        self._pattern = pattern
        self._value = f"max-age={max_age:d}, immutable"

    def match(self, request):
        return self._pattern.search(request.path) is not None

    async def handle(self, request):
        request.response_filters.append(self._apply)
        return PASS

    def _apply(self, request, status, headers, body):
        if 200 <= status < 300 or status == 304:
            headers["cache-control"] = self._value
        return status, headers, body


DEFAULT_SECURITY_HEADERS = {
    "x-content-type-options": "nosniff",
    "x-frame-options": "SAMEORIGIN",
    "x-dns-prefetch-control": "off",
    "x-download-options": "noopen",
    "x-xss-protection": "0",
    "referrer-policy": "no-referrer",
}


class SecurityHeaders(Handler):
    """ Add common security headers to all responses, unless a handler
    already set them.
    """

    def __init__(self, headers=None):
        self._headers = dict(DEFAULT_SECURITY_HEADERS if headers is None else headers)

    async def handle(self, request):
        request.response_filters.append(self._apply)
        return PASS

    def _apply(self, request, status, headers, body):
        for key, val in self._headers.items():
            headers.setdefault(key, val)
        return status, headers, body
