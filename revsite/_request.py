"""
This module implements the HttpRequest class that is passed through the
request pipeline. Next to access to the request metadata, it holds the
per-request response decoration (headers and filters) that pipeline stages
attach before a responder produces the actual response.
"""

import logging
from urllib.parse import parse_qsl


logger = logging.getLogger("revsite")

CONNECTING = 0
CONNECTED = 1
DONE = 2

PUSH_EXTENSION = "http.response.push"


class BaseRequest:
    """ Base request class, defining the properties to get access to
    the request metadata.
    """

    __slots__ = ("__weakref__", "_scope", "_headers", "_querylist")

    def __init__(self, scope):
        self._scope = scope
        self._headers = None
        self._querylist = None

    @property
    def scope(self):
        """ A dict representing the raw ASGI scope. See the
        `ASGI reference <https://asgi.readthedocs.io/en/latest/specs/www.html#connection-scope>`_
        for details.
        """
        return self._scope

    @property
    def method(self):
        """ The HTTP method (string). E.g. 'HEAD', 'GET', 'PUT', 'POST', 'DELETE'.
        """
        return self._scope["method"]

    @property
    def headers(self):
        """ A dictionary representing the headers. Keys are lowercase strings.
        """
        if self._headers is None:
            self._headers = dict(
                (key.decode().lower(), val.decode("latin-1"))
                for key, val in self._scope["headers"]
            )
        return self._headers

    @property
    def scheme(self):
        """ The URL scheme (string). E.g. 'http' or 'https'.
        """
        return self._scope["scheme"]

    @property
    def http_version(self):
        """ The HTTP version as a string, e.g. '1.1', '2' or '3'.
        """
        return self._scope.get("http_version", "1.1")

    @property
    def path(self):
        """ The path part of the URL (a string, with percent escapes decoded).
        """
        return self._scope.get("root_path", "") + self._scope["path"]

    @property
    def query_string(self):
        """ The raw query string (str), without the leading '?'. Not
        percent-decoded, so it can be reattached to a URL verbatim.
        """
        return self._scope.get("query_string", b"").decode("latin-1")

    @property
    def search(self):
        """ The query string including its leading '?', or an empty
        string if the URL has no query.
        """
        qs = self.query_string
        return "?" + qs if qs else ""

    @property
    def querylist(self):
        """ A list with ``(key, value)`` tuples, representing the URL query parameters.
        """
        if self._querylist is None:
            self._querylist = parse_qsl(self.query_string)
        return self._querylist

    @property
    def querydict(self):
        """ A dictionary representing the URL query parameters.
        """
        return dict(self.querylist)

    def accepts(self, content_type):
        """ Whether the ``accept`` header explicitly names the given content
        type. A missing header means nothing is explicitly accepted.
        """
        return content_type in self.headers.get("accept", "")


class HttpRequest(BaseRequest):
    """ Subclass of BaseRequest to represent an HTTP request. An object
    of this class is created for each incoming request and passed along
    the pipeline.
    """

    __slots__ = (
        "_send",
        "_app_state",
        "response_headers",
        "response_filters",
    )

    def __init__(self, scope, receive, send):
        super().__init__(scope)
        self._send = send
        self._app_state = CONNECTING  # CONNECTING -> CONNECTED -> DONE
        # Headers that pipeline stages want on whatever response is produced
        self.response_headers = {}
        # Callables (request, response) -> response, applied in order
        self.response_filters = []

    @property
    def supports_push(self):
        """ Whether the transport for this request supports server push
        (i.e. HTTP/2 with the ASGI push extension).
        """
        return PUSH_EXTENSION in (self._scope.get("extensions") or {})

    async def push(self, path, headers=None):
        """ Issue a push promise for the given path over the current
        connection. Best-effort: returns True if the promise was sent, False
        if the transport does not support push or sending failed. Never raises.
        """
        if not self.supports_push or self._app_state == DONE:
            return False
        headers = headers or {"accept": "*/*"}
        try:
            rawheaders = [(k.encode(), v.encode()) for k, v in headers.items()]
            await self._send({"type": PUSH_EXTENSION, "path": path, "headers": rawheaders})
        except Exception as err:
            logger.debug(f"Could not push {path}: {err}")
            return False
        return True

    async def accept(self, status=200, headers={}):
        """ Accept this http request. Sends the status code and headers.
        """
        # Check status
        if self._app_state != CONNECTING:
            raise IOError("Cannot accept an already accepted connection.")
        # Check and convert input
        status = int(status)
        try:
            rawheaders = [(k.encode(), v.encode()) for k, v in headers.items()]
        except Exception:
            raise TypeError("Header keys and values must all be strings.")
        # Send our first message
        self._app_state = CONNECTED
        msg = {"type": "http.response.start", "status": status, "headers": rawheaders}
        await self._send(msg)

    async def send(self, data, more=True):
        """ Send (a chunk of) data, representing the response. Note that
        ``accept()`` must be called first.
        """
        # Compose message
        more = bool(more)
        if isinstance(data, str):
            data = data.encode()
        elif not isinstance(data, bytes):
            raise TypeError(f"Can only send bytes/str over http, not {type(data)}.")
        message = {"type": "http.response.body", "body": data, "more_body": more}
        # Send
        if self._app_state == CONNECTED:
            if not more:
                self._app_state = DONE
            await self._send(message)
        elif self._app_state == CONNECTING:
            raise IOError("Cannot send before calling accept.")
        else:
            raise IOError("Cannot send to a closed connection.")
