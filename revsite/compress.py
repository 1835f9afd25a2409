"""
Dynamic response compression with gzip and Brotli. The ``Compressor`` is a
pipeline stage that registers a response filter, so that whichever handler
produces the response, the body is compressed if the client accepts it and
it makes sense.
"""

import gzip

import brotli

from .pipeline import Handler, PASS


COMPRESSIBLE_TYPES = (
    "text/",
    "application/json",
    "application/javascript",
    "application/x-javascript",
    "application/xml",
    "application/manifest+json",
    "application/wasm",
    "image/svg+xml",
)


def parse_accept_encoding(value):
    """ Parse an accept-encoding header into a dict mapping (lowercase)
    codings to their q-value. Malformed q-values count as 1.
    """
    codings = {}
    for part in (value or "").split(","):
        coding, _, params = part.strip().partition(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = 1.0
        for param in params.split(";"):
            key, _, val = param.strip().partition("=")
            if key.strip().lower() == "q":
                try:
                    q = float(val)
                except ValueError:
                    q = 1.0
        codings[coding] = q
    return codings


def choose_encoding(accept_encoding, available=("br", "gzip")):
    """ Select the best encoding from ``available`` (in order of preference)
    that the client accepts, or None.
    """
    codings = parse_accept_encoding(accept_encoding)
    for coding in available:
        q = codings.get(coding, codings.get("*", 0))
        if q > 0:
            return coding
    return None


def is_compressible(content_type):
    ctype = (content_type or "").split(";")[0].strip().lower()
    return ctype.startswith(COMPRESSIBLE_TYPES)


def compress(body, encoding):
    if encoding == "br":
        return brotli.compress(body)
    elif encoding == "gzip":
        return gzip.compress(body)
    raise ValueError(f"Unsupported encoding {encoding!r}")


class Compressor(Handler):
    """ Compress response bodies of at least ``min_size`` bytes with Brotli
    or gzip, depending on the ``accept-encoding`` request header. The
    compressed body is only used if it is smaller than 90% of the original.
    """

    def __init__(self, min_size=256, encodings=("br", "gzip")):
        self._min_size = int(min_size)
        self._encodings = tuple(encodings)

    async def handle(self, request):
        request.response_filters.append(self._apply)
        return PASS

    def _apply(self, request, status, headers, body):
        if status in (204, 304) or request.method == "HEAD":
            return status, headers, body
        if not is_compressible(headers.get("content-type")):
            return status, headers, body
        # Responses that differ per coding must say so, also when not compressed
        headers["vary"] = _add_vary(headers.get("vary"), "accept-encoding")
        if len(body) < self._min_size or "content-encoding" in headers:
            return status, headers, body

        encoding = choose_encoding(request.headers.get("accept-encoding"), self._encodings)
        if encoding is None:
            return status, headers, body

        compressed = compress(body, encoding)
        if len(compressed) >= 0.90 * len(body):
            return status, headers, body
        headers["content-encoding"] = encoding
        headers["content-length"] = str(len(compressed))
        return status, headers, compressed


def _add_vary(vary, field):
    fields = [f.strip() for f in (vary or "").split(",") if f.strip()]
    if field not in [f.lower() for f in fields]:
        fields.append(field)
    return ", ".join(fields)
