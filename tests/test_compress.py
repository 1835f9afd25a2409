"""
Test dynamic compression.
"""

import gzip
import random

import brotli

from revsite import Pipeline, Handler
from revsite.compress import Compressor, parse_accept_encoding, choose_encoding

from common import make_server


compressable_data = b"x" * 1000
uncompressable_data = bytes([int(random.uniform(0, 255)) for i in range(1000)])


class Assets(Handler):
    assets = {
        "/small.txt": ("text/plain", b"x" * 100),
        "/big.txt": ("text/plain", compressable_data),
        "/random.txt": ("text/plain", uncompressable_data),
        "/big.png": ("image/png", compressable_data),
        "/big.html": ("text/html; charset=utf-8", compressable_data),
        "/encoded.js": ("application/javascript", compressable_data),
    }

    async def handle(self, request):
        ctype, body = self.assets[request.path]
        headers = {"content-type": ctype}
        if request.path == "/encoded.js":
            headers["content-encoding"] = "identity"
        return 200, headers, body


def test_parse_accept_encoding():
    assert parse_accept_encoding(None) == {}
    assert parse_accept_encoding("") == {}
    assert parse_accept_encoding("gzip, deflate, br") == {
        "gzip": 1.0,
        "deflate": 1.0,
        "br": 1.0,
    }
    assert parse_accept_encoding("gzip;q=0.5, BR;q=0, *;q=x") == {
        "gzip": 0.5,
        "br": 0.0,
        "*": 1.0,
    }


def test_choose_encoding():
    assert choose_encoding("gzip, deflate, br") == "br"
    assert choose_encoding("gzip, deflate") == "gzip"
    assert choose_encoding("br;q=0, gzip") == "gzip"
    assert choose_encoding("deflate") is None
    assert choose_encoding("") is None
    assert choose_encoding(None) is None
    assert choose_encoding("*") == "br"
    assert choose_encoding("*;q=0") is None
    assert choose_encoding("gzip, br", available=("gzip",)) == "gzip"


def test_compression():
    pipeline = Pipeline([Compressor(256), Assets()])

    with make_server(pipeline) as p:
        r1 = p.get("/big.txt")
        r2 = p.get("/big.txt", headers={"accept-encoding": "gzip"})
        r3 = p.get("/big.txt", headers={"accept-encoding": "gzip, deflate, br"})
        r4 = p.get("/small.txt", headers={"accept-encoding": "gzip, br"})
        r5 = p.get("/random.txt", headers={"accept-encoding": "gzip, br"})
        r6 = p.get("/big.png", headers={"accept-encoding": "gzip, br"})
        r7 = p.get("/big.html", headers={"accept-encoding": "gzip"})
        r8 = p.get("/encoded.js", headers={"accept-encoding": "gzip"})

    assert r1.headers.get("content-encoding", "identity") == "identity"
    assert r1.body == compressable_data
    assert r1.headers["vary"] == "accept-encoding"

    assert r2.headers["content-encoding"] == "gzip"
    assert gzip.decompress(r2.body) == compressable_data
    assert int(r2.headers["content-length"]) == len(r2.body)

    assert r3.headers["content-encoding"] == "br"
    assert brotli.decompress(r3.body) == compressable_data

    # Too small, too much entropy, not a compressible type, already encoded
    assert "content-encoding" not in r4.headers and len(r4.body) == 100
    assert "content-encoding" not in r5.headers and r5.body == uncompressable_data
    assert "content-encoding" not in r6.headers and "vary" not in r6.headers
    assert r8.headers["content-encoding"] == "identity"
    assert r8.body == compressable_data

    assert r7.headers["content-encoding"] == "gzip"
    assert r7.headers["content-type"] == "text/html; charset=utf-8"

    # The etag is that of the original body
    assert r2.headers["etag"] == r1.headers["etag"]


def test_compression_etag_and_head():
    pipeline = Pipeline([Compressor(256), Assets()])

    with make_server(pipeline) as p:
        r1 = p.get("/big.txt", headers={"accept-encoding": "gzip"})
        r2 = p.get(
            "/big.txt",
            headers={"accept-encoding": "gzip", "if-none-match": r1.headers["etag"]},
        )
        r3 = p.head("/big.txt", headers={"accept-encoding": "gzip"})

    assert r2.status == 304 and r2.body == b""
    assert "content-encoding" not in r2.headers
    assert r3.status == 200 and r3.body == b""
    assert "content-encoding" not in r3.headers
    assert r3.headers["content-length"] == str(len(compressable_data))
