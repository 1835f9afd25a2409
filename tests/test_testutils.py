"""
Test testutils code. Note that most other tests implicitly test it.
"""

from common import make_server
from revsite import Pipeline, Handler
import revsite


async def handler1(request):
    return "hellow1"


async def handler2(request):
    return await handler1(request)


@revsite.to_asgi
async def app2(request):
    return "hellow2"


class Hello(Handler):
    async def handle(self, request):
        return "hellow3"


def test_http():
    with make_server(handler1) as p:
        assert p.get("").body == b"hellow1"

    with make_server(handler2) as p:
        assert p.get("").body == b"hellow1"

    with make_server(app2) as p:
        assert p.get("").body == b"hellow2"

    with make_server(Pipeline([Hello()])) as p:
        assert p.get("").body == b"hellow3"


def test_push_extension():
    async def handler(request):
        pushed = await request.push("/style.css")
        return f"{request.supports_push} {pushed} {request.http_version}"

    with make_server(handler) as p:
        assert p.get("").body == b"False False 1.1"
        assert p.pushes == []

    with make_server(handler, push=True) as p:
        assert p.get("").body == b"True True 2"
        assert p.pushes == ["/style.css"]


def test_out():
    async def handler(request):
        print("printed by the handler")
        return "x"

    with make_server(handler) as p:
        p.get("")

    assert "printed by the handler" in p.out
