"""
This module implements a ``run()`` function to start an ASGI server of choice.
"""

import asyncio
import importlib


def run(app, server, bind="localhost:7924", **kwargs):
    """ Run the given ASGI app with the given ASGI server. (This works for
    any ASGI app, not just revsite apps.) The same app object is used for
    all listeners of the server.

    Arguments:

    * ``app`` (required): The ASGI application object, or a string ``"module.path:appname"``.
    * ``server`` (required): The name of the server to use, "hypercorn" or "uvicorn".
    * ``bind``: The "host:port" to listen on. With hypercorn, this is a TLS
      listener if ``certfile`` and ``keyfile`` are given.
    * ``kwargs``: additional arguments to pass to the underlying server. For
      hypercorn these are attributes of ``hypercorn.config.Config``, e.g.
      ``insecure_bind``, ``quic_bind``, ``certfile`` and ``keyfile``.
    """

    # Check application name
    if isinstance(app, str) and ":" not in app:
        raise ValueError("If specifying an app by name, give its full path!")

    # Check server and bind
    assert isinstance(server, str), "revsite.run() server arg must be a string."
    assert isinstance(bind, str), "revsite.run() bind arg must be a string."
    assert ":" in bind, "revsite.run() bind arg must be 'host:port'"
    bind = bind.replace("localhost", "127.0.0.1")

    # Select server function
    try:
        func = SERVERS[server.lower()]
    except KeyError:
        raise ValueError(f"Invalid server specified: {server!r}")

    # Resolve application object
    if isinstance(app, str):
        modname, _, appname = app.partition(":")
        app = getattr(importlib.import_module(modname), appname)

    # Delegate
    return func(app, bind, **kwargs)


def _run_hypercorn(app, bind, **kwargs):
    from hypercorn.config import Config
    from hypercorn.asyncio import serve

    # Hypercorn docs say: "Hypercorn has two loggers, an access logger and an error logger.
    # By default neither will actively log." So we dont need to do anything.

    config = Config()
    config.bind = [bind]
    for key, val in kwargs.items():
        if key.endswith("bind"):
            val = [val] if isinstance(val, str) else list(val)
            val = [b.replace("localhost", "127.0.0.1") for b in val]
        setattr(config, key, val)

    return asyncio.run(serve(app, config))


def _run_uvicorn(app, bind, **kwargs):
    import uvicorn

    host, _, port = bind.partition(":")
    kwargs["host"] = host
    kwargs["port"] = int(port)

    # Default to an error log_level, otherwise uvicorn is quite verbose
    kwargs.setdefault("log_level", "warning")

    return uvicorn.run(app, **kwargs)


SERVERS = {"hypercorn": _run_hypercorn, "uvicorn": _run_uvicorn}
