"""
Assembling and serving the revsite application. The pipeline that each
request goes through:

1. Pretty urls: redirect ``.../index.html`` to ``.../``.
2. Security headers on all responses.
3. Immutable cache-control headers for revisioned assets.
4. Dynamic gzip / Brotli compression.
5. Static files from the cache directory (pre-built / revisioned assets).
6. Static files from the base directory (source assets).
7. Dynamic pages, rendered from the ``index.html`` template for the url.
8. The not-found page for requests that accept html; a plain 404 otherwise.
"""

import logging

from ._app import to_asgi, set_log_level
from ._run import run
from .config import Config
from .errors import ConfigError
from .manifest import load_manifest
from .pipeline import Pipeline, PrettyUrlRedirector, CacheControlDecorator, SecurityHeaders
from .compress import Compressor
from .static import StaticResponder
from .render import TemplateRenderer, PageRenderer, FallbackHandler


logger = logging.getLogger("revsite")

VARIANTS = ("single", "multi")


def make_pipeline(config, manifest=None):
    """ Create the request pipeline for the given config. If no manifest
    is given, it is loaded with ``load_manifest()``.
    """
    if manifest is None:
        manifest = load_manifest(config)
    renderer = TemplateRenderer(config.base_dir, auto_reload=config.auto_reload)

    handlers = [PrettyUrlRedirector(config.index_document)]
    if config.security_headers:
        handlers.append(SecurityHeaders())
    handlers.append(CacheControlDecorator(config.pattern, config.immutable_max_age))
    if config.compress:
        handlers.append(Compressor(config.min_compress_size))
    handlers += [
        StaticResponder(config.cache_dir),
        StaticResponder(config.base_dir),
        PageRenderer(
            renderer,
            manifest,
            index_document=config.index_document,
            push=config.push_assets,
        ),
        FallbackHandler(renderer, manifest, template=config.not_found_template),
    ]
    return Pipeline(handlers)


def make_app(config=None, manifest=None):
    """ Create the ASGI application for the given config (by default
    ``Config.from_env()``).
    """
    if config is None:
        config = Config.from_env()
    set_log_level(config.log_level)
    return to_asgi(make_pipeline(config, manifest))


def serve(config=None, variant="multi", server="hypercorn", app=None):
    """ Serve the application. The "single" variant listens for plain
    HTTP/1.1 on ``config.port``. The "multi" variant additionally serves the
    same application over TLS with HTTP/2 on ``port + 1`` and over QUIC
    with HTTP/3 on ``port + 2``.
    """
    if config is None:
        config = Config.from_env()
    if variant not in VARIANTS:
        raise ValueError(f"Invalid variant {variant!r}, expected one of {VARIANTS}")
    if app is None:
        app = make_app(config)

    host = config.host
    port1, port2, port3 = config.ports(3)
    kwargs = {}
    if variant == "multi":
        if server != "hypercorn":
            raise ValueError("The multi variant needs the hypercorn server.")
        try:
            config.check_tls()
        except ConfigError as err:
            logger.error(str(err))
            raise
        kwargs["insecure_bind"] = f"{host}:{port1}"
        kwargs["quic_bind"] = f"{host}:{port3}"
        kwargs["certfile"] = config.certfile
        kwargs["keyfile"] = config.keyfile
        bind = f"{host}:{port2}"
        logger.info(f"App served over HTTP/1 on http://{host}:{port1}")
        logger.info(f"App served over HTTP/2 on https://{host}:{port2}")
        logger.info(f"App served over HTTP/3 on https://{host}:{port3}")
    else:
        bind = f"{host}:{port1}"
        logger.info(f"App served over HTTP/1 on http://{host}:{port1}")

    try:
        return run(app, server, bind, **kwargs)
    except OSError as err:
        logger.error(f"Could not start server: {err}")
        raise
