"""
Revsite - A small server for static and templated websites

Serves pre-built (revisioned) assets with immutable caching and
compression, renders Jinja2 templates on the fly, redirects to pretty
urls, and pushes dependent assets over HTTP/2.
"""

from ._request import BaseRequest, HttpRequest
from ._app import to_asgi
from ._run import run
from .config import Config
from .errors import RevsiteError, ConfigError, ManifestError, RenderError
from .manifest import RevisionManifest, load_manifest
from .pipeline import Pipeline, Handler
from .server import make_pipeline, make_app, serve


__all__ = [
    "BaseRequest",
    "HttpRequest",
    "to_asgi",
    "run",
    "Config",
    "RevsiteError",
    "ConfigError",
    "ManifestError",
    "RenderError",
    "RevisionManifest",
    "load_manifest",
    "Pipeline",
    "Handler",
    "make_pipeline",
    "make_app",
    "serve",
]


__version__ = "0.1.0"
