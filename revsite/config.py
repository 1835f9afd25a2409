"""
Server configuration. A ``Config`` is an immutable object that is created
once at startup (directly, or from the environment) and passed to
``make_app()`` and ``serve()``. There is no runtime reconfiguration.
"""

import os
import re
from dataclasses import dataclass, field, replace

from .errors import ConfigError


DEFAULT_PORT = 7924

# One hash-like segment (dot or dash, 6-32 hex chars) right before the extension,
# e.g. "app.a1b2c3.js" or "styles-0123abcd.css".
REVISION_PATTERN = r"[.-][0-9a-f]{6,32}\.[A-Za-z0-9]+$"

TEN_YEARS = 10 * 365 * 24 * 60 * 60


@dataclass(frozen=True)
class Config:
    """ Configuration for a revsite server. All fields have defaults that
    match a project layout with ``src/`` and ``cache/`` directories::

        config = Config(base_dir="site/src", port=8080)

    Use ``Config.from_env()`` to pick up overrides from environment variables.
    """

    # Filesystem
    base_dir: str = "src/"
    cache_dir: str = "cache/"
    index_document: str = "index.html"
    not_found_template: str = "404.html"
    manifest_file: str = None  # default: rev-manifest.json in cache_dir

    # Listeners
    host: str = "localhost"
    port: int = DEFAULT_PORT
    certfile: str = "config/localhost.crt"
    keyfile: str = "config/localhost.key"

    # Response policy
    revision_pattern: str = REVISION_PATTERN
    immutable_max_age: int = TEN_YEARS
    push_assets: bool = True
    compress: bool = True
    min_compress_size: int = 256
    security_headers: bool = True

    # Templates
    auto_reload: bool = True

    log_level: str = "info"

    _pattern: object = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.port, int) or not (0 <= self.port <= 65535 - 2):
            raise ConfigError(f"Invalid port: {self.port!r}")
        if not self.index_document or "/" in self.index_document:
            raise ConfigError(f"Invalid index document: {self.index_document!r}")
        if not isinstance(self.immutable_max_age, int) or self.immutable_max_age < 0:
            raise ConfigError("immutable_max_age must be a positive int")
        try:
            pattern = re.compile(self.revision_pattern)
        except re.error as err:
            raise ConfigError(f"Invalid revision pattern: {err}")
        # Frozen, so bypass __setattr__ for the derived value
        object.__setattr__(self, "_pattern", pattern)

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """ Create a config from environment variables (``os.environ`` by
        default). Keyword arguments take precedence over the environment.
        """
        environ = os.environ if environ is None else environ
        kwargs = {}
        if environ.get("PORT"):
            try:
                kwargs["port"] = int(environ["PORT"])
            except ValueError:
                raise ConfigError(f"PORT must be an integer, not {environ['PORT']!r}")
        for key, name in (
            ("host", "REVSITE_HOST"),
            ("base_dir", "REVSITE_BASE_DIR"),
            ("cache_dir", "REVSITE_CACHE_DIR"),
            ("certfile", "REVSITE_CERTFILE"),
            ("keyfile", "REVSITE_KEYFILE"),
            ("log_level", "REVSITE_LOG_LEVEL"),
        ):
            if environ.get(name):
                kwargs[key] = environ[name]
        kwargs.update(overrides)
        return cls(**kwargs)

    def replace(self, **changes):
        """ Get a copy of this config with the given fields changed.
        """
        return replace(self, **changes)

    @property
    def pattern(self):
        """ The compiled revisioned-name pattern. This one object is shared
        by everything that needs to know whether a path is revisioned.
        """
        return self._pattern

    @property
    def manifest_path(self):
        if self.manifest_file:
            return self.manifest_file
        return os.path.join(self.cache_dir, "rev-manifest.json")

    def ports(self, count=3):
        """ The consecutive ports used by the listeners, starting at ``port``.
        """
        return [self.port + i for i in range(count)]

    def check_tls(self):
        """ Make sure the TLS credential files can be read. Raises ConfigError.
        """
        for what, path in (("certificate", self.certfile), ("key", self.keyfile)):
            if not path:
                raise ConfigError(f"No TLS {what} file configured")
            try:
                with open(path, "rb") as f:
                    f.read(1)
            except OSError as err:
                raise ConfigError(f"Cannot read TLS {what} file {path!r}: {err}")
