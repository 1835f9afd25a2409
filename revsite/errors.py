"""
The exceptions raised by revsite.
"""


class RevsiteError(Exception):
    """ Base class for revsite errors.
    """


class ConfigError(RevsiteError):
    """ Raised for invalid configuration, including TLS credential files
    that cannot be read at startup.
    """


class ManifestError(RevsiteError):
    """ Raised when a revision manifest cannot be loaded.
    """


class RenderError(RevsiteError):
    """ Raised when a template fails to render. The original exception
    is available as ``__cause__``.
    """

    def __init__(self, template, message):
        super().__init__(f"Could not render {template!r}: {message}")
        self.template = template
