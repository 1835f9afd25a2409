"""
Revisioned assets. A revisioned asset is a static file with a content hash
in its name (e.g. ``app.a1b2c3.js``), so that clients can cache it forever.
The ``RevisionManifest`` maps the logical name of an asset (``app.js``) to
its revisioned name, so that templates can refer to assets by their logical
name through the ``rev_url()`` helper.
"""

import os
import json
import logging
import posixpath
from types import MappingProxyType
from collections.abc import Mapping

from .errors import ManifestError


logger = logging.getLogger("revsite")


def is_revisioned(pattern, path):
    """ Whether the given path matches the revisioned-name pattern.
    """
    return pattern.search(path) is not None


def strip_revision(pattern, path):
    """ Get the logical name for a revisioned path, by removing the hash
    segment: ``assets/app.a1b2c3.js`` -> ``assets/app.js``. Returns None if
    the path is not revisioned.
    """
    m = pattern.search(path)
    if m is None:
        return None
    ext = posixpath.splitext(path)[1]
    return path[: m.start()] + ext


def _check_key(key):
    if not isinstance(key, str) or not key:
        raise ManifestError(f"Manifest keys must be non-empty strings, not {key!r}")
    parts = key.lstrip("/").split("/")
    if key.startswith("//") or ".." in parts or os.path.isabs(key.lstrip("/")):
        raise ManifestError(f"Manifest key is not a valid relative path: {key!r}")


class RevisionManifest(Mapping):
    """ A read-only mapping from logical asset paths to revisioned paths.
    Paths are relative and use forward slashes. Create one with
    ``from_file()``, ``from_directory()`` or ``load_manifest()``.
    """

    def __init__(self, entries=None):
        d = {}
        for key, val in dict(entries or {}).items():
            _check_key(key)
            if not isinstance(val, str) or not val:
                raise ManifestError(f"Manifest value for {key!r} must be a non-empty string")
            d[key.lstrip("/")] = val.lstrip("/")
        self._entries = MappingProxyType(d)

    def __getitem__(self, key):
        return self._entries[key]

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"<RevisionManifest with {len(self)} entries>"

    def resolve(self, logical_path):
        """ Get the revisioned path for the given logical path. Unknown
        paths are returned unchanged. A leading slash is preserved, so
        this can be used directly on URLs.
        """
        if not isinstance(logical_path, str):
            return logical_path
        key = logical_path.lstrip("/")
        try:
            revisioned = self._entries[key]
        except KeyError:
            return logical_path
        prefix = logical_path[: len(logical_path) - len(key)]
        return prefix + revisioned

    __call__ = resolve

    @classmethod
    def from_file(cls, filename):
        """ Load a manifest from a JSON file that contains an object mapping
        logical paths to revisioned paths (the format written by gulp-rev and
        similar asset pipelines).
        """
        try:
            with open(filename, "rb") as f:
                entries = json.loads(f.read().decode())
        except (OSError, ValueError) as err:
            raise ManifestError(f"Could not load manifest {filename!r}: {err}")
        if not isinstance(entries, dict):
            raise ManifestError(f"Manifest {filename!r} must contain a JSON object")
        return cls(entries)

    @classmethod
    def from_directory(cls, directory, pattern):
        """ Build a manifest by scanning a directory tree for revisioned
        files. If two revisions of the same asset exist, the most recently
        modified one wins.
        """
        entries = {}
        mtimes = {}
        for root, dirs, files in os.walk(directory):
            dirs.sort()
            for fname in sorted(files):
                if not is_revisioned(pattern, fname):
                    continue
                filename = os.path.join(root, fname)
                relpath = os.path.relpath(filename, directory).replace(os.sep, "/")
                logical = strip_revision(pattern, relpath)
                mtime = os.path.getmtime(filename)
                if logical not in entries or mtime >= mtimes[logical]:
                    entries[logical] = relpath
                    mtimes[logical] = mtime
        return cls(entries)


def load_manifest(config):
    """ Load the manifest for the given config: from the manifest file if
    it exists, otherwise by scanning the cache directory. An empty manifest
    is returned if neither exists.
    """
    if os.path.isfile(config.manifest_path):
        manifest = RevisionManifest.from_file(config.manifest_path)
        source = config.manifest_path
    elif os.path.isdir(config.cache_dir):
        manifest = RevisionManifest.from_directory(config.cache_dir, config.pattern)
        source = config.cache_dir
    else:
        manifest = RevisionManifest()
        source = "nowhere"
    logger.info(f"Loaded {len(manifest)} revisioned assets from {source}")
    return manifest
