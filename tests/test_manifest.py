"""
Test the revision manifest and the revisioned-path resolver.
"""

import os
import json

import pytest

from revsite import Config, RevisionManifest, ManifestError, load_manifest
from revsite.manifest import is_revisioned, strip_revision


pattern = Config().pattern


def test_revisioned_pattern():
    for path in (
        "/assets/app.a1b2c3.js",
        "app.a1b2c3.js",
        "/css/styles-0123abcd.css",
        "/img/logo.d41d8cd98f00b204e9800998ecf8427e.png",
    ):
        assert is_revisioned(pattern, path), path

    for path in (
        "/assets/app.js",
        "/about/",
        "/",
        "/assets/app.a1b2c.js",  # too short
        "/assets/app.a1b2cz.js",  # not hex
        "/assets/a1b2c3d4.js",  # no separator
        "/assets/app.a1b2c3.js/",
    ):
        assert not is_revisioned(pattern, path), path


def test_strip_revision():
    assert strip_revision(pattern, "assets/app.a1b2c3.js") == "assets/app.js"
    assert strip_revision(pattern, "css/styles-0123abcd.css") == "css/styles.css"
    assert strip_revision(pattern, "assets/app.js") is None


def test_resolve():
    manifest = RevisionManifest({"assets/app.js": "assets/app.a1b2c3.js"})

    assert manifest.resolve("assets/app.js") == "assets/app.a1b2c3.js"
    assert manifest.resolve("/assets/app.js") == "/assets/app.a1b2c3.js"

    # Unknown paths pass through unchanged
    for path in ("assets/other.js", "/assets/other.js", "", "/"):
        assert manifest.resolve(path) == path

    # Resolving is idempotent and has no side effects
    assert manifest.resolve("/assets/app.js") == manifest.resolve("/assets/app.js")
    assert len(manifest) == 1
    assert dict(manifest) == {"assets/app.js": "assets/app.a1b2c3.js"}

    # Usable directly as a function
    assert manifest("/assets/app.js") == "/assets/app.a1b2c3.js"


def test_manifest_is_read_only():
    manifest = RevisionManifest({"a.js": "a.abcdef12.js"})
    with pytest.raises(TypeError):
        manifest["b.js"] = "b.abcdef12.js"
    assert "a.js" in manifest
    assert manifest.get("b.js") is None


def test_manifest_invalid_entries():
    for entries in (
        {"../secret.js": "secret.abcdef.js"},
        {"a/../../b.js": "b.abcdef.js"},
        {"": "x.abcdef.js"},
        {"a.js": ""},
        {"a.js": 3},
    ):
        with pytest.raises(ManifestError):
            RevisionManifest(entries)


def test_manifest_from_file(tmp_path):
    filename = tmp_path / "rev-manifest.json"
    filename.write_text(json.dumps({"app.js": "app.a1b2c3.js", "/x/y.css": "/x/y.abcdef.css"}))

    manifest = RevisionManifest.from_file(str(filename))
    assert manifest.resolve("/app.js") == "/app.a1b2c3.js"
    assert manifest.resolve("x/y.css") == "x/y.abcdef.css"

    filename.write_text("[1, 2, 3]")
    with pytest.raises(ManifestError):
        RevisionManifest.from_file(str(filename))

    filename.write_text("{not json")
    with pytest.raises(ManifestError):
        RevisionManifest.from_file(str(filename))

    with pytest.raises(ManifestError):
        RevisionManifest.from_file(str(tmp_path / "doesnotexist.json"))


def test_manifest_from_directory(tmp_path):
    (tmp_path / "assets").mkdir()
    (tmp_path / "assets" / "app.a1b2c3.js").write_text("x")
    (tmp_path / "assets" / "plain.js").write_text("x")
    (tmp_path / "main-0123abcd.css").write_text("x")

    manifest = RevisionManifest.from_directory(str(tmp_path), pattern)
    assert dict(manifest) == {
        "assets/app.js": "assets/app.a1b2c3.js",
        "main.css": "main-0123abcd.css",
    }


def test_load_manifest(tmp_path):
    cache_dir = tmp_path / "cache"
    config = Config(base_dir=str(tmp_path / "src"), cache_dir=str(cache_dir))

    # No cache dir at all
    assert len(load_manifest(config)) == 0

    # Scan the cache dir
    cache_dir.mkdir()
    (cache_dir / "app.a1b2c3.js").write_text("x")
    assert dict(load_manifest(config)) == {"app.js": "app.a1b2c3.js"}

    # The manifest file takes precedence
    (cache_dir / "rev-manifest.json").write_text(json.dumps({"app.js": "app.ffffff.js"}))
    assert dict(load_manifest(config)) == {"app.js": "app.ffffff.js"}

    # An explicit manifest file
    other = tmp_path / "other.json"
    other.write_text(json.dumps({"foo.js": "foo.abcdef.js"}))
    config = config.replace(manifest_file=str(other))
    assert dict(load_manifest(config)) == {"foo.js": "foo.abcdef.js"}
    assert os.path.isfile(config.manifest_path)
