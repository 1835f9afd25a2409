"""
Test some meta stuff.
"""

import os
import revsite


def test_namespace():
    assert revsite.__version__

    ns = set(name for name in dir(revsite) if not name.startswith("_"))

    # Submodules end up in the namespace too
    for modname in (
        "testutils",
        "config",
        "errors",
        "manifest",
        "pipeline",
        "compress",
        "static",
        "render",
        "server",
    ):
        ns.discard(modname)

    assert ns == {
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
    }
    assert ns == set(revsite.__all__)


def test_newlines():
    # Let's be a bit pedantic about sanitizing whitespace :)

    root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    for dirname in ("revsite", "tests"):
        for root, dirs, files in os.walk(os.path.join(root_dir, dirname)):
            for fname in files:
                if fname.endswith((".py", ".md", ".rst", ".yml")):
                    with open(os.path.join(root, fname), "rb") as f:
                        text = f.read().decode()
                        assert "\r" not in text, f"{fname} has CR!"
                        assert "\t" not in text, f"{fname} has tabs!"


if __name__ == "__main__":
    test_namespace()
    test_newlines()
