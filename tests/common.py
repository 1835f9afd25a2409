"""
Common utilities used in our test scripts.
"""

import os
import json

from revsite.testutils import MockTestServer
from revsite import Config


PAGE = """<!DOCTYPE html>
<html>
<head>
    <link rel="stylesheet" href="{{ rev_url('/assets/main.css') }}">
    <script src="{{ rev_url('/assets/app.js') }}"></script>
</head>
<body>{% block body %}{% endblock %}</body>
</html>
"""

SITE = {
    "src/layout.html": PAGE,
    "src/index.html": "{% extends 'layout.html' %}{% block body %}Home{% endblock %}",
    "src/about/index.html": (
        "{% extends 'layout.html' %}{% block body %}About {{ request_path }}{% endblock %}"
    ),
    "src/404.html": "<!DOCTYPE html><html><body>Page not found</body></html>",
    "src/broken/index.html": "{{ this_is_undefined.attribute }}",
    "src/assets/app.js": "console.log('source');",
    "src/assets/main.css": "body { color: red; }\n" * 40,
    "src/data.json": '{"source": true}',
    "src/images/logo.png": bytes(range(256)) * 4,
    "cache/assets/app.a1b2c3.js": "console.log('built');",
    "cache/assets/main.0123abcd.css": "body{color:red}",
    "cache/data.json": '{"cache": true}',
    "cache/rev-manifest.json": json.dumps(
        {"assets/app.js": "assets/app.a1b2c3.js", "assets/main.css": "assets/main.0123abcd.css"}
    ),
}


def filter_lines(lines):
    # Overloadable line filter
    skip = ("[INFO ", "[DEBUG ")
    return [line for line in lines if line and not line.startswith(skip)]


def make_server(app, push=False):
    server = MockTestServer(app, push=push)
    server.filter_lines = filter_lines
    return server


def make_site(root, files=None):
    """ Write a small site to the given directory and return a Config for it.
    """
    root = str(root)
    for name, content in (SITE if files is None else files).items():
        filename = os.path.join(root, *name.split("/"))
        os.makedirs(os.path.dirname(filename), exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        with open(filename, "wb") as f:
            f.write(content)
    return Config(
        base_dir=os.path.join(root, "src"),
        cache_dir=os.path.join(root, "cache"),
        auto_reload=False,
    )
