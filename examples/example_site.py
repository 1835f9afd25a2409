"""
Example that serves a small site with a custom handler in front of the
default pipeline. The site lives in ``src/`` and ``cache/`` next to the
working directory (see ``revsite.Config``).

Run with ``python example_site.py`` and visit http://localhost:7924/.
"""

import revsite
from revsite.pipeline import Handler, PASS


class HealthCheck(Handler):
    """ Answer ``/healthz`` without touching the filesystem.
    """

    def match(self, request):
        return request.path == "/healthz"

    async def handle(self, request):
        if request.method not in ("GET", "HEAD"):
            return PASS
        return 200, {"cache-control": "no-store"}, "ok"


config = revsite.Config.from_env(push_assets=False)
pipeline = revsite.make_pipeline(config)
app = revsite.to_asgi(revsite.Pipeline([HealthCheck()] + list(pipeline.handlers)))


if __name__ == "__main__":
    revsite.serve(config, variant="single", app=app)
