"""
CLI to serve a site: ``python -m revsite [options]``. Options override the
configuration taken from the environment (see ``Config.from_env()``).
"""

import sys
import argparse

from .config import Config
from .errors import RevsiteError
from .server import serve, VARIANTS


def make_parser():
    parser = argparse.ArgumentParser(
        prog="revsite", description="Serve a static/templated website."
    )
    parser.add_argument("--variant", choices=VARIANTS, default="multi")
    parser.add_argument("--server", choices=("hypercorn", "uvicorn"), default="hypercorn")
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument("--base-dir")
    parser.add_argument("--cache-dir")
    parser.add_argument("--certfile")
    parser.add_argument("--keyfile")
    parser.add_argument("--log-level")
    parser.add_argument("--no-push", dest="push_assets", action="store_false", default=None)
    return parser


def main(argv=None):
    args = make_parser().parse_args(argv)
    overrides = {
        key: val
        for key, val in vars(args).items()
        if key not in ("variant", "server") and val is not None
    }
    try:
        config = Config.from_env(**overrides)
        serve(config, variant=args.variant, server=args.server)
    except RevsiteError as err:
        sys.exit(f"revsite: {err}")
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
