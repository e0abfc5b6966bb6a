"""``python -m skerry.ssr``: run the SSR execution service.

Entry point also registered as ``skerry-ssr`` in ``pyproject.toml``.
Flags override ``SKERRY_*`` environment variables.
"""

import argparse
import logging
import sys

from skerry.config import SSRConfig
from skerry.errors import ConfigurationError


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``skerry-ssr`` command."""
    parser = argparse.ArgumentParser(
        prog="skerry-ssr",
        description="Skerry SSR service: renders kida components over HTTP.",
    )
    parser.add_argument("--host", default=None, help="Bind host address")
    parser.add_argument("--port", type=int, default=None, help="Bind port number")
    parser.add_argument("--env", dest="environment", default=None, help="Execution environment")
    parser.add_argument(
        "--bundle-cache",
        dest="bundle_cache_size",
        type=int,
        default=None,
        help="Maximum compiled components kept in memory",
    )
    parser.add_argument(
        "--max-body-bytes", type=int, default=None, help="Reject larger request bodies (413)"
    )
    parser.add_argument("--artifact-dir", default=None, help="Directory for compiled artifacts")
    parser.add_argument("--render-timeout", type=float, default=None, help="Per-call deadline")
    parser.add_argument("--workers", type=int, default=1, help="Worker count")
    parser.add_argument("--log-level", default=None, help="Logging level (default: info)")

    args = parser.parse_args(argv)
    overrides = {
        name: value
        for name, value in vars(args).items()
        if name != "workers" and value is not None
    }

    try:
        config = SSRConfig.from_env(**overrides)
    except (ConfigurationError, ValueError) as exc:
        print(f"skerry-ssr: {exc}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from skerry.ssr.app import SSRApp
    from skerry.ssr.server import run_server

    run_server(SSRApp(config), workers=args.workers)


if __name__ == "__main__":
    main()
