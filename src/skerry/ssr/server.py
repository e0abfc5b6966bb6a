"""Serve the SSR app with pounce.

Pounce's ``run()`` takes an import string, but the service is built from
a live config, so ``pounce.Server`` is driven directly with the ASGI
callable. Pounce is an optional dependency (``skerry[server]``).
"""

from skerry.ssr.app import SSRApp


def run_server(app: SSRApp, *, workers: int = 1, reload: bool = False) -> None:
    """Bind to ``app.config.host``/``port`` and serve until interrupted."""
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=app.config.host,
        port=app.config.port,
        workers=workers,
        reload=reload,
    )
    server = Server(config, app)
    server.run()
