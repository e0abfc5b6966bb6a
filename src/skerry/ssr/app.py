"""SSR service ASGI application.

A small fixed-route ASGI app over ``RenderService``. Rendering is
CPU-bound and synchronous, so every render runs in a worker thread
under a per-call deadline. Every response carries a JSON body; failures
use ``{"error", "kind"}`` with these statuses:

- ``422`` component failure (resolution, compilation, render)
- ``413`` body above ``max_body_bytes`` (rejected before parsing)
- ``504`` render deadline exceeded
- ``400``/``404``/``405`` malformed request, unknown route, wrong method
- ``500`` unexpected fault inside the service
"""

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import anyio

from skerry._internal.asgi import HTTPRequest, Receive, Scope, Send
from skerry.config import SSRConfig
from skerry.errors import HTTPError
from skerry.islands.types import RenderFailure, RenderOutcome, outcome_to_wire
from skerry.ssr.bundles import BundleCache
from skerry.ssr.compiler import KidaCompiler
from skerry.ssr.engine import RenderService
from skerry.ssr.http import Response, send_response

logger = logging.getLogger("skerry.ssr")

METADATA_HEADER = "x-skerry-metadata"
BUNDLE_PREFIX = "/full-page-bundles/"

Handler = Callable[[HTTPRequest], Awaitable[Response]]


def build_service(config: SSRConfig) -> RenderService:
    """Wire compiler, bundle cache, and render service from a config."""
    compiler = KidaCompiler(artifact_dir=config.artifact_dir)
    bundles = BundleCache(
        compiler,
        capacity=config.bundle_cache_size,
        environment=config.environment,
    )
    return RenderService(
        bundles,
        max_payload_bytes=config.max_body_bytes,
        include_stack=config.is_development,
    )


class SSRApp:
    """The SSR execution service as an ASGI 3 application.

    Usage::

        app = SSRApp(SSRConfig(port=5175))
        # serve with any ASGI server; ``python -m skerry.ssr`` uses pounce
    """

    def __init__(
        self,
        config: SSRConfig | None = None,
        *,
        service: RenderService | None = None,
    ) -> None:
        self.config = config if config is not None else SSRConfig()
        self.service = service if service is not None else build_service(self.config)
        self._routes: dict[str, tuple[str, Handler]] = {
            "/health": ("GET", self._health),
            "/render": ("POST", self._render),
            "/batch-render": ("POST", self._batch_render),
            "/render-tree": ("POST", self._render_tree),
            "/infer-props": ("POST", self._infer_props),
            "/clear-cache": ("POST", self._clear_cache),
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = HTTPRequest.from_scope(scope, receive)
        try:
            response = await self._dispatch(request)
        except HTTPError as exc:
            response = Response.error(exc.status, exc.detail or str(exc), exc.kind)
        except TimeoutError:
            logger.error(
                "Render timed out after %.1fs: %s", self.config.render_timeout, request.path
            )
            response = Response.error(504, "Render timed out", "timeout")
        except Exception:
            logger.exception("Unhandled error in %s %s", request.method, request.path)
            response = Response.error(500, "Internal server error", "internal")
        await send_response(response, send)

    # -- Lifespan --

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                logger.info(
                    "SSR service starting (env=%s, bundle cache=%d, max body=%d bytes)",
                    self.config.environment,
                    self.config.bundle_cache_size,
                    self.config.max_body_bytes,
                )
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                try:
                    self.service.bundles.close()
                except Exception as exc:
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                logger.info("SSR service stopped")
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Routing --

    async def _dispatch(self, request: HTTPRequest) -> Response:
        if request.path.startswith(BUNDLE_PREFIX):
            self._check_method(request, "GET")
            return self._full_page_bundle(request.path.removeprefix(BUNDLE_PREFIX))

        route = self._routes.get(request.path)
        if route is None:
            raise HTTPError(404, f"Not found: {request.path}", kind="not_found")
        method, handler = route
        self._check_method(request, method)
        return await handler(request)

    @staticmethod
    def _check_method(request: HTTPRequest, method: str) -> None:
        if request.method != method:
            raise HTTPError(405, f"Method {request.method} not allowed", kind="method_not_allowed")

    async def _read_json(self, request: HTTPRequest) -> dict[str, Any]:
        body = await request.body(limit=self.config.max_body_bytes)
        try:
            data = json.loads(body) if body else {}
        except ValueError:
            raise HTTPError(400, "Invalid JSON body") from None
        if not isinstance(data, dict):
            raise HTTPError(400, "Request body must be a JSON object")
        return data

    async def _in_thread(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with anyio.fail_after(self.config.render_timeout):
            return await anyio.to_thread.run_sync(
                functools.partial(func, *args, **kwargs), abandon_on_cancel=True
            )

    # -- Handlers --

    async def _health(self, request: HTTPRequest) -> Response:
        from skerry import __version__

        return Response.json(
            {"status": "ok", "version": __version__, "bundles": len(self.service.bundles)}
        )

    async def _render(self, request: HTTPRequest) -> Response:
        data = await self._read_json(request)
        include_metadata = request.header(METADATA_HEADER, "") in ("1", "true")
        outcome = await self._in_thread(
            self.service.render_one,
            data.get("componentPath"),
            data.get("props"),
            include_metadata=include_metadata,
        )
        return _outcome_response(outcome)

    async def _batch_render(self, request: HTTPRequest) -> Response:
        data = await self._read_json(request)
        specs = data.get("specs")
        if not isinstance(specs, list):
            raise HTTPError(400, "'specs' must be a list")

        results: list[RenderOutcome] = [RenderFailure("Not rendered")] * len(specs)

        async def render_entry(index: int, spec: Any) -> None:
            (results[index],) = await anyio.to_thread.run_sync(
                self.service.render_batch, [spec], abandon_on_cancel=True
            )

        with anyio.fail_after(self.config.render_timeout):
            async with anyio.create_task_group() as tg:
                for index, spec in enumerate(specs):
                    tg.start_soon(render_entry, index, spec)

        return Response.json({"results": [outcome_to_wire(result) for result in results]})

    async def _render_tree(self, request: HTTPRequest) -> Response:
        data = await self._read_json(request)
        tree = data.get("tree")
        if not isinstance(tree, dict):
            raise HTTPError(400, "'tree' must be an object")
        outcome = await self._in_thread(self.service.render_tree, tree)
        return _outcome_response(outcome)

    async def _infer_props(self, request: HTTPRequest) -> Response:
        data = await self._read_json(request)
        source = data.get("source")
        if not isinstance(source, str):
            raise HTTPError(400, "'source' must be a string")
        return Response.json({"keys": self.service.infer_props(source)})

    async def _clear_cache(self, request: HTTPRequest) -> Response:
        cleared = await anyio.to_thread.run_sync(self.service.bundles.clear)
        return Response.json({"cleared": cleared})

    def _full_page_bundle(self, bundle_key: str) -> Response:
        component = self.service.bundles.lookup(bundle_key)
        if component is None or component.artifact_path is None:
            raise HTTPError(404, f"Unknown bundle: {bundle_key}", kind="not_found")
        try:
            body = component.artifact_path.read_bytes()
        except OSError:
            raise HTTPError(404, f"Unknown bundle: {bundle_key}", kind="not_found") from None
        return Response(
            body=body,
            content_type="application/javascript; charset=utf-8",
        ).with_header("Cache-Control", "public, max-age=31536000, immutable")


def _outcome_response(outcome: RenderOutcome) -> Response:
    status = 200 if outcome.ok else 422
    return Response.json(outcome_to_wire(outcome), status=status)
