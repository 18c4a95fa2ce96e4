from __future__ import annotations

from aiohttp import web


async def _health(request: web.Request) -> web.Response:
    return web.Response(text="ok")


def build_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", _health)
    app.router.add_get("/health", _health)
    return app


async def start_health_server(port: int) -> web.AppRunner | None:
    """Bind the liveness listener the hosting platform polls. Failure to bind is logged, not fatal."""
    try:
        runner = web.AppRunner(build_health_app())
        await runner.setup()
        site = web.TCPSite(runner, "0.0.0.0", int(port))
        await site.start()
    except OSError as e:
        print(f"[Health] listener did not start on port {port}: {e}")
        return None
    print(f"[Health] listening on port {port}")
    return runner
