"""
Pure ASGI middleware wiring the metric extension into a web application.

- http requests are measured (every exit path, including errors)
- lifespan.startup installs the extension, lifespan.shutdown shuts it down

Usage:
    app = MetricMiddleware(app, config={"log_dir": "/var/log/app"})
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, MutableMapping

from srvmetric.core.extension import ConfigInput, MetricExtension
from srvmetric.monitoring.scheduler import LoopScheduler

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


class MetricMiddleware:
    """
    ASGI middleware feeding request completions into a MetricExtension.

    The wrapped application must handle the lifespan protocol (Starlette
    and FastAPI do); the middleware only observes the lifespan messages.
    """

    def __init__(
        self,
        app: ASGIApp,
        extension: MetricExtension | None = None,
        config: ConfigInput = None,
        exclude_paths: list[str] | None = None,
    ):
        """
        Args:
            app: ASGI application
            extension: Extension to drive; by default one is created with an
                event-loop scheduler so event_delay reflects loop lag
            config: Options for the default extension
            exclude_paths: Paths not counted as requests (e.g. /health)
        """
        if extension is None:
            extension = MetricExtension(config, scheduler=LoopScheduler())

        self.app = app
        self.extension = extension
        self._exclude_paths = set(exclude_paths or [])

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, self._lifespan_receive(receive), send)
            return

        if scope["type"] != "http" or scope.get("path") in self._exclude_paths:
            await self.app(scope, receive, send)
            return

        with self.extension.measure():
            await self.app(scope, receive, send)

    def _lifespan_receive(self, receive: Receive) -> Receive:
        async def wrapped() -> Dict[str, Any]:
            message = await receive()
            if message["type"] == "lifespan.startup":
                # ConfigurationError propagates so the server aborts startup
                self.extension.on_install()
            elif message["type"] == "lifespan.shutdown":
                await self.extension.on_shutdown_async()
            return message

        return wrapped
