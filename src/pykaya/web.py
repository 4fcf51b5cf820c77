"""HTTP status page: the latest pairing code and a health probe.

The handlers only read :class:`~pykaya.models.status.StatusSnapshot`
objects; they never wait on the session manager.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Callable

from aiohttp import web

from pykaya.models.status import StatusSnapshot

_logger = logging.getLogger(__name__)

SnapshotReader = Callable[[], StatusSnapshot]

SNAPSHOT_READER_KEY: web.AppKey[SnapshotReader] = web.AppKey("snapshot_reader")
TITLE_KEY: web.AppKey[str] = web.AppKey("title")

_WAITING_PAGE = """<html>
  <head>
    <meta http-equiv="refresh" content="5">
    <title>{title} - QR</title>
  </head>
  <body style="font-family: Arial, sans-serif; text-align:center; padding:40px">
    <h1>{title}</h1>
    <h2>Status: {status}</h2>
    <p>Waiting for the pairing code. This page refreshes every 5 seconds.</p>
    <p>If nothing shows up, check the process logs for errors.</p>
  </body>
</html>
"""

_PAIRING_PAGE = """<html>
  <head>
    <title>{title} - QR</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
  </head>
  <body style="font-family: Arial, sans-serif; text-align:center; padding:20px">
    <h1>{title}</h1>
    <h3>Status: {status}</h3>
    <p>Generated: {generated}</p>
    <img src="{image}" alt="Pairing QR code" style="max-width:90%;height:auto"/>
    <p style="margin-top:12px">Scan this code from the app (Menu &gt; Linked devices &gt; Link a device).</p>
    <p style="font-size:12px; color:#666">If the code expires, reload this page to get the new one.</p>
  </body>
</html>
"""


def render_status_page(snapshot: StatusSnapshot, *, title: str = "KAYA-MD") -> str:
    """Render the pairing page, or a self-refreshing waiting page without a code."""
    status = html.escape(snapshot.status)
    safe_title = html.escape(title)
    if snapshot.pairing_image is None:
        return _WAITING_PAGE.format(title=safe_title, status=status)
    generated = snapshot.pairing_timestamp.isoformat() if snapshot.pairing_timestamp else ""
    return _PAIRING_PAGE.format(
        title=safe_title,
        status=status,
        generated=html.escape(generated),
        image=html.escape(snapshot.pairing_image, quote=True),
    )


async def handle_index(request: web.Request) -> web.Response:
    snapshot = request.app[SNAPSHOT_READER_KEY]()
    return web.Response(
        text=render_status_page(snapshot, title=request.app[TITLE_KEY]),
        content_type="text/html",
    )


async def handle_health(request: web.Request) -> web.Response:
    snapshot = request.app[SNAPSHOT_READER_KEY]()
    return web.json_response(snapshot.health_payload())


def create_app(snapshot_reader: SnapshotReader, *, title: str = "KAYA-MD") -> web.Application:
    """Build the status web application around a snapshot accessor."""
    app = web.Application()
    app[SNAPSHOT_READER_KEY] = snapshot_reader
    app[TITLE_KEY] = title
    app.router.add_get("/", handle_index)
    app.router.add_get("/health", handle_health)
    return app


async def run_web_app(app: web.Application, port: int, *, host: str = "0.0.0.0") -> web.AppRunner:
    """Start serving *app*. The caller owns the returned runner and must clean it up."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    _logger.info("Status page listening on port %d", port)
    return runner
