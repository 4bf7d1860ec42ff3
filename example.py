"""Minimal Switchyard application.

Serve it with any ASGI server, for example ``granian --interface asgi example:app``.
``GET /`` answers with JSON, ``/rooms/{room}`` accepts WebSocket connections that
carry an ``x-user`` header and echo every frame back.
"""

from __future__ import annotations

import logging

from switchyard import AppConfig, Context, Switchyard, WebSocket

logging.basicConfig(level=logging.INFO)

app = Switchyard(AppConfig(name="example"))


@app.before
def stamp_start(ctx: Context) -> Context:
    ctx.extra["served_by"] = app.config.name
    return ctx


@app.get("/")
async def index(ctx: Context) -> Context:
    return ctx.send_json({"hello": "world", "served_by": ctx.extra["served_by"]})


def require_user(ctx: Context) -> Context:
    if not ctx.header("x-user"):
        return ctx.send_text("x-user header required", status=401).force_send()
    return ctx


async def echo(ws: WebSocket, payload: str | bytes) -> None:
    user = ws.data.ctx.header("x-user")
    if isinstance(payload, bytes):
        await ws.send_bytes(payload)
    else:
        await ws.send_text(f"{user}: {payload}")


app.websocket("/rooms/{room}", upgrade=require_user, message=echo)
