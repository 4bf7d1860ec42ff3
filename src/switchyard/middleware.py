"""Before/after middleware pipeline."""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Iterable

from .context import Context

Hook = Callable[[Context], Awaitable[Context] | Context]


class Middleware:
    """Two ordered hook lists run around the matched handler.

    Each hook receives the current :class:`Context` and returns the context
    the next stage should see. The lock is checked before every hook, so a
    hook that calls :meth:`Context.force_send` stops the rest of the pipeline.
    """

    __slots__ = ("_after", "_before")

    def __init__(self) -> None:
        self._before: list[Hook] = []
        self._after: list[Hook] = []

    def before(self, hook: Hook) -> Hook:
        self._before.append(hook)
        return hook

    def after(self, hook: Hook) -> Hook:
        self._after.append(hook)
        return hook

    @property
    def before_hooks(self) -> tuple[Hook, ...]:
        return tuple(self._before)

    @property
    def after_hooks(self) -> tuple[Hook, ...]:
        return tuple(self._after)

    async def run_before(self, ctx: Context) -> Context:
        return await _run_hooks(self._before, ctx)

    async def run_after(self, ctx: Context) -> Context:
        return await _run_hooks(self._after, ctx)


async def _run_hooks(hooks: Iterable[Hook], ctx: Context) -> Context:
    for hook in hooks:
        if ctx.is_locked():
            break
        ctx = await resolve_context(hook(ctx), hook)
    return ctx


async def resolve_context(result: Awaitable[Context] | Context, source: object) -> Context:
    """Await ``result`` when needed and check that a stage produced a context."""

    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, Context):
        raise TypeError(f"{_describe(source)} must return a Context, got {type(result).__name__}")
    return result


def _describe(source: object) -> str:
    name = getattr(source, "__qualname__", None) or getattr(source, "__name__", None)
    return name or repr(source)


__all__ = ["Hook", "Middleware", "resolve_context"]
