"""Current-span tracking so nested work can find its parent span."""

from __future__ import annotations

import contextvars

_current_span: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "handoffkit_current_span", default=None
)


def get_current_span() -> str | None:
    return _current_span.get()


def set_current_span(span_id: str | None) -> contextvars.Token[str | None]:
    """Make *span_id* the parent for spans started in this context.

    Tasks created afterwards inherit it; pass the token to :func:`reset_span`.
    """
    return _current_span.set(span_id)


def reset_span(token: contextvars.Token[str | None]) -> None:
    _current_span.reset(token)
