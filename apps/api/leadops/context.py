"""Request-scoped identifiers picked up by logs, events and spans."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_actor_id(value: str | None) -> Token[str | None]:
    return actor_id_var.set(value)


def get_actor_id() -> str | None:
    return actor_id_var.get()


@contextmanager
def request_scope(correlation_id: str) -> Iterator[str]:
    # The actor is bound later, once the bearer token has been decoded.
    correlation_token = correlation_id_var.set(correlation_id)
    actor_token = actor_id_var.set(None)
    try:
        yield correlation_id
    finally:
        actor_id_var.reset(actor_token)
        correlation_id_var.reset(correlation_token)


def get_log_context() -> dict[str, str | None]:
    return {"correlation_id": get_correlation_id(), "actor_id": get_actor_id()}
