"""Lifespan-менеджер: запуск и остановка EndpointWatch вместе с FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

from endpointwatch.api import EndpointWatch
from endpointwatch.store import PersistenceStore

STATE_KEY = "endpointwatch"


def endpointwatch_lifespan(
    source: PersistenceStore | EndpointWatch,
    **kwargs: Any,  # noqa: ANN401
) -> object:
    """Фабрика lifespan для FastAPI.

    Возвращает callable, совместимый с ``FastAPI(lifespan=...)``.
    ``source`` — либо хранилище (тогда ``EndpointWatch`` создаётся внутри,
    именованные аргументы передаются в конструктор), либо уже собранный
    ``EndpointWatch``, например из ``endpointwatch.cli.build_watch``.

    Наблюдатель кладётся в lifespan state и в ``app.state`` под ключом
    ``"endpointwatch"``; роутер и middleware находят его там.

    Пример::

        app = FastAPI(lifespan=endpointwatch_lifespan(
            MySQLStore("mysql://watch:secret@db:3306/status"),
            discovery=HTTPDiscoverySource("https://directory.example.net/list"),
        ))
    """
    if isinstance(source, EndpointWatch) and kwargs:
        msg = f"unexpected options for a ready EndpointWatch: {sorted(kwargs)}"
        raise TypeError(msg)

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        watch = source if isinstance(source, EndpointWatch) else EndpointWatch(source, **kwargs)
        setattr(app.state, STATE_KEY, watch)
        await watch.start()
        try:
            yield {STATE_KEY: watch}
        finally:
            await watch.stop()

    return _lifespan


def get_watch(request: Request) -> EndpointWatch | None:
    """Наблюдатель из lifespan state запроса, иначе из ``app.state``."""
    watch = getattr(request.state, STATE_KEY, None)
    if watch is None:
        watch = getattr(request.app.state, STATE_KEY, None)
    return watch
