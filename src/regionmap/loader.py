"""Process-wide readiness signal for the map provider script."""

from __future__ import annotations

import itertools
import logging
import os
import threading
import time
from typing import Callable

import requests

from .config import ProviderConfig


UNINITIALIZED = "uninitialized"
LOADING = "loading"
READY = "ready"
FAILED = "failed"

_RETRYABLE_HTTP_STATUS = {429, 500, 502, 503, 504}
_MAX_RETRIES = 2
_RETRY_BACKOFF_S = 0.5

_LOGGER = logging.getLogger("regionmap.loader")

ReadyCallback = Callable[[bool], None]
LoadFunction = Callable[[Callable[[bool], None]], None]


class ProviderLoader:
    """Loads the provider once and tells every waiter how it went.

    The load function receives a ``done(ok)`` callable. The first ``done``
    call moves the loader to ``ready`` or ``failed``; both are terminal and
    later calls are ignored. Each pending subscriber is notified exactly once.
    """

    def __init__(self, load: LoadFunction) -> None:
        self._load = load
        self._state = UNINITIALIZED
        self._pending: dict[int, ReadyCallback] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def request(self, callback: ReadyCallback) -> Callable[[], None]:
        """Register interest in readiness; returns an unsubscribe callable."""
        with self._lock:
            state = self._state
            if state in (UNINITIALIZED, LOADING):
                token = next(self._tokens)
                self._pending[token] = callback
                start = state == UNINITIALIZED
                if start:
                    self._state = LOADING
            else:
                token = None
                start = False

        if token is None:
            callback(state == READY)
            return _noop

        if start:
            _LOGGER.debug("Starting provider load")
            try:
                self._load(self._complete)
            except Exception as exc:
                _LOGGER.error("Provider load raised: %s", exc)
                self._complete(False)

        def unsubscribe() -> None:
            with self._lock:
                self._pending.pop(token, None)

        return unsubscribe

    def _complete(self, ok: bool) -> None:
        with self._lock:
            if self._state != LOADING:
                _LOGGER.debug("Ignoring provider completion in state %s", self._state)
                return
            self._state = READY if ok else FAILED
            waiters = list(self._pending.values())
            self._pending.clear()
        if ok:
            _LOGGER.info("Map provider ready (%d waiting)", len(waiters))
        else:
            _LOGGER.error("Map provider failed to load (%d waiting)", len(waiters))
        for callback in waiters:
            callback(ok)


def _noop() -> None:
    return None


def build_script_url(cfg: ProviderConfig, api_key: str | None = None) -> str:
    params = []
    if api_key:
        params.append(f"apikey={api_key}")
    params.append(f"lang={cfg.lang}")
    separator = "&" if "?" in cfg.script_url else "?"
    return cfg.script_url + separator + "&".join(params)


def http_script_loader(
    cfg: ProviderConfig,
    *,
    session: requests.Session | None = None,
) -> LoadFunction:
    """Load function that fetches the provider script over HTTP.

    The GET and its retries run on the calling thread, so the first
    ``request`` blocks until they finish. Hosts that cannot block should
    inject a load function that calls ``done`` later.
    """
    api_key = os.environ.get(cfg.api_key_env) if cfg.api_key_env else None
    url = build_script_url(cfg, api_key)

    def fetch(http: requests.Session) -> requests.Response:
        return _request_get(http, url, timeout=cfg.request_timeout_s)

    def load(done: Callable[[bool], None]) -> None:
        try:
            if session is not None:
                response = fetch(session)
            else:
                with requests.Session() as http:
                    response = fetch(http)
        except requests.RequestException as exc:
            _LOGGER.error("Provider script request failed: %s", exc)
            done(False)
            return
        response.close()
        done(True)

    return load


def _request_get(session: requests.Session, url: str, *, timeout: float) -> requests.Response:
    for attempt in range(_MAX_RETRIES + 1):
        response = session.get(url, timeout=timeout)
        if response.status_code not in _RETRYABLE_HTTP_STATUS or attempt >= _MAX_RETRIES:
            response.raise_for_status()
            return response
        delay_s = _RETRY_BACKOFF_S * (2**attempt)
        _LOGGER.warning(
            "Retryable response %s from provider; retrying in %.1fs (%d/%d)",
            response.status_code,
            delay_s,
            attempt + 1,
            _MAX_RETRIES,
        )
        response.close()
        time.sleep(delay_s)
    raise RuntimeError("Unreachable retry loop in provider loader")


_SHARED_LOCK = threading.Lock()
_SHARED_LOADER: ProviderLoader | None = None


def get_provider_loader(load: LoadFunction | None = None) -> ProviderLoader:
    """Shared loader for all widgets in the process.

    The first caller fixes the load function; ``load`` is ignored afterwards.
    """
    global _SHARED_LOADER
    with _SHARED_LOCK:
        if _SHARED_LOADER is None:
            _SHARED_LOADER = ProviderLoader(load if load is not None else http_script_loader(ProviderConfig()))
        return _SHARED_LOADER


def reset_provider_loader() -> None:
    global _SHARED_LOADER
    with _SHARED_LOCK:
        _SHARED_LOADER = None
