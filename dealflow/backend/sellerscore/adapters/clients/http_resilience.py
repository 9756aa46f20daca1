# sellerscore/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from ...config import settings

log = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


@dataclass
class _CircuitState:
    fails: int = 0
    opened_at: float | None = None


# One breaker and one rate-limit slot per provider, so a dead permit API
# does not stop market lookups.
_CIRCUITS: dict[str, _CircuitState] = {}
_RATE_LOCKS: dict[str, asyncio.Lock] = {}
_LAST_TS: dict[str, float] = {}


class CircuitOpenError(httpx.HTTPError):
    pass


def circuit_state(name: str) -> _CircuitState:
    return _CIRCUITS.setdefault(name, _CircuitState())


def reset_circuits() -> None:
    _CIRCUITS.clear()
    _LAST_TS.clear()


def _circuit_is_open(name: str, now: float) -> bool:
    st = circuit_state(name)
    if st.opened_at is None:
        return False
    if (now - st.opened_at) < float(settings.HTTP_CIRCUIT_RESET_S):
        return True
    # half-open: let the next call through, one more failure re-opens
    st.opened_at = None
    st.fails = max(0, int(settings.HTTP_CIRCUIT_FAIL_THRESHOLD) - 1)
    return False


def _circuit_on_success(name: str) -> None:
    st = circuit_state(name)
    st.fails = 0
    st.opened_at = None


def _circuit_on_failure(name: str) -> None:
    st = circuit_state(name)
    st.fails += 1
    if st.fails >= int(settings.HTTP_CIRCUIT_FAIL_THRESHOLD) and st.opened_at is None:
        st.opened_at = time.time()
        log.warning("circuit opened for %s after %d failures", name, st.fails)


async def _rate_limit(name: str) -> None:
    """Very simple per-process, per-provider limiter."""
    rps = float(settings.HTTP_RATE_LIMIT_RPS)
    if rps <= 0:
        return
    min_gap = 1.0 / rps
    lock = _RATE_LOCKS.setdefault(name, asyncio.Lock())
    async with lock:
        now = time.time()
        wait = (_LAST_TS.get(name, 0.0) + min_gap) - now
        if wait > 0:
            await asyncio.sleep(wait)
        _LAST_TS[name] = time.time()


async def resilient_request(
    method: str,
    url: str,
    *,
    circuit: str = "default",
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    json: Any | None = None,
    data: Any | None = None,
    timeout_s: float | None = None,
    max_retries: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.Response:
    """
    Retries timeouts, network errors and 429/5xx with exponential backoff.
    Other 4xx responses are raised immediately (HTTPStatusError) and do not
    count against the breaker.
    """
    if _circuit_is_open(circuit, time.time()):
        raise CircuitOpenError(f"circuit_open: refusing external call to {url}")

    await _rate_limit(circuit)

    timeout = httpx.Timeout(float(timeout_s if timeout_s is not None else settings.HTTP_TIMEOUT_S))
    retries = int(max_retries if max_retries is not None else settings.HTTP_MAX_RETRIES)
    backoff = float(settings.HTTP_BACKOFF_BASE_S)

    last_exc: Exception | None = None
    for attempt in range(retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
                resp = await client.request(method, url, headers=headers, params=params, json=json, data=data)

            if resp.status_code in RETRYABLE_STATUS:
                raise httpx.HTTPStatusError("retryable_status", request=resp.request, response=resp)
        except (httpx.TimeoutException, httpx.NetworkError, httpx.HTTPStatusError) as e:
            last_exc = e
            _circuit_on_failure(circuit)
            if attempt >= retries:
                break
            await asyncio.sleep(min(5.0, backoff * (2**attempt)))
            continue

        _circuit_on_success(circuit)
        resp.raise_for_status()
        return resp

    assert last_exc is not None
    raise last_exc
