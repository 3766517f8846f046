from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Mapping

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .collection import Collection, CollectionItem

LOGGER = logging.getLogger("postman_load.runner")

REQUEST_TIMEOUT_S_DEFAULT = 30.0

_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

urllib3.disable_warnings(InsecureRequestWarning)


class CollectionRunError(Exception):
    """Raised when a collection run cannot complete."""


@dataclass(frozen=True)
class ExecutionEntry:
    item_name: str
    status_code: int
    response_time_ms: int


@dataclass
class RunSummary:
    executions: list[ExecutionEntry] = field(default_factory=list)


def substitute(value: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as-is."""

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        return variables.get(key, match.group(0))

    return _PLACEHOLDER.sub(replace, value)


def _enabled_pairs(pairs: Iterable[Any] | None, variables: Mapping[str, str]) -> dict[str, str]:
    result: dict[str, str] = {}
    for pair in pairs or []:
        if not isinstance(pair, dict) or pair.get("disabled") or "key" not in pair:
            continue
        value = "" if pair.get("value") is None else str(pair["value"])
        result[substitute(str(pair["key"]), variables)] = substitute(value, variables)
    return result


def _resolve_url(url: Any, variables: Mapping[str, str]) -> str:
    if isinstance(url, dict):
        raw = url.get("raw")
        if raw is None:
            host = url.get("host") or []
            path = url.get("path") or []
            host = ".".join(host) if isinstance(host, list) else str(host)
            path = "/".join(path) if isinstance(path, list) else str(path)
            protocol = url.get("protocol") or "http"
            raw = f"{protocol}://{host}/{path}"
        url = raw
    if not isinstance(url, str) or not url:
        raise CollectionRunError("request has no URL")
    return substitute(url, variables)


def _build_body(body: Any, variables: Mapping[str, str]) -> str | dict[str, str] | None:
    if not isinstance(body, dict):
        return None
    mode = body.get("mode")
    if mode == "raw":
        raw = body.get("raw")
        return substitute(raw, variables) if raw else None
    if mode in {"urlencoded", "formdata"}:
        return _enabled_pairs(body.get(mode), variables)
    return None


class CollectionRunner:
    """Sends every request of a collection in order and reports their timings."""

    def __init__(
        self,
        timeout_s: float = REQUEST_TIMEOUT_S_DEFAULT,
        insecure: bool = True,
        session_factory=requests.Session,
    ) -> None:
        self._timeout_s = timeout_s
        self._insecure = insecure
        self._session_factory = session_factory

    def run(
        self,
        collection: Collection,
        environment: list[tuple[str, str]] | None = None,
    ) -> RunSummary:
        variables = dict(collection.variables)
        variables.update(environment or [])

        summary = RunSummary()
        with self._session_factory() as session:
            for item in collection.items:
                summary.executions.append(self._send(session, item, variables))
        return summary

    def _send(
        self,
        session: requests.Session,
        item: CollectionItem,
        variables: Mapping[str, str],
    ) -> ExecutionEntry:
        request = item.request
        method = str(request.get("method") or "GET").upper()
        url = _resolve_url(request.get("url"), variables)
        headers = _enabled_pairs(request.get("header"), variables)
        data = _build_body(request.get("body"), variables)

        try:
            response = session.request(
                method,
                url,
                headers=headers,
                data=data.encode("utf-8") if isinstance(data, str) else data,
                timeout=self._timeout_s,
                verify=not self._insecure,
            )
        except requests.RequestException as exc:
            raise CollectionRunError(f"{item.name!r} {method} {url} failed: {exc}") from exc

        elapsed_ms = int(response.elapsed / timedelta(milliseconds=1))
        LOGGER.debug("%s %s -> %d in %dms", method, url, response.status_code, elapsed_ms)
        return ExecutionEntry(
            item_name=item.name,
            status_code=response.status_code,
            response_time_ms=elapsed_ms,
        )


__all__ = [
    "CollectionRunError",
    "CollectionRunner",
    "ExecutionEntry",
    "RunSummary",
    "substitute",
]
