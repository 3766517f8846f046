from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


class CollectionLoadError(Exception):
    """Raised when a Postman collection export cannot be read or parsed."""


class DataFileError(Exception):
    """Raised when the request-body data file cannot be read or parsed."""


@dataclass(frozen=True)
class CollectionItem:
    name: str
    request: dict[str, Any]


@dataclass(frozen=True)
class Collection:
    name: str
    items: list[CollectionItem]
    variables: dict[str, str] = field(default_factory=dict)

    def item_names(self) -> list[str]:
        return [item.name for item in self.items]


@dataclass(frozen=True)
class RequestBodyEntry:
    name: str
    bodies: tuple[str, ...]

    def select(self, user_index: int) -> str:
        """Rotate through the candidate bodies by 1-based user index."""
        return self.bodies[(user_index - 1) % len(self.bodies)]


@dataclass(frozen=True)
class RequestBodySet:
    entries: tuple[RequestBodyEntry, ...] = ()

    def get(self, name: str) -> RequestBodyEntry | None:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.entries)


def _read_json(path: Path, error_cls: type[Exception]) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise error_cls(f"unable to read {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise error_cls(f"invalid JSON in {path}: {exc}") from exc


def _flatten_items(raw_items: list[Any], into: list[CollectionItem]) -> None:
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise CollectionLoadError(f"collection item must be an object, got {raw!r}")
        if isinstance(raw.get("item"), list):
            # Folder
            _flatten_items(raw["item"], into)
            continue
        request = raw.get("request")
        if isinstance(request, str):
            request = {"method": "GET", "url": request}
        if not isinstance(request, dict):
            raise CollectionLoadError(f"item {raw.get('name')!r} has no request")
        into.append(CollectionItem(name=str(raw.get("name", "")), request=request))


def parse_collection(document: Any) -> Collection:
    if not isinstance(document, dict):
        raise CollectionLoadError("collection export must be a JSON object")
    raw_items = document.get("item")
    if not isinstance(raw_items, list):
        raise CollectionLoadError("collection export has no 'item' list")

    items: list[CollectionItem] = []
    _flatten_items(raw_items, items)
    if not items:
        raise CollectionLoadError("collection contains no requests")

    variables = {
        str(var["key"]): "" if var.get("value") is None else str(var["value"])
        for var in document.get("variable") or []
        if isinstance(var, dict) and "key" in var and not var.get("disabled")
    }
    info = document.get("info") or {}
    return Collection(name=str(info.get("name", "")), items=items, variables=variables)


def load_collection(path: str | Path) -> Collection:
    return parse_collection(_read_json(Path(path), CollectionLoadError))


def _serialise_body(body: Any) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body)


def parse_request_bodies(document: Any) -> RequestBodySet:
    if isinstance(document, dict):
        raw_entries = [{"name": name, "bodies": bodies} for name, bodies in document.items()]
    elif isinstance(document, list):
        raw_entries = document
    else:
        raise DataFileError("data file must contain a JSON list or object")

    entries = []
    for raw in raw_entries:
        if not isinstance(raw, dict) or "name" not in raw:
            raise DataFileError(f"data entry must be an object with a name, got {raw!r}")
        bodies = raw.get("bodies")
        if not isinstance(bodies, list) or not bodies:
            raise DataFileError(f"data entry {raw['name']!r} needs a non-empty 'bodies' list")
        entries.append(
            RequestBodyEntry(
                name=str(raw["name"]),
                bodies=tuple(_serialise_body(body) for body in bodies),
            )
        )
    return RequestBodySet(entries=tuple(entries))


def load_request_bodies(path: str | Path | None) -> RequestBodySet:
    if not path:
        return RequestBodySet()
    return parse_request_bodies(_read_json(Path(path), DataFileError))


__all__ = [
    "Collection",
    "CollectionItem",
    "CollectionLoadError",
    "DataFileError",
    "RequestBodyEntry",
    "RequestBodySet",
    "load_collection",
    "load_request_bodies",
    "parse_collection",
    "parse_request_bodies",
]
