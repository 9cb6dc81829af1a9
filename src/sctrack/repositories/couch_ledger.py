from __future__ import annotations

import json
import logging
from typing import Iterator, Optional
from urllib.parse import quote

import requests

from sctrack.domain import codec
from sctrack.domain.errors import StorageError

log = logging.getLogger("sctrack.ledger")

_META_FIELDS = ("_id", "_rev", "_attachments", "_deleted")


def _strip_meta(doc: dict) -> dict:
    return {k: v for k, v in doc.items() if k not in _META_FIELDS}


class CouchLedger:
    """World state kept as JSON documents in a CouchDB database.

    Selector queries are delegated to the database's ``_find`` endpoint, which
    is what a replicated ledger uses as its rich-query state store.
    """

    def __init__(
        self,
        base_url: str,
        database: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
        page_size: int = 1000,
    ):
        self.base_url = base_url.rstrip("/")
        self.database = database
        self.session = session or requests.Session()
        self.timeout = timeout
        self.page_size = page_size

    def _url(self, *parts: str) -> str:
        path = "/".join(quote(p, safe="") for p in (self.database, *parts))
        return f"{self.base_url}/{path}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            log.error("couch_request_failed method=%s url=%s error=%s", method, url, exc)
            raise StorageError(f"Ledger request failed: {exc}") from exc

    @staticmethod
    def _expect(resp: requests.Response, *statuses: int) -> None:
        if resp.status_code not in statuses:
            raise StorageError(f"Ledger responded {resp.status_code}: {resp.text[:200]}")

    def init_db(self) -> None:
        resp = self._request("PUT", self._url())
        self._expect(resp, 201, 202, 412)
        resp = self._request(
            "POST",
            self._url("_index"),
            json={"index": {"fields": ["timestamp"]}, "name": "timestamp-index", "type": "json"},
        )
        self._expect(resp, 200)

    # ---------- Accessor contract ----------
    def get(self, key: str) -> Optional[bytes]:
        resp = self._request("GET", self._url(key))
        if resp.status_code == 404:
            return None
        self._expect(resp, 200)
        return codec.encode(_strip_meta(resp.json()))

    def _current_rev(self, key: str) -> Optional[str]:
        resp = self._request("HEAD", self._url(key))
        if resp.status_code == 404:
            return None
        self._expect(resp, 200)
        return resp.headers.get("ETag", "").strip('"') or None

    def put(self, key: str, value: bytes) -> None:
        if not key:
            raise StorageError("Ledger keys must be non-empty.")
        try:
            doc = codec.decode_object(value)
        except (UnicodeDecodeError, ValueError) as exc:
            raise StorageError(f"Values stored in CouchDB must be JSON objects: {exc}") from exc

        rev = self._current_rev(key)
        if rev:
            doc["_rev"] = rev
        resp = self._request("PUT", self._url(key), json=doc)
        self._expect(resp, 201, 202)

    def range_scan(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]:
        params = {
            "startkey": json.dumps(start_key),
            "endkey": json.dumps(end_key),
            "inclusive_end": "false",
            "include_docs": "true",
        }
        resp = self._request("GET", self._url("_all_docs"), params=params)
        self._expect(resp, 200)
        rows = resp.json().get("rows", [])
        return iter([(row["id"], codec.encode(_strip_meta(row["doc"]))) for row in rows if row.get("doc")])

    def query(self, selector_expression: str) -> Iterator[tuple[str, bytes]]:
        try:
            body = json.loads(selector_expression)
        except ValueError as exc:
            raise StorageError(f"Invalid selector query: {exc}") from exc
        if not isinstance(body, dict):
            raise StorageError("Invalid selector query: expected an object")

        if "limit" in body:
            page, _bookmark = self._find_page(body)
            return iter(page)

        # _find pages implicitly; walk bookmarks until a short page.
        results: list[tuple[str, bytes]] = []
        bookmark = None
        while True:
            page_body = dict(body, limit=self.page_size)
            if bookmark:
                page_body["bookmark"] = bookmark
            page, bookmark = self._find_page(page_body)
            results.extend(page)
            if len(page) < self.page_size or not bookmark:
                break
        return iter(results)

    def _find_page(self, body: dict) -> tuple[list[tuple[str, bytes]], Optional[str]]:
        resp = self._request("POST", self._url("_find"), json=body)
        self._expect(resp, 200)
        payload = resp.json()
        docs = [(d["_id"], codec.encode(_strip_meta(d))) for d in payload.get("docs", [])]
        return docs, payload.get("bookmark")
