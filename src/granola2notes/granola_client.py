"""Client for the Granola document API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import FetchError
from .models import Document, Folder, TranscriptFragment
from .transcript import parse_fragments

log = logging.getLogger(__name__)

PAGE_SIZE = 100
_CLIENT_VERSION = "5.354.0"


class GranolaClient:
    """Thin wrapper over the three Granola endpoints a sync needs.

    Responses may be gzip or deflate encoded; httpx decodes both. No timeout
    is applied and nothing is retried: a failed request raises FetchError.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.granola.ai",
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
                "Accept": "*/*",
                "Accept-Encoding": "gzip, deflate",
                "User-Agent": f"Granola/{_CLIENT_VERSION}",
                "X-Client-Version": _CLIENT_VERSION,
            },
            timeout=None,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GranolaClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _post(self, endpoint: str, payload: dict) -> Any:
        log.debug("POST %s %s", endpoint, payload)
        try:
            response = self._client.post(endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"{endpoint} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request to {endpoint} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            log.debug("Response preview: %s", response.text[:200])
            raise FetchError(f"{endpoint} returned a non-JSON body") from e

    def fetch_documents(self, offset: int = 0, limit: int = PAGE_SIZE) -> list[dict] | None:
        """Fetch one page of raw documents; None when the response has no docs."""
        data = self._post(
            "/v2/get-documents",
            {"limit": limit, "offset": offset, "include_last_viewed_panel": True},
        )
        if not isinstance(data, dict) or not isinstance(data.get("docs"), list):
            log.error("Unexpected get-documents response format")
            return None
        return data["docs"]

    def fetch_all_documents(self, page_size: int = PAGE_SIZE) -> list[Document]:
        """Page through every document until a short page comes back."""
        documents: list[Document] = []
        offset = 0
        while True:
            page = self.fetch_documents(offset, page_size)
            if page is None:
                break
            for raw in page:
                if isinstance(raw, dict) and raw.get("id"):
                    documents.append(Document.from_api(raw))
                else:
                    log.warning("Skipping malformed document entry at offset %d", offset)
            if len(page) < page_size:
                break
            offset += page_size
            log.info("Fetched %d documents so far...", len(documents))
        return documents

    def fetch_folders(self) -> list[Folder] | None:
        data = self._post(
            "/v1/get-document-lists-metadata",
            {"include_document_ids": True, "include_only_joined_lists": False},
        )
        lists = data.get("lists") if isinstance(data, dict) else None
        if not isinstance(lists, dict):
            log.error("Unexpected folder metadata response format")
            return None
        return [
            Folder.from_api(folder_id, raw)
            for folder_id, raw in lists.items()
            if isinstance(raw, dict)
        ]

    def fetch_transcript(self, document_id: str) -> list[TranscriptFragment]:
        data = self._post("/v1/get-document-transcript", {"document_id": document_id})
        return parse_fragments(data)


def build_folder_map(folders: list[Folder]) -> dict[str, Folder]:
    """Map document id -> folder. A document listed twice keeps the last folder."""
    mapping: dict[str, Folder] = {}
    for folder in folders:
        for doc_id in folder.document_ids:
            mapping[doc_id] = folder
    return mapping
