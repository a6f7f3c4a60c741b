"""
Indexing service client

Async client for the Dify-compatible knowledge base API that makes uploaded
files searchable. Every call carries a bearer key scoped to one dataset.

Error mapping:
- Network errors and timeouts -> UpstreamUnavailable
- Any non-2xx response -> UpstreamUnavailable (with status_code)
"""

import json
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from kbportal.config import settings
from kbportal.core.exceptions import UpstreamUnavailable
from kbportal.utils.sanitize import get_safe_api_key_display, sanitize_string

logger = logging.getLogger(__name__)

SERVICE_NAME = "indexing"


class IndexingClient:
    """Thin async wrapper over the indexing service endpoints the portal consumes"""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        admin_api_key: str = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize indexing client.

        Args:
            base_url: API base URL (default: settings.INDEXING_API_URL)
            timeout: Request timeout in seconds (default: settings.INDEXING_TIMEOUT)
            admin_api_key: Key used for dataset creation (default: settings.INDEXING_ADMIN_API_KEY)
            http_client: Shared httpx.AsyncClient (created if omitted)
        """
        self.base_url = (base_url or settings.INDEXING_API_URL).rstrip("/")
        self.timeout = timeout or settings.INDEXING_TIMEOUT
        self.admin_api_key = admin_api_key if admin_api_key is not None else settings.INDEXING_ADMIN_API_KEY
        self._http_client = http_client or httpx.AsyncClient(timeout=self.timeout)
        self._metadata_fields: Dict[Tuple[str, str], str] = {}

    def _get_headers(self, api_key: str, include_content_type: bool = True) -> Dict[str, str]:
        """
        Authentication headers for one dataset-scoped call

        Content-Type is left out for multipart uploads so httpx can set the boundary.
        """
        headers = {"Authorization": f"Bearer {api_key}"}
        if include_content_type:
            headers["Content-Type"] = "application/json"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        api_key: str,
        include_content_type: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._http_client.request(
                method,
                url,
                headers=self._get_headers(api_key, include_content_type),
                timeout=self.timeout,
                **kwargs,
            )
        except httpx.HTTPError as e:
            logger.error(f"Indexing service unreachable ({method} {path}): {e}")
            raise UpstreamUnavailable(
                f"Indexing service unreachable: {e.__class__.__name__}",
                service=SERVICE_NAME,
            ) from e

        if not response.is_success:
            body = sanitize_string(response.text[:500])
            logger.error(
                f"Indexing service error {response.status_code} on {method} {path} "
                f"(key {get_safe_api_key_display(api_key)}): {body}"
            )
            raise UpstreamUnavailable(
                f"Indexing service returned HTTP {response.status_code}",
                service=SERVICE_NAME,
                status_code=response.status_code,
            )

        return response

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                "Indexing service returned a malformed response",
                service=SERVICE_NAME,
                status_code=response.status_code,
            ) from e

    async def create_document(
        self,
        dataset_handle: str,
        api_key: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        technique: str = "high_quality",
    ) -> str:
        """
        Submit a file for indexing

        Returns:
            str: Document id assigned by the indexing service
        """
        data = {
            "indexing_technique": technique,
            "process_rule": {"mode": "automatic"},
        }
        files = {"file": (filename, content, content_type or "application/octet-stream")}

        response = await self._request(
            "POST",
            f"/datasets/{dataset_handle}/document/create-by-file",
            api_key,
            include_content_type=False,
            data={"data": json.dumps(data)},
            files=files,
        )
        payload = self._json(response)
        document_id = (payload.get("document") or {}).get("id")

        if not document_id:
            raise UpstreamUnavailable(
                "Indexing service response did not include a document id",
                service=SERVICE_NAME,
                status_code=response.status_code,
            )

        logger.info(f"Indexed {filename} into dataset {dataset_handle} as {document_id}")
        return document_id

    async def get_metadata_field_id(self, dataset_handle: str, api_key: str, name: str) -> str:
        """Id of a named string metadata field, creating the field on first use"""
        cache_key = (dataset_handle, name)
        if cache_key in self._metadata_fields:
            return self._metadata_fields[cache_key]

        response = await self._request("GET", f"/datasets/{dataset_handle}/metadata", api_key)
        for field in self._json(response).get("doc_metadata") or []:
            if field.get("name") == name:
                self._metadata_fields[cache_key] = field["id"]
                return field["id"]

        response = await self._request(
            "POST",
            f"/datasets/{dataset_handle}/metadata",
            api_key,
            json={"type": "string", "name": name},
        )
        field_id = self._json(response).get("id")
        if not field_id:
            raise UpstreamUnavailable(
                f"Indexing service did not return an id for metadata field '{name}'",
                service=SERVICE_NAME,
            )

        logger.info(f"Created metadata field '{name}' in dataset {dataset_handle}")
        self._metadata_fields[cache_key] = field_id
        return field_id

    async def attach_metadata(
        self,
        dataset_handle: str,
        api_key: str,
        document_id: str,
        key: str,
        value: str,
    ) -> None:
        """Attach one named metadata value to an indexed document"""
        field_id = await self.get_metadata_field_id(dataset_handle, api_key, key)
        await self._request(
            "POST",
            f"/datasets/{dataset_handle}/documents/metadata",
            api_key,
            json={
                "operation_data": [
                    {
                        "document_id": document_id,
                        "metadata_list": [{"id": field_id, "name": key, "value": value}],
                    }
                ]
            },
        )

    async def list_documents(
        self,
        dataset_handle: str,
        api_key: str,
        page: int = 1,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """One page of documents in a dataset"""
        response = await self._request(
            "GET",
            f"/datasets/{dataset_handle}/documents",
            api_key,
            params={"page": page, "limit": limit},
        )
        return self._json(response)

    async def count_documents(self, dataset_handle: str, api_key: str) -> int:
        """Live document count for a dataset"""
        payload = await self.list_documents(dataset_handle, api_key, page=1, limit=1)
        try:
            total = payload.get("total")
            if total is None:
                total = len(payload.get("data") or [])
            return int(total)
        except (AttributeError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(
                "Indexing service returned an unreadable document count",
                service=SERVICE_NAME,
            ) from e

    async def delete_document(self, dataset_handle: str, api_key: str, document_id: str) -> None:
        await self._request(
            "DELETE",
            f"/datasets/{dataset_handle}/documents/{document_id}",
            api_key,
        )
        logger.info(f"Deleted document {document_id} from dataset {dataset_handle}")

    async def verify_credentials(self, dataset_handle: str, api_key: str) -> bool:
        """
        Check that a dataset handle / API key pair is usable

        Returns:
            bool: False when the service rejects the pair (401, 403, 404)

        Raises:
            UpstreamUnavailable: service unreachable or failing for another reason
        """
        try:
            await self._request("GET", f"/datasets/{dataset_handle}", api_key)
        except UpstreamUnavailable as e:
            if e.status_code in (401, 403, 404):
                return False
            raise
        return True

    async def create_dataset(self, name: str) -> Dict[str, Any]:
        """Create a new knowledge base with the administrator key"""
        if not self.admin_api_key:
            raise UpstreamUnavailable(
                "INDEXING_ADMIN_API_KEY is not configured",
                service=SERVICE_NAME,
            )

        response = await self._request(
            "POST",
            "/datasets",
            self.admin_api_key,
            json={"name": name, "permission": "only_me"},
        )
        dataset = self._json(response)
        logger.info(f"Created dataset {dataset.get('id')} ({name})")
        return dataset

    async def aclose(self) -> None:
        """Close the HTTP client"""
        await self._http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False
