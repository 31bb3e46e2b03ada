"""Client for the layout analysis collaborator (Azure Document Intelligence REST API)."""

import asyncio
import base64
from typing import Any, Dict, List, Optional

import httpx

from fishregs.core.exceptions import APIClientError, DocumentAnalysisError
from fishregs.services.document.models import (
    DocumentAnalysisResult,
    ExtractedField,
    ExtractedTable,
    TableCell,
)
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentAnalysisService:
    """Submits a document unit for layout analysis and waits for the result.

    The service is asynchronous on the remote side: the analyze call returns an
    ``Operation-Location`` that is polled until the operation succeeds or fails.

    Attributes:
        endpoint: Resource endpoint, e.g. ``https://<name>.cognitiveservices.azure.com``
        api_key: Subscription key
        model_id: Analysis model, ``prebuilt-layout`` by default
        api_version: REST API version
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model_id: str = "prebuilt-layout",
        api_version: str = "2024-11-30",
        timeout: int = 120,
        poll_interval: float = 2.0,
        max_polls: int = 60,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.model_id = model_id
        self.api_version = api_version
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_polls = max_polls

        LOGGER.info(
            "Initialized document analysis service",
            extra={"model": self.model_id, "api_version": self.api_version},
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Ocp-Apim-Subscription-Key": self.api_key}

    def _analyze_url(self, model_id: str) -> str:
        return (
            f"{self.endpoint}/documentintelligence/documentModels/{model_id}:analyze"
            f"?api-version={self.api_version}&features=keyValuePairs"
        )

    async def analyze_document(
        self,
        content: Optional[bytes] = None,
        document_url: Optional[str] = None,
        model_id: Optional[str] = None,
        chunk_number: int = 0,
        page_start: int = 1,
        page_end: int = 1,
    ) -> DocumentAnalysisResult:
        """Analyze inline bytes or a referenced URL.

        Args:
            content: Document bytes
            document_url: Public URL of the document, used when content is None
            model_id: Override of the configured model
            chunk_number: Unit number recorded on the result
            page_start: First page of the unit in the source document
            page_end: Last page of the unit in the source document

        Returns:
            Successful analysis result

        Raises:
            DocumentAnalysisError: If the service rejects or fails the unit
        """
        if content is None and not document_url:
            raise DocumentAnalysisError("Either content or document_url is required")

        model = model_id or self.model_id
        body = (
            {"base64Source": base64.b64encode(content).decode("ascii")}
            if content is not None
            else {"urlSource": document_url}
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self._analyze_url(model), headers=self._headers, json=body)
                response.raise_for_status()

                operation_url = response.headers.get("operation-location")
                if not operation_url:
                    raise DocumentAnalysisError("Analysis response did not include an Operation-Location")

                payload = await self._poll_operation(client, operation_url)

        except httpx.TimeoutException as e:
            LOGGER.error("Document analysis timed out", exc_info=True, extra={"chunk_number": chunk_number})
            raise DocumentAnalysisError(f"Document analysis timed out after {self.timeout}s", original_error=e)
        except httpx.HTTPError as e:
            LOGGER.error("Document analysis request failed", exc_info=True, extra={"chunk_number": chunk_number})
            raise DocumentAnalysisError(
                f"Failed to communicate with document analysis service: {e}",
                original_error=APIClientError(str(e), original_error=e),
            )

        result = self._to_result(payload.get("analyzeResult") or {}, model)
        result.chunk_number = chunk_number
        result.page_start = page_start
        result.page_end = page_end

        LOGGER.info(
            "Document analysis completed",
            extra={
                "chunk_number": chunk_number,
                "fields": len(result.extracted_fields),
                "tables": len(result.tables),
            },
        )
        return result

    async def _poll_operation(self, client: httpx.AsyncClient, operation_url: str) -> Dict[str, Any]:
        for _ in range(self.max_polls):
            response = await client.get(operation_url, headers=self._headers)
            response.raise_for_status()
            payload = response.json()
            status = (payload.get("status") or "").lower()

            if status == "succeeded":
                return payload
            if status == "failed":
                error = payload.get("error") or {}
                raise DocumentAnalysisError(f"Document analysis failed: {error.get('message', 'unknown error')}")

            await asyncio.sleep(self.poll_interval)

        raise DocumentAnalysisError(f"Document analysis did not finish after {self.max_polls} polls")

    @staticmethod
    def _polygon(regions: Optional[List[Dict[str, Any]]]) -> Optional[List[float]]:
        if regions:
            return regions[0].get("polygon")
        return None

    def _to_result(self, analyze_result: Dict[str, Any], model_id: str) -> DocumentAnalysisResult:
        fields: Dict[str, ExtractedField] = {}
        confidence_scores: Dict[str, float] = {}

        for index, pair in enumerate(analyze_result.get("keyValuePairs") or []):
            key = ((pair.get("key") or {}).get("content") or f"Field{index}").strip()
            value = ((pair.get("value") or {}).get("content") or "").strip()
            confidence = float(pair.get("confidence") or 0.0)
            fields[key] = ExtractedField(
                name=key,
                value=value,
                confidence=confidence,
                bounding_box=self._polygon((pair.get("key") or {}).get("boundingRegions")),
            )
            confidence_scores[key] = confidence

        tables = []
        for table in analyze_result.get("tables") or []:
            regions = table.get("boundingRegions") or []
            tables.append(
                ExtractedTable(
                    row_count=table.get("rowCount", 0),
                    column_count=table.get("columnCount", 0),
                    page_number=regions[0].get("pageNumber") if regions else None,
                    cells=[
                        TableCell(
                            row_index=cell.get("rowIndex", 0),
                            column_index=cell.get("columnIndex", 0),
                            content=cell.get("content", ""),
                            confidence=cell.get("confidence"),
                            bounding_box=self._polygon(cell.get("boundingRegions")),
                        )
                        for cell in table.get("cells") or []
                    ],
                )
            )

        if confidence_scores:
            confidence_scores["Overall"] = sum(confidence_scores.values()) / len(confidence_scores)

        documents = analyze_result.get("documents") or []
        return DocumentAnalysisResult(
            is_success=True,
            document_type=(documents[0].get("docType", "") if documents else ""),
            model_id=analyze_result.get("modelId", model_id),
            content=analyze_result.get("content", ""),
            extracted_fields=fields,
            tables=tables,
            confidence_scores=confidence_scores,
        )
