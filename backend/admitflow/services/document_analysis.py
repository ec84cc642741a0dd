"""
External document analysis client.
Sends an uploaded insurance card, ID or referral to a remote AI provider and
returns the extracted text, a confidence score and structured candidate fields.
Supports mock mode for development when the provider is unavailable.
"""
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..core.config import settings
from ..core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class ProviderReply(BaseModel):
    """Shape of the provider's JSON answer. Anything else is a provider failure."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    extracted_text: Optional[str] = None
    confidence: float = 0.0
    fields: Dict[str, Any] = Field(default_factory=dict)
    document_type: Optional[str] = None


class DocumentAnalysis:
    """Result from the document analysis provider."""
    def __init__(
        self,
        extracted_text: str,
        confidence: float,
        fields: Dict[str, str],
        document_type: Optional[str] = None,
    ):
        self.extracted_text = extracted_text
        self.confidence = confidence
        self.fields = fields
        self.document_type = document_type

    def to_dict(self) -> dict:
        return {
            "extractedText": self.extracted_text,
            "confidence": self.confidence,
            "fields": dict(self.fields),
            "documentType": self.document_type,
        }


def _mock_response(file_name: str) -> DocumentAnalysis:
    """Realistic canned analysis for development use."""
    return DocumentAnalysis(
        extracted_text=(
            "MEDICATION LIST\n"
            "Allergies: Penicillin, Latex\n"
            "Current medications: Aspirin, Metformin"
        ),
        confidence=0.92,
        fields={"allergies": "Penicillin, Latex", "medications": "Aspirin, Metformin"},
        document_type="medical_record",
    )


class DocumentAnalysisClient:
    """HTTP client for the external document analysis provider."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url if base_url is not None else settings.DOCUMENT_ANALYSIS_API_URL
        self.api_key = api_key if api_key is not None else settings.DOCUMENT_ANALYSIS_API_KEY
        self.timeout = timeout if timeout is not None else settings.DOCUMENT_ANALYSIS_TIMEOUT
        self.mock_mode = mock_mode if mock_mode is not None else settings.DOCUMENT_ANALYSIS_MOCK_MODE
        self.transport = transport

    def analyze(self, data: bytes, file_name: str, file_type: str) -> DocumentAnalysis:
        """
        Send the document bytes to the provider.
        Raises ExternalServiceError when the provider fails or answers garbage.
        """
        if self.mock_mode:
            logger.debug("Using mock document analysis for %s", file_name)
            return _mock_response(file_name)
        if not self.base_url:
            raise ExternalServiceError("Document analysis provider is not configured")

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        files = {"document": (file_name, data, file_type)}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(f"{self.base_url}/analyze", files=files, headers=headers)
                resp.raise_for_status()
                reply = ProviderReply.model_validate(resp.json())
            return DocumentAnalysis(
                extracted_text=reply.extracted_text or "",
                confidence=reply.confidence,
                fields={k: v for k, v in reply.fields.items() if isinstance(v, str)},
                document_type=reply.document_type,
            )
        except (httpx.HTTPError, PydanticValidationError, ValueError) as exc:
            logger.warning("Document analysis provider failed for %s: %s", file_name, exc)
            raise ExternalServiceError(f"Document analysis failed: {exc}") from exc
