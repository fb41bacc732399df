"""
Finding Extractor
=================
Second pass of the producer: turns the scanner agent's free-form output
into `{"issues": [...]}` via an OpenAI-compatible chat-completions call
with JSON response format.

Failure Policy:
    Any transport error, non-2xx status, unparseable JSON or missing
    "issues" array raises ExtractionFailure. The scan cycle fails as a
    whole; nothing is inserted.
"""
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from autofix.core.config import (
    EXTRACTION_MODEL,
    EXTRACTION_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
)
from autofix.core.errors import ExtractionFailure
from autofix.llm.prompts import EXTRACTION_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def parse_issues_payload(content: str) -> List[Dict[str, Any]]:
    """Parse the model's JSON object and return its issues array."""
    cleaned = (content or "").strip()
    # Strip markdown code fences if present
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline != -1:
            cleaned = cleaned[first_newline + 1:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3].rstrip()

    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError) as e:
        raise ExtractionFailure(f"Extraction response is not valid JSON: {e}") from e

    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("issues"), list):
        return data["issues"]
    raise ExtractionFailure("Extraction response did not contain an issues array")


class FindingExtractor:
    """Sync client for the extraction model."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        base_url: str = OPENAI_BASE_URL,
        model: str = EXTRACTION_MODEL,
        timeout: float = EXTRACTION_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client

    def _build_payload(self, raw_output: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": raw_output},
            ],
            "response_format": {"type": "json_object"},
        }

    def _post(self, client: httpx.Client, payload: Dict[str, Any]) -> httpx.Response:
        return client.post(
            f"{self.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=self.timeout,
        )

    def extract(self, raw_output: str) -> List[Dict[str, Any]]:
        """Return the raw finding dicts found in `raw_output`."""
        if not raw_output or not raw_output.strip():
            logger.info("Scanner produced no output; nothing to extract")
            return []

        payload = self._build_payload(raw_output)
        try:
            if self._client is not None:
                response = self._post(self._client, payload)
            else:
                with httpx.Client() as client:
                    response = self._post(client, payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            logger.error("Extraction request failed: %s", e)
            raise ExtractionFailure(f"Failed to extract issues: {e}") from e
        except ValueError as e:
            raise ExtractionFailure(f"Extraction endpoint returned non-JSON body: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExtractionFailure("Extraction response had no message content") from e

        logger.info("Extracted payload: %s", content)
        return parse_issues_payload(content)
