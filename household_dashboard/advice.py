"""Advice generator client.

The engine treats the generator as an opaque ``prompt -> text`` function.
:class:`GeminiAdviceGenerator` implements it against the Gemini
``generateContent`` REST endpoint and maps every failure onto a distinct
:class:`~household_dashboard.errors.AdviceError` subclass so the UI can tell
a missing key from a rejected key from a transient failure.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from . import config
from .errors import (
    AdviceConfigurationError,
    AdviceCredentialError,
    AdviceError,
    AdviceGenerationError,
    AdviceTimeoutError,
)

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

PRODUCT_PROMPT = """\
You are a data extraction assistant.
Analyse the following product URL and extract the most likely details: {url}

Tasks:
1. Extract the PRODUCT NAME (description) from the URL slug or text.
2. Estimate a typical current market PRICE (amount). If you cannot estimate it, return 0.
3. Pick the most suitable CATEGORY from this list:
{categories}

Return ONLY a JSON object in this format:
{{"description": "Product name", "amount": 100.00, "category": "Chosen category"}}
"""


class AdviceGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class GeminiAdviceGenerator:
    """Blocking Gemini client with an explicit timeout."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.timeout = config.ADVICE_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = client

    def generate(self, prompt: str, *, json_response: bool = False) -> str:
        if not self.api_key or not self.api_key.strip():
            raise AdviceConfigurationError("GEMINI_API_KEY is not set")

        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if json_response:
            body["generationConfig"] = {"responseMimeType": "application/json"}

        try:
            response = self._post(body)
        except httpx.TimeoutException as exc:
            logger.warning("Advice generator timed out after %ss", self.timeout)
            raise AdviceTimeoutError(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.warning("Advice generator transport error: %s", exc)
            raise AdviceGenerationError(f"HTTP error: {exc}") from exc

        if response.status_code != 200:
            raise _status_error(response)

        try:
            data = response.json()
        except ValueError as exc:
            raise AdviceGenerationError("Invalid JSON response") from exc

        text = _candidate_text(data)
        if not text.strip():
            raise AdviceGenerationError("The advice generator returned an empty response")
        return text

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        url = GEMINI_ENDPOINT.format(model=self.model)
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        if self._client is not None:
            return self._client.post(url, json=body, headers=headers, timeout=self.timeout)
        with httpx.Client() as client:
            return client.post(url, json=body, headers=headers, timeout=self.timeout)


def _status_error(response: httpx.Response) -> AdviceError:
    message = ''
    try:
        message = str(response.json().get('error', {}).get('message', ''))
    except (ValueError, AttributeError):
        message = response.text[:200]
    logger.warning("Advice generator returned status %s: %s", response.status_code, message)

    if response.status_code in (401, 403):
        return AdviceCredentialError(message or f"API returned status {response.status_code}")
    if response.status_code == 400 and re.search(r'api[ _-]?key', message, re.IGNORECASE):
        return AdviceCredentialError(message)
    return AdviceGenerationError(message or f"API returned status {response.status_code}")


def _candidate_text(data: Dict[str, Any]) -> str:
    candidates = data.get('candidates') or []
    if not candidates:
        return ''
    parts = (candidates[0].get('content') or {}).get('parts') or []
    return ''.join(str(part.get('text', '')) for part in parts)


def user_message(error: Exception) -> str:
    """Display text for a failed advice call."""
    if isinstance(error, AdviceError):
        return error.user_message
    return AdviceError.user_message


def extract_product_info(
    generator: AdviceGenerator,
    url: str,
    categories: Sequence[str],
) -> Dict[str, Any]:
    """Guess ``{description, amount, category}`` for a product URL.

    Returns an empty dict when the generator fails or answers with anything
    but a JSON object. A category outside ``categories`` is dropped.
    """
    prompt = PRODUCT_PROMPT.format(url=url, categories=", ".join(categories))
    try:
        if isinstance(generator, GeminiAdviceGenerator):
            text = generator.generate(prompt, json_response=True)
        else:
            text = generator.generate(prompt)
    except AdviceError as exc:
        logger.info("Product lookup failed for %s: %s", url, exc)
        return {}

    try:
        data = json.loads(_strip_code_fence(text))
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}

    result: Dict[str, Any] = {}
    description = data.get('description')
    if isinstance(description, str) and description.strip():
        result['description'] = description.strip()
    try:
        amount = float(data.get('amount') or 0)
    except (TypeError, ValueError):
        amount = 0.0
    if amount > 0:
        result['amount'] = amount
    if data.get('category') in categories:
        result['category'] = data['category']
    return result


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = re.match(r"^```(?:json)?\s*(.*?)\s*```$", stripped, re.DOTALL)
    return match.group(1) if match else stripped
