"""Client for the text-generation service used to forecast struggle areas.

The service is an OpenAI-compatible chat-completions endpoint. The client
builds the prediction prompt, posts it with bounded retries, and validates the
JSON array in the reply. Transport and HTTP failures raise
:class:`StrugglePredictionServiceError`; a reply that does not match the
expected shape yields an empty list.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError

from env_validation import StrugglePredictionConfig
from schemas import AssessmentRecord, StrugglePrediction, Topic, parse_json_array_safe

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an adaptive learning specialist. Reply with a JSON array only, "
    "without Markdown fences or commentary."
)

_PREDICTION_LIST = TypeAdapter(List[StrugglePrediction])


class StrugglePredictionServiceError(RuntimeError):
    """Raised when the text-generation service cannot be reached or rejects the request."""


def _format_score(score: Optional[float]) -> str:
    if score is None:
        return "N/A"
    return str(int(score)) if float(score).is_integer() else f"{score:g}"


def build_struggle_prompt(
    history: Sequence[AssessmentRecord],
    upcoming_topics: Sequence[Topic],
    max_predictions: int = 2,
) -> str:
    """Compose the natural-language prediction prompt."""

    assessment_summary = "\n".join(
        f"Topic: {record.topic}, Score: {_format_score(record.score)}%, "
        f"Date: {record.formatted_date()}"
        for record in history
    )
    topic_summary = "\n".join(
        f"Topic ID: {topic.id}, Title: {topic.title}, "
        f"Key Concepts: {', '.join(topic.key_concepts) if topic.key_concepts else 'N/A'}"
        for topic in upcoming_topics
    )

    return f"""As an adaptive learning specialist, predict which upcoming topics a student might struggle with based on their past performance.

STUDENT ASSESSMENT HISTORY:
{assessment_summary}

UPCOMING TOPICS:
{topic_summary}

Based on the student's performance patterns, predict which of the upcoming topics they might struggle with.
For each predicted struggle area, explain your reasoning and suggest preparation activities.

Return your predictions as a JSON array with this structure:
[
  {{
    "topicId": "topic-id",
    "title": "Topic Title",
    "confidence": 0.85,
    "reason": "Explanation of why you predict struggle in this area",
    "recommendedPreparation": ["specific preparation activity 1", "activity 2"]
  }}
]

"confidence" must be a number between 0 and 1.
Return at most {max_predictions} predictions: the most likely struggle areas."""


class StrugglePredictionClient:
    """Async client for struggle predictions."""

    def __init__(
        self,
        config: Optional[StrugglePredictionConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_predictions: int = 2,
    ) -> None:
        self.config = config or StrugglePredictionConfig.from_env()
        self._transport = transport
        self.max_predictions = max_predictions

    @property
    def enabled(self) -> bool:
        return self.config.enabled and bool(self.config.api_url)

    @property
    def time_budget(self) -> float:
        """Upper bound in seconds for one :meth:`predict` call, retries included."""

        attempts = self.config.max_retries + 1
        backoff = sum(self.config.retry_backoff * (2 ** idx) for idx in range(attempts - 1))
        return self.config.timeout * attempts + backoff

    # ------------------------------------------------------------------
    async def predict(
        self,
        history: Sequence[AssessmentRecord],
        upcoming_topics: Sequence[Topic],
    ) -> List[StrugglePrediction]:
        if not self.enabled:
            logger.debug("Struggle prediction service disabled; skipping request")
            return []

        prompt = build_struggle_prompt(history, upcoming_topics, self.max_predictions)
        payload = await self._post_with_retries(self._request_payload(prompt))

        try:
            predictions = self._parse_predictions(payload)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("Discarding malformed struggle prediction response: %s", exc)
            return []
        return [prediction.model_copy(update={"source": "model"}) for prediction in predictions]

    # ------------------------------------------------------------------
    def _request_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.config.model_id,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        headers.update({str(k): str(v) for k, v in self.config.headers.items()})
        return headers

    async def _post_with_retries(self, payload: Dict[str, Any]) -> Any:
        model_id = self.config.model_id
        last_exception: Optional[Exception] = None
        attempt_count = self.config.max_retries + 1

        for attempt_index in range(attempt_count):
            attempt_number = attempt_index + 1
            start_time = perf_counter()
            client = httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport)
            try:
                response = await client.post(
                    self.config.api_url,
                    json=payload,
                    headers=self._headers(),
                )
                response.raise_for_status()
                data = response.json()
                latency_ms = int((perf_counter() - start_time) * 1000)
                logger.info(
                    "Struggle prediction received in %d ms using model %s (attempt %d/%d)",
                    latency_ms,
                    model_id,
                    attempt_number,
                    attempt_count,
                )
                return data
            except httpx.HTTPStatusError as exc:
                latency_ms = int((perf_counter() - start_time) * 1000)
                logger.warning(
                    "Struggle prediction HTTP error %s for model %s (attempt %d/%d, %d ms): %s",
                    exc.response.status_code,
                    model_id,
                    attempt_number,
                    attempt_count,
                    latency_ms,
                    exc,
                )
                last_exception = exc
            except (httpx.TimeoutException, httpx.RequestError, ValueError) as exc:
                latency_ms = int((perf_counter() - start_time) * 1000)
                logger.warning(
                    "Struggle prediction request failed for model %s (attempt %d/%d, %d ms): %s",
                    model_id,
                    attempt_number,
                    attempt_count,
                    latency_ms,
                    exc,
                )
                last_exception = exc
            finally:
                await client.aclose()

            if attempt_index < attempt_count - 1:
                await asyncio.sleep(self.config.retry_backoff * (2 ** attempt_index))

        raise StrugglePredictionServiceError(
            f"Struggle prediction failed after {attempt_count} attempts for model {model_id}."
        ) from last_exception

    def _parse_predictions(self, payload: Any) -> List[StrugglePrediction]:
        if isinstance(payload, list):
            return _PREDICTION_LIST.validate_python(payload)

        text = _extract_text(payload)
        if text is None:
            raise ValueError("Struggle prediction response contains no text content")
        return parse_json_array_safe(text, StrugglePrediction)


def _first_item(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _extract_text(payload: Any) -> Optional[str]:
    """Pull the generated text out of the response shapes the service may use."""

    if not isinstance(payload, dict):
        return None

    choice = _first_item(payload.get("choices"))
    candidate = _first_item(payload.get("candidates"))
    message = choice.get("message") if isinstance(choice, dict) else None
    gemini_content = candidate.get("content") if isinstance(candidate, dict) else None
    gemini_part = (
        _first_item(gemini_content.get("parts")) if isinstance(gemini_content, dict) else None
    )

    text_candidates = [
        message.get("content") if isinstance(message, dict) else None,
        choice.get("text") if isinstance(choice, dict) else None,
        gemini_part.get("text") if isinstance(gemini_part, dict) else None,
        payload.get("content"),
        payload.get("text"),
    ]
    return next((t for t in text_candidates if isinstance(t, str) and t.strip()), None)


__all__ = [
    "StrugglePredictionClient",
    "StrugglePredictionServiceError",
    "build_struggle_prompt",
]
