"""
Step 6: Language-model event classification.

Sends page text (truncated) to an OpenAI chat model and parses the
structured date-event reply. Pages are processed in batches with bounded
concurrency. Any failure for one page (client error, malformed JSON)
yields zero events for that page and never affects the rest of the batch.
"""
from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from pydantic import ValidationError

from packages.shared.models import (
    DateSource,
    EventType,
    LLMEvent,
    PageClassification,
    PageResult,
)
from apps.worker.steps.step05_date_of_service import ROUTING_DATED, needs_llm_review

logger = logging.getLogger(__name__)

LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_BATCH_SIZE = max(1, int(os.getenv("LLM_BATCH_SIZE", "5")))
LLM_MAX_CHARS = int(os.getenv("LLM_MAX_CHARS", "3000"))
LLM_ROUTING = os.getenv("LLM_ROUTING", ROUTING_DATED).strip().lower()

_SYSTEM_PROMPT = "You extract clinical date-event pairs from medical records and reply with JSON only."

_PROMPT_TEMPLATE = """You are analyzing a page from medical records. Extract ALL clinically relevant date-event pairs.

For each date found, provide:
1. The date in ISO format (YYYY-MM-DD)
2. A brief summary of what happened (<15 words)
3. Event type: visit, lab, imaging, procedure, medication, note, or other
4. Whether this is the PRIMARY date (when the document was created/service rendered)
5. Your confidence level (0.0 to 1.0)

IGNORE these dates:
- Patient date of birth (DOB)
- Fax/transmission timestamps
- "Page X of Y" patterns
- Document print dates (unless it's the only date)
- "Revised" or "Updated" dates that refer to document updates, not clinical events

PAGE TEXT:
---
{text}
---

RESPOND WITH ONLY THIS JSON (no markdown, no explanation):
{{
  "events": [
    {{
      "date": "2023-01-15",
      "summary": "ER visit for chest pain",
      "type": "visit",
      "isPrimary": true,
      "confidence": 0.95
    }}
  ],
  "documentType": "Emergency Department Note"
}}

If no relevant dates are found, return: {{"events": [], "documentType": null}}"""


@dataclass
class PageToClassify:
    page_number: int
    text: str
    page_id: str | None = None


def build_prompt(text: str, max_chars: int = LLM_MAX_CHARS) -> str:
    return _PROMPT_TEMPLATE.format(text=(text or "")[:max_chars])


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _coerce_event(raw: Any) -> LLMEvent | None:
    """Build one event from the model's dict; None when unusable."""
    if not isinstance(raw, dict):
        return None
    try:
        event_date = date.fromisoformat(str(raw.get("date", "")).strip()[:10])
    except ValueError:
        return None

    try:
        event_type = EventType(str(raw.get("type", "other")).strip().lower())
    except ValueError:
        event_type = EventType.OTHER

    confidence = raw.get("confidence", 0.5)
    try:
        confidence = min(1.0, max(0.0, float(confidence)))
    except (TypeError, ValueError):
        confidence = 0.5

    summary = str(raw.get("summary") or "").strip()[:500]
    raw_text = raw.get("rawDateText")
    try:
        return LLMEvent(
            date=event_date,
            summary=summary,
            type=event_type,
            is_primary=bool(raw.get("isPrimary", False)),
            confidence=confidence,
            raw_date_text=str(raw_text) if raw_text else None,
        )
    except ValidationError:
        return None


def parse_llm_response(content: str | None) -> tuple[list[LLMEvent], str | None]:
    """
    Parse the model reply into (events, document_type).
    Raises ValueError when the reply is not a JSON object.
    """
    if not content:
        raise ValueError("empty response")
    parsed = json.loads(_strip_code_fence(content))
    if not isinstance(parsed, dict):
        raise ValueError("response is not a JSON object")

    raw_events = parsed.get("events") or []
    if not isinstance(raw_events, list):
        raise ValueError("'events' is not a list")

    events: list[LLMEvent] = []
    for raw in raw_events:
        event = _coerce_event(raw)
        if event is None:
            logger.debug(f"Dropped unusable LLM event: {raw!r}")
            continue
        events.append(event)

    document_type = parsed.get("documentType")
    if document_type is not None:
        document_type = str(document_type).strip() or None
    return events, document_type


def get_client():
    """Default OpenAI client (reads OPENAI_API_KEY)."""
    from openai import OpenAI

    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY environment variable not set.")
    return OpenAI(api_key=api_key)


def classify_page(client, page: PageToClassify, model: str = LLM_MODEL) -> PageClassification:
    """Classify one page. Never raises; failures give zero events."""
    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(page.text)},
            ],
            temperature=0,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        events, document_type = parse_llm_response(content)
    except Exception as exc:
        logger.error(f"LLM classification failed for page {page.page_number}: {exc}")
        return PageClassification(
            page_number=page.page_number,
            page_id=page.page_id,
            failed=True,
        )

    return PageClassification(
        page_number=page.page_number,
        page_id=page.page_id,
        events=events,
        document_type=document_type,
    )


def classify_pages(
    pages: list[PageToClassify],
    client=None,
    model: str = LLM_MODEL,
    batch_size: int = LLM_BATCH_SIZE,
) -> list[PageClassification]:
    """
    Classify pages in batches of `batch_size`, each batch run concurrently.
    Results come back in input order.
    """
    if not pages:
        return []
    if client is None:
        client = get_client()

    results: list[PageClassification] = []
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in range(0, len(pages), batch_size):
            batch = pages[start:start + batch_size]
            logger.info(
                f"LLM batch {start // batch_size + 1}: pages "
                f"{batch[0].page_number}-{batch[-1].page_number}"
            )
            results.extend(executor.map(lambda p: classify_page(client, p, model), batch))

    failed = sum(1 for r in results if r.failed)
    if failed:
        logger.warning(f"LLM classification failed for {failed}/{len(results)} pages")
    return results


def select_pages_for_llm(
    results: Iterable[PageResult],
    mode: str = LLM_ROUTING,
) -> list[PageResult]:
    return [r for r in results if needs_llm_review(r, mode)]


def apply_llm_classifications(
    results: list[PageResult],
    classifications: Iterable[PageClassification],
) -> list[PageResult]:
    """
    Merge language-model output into page results.

    A page with a primary event takes that event's date as its date of
    service (source 'llm'). The document type is copied whenever reported.
    """
    by_page = {c.page_number: c for c in classifications if not c.failed}
    merged: list[PageResult] = []
    for result in results:
        classification = by_page.get(result.page_number)
        if classification is None:
            merged.append(result)
            continue

        update: dict[str, Any] = {}
        if classification.document_type:
            update["document_type"] = classification.document_type
        primary = classification.primary_event()
        if primary is not None:
            update["date_of_service"] = primary.date
            update["date_source"] = DateSource.LLM
            update["inherited_from"] = None
        merged.append(result.model_copy(update=update) if update else result)
    return merged
