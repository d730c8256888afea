"""Turn the raw source page into structured records with the Anthropic API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import anthropic

from .errors import ExtractionError
from .logging import get_logger
from .models import PARTIES, POSITION_PATTERN, PersonRecord, RegionRecord
from .numeral import parse_amount, parse_year
from .regions import canonical_state

logger = get_logger(__name__)

# Greedy: first "{" through last "}" in the reply.
JSON_SPAN_PATTERN = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """You are extracting data from the trackAIPAC website's congress page. \
The HTML contains information about US congress members and their AIPAC-related lobby funding.

Extract ALL congress members with the following information for EVERY state:
- State name (must be one of the 50 US states)
- Congress member full name
- Position (format: "STATE-SEN" for Senators or "STATE-##" for House members, e.g., "CA-SEN" or "CA-12")
- Party affiliation (single letter: "R" or "D")
- Total lobby amount received (numeric dollar amount)
- Organizations they received funding from (e.g., AIPAC, RJC, DMFI, JDCA, etc.)
- Next election year (4-digit year)
- What they're running for (if mentioned)
- Photo URL (full URL from images.squarespace-cdn.com if available)

IMPORTANT PARSING RULES:
1. Look for data-current-context attributes or structured JSON data in the HTML
2. Parse amounts carefully - convert "K" to thousands, "M" to millions
3. Extract ALL congresspeople for ALL states
4. Position format must be consistent: "AL-SEN", "AL-01", "CA-SEN", "CA-12", etc.
5. Only include valid US states from the standard 50 states

Return ONLY a valid JSON object with this exact structure:
{{
  "StateName": {{
    "totalAmount": 0,
    "congresspeople": [
      {{
        "name": "Full Name",
        "photo": "https://images.squarespace-cdn.com/...",
        "position": "STATE-SEN or STATE-##",
        "party": "R or D",
        "lobbyTotal": 123456,
        "organizations": ["AIPAC", "RJC"],
        "nextElection": "2026",
        "runningFor": "Senate"
      }}
    ]
  }}
}}

HTML to parse:
{document}"""


@dataclass(frozen=True, slots=True)
class ExtractionOk:
    regions: Dict[str, RegionRecord]


@dataclass(frozen=True, slots=True)
class ExtractionFailure:
    reason: str


ExtractionResult = Union[ExtractionOk, ExtractionFailure]


class RecordExtractor:
    """Asks the completion service for a JSON rendition of the source page."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        max_tokens: int = 8000,
        max_chars: int = 100_000,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.max_chars = max_chars
        self._api_key = api_key
        self._client = client

    def build_prompt(self, document: str) -> str:
        return PROMPT_TEMPLATE.format(document=document[: self.max_chars])

    def extract(self, document: str) -> Dict[str, RegionRecord]:
        prompt = self.build_prompt(document)
        logger.info(
            "extract_start",
            model=self.model,
            document_chars=len(document),
            submitted_chars=min(len(document), self.max_chars),
        )
        reply = self._complete(prompt)
        result = interpret_reply(reply)
        if isinstance(result, ExtractionFailure):
            logger.error("extract_failed", reason=result.reason)
            raise ExtractionError(result.reason)

        logger.info(
            "extract_done",
            states=len(result.regions),
            records=sum(len(region.records) for region in result.regions.values()),
        )
        return result.regions

    def _complete(self, prompt: str) -> str:
        client = self._get_client()
        try:
            message = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise ExtractionError(f"Completion request failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "") for block in message.content if getattr(block, "type", "text") == "text"
        )
        logger.info(
            "completion_received",
            model=getattr(message, "model", self.model),
            stop_reason=getattr(message, "stop_reason", None),
            chars=len(text),
        )
        return text

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ExtractionError("ANTHROPIC_API_KEY not set")
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client


def interpret_reply(reply: str) -> ExtractionResult:
    """Parse the completion text into normalized regions."""
    match = JSON_SPAN_PATTERN.search(reply or "")
    if not match:
        return ExtractionFailure("No valid JSON found in completion response")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        return ExtractionFailure(f"Completion response is not valid JSON: {exc}")
    if not isinstance(payload, dict):
        return ExtractionFailure("Completion response JSON is not an object")
    return ExtractionOk(normalize_regions(payload))


def normalize_regions(payload: Dict[str, Any]) -> Dict[str, RegionRecord]:
    """Coerce raw extracted regions into records, dropping malformed entries.

    Region totals from the payload are ignored; the aggregator owns them.
    """
    regions: Dict[str, RegionRecord] = {}
    for raw_state, raw_region in payload.items():
        state = canonical_state(str(raw_state))
        if state is None:
            logger.warning("state_skipped", state=raw_state, reason="unknown_state")
            continue
        if not isinstance(raw_region, dict):
            logger.warning("state_skipped", state=raw_state, reason="not_an_object")
            continue

        raw_people = raw_region.get("congresspeople") or []
        if not isinstance(raw_people, (list, tuple)):
            logger.warning("state_skipped", state=raw_state, reason="congresspeople_not_a_list")
            continue

        region = regions.setdefault(state, RegionRecord())
        for raw_person in raw_people:
            record = _normalize_person(state, raw_person)
            if record is not None:
                region.records.append(record)
        region.ensure_unique_records()
    return regions


def _normalize_person(state: str, raw: Any) -> Optional[PersonRecord]:
    if not isinstance(raw, dict):
        logger.warning("record_skipped", state=state, reason="not_an_object")
        return None

    name = " ".join(str(raw.get("name") or "").split())
    if not name:
        logger.warning("record_skipped", state=state, reason="missing_name")
        return None

    position = str(raw.get("position") or "").strip().upper()
    if not POSITION_PATTERN.match(position):
        logger.warning("record_skipped", state=state, name=name, reason="bad_position", position=position)
        return None

    party = str(raw.get("party") or "").strip().upper()[:1]
    if party not in PARTIES:
        logger.warning("record_skipped", state=state, name=name, reason="bad_party", party=raw.get("party"))
        return None

    try:
        lobby_total = parse_amount(raw.get("lobbyTotal") or 0)
    except ValueError as exc:
        logger.warning("record_skipped", state=state, name=name, reason="bad_amount", error=str(exc))
        return None

    organizations = raw.get("organizations") or []
    if isinstance(organizations, str):
        organizations = re.split(r"[,/]", organizations)
    elif not isinstance(organizations, (list, tuple)):
        logger.warning(
            "record_skipped", state=state, name=name, reason="bad_organizations", organizations=repr(organizations)
        )
        return None

    running_for = raw.get("runningFor")
    photo = raw.get("photo")
    return PersonRecord(
        name=name,
        position=position,
        party=party,
        lobby_total=lobby_total,
        organizations=frozenset(str(org).strip() for org in organizations if str(org).strip()),
        photo=str(photo).strip() if photo else None,
        next_election=parse_year(raw.get("nextElection")),
        running_for=str(running_for).strip() if running_for else None,
    )
