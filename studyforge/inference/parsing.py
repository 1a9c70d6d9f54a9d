# studyforge/inference/parsing.py
"""
Structured output parsing.

The service is first asked for output matching an explicit JSON schema and the
response is validated strictly against the pydantic model. When that fails the
raw text goes through loose JSON extraction (fenced blocks, bare objects,
truncated-output repair) and is validated again. Neither stage raises; the
caller decides what to do when both come back empty.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from studyforge.models.items import ItemBatch, StudyItem

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Keys services sometimes use instead of "items" for a batch
_BATCH_KEYS = ("items", "flashcards", "cards", "widgets", "results")


def _scan_delimiters(text: str) -> tuple[list[str], bool]:
    """Return the stack of unclosed { and [ (innermost last) and whether text ends inside a string."""
    stack: list[str] = []
    in_string = False
    escape = False
    for ch in text:
        if escape:
            escape = False
            continue
        if ch == "\\" and in_string:
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch in "{[":
            stack.append(ch)
        elif ch in "}]" and stack:
            stack.pop()
    return stack, in_string


def _closing_suffix(stack: list[str]) -> str:
    return "".join("}" if opener == "{" else "]" for opener in reversed(stack))


def _repair_truncated_json(candidate: str) -> Any | None:
    """Try to repair JSON cut off mid-output by trimming back and closing delimiters.

    When the model hits its token limit we may be left with an unclosed
    string, unclosed arrays/objects, a dangling key or a trailing comma.
    Each pass closes the open string, appends the closers for the open
    delimiters and tries to parse; on failure the tail is trimmed back to
    the previous structural boundary.
    """
    text = candidate
    for _ in range(200):
        stack, in_string = _scan_delimiters(text)
        attempt = text + ('"' if in_string else "")
        try:
            return json.loads(attempt + _closing_suffix(stack))
        except json.JSONDecodeError:
            pass

        text = text.rstrip()
        if not text:
            return None
        if text[-1] in (",", ":"):
            text = text[:-1]
            continue
        # Dangling "key" after a comma or opener
        if text.endswith('"') and not in_string:
            quote_start = text.rfind('"', 0, len(text) - 1)
            if quote_start >= 0:
                before = text[:quote_start].rstrip()
                if before and before[-1] in (",", "[", "{"):
                    text = before.rstrip(",")
                    continue
        text = text[:-1]

    return None


def extract_json(raw_output: str) -> Any:
    """
    Extract JSON from LLM output, handling common formatting variations.

    Tries multiple extraction strategies:
    1. Direct JSON parse (if output is pure JSON)
    2. Code fence extraction (```json ... ```)
    3. Bare object or array ({...} or [...])
    4. Repair of truncated output

    Args:
        raw_output: Raw text from the service

    Returns:
        Parsed JSON value (object or array)

    Raises:
        ValueError: If no valid JSON found
    """
    try:
        return json.loads(raw_output.strip())
    except json.JSONDecodeError:
        pass

    fence_match = re.search(
        r"```(?:json)?\s*\n(.*?)\n```", raw_output, re.DOTALL | re.IGNORECASE
    )
    if fence_match:
        try:
            return json.loads(fence_match.group(1).strip())
        except json.JSONDecodeError:
            pass

    json_match = re.search(r"(\{.*\}|\[.*\])", raw_output, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group(1))
        except json.JSONDecodeError:
            pass

    starts = [i for i in (raw_output.find("{"), raw_output.find("[")) if i != -1]
    if starts:
        repaired = _repair_truncated_json(raw_output[min(starts):])
        if repaired is not None:
            return repaired

    preview = raw_output[:500].replace("\n", "\\n")
    raise ValueError(
        f"Could not extract valid JSON from output ({len(raw_output)} chars). "
        f"Preview: {preview}"
    )


def _strip_properties(schema: dict[str, Any], names: set[str]) -> dict[str, Any]:
    """Remove properties the service should not fill in, at every level of a schema."""
    def _strip(node: dict[str, Any]) -> None:
        props = node.get("properties")
        if isinstance(props, dict):
            for name in names:
                props.pop(name, None)
            if "required" in node:
                node["required"] = [r for r in node["required"] if r not in names]
        for sub in node.get("$defs", {}).values():
            _strip(sub)

    _strip(schema)
    return schema


@dataclass
class ParseOutcome(Generic[ModelT]):
    """Parsed value plus the stage that produced it ("strict", "loose" or "failed")."""

    value: ModelT | None
    path: str

    @property
    def ok(self) -> bool:
        return self.value is not None


class StructuredOutputPolicy(Generic[ModelT]):
    """
    Two-stage parse policy for one output model.

    Stage 1 validates the raw text strictly as JSON of the model. Stage 2
    extracts JSON loosely and validates it against the same model.
    """

    # Properties assigned locally and never requested from the service
    excluded_properties: frozenset[str] = frozenset()

    def __init__(self, model: type[ModelT], name: str | None = None):
        self.model = model
        self.name = name or model.__name__

    @property
    def schema(self) -> dict[str, Any]:
        """JSON schema sent to the service for the primary request."""
        schema = self.model.model_json_schema()
        if self.excluded_properties:
            schema = _strip_properties(schema, set(self.excluded_properties))
        return schema

    def parse_strict(self, raw: str) -> ModelT | None:
        try:
            return self.model.model_validate_json(raw.strip())
        except ValidationError as e:
            logger.info(f"{self.name}: strict validation failed ({e.error_count()} errors)")
            return None

    def parse_loose(self, raw: str) -> ModelT | None:
        try:
            data = extract_json(raw)
        except ValueError as e:
            logger.info(f"{self.name}: loose extraction failed: {e}")
            return None
        return self.validate_loose(data)

    def validate_loose(self, data: Any) -> ModelT | None:
        try:
            return self.model.model_validate(data)
        except ValidationError as e:
            logger.info(f"{self.name}: loose validation failed ({e.error_count()} errors)")
            return None

    def parse(self, raw: str) -> ParseOutcome[ModelT]:
        """Run strict then loose parsing; never raises."""
        if not raw or not raw.strip():
            return ParseOutcome(None, "failed")
        value = self.parse_strict(raw)
        if value is not None:
            return ParseOutcome(value, "strict")
        value = self.parse_loose(raw)
        if value is not None:
            return ParseOutcome(value, "loose")
        return ParseOutcome(None, "failed")


class ItemBatchPolicy(StructuredOutputPolicy[ItemBatch]):
    """
    Parse policy for a batch of study items of one kind.

    Loose validation accepts a bare array or any of the usual envelope keys
    and drops invalid items one by one instead of rejecting the batch.
    """

    excluded_properties = frozenset({"id", "createdAt", "created_at", "kind"})

    def __init__(self, item_model: type[StudyItem]):
        super().__init__(ItemBatch[item_model], name=f"{item_model.__name__}Batch")
        self.item_model = item_model

    def validate_loose(self, data: Any) -> ItemBatch | None:
        raw_items = None
        if isinstance(data, list):
            raw_items = data
        elif isinstance(data, dict):
            for key in _BATCH_KEYS:
                if isinstance(data.get(key), list):
                    raw_items = data[key]
                    break
            else:
                # A single item object
                raw_items = [data]
        if raw_items is None:
            return None

        items = []
        dropped = 0
        for raw_item in raw_items:
            try:
                items.append(self.item_model.model_validate(raw_item))
            except ValidationError:
                dropped += 1
        if dropped:
            logger.info(f"{self.name}: dropped {dropped} invalid item(s)")
        if not items:
            return None
        return self.model(items=items)
