# studyforge/boundary/messages.py
"""
Message protocol between the caller and a generation worker.

Messages are tagged on `type` and travel as JSON text, so nothing but the
serialized payload is shared across the boundary.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from studyforge.config.schema import ServiceConfig
from studyforge.models.items import GeneratedItem
from studyforge.models.pages import SourcePage
from studyforge.models.requests import GenerationRequest, GenerationStatus


class _Message(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Requests (caller -> worker)


class GenerateMessage(_Message):
    type: Literal["generate"] = "generate"
    pages: list[SourcePage]
    service: ServiceConfig
    request: GenerationRequest


class EstimateMessage(_Message):
    type: Literal["estimate"] = "estimate"
    pages: list[SourcePage]
    service: ServiceConfig


class CancelMessage(_Message):
    type: Literal["cancel"] = "cancel"


# Responses (worker -> caller)


class StatusMessage(_Message):
    type: Literal["status"] = "status"
    status: GenerationStatus


class CompleteMessage(_Message):
    type: Literal["complete"] = "complete"
    items: list[GeneratedItem]


class ErrorMessage(_Message):
    type: Literal["error"] = "error"
    error: str


class EstimateResultMessage(_Message):
    type: Literal["estimate"] = "estimate"
    estimated_count: int


WorkerRequest = Annotated[
    Union[GenerateMessage, EstimateMessage, CancelMessage], Field(discriminator="type")
]
WorkerResponse = Annotated[
    Union[StatusMessage, CompleteMessage, ErrorMessage, EstimateResultMessage],
    Field(discriminator="type"),
]

_request_adapter: TypeAdapter = TypeAdapter(WorkerRequest)
_response_adapter: TypeAdapter = TypeAdapter(WorkerResponse)


def encode(message: _Message) -> str:
    """Serialize a message for the channel (by field name, not alias)."""
    return message.model_dump_json()


def decode_request(raw: str | bytes) -> GenerateMessage | EstimateMessage | CancelMessage:
    """
    Parse a request message.

    Raises:
        pydantic.ValidationError: Malformed JSON or unknown message type
    """
    return _request_adapter.validate_json(raw)


def decode_response(
    raw: str | bytes,
) -> StatusMessage | CompleteMessage | ErrorMessage | EstimateResultMessage:
    return _response_adapter.validate_json(raw)
