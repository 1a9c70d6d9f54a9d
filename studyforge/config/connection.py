# studyforge/config/connection.py
"""
Shareable connection keys.

A connection key is base64-encoded JSON holding an endpoint and API key, so
a configured service can be handed to another device as one opaque string.
"""

import base64
import binascii
import json
import logging

from pydantic import ValidationError

from studyforge.errors import ConnectionKeyError

from .schema import ServiceConfig

logger = logging.getLogger(__name__)


def encode_connection_key(service: ServiceConfig) -> str:
    """
    Encode a ServiceConfig as a base64 connection key.

    Raises:
        ConnectionKeyError: If endpoint or API key is missing
    """
    if not service.base_url or not service.api_key:
        raise ConnectionKeyError("Missing required configuration: endpoint and apiKey")

    payload = {
        "endpoint": service.base_url,
        "apiKey": service.api_key,
        "provider": service.provider,
        "model": service.model,
    }
    return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def decode_connection_key(key: str, base: ServiceConfig | None = None) -> ServiceConfig:
    """
    Decode a connection key into a ServiceConfig.

    Fields missing from the key (provider, model) are taken from `base`;
    keys produced by older clients only carry endpoint and apiKey and are
    assumed to target Azure OpenAI.

    Raises:
        ConnectionKeyError: If the key is not valid base64 JSON, lacks endpoint/apiKey,
            or names an unknown provider
    """
    try:
        data = json.loads(base64.b64decode(key.strip(), validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConnectionKeyError(
            "Failed to decode connection key. Please check the format."
        ) from e

    if not isinstance(data, dict) or not data.get("endpoint") or not data.get("apiKey"):
        raise ConnectionKeyError("Invalid connection key format: missing endpoint or apiKey")

    base = base or ServiceConfig(provider="azure")
    updates = {"base_url": data["endpoint"], "api_key": data["apiKey"]}
    updates["provider"] = data.get("provider", "azure")
    if data.get("model"):
        updates["model"] = data["model"]

    try:
        service = ServiceConfig(**{**base.model_dump(), **updates})
    except ValidationError as e:
        raise ConnectionKeyError(f"Invalid connection key contents: {e}") from e

    logger.info("Decoded connection key successfully")
    return service
