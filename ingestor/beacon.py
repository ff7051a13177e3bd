"""
Understanding beacon payload: parsing, client IP derivation and
timestamp normalization.

A beacon is the JSON body a page posts when it is viewed:

    {"referrer": "https://a.com", "user_agent": "UA1", "dark_mode": true,
     "url": "/x", "timestamp": "2024-01-01T00:00:00Z"}

Every field is optional. Unknown keys are ignored.
"""

import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Optional

from dateutil import parser as dtp
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger(__name__)

REAL_IP_HEADER = "x-real-ip"

RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T(?P<hour>\d{2}):\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)


class UnderstandingData(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    referrer: str = ""
    user_agent: str = ""
    dark_mode: Optional[bool] = None
    url: str = ""
    timestamp: str = ""

    @model_validator(mode="before")
    @classmethod
    def _fold_key_case(cls, data):
        # {"URL": ...} fills url; on duplicates the later key wins
        if isinstance(data, dict):
            return {str(k).lower(): v for k, v in data.items()}
        return data

    @field_validator("referrer", "user_agent", "url", "timestamp", mode="before")
    @classmethod
    def _null_is_empty(cls, v):
        return "" if v is None else v


def parse_beacon(body: bytes) -> UnderstandingData:
    """
    Decode a request body into an UnderstandingData.
    Raises pydantic.ValidationError on malformed JSON, an empty body,
    a non-object document or a field of the wrong type.
    """
    return UnderstandingData.model_validate_json(body)


def client_ip(headers: Mapping[str, str], client: Optional[tuple[str, int]]) -> str:
    """
    X-Real-IP when the proxy set it, otherwise the transport address
    as "host:port". The port is kept on purpose.
    """
    for name, value in headers.items():
        if name.lower() == REAL_IP_HEADER:
            if value:
                return value
            break

    if client is None:
        return ""
    host, port = client[0], client[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_rfc3339(text: str) -> datetime:
    m = RFC3339_RE.match(text)
    if not m:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")
    # isoparse rolls 24:00 into the next day
    if int(m.group("hour")) > 23:
        raise ValueError(f"hour out of range: {text!r}")
    return dtp.isoparse(text)


def normalize_timestamp(raw: str, now: datetime, ip_address: str = "", url: str = "") -> datetime:
    """Client timestamp when it parses, server time otherwise."""
    if not raw:
        return now
    try:
        return parse_rfc3339(raw)
    except ValueError as e:
        logger.warning("Error parsing timestamp from %s (URL: %s): %s", ip_address, url, e)
        return now


def format_timestamp(ts: datetime) -> str:
    text = ts.isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text
