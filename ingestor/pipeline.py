import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from ingestor.beacon import client_ip, format_timestamp, normalize_timestamp, parse_beacon
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Outcome(str, Enum):
    INVALID_METHOD = "invalid_method"
    INVALID_JSON = "invalid_json"
    INSERT_FAILED = "insert_failed"
    STORED = "stored"


def _describe(exc: ValidationError) -> str:
    return "; ".join(err["msg"] for err in exc.errors())


class UnderstandingHandler:
    """
    Per-request ingestion pipeline: method check, client IP, body,
    timestamp, one insert. Every outcome is logged and returned to the
    caller; nothing is raised.
    """

    def __init__(self, backend: StorageBackend, clock: Callable[[], datetime] = utcnow):
        self.backend = backend
        self.clock = clock

    def handle(
        self,
        method: str,
        headers: Mapping[str, str],
        client: Optional[tuple[str, int]],
        body: bytes,
    ) -> Outcome:
        if method.upper() != "POST":
            logger.warning("Invalid method: %s", method)
            return Outcome.INVALID_METHOD

        ip_address = client_ip(headers, client)

        try:
            data = parse_beacon(body)
        except ValidationError as e:
            logger.warning("Error parsing JSON from %s: %s", ip_address, _describe(e))
            return Outcome.INVALID_JSON

        timestamp = normalize_timestamp(data.timestamp, self.clock(), ip_address, data.url)

        record = {
            "ip_address": ip_address,
            "referrer": data.referrer,
            "user_agent": data.user_agent,
            "dark_mode": data.dark_mode,
            "url": data.url,
            "timestamp": format_timestamp(timestamp),
        }
        try:
            self.backend.insert_event(record)
        except Exception as e:
            logger.error("Error inserting data from %s (URL: %s): %s", ip_address, data.url, e)
            return Outcome.INSERT_FAILED

        logger.info("Stored understanding data from IP: %s, URL: %s", ip_address, data.url)
        return Outcome.STORED
