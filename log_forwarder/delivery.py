"""
Sumo Logic HTTP source delivery

Each metadata-key group of a batch is posted as one newline-delimited JSON
request. All groups are sent concurrently and the outcomes are folded once
every request has resolved.
"""

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Any, Optional, Tuple

import requests

from .models import DeliverySummary

logger = logging.getLogger(__name__)

METADATA_KEY_DELIMITER = ':'

# Seconds to wait for each Sumo Logic response, 0 waits forever
REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', '30'))


class DeliveryError(Exception):
    """Base exception for a single group delivery failure"""
    pass


class DeliveryStatusError(DeliveryError):
    """Sumo Logic answered with a status other than 200"""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP Return code {status_code}")


class DeliveryTransportError(DeliveryError):
    """The request never produced an HTTP response"""
    pass


class DeliverySerializationError(DeliveryError):
    """Group events could not be serialized as JSON"""
    pass


def build_metadata_key(name: str, category: str, host: str) -> str:
    return METADATA_KEY_DELIMITER.join([name, category, host])


def split_metadata_key(metadata_key: str) -> Tuple[str, str, str]:
    """
    Split a metadata key back into (name, category, host).

    Components are joined without escaping, so a ':' inside one of them
    shifts the split. The first three parts are used in that case.
    """
    parts = metadata_key.split(METADATA_KEY_DELIMITER)
    if len(parts) != 3:
        logger.warning(f"Metadata key '{metadata_key}' splits into {len(parts)} parts, headers may be misaligned")
        parts = (parts + ['', '', ''])[:3]
    return parts[0], parts[1], parts[2]


def build_sumo_headers(metadata_key: str) -> Dict[str, str]:
    name, category, host = split_metadata_key(metadata_key)
    return {
        'X-Sumo-Name': name,
        'X-Sumo-Category': category,
        'X-Sumo-Host': host
    }


def serialize_log_events(log_events: List[Dict[str, Any]]) -> bytes:
    """Serialize events as newline-delimited JSON, one compact object per line"""
    return b''.join(_serialize_log_event(event) + b'\n' for event in log_events)


def _serialize_log_event(event: Dict[str, Any]) -> bytes:
    line = json.dumps(event, separators=(',', ':'), ensure_ascii=False)
    try:
        return line.encode('utf-8')
    except UnicodeEncodeError:
        # Lone surrogates have no UTF-8 form, keep them as \u escapes
        return json.dumps(event, separators=(',', ':')).encode('ascii')


def send_log_group(endpoint: str, metadata_key: str, log_events: List[Dict[str, Any]]) -> None:
    """
    POST one metadata-key group to Sumo Logic.

    Raises:
        DeliveryStatusError: Response status is not 200
        DeliveryTransportError: Connection, TLS or timeout failure
        DeliverySerializationError: Events cannot be encoded as JSON
    """
    try:
        body = serialize_log_events(log_events)
    except (TypeError, ValueError, RecursionError) as e:
        raise DeliverySerializationError(f"Failed to serialize log events: {str(e)}") from e

    timeout = REQUEST_TIMEOUT if REQUEST_TIMEOUT > 0 else None
    try:
        response = requests.post(
            endpoint,
            data=body,
            headers=build_sumo_headers(metadata_key),
            timeout=timeout
        )
    except requests.exceptions.RequestException as e:
        raise DeliveryTransportError(str(e)) from e

    if response.status_code != 200:
        raise DeliveryStatusError(response.status_code)


def post_to_sumo(grouped_events: Dict[str, List[Dict[str, Any]]], endpoint: str) -> DeliverySummary:
    """
    Deliver every group concurrently and aggregate the outcomes.

    One worker per group, no cap. Each group yields exactly one outcome:
    sent, or one error string. A failing group never stops its siblings.

    Args:
        grouped_events: Metadata key -> ordered events
        endpoint: Sumo Logic HTTP source URL

    Returns:
        DeliverySummary with the sent count and every error message
    """
    summary = DeliverySummary()
    if not grouped_events:
        logger.info("No log events to deliver")
        return summary

    logger.info(f"Delivering {len(grouped_events)} metadata group(s) to Sumo Logic")

    with ThreadPoolExecutor(max_workers=len(grouped_events)) as executor:
        future_to_key = {
            executor.submit(send_log_group, endpoint, metadata_key, log_events): metadata_key
            for metadata_key, log_events in grouped_events.items()
        }
        for future in as_completed(future_to_key):
            metadata_key = future_to_key[future]
            error = _delivery_error(future.exception())
            if error is None:
                summary.messages_sent += 1
                logger.debug(f"Delivered group '{metadata_key}' ({len(grouped_events[metadata_key])} events)")
            else:
                summary.message_errors.append(error)
                logger.error(f"Failed to deliver group '{metadata_key}': {error}")

    return summary


def _delivery_error(exception: Optional[BaseException]) -> Optional[str]:
    if exception is None:
        return None
    if isinstance(exception, DeliveryError):
        return str(exception)
    # Anything else escaping a worker is a bug, not a delivery outcome
    raise exception
