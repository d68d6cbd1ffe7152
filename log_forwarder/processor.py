#!/usr/bin/env python3
"""
CloudWatch Logs to Sumo Logic forwarder
Decodes subscription batches, reshapes each event and posts them to a Sumo
Logic HTTP source grouped by metadata key. Supports Lambda runtime and
manual/file input modes.
"""

import argparse
import base64
import binascii
import gzip
import json
import logging
import os
import re
import sys
import zlib
from typing import Dict, List, Any, Optional, Tuple

from pydantic import ValidationError

from .delivery import build_metadata_key, post_to_sumo
from .logger import setup_logging
from .models import CloudWatchLogsData, LogEvent, SumoMetadataOverride
from .validation import ConfigurationError, is_override_set, validate_sumo_endpoint

setup_logging()
logger = logging.getLogger(__name__)

# Environment variables
SUMO_ENDPOINT = os.environ.get('SUMO_ENDPOINT')
# 'none' keeps the default: empty category, log group as host, log stream as name
SOURCE_CATEGORY_OVERRIDE = os.environ.get('SOURCE_CATEGORY_OVERRIDE') or 'none'
SOURCE_HOST_OVERRIDE = os.environ.get('SOURCE_HOST_OVERRIDE') or 'none'
SOURCE_NAME_OVERRIDE = os.environ.get('SOURCE_NAME_OVERRIDE') or 'none'
ENCODING = os.environ.get('ENCODING', 'utf-8')

# logStream/logGroup fields are required by the Sumo Logic AWS Lambda app
INCLUDE_LOG_INFO = True

METADATA_OVERRIDE_FIELD = '_sumo_metadata'

# Lambda console.log lines, e.g.
# 2016-11-10T23:11:54.523Z	108af3bb-a79b-11e6-8bd7-91c363cc05d9	some message
CONSOLE_FORMAT_REGEX = re.compile(
    r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z\t(\w+?-\w+?-\w+?-\w+?-\w+)\t',
    re.ASCII
)

# ASCII whitespace plus Unicode space separators and the BOM
UNICODE_WHITESPACE = r'[\t\n\v\f\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]'

REQUEST_ID_REGEX = re.compile(r'(?:RequestId:|Z)' + UNICODE_WHITESPACE + r'+([A-Za-z0-9_-]+)')


# Custom exception classes
class ForwarderError(Exception):
    """Base exception for fatal forwarder errors"""
    pass


class DecompressionError(ForwarderError):
    """awslogs.data is not valid base64/gzip or not text in the configured encoding"""
    pass


class InvalidLogDataError(ForwarderError):
    """Decoded payload is not a CloudWatch Logs subscription message"""
    pass


class DeliveryFailedError(ForwarderError):
    """At least one metadata group could not be delivered"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__('errors: ' + ', '.join(self.errors))


def lambda_handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    """
    AWS Lambda handler for CloudWatch Logs subscription events

    Raises an exception when any group fails so the invocation is reported
    as failed, with every group's error in the message.
    """
    endpoint = validate_sumo_endpoint(SUMO_ENDPOINT)

    try:
        encoded_data = event['awslogs']['data']
    except (KeyError, TypeError) as e:
        raise InvalidLogDataError(f"Event does not contain awslogs.data: {str(e)}")

    log_data = decode_awslogs_data(encoded_data, ENCODING)

    if log_data.is_control_message:
        logger.info("Control message")
        return {'status': 'success', 'messages_sent': 0, 'log_events': 0}

    logger.info(f"Log events: {len(log_data.log_events)}")

    grouped_events = group_log_events(log_data)
    summary = post_to_sumo(grouped_events, endpoint)

    logger.info(f"messagesSent: {summary.messages_sent} messagesErrors: {len(summary.message_errors)}")

    if not summary.succeeded:
        raise DeliveryFailedError(summary.message_errors)

    return {
        'status': 'success',
        'messages_sent': summary.messages_sent,
        'log_events': len(log_data.log_events)
    }


def decode_awslogs_data(encoded_data: str, encoding: str = 'utf-8') -> CloudWatchLogsData:
    """
    Decode the base64, gzip-compressed JSON body of a subscription event

    Raises:
        DecompressionError: Payload cannot be base64-decoded, gunzipped or decoded as text
        InvalidLogDataError: Text is not JSON or does not have the subscription message shape
    """
    try:
        compressed = base64.b64decode(encoded_data, validate=True)
        text = gzip.decompress(compressed).decode(encoding)
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeDecodeError, LookupError, TypeError, ValueError) as e:
        raise DecompressionError(f"Failed to decompress awslogs data: {str(e)}")

    try:
        return CloudWatchLogsData.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        raise InvalidLogDataError(f"awslogs data is not valid JSON: {str(e)}")
    except ValidationError as e:
        raise InvalidLogDataError(f"awslogs data has an unexpected format: {str(e)}")


def classify_log_event(
    log_event: LogEvent,
    log_group: str,
    log_stream: str,
    last_request_id: Optional[str]
) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Reshape one raw log event into the record posted to Sumo Logic

    Extracts the Lambda request id, strips the console timestamp/request id
    prefix and decodes JSON messages so they are delivered as objects.

    Args:
        log_event: Raw event from the batch
        log_group: Source log group name
        log_stream: Source log stream name
        last_request_id: Request id carried over from earlier events in the batch

    Returns:
        Tuple of (record, request id to carry forward)
    """
    message = log_event.message
    if message.endswith('\n'):
        message = message[:-1]

    request_id_match = REQUEST_ID_REGEX.search(message)
    if request_id_match:
        last_request_id = request_id_match.group(1)

    console_match = CONSOLE_FORMAT_REGEX.match(message)
    if console_match:
        last_request_id = console_match.group(1)
        message = message[console_match.end():]

    try:
        message = json.loads(message, parse_constant=_reject_json_constant)
    except (ValueError, RecursionError):
        # Not JSON (or nested too deeply to decode), deliver as text
        pass

    record = {
        'timestamp': log_event.timestamp,
        'message': message
    }

    if INCLUDE_LOG_INFO:
        record['logStream'] = log_stream
        record['logGroup'] = log_group

    if last_request_id:
        record['requestID'] = last_request_id

    return record, last_request_id


def _reject_json_constant(constant: str):
    raise ValueError(f"Unsupported JSON constant: {constant}")


def resolve_metadata_key(log_group: str, log_stream: str, message: Any) -> str:
    """
    Build the name:category:host key that selects the Sumo Logic headers

    Precedence, lowest to highest: defaults (empty category, log group as
    host, log stream as name), SOURCE_*_OVERRIDE environment variables, and
    a `_sumo_metadata` object inside a JSON message. The override object is
    removed from the message.
    """
    source_category = SOURCE_CATEGORY_OVERRIDE if is_override_set(SOURCE_CATEGORY_OVERRIDE) else ''
    source_host = SOURCE_HOST_OVERRIDE if is_override_set(SOURCE_HOST_OVERRIDE) else log_group
    source_name = SOURCE_NAME_OVERRIDE if is_override_set(SOURCE_NAME_OVERRIDE) else log_stream

    metadata_override = extract_metadata_override(message)
    if metadata_override is not None:
        if metadata_override.category:
            source_category = metadata_override.category
        if metadata_override.host:
            source_host = metadata_override.host
        if metadata_override.source:
            source_name = metadata_override.source

    return build_metadata_key(source_name, source_category, source_host)


def extract_metadata_override(message: Any) -> Optional[SumoMetadataOverride]:
    """
    Pop `_sumo_metadata` from a JSON object message

    Returns None when the message is not an object, has no override, or the
    override is not an object. The field is removed in every case where it
    exists.
    """
    if not isinstance(message, dict) or METADATA_OVERRIDE_FIELD not in message:
        return None

    raw_override = message.pop(METADATA_OVERRIDE_FIELD)
    if not isinstance(raw_override, dict):
        logger.warning(f"Ignoring {METADATA_OVERRIDE_FIELD} that is not an object: {str(raw_override)[:100]}")
        return None

    return SumoMetadataOverride.model_validate(raw_override)


def group_log_events(log_data: CloudWatchLogsData) -> Dict[str, List[Dict[str, Any]]]:
    """
    Classify every event in batch order and group them by metadata key

    The request id carries forward only within this batch; events keep their
    original relative order inside each group.
    """
    grouped_events: Dict[str, List[Dict[str, Any]]] = {}
    last_request_id = None

    for log_event in log_data.log_events:
        record, last_request_id = classify_log_event(
            log_event,
            log_data.log_group,
            log_data.log_stream,
            last_request_id
        )
        metadata_key = resolve_metadata_key(log_data.log_group, log_data.log_stream, record['message'])
        grouped_events.setdefault(metadata_key, []).append(record)

    logger.info(f"Grouped {len(log_data.log_events)} log events into {len(grouped_events)} metadata group(s)")
    return grouped_events


def manual_input_mode(input_stream=None) -> Dict[str, Any]:
    """
    Manual input mode for development/testing
    Reads a CloudWatch Logs subscription event (JSON) from stdin
    """
    logger.info("Manual input mode - reading JSON from stdin")
    logger.info('Expected format: {"awslogs": {"data": "<base64 gzip>"}}')

    input_data = (input_stream or sys.stdin).read().strip()
    if not input_data:
        raise InvalidLogDataError("No input data provided")

    return _invoke_from_text(input_data)


def file_input_mode(event_file: str) -> Dict[str, Any]:
    """Read a subscription event from a JSON file and forward it"""
    logger.info(f"File input mode - reading event from {event_file}")
    with open(event_file, 'r', encoding='utf-8') as f:
        return _invoke_from_text(f.read())


def _invoke_from_text(input_data: str) -> Dict[str, Any]:
    try:
        event = json.loads(input_data)
    except json.JSONDecodeError as e:
        raise InvalidLogDataError(f"Input is not valid JSON: {str(e)}")
    return lambda_handler(event, None)


def main(argv: List[str] = None) -> int:
    """
    Main entry point for standalone execution
    """
    parser = argparse.ArgumentParser(description='Forward CloudWatch Logs subscription events to Sumo Logic')
    parser.add_argument('--mode', choices=['manual', 'file'], default='manual',
                        help='Execution mode: manual (stdin input) or file (read --event-file)')
    parser.add_argument('--event-file', help='Path to a JSON subscription event (file mode)')

    args = parser.parse_args(argv)

    if args.mode == 'file' and not args.event_file:
        parser.error('--event-file is required in file mode')

    try:
        if args.mode == 'file':
            result = file_input_mode(args.event_file)
        else:
            result = manual_input_mode()
    except (ForwarderError, ConfigurationError, OSError) as e:
        logger.error(f"Error forwarding log events: {str(e)}")
        return 1

    logger.info(f"Successfully forwarded log events: {json.dumps(result)}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
