#!/usr/bin/env python3
"""
Sample CloudWatch Logs subscription events

Builds awslogs payloads (JSON, gzip, base64) for unit tests and for manual
runs of the forwarder:

    python3 tests/utils/sample_events.py console | log-forwarder --mode manual
"""

import base64
import gzip
import json
import sys
from typing import Dict, List, Any

DEFAULT_LOG_GROUP = '/aws/lambda/payment-service'
DEFAULT_LOG_STREAM = '2016/11/10/[$LATEST]4a5d1a0d8e2b4c7c9f1e3b2a6d8c0e1f'

CONSOLE_REQUEST_ID = '108af3bb-a79b-11e6-8bd7-91c363cc05d9'

# Typical Lambda output for one invocation
LAMBDA_INVOCATION_MESSAGES = [
    f"START RequestId: {CONSOLE_REQUEST_ID} Version: $LATEST\n",
    f"2016-11-10T23:11:54.523Z\t{CONSOLE_REQUEST_ID}\tProcessing order 1234\n",
    f'2016-11-10T23:11:54.524Z\t{CONSOLE_REQUEST_ID}\t{{"level": "info", "order_id": 1234}}\n',
    f"END RequestId: {CONSOLE_REQUEST_ID}\n",
    f"REPORT RequestId: {CONSOLE_REQUEST_ID}\tDuration: 12.34 ms\tBilled Duration: 100 ms\n",
]


def build_log_events(messages: List[str], start_timestamp: int = 1478819514523) -> List[Dict[str, Any]]:
    """Wrap raw messages as subscription log events with ids and timestamps"""
    return [
        {
            'id': f"3318291230849213{index:06d}",
            'timestamp': start_timestamp + index,
            'message': message
        }
        for index, message in enumerate(messages)
    ]


def encode_awslogs_data(payload: Any, encoding: str = 'utf-8') -> str:
    text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return base64.b64encode(gzip.compress(text.encode(encoding))).decode('ascii')


def build_awslogs_event(
    messages: List[str] = None,
    log_group: str = DEFAULT_LOG_GROUP,
    log_stream: str = DEFAULT_LOG_STREAM,
    message_type: str = 'DATA_MESSAGE',
    encoding: str = 'utf-8'
) -> Dict[str, Any]:
    """Build a Lambda event exactly as a CloudWatch Logs subscription sends it"""
    payload = {
        'messageType': message_type,
        'owner': '123456789012',
        'logGroup': log_group,
        'logStream': log_stream,
        'subscriptionFilters': ['SumoLogic'],
        'logEvents': build_log_events(messages or [])
    }
    return {'awslogs': {'data': encode_awslogs_data(payload, encoding)}}


SAMPLE_EVENTS = {
    'console': lambda: build_awslogs_event(LAMBDA_INVOCATION_MESSAGES),
    'control': lambda: build_awslogs_event(
        ['CWL CONTROL MESSAGE: Checking health of destination Firehose.'],
        log_group='',
        log_stream='',
        message_type='CONTROL_MESSAGE'
    ),
    'override': lambda: build_awslogs_event([
        '{"message": "custom metadata", "_sumo_metadata": {"category": "prod/payments", "host": "payments-1"}}'
    ]),
}


def main():
    if len(sys.argv) > 1 and sys.argv[1] in SAMPLE_EVENTS:
        print(json.dumps(SAMPLE_EVENTS[sys.argv[1]]()))
    else:
        print("Available sample events:")
        for name in SAMPLE_EVENTS:
            print(f"  {name}")
        print()
        print("Usage: python3 tests/utils/sample_events.py <name> | log-forwarder --mode manual")
        sys.exit(1)


if __name__ == '__main__':
    main()
