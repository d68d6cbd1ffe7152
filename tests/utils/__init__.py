"""
Test utilities for the CloudWatch Logs to Sumo Logic forwarder.

Helpers for building CloudWatch Logs subscription events the way the
Lambda runtime delivers them.
"""

from .sample_events import build_awslogs_event, build_log_events, encode_awslogs_data
from .sumo_requests import posted_bodies, posted_records, posted_headers

__all__ = [
    "build_awslogs_event", "build_log_events", "encode_awslogs_data",
    "posted_bodies", "posted_records", "posted_headers",
]
