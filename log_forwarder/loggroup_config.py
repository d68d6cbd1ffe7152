#!/usr/bin/env python3
"""
Log group configurator
Subscribes the forwarder Lambda to every CloudWatch log group that has no
subscription filter, and sets a retention policy on groups without one.
"""

import argparse
import json
import logging
import os
import sys
from typing import Dict, List, Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .logger import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

# Environment variables
AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')
FORWARDER_FUNCTION_NAME = os.environ.get('FORWARDER_FUNCTION_NAME', '')
FORWARDER_FUNCTION_ARN = os.environ.get('FORWARDER_FUNCTION_ARN')
RETENTION_IN_DAYS = int(os.environ.get('RETENTION_IN_DAYS', '3'))
SUBSCRIPTION_FILTER_NAME = os.environ.get('SUBSCRIPTION_FILTER_NAME', 'SumoLogic')

MAX_RETRY_ATTEMPTS = 10


def get_logs_client():
    return boto3.client(
        'logs',
        region_name=AWS_REGION,
        config=Config(retries={'max_attempts': MAX_RETRY_ATTEMPTS, 'mode': 'standard'})
    )


def lambda_handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    """
    AWS Lambda handler, typically run on a schedule
    """
    try:
        result = configure_log_groups(get_logs_client())
        logger.info("Successfully configured log forwarding")
        return result
    except Exception as e:
        logger.error(f"Failed to configure log forwarding: {str(e)}", exc_info=True)
        raise


def configure_log_groups(logs_client, dry_run: bool = False) -> Dict[str, Any]:
    """
    Run the full list, filter, subscribe, retention sequence

    Args:
        logs_client: boto3 CloudWatch Logs client
        dry_run: Log what would change without calling any mutating API

    Returns:
        Names of the subscribed groups and of the groups given a retention policy
    """
    if not dry_run and not FORWARDER_FUNCTION_ARN:
        raise ValueError("FORWARDER_FUNCTION_ARN environment variable not set")

    groups = list_log_groups(logs_client)
    unsubscribed = filter_log_groups(logs_client, groups)
    print_groups(unsubscribed, 'Log groups without a subscription')

    if dry_run:
        subscribed = unsubscribed
    else:
        subscribed = subscribe_forwarder(logs_client, unsubscribed)

    without_retention = filter_by_retention(subscribed)
    print_groups(without_retention, 'Log groups without a retention policy')

    if not dry_run:
        configure_retention(logs_client, without_retention)

    return {
        'status': 'success',
        'dry_run': dry_run,
        'subscribed': [group['name'] for group in subscribed],
        'retention_configured': [group['name'] for group in without_retention]
    }


def list_log_groups(logs_client) -> List[Dict[str, Any]]:
    """
    List every log group in the account with its retention setting
    """
    groups = []
    paginator = logs_client.get_paginator('describe_log_groups')
    for page in paginator.paginate():
        for group in page.get('logGroups', []):
            groups.append({
                'name': group['logGroupName'],
                'retention': group.get('retentionInDays')
            })

    logger.info(f"Found {len(groups)} log groups")
    return groups


def filter_log_groups(logs_client, groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Keep groups with no subscription filter, excluding the forwarder's own group
    """
    forwarder_log_group = f"/aws/lambda/{FORWARDER_FUNCTION_NAME}"
    unsubscribed = []

    for group in groups:
        response = logs_client.describe_subscription_filters(logGroupName=group['name'])
        subscriptions = [f['destinationArn'] for f in response.get('subscriptionFilters', [])]

        if subscriptions:
            logger.debug(f"Log group {group['name']} already subscribed to {subscriptions}")
            continue
        if group['name'] == forwarder_log_group:
            logger.debug(f"Skipping forwarder log group {group['name']}")
            continue

        unsubscribed.append({**group, 'subscriptions': subscriptions})

    return unsubscribed


def subscribe_forwarder(logs_client, groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Attach the forwarder Lambda as subscription destination of each group
    """
    for group in groups:
        try:
            logs_client.put_subscription_filter(
                logGroupName=group['name'],
                filterName=SUBSCRIPTION_FILTER_NAME,
                filterPattern='',
                destinationArn=FORWARDER_FUNCTION_ARN
            )
        except ClientError as e:
            logger.error(f"Failed to subscribe forwarder to {group['name']}: {str(e)}")
            raise
        logger.info(f"Subscribed forwarder to log group: {group['name']}")

    return groups


def filter_by_retention(groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # A retention of 0 counts as unset, same as a missing value
    return [group for group in groups if not group.get('retention')]


def configure_retention(logs_client, groups: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Set the retention policy on each group
    """
    for group in groups:
        try:
            logs_client.put_retention_policy(
                logGroupName=group['name'],
                retentionInDays=RETENTION_IN_DAYS
            )
        except ClientError as e:
            logger.error(f"Failed to set retention on {group['name']}: {str(e)}")
            raise
        logger.info(f"Set {RETENTION_IN_DAYS} day retention on log group: {group['name']}")

    return groups


def print_groups(groups: List[Dict[str, Any]], title: str) -> List[Dict[str, Any]]:
    logger.info(f"{title} ({len(groups)}): {[group['name'] for group in groups]}")
    return groups


def main(argv: List[str] = None) -> int:
    """
    Main entry point for standalone execution
    """
    parser = argparse.ArgumentParser(description='Subscribe the Sumo Logic forwarder to CloudWatch log groups')
    parser.add_argument('--dry-run', action='store_true',
                        help='List the log groups that would be changed without changing them')

    args = parser.parse_args(argv)

    try:
        result = configure_log_groups(get_logs_client(), dry_run=args.dry_run)
    except (ClientError, ValueError) as e:
        logger.error(f"Error configuring log groups: {str(e)}")
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
