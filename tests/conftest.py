"""
Test configuration and fixtures for unit tests
"""
import pytest
import os
from unittest.mock import patch, Mock
from moto import mock_aws


SUMO_TEST_ENDPOINT = 'https://endpoint1.collection.us2.sumologic.com/receiver/v1/http/ZaVnC4dhaV2'


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
    os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
    os.environ['AWS_SECURITY_TOKEN'] = 'testing'
    os.environ['AWS_SESSION_TOKEN'] = 'testing'
    os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'


@pytest.fixture
def mock_aws_services(aws_credentials):
    """Mock all AWS services."""
    with mock_aws():
        yield


@pytest.fixture
def environment_variables():
    """Set up test environment variables."""
    test_env = {
        'SUMO_ENDPOINT': SUMO_TEST_ENDPOINT,
        'AWS_REGION': 'us-east-1',
        'FORWARDER_FUNCTION_NAME': 'sumo-log-forwarder',
        'FORWARDER_FUNCTION_ARN': 'arn:aws:lambda:us-east-1:123456789012:function:sumo-log-forwarder',
        'RETENTION_IN_DAYS': '3'
    }

    # Store original values
    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield test_env

    # Restore original values
    for key, value in original_env.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def sumo_endpoint():
    """Point the forwarder at a test Sumo Logic HTTP source."""
    with patch('log_forwarder.processor.SUMO_ENDPOINT', SUMO_TEST_ENDPOINT):
        yield SUMO_TEST_ENDPOINT


@pytest.fixture
def mock_sumo_post():
    """Patch requests.post used for delivery; every request answers 200 by default."""
    with patch('log_forwarder.delivery.requests.post') as mock_post:
        mock_post.return_value = Mock(status_code=200)
        yield mock_post

