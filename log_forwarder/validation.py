"""
Validation utilities shared by the forwarder components
"""

from urllib.parse import urlparse

# Override value meaning "do not override"
UNSET_OVERRIDE = 'none'


class ConfigurationError(Exception):
    """Exception for invalid forwarder configuration (fatal, nothing is processed)"""
    pass


def is_override_set(value) -> bool:
    """
    Check whether a metadata override carries a real value.

    Args:
        value: Override value from the environment

    Returns:
        False for None, empty strings and the 'none' sentinel
    """
    return value is not None and value != '' and value != UNSET_OVERRIDE


def validate_sumo_endpoint(endpoint: str) -> str:
    """
    Validate the Sumo Logic HTTP source URL.

    Args:
        endpoint: URL taken from SUMO_ENDPOINT

    Returns:
        The endpoint, unchanged

    Raises:
        ConfigurationError: If the URL is missing, not https, or has no host
    """
    if not endpoint:
        raise ConfigurationError("Invalid SUMO_ENDPOINT environment variable: endpoint is not set")

    parsed = urlparse(endpoint)
    if parsed.scheme != 'https' or not parsed.hostname:
        raise ConfigurationError(f"Invalid SUMO_ENDPOINT environment variable: {endpoint}")

    return endpoint
