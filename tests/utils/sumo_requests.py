"""
Helpers for inspecting requests captured by a patched requests.post
"""

import json
from typing import Dict, List, Any


def posted_bodies(mock_post) -> Dict[str, List[str]]:
    """Map X-Sumo-Name header -> raw NDJSON lines for every recorded POST"""
    bodies = {}
    for call in mock_post.call_args_list:
        headers = call.kwargs['headers']
        bodies[headers['X-Sumo-Name']] = call.kwargs['data'].decode('utf-8').splitlines()
    return bodies


def posted_records(mock_post) -> Dict[str, List[Dict[str, Any]]]:
    """Same as posted_bodies with every line decoded"""
    return {
        name: [json.loads(line) for line in lines]
        for name, lines in posted_bodies(mock_post).items()
    }


def posted_headers(mock_post) -> List[Dict[str, str]]:
    return [call.kwargs['headers'] for call in mock_post.call_args_list]
