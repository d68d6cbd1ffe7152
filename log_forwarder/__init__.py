"""
CloudWatch Logs to Sumo Logic forwarder
"""

__version__ = '1.0.0'
