"""
Tests for the CloudWatch Logs to Sumo Logic forwarder
"""
