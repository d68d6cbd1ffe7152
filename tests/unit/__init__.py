"""
Unit tests, no network or AWS access required
"""
