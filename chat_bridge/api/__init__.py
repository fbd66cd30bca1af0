"""
API Package - HTTP surface of the bridge.
"""
