"""
mongo-images Integration Tests

These tests start real MongoDB containers through Docker, pulling images on
first use, and talk to them with pymongo. They are skipped when no Docker
daemon is reachable.
"""
