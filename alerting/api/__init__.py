"""HTTP surface for the alerting pipeline."""

from alerting.api.app import create_app, start_api_server

__all__ = ["create_app", "start_api_server"]
