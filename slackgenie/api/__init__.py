"""Probe and metrics HTTP API for slackgenie."""

from slackgenie.api.app import create_app

__all__ = ["create_app"]
