"""Logging and metrics for slackgenie."""
