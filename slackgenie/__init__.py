"""slackgenie: Kubernetes pod failure alerts delivered to Slack."""

__version__ = "0.1.0"
