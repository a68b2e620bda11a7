"""
Slack Toolkit FastAPI Server - Main Application Entry Point
"""
from slack_toolkit.config.settings import settings, configure_logging
from slack_toolkit.server import create_app, run_server

# Configure logging
configure_logging(settings.logging)

app = create_app(settings)

if __name__ == "__main__":
    run_server(settings)
