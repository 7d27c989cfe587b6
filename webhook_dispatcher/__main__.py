"""Main entry point for the webhook dispatcher package."""

from webhook_dispatcher.cli import cli

if __name__ == "__main__":
    cli()
