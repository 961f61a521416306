"""Allow running as `python -m gputune`."""

from .cli import cli

if __name__ == "__main__":
    cli()
