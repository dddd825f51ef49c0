"""flare-ai CLI entry point."""

from flare_ai.cli import app

if __name__ == "__main__":
    app()
