"""Entry point for msg2eml CLI."""

from msg2eml.cli.commands import cli


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
