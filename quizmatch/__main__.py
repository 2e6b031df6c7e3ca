"""
Module entry point for: python -m quizmatch

Allows running the matcher directly as a module:
    python -m quizmatch match <text_file> --corpus <corpus.json> [options]
    python -m quizmatch validate <corpus.json>
    python -m quizmatch serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
