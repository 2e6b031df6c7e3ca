"""
Question Matcher Service: Main Entry Point
==========================================
Starts the persistent Flask-based matching microservice.

Usage:
    python main.py --corpus questions.json       # Default: 0.0.0.0:5000
    python main.py --port 8000                   # Custom port
    python main.py --debug                       # Debug mode
"""

import argparse
import logging

from quizmatch.server import create_app, app

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Question Matcher Service")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=5000, help="Bind port")
    parser.add_argument(
        "--corpus", default=None,
        help="Question corpus JSON (defaults to $QUIZMATCH_CORPUS)",
    )
    parser.add_argument("--debug", action="store_true", help="Debug mode")
    args = parser.parse_args()

    # create_app() loads the corpus once
    logger.info("Creating Flask app (loads question corpus)...")
    create_app({"CORPUS_PATH": args.corpus} if args.corpus else None)

    logger.info(f"Corpus path: {app.config.get('CORPUS_PATH')}")
    logger.info(f"Starting server on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
