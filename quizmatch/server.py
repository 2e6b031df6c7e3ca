"""
HTTP Microservice
=================
Flask-based HTTP API for the question matcher.

The photo/OCR front end posts the recognized text here and renders the
returned candidates.

Endpoints:
    POST   /api/match              → Match OCR text against the corpus
    GET    /api/questions/<id>     → Get a single corpus question
    GET    /api/search?q=<kw>      → Plain substring search
    GET    /api/health             → Health check
    GET    /api/info               → Matcher version info
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .corpus import CorpusError, QuestionBank
from .engine import MatcherConfig, MatcherEngine

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# ─── Corpus (loaded once, read-only afterwards) ───────────────────────────────

_bank: Optional[QuestionBank] = None
_bank_lock = threading.Lock()


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    global _bank

    if config:
        app.config.update(config)

    app.config.setdefault("CORPUS_PATH", os.environ.get("QUIZMATCH_CORPUS"))
    app.config.setdefault("MATCH_THRESHOLD", 0.25)
    app.config.setdefault("MATCH_WORKERS", 1)
    app.config.setdefault("MAX_TEXT_LENGTH", 10_000)

    with _bank_lock:
        _bank = _load_bank(app.config["CORPUS_PATH"])

    return app


def _load_bank(corpus_path: Optional[str]) -> QuestionBank:
    if not corpus_path:
        logger.warning("No corpus path configured; matching will return nothing")
        return QuestionBank()
    try:
        return QuestionBank.from_file(corpus_path)
    except (FileNotFoundError, CorpusError) as e:
        logger.error(f"Failed to load corpus: {e}")
        return QuestionBank()


def get_bank() -> QuestionBank:
    with _bank_lock:
        return _bank if _bank is not None else QuestionBank()


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    bank = get_bank()
    return jsonify({
        "status": "healthy",
        "service": "quizmatch",
        "version": __version__,
        "corpus_loaded": bank.count() > 0,
        "corpus_size": bank.count(),
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Matcher version and tuning info."""
    config = MatcherConfig()
    return jsonify({
        "version": __version__,
        "threshold": app.config.get("MATCH_THRESHOLD", config.threshold),
        "high_confidence": config.high_confidence,
        "fallback_limit": config.fallback_limit,
        "weights": {
            "edit": config.weights.edit,
            "keyword": config.weights.keyword,
        },
        "corrections_version": config.corrections.version,
    })


# ─── Match Endpoint ───────────────────────────────────────────────────────────


@app.route("/api/match", methods=["POST"])
def match():
    """
    Match OCR text against the corpus.

    JSON body:
        text: Newline-separated OCR lines (required)
        threshold: Minimum similarity override (optional, 0..1)
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")

    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "Provide JSON with non-empty 'text'"}), 400
    if len(text) > app.config["MAX_TEXT_LENGTH"]:
        return jsonify({"error": "Text too long"}), 413

    threshold = data.get("threshold", app.config["MATCH_THRESHOLD"])
    try:
        threshold = float(threshold)
    except (TypeError, ValueError):
        return jsonify({"error": f"Invalid threshold: {threshold!r}"}), 400
    if not 0.0 <= threshold <= 1.0:
        return jsonify({"error": "threshold must be within [0, 1]"}), 400

    config = MatcherConfig(
        threshold=threshold,
        workers=int(app.config["MATCH_WORKERS"]),
        log_level=app.config.get("LOG_LEVEL", "INFO"),
    )
    report = MatcherEngine(config).match(text, get_bank().all())
    return jsonify(report.model_dump(mode="json")), 200


# ─── Corpus Endpoints ─────────────────────────────────────────────────────────


@app.route("/api/questions/<int:question_id>", methods=["GET"])
def get_question(question_id: int):
    """Get a single question by id."""
    record = get_bank().get(question_id)
    if record is None:
        return jsonify({"error": f"Question {question_id} not found"}), 404
    return jsonify(record.model_dump(mode="json"))


@app.route("/api/search", methods=["GET"])
def search():
    """Plain substring search over stems and options."""
    keyword = request.args.get("q", "").strip()
    if not keyword:
        return jsonify({"error": "Query parameter 'q' is required"}), 400

    hits = get_bank().search(keyword)
    return jsonify({
        "query": keyword,
        "total": len(hits),
        "questions": [r.model_dump(mode="json") for r in hits],
    })


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    corpus_path: Optional[str] = None,
    debug: bool = False,
):
    """Start the microservice server."""
    config = {"CORPUS_PATH": corpus_path} if corpus_path else None
    create_app(config)
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
