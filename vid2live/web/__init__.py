"""Flask application factory for the vid2live HTTP API."""

import tempfile
from pathlib import Path

from flask import Flask, jsonify

from vid2live.store import LibraryAssetStore


def create_app(work_dir: Path | None = None, library: Path | None = None) -> Flask:
    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="vid2live_"))
    app.config["LIBRARY"] = library or Path(app.config["WORK_DIR"]) / "library"
    # One store per app so every conversion shares its write lock
    app.config["STORE"] = LibraryAssetStore(app.config["LIBRARY"])
    app.config["MAX_CONTENT_LENGTH"] = 2 * 1024 * 1024 * 1024  # 2 GB

    from vid2live.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File too large"}), 413

    return app
