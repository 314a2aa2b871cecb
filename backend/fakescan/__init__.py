# fakescan/__init__.py
"""
App factory for the fake Harbor scanner adapter.

    - Config from defaults, YAML file and environment (see fakescan.config)
    - Logging level from the debug flag; werkzeug access log per server.accessLog
    - Vulnerability database and scan orchestrator built once per app
    - JSON error bodies of the form {"error": {"message": ...}}
"""

from __future__ import annotations

import logging
import traceback
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .api import api_bp
from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .extensions import init_extensions
from .scanner import ScanOrchestrator

__version__ = "1.0.0"

error_logger = logging.getLogger("fakescan.errors")


def configure_logging(debug: bool = False, access_log: bool = True) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Werkzeug logs every request
    logging.getLogger("werkzeug").setLevel(logging.INFO if access_log else logging.WARNING)
    # Quieten noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("faker").setLevel(logging.WARNING)


def create_app(
    cfg: Optional[Config] = None,
    debug: bool = False,
    orchestrator: Optional[ScanOrchestrator] = None,
) -> Flask:
    if cfg is None:
        cfg = load_config(DEFAULT_CONFIG_PATH)

    configure_logging(debug=debug, access_log=cfg.server.access_log)

    app = Flask(__name__)
    app.logger.setLevel(logging.DEBUG if debug else logging.INFO)
    app.config["FAKESCAN"] = cfg

    if cfg.server.timeout > 0:
        app.logger.warning(
            "server.timeout=%ss is not enforced by the built-in server; "
            "set it on the proxy or WSGI server in front of the scanner",
            cfg.server.timeout,
        )

    # ── Extensions ───────────────────────────────────────────────────
    init_extensions(app, cfg, orchestrator)

    # ── Blueprints ───────────────────────────────────────────────────
    app.register_blueprint(api_bp)

    # ── Global Error Handlers ────────────────────────────────────────
    # Every error body has the shape {"error": {"message": "..."}}.

    def _error(message: str, status: int):
        return jsonify(error={"message": message}), status

    @app.errorhandler(400)
    def bad_request(e):
        return _error(str(e.description) if hasattr(e, "description") else "bad request", 400)

    @app.errorhandler(404)
    def not_found(e):
        return _error("The requested resource was not found.", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error("This HTTP method is not allowed for this endpoint.", 405)

    @app.errorhandler(Exception)
    def catch_all(e):
        if isinstance(e, HTTPException):
            return _error(e.description or e.name, e.code or 500)
        error_logger.error("Unhandled exception: %s\n%s", str(e), traceback.format_exc())
        return _error("An unexpected error occurred.", 500)

    # Health check
    @app.get("/health")
    def health():
        return jsonify(status="up and running"), 200

    return app


__all__ = ["create_app", "configure_logging", "__version__"]
