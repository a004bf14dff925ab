# -*- coding:utf8 -*-
import argparse
import io
import logging
import os
import time
from functools import partial
from typing import Dict, Optional

from flask import Flask, Response, jsonify, send_file
from watchdog.observers import Observer

from statusframe.config import ConfigFileHandler, DEFAULT_CONFIG, config_path, load_config, merge_config
from statusframe.logging_config import setup_logging
from statusframe.statusboard import StatusBoard

logger = logging.getLogger(__name__)

NO_CACHE = {"Cache-Control": "no-store, max-age=0"}


def update_app_config(app: Flask, cfg: Dict) -> None:
    app.config["STATUSFRAME"] = cfg


def create_app(config: Optional[Dict] = None) -> Flask:
    app = Flask(__name__)
    app.config["STATUSFRAME"] = merge_config(DEFAULT_CONFIG, config)

    def _board() -> StatusBoard:
        return StatusBoard(app.config["STATUSFRAME"])

    # ------------------------------------------------------------------
    # ROUTES
    # ------------------------------------------------------------------
    @app.route("/")
    def index():
        return Response("statusframe OK - GET /dashboard.png\n", mimetype="text/plain")

    @app.route("/health")
    def health():
        return jsonify({"ok": True})

    @app.route("/dashboard.png")
    def dashboard_png():
        started = time.monotonic()
        try:
            png = _board().generate_image()
        except Exception as exc:
            logger.exception("Render failed")
            return jsonify({"error": str(exc)}), 500
        logger.info("Rendered dashboard.png (%d bytes) in %.2fs", len(png), time.monotonic() - started)
        response = send_file(io.BytesIO(png), mimetype="image/png", download_name="dashboard.png")
        response.headers.update(NO_CACHE)
        return response

    @app.route("/dashboard.svg")
    def dashboard_svg():
        try:
            svg = _board().generate_svg()
        except Exception as exc:
            logger.exception("Render failed")
            return jsonify({"error": str(exc)}), 500
        return Response(svg, mimetype="image/svg+xml", headers=NO_CACHE)

    return app


# ------------------------------------------------------------------
# MAIN
# ------------------------------------------------------------------
def render_once(cfg: Dict, output: str) -> str:
    """Render a single frame and write the PNG to output."""
    png = StatusBoard(cfg).generate_image()
    with open(output, "wb") as f:
        f.write(png)
    logger.info("Wrote %s (%d bytes)", output, len(png))
    return output


def serve(cfg_path: str, cfg: Dict) -> None:
    app = create_app(cfg)

    observer = Observer()
    watch_dir = os.path.dirname(os.path.abspath(cfg_path))
    observer.schedule(ConfigFileHandler(cfg_path, partial(update_app_config, app)), watch_dir, recursive=False)
    observer.start()

    server = cfg.get("server", {})
    host = server.get("host", "0.0.0.0")
    port = int(server.get("port", 1312))
    logger.info("Listening on http://%s:%d/dashboard.png", host, port)
    try:
        app.run(host=host, port=port, use_reloader=False, threaded=True)
    finally:
        observer.stop()
        observer.join()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve or render the statusframe image")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="Run the HTTP server (default)")
    render = commands.add_parser("render", help="Render once and write a PNG file")
    render.add_argument("-o", "--output", default="test-dashboard.png", help="Output PNG path")
    args = parser.parse_args(argv)

    setup_logging()
    cfg_path = config_path()
    cfg = load_config(cfg_path)
    if args.command == "render":
        render_once(cfg, args.output)
        return
    serve(cfg_path, cfg)


if __name__ == "__main__":
    main()
