"""HTTP endpoints for the scheduled analysis and ticker list administration.

Usage:
    python -m trendwatch.sma.server --port 8000

Routes:
    GET|POST /api/trading-bot       run the analysis and send the Telegram report
    GET      /api/tickers           current ticker list and its source
    PUT      /api/tickers           replace the ticker list
    POST     /api/tickers/preview   analyze a single ticker
    GET      /health
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from .charts import summary_chart_url
from .config import Settings
from .errors import (
    ConfigurationMissingError,
    InvalidTickerListError,
    TickerNotFoundError,
    TrendwatchError,
)
from .notifiers import TelegramNotifier
from .report_generator import ReportGenerator
from .runner import AnalyzeFn, analyze, analyze_batch
from .tickers import TickerSource, build_ticker_source, validate_tickers

logger = logging.getLogger(__name__)

NotifierFactory = Callable[[Settings], TelegramNotifier]

_TRUTHY = {"1", "true", "yes", "on"}


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def is_scheduler_request(headers) -> bool:
    """Heuristic for calls made by the Vercel cron scheduler."""
    user_agent = headers.get("User-Agent", "") or ""
    return "vercel-cron" in user_agent or bool(headers.get("x-vercel-cron"))


def is_authorized(headers, cron_secret: Optional[str]) -> bool:
    """Scheduler calls must carry the cron secret; manual calls are let through."""
    if not cron_secret or not is_scheduler_request(headers):
        return True
    return headers.get("Authorization") == f"Bearer {cron_secret}"


def create_app(
    settings: Optional[Settings] = None,
    *,
    ticker_source: Optional[TickerSource] = None,
    analyze_fn: Optional[AnalyzeFn] = None,
    notifier_factory: Optional[NotifierFactory] = None,
) -> Flask:
    settings = settings or Settings.from_env()
    ticker_source = ticker_source or build_ticker_source(settings)
    analyze_fn = analyze_fn or analyze
    notifier_factory = notifier_factory or TelegramNotifier.from_settings

    app = Flask(__name__)
    app.config["TRENDWATCH_SETTINGS"] = settings

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/trading-bot", methods=["GET", "POST"])
    def trading_bot():
        if not is_authorized(request.headers, settings.cron_secret):
            return jsonify({"error": "Unauthorized"}), 401

        dry_run = (request.args.get("dry_run") or "").lower() in _TRUTHY
        logger.info("Starting weekly market analysis (dry_run=%s)", dry_run)

        try:
            tickers = ticker_source.fetch().tickers
            batch = analyze_batch(tickers, analyze_fn=analyze_fn)
        except Exception as exc:
            logger.exception("Market analysis failed")
            return jsonify({
                "success": False,
                "error": "analysis_failed",
                "message": str(exc),
                "timestamp": _now_iso(),
            }), 500

        chart_url = summary_chart_url(batch.analyzed)
        payload = {
            "timestamp": _now_iso(),
            **batch.to_dict(),
            "chart_url": chart_url,
        }

        if dry_run:
            payload.update(success=True, message="Analysis completed (dry run, nothing sent)")
            return jsonify(payload)

        try:
            notifier = notifier_factory(settings)
            notifier.send_message(ReportGenerator().generate(batch.signals))
            notifier.send_photo(chart_url, caption="Weekly Market Analysis Summary")
        except Exception as exc:
            logger.error("Failed to send Telegram notification: %s", exc)
            payload.update(
                success=False,
                error="delivery_failed",
                message=str(exc),
                configuration_missing=isinstance(exc, ConfigurationMissingError),
            )
            return jsonify(payload), 502

        logger.info("Weekly report sent to Telegram")
        payload.update(success=True, message="Weekly market analysis completed and sent to Telegram")
        return jsonify(payload)

    @app.get("/api/tickers")
    def get_tickers():
        try:
            return jsonify(ticker_source.fetch().to_dict())
        except TrendwatchError as exc:
            logger.error("Error fetching tickers: %s", exc)
            return jsonify({"tickers": [], "source": ticker_source.name, "error": str(exc)}), 500

    @app.put("/api/tickers")
    def put_tickers():
        body = request.get_json(silent=True) or {}
        try:
            tickers = validate_tickers(body.get("tickers") if isinstance(body, dict) else None)
            updated = ticker_source.update(tickers)
        except InvalidTickerListError as exc:
            return jsonify({"success": False, "error": str(exc)}), 400
        except ConfigurationMissingError as exc:
            return jsonify({"success": False, "error": str(exc), "fallback_available": True}), 503
        except TrendwatchError as exc:
            logger.error("Error updating tickers: %s", exc)
            return jsonify({"success": False, "error": str(exc)}), 500

        return jsonify({
            "success": True,
            "tickers": updated.tickers,
            "source": updated.source,
            "message": f"Tickers updated successfully in {updated.source}",
        })

    @app.post("/api/tickers/preview")
    def preview_ticker():
        body = request.get_json(silent=True) or {}
        raw = body.get("ticker") if isinstance(body, dict) else None
        if not isinstance(raw, str):
            return jsonify({"success": False, "error": "Ticker symbol is required and must be a string"}), 400
        ticker = raw.strip().upper()
        if not ticker:
            return jsonify({"success": False, "error": "Ticker symbol cannot be empty"}), 400

        try:
            signal = analyze_fn(ticker)
        except TickerNotFoundError:
            return jsonify({
                "success": False,
                "error": f'Ticker "{ticker}" not found. Please verify the symbol is correct.',
            }), 404
        except Exception as exc:
            logger.error("Error previewing %s: %s", ticker, exc)
            return jsonify({"success": False, "error": str(exc)}), 500

        data = signal.to_dict()
        data["reason"] = signal.reason
        return jsonify({"success": True, "ticker": ticker, "data": data})

    return app


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the SMA signal endpoints")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    load_dotenv()

    app = create_app(Settings.from_env())
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
