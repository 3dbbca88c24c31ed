#!/usr/bin/env python3
"""
Emission Lens Flask API - emissions data from Climate TRACE, chat and search
Run with: python app_flask.py
"""
from datetime import datetime, timezone
import logging

from flask import Flask, Blueprint, current_app, jsonify, request
from flask_cors import CORS

import core
from emissions import round_half_up
from service import EmissionsService, parse_int
from settings import Settings
from tables import AVAILABLE_YEARS, FALLBACK_INDUSTRY_SHARES, INDUSTRIES

logger = logging.getLogger(__name__)

DEFAULT_TREND_COUNTRIES = "CHN,USA,IND,RUS,JPN"

emissions_bp = Blueprint("emissions", __name__, url_prefix="/api/emissions")


def _svc() -> EmissionsService:
    return current_app.config["EMISSIONS_SERVICE"]


def _window():
    since = parse_int(request.args.get("since"), 2023)
    to = parse_int(request.args.get("to"), 2023)
    return since, to


def _country_row(c: dict) -> dict:
    return {
        "country": c["name"],
        "iso_code": c["country"],
        "rank": c["rank"],
        "co2": c["emissions"]["co2"],
        "share_global_co2": c["share"],
    }


@emissions_bp.route("/summary")
def summary():
    since, to = _window()
    data = _svc().get_country_emissions({"since": since, "to": to})
    energy_share = FALLBACK_INDUSTRY_SHARES["Energy"]
    return jsonify({
        "totalEmissions": data["worldTotals"]["co2"],
        "totalIndustries": len(INDUSTRIES),
        "totalCountries": len(data["countries"]),
        "unit": "Million Tonnes CO2",
        "year": data["year"],
        "yearRange": data["yearRange"],
        "topIndustry": {
            "id": "energy",
            "name": "Energy",
            "totalEmissions": round_half_up(data["worldTotals"]["co2"] * energy_share),
            "percentage": f"{energy_share * 100:.1f}",
            "color": "#f59e0b",
            "description": "Power generation, fuel production",
        },
        "source": data["source"],
        "apiStatus": data["apiStatus"],
        "lastUpdated": data["lastUpdated"],
    })


@emissions_bp.route("/countries")
def countries():
    since, to = _window()
    limit = parse_int(request.args.get("limit"), 50)
    data = _svc().get_country_emissions({
        "since": since, "to": to, "limit": limit, "countries": request.args.get("countries") or None,
    })
    rows = []
    for c in data["countries"][:limit]:
        row = _country_row(c)
        row["year"] = data["year"]
        rows.append(row)
    return jsonify(rows)


@emissions_bp.route("/by-region")
def by_region():
    since, to = _window()
    data = _svc().get_regional_emissions({"since": since, "to": to})
    return jsonify({
        "regions": data["regions"],
        "topCountries": [_country_row(c) for c in data["topCountries"]],
        "year": to,
        "yearRange": {"since": since, "to": to},
    })


@emissions_bp.route("/by-industry")
def by_industry():
    since, to = _window()
    data = _svc().get_sector_emissions({"since": since, "to": to, "countries": request.args.get("countries") or None})
    return jsonify({
        "industries": data["industries"],
        "total": data["total"],
        "year": to,
        "yearRange": {"since": since, "to": to},
    })


@emissions_bp.route("/by-sector")
def by_sector():
    since, to = _window()
    data = _svc().get_sector_emissions({"since": since, "to": to, "countries": request.args.get("countries") or None})
    return jsonify({
        "sectors": data["sectors"],
        "total": data["total"],
        "year": to,
        "yearRange": {"since": since, "to": to},
    })


@emissions_bp.route("/trends")
def trends():
    start = parse_int(request.args.get("startYear"), 2019)
    end = parse_int(request.args.get("endYear"), 2023)
    countries = request.args.get("countries") or DEFAULT_TREND_COUNTRIES
    points = _svc().get_emissions_trends({"startYear": start, "endYear": end, "countries": countries})
    return jsonify({
        "trends": points,
        "yearRange": {"startYear": start, "endYear": end},
        "source": "Data Source: Climate TRACE",
    })


@emissions_bp.route("/gases")
def gases():
    since, to = _window()
    limit = parse_int(request.args.get("limit"), 30)
    return jsonify(_svc().get_all_gases_emissions({"since": since, "to": to, "limit": limit}))


@emissions_bp.route("/definitions/countries")
def definitions_countries():
    return jsonify(_svc().get_country_definitions())


@emissions_bp.route("/definitions/sectors")
def definitions_sectors():
    return jsonify(_svc().get_sector_definitions())


@emissions_bp.route("/years")
def years():
    return jsonify({
        "availableYears": list(AVAILABLE_YEARS),
        "defaultYear": AVAILABLE_YEARS[-1],
        "minYear": AVAILABLE_YEARS[0],
        "maxYear": AVAILABLE_YEARS[-1],
    })


def create_app(service: EmissionsService = None, settings: Settings = None) -> Flask:
    settings = settings or Settings()
    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["EMISSIONS_SERVICE"] = service or EmissionsService(settings)
    CORS(app, origins=settings.cors_origins, supports_credentials=True)
    app.register_blueprint(emissions_bp)

    @app.route("/api/health")
    def health():
        svc = app.config["EMISSIONS_SERVICE"]
        return jsonify({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cacheEntries": len(svc.cache),
        })

    @app.route("/api/chat", methods=["POST"])
    def api_chat():
        """Emissions analyst chat"""
        data = request.get_json(silent=True) or {}
        message = data.get("message")
        if not message or not isinstance(message, str):
            return jsonify({"error": "Message is required and must be a string"}), 400
        message = message.strip()
        if not message:
            return jsonify({"error": "Message cannot be empty"}), 400
        if len(message) > core.MAX_MESSAGE_CHARS:
            return jsonify({"error": f"Message too long (max {core.MAX_MESSAGE_CHARS} characters)"}), 400
        result = core.chat_reply(app.config["EMISSIONS_SERVICE"], message, data.get("history"), settings)
        return jsonify(result)

    @app.route("/api/chat/status")
    def api_chat_status():
        return jsonify(core.ai_status(settings))

    @app.route("/api/search", methods=["POST"])
    def api_search():
        """Web search for emissions news"""
        data = request.get_json(silent=True) or {}
        query = data.get("query")
        if not query or not isinstance(query, str):
            return jsonify({"error": "Query is required"}), 400
        return jsonify(core.search_emissions_news(query, settings))

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    settings = Settings()
    app = create_app(settings=settings)
    logger.info("Initializing country name cache...")
    app.config["EMISSIONS_SERVICE"].initialize_country_names()
    logger.info("Emission Lens API running on port %s", settings.port)
    app.run(host="127.0.0.1", port=settings.port, debug=False)
