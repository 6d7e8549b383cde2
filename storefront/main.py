# storefront/main.py
import logging
import time

from flask import Flask, request, jsonify, g
from werkzeug.exceptions import HTTPException

from storefront.config import Config
from storefront.database import close_db, engine, SessionLocal
from storefront.models import Base
from storefront.blueprints import require_admin
from storefront.blueprints.orders import orders_bp
from storefront.blueprints.promotions import promotions_bp
from storefront.observability import (
    configure_logging,
    ensure_request_id,
    increment_counter,
    observe_latency,
    get_metrics_snapshot,
    check_database_health,
)
from storefront.services.promotion_settings_service import PromotionSettingsService

app = Flask(__name__)
Config.configure_app(app)
app.json.ensure_ascii = False
configure_logging(app)
app.register_blueprint(promotions_bp)
app.register_blueprint(orders_bp)

logger = logging.getLogger(__name__)


def init_database():
    """Create tables and seed the single-row promotion settings."""
    try:
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            PromotionSettingsService(db).seed_defaults()
        finally:
            db.close()
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.exception("Error initializing database: %s", e)


init_database()


@app.before_request
def before_request_logging():
    g.request_started_at = time.perf_counter()
    g.request_id = ensure_request_id()
    increment_counter(
        "http_requests_total",
        labels={
            "method": request.method,
            "endpoint": request.endpoint or request.path,
        },
    )


@app.after_request
def after_request_logging(response):
    response.headers[Config.REQUEST_ID_HEADER] = getattr(g, "request_id", "")
    started = getattr(g, "request_started_at", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000
        observe_latency(
            "http_request_latency_ms",
            duration_ms,
            labels={
                "method": request.method,
                "endpoint": request.endpoint or request.path,
                "status": str(response.status_code),
            },
        )
    if response.status_code >= 500:
        increment_counter(
            "http_errors_total",
            labels={
                "method": request.method,
                "endpoint": request.endpoint or request.path,
                "status": str(response.status_code),
            },
        )
        logger.error("Request finished with error status %s", response.status_code)
    else:
        logger.info("Request finished", extra={"status_code": response.status_code})
    return response


@app.teardown_appcontext
def teardown_db(exception):
    close_db(exception)


@app.errorhandler(HTTPException)
def http_error(error):
    return jsonify({"error": error.name}), error.code


@app.route('/health', methods=['GET'])
def health():
    db_status = check_database_health()
    overall = "UP" if db_status.get("status") == "UP" else "DEGRADED"
    status_code = 200 if overall == "UP" else 503
    return jsonify({
        "status": overall,
        "components": {
            "database": db_status
        }
    }), status_code


@app.route('/admin/metrics', methods=['GET'])
def admin_metrics():
    require_admin()
    return jsonify(get_metrics_snapshot())
