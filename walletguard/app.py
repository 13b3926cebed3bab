import logging
import os
from decimal import Decimal

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import select, text
from werkzeug.exceptions import HTTPException

from walletguard.config import Config
from walletguard.db.session import engine, get_session
from walletguard.errors import WalletGuardError
from walletguard.models import Base, WalletAccount
from walletguard.routes import ALL_BLUEPRINTS

logger = logging.getLogger(__name__)

DEMO_ACCOUNTS = (
    ("user-alice", "Alice Reyes", Decimal("150000.00")),
    ("user-bob", "Bob Santos", Decimal("25000.00")),
    ("user-carol", "Carol Cruz", Decimal("5000.00")),
)


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app():
    load_dotenv()
    configure_logging()
    app = Flask(__name__)
    app.config.from_object(Config)
    CORS(app)

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization, X-User-Id, X-User-Role, X-Step-Up-Verified"
        return response

    @app.errorhandler(WalletGuardError)
    def handle_walletguard_error(exc):
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message)
        return jsonify({"status": "error", "message": exc.message}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({"status": "error", "message": exc.description}), exc.code

    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix="/api")

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/db-health", methods=["GET"])
    def db_health():
        try:
            verify_database_connection()
            return jsonify({"status": "ok"})
        except Exception as exc:
            logger.exception("Database health check failed")
            return jsonify({"status": "error", "message": str(exc)}), 500

    with app.app_context():
        init_db()

    return app


def init_db():
    Base.metadata.create_all(bind=engine)
    if Config.SEED_DEMO_DATA:
        seed_data()


def verify_database_connection():
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


def seed_data():
    session = get_session()
    try:
        existing = session.execute(select(WalletAccount)).scalars().all()
        if not existing:
            session.add_all(
                [
                    WalletAccount(user_id=user_id, display_name=name, balance=balance)
                    for user_id, name, balance in DEMO_ACCOUNTS
                ]
            )
            logger.info("Seeded %s demo wallet accounts", len(DEMO_ACCOUNTS))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), debug=Config.FLASK_ENV == "development")
