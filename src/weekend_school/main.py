from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .common.http import register_error_handlers
from .container import Container, build_container
from .core.constants import DEFAULT_SESSION_LIFETIME_DAYS
from .database.bootstrap import apply_schema, ensure_demo_data, list_tables
from .reports.controller import register as register_reports

logger = logging.getLogger("weekend_school")


def create_app(container: Container | None = None) -> Flask:
    """Build the Flask app.

    A prebuilt `container` skips all database setup; tests pass one wired to
    in-memory repositories.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["QR_BOX_SIZE"] = int(getattr(settings, "QR_BOX_SIZE", 10))
    app.permanent_session_lifetime = timedelta(
        days=int(getattr(settings, "SESSION_LIFETIME_DAYS", DEFAULT_SESSION_LIFETIME_DAYS))
    )

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[2] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_data(db_config)
            logger.info("demo seed ready")

        container = build_container(db_config=db_config)

    register_error_handlers(app)
    register_auth(app, container)
    register_attendance(app, container)
    register_reports(app, container)

    return app
