from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.log import setup_logging
from .core.constants import DEFAULT_CLEANUP_INTERVAL_MINUTES, DEFAULT_TIMEZONE
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_default_admin, ensure_demo_users, list_tables

from .container import Container, build_container
from .employee_schedules.controller import register as register_employee_schedules
from .jobs.scheduler import start_background_jobs
from .notifications.controller import register as register_notifications
from .realtime.controller import register as register_realtime
from .templates.controller import register as register_templates
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the Flask app.

    A prebuilt `container` skips every database bootstrap step and the
    background job, which is how tests run the HTTP layer against fakes.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["JSON_SORT_KEYS"] = False

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
            ensure_default_admin(db_config, admin=getattr(settings, "DEFAULT_ADMIN"))
            ensure_demo_users(db_config)
            logger.info("Demo seed ready")

        container = build_container(
            db_config=db_config,
            timezone=getattr(settings, "TIMEZONE", DEFAULT_TIMEZONE),
        )

        if bool(getattr(settings, "RUN_BACKGROUND_JOBS", False)):
            app.extensions["schedule_maintenance"] = start_background_jobs(
                container.employee_schedule_service,
                int(getattr(settings, "CLEANUP_INTERVAL_MINUTES", DEFAULT_CLEANUP_INTERVAL_MINUTES)),
            )

    app.extensions["container"] = container

    register_users(app, container)
    register_templates(app, container)
    register_employee_schedules(app, container)
    register_notifications(app, container)
    register_realtime(app, container)

    return app
