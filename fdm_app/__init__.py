# fdm_app/__init__.py

from dotenv import load_dotenv
load_dotenv()  # <-- moet als allereerste regel!

import logging
import os
from flask import Flask

from fdm_app.gebruikers.routes import gebruikers_bp
from fdm_app.bedrijven.routes import bedrijven_bp
from fdm_app.percelen.routes import percelen_bp
from fdm_app.teelten.routes import teelten_bp
from fdm_app.oogsten.routes import oogsten_bp
from fdm_app.meststoffen.routes import meststoffen_bp
from fdm_app.bemestingen.routes import bemestingen_bp
from fdm_app.grondmonsters.routes import grondmonsters_bp
from fdm_app.gebruiksnormen.routes import gebruiksnormen_bp
from fdm_app.balans.routes import balans_bp
from fdm_app.advies.routes import advies_bp
from fdm_app.universele_data.routes import universele_data_bp
from fdm_app.dashboard.routes import dashboard_bp
from fdm_app.rapportage.routes import rapportage_bp

import fdm_app.models.database_beheer as db


def create_app(test_config=None):
    # Maak de Flask app
    app = Flask(__name__)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Secret key (haal vanuit .env)
    app.secret_key = os.getenv("SECRET_KEY", "dev_key_change_me")

    app.config["NMI_API_KEY"] = os.getenv("NMI_API_KEY")
    app.config["GEBIEDEN_DATA_DIR"] = os.getenv(
        "GEBIEDEN_DATA_DIR", os.path.join(app.root_path, "static", "data")
    )

    if test_config:
        app.config.update(test_config)

    # DB init, niet in tests
    if not app.config.get("TESTING"):
        db.init_db()

    # Register alle blueprints
    app.register_blueprint(gebruikers_bp)
    app.register_blueprint(bedrijven_bp)
    app.register_blueprint(percelen_bp)
    app.register_blueprint(teelten_bp)
    app.register_blueprint(oogsten_bp)
    app.register_blueprint(meststoffen_bp)
    app.register_blueprint(bemestingen_bp)
    app.register_blueprint(grondmonsters_bp)
    app.register_blueprint(gebruiksnormen_bp)
    app.register_blueprint(balans_bp)
    app.register_blueprint(advies_bp)
    app.register_blueprint(universele_data_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(rapportage_bp)

    return app
