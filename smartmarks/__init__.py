from flask import Flask

from smartmarks.api import api_bp
from smartmarks.auth import auth_bp, register_oauth_providers
from smartmarks.config import Config
from smartmarks.extensions import db, login_manager, migrate, oauth
from smartmarks.jobs.scheduler import start_scheduler
from smartmarks.web import web_bp


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    oauth.init_app(app)
    register_oauth_providers(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Smartmarks database.")

    @app.context_processor
    def inject_globals():
        return {"app_name": "Smart Bookmark App"}

    with app.app_context():
        db.create_all()

    start_scheduler(app)
    return app
