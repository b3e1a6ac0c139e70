import os
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from smartmarks.models import utcnow
from smartmarks.services.changes import purge_changes
from smartmarks.services.sessions import purge_expired_sessions


scheduler = BackgroundScheduler()


def run_maintenance(app):
    with app.app_context():
        cutoff = utcnow() - timedelta(hours=app.config["CHANGE_RETENTION_HOURS"])
        events = purge_changes(cutoff)
        sessions = purge_expired_sessions()
        if events or sessions:
            app.logger.info(
                "Maintenance purged %s change events and %s session tokens",
                events,
                sessions,
            )


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    interval_minutes = app.config["MAINTENANCE_INTERVAL_MINUTES"]
    if not scheduler.get_jobs():
        scheduler.add_job(
            run_maintenance,
            "interval",
            minutes=interval_minutes,
            kwargs={"app": app},
            id="maintenance",
            replace_existing=True,
        )
        scheduler.start()
