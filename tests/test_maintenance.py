from datetime import timedelta

from smartmarks.extensions import db
from smartmarks.jobs.scheduler import run_maintenance
from smartmarks.models import ChangeEvent, SessionToken, utcnow
from smartmarks.services.changes import head_cursor, wait_for_changes
from smartmarks.services.sessions import revoke_user_sessions
from smartmarks.services.store import insert_bookmark


def test_maintenance_purges_old_events_and_dead_sessions(app, make_user):
    alice_id, _ = make_user("alice")
    bob_id, _ = make_user("bob")

    with app.app_context():
        insert_bookmark(alice_id, "Old", "old.example")
        insert_bookmark(alice_id, "New", "new.example")
        old_event = ChangeEvent.query.order_by(ChangeEvent.id.asc()).first()
        old_event.created_at = utcnow() - timedelta(hours=100)
        db.session.commit()
        revoke_user_sessions(bob_id)

    run_maintenance(app)

    with app.app_context():
        assert ChangeEvent.query.count() == 1
        assert [row.user_id for row in SessionToken.query.all()] == [alice_id]
        assert head_cursor(alice_id) == 2


def test_wait_for_changes_returns_pending_events_immediately(app, make_user):
    alice_id, _ = make_user("alice")

    with app.app_context():
        insert_bookmark(alice_id, "One", "one.example")
        events = wait_for_changes(alice_id, 0, timeout=5, poll_interval=0.01)

    assert [event.action for event in events] == ["INSERT"]
