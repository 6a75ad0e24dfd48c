from datetime import datetime, timedelta

from app.docutrack.db import session_scope
from app.docutrack.modules.notifications.models import Notification
from scripts.check_deadlines import run_sweep


def test_sweep_sends_one_reminder_per_staff_member_per_day(app, client, auth, add_user):
    add_user("staff", "other@example.com")
    today = datetime.utcnow().date()
    tomorrow = (today + timedelta(days=1)).isoformat()
    later = (today + timedelta(days=6)).isoformat()
    client.post("/documents", json={"name": "urgent.txt", "content": "u", "deadline": tomorrow}, headers=auth("client"))
    client.post("/documents", json={"name": "later.txt", "content": "l", "deadline": later}, headers=auth("client"))

    db_url = app.config["DATABASE_URL"]
    assert run_sweep(database_url=db_url, today=today) == 2
    assert run_sweep(database_url=db_url, today=today) == 0

    with session_scope(app) as s:
        reminders = s.query(Notification).filter(Notification.type == "deadline_reminder").all()
    assert sorted(n.to_user for n in reminders) == ["other@example.com", "staff@example.com"]
    assert {n.document_name for n in reminders} == {"urgent.txt"}
    assert all(f"is due on {tomorrow}" in n.message for n in reminders)


def test_sweep_only_reminds_the_assignee(app, client, auth, add_user):
    add_user("staff", "other@example.com")
    today = datetime.utcnow().date()
    tomorrow = (today + timedelta(days=1)).isoformat()
    doc_id = client.post("/documents", json={"name": "urgent.txt", "content": "u"}, headers=auth("client")).json["data"]["id"]
    client.post(
        f"/documents/{doc_id}/assign",
        json={"assignedTo": "other@example.com", "deadline": tomorrow},
        headers=auth("director"),
    )

    assert run_sweep(database_url=app.config["DATABASE_URL"], today=today) == 1

    with session_scope(app) as s:
        reminders = s.query(Notification).filter(Notification.type == "deadline_reminder").all()
    assert [n.to_user for n in reminders] == ["other@example.com"]
