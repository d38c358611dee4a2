from collections import Counter
from datetime import date

from dateutil.relativedelta import relativedelta
from flask import Blueprint

from ..extensions import db
from ..models import JournalEntry
from ..consts import MOODS
from ..utils import (
    csrf_protect,
    login_required,
    respond,
    get_payload,
    require_fields,
    as_choice,
    as_date_string,
    as_string_list,
    query_int,
    to_date,
)

journal_bp = Blueprint("journal", __name__)


def _entry_fields(data):
    require_fields(data, "title", "content", "mood", "date")
    return {
        "title": str(data["title"]).strip(),
        "content": data["content"],
        "mood": as_choice(data["mood"], "mood", MOODS),
        "tags": [t.strip() for t in as_string_list(data.get("tags"), "tags") if t.strip()],
        "date": as_date_string(data["date"], "date"),
    }


def summarize_entries(entries, months=6, today=None):
    """
    Counting statistics over journal entries.

    Args:
        entries (list[dict]): Serialized entries.
        months (int): Length of the entries-per-month series, ending with
            the current month.

    Returns:
        dict: total, moodFrequency (every mood, zero-filled), topTags and
            entriesPerMonth ([{month: 'YYYY-MM', count}], oldest first).
    """
    today = today or date.today()
    moods = Counter(entry["mood"] for entry in entries)
    tags = Counter(tag for entry in entries for tag in entry.get("tags") or [])
    per_month = Counter(to_date(entry["date"]).strftime("%Y-%m") for entry in entries)

    first_month = today.replace(day=1) - relativedelta(months=months - 1)
    series = []
    for i in range(months):
        month = (first_month + relativedelta(months=i)).strftime("%Y-%m")
        series.append({"month": month, "count": per_month.get(month, 0)})

    return {
        "total": len(entries),
        "moodFrequency": {mood: moods.get(mood, 0) for mood in MOODS},
        "topTags": [{"tag": tag, "count": count} for tag, count in tags.most_common(10)],
        "entriesPerMonth": series,
    }


@journal_bp.route("/", methods=["GET"])
@login_required
def get_entries(user):
    entries = (
        JournalEntry.query.filter_by(user_id=user.id)
        .order_by(JournalEntry.date.desc(), JournalEntry.id.desc())
        .all()
    )
    return respond(True, "Journal entries retrieved successfully", [e.to_dict() for e in entries])


@journal_bp.route("/", methods=["POST"])
@csrf_protect
@login_required
def create_entry(user):
    entry = JournalEntry(user_id=user.id, **_entry_fields(get_payload()))
    db.session.add(entry)
    db.session.commit()
    return respond(True, "Journal entry created successfully", entry.to_dict(), 201)


@journal_bp.route("/<int:entry_id>", methods=["PUT"])
@csrf_protect
@login_required
def update_entry(user, entry_id):
    entry = db.session.get(JournalEntry, entry_id)
    if not entry or entry.user_id != user.id:
        return respond(False, "Journal entry not found", status=404)
    for column, value in _entry_fields(get_payload()).items():
        setattr(entry, column, value)
    db.session.commit()
    return respond(True, "Journal entry updated successfully", entry.to_dict())


@journal_bp.route("/<int:entry_id>", methods=["DELETE"])
@csrf_protect
@login_required
def delete_entry(user, entry_id):
    entry = db.session.get(JournalEntry, entry_id)
    if not entry or entry.user_id != user.id:
        return respond(False, "Journal entry not found", status=404)
    db.session.delete(entry)
    db.session.commit()
    return respond(True, "Journal entry deleted successfully")


@journal_bp.route("/stats", methods=["GET"])
@login_required
def get_stats(user):
    entries = [e.to_dict() for e in JournalEntry.query.filter_by(user_id=user.id).all()]
    months = query_int("months", 6, maximum=36)
    return respond(True, "Journal statistics", summarize_entries(entries, months))
