from flask import Flask, jsonify, request
from flask_cors import CORS
from models import db, Category, TimeEntry, DailyWorkTime
from logic import (
    parse_time_input, round_to_quarter_hour, format_decimal_hours, get_day_status,
    get_time_difference, get_status_message, sum_entry_hours, summarize_month
)
from validation import validate_submission
import math
import os
import shutil
import time
from datetime import datetime, date, timedelta
import calendar
from sqlalchemy.exc import SQLAlchemyError
import re
import logging
from logging.handlers import TimedRotatingFileHandler

app = Flask(__name__)
CORS(app)

# --- PFADE & ORDNER ---
basedir = os.path.abspath(os.path.dirname(__file__))
data_dir = os.environ.get('TIMETRACKER_DATA_DIR', os.path.join(basedir, 'data'))
db_path = os.path.join(data_dir, 'database.db')
log_dir = os.path.join(data_dir, 'logs')
backup_dir = os.path.join(data_dir, 'backups')
backup_days = int(os.environ.get('TIMETRACKER_BACKUP_DAYS', 180))

for directory in [data_dir, log_dir, backup_dir]:
    os.makedirs(directory, exist_ok=True)

# --- 1. LOGGING KONFIGURATION (Log-Rotation) ---
# Rotiert alle 30 Tage, behält max. 6 alte Dateien
log_file = os.path.join(log_dir, 'tracker.log')
log_handler = TimedRotatingFileHandler(log_file, when='D', interval=30, backupCount=6)
log_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
app.logger.addHandler(log_handler)
app.logger.setLevel(logging.INFO)

# --- DB KONFIGURATION ---
app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{db_path}'
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
db.init_app(app)


# --- 2. DATENBANK BACKUPS (Backup-Rotation) ---
def perform_daily_backup():
    """Kopiert die SQLite Datei einmal pro Tag und räumt Backups außerhalb der Aufbewahrung weg."""
    backup_file = os.path.join(backup_dir, f"db_backup_{date.today()}.db")
    if os.path.exists(backup_file) or not os.path.exists(db_path):
        return

    try:
        # copy statt copy2: das Backup bekommt die aktuelle mtime, sonst räumt die Rotation es sofort weg
        shutil.copy(db_path, backup_file)
        app.logger.info(f"Backup erstellt: {backup_file}")
        cutoff = time.time() - backup_days * 86400
        for name in os.listdir(backup_dir):
            path = os.path.join(backup_dir, name)
            if os.path.isfile(path) and os.stat(path).st_mtime < cutoff:
                os.remove(path)
                app.logger.info(f"Altes Backup gelöscht: {name}")
    except OSError as e:
        app.logger.error(f"Fehler beim DB-Backup: {e}", exc_info=True)

@app.before_request
def before_request_hook():
    perform_daily_backup()


# --- STAMMDATEN ---
DEFAULT_CATEGORIES = [
    {"name": "Daily Standup", "description": "Tägliches Team-Standup", "color": "#3b82f6", "kind": "time"},
    {"name": "Internes Meeting", "description": "Interne Besprechungen", "color": "#8b5cf6", "kind": "time"},
    {"name": "Code Review", "description": "Pull Requests prüfen", "color": "#10b981", "kind": "time"},
    {"name": "Dokumentation", "description": "Doku schreiben und pflegen", "color": "#f59e0b", "kind": "time"},
    {"name": "Weiterbildung", "description": "Schulungen und Lernen", "color": "#ef4444", "kind": "time"},
    {"name": "Krankheit", "description": "Krankheitsbedingte Abwesenheit", "color": "#6b7280", "kind": "day"},
    {"name": "Urlaub", "description": "Geplante Abwesenheit", "color": "#06b6d4", "kind": "day"},
    {"name": "Recherche", "description": "Recherche und Analyse", "color": "#84cc16", "kind": "time"},
]

def seed_default_categories():
    if Category.query.first(): return
    for data in DEFAULT_CATEGORIES:
        db.session.add(Category(**data))
    db.session.commit()
    app.logger.info(f"{len(DEFAULT_CATEGORIES)} Standard-Kategorien angelegt.")


# --- VALIDIERUNGS-HELPER ---
def is_valid_date(date_str):
    if not re.match(r'^\d{4}-\d{2}-\d{2}$', str(date_str)): return False
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
        return True
    except ValueError:
        return False

def is_valid_jira_key(key): return bool(re.match(r'^[A-Z][A-Z0-9]*-\d+$', str(key)))
ENTRY_TYPES = ['jira', 'category']
CATEGORY_KINDS = ['time', 'day']

def error(message, status=400, **extra):
    return jsonify({"success": False, "message": message, **extra}), status

def read_hours(d, allow_zero=False):
    """
    Liest Stunden aus 'time' (Freitext wie '2h30m') oder 'hours' (Zahl).
    Rückgabe: (stunden, fehlertext). Stunden sind hier noch NICHT gerundet.
    """
    if d.get('time') not in (None, ''):
        parsed = parse_time_input(d.get('time'))
        if not parsed["valid"]: return None, "Ungültige Zeitangabe (z.B. 2h30m, 2h oder 45m)"
        return parsed["hours"], None

    if d.get('hours') is None: return None, None
    try:
        hours = float(d.get('hours'))
    except (TypeError, ValueError):
        return None, "Stunden müssen eine Zahl sein"
    if not math.isfinite(hours): return None, "Stunden müssen eine Zahl sein"
    if hours < 0 or (hours == 0 and not allow_zero):
        return None, "Stunden müssen positiv sein"
    return hours, None

def serialize_entry(e):
    return {
        "id": e.id, "date": e.date, "end_date": e.end_date, "hours": e.hours,
        "display": format_decimal_hours(e.hours) if e.hours else "",
        "description": e.description or "", "jira_key": e.jira_key,
        "jira_billing_package": e.jira_billing_package, "category_id": e.category_id,
        "category": e.category.to_dict() if e.category else None,
        "created_at": e.created_at.isoformat() if e.created_at else None
    }

def commit_or_500(action):
    try:
        db.session.commit()
        return None
    except SQLAlchemyError as e:
        db.session.rollback()
        app.logger.error(f"DB-Fehler bei {action}: {e}", exc_info=True)
        return error("Ein Fehler ist beim Speichern aufgetreten.", 500)


# --- APP STARTUP ---
with app.app_context():
    db.create_all()
    seed_default_categories()
    app.logger.info("Anwendung erfolgreich gestartet.")


# --- TAGES-ABGLEICH ---
def load_days(start_str, end_str):
    """
    Einträge und Bürozeiten eines Zeitraums, gruppiert nach Datum.
    Tagesbasierte Zeiträume (z.B. Urlaub 22.-26.) zählen an jedem Tag des Zeitraums,
    Stunden-Einträge nur an ihrem Startdatum.
    """
    entries = TimeEntry.query.filter(
        TimeEntry.date <= end_str,
        db.func.coalesce(TimeEntry.end_date, TimeEntry.date) >= start_str
    ).all()
    entries_by_date = {}
    for e in entries:
        if e.hours is None and e.end_date and e.end_date > e.date:
            curr = datetime.strptime(max(e.date, start_str), "%Y-%m-%d").date()
            last = datetime.strptime(min(e.end_date, end_str), "%Y-%m-%d").date()
            days = []
            while curr <= last:
                days.append(str(curr))
                curr += timedelta(days=1)
        elif start_str <= e.date <= end_str:
            days = [e.date]
        else:
            days = []
        for d in days:
            if d not in entries_by_date: entries_by_date[d] = []
            entries_by_date[d].append(e)

    office = DailyWorkTime.query.filter(DailyWorkTime.date >= start_str, DailyWorkTime.date <= end_str).all()
    office_map = {o.date: o.total_hours for o in office}
    return entries_by_date, office_map

def build_day(date_obj, day_entries, office_time, today):
    task_hours = sum_entry_hours(day_entries)
    status = get_day_status(date_obj, day_entries, office_time, today=today)
    difference = get_time_difference(task_hours, office_time)
    return {
        "date": str(date_obj), "weekday_index": date_obj.weekday(),
        "entries": [serialize_entry(e) for e in day_entries],
        "office_time": office_time,
        "office_display": format_decimal_hours(office_time) if office_time else "",
        "total_task_hours": round(task_hours, 2),
        "total_task_display": format_decimal_hours(task_hours),
        "status": status, "difference": difference,
        "status_message": get_status_message(status, difference)
    }


# --- API ROUTEN ---

@app.route('/api/categories', methods=['GET', 'POST'])
def handle_categories():
    if request.method == 'GET':
        return jsonify([c.to_dict() for c in Category.query.order_by(Category.name).all()])

    data = request.json
    if not isinstance(data, dict) or not data: return error("Keine Daten empfangen")
    name = str(data.get('name') or '').strip()
    if not name: return error("Name fehlt")
    kind = data.get('kind', 'time')
    if kind not in CATEGORY_KINDS: return error("Ungültige Art (time oder day)")
    if Category.query.filter_by(name=name).first(): return error("Kategorie existiert bereits")

    category = Category(name=name, description=data.get('description'), color=data.get('color'), kind=kind)
    db.session.add(category)
    failed = commit_or_500("Kategorie anlegen")
    if failed: return failed
    app.logger.info(f"Kategorie angelegt: {name} ({kind})")
    return jsonify({"success": True, "category": category.to_dict()})

@app.route('/api/categories/<int:id>', methods=['DELETE'])
def delete_category(id):
    category = db.session.get(Category, id)
    if not category: return error("Nicht gefunden", 404)
    db.session.delete(category)
    failed = commit_or_500("Kategorie löschen")
    if failed: return failed
    app.logger.info(f"Kategorie {id} inkl. Einträgen gelöscht.")
    return jsonify({"success": True})

@app.route('/api/time-entries', methods=['GET'])
def get_time_entries():
    query = TimeEntry.query
    day = request.args.get('date')
    start, end = request.args.get('start_date'), request.args.get('end_date')

    if day:
        if not is_valid_date(day): return error("Ungültiges Datum")
        query = query.filter(TimeEntry.date == day)
    elif start and end:
        if not is_valid_date(start) or not is_valid_date(end): return error("Ungültiger Zeitraum")
        query = query.filter(TimeEntry.date >= start, TimeEntry.date <= end)

    entries = query.order_by(TimeEntry.created_at.desc(), TimeEntry.id.desc()).all()
    return jsonify([serialize_entry(e) for e in entries])

@app.route('/api/time-entries', methods=['POST'])
def create_time_entry():
    d = request.json
    if not isinstance(d, dict) or not d: return error("Keine Daten empfangen")
    if d.get('type') not in ENTRY_TYPES: return error("Ungültiger Typ (jira oder category)")
    if not is_valid_date(d.get('date')): return error("Ungültiges Datum")
    end_date = d.get('end_date') or None
    if end_date and not is_valid_date(end_date): return error("Ungültiges Enddatum")

    hours, hours_error = read_hours(d)
    if hours_error: return error(hours_error)

    jira_task = None
    if d.get('jira_task'):
        if not isinstance(d['jira_task'], dict): return error("jira_task muss ein Objekt sein")
        key = str(d['jira_task'].get('key') or '').strip().upper()
        if not is_valid_jira_key(key): return error("Ungültiger JIRA-Key (z.B. PROJ-123)")
        jira_task = {"key": key, "billing_package": d['jira_task'].get('billing_package')}

    category = None
    if d.get('category'):
        if not isinstance(d['category'], dict): return error("category muss ein Objekt sein")
        try:
            category = db.session.get(Category, int(d['category'].get('id')))
        except (TypeError, ValueError):
            category = None
        if not category: return error("Kategorie existiert nicht")

    submission = {
        "type": d.get('type'), "jira_task": jira_task,
        "category": category.to_dict() if category else None,
        "hours": hours, "date": d.get('date'), "end_date": end_date
    }
    result = validate_submission(submission)
    if not result["is_valid"]:
        return error("; ".join(result["errors"]), errors=result["errors"])

    entry = TimeEntry(date=d.get('date'), end_date=end_date,
                      description=str(d.get('description') or '').strip() or None)
    if jira_task:
        entry.jira_key = jira_task["key"]
        entry.jira_billing_package = jira_task["billing_package"]
        entry.hours = round_to_quarter_hour(hours)
    else:
        entry.category = category
        # Tagesbasierte Kategorien speichern keine Stunden
        entry.hours = round_to_quarter_hour(hours) if category.kind != 'day' else None

    db.session.add(entry)
    failed = commit_or_500("Eintrag anlegen")
    if failed: return failed
    app.logger.info(f"Eintrag {entry.id} angelegt: {entry.date} {entry.jira_key or category.name} {entry.hours}h")
    return jsonify({"success": True, "entry": serialize_entry(entry)})

@app.route('/api/time-entries/<int:id>', methods=['PATCH'])
def update_time_entry(id):
    entry = db.session.get(TimeEntry, id)
    if not entry: return error("Nicht gefunden", 404)
    d = request.json
    if not isinstance(d, dict) or not d: return error("Keine Daten empfangen")

    new_date = d.get('date', entry.date)
    if not is_valid_date(new_date): return error("Ungültiges Datum")
    new_end = (d.get('end_date') or None) if 'end_date' in d else entry.end_date
    if new_end and not is_valid_date(new_end): return error("Ungültiges Enddatum")
    if new_end and new_end < new_date: return error("Das Enddatum darf nicht vor dem Startdatum liegen")

    hours, hours_error = read_hours(d, allow_zero=True)
    if hours_error: return error(hours_error)

    entry.date = new_date
    entry.end_date = new_end
    if 'description' in d:
        entry.description = str(d.get('description') or '').strip() or None

    is_day_based = entry.category is not None and entry.category.kind == 'day'
    if hours is not None and (entry.jira_key or not is_day_based):
        entry.hours = round_to_quarter_hour(hours)

    failed = commit_or_500("Eintrag ändern")
    if failed: return failed
    app.logger.info(f"Eintrag {id} geändert.")
    return jsonify({"success": True, "entry": serialize_entry(entry)})

@app.route('/api/time-entries/<int:id>', methods=['DELETE'])
def delete_time_entry(id):
    entry = db.session.get(TimeEntry, id)
    if not entry: return error("Nicht gefunden", 404)
    db.session.delete(entry)
    failed = commit_or_500("Eintrag löschen")
    if failed: return failed
    app.logger.info(f"Eintrag {id} gelöscht.")
    return jsonify({"success": True})

@app.route('/api/time-entries', methods=['DELETE'])
def delete_time_entries():
    d = request.get_json(silent=True)
    if not isinstance(d, dict): d = {}
    ids = d.get('ids')
    if ids is not None:
        if not isinstance(ids, list) or not all(isinstance(i, int) for i in ids):
            return error("ids muss eine Liste von Zahlen sein")
        count = TimeEntry.query.filter(TimeEntry.id.in_(ids)).delete(synchronize_session=False)
    else:
        count = TimeEntry.query.delete()

    failed = commit_or_500("Einträge löschen")
    if failed: return failed
    app.logger.info(f"{count} Einträge gelöscht.")
    return jsonify({"success": True, "count": count})

@app.route('/api/daily-work-time', methods=['GET', 'POST'])
def handle_daily_work_time():
    if request.method == 'GET':
        day = request.args.get('date')
        start, end = request.args.get('start_date'), request.args.get('end_date')
        if day:
            if not is_valid_date(day): return error("Ungültiges Datum")
            record = DailyWorkTime.query.filter_by(date=day).first()
            return jsonify(record.to_dict() if record else None)
        if start and end:
            if not is_valid_date(start) or not is_valid_date(end): return error("Ungültiger Zeitraum")
            records = DailyWorkTime.query.filter(
                DailyWorkTime.date >= start, DailyWorkTime.date <= end
            ).order_by(DailyWorkTime.date.asc()).all()
            return jsonify([r.to_dict() for r in records])
        return error("Parameter date oder start_date und end_date erforderlich")

    d = request.json
    if not isinstance(d, dict) or not d: return error("Keine Daten empfangen")
    if not is_valid_date(d.get('date')): return error("Ungültiges Datum")
    try:
        total = float(d.get('total_hours'))
    except (TypeError, ValueError):
        return error("total_hours muss eine Zahl sein")
    if not math.isfinite(total): return error("total_hours muss eine Zahl sein")
    if total <= 0: return error("Bürozeit muss größer 0 sein")
    if total > 24: return error("Bürozeit darf 24 Stunden nicht überschreiten")

    record = DailyWorkTime.query.filter_by(date=d['date']).first()
    if not record:
        record = DailyWorkTime(date=d['date'])
        db.session.add(record)
    record.total_hours = total

    failed = commit_or_500("Bürozeit speichern")
    if failed: return failed
    app.logger.info(f"Bürozeit {record.date}: {total}h")
    return jsonify({"success": True, "daily_work_time": record.to_dict()})

@app.route('/api/day/<date_str>', methods=['GET'])
def get_day(date_str):
    if not is_valid_date(date_str): return error("Ungültiges Datum")
    entries_by_date, office_map = load_days(date_str, date_str)
    date_obj = datetime.strptime(date_str, "%Y-%m-%d").date()
    return jsonify(build_day(date_obj, entries_by_date.get(date_str, []), office_map.get(date_str), date.today()))

@app.route('/api/month/<int:year>/<int:month>', methods=['GET'])
def get_month_data(year, month):
    if not 1 <= month <= 12: return error("Ungültiger Monat")

    num_days = calendar.monthrange(year, month)[1]
    first, last = date(year, month, 1), date(year, month, num_days)
    entries_by_date, office_map = load_days(str(first), str(last))
    today = date.today()

    items, summary_input = [], []
    for day in range(1, num_days + 1):
        date_obj = date(year, month, day)
        date_str = str(date_obj)
        day_entries = entries_by_date.get(date_str, [])
        office_time = office_map.get(date_str)

        items.append(build_day(date_obj, day_entries, office_time, today))
        summary_input.append({"date": date_obj, "entries": day_entries, "office_time": office_time})

    return jsonify({"items": items, "stats": summarize_month(summary_input, today=today)})

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
