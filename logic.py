import math
import re
from datetime import date, datetime

# Zulässige Eingaben: "2h30m", "2h", "45m" (Leerzeichen egal, Groß/Klein egal).
# Eine nackte Zahl ("5") ist absichtlich ungültig: Stunden oder Minuten?
TIME_INPUT_RE = re.compile(r'^(?:(\d+)h(?:(\d+)m)?|(\d+)m)$')

MAX_INPUT_HOURS = 24
MAX_INPUT_MINUTES = 59

# Toleranz zwischen Task-Summe und Bürozeit (30 Minuten)
MISMATCH_TOLERANCE = 0.5
WEEKEND_DAYS = (5, 6)  # Sa, So

STATUS_WEEKEND = 'weekend'
STATUS_FUTURE = 'future'
STATUS_MISSING = 'missing'
STATUS_NO_OFFICE_TIME = 'no-office-time'
STATUS_NO_ENTRIES = 'no-entries'
STATUS_MISMATCH = 'mismatch'
STATUS_COMPLETE = 'complete'

DAY_STATUSES = [
    STATUS_WEEKEND, STATUS_FUTURE, STATUS_MISSING, STATUS_NO_OFFICE_TIME,
    STATUS_NO_ENTRIES, STATUS_MISMATCH, STATUS_COMPLETE
]


def parse_time_input(text):
    """
    Zerlegt eine Freitext-Eingabe wie '2h30m' in Dezimalstunden.
    Es wird NICHT gerundet, das passiert erst beim Speichern.
    """
    result = {"valid": False, "hours": 0.0, "minutes": 0, "input": text}
    if text is None: return result

    cleaned = re.sub(r'\s+', '', str(text)).lower()
    if not cleaned: return result

    match = TIME_INPUT_RE.match(cleaned)
    if not match: return result

    h = int(match.group(1)) if match.group(1) else 0
    if match.group(2):
        m = int(match.group(2))
    elif match.group(3):
        m = int(match.group(3))
    else:
        m = 0

    if h > MAX_INPUT_HOURS or m > MAX_INPUT_MINUTES: return result
    if h == 0 and m == 0: return result

    result["valid"] = True
    result["hours"] = h + m / 60.0
    result["minutes"] = m
    return result


def round_to_quarter_hour(hours):
    """
    Rundet Dezimalstunden IMMER auf die nächste Viertelstunde auf (nie ab).
    2.1 -> 2.25, 2.25 -> 2.25, 0.01 -> 0.25
    """
    if not hours: return 0.0
    # Float-Rauschen (z.B. 135.00000000001 Minuten) darf keine extra Viertelstunde erzeugen
    total_minutes = round(hours * 60, 9)
    return math.ceil(total_minutes / 15) * 15 / 60.0


def format_decimal_hours(hours):
    """
    Dezimalstunden -> Anzeige. 2.5 -> '2h30m', 2.0 -> '2h', 0.5 -> '30m', 0 -> '0h'
    """
    if not hours or hours <= 0: return "0h"

    h = int(math.floor(hours))
    # Kaufmännisch runden (0.5 -> auf), Python's round() würde zur geraden Zahl runden
    m = int(math.floor((hours - h) * 60 + 0.5))
    if m == 60:
        h, m = h + 1, 0

    if h and m: return f"{h}h{m}m"
    if h: return f"{h}h"
    if m: return f"{m}m"
    return "0h"


def _entry_hours(entry):
    if isinstance(entry, dict):
        return entry.get("hours") or 0.0
    return getattr(entry, "hours", None) or 0.0


def sum_entry_hours(entries):
    """Summe der Task-Stunden eines Tages. Tagesbasierte Einträge (ohne Stunden) zählen 0."""
    return sum(_entry_hours(e) for e in entries or [])


def get_day_status(day, entries, office_time, today=None):
    """
    Abgleich Task-Zeit gegen Bürozeit für einen Tag.
    Reihenfolge der Prüfungen ist wichtig: Wochenende/Zukunft gewinnen immer,
    danach 'missing' vor den Teilzuständen, erst zuletzt die Toleranzprüfung.
    """
    if isinstance(day, datetime): day = day.date()
    if today is None: today = date.today()
    elif isinstance(today, datetime): today = today.date()

    if day.weekday() in WEEKEND_DAYS: return STATUS_WEEKEND
    if day > today: return STATUS_FUTURE

    entries = list(entries or [])
    has_entries = len(entries) > 0
    has_office_time = office_time is not None and office_time > 0

    if not has_entries and not has_office_time: return STATUS_MISSING
    if not has_office_time: return STATUS_NO_OFFICE_TIME
    if not has_entries: return STATUS_NO_ENTRIES

    if abs(sum_entry_hours(entries) - office_time) > MISMATCH_TOLERANCE:
        return STATUS_MISMATCH
    return STATUS_COMPLETE


def get_time_difference(task_hours, office_time):
    """
    Differenz Task-Zeit zu Bürozeit für die Tagesansicht.
    None, wenn eine der beiden Seiten fehlt.
    """
    if not office_time or not task_hours:
        return None
    diff = task_hours - office_time
    return {
        "amount": round(abs(diff), 2),
        "direction": "over" if diff > 0 else "under"
    }


def get_status_message(status, difference=None):
    """Liefert (Typ, Text) für die Statuszeile eines Tages."""
    if status == STATUS_WEEKEND: return {"type": "info", "message": "Wochenende"}
    if status == STATUS_FUTURE: return {"type": "info", "message": "Zukünftiger Tag"}
    if status == STATUS_MISSING: return {"type": "error", "message": "Keine Zeiterfassung für diesen Tag"}
    if status == STATUS_NO_OFFICE_TIME: return {"type": "warning", "message": "Bürozeit fehlt"}
    if status == STATUS_NO_ENTRIES: return {"type": "warning", "message": "Task-Einträge fehlen"}
    if status == STATUS_MISMATCH:
        # Nur tagesbasierte Einträge (0 Stunden) -> keine Differenz berechenbar
        if not difference:
            return {"type": "warning", "message": "Task-Zeit weicht von der Bürozeit ab"}
        word = "über" if difference["direction"] == "over" else "unter"
        text = f"Task-Zeit liegt {format_decimal_hours(difference['amount'])} {word} der Bürozeit"
        return {"type": "warning", "message": text}
    return {"type": "success", "message": "Tag vollständig erfasst"}


def summarize_month(days, today=None):
    """
    Monatskennzahlen. Erwartet je Tag ein dict mit 'date' (date),
    'entries' (Liste) und 'office_time' (float oder None).
    """
    if today is None: today = date.today()

    days_tracked, missing_days = 0, 0
    total_office, total_task = 0.0, 0.0

    for d in days:
        is_weekend = d["date"].weekday() in WEEKEND_DAYS
        entries = d.get("entries") or []
        office = d.get("office_time")

        total_office += office or 0.0
        total_task += sum_entry_hours(entries)

        if entries and not is_weekend:
            days_tracked += 1
        if not is_weekend and d["date"] <= today and not entries and not office:
            missing_days += 1

    return {
        "days_tracked": days_tracked,
        "total_office_hours": round(total_office, 2),
        "total_task_hours": round(total_task, 2),
        "missing_days": missing_days
    }
