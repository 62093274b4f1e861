from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

class Category(db.Model):
    """
    Interne Tätigkeitskategorien (Meeting, Urlaub, ...).
    """
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    color = db.Column(db.String(7), nullable=True) # Format: #RRGGBB

    # 'time' = stundenweise Einträge, 'day' = ganze Tage (Urlaub, Krankheit)
    kind = db.Column(db.String(10), nullable=False, default="time")

    # Löschen einer Kategorie entfernt auch alle zugehörigen Einträge
    entries = db.relationship('TimeEntry', backref='category', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            "id": self.id, "name": self.name, "description": self.description or "",
            "color": self.color or "", "kind": self.kind
        }

class TimeEntry(db.Model):
    """
    Gebuchte Zeit, entweder auf einen JIRA-Task oder auf eine Kategorie.
    Beides gleichzeitig verhindert nur die App, nicht das Schema.
    """
    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=True)

    # Bereits auf Viertelstunden gerundet. NULL bei tagesbasierten Kategorien.
    hours = db.Column(db.Float, nullable=True)

    date = db.Column(db.String(10), nullable=False, index=True) # Format: YYYY-MM-DD
    end_date = db.Column(db.String(10), nullable=True)          # Nur bei Zeiträumen (z.B. Urlaub)

    jira_key = db.Column(db.String(50), nullable=True)
    jira_billing_package = db.Column(db.String(100), nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey('category.id', ondelete='CASCADE'), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.now)

class DailyWorkTime(db.Model):
    """
    Anwesenheit/Bürozeit pro Tag. Genau ein Datensatz je Datum.
    """
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), unique=True, nullable=False) # Format: YYYY-MM-DD
    total_hours = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self):
        return {"id": self.id, "date": self.date, "total_hours": self.total_hours}
