"""
Validierung von Zeiteintrags-Formularen.

Jede Regel ist eine Funktion submission -> Liste von Fehlertexten (leer = ok).
Neue Regeln einfach an eine Kopie von DEFAULT_RULES anhängen.

Erwartetes submission-dict:
    type        'jira' | 'category'
    jira_task   dict mit 'key' (optional 'billing_package') oder None
    category    dict mit 'id' und 'kind' ('time' | 'day') oder None
    hours       float (Dezimalstunden)
    date        'YYYY-MM-DD'
    end_date    'YYYY-MM-DD' oder None
"""


def _is_day_based(submission):
    category = submission.get('category') or {}
    return category.get('kind') == 'day'


def require_jira_task(submission):
    if submission.get('type') == 'jira' and not submission.get('jira_task'):
        return ["Bitte einen JIRA-Task auswählen"]
    return []


def require_category(submission):
    if submission.get('type') == 'category' and not submission.get('category'):
        return ["Bitte eine Kategorie auswählen"]
    return []


def exclusive_selection(submission):
    if submission.get('jira_task') and submission.get('category'):
        return ["Bitte entweder einen JIRA-Task oder eine Kategorie wählen, nicht beides"]
    return []


def require_time(submission):
    # Tagesbasierte Kategorien (Urlaub, Krankheit) brauchen keine Stunden
    if submission.get('type') == 'jira' or not _is_day_based(submission):
        hours = submission.get('hours') or 0
        if hours <= 0:
            return ["Bitte eine gültige Zeit eingeben"]
    return []


def require_date(submission):
    if submission.get('type') == 'category' and _is_day_based(submission) and not submission.get('date'):
        return ["Bitte ein Datum auswählen"]
    return []


def valid_date_range(submission):
    start, end = submission.get('date'), submission.get('end_date')
    # ISO-Strings lassen sich direkt vergleichen
    if start and end and end < start:
        return ["Das Enddatum darf nicht vor dem Startdatum liegen"]
    return []


DEFAULT_RULES = [
    require_jira_task,
    require_category,
    exclusive_selection,
    require_time,
    require_date,
    valid_date_range,
]


def validate_submission(submission, rules=None):
    """Wendet alle Regeln an. Gültig nur, wenn keine Regel einen Fehler meldet."""
    if rules is None: rules = DEFAULT_RULES

    errors = []
    for rule in rules:
        errors.extend(rule(submission))
    return {"is_valid": not errors, "errors": errors}
