import pytest
from validation import (
    DEFAULT_RULES, validate_submission, require_jira_task, require_category,
    exclusive_selection, require_time, require_date, valid_date_range
)

JIRA_TASK = {"key": "PROJ-123", "billing_package": "Enterprise Package"}
TIME_CATEGORY = {"id": 3, "kind": "time"}
DAY_CATEGORY = {"id": 7, "kind": "day"}


def submission(**overrides):
    data = {"type": "jira", "jira_task": JIRA_TASK, "category": None,
            "hours": 1.5, "date": "2024-03-13", "end_date": None}
    data.update(overrides)
    return data

# --- 1. Einzelne Regeln: Regel x Eingabe -> Fehler ja/nein ---

@pytest.mark.parametrize("rule, data, fails", [
    (require_jira_task, submission(jira_task=None), True),
    (require_jira_task, submission(), False),
    (require_jira_task, submission(type="category", jira_task=None, category=TIME_CATEGORY), False),

    (require_category, submission(type="category", jira_task=None), True),
    (require_category, submission(type="category", jira_task=None, category=TIME_CATEGORY), False),
    (require_category, submission(jira_task=None), False),

    (exclusive_selection, submission(category=TIME_CATEGORY), True),
    (exclusive_selection, submission(), False),
    (exclusive_selection, submission(type="category", jira_task=None, category=DAY_CATEGORY), False),

    (require_time, submission(hours=0), True),
    (require_time, submission(hours=None), True),
    (require_time, submission(type="category", jira_task=None, category=TIME_CATEGORY, hours=0), True),
    (require_time, submission(type="category", jira_task=None, category=DAY_CATEGORY, hours=None), False),
    (require_time, submission(hours=0.25), False),

    (require_date, submission(type="category", jira_task=None, category=DAY_CATEGORY, date=""), True),
    (require_date, submission(type="category", jira_task=None, category=DAY_CATEGORY), False),
    # Zeitbasierte Einträge: Datum prüft die API, nicht diese Regel
    (require_date, submission(date=""), False),

    (valid_date_range, submission(end_date="2024-03-10"), True),
    (valid_date_range, submission(end_date="2024-03-20"), False),
    (valid_date_range, submission(end_date="2024-03-13"), False),
])
def test_single_rule(rule, data, fails):
    errors = rule(data)
    assert bool(errors) is fails

# --- 2. Zusammengesetzte Validierung ---

def test_jira_without_task_reports_exactly_one_error():
    result = validate_submission(submission(jira_task=None))
    assert result["is_valid"] is False
    assert len(result["errors"]) == 1
    assert "JIRA-Task" in result["errors"][0]

def test_day_category_without_date_reports_exactly_one_error():
    data = submission(type="category", jira_task=None, category=DAY_CATEGORY, hours=None, date=None)
    result = validate_submission(data)
    assert result["is_valid"] is False
    assert len(result["errors"]) == 1
    assert "Datum" in result["errors"][0]

@pytest.mark.parametrize("data", [
    submission(),
    submission(type="category", jira_task=None, category=TIME_CATEGORY, hours=2.0),
    submission(type="category", jira_task=None, category=DAY_CATEGORY, hours=None, end_date="2024-03-15"),
])
def test_valid_submission_has_no_errors(data):
    assert validate_submission(data) == {"is_valid": True, "errors": []}

def test_errors_are_concatenated_in_rule_order():
    # Kategorie-Typ ohne Kategorie, ohne Zeit, aber mit Task
    data = submission(type="category", category=None, hours=0)
    errors = validate_submission(data)["errors"]
    assert errors == ["Bitte eine Kategorie auswählen", "Bitte eine gültige Zeit eingeben"]

def test_custom_rules_can_be_appended():
    def no_weekend_bookings(data):
        return ["Keine Buchungen am Wochenende"] if data.get("date") == "2024-03-16" else []

    rules = DEFAULT_RULES + [no_weekend_bookings]
    assert validate_submission(submission(date="2024-03-16"), rules)["errors"] == ["Keine Buchungen am Wochenende"]
    # Die Standardregeln bleiben unverändert
    assert validate_submission(submission(date="2024-03-16"))["is_valid"] is True
    assert no_weekend_bookings not in DEFAULT_RULES
