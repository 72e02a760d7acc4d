"""Built-in shared workboards seeded at start-up."""

OPEN_STAGES_FILTER = {"field": "stage", "operator": "not_in", "value": ["closed_won", "closed_lost"]}


def _raw(field, label, width, fmt=None):
    column = {"id": field, "field": field, "label": label, "type": "raw", "width": width}
    if fmt:
        column["format"] = fmt
    return column


def _formula(name, label, width):
    return {"id": name, "field": name, "label": label, "type": "formula", "formula": name, "width": width}


_DEAL_HEADER = [
    _raw("name", "Deal Name", 200),
    _raw("company_name", "Company", 150),
    _raw("value", "Value", 100, "currency"),
    _raw("stage", "Stage", 120),
]

DEFAULT_WORKBOARDS = [
    {
        "id": "wb_pipeline",
        "name": "Pipeline Board",
        "description": "Active deals with SPIN score, days in stage, and SLA tracking",
        "entity_type": "deals",
        "columns": _DEAL_HEADER + [
            _formula("spin_score", "SPIN Score", 100),
            _formula("days_in_stage", "Days in Stage", 110),
            _formula("sla_breach", "SLA Breach", 100),
            _raw("close_date", "Close Date", 110, "date"),
        ],
        "filters": [OPEN_STAGES_FILTER],
        "sort_column": "value",
        "sort_direction": "desc",
    },
    {
        "id": "wb_discovery",
        "name": "Discovery Tracker",
        "description": "Deals with incomplete SPIN data, sorted by value",
        "entity_type": "deals",
        "columns": _DEAL_HEADER + [
            _formula("spin_score", "SPIN Score", 100),
            _raw("spin_situation", "Situation", 150),
            _raw("spin_problem", "Problem", 150),
            _raw("spin_implication", "Implication", 150),
            _raw("spin_need_payoff", "Need-Payoff", 150),
        ],
        "filters": [{"field": "spin_score", "operator": "lt", "value": 100}, OPEN_STAGES_FILTER],
        "sort_column": "value",
        "sort_direction": "desc",
    },
    {
        "id": "wb_stale",
        "name": "Stale Deals",
        "description": "Deals with no activity in the last 14 days",
        "entity_type": "deals",
        "columns": _DEAL_HEADER + [
            _formula("last_activity_days", "Days Since Activity", 140),
            _raw("owner_name", "Owner", 120),
            _raw("contact_name", "Contact", 120),
        ],
        "filters": [{"field": "last_activity_days", "operator": "gte", "value": 14}, OPEN_STAGES_FILTER],
        "sort_column": "last_activity_days",
        "sort_direction": "desc",
    },
]
