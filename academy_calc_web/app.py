import logging
import os

from flask import Flask, jsonify, request

from academy_calc.batch_schedule import InvalidScheduleError, expected_end_date
from academy_calc.engine import (
    DEFAULT_INSTALLMENT_COUNT,
    add_installment,
    edit_installment_amount,
    edit_installment_date,
    edit_installment_month,
    plan_total,
    remove_installment,
    set_custom_date,
)
from academy_calc.enrollment import (
    SubmissionBlockedError,
    apply_to_plan,
    auto_calculate,
    build_submission,
    form_errors,
    state_from_dict,
    state_to_dict,
    update_form,
)
from academy_calc.lectures import lecture_breakdown, total_lectures
from academy_calc.utils import parse_flag, parse_user_date
from academy_calc_web.enrollment_store import create_store_from_env

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["EMI_DEFAULT_COUNT"] = int(os.environ.get("EMI_DEFAULT_COUNT", DEFAULT_INSTALLMENT_COUNT))
enrollment_store = create_store_from_env(os.environ.get("ENROLLMENT_DATABASE_URL"))

# Form fields as sent by the client, mapped to EnrollmentFormState attributes.
FORM_FIELDS = {
    "totalDeal": "total_deal",
    "bookingAmount": "booking_amount",
    "emiPlan": "emi_plan",
    "emiPlanDate": "emi_plan_date",
    "studentName": "student_name",
    "softwaresIncluded": "softwares_included",
}


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


def _index(body: dict) -> int:
    try:
        return int(body["index"])
    except (KeyError, TypeError, ValueError):
        raise ValueError("An integer 'index' is required")


def _optional_date(value):
    return parse_user_date(value) if value else None


def _state_response(state, extra_errors=None):
    errors = form_errors(state)
    errors.update(extra_errors or {})
    return jsonify(
        {
            "state": state_to_dict(state),
            "errors": errors,
            "totalEmiAmount": float(plan_total(state.plan)) if state.plan else 0.0,
        }
    )


def _update(state, body):
    changes = body.get("changes") or {}
    unknown = set(changes) - FORM_FIELDS.keys()
    if unknown:
        raise ValueError(f"Unknown form fields: {', '.join(sorted(unknown))}")
    return update_form(
        state,
        app.config["EMI_DEFAULT_COUNT"],
        **{FORM_FIELDS[name]: value for name, value in changes.items()},
    ), {}


PLAN_ACTIONS = {
    "update": _update,
    "generate": lambda state, body: auto_calculate(state, int(body.get("count") or app.config["EMI_DEFAULT_COUNT"])),
    "edit-amount": lambda state, body: (
        apply_to_plan(state, edit_installment_amount, _index(body), body.get("amount") or 0),
        {},
    ),
    "edit-date": lambda state, body: (
        apply_to_plan(
            state,
            edit_installment_date,
            _index(body),
            _optional_date(body.get("dueDate")),
            parse_flag(body.get("custom")),
        ),
        {},
    ),
    "custom-date": lambda state, body: (
        apply_to_plan(state, set_custom_date, _index(body), parse_flag(body.get("enabled"))),
        {},
    ),
    "edit-month": lambda state, body: (
        apply_to_plan(state, edit_installment_month, _index(body), int(body.get("month") or 1)),
        {},
    ),
    "remove": lambda state, body: (apply_to_plan(state, remove_installment, _index(body)), {}),
    "add": lambda state, body: (apply_to_plan(state, add_installment), {}),
}


@app.errorhandler(ValueError)
def handle_bad_input(exc):
    logger.warning("Rejected request to %s: %s", request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(IndexError)
def handle_bad_index(exc):
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(InvalidScheduleError)
def handle_invalid_schedule(exc):
    logger.warning("Invalid batch schedule: %s", exc)
    return jsonify({"error": "invalid_schedule", "message": str(exc)}), 400


@app.errorhandler(SubmissionBlockedError)
def handle_blocked_submission(exc):
    return jsonify({"error": "validation_failed", "errors": exc.errors}), 422


@app.post("/api/lectures")
def lectures():
    software = _json_body().get("software") or ""
    breakdown = [
        {"software": name, "matched": key, "lectures": count}
        for name, key, count in lecture_breakdown(software)
    ]
    return jsonify({"total": total_lectures(software), "breakdown": breakdown})


@app.post("/api/batches/end-date")
def batch_end_date():
    body = _json_body()
    start = _optional_date(body.get("startDate"))
    software = body.get("software") or ""
    end = expected_end_date(start, software, body.get("schedule"))
    return jsonify(
        {
            "startDate": start.isoformat() if start else None,
            "totalLectures": total_lectures(software),
            "expectedEndDate": end.isoformat() if end else None,
        }
    )


@app.post("/api/batches")
def create_batch():
    body = _json_body()
    title = (body.get("title") or "").strip()
    if not title:
        raise ValueError("Batch title is required")
    start = _optional_date(body.get("startDate"))
    if start is None:
        raise ValueError("Batch start date is required")
    software = body.get("software") or ""
    schedule = body.get("schedule") or {}
    end = _optional_date(body.get("endDate")) or expected_end_date(start, software, schedule)
    batch = enrollment_store.add_batch(title, software, schedule, start, end)
    return jsonify(batch), 201


@app.get("/api/batches")
def list_batches():
    return jsonify(enrollment_store.list_batches())


@app.get("/api/batches/<int:batch_id>")
def get_batch(batch_id: int):
    batch = enrollment_store.get_batch(batch_id)
    if batch is None:
        return jsonify({"error": "not_found"}), 404
    return jsonify(batch)


@app.post("/api/emi/<action>")
def emi_action(action: str):
    handler = PLAN_ACTIONS.get(action)
    if handler is None:
        return jsonify({"error": f"Unknown EMI action: {action}"}), 404
    body = _json_body()
    state = state_from_dict(body.get("state") or {})
    state, errors = handler(state, body)
    return _state_response(state, errors)


@app.post("/api/enrollments")
def submit_enrollment():
    state = state_from_dict(_json_body().get("state") or {})
    payload = build_submission(state)
    enrollment = enrollment_store.add_enrollment(payload)
    return jsonify(enrollment), 201


@app.get("/api/enrollments")
def list_enrollments():
    return jsonify(enrollment_store.list_enrollments())


@app.get("/api/enrollments/<int:enrollment_id>")
def get_enrollment(enrollment_id: int):
    enrollment = enrollment_store.get_enrollment(enrollment_id)
    if enrollment is None:
        return jsonify({"error": "not_found"}), 404
    return jsonify(enrollment)


@app.delete("/api/enrollments/<int:enrollment_id>")
def delete_enrollment(enrollment_id: int):
    if not enrollment_store.remove_enrollment(enrollment_id):
        return jsonify({"error": "not_found"}), 404
    return "", 204


if __name__ == "__main__":
    print("Starting academy calculator API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
