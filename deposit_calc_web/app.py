import json
import os
from decimal import Decimal
from uuid import uuid4
from flask import Flask, jsonify, render_template, request, session, redirect, url_for

from deposit_calc.engine import APPLY_TYPES, INTEREST_TYPES, calculate, serialize_result
from deposit_calc.formatter import format_number
from deposit_calc.logging_config import setup_logging
from deposit_calc.tiers import DEFAULT_TIERS
from deposit_calc.utils import DEFAULT_PRECISION, make_context
from deposit_calc_web.history_store import create_store_from_env

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
logger = setup_logging(os.environ.get("DEPOSIT_CALC_LOG_LEVEL", "INFO"))
decimal_context = make_context(int(os.environ.get("DEPOSIT_CALC_PRECISION", DEFAULT_PRECISION)))
history_store = create_store_from_env(
    os.environ.get("HISTORY_DATABASE_URL"),
    max_per_user=int(os.environ.get("HISTORY_MAX_ENTRIES", "20")),
)

INTEREST_TYPE_LABELS = {"simple": "Simple interest", "compound": "Compound interest"}
APPLY_TYPE_LABELS = {
    "daily": "Daily",
    "monthly": "Monthly",
    "biannually": "Every 6 months",
    "annually": "Annually",
}


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _default_tiers() -> list[dict]:
    return [
        {"min": str(t.min), "max": "" if t.max is None else str(t.max), "rate": str(t.rate)}
        for t in DEFAULT_TIERS
    ]


def _default_values() -> dict:
    return {
        "principal": "",
        "start_date": "",
        "end_date": "",
        "interest_type": "simple",
        "apply_type": "daily",
        "tiers": _default_tiers(),
    }


def _form_to_values(form) -> dict:
    """Collect the calculation inputs from a submitted form.

    Tier rows arrive as parallel ``tier_min``/``tier_max``/``tier_rate``
    lists; rows left completely empty are dropped.
    """
    mins = form.getlist("tier_min")
    maxes = form.getlist("tier_max")
    rates = form.getlist("tier_rate")
    tiers = []
    for index, min_value in enumerate(mins):
        max_value = maxes[index] if index < len(maxes) else ""
        rate_value = rates[index] if index < len(rates) else ""
        if not (min_value.strip() or max_value.strip() or rate_value.strip()):
            continue
        tiers.append({"min": min_value.strip(), "max": max_value.strip(), "rate": rate_value.strip()})
    return {
        "principal": form.get("principal", "").strip(),
        "start_date": form.get("start_date", "").strip(),
        "end_date": form.get("end_date", "").strip(),
        "interest_type": form.get("interest_type", "simple"),
        "apply_type": form.get("apply_type", "daily"),
        "tiers": tiers,
    }


def _run_calculation(values: dict, include_daily: bool = False):
    return calculate(
        values["principal"],
        values["start_date"],
        values["end_date"],
        values["tiers"],
        values["interest_type"],
        values["apply_type"],
        context=decimal_context,
        include_daily=include_daily,
    )


def _render_index(values: dict, result=None, error=None, message=None):
    user_token = _ensure_user_token()
    history = history_store.list_entries(user_token)
    presets = history_store.list_presets(user_token)
    chart_payload = json.dumps(serialize_result(result)["breakdown"]) if result else "null"
    return render_template(
        "index.html",
        values=values,
        result=result,
        error=error,
        message=message,
        history=history,
        presets=presets,
        interest_types=INTEREST_TYPE_LABELS,
        apply_types=APPLY_TYPE_LABELS,
        chart_payload=chart_payload,
        asset_version=app.config["ASSET_VERSION"],
    )


@app.template_filter("money")
def money_filter(value, decimals: int = 2) -> str:
    return format_number(Decimal(str(value)), decimals)


@app.route("/", methods=["GET", "POST"])
def index():
    if request.method == "GET":
        return _render_index(_default_values())

    user_token = _ensure_user_token()
    values = _form_to_values(request.form)

    try:
        result = _run_calculation(values, include_daily=request.form.get("show_daily") == "1")
    except ValueError as exc:
        logger.warning("Calculation rejected", extra={"user_token": user_token, "extra": {"error": str(exc)}})
        return _render_index(values, error=str(exc))

    history_store.add_entry(user_token, values, serialize_result(result))
    return _render_index(values, result=result, message="Saved to history")


@app.post("/api/calculate")
def api_calculate():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    values = _default_values()
    values.update({k: payload[k] for k in values if k in payload})
    for key in ("interest_type", "apply_type"):
        values[key] = str(values[key]).lower()
    if values["interest_type"] not in INTEREST_TYPES or values["apply_type"] not in APPLY_TYPES:
        return jsonify({"error": "Unknown interest or apply type"}), 400
    try:
        result = _run_calculation(values, include_daily=bool(payload.get("include_daily")))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(serialize_result(result))


@app.get("/api/history")
def api_history():
    return jsonify(history_store.list_entries(_ensure_user_token()))


@app.post("/history/<entry_id>/restore")
def restore_history(entry_id):
    entry = history_store.get_entry(_ensure_user_token(), entry_id)
    if entry is None:
        return redirect(url_for("index"))
    values = entry["request"]
    try:
        result = _run_calculation(values)
    except ValueError as exc:
        return _render_index(values, error=str(exc))
    return _render_index(values, result=result)


@app.post("/history/<entry_id>/remove")
def remove_history(entry_id):
    history_store.remove_entry(session.get("user_token"), entry_id)
    return redirect(url_for("index"))


@app.post("/history/clear")
def clear_history():
    history_store.clear_entries(session.get("user_token"))
    return redirect(url_for("index"))


@app.post("/presets")
def save_preset():
    user_token = _ensure_user_token()
    values = _form_to_values(request.form)
    name = request.form.get("preset_name", "").strip() or "Preset"
    history_store.add_preset(user_token, name, values)
    return _render_index(values, message=f"Preset '{name}' saved")


@app.post("/presets/<preset_id>/load")
def load_preset(preset_id):
    preset = history_store.get_preset(_ensure_user_token(), preset_id)
    if preset is None:
        return redirect(url_for("index"))
    values = _default_values()
    values.update({k: preset[k] for k in ("principal", "interest_type", "apply_type", "tiers") if preset.get(k)})
    return _render_index(values, message=f"Preset '{preset['name']}' loaded")


@app.post("/presets/<preset_id>/remove")
def remove_preset(preset_id):
    history_store.remove_preset(session.get("user_token"), preset_id)
    return redirect(url_for("index"))


if __name__ == "__main__":
    print("Starting Deposit Calculator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
