"""Flask JSON API backing the browser scoring form."""

import io
import logging
from typing import Optional

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from flask_cors import CORS

from .form_state import FormState
from .persistence import (
    ParseError,
    SessionStore,
    dump_session,
    export_filename,
    parse_session,
    save_session,
    session_to_document,
)

LOG = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "thesisDefenseData"

# camelCase names used by the JSON document
STUDENT_ALIASES = {"studentId": "student_id", "thesisTitle": "thesis_title"}

api = Blueprint("scoring_form", __name__, url_prefix="/api")


def _form() -> FormState:
    return current_app.config["FORM_STATE"]


def _autosave() -> None:
    store: Optional[SessionStore] = current_app.config["SESSION_STORE"]
    if store is None:
        return
    form = _form()
    save_session(store, current_app.config["SESSION_KEY"], form.session, form.name_template)


def _json_object(required: bool = False) -> dict:
    """The request body as a dict; a missing body is an empty dict unless ``required``."""
    body = request.get_json(silent=True)
    if body is None and not required:
        return {}
    if not isinstance(body, dict):
        raise ValueError("Expected a JSON object")
    return body


def _state_response():
    form = _form()
    return jsonify({
        "success": True,
        "session": session_to_document(form.session, form.name_template),
        "summary": form.summary().model_dump(mode="json"),
    })


@api.errorhandler(ValueError)
def _bad_request(error):
    LOG.warning("Rejected request: %s", error)
    return jsonify({"success": False, "error": str(error)}), 400


@api.errorhandler(IndexError)
def _not_found(error):
    return jsonify({"success": False, "error": str(error)}), 404


@api.route("/session", methods=["GET"])
def get_session():
    """Current session document plus its live summary."""
    return _state_response()


@api.route("/summary", methods=["GET"])
def get_summary():
    return jsonify({"success": True, "summary": _form().summary().model_dump(mode="json")})


@api.route("/student", methods=["PUT"])
def update_student():
    updates = _json_object(required=True)
    fields = {STUDENT_ALIASES.get(k, k): v for k, v in updates.items()}
    _form().update_student(**fields)
    _autosave()
    return _state_response()


@api.route("/raters/<int:rater>/<sheet>/<int:item>", methods=["PUT"])
def set_score(rater: int, sheet: str, item: int):
    """Set one score. Rater and item numbers are 1-based."""
    body = _json_object()
    _form().set_score(rater - 1, sheet, item - 1, body.get("score"))
    _autosave()
    return _state_response()


@api.route("/raters/<int:rater>/<sheet>/fill", methods=["POST"])
def fill_sheet(rater: int, sheet: str):
    body = _json_object()
    if "value" not in body:
        raise ValueError("Missing 'value'")
    _form().fill_sheet(rater - 1, sheet, body["value"])
    _autosave()
    return _state_response()


@api.route("/raters/<int:rater>/<sheet>/clear", methods=["POST"])
def clear_sheet(rater: int, sheet: str):
    _form().clear_sheet(rater - 1, sheet)
    _autosave()
    return _state_response()


@api.route("/reset", methods=["POST"])
def reset():
    """Clear everything, including the auto-saved copy."""
    _form().reset()
    store: Optional[SessionStore] = current_app.config["SESSION_STORE"]
    if store is not None:
        store.remove(current_app.config["SESSION_KEY"])
    return _state_response()


@api.route("/export", methods=["GET"])
def export_session():
    """Download the session as a dated JSON file."""
    form = _form()
    payload = dump_session(form.session, form.name_template, current_app.config["EXPORT_INDENT"])
    return send_file(
        io.BytesIO(payload.encode("utf-8")),
        mimetype="application/json",
        as_attachment=True,
        download_name=export_filename(form.session.student),
    )


@api.route("/import", methods=["POST"])
def import_session():
    """Replace the session with an uploaded JSON document."""
    upload = request.files.get("file")
    text = upload.read() if upload else request.get_data()
    try:
        session = parse_session(text)
    except ParseError as e:
        LOG.warning("Import failed: %s", e)
        return jsonify({"success": False, "error": f"Invalid JSON file: {e}"}), 400
    _form().load(session)
    _autosave()
    LOG.info("Imported session for %r", session.student.name)
    return _state_response()


def create_app(form_state: FormState, store: Optional[SessionStore] = None,
               session_key: str = DEFAULT_SESSION_KEY, export_indent: int = 2) -> Flask:
    """
    Create and configure the Flask app.

    Args:
        form_state: Form state the API reads and edits
        store: Auto-save store, written after every change (None disables auto-save)
        session_key: Key the session is saved under in ``store``
        export_indent: JSON indentation for downloaded exports
    """
    app = Flask(__name__)
    app.config.update(
        FORM_STATE=form_state,
        SESSION_STORE=store,
        SESSION_KEY=session_key,
        EXPORT_INDENT=export_indent,
    )
    app.json.sort_keys = False
    app.register_blueprint(api)
    CORS(app)

    LOG.info("Flask app created and configured")
    return app


def run_server(app: Flask, host: str = "127.0.0.1", port: int = 5000, debug: bool = False) -> None:
    """Run the Flask development server."""
    app.run(host=host, port=port, debug=debug)
