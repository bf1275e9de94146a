"""Saving and loading evaluation sessions as JSON documents.

Document shape (shared by auto-save, export and import)::

    {
      "student": {"name": ..., "studentId": ..., "department": ..., "thesisTitle": ...},
      "raters": [{"name": "Rater #1", "sheet1": [14 scores], "sheet2": [24 scores]}, ...]
    }
"""

import json
import logging
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .models import RATER_COUNT, SHEET_NAMES, EvaluationSession, StudentInfo, empty_sheet
from .summary import DEFAULT_NAME_TEMPLATE, rater_name

LOG = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[^\\/]+$")
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


class ParseError(ValueError):
    """Session data that cannot be turned into an EvaluationSession."""


def session_to_document(session: EvaluationSession,
                        name_template: str = DEFAULT_NAME_TEMPLATE) -> Dict[str, Any]:
    return {
        "student": session.student.model_dump(by_alias=True),
        "raters": [
            {
                "name": rater_name(i, name_template),
                "sheet1": list(record.sheet1),
                "sheet2": list(record.sheet2),
            }
            for i, record in enumerate(session.raters)
        ],
    }


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        messages.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(messages)


def session_from_document(data: Any) -> EvaluationSession:
    """Validate a decoded JSON document and build a session from it.

    Missing sections fall back to empty defaults: no ``student`` gives blank
    student details, no ``raters`` gives three empty raters, and a rater
    without ``sheet1`` or ``sheet2`` gets a zero-filled sheet. Anything
    present but malformed raises ParseError.
    """
    if not isinstance(data, dict):
        raise ParseError("Session data must be a JSON object")

    student = data.get("student")
    if student is None:
        LOG.warning("No student section in session data, using empty student details")
        student = {}
    elif not isinstance(student, dict):
        raise ParseError("'student' must be an object")

    raters = data.get("raters")
    if raters is None:
        LOG.warning("No raters section in session data, starting with empty score sheets")
        raters = [{} for _ in range(RATER_COUNT)]
    elif not isinstance(raters, list) or len(raters) != RATER_COUNT:
        raise ParseError(f"'raters' must be a list of exactly {RATER_COUNT} raters")

    rater_records = []
    for i, rater in enumerate(raters):
        if not isinstance(rater, dict):
            raise ParseError(f"Rater {i + 1} must be an object")
        record = {}
        for sheet in SHEET_NAMES:
            scores = rater.get(sheet)
            if scores is None:
                LOG.warning("Rater %d has no %s, using an empty sheet", i + 1, sheet)
                scores = empty_sheet(sheet)
            record[sheet] = scores
        rater_records.append(record)

    try:
        return EvaluationSession.model_validate({"student": student, "raters": rater_records})
    except ValidationError as e:
        raise ParseError(f"Invalid session data: {_format_validation_error(e)}") from e


def _reject_constant(name: str):
    raise ParseError(f"Invalid JSON: {name} is not a valid score")


def parse_session(text: Union[str, bytes]) -> EvaluationSession:
    """Parse a JSON session document. NaN and Infinity are rejected."""
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Invalid JSON: {e}") from e
    return session_from_document(data)


def dump_session(session: EvaluationSession, name_template: str = DEFAULT_NAME_TEMPLATE,
                 indent: Optional[int] = 2) -> str:
    return json.dumps(session_to_document(session, name_template), indent=indent, ensure_ascii=False)


class SessionStore:
    """String-keyed store backed by one JSON file per key in ``directory``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key) or key in (".", ".."):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        tmp_path.replace(path)

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


def save_session(store: SessionStore, key: str, session: EvaluationSession,
                 name_template: str = DEFAULT_NAME_TEMPLATE) -> None:
    store.set(key, dump_session(session, name_template, indent=None))
    LOG.debug("Auto-saved session under %s", key)


def load_saved_session(store: SessionStore, key: str) -> Optional[EvaluationSession]:
    """Return the auto-saved session, or None if there is none or it is unreadable."""
    try:
        text = store.get(key)
        if text is None:
            return None
        return parse_session(text)
    except (ParseError, UnicodeDecodeError, OSError) as e:
        LOG.error("Error loading saved data from %s: %s", store.directory, e)
        return None


def export_filename(student: StudentInfo, today: Optional[date] = None) -> str:
    """``{name}-{department}-{YYYY-MM-DD}.json`` with path separators replaced."""
    today = today or date.today()
    name = f"{student.name}-{student.department}-{today.isoformat()}.json"
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


def export_session(session: EvaluationSession, directory: Union[str, Path],
                   name_template: str = DEFAULT_NAME_TEMPLATE, indent: Optional[int] = 2,
                   today: Optional[date] = None) -> Path:
    """Write ``session`` to a dated JSON file in ``directory`` and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    output_path = directory / export_filename(session.student, today)
    output_path.write_text(dump_session(session, name_template, indent), encoding="utf-8")
    LOG.info("Exported session to %s", output_path)
    return output_path


def import_session(path: Union[str, Path]) -> EvaluationSession:
    """Read a session JSON file. Raises ParseError if its contents are malformed."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not UTF-8 text: {e}") from e
    session = parse_session(text)
    LOG.info("Imported session from %s", path)
    return session
