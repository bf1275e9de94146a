"""Scoring form for a three-rater thesis defense evaluation."""

from .form_state import FormState
from .models import EvaluationSession, RaterRecord, StudentInfo, SessionSummary, RaterSummary
from .persistence import ParseError, SessionStore, parse_session, export_session, import_session
from .summary import summarize_session

__all__ = [
    'FormState',
    'EvaluationSession',
    'RaterRecord',
    'StudentInfo',
    'SessionSummary',
    'RaterSummary',
    'ParseError',
    'SessionStore',
    'parse_session',
    'export_session',
    'import_session',
    'summarize_session'
]
