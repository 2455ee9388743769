"""
API Decorators for error handling and validation.

Usage:
    from .decorators import api_endpoint, require_args

    @app.route('/montageStatus')
    @api_endpoint
    @require_args('runId')
    def montage_status():
        ...
"""

from functools import wraps
from typing import Callable

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from ..exceptions import (
    CapacityExceeded,
    InvalidRequest,
    MontageError,
    RunNotFound,
    RunNotReady,
    SourceUnavailable,
    UnsafePathError,
)
from ..logger import logger

# Most specific first
ERROR_STATUS = (
    (InvalidRequest, 400),
    (UnsafePathError, 400),
    (SourceUnavailable, 404),
    (RunNotFound, 404),
    (RunNotReady, 404),
    (CapacityExceeded, 503),
)


def error_response(message: str, status: int):
    return jsonify({"status": "error", "message": message}), status


def api_endpoint(f: Callable) -> Callable:
    """
    Map the montage error taxonomy to JSON error responses.

    - InvalidRequest, UnsafePathError -> 400
    - SourceUnavailable, RunNotFound, RunNotReady -> 404
    - CapacityExceeded -> 503
    - anything else -> 500 with a generic message (details only in the log)
    """
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except HTTPException:
            raise
        except MontageError as e:
            for error_type, status in ERROR_STATUS:
                if isinstance(e, error_type):
                    logger.warning(f"[{f.__name__}] {type(e).__name__}: {e}")
                    return error_response(str(e), status)
            logger.error(f"[{f.__name__}] Internal error: {e}", exc_info=True)
            return error_response("Montage creation failed.", 500)
        except Exception as e:
            logger.error(f"[{f.__name__}] Internal error: {e}", exc_info=True)
            return error_response("Internal server error", 500)
    return wrapper


def require_args(*names: str) -> Callable:
    """
    Reject requests missing any of the given query parameters with 400.

    Example:
        @require_args('runId')
        def get_video():
            run_id = request.args['runId']  # guaranteed present
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def wrapper(*args, **kwargs):
            for name in names:
                if not request.args.get(name, "").strip():
                    return error_response(f"Missing {name} parameter.", 400)
            return f(*args, **kwargs)
        return wrapper
    return decorator
