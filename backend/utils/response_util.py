"""
Utility functions for API responses.
"""
from flask import jsonify


def sync_response(summary, status_code=200):
    """
    Create the response of a completed sync run.

    Args:
        summary: SyncSummary of the run
        status_code: HTTP status code (default: 200)

    Returns:
        Flask response tuple
    """
    return jsonify(summary.to_dict()), status_code


def error_response(message, status_code=400):
    """
    Create a plain error response, e.g. ``{"error": "Unauthorized"}``.

    Returns:
        Flask response tuple
    """
    return jsonify({'error': message}), status_code


def failure_response(message, status_code=500):
    """Create the response of a sync run aborted by a fatal error."""
    return jsonify({'success': False, 'error': message}), status_code
