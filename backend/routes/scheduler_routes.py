"""
API routes for the background sync scheduler.
"""
from flask import Blueprint, current_app, jsonify

from routes.sync_routes import bearer_credential
from utils.response_util import error_response

scheduler_bp = Blueprint('scheduler', __name__, url_prefix='/api/scheduler')


@scheduler_bp.route('/status', methods=['GET'])
def scheduler_status():
    """Get scheduler status and statistics of the scheduled syncs."""
    return jsonify(current_app.extensions['sync_scheduler'].status())


@scheduler_bp.route('/trigger/<job_name>', methods=['POST'])
def trigger_sync(job_name):
    """Schedule an immediate background run of a sync job ('tle' or 'transmitters')."""
    orchestrator = current_app.extensions['catalog_sync']
    if not orchestrator.is_authorized(bearer_credential()):
        return error_response('Unauthorized', 401)

    try:
        current_app.extensions['sync_scheduler'].trigger(job_name)
    except KeyError:
        return error_response(f'Unknown sync job: {job_name}', 404)

    return jsonify({
        'status': 'success',
        'message': f'{job_name} sync triggered',
    }), 202
