"""
Cron trigger endpoints for the catalog syncs.

Both endpoints accept POST only and require ``Authorization: Bearer <CRON_SECRET>``.
"""
from flask import Blueprint, current_app, request

from services.errors import SyncError, Unauthorized
from services.tle_service import TleSyncJob
from services.transmitter_service import TransmitterSyncJob
from utils.response_util import error_response, failure_response, sync_response

sync_bp = Blueprint('sync', __name__, url_prefix='/api/cron')


def bearer_credential():
    """Credential from an ``Authorization: Bearer <token>`` header, None for any other scheme."""
    scheme, _, credential = request.headers.get('Authorization', '').partition(' ')
    if scheme != 'Bearer' or not credential:
        return None
    return credential


def _flag(name):
    return request.args.get(name, 'false').lower() in ('1', 'true', 'yes')


def _limit():
    """``limit`` query parameter: None when absent, ValueError unless a positive integer."""
    raw = request.args.get('limit')
    if raw is None:
        return None
    limit = int(raw)
    if limit < 1:
        raise ValueError(f'limit must be at least 1, got {limit}')
    return limit


def _run_sync(job):
    orchestrator = current_app.extensions['catalog_sync']
    try:
        limit = _limit()
    except ValueError:
        return error_response('limit must be a positive integer', 400)

    try:
        summary = orchestrator.run(
            job,
            bearer_credential(),
            limit=limit,
            dry_run=_flag('dry_run'),
        )
        return sync_response(summary)
    except Unauthorized:
        return error_response('Unauthorized', 401)
    except SyncError as e:
        current_app.logger.error(f'{job.log_tag} error: {e}')
        return failure_response(str(e))
    except Exception as e:
        current_app.logger.exception(f'{job.log_tag} unexpected error')
        return failure_response(str(e))


@sync_bp.route('/sync-tle', methods=['POST'])
def sync_tle():
    """
    Reconcile stored TLEs with CelesTrak.

    Query params:
    - dry_run: reconcile without writing (default: false)
    - limit: only the first N satellites of the roster
    """
    return _run_sync(TleSyncJob.from_config(current_app.config))


@sync_bp.route('/sync-transmitters', methods=['POST'])
def sync_transmitters():
    """
    Reconcile stored transmitters with the SatNOGS DB.

    Query params:
    - dry_run: reconcile without writing (default: false)
    - limit: only the first N satellites of the roster
    """
    return _run_sync(TransmitterSyncJob.from_config(current_app.config))
