"""
Background scheduler for the periodic catalog syncs.

Schedule (UTC, off-peak minutes):
- TLE sync: every 6 hours at :17
- Transmitter sync: daily at 04:42
"""
import logging
from datetime import datetime
from threading import Event

from apscheduler.schedulers.background import BackgroundScheduler

from services.errors import SyncError
from services.tle_service import TleSyncJob
from services.transmitter_service import TransmitterSyncJob

logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    Owns the APScheduler instance and the statistics of scheduled runs.

    Jobs run inside an application context and present the configured
    secret, so they pass the same authorization as the HTTP triggers.
    """

    JOB_FACTORIES = {
        'tle': TleSyncJob.from_config,
        'transmitters': TransmitterSyncJob.from_config,
    }

    def __init__(self, app):
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True)
        self.cancel_event = Event()
        # Track update statistics
        self.stats = {
            name: {'last_run': None, 'last_summary': None, 'total_runs': 0,
                   'failed_runs': 0, 'last_error': None}
            for name in self.JOB_FACTORIES
        }

    def run_job(self, name: str):
        """Run one sync job now, in the calling thread."""
        timestamp = datetime.utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')
        logger.info("--- [Scheduler] Starting %s sync at %s ---", name, timestamp)
        stats = self.stats[name]

        with self.app.app_context():
            orchestrator = self.app.extensions['catalog_sync']
            job = self.JOB_FACTORIES[name](self.app.config)
            try:
                summary = orchestrator.run(job, self.app.config['CRON_SECRET'],
                                           cancel_event=self.cancel_event)
                stats['last_summary'] = summary.to_dict()
                stats['last_error'] = None
            except SyncError as e:
                stats['failed_runs'] += 1
                stats['last_error'] = str(e)
                logger.error("[Scheduler] %s sync failed: %s", name, e)
            finally:
                stats['last_run'] = timestamp
                stats['total_runs'] += 1

        logger.info("--- [Scheduler] %s sync complete ---", name)

    def start(self):
        """Register the cron jobs and start the scheduler."""
        config = self.app.config
        self.scheduler.add_job(
            self.run_job, 'cron', args=['tle'],
            hour=config['TLE_SYNC_HOURS'], minute=config['TLE_SYNC_MINUTE'],
            timezone='utc', id='tle_sync', replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_job, 'cron', args=['transmitters'],
            hour=config['TRANSMITTER_SYNC_HOURS'], minute=config['TRANSMITTER_SYNC_MINUTE'],
            timezone='utc', id='transmitter_sync', replace_existing=True,
        )
        self.scheduler.start()
        logger.info("[Scheduler] Started: TLE sync at hours %s :%02d, transmitter sync at hours %s :%02d UTC",
                    config['TLE_SYNC_HOURS'], config['TLE_SYNC_MINUTE'],
                    config['TRANSMITTER_SYNC_HOURS'], config['TRANSMITTER_SYNC_MINUTE'])

    def trigger(self, name: str):
        """Schedule an immediate background run of a job."""
        if name not in self.JOB_FACTORIES:
            raise KeyError(name)
        self.scheduler.add_job(
            self.run_job, 'date', args=[name],
            id=f'manual_{name}_sync', replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self):
        """Cancel in-flight work and stop the scheduler."""
        self.cancel_event.set()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("[Scheduler] Shutdown complete")

    def status(self):
        """Get current scheduler status and statistics."""
        return {
            'running': self.scheduler.running,
            'jobs': [
                {
                    'id': job.id,
                    'next_run': str(job.next_run_time) if getattr(job, 'next_run_time', None) else None,
                    'trigger': str(job.trigger),
                }
                for job in self.scheduler.get_jobs()
            ],
            'syncs': self.stats,
        }
