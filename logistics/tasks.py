"""
LOGISTICS App - Celery Tasks

Periodic task driving the live-tracking simulation.
"""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(name='logistics.tasks.simulate_live_deliveries')
def simulate_live_deliveries():
    """
    Advance every live-tracked delivery whose speed interval has elapsed.

    Scheduled every SIMULATION_TICK_SECONDS by CELERY_BEAT_SCHEDULE.
    """
    from logistics.services.simulation import run_simulation_tick

    try:
        result = run_simulation_tick()
    except Exception as e:
        logger.error(f"[SIMULATION TASK] Tick failed: {e}")
        return {}

    if result['stepped']:
        logger.debug(
            f"[SIMULATION TASK] {result['stepped']} stepped, {result['arrived']} arrived"
        )
    return result
