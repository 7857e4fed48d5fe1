"""
LOGISTICS App - Django Signals

Broadcast real-time events and fan out Slack notifications when a
delivery request is created or changes status.
"""

import logging
from functools import partial

from django.db import transaction
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from logistics.models import DeliveryRequest, DeliveryStatus

logger = logging.getLogger(__name__)


# Store previous status for change detection
_previous_status = {}


def _touches_status(update_fields) -> bool:
    return update_fields is None or 'status' in update_fields


@receiver(pre_save, sender=DeliveryRequest)
def capture_previous_status(sender, instance, update_fields=None, **kwargs):
    """Capture the previous status before save for change detection."""
    if instance._state.adding or not _touches_status(update_fields):
        return
    previous = (
        DeliveryRequest.objects.filter(pk=instance.pk)
        .values_list('status', flat=True)
        .first()
    )
    if previous is not None:
        _previous_status[instance.pk] = previous


@receiver(post_save, sender=DeliveryRequest)
def on_delivery_saved(sender, instance, created, **kwargs):
    """
    On creation:
    - Broadcast the new request to the dispatch dashboard
    - Post a 'new request' message to Slack

    On status change:
    - Broadcast status update to tracking clients
    - Post a 'status update' message to Slack

    Both fan-outs run after the surrounding transaction commits.
    """
    if created:
        transaction.on_commit(partial(_handle_new_request, instance))
    else:
        _handle_status_change(instance)


def _handle_new_request(delivery: DeliveryRequest):
    logger.info(f"[SIGNAL] New delivery request: {delivery.tracking_id or delivery.id}")

    try:
        from logistics.events import broadcast_new_request

        broadcast_new_request({
            'id': str(delivery.id),
            'tracking_id': delivery.tracking_id,
            'priority': delivery.priority,
            'pickup_location': delivery.pickup_location,
            'delivery_location': delivery.delivery_location,
            'package_type': delivery.package_type,
        })
    except Exception as e:
        logger.warning(f"[SIGNAL] Broadcast new request failed: {e}")

    try:
        from notifications.services import notify_new_request
        notify_new_request(delivery)
    except Exception as e:
        logger.warning(f"[SIGNAL] Slack new request notification failed: {e}")


def _handle_status_change(delivery: DeliveryRequest):
    previous = _previous_status.pop(delivery.pk, None)
    note = delivery.__dict__.pop('_status_note', None)

    if previous is None or previous == delivery.status:
        return  # No status change

    logger.info(
        f"[SIGNAL] Delivery {str(delivery.id)[:8]} status: "
        f"{previous} -> {delivery.status}"
    )

    if note is None:
        from logistics.services.lifecycle import describe_step
        _, _, note = describe_step(delivery, delivery.status)

    transaction.on_commit(partial(_fan_out_status_change, delivery, delivery.status, note))


def _fan_out_status_change(delivery: DeliveryRequest, new_status: str, note: str):
    try:
        from logistics.events import broadcast_delivery_status
        broadcast_delivery_status(delivery.id, new_status, note)
    except Exception as e:
        logger.warning(f"[SIGNAL] Status broadcast failed: {e}")

    try:
        from notifications.services import notify_status_update
        notify_status_update(delivery, new_status, note)
    except Exception as e:
        logger.warning(f"[SIGNAL] Slack status notification failed: {e}")

    if new_status == DeliveryStatus.COMPLETED and not delivery.proof_of_delivery_photo:
        logger.info(
            f"[SIGNAL] Delivery {delivery.tracking_id or delivery.id} completed without proof photo"
        )
