import json
import logging

from kafka import KafkaProducer
from kafka.errors import KafkaError

from gym_service import config

logger = logging.getLogger(__name__)

_producer = None


def get_producer():
    """Kafka producer for lifecycle events, or None when no broker is configured."""
    global _producer
    if _producer is None and config.KAFKA_BROKER:
        _producer = KafkaProducer(
            bootstrap_servers=config.KAFKA_BROKER,
            value_serializer=lambda v: json.dumps(v).encode("utf-8"),
            key_serializer=lambda k: k.encode("utf-8") if k else None,
        )
    return _producer


def publish(producer, topic: str, key: str, value: dict) -> bool:
    """Send one event. Called after commit, so a broker failure is logged, not raised."""
    if producer is None:
        return False

    try:
        producer.send(topic, key=key, value=value)
    except KafkaError as exc:
        logger.error(f"Could not publish {value.get('event')} to {topic}: {exc}")
        return False

    logger.info(f"Published {value.get('event')} to {topic}")
    return True


def send_membership_status(producer, membership, event: str) -> bool:
    return publish(producer, config.MEMBERSHIP_STATUS_TOPIC, membership.member_id, {
        "event": event,
        "memberId": membership.member_id,
        "membershipId": membership.id,
        "planId": membership.plan_id,
        "status": membership.status.value,
        "endDate": membership.end_date.isoformat() if membership.end_date else None,
    })


def send_class_event(producer, booking, event: str) -> bool:
    return publish(producer, config.CLASS_EVENTS_TOPIC, booking.member_id, {
        "event": event,
        "bookingId": booking.id,
        "scheduleId": booking.schedule_id,
        "memberId": booking.member_id,
        "classDate": booking.class_date.isoformat(),
        "status": booking.status.value,
    })
