"""Feedback events for whoever reads the storefront's RabbitMQ exchange."""
from __future__ import annotations

import datetime as dt
import json
import logging
import os

import pika
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Empty URL disables publishing (local development, tests)
RABBITMQ_URL = os.getenv("RABBITMQ_URL", "")
EVENTS_EXCHANGE = os.getenv("EVENTS_EXCHANGE", "storefront.events")

FEEDBACK_SUBMITTED = "feedback.submitted"


def _parameters() -> pika.URLParameters:
    params = pika.URLParameters(RABBITMQ_URL)
    params.heartbeat = 30
    params.blocked_connection_timeout = 30
    params.socket_timeout = 5
    return params


def feedback_event(report, user) -> dict:
    """Payload for a stored ``Report`` submitted by the session ``user``."""
    submitted = report.created_at or dt.datetime.now(dt.timezone.utc)
    if submitted.tzinfo is None:
        submitted = submitted.replace(tzinfo=dt.timezone.utc)
    return {
        "event": FEEDBACK_SUBMITTED,
        "occurred_at": submitted.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        "report_id": report.id,
        "user_id": user.id,
        "user_email": user.email,
        "user_name": user.name,
        "message": report.message,
    }


def publish_feedback(report, user) -> bool:
    """Send ``feedback.submitted`` as a persistent message.

    Returns False when no broker is configured; broker errors propagate.
    """
    if not RABBITMQ_URL:
        logger.debug(f"RABBITMQ_URL not set, report {report.id} not published")
        return False

    body = json.dumps(feedback_event(report, user), ensure_ascii=False).encode("utf-8")
    with pika.BlockingConnection(_parameters()) as connection:
        channel = connection.channel()
        channel.exchange_declare(exchange=EVENTS_EXCHANGE, exchange_type="topic", durable=True)
        channel.basic_publish(
            exchange=EVENTS_EXCHANGE,
            routing_key=FEEDBACK_SUBMITTED,
            body=body,
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=pika.spec.PERSISTENT_DELIVERY_MODE,
            ),
        )
    logger.info(f"Published {FEEDBACK_SUBMITTED} for report {report.id}")
    return True
