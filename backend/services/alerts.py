"""Emergency notification.

Alerts are recorded as ``sms_alerts`` rows for the admin console to pick
up; no SMS is actually delivered.
"""
import logging

logger = logging.getLogger(__name__)

ALERT_CRISIS_EMERGENCY = "crisis_emergency"
ALERT_ADMIN_CRISIS = "admin_crisis_notification"
ALERT_LOCATION = "location_emergency"
ALERT_ADMIN_INTERVENTION = "admin_intervention"

ADMIN_RECIPIENT = "admin"
EMERGENCY_SERVICES_RECIPIENT = "emergency_services"
ADMIN_RESPONSE_RECIPIENT = "admin_response"


def crisis_contact_message(contact_name):
    return (
        f"URGENT: {contact_name} has triggered a crisis alert and may need immediate assistance. "
        "Please check on them immediately. If this is a medical emergency, call 911."
    )


def trigger_emergency_response(store, user_id):
    alerts = []
    profile = store.get_profile(user_id) or {}
    contact, phone = profile.get("emergency_contact"), profile.get("emergency_phone")

    if contact and phone:
        alerts.append(store.insert_alert(
            phone, crisis_contact_message(contact), ALERT_CRISIS_EMERGENCY, sent_by=user_id
        ))
        logger.warning("Crisis alert recorded for emergency contact of user %s", user_id)
    else:
        logger.info("User %s has no emergency contact on file", user_id)

    alerts.append(store.insert_alert(
        ADMIN_RECIPIENT, f"Crisis alert triggered by user {user_id}", ALERT_ADMIN_CRISIS, sent_by=user_id
    ))
    return alerts


def share_location(store, user_id, lat, lng):
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValueError("invalid coordinates")
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValueError("coordinates out of range")
    return store.insert_alert(
        EMERGENCY_SERVICES_RECIPIENT,
        f"Crisis alert: Person in distress at location: https://maps.google.com/?q={lat},{lng}",
        ALERT_LOCATION,
        sent_by=user_id,
    )


def admin_intervention(store, user_id):
    return store.insert_alert(
        ADMIN_RESPONSE_RECIPIENT,
        f"Admin is responding to crisis alert for user {user_id}",
        ALERT_ADMIN_INTERVENTION,
    )
