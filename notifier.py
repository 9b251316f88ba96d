import logging
import smtplib
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests

from availability import format_dates
from errors import ConfigurationError, NotificationError

logger = logging.getLogger(__name__)

CHANNELS = ("email", "ntfy")
SEND_TIMEOUT = 10


def build_subject(venue_name: str, count: int) -> str:
    return f"\U0001f37d {venue_name} \u2014 {count} open date{'s' if count != 1 else ''}"


def send_email(gmail_address: str, app_password: str, to: str, subject: str, body: str,
               timeout: float = SEND_TIMEOUT):
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = gmail_address
    msg["To"] = to
    msg.attach(MIMEText(body, "plain"))
    with smtplib.SMTP_SSL("smtp.gmail.com", 465, timeout=timeout) as server:
        server.login(gmail_address, app_password)
        server.sendmail(gmail_address, to, msg.as_string())


def send_push(ntfy_topic: str, title: str, body: str, timeout: float = SEND_TIMEOUT):
    resp = requests.post(
        f"https://ntfy.sh/{ntfy_topic}",
        data=body.encode("utf-8"),
        headers={"Title": title},
        timeout=timeout,
    )
    resp.raise_for_status()


def notify(config: dict, creds: dict, subject: str, body: str):
    """
    Deliver one message on the configured channel.

    Args:
        config: full config dict (needs config["notifications"])
        creds: {"gmail_address", "app_password"} or {"ntfy_topic"}
        subject: message subject / push title
        body: message text

    Raises:
        NotificationError: if the sink did not accept the message
    """
    notif = config.get("notifications") or {}
    channel = notif.get("channel", "email")
    timeout = (config.get("monitor") or {}).get("request_timeout", SEND_TIMEOUT)

    if channel == "email" and not notif.get("email"):
        raise ConfigurationError("notifications.email is required for the email channel")

    try:
        if channel == "email":
            send_email(creds["gmail_address"], creds["app_password"], notif["email"], subject, body, timeout)
        elif channel == "ntfy":
            send_push(creds["ntfy_topic"], subject, body, timeout)
        else:
            raise ConfigurationError(f"unknown notification channel: {channel}")
    except (smtplib.SMTPException, OSError, requests.RequestException) as e:
        raise NotificationError(f"{channel} delivery failed: {e}") from e
    logger.info("Sent %s notification: %s", channel, subject)


def send_alert(config: dict, creds: dict, venue_name: str, dates: list[date]):
    """Send one alert listing the free dates. Does nothing for an empty list."""
    if not dates:
        return
    notify(config, creds, build_subject(venue_name, len(dates)), format_dates(dates))
