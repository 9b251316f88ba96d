import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import date

import yaml

from adapters.reservation_api import DEFAULT_TIMEOUT, ReservationApiAdapter
from availability import format_dates, free_dates
from errors import ConfigurationError, MonitorError
from notifier import CHANNELS, build_subject, notify, send_alert
from state import (
    JsonFileStore,
    STATE_FILE,
    detect_change,
    load_last_notified,
    make_key,
    save_notified,
)
from windows import plan_windows, today_in

logger = logging.getLogger(__name__)

FIXTURE_FILE = "fixtures/sample_availability.json"
DEFAULT_HORIZON_DAYS = 60
DEFAULT_MAX_RANGE_DAYS = 30


@dataclass(frozen=True)
class VenueSettings:
    venue_id: str
    venue_name: str
    endpoint: str
    timezone: str
    horizon_days: int
    max_range_days: int
    request_timeout: float


@dataclass(frozen=True)
class RunResult:
    free_dates: list
    notified: bool
    state_written: bool


def load_config(path: str = "config.yaml") -> dict:
    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"config file {path} is not valid YAML: {e}") from e
    if not isinstance(config, dict):
        raise ConfigurationError(f"config file {path} must hold a mapping")
    return config


def _section(config: dict, name: str) -> dict:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"config section {name!r} must be a mapping, got {type(section).__name__}")
    return section


def notification_channel(config: dict) -> str:
    """Validate the notifications section and return the configured channel."""
    notif = _section(config, "notifications")
    channel = notif.get("channel", "email")
    if channel not in CHANNELS:
        raise ConfigurationError(f"unknown notification channel: {channel}")
    if channel == "email" and not notif.get("email"):
        raise ConfigurationError("notifications.email is required for the email channel")
    return channel


def load_creds(config: dict) -> dict:
    channel = notification_channel(config)
    try:
        if channel == "email":
            return {
                "gmail_address": os.environ["GMAIL_ADDRESS"],
                "app_password": os.environ["GMAIL_APP_PASSWORD"],
            }
        return {"ntfy_topic": os.environ["NTFY_TOPIC"]}
    except KeyError as e:
        raise ConfigurationError(f"missing environment variable {e.args[0]}") from e


def venue_settings(config: dict) -> VenueSettings:
    """Validate the venue and monitor sections and apply defaults."""
    venue = _section(config, "venue")
    monitor = _section(config, "monitor")
    if not venue.get("id"):
        raise ConfigurationError("venue.id is required")
    if not venue.get("endpoint"):
        raise ConfigurationError("venue.endpoint is required")

    timeout = monitor.get("request_timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError(f"monitor.request_timeout must be a positive number, got {timeout!r}")

    return VenueSettings(
        venue_id=str(venue["id"]),
        venue_name=venue.get("name") or f"Venue {venue['id']}",
        endpoint=venue["endpoint"],
        timezone=venue.get("timezone", "UTC"),
        horizon_days=monitor.get("horizon_days", DEFAULT_HORIZON_DAYS),
        max_range_days=monitor.get("max_range_days", DEFAULT_MAX_RANGE_DAYS),
        request_timeout=timeout,
    )


def setup_logging(config: dict):
    level = str(_section(config, "logging").get("level", "INFO")).upper()
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))


def run(config: dict, creds: dict, store, adapter, dry_run: bool = False,
        test_notify: bool = False, today: date = None) -> RunResult:
    """
    Run one availability check for the configured venue.
    Separated from __main__ to allow unit testing without env vars or real files.
    """
    settings = venue_settings(config)
    if not dry_run:
        notification_channel(config)
    if today is None:
        today = today_in(settings.timezone)
    windows = plan_windows(settings.horizon_days, settings.max_range_days, today)
    logger.info(
        "Checking venue %s from %s over %d day(s) in %d window(s)",
        settings.venue_id, today, settings.horizon_days, len(windows),
    )

    key = make_key(settings.venue_id)
    last_notified = load_last_notified(store, key)

    if dry_run:
        try:
            with open(FIXTURE_FILE) as f:
                fixture = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"cannot load dry-run fixture {FIXTURE_FILE}: {e}") from e
        window_records = [fixture.get(settings.venue_id, [])]
    else:
        window_records = adapter.get_availability(settings.venue_id, windows)

    current = free_dates(window_records)
    decision = detect_change(current, last_notified)
    logger.info(
        "Found %d free date(s); previously notified %d; notify=%s",
        len(current), len(last_notified), decision.should_notify,
    )

    if dry_run:
        if decision.should_notify:
            print(f"[DRY RUN] Would notify for {len(current)} date(s): {format_dates(current)}")
        else:
            print("[DRY RUN] No notification: free dates are empty or unchanged")
        return RunResult(free_dates=current, notified=False, state_written=False)

    if test_notify:
        body = format_dates(current) or "Test notification: no free dates right now"
        notify(config, creds, build_subject(settings.venue_name, len(current)), body)
        return RunResult(free_dates=current, notified=True, state_written=False)

    if not decision.should_notify:
        return RunResult(free_dates=current, notified=False, state_written=False)

    send_alert(config, creds, settings.venue_name, current)
    save_notified(store, key, decision.new_state)
    return RunResult(free_dates=current, notified=True, state_written=True)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Venue booking availability checker")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    parser.add_argument("--state-file", default=STATE_FILE, help="Path to the JSON state file")
    parser.add_argument("--dry-run", action="store_true", help="Use fixture data, print the decision, do not send")
    parser.add_argument("--test-notify", action="store_true", help="Send a real test notification immediately")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_config(args.config)
        setup_logging(cfg)
        creds = {} if args.dry_run else load_creds(cfg)
        settings = venue_settings(cfg)
        adapter = ReservationApiAdapter(settings.endpoint, timeout=settings.request_timeout)
        run(
            config=cfg,
            creds=creds,
            store=JsonFileStore(args.state_file),
            adapter=adapter,
            dry_run=args.dry_run,
            test_notify=args.test_notify,
        )
    except MonitorError as e:
        logger.error("Check failed (%s): %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
