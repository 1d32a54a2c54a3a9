"""
Scraper health alerts.

Venues whose health check raised an alert are summarised in one Slack
message posted to an incoming webhook. Without a webhook the alerts are only
logged.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from cinecatalog.config import settings
from cinecatalog.services.scraper_health import (
    DEFAULT_THRESHOLDS,
    HealthThresholds,
    VenueHealth,
    summarize,
)

logger = logging.getLogger(__name__)

MAX_LISTED_WARNINGS = 5


@dataclass(frozen=True)
class HealthAlert:
    cinema_id: str
    name: str
    alert_type: str
    message: str

    @property
    def is_critical(self) -> bool:
        return self.alert_type.startswith("critical")


def alert_message(health: VenueHealth) -> str:
    hours = health.hours_since_last_scrape
    if health.alert_type in ("critical_stale", "warning_stale"):
        detail = "never scraped" if hours is None else f"last scraped {hours}h ago"
    elif health.alert_type == "critical_volume":
        detail = "no future screenings"
    elif health.alert_type == "warning_volume":
        detail = f"only {health.total_future_screenings} future screenings"
    else:
        detail = ", ".join(r.value for r in health.anomaly_reasons)
    return f"{health.name}: {detail} (score {health.overall_score})"


def build_alerts(results: Iterable[VenueHealth]) -> list[HealthAlert]:
    """One alert per venue with an alert type, critical ones first."""
    alerts = [
        HealthAlert(health.cinema_id, health.name, health.alert_type, alert_message(health))
        for health in results
        if health.alert_type
    ]
    return sorted(alerts, key=lambda a: not a.is_critical)


def build_slack_message(
    results: list[VenueHealth],
    alerts: list[HealthAlert],
    thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
) -> dict[str, Any]:
    """Slack Block Kit payload: header, status counts, alert lists, thresholds."""
    critical = [a for a in alerts if a.is_critical]
    warnings = [a for a in alerts if not a.is_critical]
    counts = summarize(results)

    if critical:
        header = ":rotating_light: Scraper Health: Critical Issues Detected"
        fallback = f"Scraper Health Alert: {len(critical)} critical issues detected"
    else:
        header = ":warning: Scraper Health: Health Warnings"
        fallback = f"Scraper Health Warning: {len(warnings)} warnings"

    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": header, "emoji": True}},
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Total Cinemas:*\n{counts['total']}"},
                {"type": "mrkdwn", "text": f"*Healthy:*\n{counts['healthy']}"},
                {"type": "mrkdwn", "text": f"*Warnings:*\n{counts['warning']}"},
                {"type": "mrkdwn", "text": f"*Critical:*\n{counts['critical']}"},
            ],
        },
    ]

    if critical:
        lines = "\n".join(f"• {a.message}" for a in critical)
        blocks.append(
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*:rotating_light: Critical Issues:*\n{lines}"},
            }
        )

    if warnings:
        listed = warnings[:MAX_LISTED_WARNINGS]
        text = "*:warning: Warnings:*\n" + "\n".join(f"• {a.message}" for a in listed)
        if len(warnings) > len(listed):
            text += f"\n_... and {len(warnings) - len(listed)} more_"
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": text}})

    blocks.append(
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": (
                        f"Thresholds: Critical stale >{thresholds.critical_stale_hours}h | "
                        f"Warning stale >{thresholds.warning_stale_hours}h | "
                        f"Low volume <{thresholds.low_volume_percent:.0f}% of chain median"
                    ),
                }
            ],
        }
    )
    return {"blocks": blocks, "text": fallback}


class SlackNotifier:
    """Posts health alerts to a Slack incoming webhook."""

    def __init__(self, webhook_url: str | None = None, timeout: int | None = None) -> None:
        self.webhook_url = webhook_url if webhook_url is not None else settings.slack_webhook_url
        self.timeout = timeout or settings.http_timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    async def send_health_alerts(
        self,
        results: list[VenueHealth],
        thresholds: HealthThresholds = DEFAULT_THRESHOLDS,
    ) -> bool:
        """
        Notify about every venue in `results` that raised an alert.

        Returns:
            True if a message was delivered
        """
        alerts = build_alerts(results)
        if not alerts:
            logger.info("No health alerts to send")
            return False

        if not self.is_configured:
            logger.info("Slack webhook not configured, skipping notification")
            for alert in alerts:
                level = "CRITICAL" if alert.is_critical else "WARNING"
                logger.warning(f"[{level}] {alert.message}")
            return False

        message = build_slack_message(results, alerts, thresholds)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=message)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Slack webhook failed: {e}")
            return False

        logger.info(f"Sent {len(alerts)} health alerts to Slack")
        return True
