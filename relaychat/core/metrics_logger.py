"""
[METRIC] log lines for completions, titles and message appends.

Lines carry the owner, the event name and metadata such as counts, sizes,
model and backend names. Message content and titles are never logged.

Usage:
    from relaychat.core.metrics_logger import log_metric

    log_metric("completion", owner, backend="local", model="llama3", message_count=5)
    log_metric("message_appended", owner, role="user", content_length=42)
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _metrics_enabled() -> bool:
    # Late import keeps core importable without settings
    from relaychat.modules.config import config_manager

    return bool(config_manager.app_settings.feature_metrics_logging_enabled)


def format_metric(event_type: str, owner: Optional[str] = None, **kwargs: Any) -> str:
    """Render one metric line; metadata keys are sorted for stable output."""
    from relaychat.core.log_sanitizer import sanitize_for_logging

    line = f"[METRIC] [{sanitize_for_logging(owner) if owner else 'unknown'}] {event_type}"
    if kwargs:
        line += " " + " ".join(
            f"{key}={sanitize_for_logging(kwargs[key])}" for key in sorted(kwargs)
        )
    return line


def log_metric(event_type: str, owner: Optional[str] = None, **kwargs: Any) -> None:
    """Log a metric event when FEATURE_METRICS_LOGGING_ENABLED is on."""
    if not _metrics_enabled():
        return
    logger.info("%s", format_metric(event_type, owner, **kwargs))
