"""Prometheus metrics instrumentation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_fastapi_instrumentator import Instrumentator, metrics

from account_service.observability.logging import get_logger


if TYPE_CHECKING:
    from fastapi import FastAPI

    from account_service.core.config import Settings

logger = get_logger(__name__)

METRIC_NAMESPACE = "account_service"


def setup_metrics(app: FastAPI, settings: Settings) -> Instrumentator | None:
    """Instrument HTTP traffic and expose ``{prefix}/metrics``.

    Collects request counts and latency grouped by handler template, so
    account ids in paths such as ``/users/{account_id}`` do not explode
    label cardinality.

    Args:
        app: The FastAPI application instance.
        settings: Application settings.

    Returns:
        The configured Instrumentator, or None when metrics are disabled.
    """
    if not settings.observability.metrics.enabled:
        logger.info("Metrics collection disabled")
        return None

    prefix = settings.api.v1_prefix
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[
            f"{prefix}/health",
            f"{prefix}/ready",
            f"{prefix}/metrics",
        ],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )
    instrumentator.add(
        metrics.default(
            metric_namespace=METRIC_NAMESPACE,
            metric_subsystem="http",
            should_only_respect_2xx_for_highr=False,
        )
    )

    instrumentator.instrument(app)
    metrics_endpoint = f"{prefix}/metrics"
    instrumentator.expose(
        app,
        endpoint=metrics_endpoint,
        include_in_schema=False,
        tags=["monitoring"],
    )

    logger.info("Prometheus metrics configured", endpoint=metrics_endpoint)
    return instrumentator


__all__ = ["setup_metrics"]
