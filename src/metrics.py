"""Prometheus metrics for the portfolio checkup.

Exposes an HTTP endpoint (default :9090/metrics) that Prometheus can scrape.
All metric objects are module-level singletons; import and use directly.

Metrics exposed:
  checkup_reports_total               counter  result=completed|incomplete|failed
  checkup_rule_verdicts_total         counter  rule=<key>, value=true|false
  checkup_unresolved_prices_total     counter
  checkup_fx_fallbacks_total          counter  pair=<FROMTO>
  checkup_aggregation_duration_seconds histogram
  checkup_commands_total              counter  command=<name>, success=true|false
"""
import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

reports_total = Counter(
    "checkup_reports_total",
    "Number of portfolio checkup reports requested",
    ["result"],          # "completed" | "incomplete" | "failed"
)

rule_verdicts_total = Counter(
    "checkup_rule_verdicts_total",
    "Rule verdicts produced, by rule and outcome",
    ["rule", "value"],   # rule key, "true" | "false"
)

unresolved_prices_total = Counter(
    "checkup_unresolved_prices_total",
    "Positions left out of a report because no market price was found",
)

fx_fallbacks_total = Counter(
    "checkup_fx_fallbacks_total",
    "Conversions that fell back to the unconverted amount",
    ["pair"],
)

aggregation_duration_seconds = Histogram(
    "checkup_aggregation_duration_seconds",
    "Wall-clock duration of building the current positions (seconds)",
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

commands_total = Counter(
    "checkup_commands_total",
    "Number of bot write-commands executed",
    ["command", "success"],   # success = "true" | "false"
)


# ---------------------------------------------------------------------------
# Server bootstrap
# ---------------------------------------------------------------------------

def start_metrics_server(port: int = 9090) -> None:
    """Start the Prometheus metrics HTTP server in a background thread.

    Logs a warning and continues if the port is already in use.
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server listening on :{port}/metrics")
    except OSError as exc:
        logger.warning(f"Could not start metrics server on port {port}: {exc}")
