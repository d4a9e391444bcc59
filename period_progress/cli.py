"""Command line entry points for the period progress engine."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from period_progress.analyses.monthly import aggregate_monthly, rounding_quanta
from period_progress.analyses.portfolio import summarize_portfolio
from period_progress.analyses.risk import assess_entities
from period_progress.exceptions import InvalidRange
from period_progress.foundation import (
    DEFAULT_BASELINE_RATES,
    ActivityEvent,
    BaselineRates,
    InMemoryActivityLog,
    InMemoryPeriodStore,
    Period,
    TrackedEntity,
    TrackingConfig,
)
from period_progress.observability import configure_logging
from period_progress.pandas import assessments_to_dataframe, month_buckets_to_dataframe

logger = structlog.get_logger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM

EXIT_OK = 0
EXIT_INVALID_INPUT = 2


def _parse_date(value: str) -> date:
    return date.fromisoformat(value[:10])


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _load_snapshot(path: Path) -> dict[str, Any]:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ValueError("Expected a JSON object at the top level of the input file")
    return payload


def _parse_period(raw: dict[str, Any], idx: int) -> Period:
    try:
        return Period(
            period_id=str(raw.get("id", raw.get("period_id", idx))),
            period_start=_parse_date(raw["period_start"]),
            period_end=_parse_date(raw["period_end"]),
            period_label=str(raw.get("period_label", "")),
            metrics=raw.get("metrics") or {},
        )
    except KeyError as exc:
        raise ValueError(f"Period at index {idx} missing key {exc.args[0]}") from exc


def _parse_activity(raw: dict[str, Any], entity_id: str) -> ActivityEvent:
    occurred_at = raw.get("occurred_at") or raw.get("created_at")
    if not occurred_at:
        raise ValueError(f"Activity for entity {entity_id} has no occurred_at timestamp")
    return ActivityEvent(
        entity_id=entity_id,
        occurred_at=_parse_datetime(occurred_at),
        type=str(raw.get("type", "")),
        outcome=str(raw.get("outcome", "")),
    )


def _resolve_output(path: Path) -> Path:
    output_path = path.resolve()
    cwd = Path.cwd().resolve()
    try:
        output_path.relative_to(cwd)
    except ValueError:
        raise ValueError(
            f"Output path {output_path} must reside within the current working directory"
        )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def _emit_json(payload: Any, output: Path | None) -> None:
    if output:
        with output.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
    else:  # stdout fallback enables piping in shell usage.
        json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
        print()


def _emit_csv(df, output: Path | None) -> None:
    if output:
        df.to_csv(output, index=False)
    else:
        df.to_csv(sys.stdout, index=False)


def aggregate_monthly_cli(argv: list[str] | None = None) -> int:
    """Spread tracked periods onto calendar months.

    The input file holds ``{"tracking": {...}, "periods": [...]}`` where
    ``tracking`` is a time tracking config and each period has
    ``period_start``, ``period_end`` and ``metrics``.
    """
    configure_logging()
    parser = argparse.ArgumentParser(description=aggregate_monthly_cli.__doc__)
    parser.add_argument("input", type=Path, help="Path to JSON snapshot file")
    parser.add_argument("--start", required=True, help="First month (ISO date)")
    parser.add_argument("--end", required=True, help="Last month (ISO date)")
    parser.add_argument(
        "--metric",
        dest="metrics",
        action="append",
        help="Metric id to aggregate (defaults to every configured metric).",
    )
    parser.add_argument("--format", choices=["json", "csv"], default="json")
    parser.add_argument("--output", type=Path, help="Optional output file path.")
    args = parser.parse_args(argv)

    try:
        output = _resolve_output(args.output) if args.output else None
        payload = _load_snapshot(args.input)
        tracking = TrackingConfig.model_validate(payload.get("tracking") or {})
        periods = [
            _parse_period(raw, idx) for idx, raw in enumerate(payload.get("periods", []))
        ]
        metric_ids = args.metrics or tracking.metric_ids
        if not metric_ids:
            raise ValueError("No metrics configured; pass --metric or a tracking config")
        buckets = aggregate_monthly(
            periods,
            metric_ids,
            _parse_date(args.start),
            _parse_date(args.end),
            quanta=rounding_quanta(tracking),
        )
    except InvalidRange as exc:
        logger.error("invalid_range", error=str(exc))
        return EXIT_INVALID_INPUT
    except (TypeError, ValueError) as exc:
        logger.error("invalid_input", path=str(args.input), error=str(exc))
        return EXIT_INVALID_INPUT

    logger.info(
        "aggregated_monthly",
        periods=len(periods),
        months=len(buckets),
        metrics=list(metric_ids),
    )
    if args.format == "csv":
        _emit_csv(month_buckets_to_dataframe(buckets, metric_ids), output)
    else:
        _emit_json([bucket.as_dict() for bucket in buckets], output)
    return EXIT_OK


def classify_risk_cli(argv: list[str] | None = None) -> int:
    """Classify risk for every entity in a snapshot and summarise the portfolio.

    The input file holds ``{"tracking": {...}, "baseline_rates": {...},
    "entities": [...]}``. Each entity has ``entity_id``, ``enrollment_date``,
    optional ``status``, ``periods`` and ``activities``. Baseline rates
    default to 2 cases and 1 course per month.
    """
    configure_logging()
    parser = argparse.ArgumentParser(description=classify_risk_cli.__doc__)
    parser.add_argument("input", type=Path, help="Path to JSON snapshot file")
    parser.add_argument(
        "--now",
        help="Evaluation time (ISO datetime). Defaults to the current UTC time.",
    )
    parser.add_argument("--format", choices=["json", "csv"], default="json")
    parser.add_argument("--output", type=Path, help="Optional output file path.")
    args = parser.parse_args(argv)

    try:
        now = _parse_datetime(args.now) if args.now else datetime.now(timezone.utc)
        output = _resolve_output(args.output) if args.output else None
        payload = _load_snapshot(args.input)
        tracking = TrackingConfig.model_validate(payload.get("tracking") or {})
        if "baseline_rates" in payload:
            baseline_rates = BaselineRates.model_validate(payload["baseline_rates"])
        else:
            baseline_rates = DEFAULT_BASELINE_RATES

        entities: list[TrackedEntity] = []
        period_store = InMemoryPeriodStore()
        activity_log = InMemoryActivityLog()
        for idx, raw in enumerate(payload.get("entities", [])):
            try:
                entity = TrackedEntity(
                    entity_id=str(raw["entity_id"]),
                    enrollment_date=_parse_date(raw["enrollment_date"]),
                    status=str(raw.get("status", "active")),
                )
            except KeyError as exc:
                raise ValueError(
                    f"Entity at index {idx} missing key {exc.args[0]}"
                ) from exc
            entities.append(entity)
            period_store.put(
                entity.entity_id,
                [_parse_period(p, i) for i, p in enumerate(raw.get("periods", []))],
            )
            for activity in raw.get("activities", []):
                activity_log.record(_parse_activity(activity, entity.entity_id))
    except (TypeError, ValueError) as exc:
        logger.error("invalid_input", path=str(args.input), error=str(exc))
        return EXIT_INVALID_INPUT

    assessments = assess_entities(
        entities, period_store, activity_log, baseline_rates, now
    )
    metric_ids = tracking.metric_ids or list(baseline_rates.as_mapping())
    summary = summarize_portfolio(
        entities,
        assessments,
        period_store.fetch_periods([entity.entity_id for entity in entities]),
        metric_ids,
        now,
        quanta=rounding_quanta(tracking),
        activity_provider=activity_log,
    )
    logger.info(
        "classified_risk",
        entities=summary.total_entities,
        at_risk=summary.at_risk_count,
        critical=summary.critical_risk_count,
    )

    if args.format == "csv":
        _emit_csv(assessments_to_dataframe(assessments), output)
    else:
        _emit_json(
            {
                "evaluated_at": now.isoformat(),
                "assessments": [assessment.as_dict() for assessment in assessments],
                "summary": summary.as_dict(),
            },
            output,
        )
    return EXIT_OK


COMMANDS = {
    "monthly": aggregate_monthly_cli,
    "risk": classify_risk_cli,
}


def main() -> None:
    argv = sys.argv[1:]
    if not argv or argv[0] not in COMMANDS:
        print(f"usage: period-progress {{{','.join(COMMANDS)}}} ...", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    raise SystemExit(COMMANDS[argv[0]](argv[1:]))


if __name__ == "__main__":  # pragma: no cover
    main()
