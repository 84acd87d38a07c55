"""Lambda entry point: one aggregation cycle returned as a JSON snapshot."""

import asyncio
import json
import os
from datetime import UTC, datetime
from typing import Any

import boto3

from .config import Config
from .context import build_context
from .logging_config import create_execution_logger, new_execution_id, setup_structured_logging
from .models import AggregationResult, Source
from .recency import date_range_text, select_recent
from .translate import Translator

# CloudWatch accepts at most 20 metrics per PutMetricData call
METRICS_BATCH_SIZE = 20

setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))


def empty_metrics() -> dict[str, Any]:
    return {
        "sources_total": 0,
        "sources_succeeded": 0,
        "sources_failed": 0,
        "unavailable": [],
        "items_found": 0,
        "items_deduplicated": 0,
        "items_recent": 0,
        "items_translated": 0,
        "recency_fallback": False,
        "errors": [],
    }


def record_aggregation(metrics: dict[str, Any], result: AggregationResult) -> None:
    """Copy per-source accounting from a cycle result into ``metrics``."""
    metrics.update(
        sources_total=result.sources_total,
        sources_succeeded=result.sources_succeeded,
        sources_failed=result.sources_failed,
        unavailable=list(result.unavailable),
        items_found=len(result.items) + result.duplicates_removed,
        items_deduplicated=result.duplicates_removed,
    )
    metrics["errors"].extend(f"Source unavailable: {name}" for name in result.unavailable)


async def collect_snapshot(
    config: Config, sources: list[Source], execution_id: str
) -> AggregationResult:
    """Run a single aggregation cycle with a freshly wired context."""
    context = build_context(config, execution_id=execution_id)
    try:
        return await context.aggregator.fetch_all(sources)
    finally:
        await context.aclose()


def _response(status_code: int, **body) -> dict[str, Any]:
    return {"statusCode": status_code, "body": json.dumps(body, ensure_ascii=False)}


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Aggregate every configured source into one recency-filtered snapshot.

    Args:
        event: Lambda event data (unused)
        context: Lambda context object

    Returns:
        API Gateway style response; 500 when no source was reachable
    """
    execution_id = new_execution_id("lambda")
    main_logger = create_execution_logger("main", execution_id)
    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    metrics = empty_metrics()
    config = None

    try:
        config = Config()
        sources = config.get_sources()
        main_logger.info(f"Aggregating {len(sources)} sources", source_count=len(sources))

        result = asyncio.run(collect_snapshot(config, sources, execution_id))
        record_aggregation(metrics, result)

        recency = config.get_recency_config()
        now = datetime.now(UTC)
        selection = select_recent(result.items, recency.window_days, recency.fallback_count, now)
        metrics["items_recent"] = len(selection.items)
        metrics["recency_fallback"] = selection.fallback_used

        items = selection.items
        translation_config = config.get_translation_config()
        if translation_config.enabled:
            items = Translator(translation_config, execution_id).translate_items(items)
            metrics["items_translated"] = sum(1 for item in items if item.original_title)

    except Exception as e:
        error_msg = f"Snapshot failed: {e}"
        main_logger.error(error_msg, error=str(e))
        metrics["errors"].append(error_msg)
        if config is not None and config.metrics_enabled:
            send_cloudwatch_metrics(
                metrics, config.aws_region, execution_id, config.metrics_namespace
            )
        main_logger.log_execution_end(success=False, metrics=metrics, error=error_msg)
        return _response(
            500,
            message="News aggregation failed",
            execution_id=execution_id,
            error=error_msg,
            metrics=metrics,
        )

    main_logger.log_metrics(metrics)
    if config.metrics_enabled:
        send_cloudwatch_metrics(metrics, config.aws_region, execution_id, config.metrics_namespace)
    main_logger.log_execution_end(success=True, metrics=metrics)

    return _response(
        200,
        message="News aggregation completed",
        execution_id=execution_id,
        items=[item.to_dict() for item in items],
        date_range=date_range_text(recency.window_days, now),
        warning=selection.warning,
        metrics=metrics,
    )


def _datum(name: str, value: float, dimensions: list[dict[str, str]], unit: str = "Count") -> dict:
    return {"MetricName": name, "Value": value, "Unit": unit, "Dimensions": dimensions}


def build_metric_data(metrics: dict[str, Any], execution_id: str) -> list[dict]:
    """Translate a metrics dict into CloudWatch ``MetricData`` entries."""
    by_execution = [{"Name": "ExecutionId", "Value": execution_id}]
    succeeded = metrics["sources_succeeded"] > 0
    by_status = [{"Name": "Status", "Value": "Success" if succeeded else "Failure"}]

    counts = {
        "SourcesTotal": metrics["sources_total"],
        "SourcesSucceeded": metrics["sources_succeeded"],
        "SourcesFailed": metrics["sources_failed"],
        "ItemsFound": metrics["items_found"],
        "ItemsDeduplicated": metrics["items_deduplicated"],
        "ItemsRecent": metrics["items_recent"],
        "ItemsTranslated": metrics["items_translated"],
        "RecencyFallback": int(metrics["recency_fallback"]),
        "Errors": len(metrics["errors"]),
    }
    data = [_datum(name, value, by_execution) for name, value in counts.items()]

    data.append(_datum("ExecutionSuccess", int(succeeded), by_status))
    data.append(_datum("ExecutionFailure", int(not succeeded), by_status))
    data.append(
        _datum(
            "SourceAvailability",
            metrics["sources_succeeded"] / max(metrics["sources_total"], 1) * 100,
            by_execution,
            unit="Percent",
        )
    )
    data.append(
        _datum(
            "DeduplicationRate",
            metrics["items_deduplicated"] / max(metrics["items_found"], 1) * 100,
            by_execution,
            unit="Percent",
        )
    )
    return data


def send_cloudwatch_metrics(
    metrics: dict[str, Any],
    aws_region: str,
    execution_id: str,
    namespace: str = "Newswire",
) -> None:
    """
    Publish cycle metrics to CloudWatch. Failures are logged, never raised.

    Args:
        metrics: Metrics dict as built by the handler
        aws_region: AWS region for the CloudWatch client
        execution_id: Execution ID used as metric dimension and log context
        namespace: CloudWatch namespace
    """
    metrics_logger = create_execution_logger("cloudwatch_metrics", execution_id)

    try:
        cloudwatch = boto3.client("cloudwatch", region_name=aws_region)
        metric_data = build_metric_data(metrics, execution_id)

        for start in range(0, len(metric_data), METRICS_BATCH_SIZE):
            cloudwatch.put_metric_data(
                Namespace=namespace, MetricData=metric_data[start : start + METRICS_BATCH_SIZE]
            )

        metrics_logger.info(
            f"Published {len(metric_data)} metrics to {namespace}",
            metrics_sent=len(metric_data),
            namespace=namespace,
        )
    except Exception as e:
        metrics_logger.error(f"Failed to send CloudWatch metrics: {e}", error=str(e))
