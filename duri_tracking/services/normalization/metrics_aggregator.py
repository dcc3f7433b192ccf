"""Dashboard metrics computed from canonical trackings."""

from collections import Counter
from typing import Iterable, Sequence

from duri_tracking.schemas.tracking import (
    CustomFieldAnalysis,
    FieldPopularity,
    RawExternalTask,
    TimelineBucket,
    Tracking,
    TrackingMetrics,
)
from duri_tracking.services.normalization.constants import (
    STATUS_COMPLETED,
    STATUS_DELAYED,
    TIMELINE_MAX_BUCKETS,
)
from duri_tracking.services.normalization.text_utils import parse_date


def _count(counter: Counter, value: str) -> None:
    value = (value or "").strip()
    if value:
        counter[value] += 1


def _percent(part: int, whole: int) -> int:
    # rounds half up, 1 of 8 is 12.5% -> 13
    return (part * 200 + whole) // (whole * 2) if whole else 0


def build_timeline(values: Iterable[str], max_buckets: int = TIMELINE_MAX_BUCKETS) -> list[TimelineBucket]:
    """Group date strings by ``YYYY-MM``.

    Unparsable values are skipped. Only the most recent ``max_buckets``
    months are returned, oldest first.
    """
    months: Counter = Counter()
    for value in values:
        parsed = parse_date(value)
        if parsed is not None:
            months[f"{parsed.year:04d}-{parsed.month:02d}"] += 1

    recent = sorted(months)[-max_buckets:] if max_buckets > 0 else []
    return [TimelineBucket(month=month, count=months[month]) for month in recent]


def aggregate(trackings: Sequence[Tracking]) -> TrackingMetrics:
    """Fold trackings into counts, distributions and timelines.

    Args:
        trackings: Attributed trackings (already filtered for the caller)

    Returns:
        TrackingMetrics: All-zero metrics for an empty input
    """
    status: Counter = Counter()
    company: Counter = Counter()
    exporter: Counter = Counter()
    carrier: Counter = Counter()
    vessel: Counter = Counter()
    terminal: Counter = Counter()
    product: Counter = Counter()
    agency: Counter = Counter()
    responsible: Counter = Counter()
    completed = delayed = containers = 0
    etd_values: list[str] = []
    eta_values: list[str] = []

    for tracking in trackings:
        if tracking.status == STATUS_COMPLETED:
            completed += 1
        elif tracking.status == STATUS_DELAYED:
            delayed += 1

        _count(status, tracking.status)
        _count(company, tracking.company_name)
        _count(exporter, tracking.transport.exporter)
        _count(carrier, tracking.transport.carrier_company)
        _count(vessel, tracking.transport.vessel)
        _count(terminal, tracking.transport.terminal)
        _count(responsible, tracking.schedule.responsible)
        for item in tracking.transport.products:
            _count(product, item)
        for item in tracking.regulatory.agencies:
            _count(agency, item)

        containers += len(tracking.transport.containers)
        etd_values.append(tracking.schedule.etd)
        eta_values.append(tracking.schedule.eta)

    total = len(trackings)
    effective_rate = _percent(completed, total)

    return TrackingMetrics(
        total_operations=total,
        completed_operations=completed,
        active_operations=total - completed,
        effective_rate=effective_rate,
        delayed=delayed,
        total_containers=containers,
        unique_exporters=len(exporter),
        unique_carriers=len(carrier),
        unique_terminals=len(terminal),
        status_distribution=dict(status),
        company_distribution=dict(company),
        exporter_distribution=dict(exporter),
        carrier_distribution=dict(carrier),
        vessel_distribution=dict(vessel),
        terminal_distribution=dict(terminal),
        product_distribution=dict(product),
        regulatory_agency_distribution=dict(agency),
        responsible_distribution=dict(responsible),
        etd_timeline=build_timeline(etd_values),
        eta_timeline=build_timeline(eta_values),
    )


def analyze_custom_fields(raws: Sequence[RawExternalTask], top: int = 10) -> CustomFieldAnalysis:
    """Summarize which custom fields the source actually fills in."""
    names: Counter = Counter()
    kinds: Counter = Counter()
    with_fields = 0
    total_fields = 0

    for raw in raws:
        if raw.custom_fields:
            with_fields += 1
        total_fields += len(raw.custom_fields)
        for entry in raw.custom_fields:
            names[entry.name] += 1
            kinds[entry.kind] += 1

    total = len(raws)
    return CustomFieldAnalysis(
        total_tasks=total,
        tasks_with_custom_fields=with_fields,
        average_fields_per_task=round(total_fields / total, 2) if total else 0.0,
        most_popular_fields=[
            FieldPopularity(name=name, count=count, percentage=_percent(count, total))
            for name, count in names.most_common(top)
        ],
        field_kind_distribution=dict(kinds),
    )
