"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from assetsched.adapters.ads import AdsClient
from assetsched.adapters.sqlalchemy import SqlRunStateStore, is_started, startup
from assetsched.adapters.tabular import CsvReportSink, CsvScheduleSource
from assetsched.config import get_ads_config, get_scheduler_config, get_storage_config
from assetsched.domain.execution import Executor
from assetsched.domain.pipeline import SchedulePipeline
from assetsched.domain.ports.storage import StructuralError
from assetsched.domain.run_context import RunContext
from assetsched.domain.types import MemberKind
from assetsched.domain.validation import Validator
from assetsched.domain.verification import Verifier

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from assetsched.config import SchedulerConfig
    from assetsched.domain.pipeline import RunReport
    from assetsched.domain.ports.platform import AdsPlatform
    from assetsched.domain.ports.storage import ReportSink, RunStateStore, ScheduleSource
    from assetsched.domain.run_context import Clock
    from assetsched.domain.types import ScheduleRow

log = getLogger(__name__)

PREVIEW_FILENAME = "preview.csv"
RESULTS_FILENAME = "results.csv"


def read_schedule(sources: Sequence[ScheduleSource]) -> list[ScheduleRow]:
    """Read every source; a source with missing columns is skipped, the rest still run."""

    rows: list[ScheduleRow] = []
    for source in sources:
        try:
            rows.extend(source.read_rows())
        except StructuralError:
            log.exception("Skipping %s source", source.kind.value)
    return rows


def build_pipeline(
    config: SchedulerConfig,
    *,
    platform: AdsPlatform,
    sink: ReportSink,
    state: RunStateStore | None,
) -> SchedulePipeline:
    return SchedulePipeline(
        platform=platform,
        sink=sink,
        validator=Validator(limits=config.limits),
        executor=Executor(
            platform=platform,
            retry=config.retry,
            query_retry=config.query_retry,
            pacing=config.pacing,
        ),
        verifier=Verifier(platform=platform, policy=config.verification),
        state=state,
        horizon_days=config.horizon_days,
        windows=config.windows,
        preview_only=config.preview_only,
    )


def _default_state_store() -> RunStateStore:
    if not is_started():
        startup()
    return SqlRunStateStore()


def run_schedule(
    *,
    text_csv: Path,
    image_csv: Path,
    preview_csv: Path | None = None,
    results_csv: Path | None = None,
    horizon_days: int | None = None,
    timezone: str | None = None,
    preview_only: bool = False,
    clock: Clock | None = None,
    platform: AdsPlatform | None = None,
    state: RunStateStore | None = None,
) -> RunReport:
    """Run one scheduling pass over the CSV inputs using the configured adapters."""

    config = get_scheduler_config(
        horizon_days=horizon_days, timezone=timezone, preview_only=preview_only
    )
    effective_platform = platform or AdsClient(
        config=get_ads_config(), batch_size=config.batch_size, query_retry=config.query_retry
    )
    storage = get_storage_config()
    sink = CsvReportSink(
        preview_path=preview_csv or storage.ensure_data_dir() / PREVIEW_FILENAME,
        results_path=results_csv or storage.ensure_data_dir() / RESULTS_FILENAME,
    )
    effective_state = state or _default_state_store()

    zone = config.timezone or effective_platform.account_timezone()
    context = RunContext.create(zone) if clock is None else RunContext.create(zone, clock=clock)
    log.info(
        "Starting schedule run: horizon=%sd, timezone=%s, preview_only=%s",
        config.horizon_days,
        zone,
        config.preview_only,
    )

    rows = read_schedule(
        [
            CsvScheduleSource(path=text_csv, kind=MemberKind.TEXT),
            CsvScheduleSource(path=image_csv, kind=MemberKind.IMAGE),
        ]
    )
    pipeline = build_pipeline(
        config, platform=effective_platform, sink=sink, state=effective_state
    )
    return pipeline.run(rows, context)
