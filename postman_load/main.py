from __future__ import annotations

import logging
import sys

from .adapter import ExecutionAdapter
from .aggregator import MetricsAggregator
from .charts import write_artefacts
from .collection import CollectionLoadError, DataFileError, load_collection, load_request_bodies
from .config import build_config, parse_args
from .report import format_banner, format_report
from .runner import CollectionRunner
from .scheduler import Scheduler

LOGGER = logging.getLogger("postman_load")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = build_config(args)

    try:
        load_collection(config.file)
    except CollectionLoadError as exc:
        LOGGER.error("failed to load collection: %s", exc)
        return 1

    try:
        bodies = load_request_bodies(config.data_file_path)
    except DataFileError as exc:
        LOGGER.error("failed to load data file: %s", exc)
        return 1

    print(format_banner(config))

    aggregator = MetricsAggregator()
    adapter = ExecutionAdapter(
        collection_path=config.file,
        aggregator=aggregator,
        runner=CollectionRunner(timeout_s=config.request_timeout_s),
        bodies=bodies,
    )
    scheduler = Scheduler(config, tick=adapter.execute_once)
    scheduler.start()

    interrupted = False
    try:
        outcome = scheduler.wait()
    except KeyboardInterrupt:
        print("stopping load test", file=sys.stderr)
        interrupted = True
        scheduler.stop()
        outcome = scheduler.outcome()

    if outcome.failed:
        print(f"load test aborted: {outcome.error}", file=sys.stderr)
        return 1

    LOGGER.info("%d collection runs issued in %.2f seconds", outcome.ticks, outcome.duration_s)
    if not config.report_on_exit:
        return 0

    elapsed_ms = int(outcome.duration_s * 1000) if interrupted else config.total_duration_ms
    print(format_report(aggregator.summarize(), elapsed_ms))
    if config.output_dir:
        paths = write_artefacts(aggregator, config.output_dir)
        LOGGER.info("Report artefacts written: %s", ", ".join(str(path) for path in paths))
    return 0


if __name__ == "__main__":
    sys.exit(main())
