import random
import threading

from postman_load.aggregator import ExecutionRecord, MetricsAggregator, round_half_up


def _aggregate(name, latencies, codes=None):
    aggregator = MetricsAggregator()
    codes = codes or [200] * len(latencies)
    for code, latency in zip(codes, latencies):
        aggregator.append(ExecutionRecord(name, code, latency))
    return aggregator


def test_summarize_latency_statistics():
    (summary,) = _aggregate("List", [10, 20, 30]).summarize()

    assert summary.request_name == "List"
    assert summary.average == 20
    assert summary.minimum == 10
    assert summary.maximum == 30
    assert summary.count == 3


def test_average_rounds_half_up():
    (summary,) = _aggregate("List", [10, 11]).summarize()
    assert summary.average == 11
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_status_code_histogram():
    aggregator = _aggregate("Create", [5, 5, 5, 5, 5], codes=[200, 200, 404, 200, 500])
    (summary,) = aggregator.summarize()
    assert summary.code_counts == {200: 3, 404: 1, 500: 1}


def test_empty_store_summarizes_to_nothing():
    aggregator = MetricsAggregator()
    assert aggregator.summarize() == []
    assert aggregator.total_records() == 0
    df = aggregator.build_dataframe()
    assert df.empty
    assert list(df.columns) == ["request_name", "status_code", "latency_ms"]


def test_keys_are_kept_in_first_seen_order():
    aggregator = MetricsAggregator()
    for name in ["B", "A", "B", "C"]:
        aggregator.append(ExecutionRecord(name, 200, 1))
    assert [s.request_name for s in aggregator.summarize()] == ["B", "A", "C"]


def test_snapshot_is_detached_from_store():
    aggregator = _aggregate("List", [1])
    snapshot = aggregator.snapshot()
    snapshot["List"].append((500, 99))
    assert aggregator.snapshot() == {"List": [(200, 1)]}


def test_concurrent_appends_are_not_lost():
    aggregator = MetricsAggregator()
    names = ["List", "Create", "Delete"]
    rng = random.Random(7)
    plans = [[rng.choice(names) for _ in range(500)] for _ in range(8)]
    start = threading.Barrier(len(plans))

    def worker(plan):
        start.wait()
        for name in plan:
            aggregator.append(ExecutionRecord(name, 200, 1))

    threads = [threading.Thread(target=worker, args=(plan,)) for plan in plans]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = aggregator.snapshot()
    for name in names:
        expected = sum(plan.count(name) for plan in plans)
        assert len(snapshot[name]) == expected
    assert aggregator.total_records() == 8 * 500


def test_build_dataframe_rows():
    aggregator = _aggregate("List", [10, 20], codes=[200, 503])
    df = aggregator.build_dataframe()
    assert df.to_dict("records") == [
        {"request_name": "List", "status_code": 200, "latency_ms": 10},
        {"request_name": "List", "status_code": 503, "latency_ms": 20},
    ]
