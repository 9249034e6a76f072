import time

from sizechart import main


def test_bucket_runs_out_after_burst(monkeypatch):
    monkeypatch.setattr(main, "_buckets", {})
    assert main._rate_limit("10.0.0.1", 60, 2) is True
    assert main._rate_limit("10.0.0.1", 60, 2) is True
    assert main._rate_limit("10.0.0.1", 60, 2) is False
    assert main._rate_limit("10.0.0.2", 60, 2) is True


def test_idle_buckets_are_pruned_when_map_is_full(monkeypatch):
    now = time.time()
    buckets = {"a": (0.0, now - 3600), "b": (0.0, now - 3600), "c": (0.0, now)}
    monkeypatch.setattr(main, "_buckets", buckets)
    monkeypatch.setattr(main, "_MAX_BUCKETS", 3)

    assert main._rate_limit("d", 60, 10) is True
    assert set(buckets) == {"c", "d"}
