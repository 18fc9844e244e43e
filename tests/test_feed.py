from datetime import datetime, timedelta, timezone

import pytest

from market.feed import DEFAULT_UNIVERSE, FakeQuoteFeed


def test_seeded_feeds_are_reproducible():
    a = FakeQuoteFeed(["AAPL", "MSFT"], seed=3)
    b = FakeQuoteFeed(["AAPL", "MSFT"], seed=3)
    assert [q.price for q in a.next_quotes()] == [q.price for q in b.next_quotes()]


def test_warmup_is_minute_spaced_and_aligns_current_price():
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    feed = FakeQuoteFeed(["AAPL"], seed=1)

    history = feed.warmup(101, now=now)

    points = history["AAPL"]
    assert len(points) == 101
    assert points[0].ts == now - timedelta(minutes=100)
    assert points[-1].ts == now
    assert all(p.price > 0 for p in points)
    assert all(100000 <= p.volume < 1100000 for p in points)

    [quote] = feed.next_quotes()
    assert quote.change == pytest.approx(quote.price - points[-1].price)


def test_next_quotes_bounded_move_and_derived_fields():
    feed = FakeQuoteFeed(["NVDA", "XYZ"], seed=5, volatility=0.005)
    start = DEFAULT_UNIVERSE["NVDA"].price

    nvda, xyz = feed.next_quotes()

    assert abs(nvda.price - start) <= start * 0.005
    assert nvda.change_percent == pytest.approx(nvda.change / start * 100)
    assert nvda.name == "NVIDIA Corporation"
    assert nvda.day_high >= nvda.price >= nvda.day_low
    # 未知品种以 100 起步
    assert abs(xyz.price - 100.0) <= 0.5


def test_stream_yields_full_batches():
    feed = FakeQuoteFeed(["AAPL", "TSLA"], seed=0)
    stream = feed.stream()
    first, second = next(stream), next(stream)
    assert [q.symbol for q in first] == ["AAPL", "TSLA"]
    assert [q.symbol for q in second] == ["AAPL", "TSLA"]


def test_feed_requires_symbols():
    with pytest.raises(ValueError):
        FakeQuoteFeed([])
