"""
Unit tests for the fixed-window rate limiter
"""

import time

import pytest

from hello_server.core.limiter import RateLimiter, create_limiter, get_limiter_storage

pytestmark = pytest.mark.unit


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter("3/minute")

        assert [limiter.hit("10.0.0.1") for _ in range(4)] == [True, True, True, False]

    def test_counters_are_per_key(self):
        limiter = RateLimiter("1/minute")

        assert limiter.hit("10.0.0.1")
        assert not limiter.hit("10.0.0.1")
        assert limiter.hit("10.0.0.2")

    def test_remaining_counts_down(self):
        limiter = RateLimiter("5/minute")
        limiter.hit("client")
        limiter.hit("client")

        assert limiter.remaining("client") == 3

    def test_retry_after_within_window(self):
        limiter = RateLimiter("1/15minutes")
        limiter.hit("client")

        assert 0 < limiter.retry_after("client") <= 15 * 60

    def test_window_reset(self):
        limiter = RateLimiter("2/second")
        assert limiter.hit("client")
        assert limiter.hit("client")
        assert not limiter.hit("client")

        time.sleep(1.2)

        assert limiter.hit("client")

    def test_instances_do_not_share_counters(self):
        first = RateLimiter("1/minute")
        second = RateLimiter("1/minute")

        assert first.hit("client")
        assert second.hit("client")

    def test_reset(self):
        limiter = RateLimiter("1/minute")
        limiter.hit("client")
        limiter.reset()

        assert limiter.hit("client")


class TestLimiterConfiguration:
    def test_defaults_to_memory_storage(self, make_settings):
        assert get_limiter_storage(make_settings()) is None

    def test_invalid_redis_url_falls_back(self, make_settings):
        assert get_limiter_storage(make_settings(redis_url="http://not-redis")) is None

    def test_redis_url_is_used(self, make_settings):
        url = "redis://localhost:6379/0"
        assert get_limiter_storage(make_settings(redis_url=url)) == url

    def test_create_limiter_uses_configured_rate(self, make_settings):
        limiter = create_limiter(make_settings(rate_limit="7/hour"))
        assert limiter.max_requests == 7

    def test_default_rate_is_100_per_15_minutes(self, make_settings):
        limiter = create_limiter(make_settings())

        assert limiter.max_requests == 100
        assert limiter.limit.get_expiry() == 15 * 60
