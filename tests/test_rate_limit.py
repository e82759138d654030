import os
import unittest
from unittest.mock import MagicMock, patch

import redis
from fastapi import HTTPException

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from form_builder.core.config import settings
from form_builder.services.rate_limit import (
    InMemoryRateLimiter,
    RedisRateLimiter,
    get_rate_limiter,
    reset_rate_limiter_for_tests,
    submission_rate_limit_or_429,
)


class RateLimiterTests(unittest.TestCase):
    def setUp(self):
        reset_rate_limiter_for_tests()

    def tearDown(self):
        reset_rate_limiter_for_tests()

    def test_in_memory_window(self):
        limiter = InMemoryRateLimiter()
        results = [limiter.hit("k", limit=2, window_seconds=60) for _ in range(3)]
        self.assertEqual([r.allowed for r in results], [True, True, False])
        self.assertEqual(results[-1].current_value, 3)
        self.assertTrue(limiter.hit("other", limit=2, window_seconds=60).allowed)

    def test_falls_back_when_redis_is_down(self):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("down")
        with patch("form_builder.services.rate_limit.redis.Redis.from_url", return_value=client):
            limiter = get_rate_limiter()
        self.assertIsInstance(limiter, InMemoryRateLimiter)
        self.assertIs(get_rate_limiter(), limiter)

    def test_uses_redis_when_available(self):
        client = MagicMock()
        with patch("form_builder.services.rate_limit.redis.Redis.from_url", return_value=client):
            limiter = get_rate_limiter()
        self.assertIsInstance(limiter, RedisRateLimiter)

    def test_submission_limit_is_per_form_and_ip(self):
        limiter = InMemoryRateLimiter()
        with patch.object(settings, "PUBLIC_SUBMIT_RATE_LIMIT", 1):
            submission_rate_limit_or_429(limiter, form_id="f1", client_ip="10.0.0.1")
            submission_rate_limit_or_429(limiter, form_id="f2", client_ip="10.0.0.1")
            submission_rate_limit_or_429(limiter, form_id="f1", client_ip="10.0.0.2")
            with self.assertRaises(HTTPException) as ctx:
                submission_rate_limit_or_429(limiter, form_id="f1", client_ip="10.0.0.1")
        self.assertEqual(ctx.exception.status_code, 429)

    def test_redis_limiter_sets_window_on_first_hit(self):
        client = MagicMock()
        pipe = client.pipeline.return_value.__enter__.return_value
        pipe.execute.return_value = [1, -1]
        result = RedisRateLimiter(client).hit("forms:k", limit=1, window_seconds=30)
        self.assertTrue(result.allowed)
        self.assertEqual(result.retry_after_seconds, 30)
        client.expire.assert_called_once_with("forms:k", 30)

        pipe.execute.return_value = [2, 12]
        result = RedisRateLimiter(client).hit("forms:k", limit=1, window_seconds=30)
        self.assertFalse(result.allowed)
        self.assertEqual(result.retry_after_seconds, 12)
