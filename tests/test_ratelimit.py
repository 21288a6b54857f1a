"""Тесты RateLimiter и фоновой очистки."""

import threading

import pytest
from django.core.exceptions import ImproperlyConfigured

from security.ratelimit import (
    DEFAULT_PROFILES,
    RateLimitProfile,
    RateLimiter,
    load_profiles,
)
from security.sweeper import PeriodicSweeper


@pytest.fixture
def limiter(monotonic_clock):
    return RateLimiter(clock=monotonic_clock)


class TestCheck:

    def test_auth_profile_blocks_sixth_attempt(self, limiter, monotonic_clock):
        decisions = []
        for _ in range(6):
            decisions.append(limiter.check('courier@example.com', 'auth'))
            monotonic_clock.advance(10)

        assert [d.allowed for d in decisions] == [True] * 5 + [False]
        assert [d.remaining for d in decisions[:5]] == [4, 3, 2, 1, 0]
        assert decisions[5].retry_after == 1800

    def test_blocked_key_reports_remaining_block(self, limiter, monotonic_clock):
        for _ in range(6):
            limiter.check('courier', 'auth')

        monotonic_clock.advance(600.4)
        decision = limiter.check('courier', 'auth')

        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.retry_after == 1200

    def test_denied_calls_do_not_extend_block(self, limiter, monotonic_clock):
        for _ in range(6):
            limiter.check('courier', 'auth')
        for _ in range(20):
            monotonic_clock.advance(60)
            limiter.check('courier', 'auth')

        monotonic_clock.advance(600)
        decision = limiter.check('courier', 'auth')

        assert decision.allowed
        assert decision.remaining == 4

    def test_fresh_window_after_block(self, limiter, monotonic_clock):
        for _ in range(6):
            limiter.check('courier', 'auth')

        monotonic_clock.advance(1800)
        decision = limiter.check('courier', 'auth')

        assert decision.allowed
        assert decision.remaining == 4

    def test_window_expiry_resets_count(self, limiter, monotonic_clock):
        for _ in range(5):
            limiter.check('courier', 'auth')

        monotonic_clock.advance(15 * 60 + 1)

        assert limiter.check('courier', 'auth').remaining == 4

    def test_profiles_and_keys_are_isolated(self, limiter):
        for _ in range(6):
            limiter.check('10.0.0.1', 'auth')

        assert limiter.check('10.0.0.1', 'api').allowed
        assert limiter.check('10.0.0.2', 'auth').allowed
        assert len(limiter) == 3

    def test_api_profile(self, limiter, monotonic_clock):
        decisions = [limiter.check('10.0.0.1', 'api') for _ in range(101)]

        assert all(d.allowed for d in decisions[:100])
        assert not decisions[100].allowed
        assert decisions[100].retry_after == 60

    def test_reset(self, limiter):
        for _ in range(4):
            limiter.check('courier', 'auth')

        limiter.reset('courier', 'auth')

        assert limiter.check('courier', 'auth').remaining == 4

    def test_unknown_profile(self, limiter):
        with pytest.raises(ImproperlyConfigured):
            limiter.check('courier', 'webhooks')

    def test_custom_profile_object(self, limiter):
        profile = RateLimitProfile(name='api', window_seconds=1, max_attempts=1, block_seconds=2.5)

        limiter.check('10.0.0.9', profile)
        decision = limiter.check('10.0.0.9', profile)

        assert not decision.allowed
        assert decision.retry_after == 3


class TestSweep:

    def test_removes_stale_windows(self, limiter, monotonic_clock):
        limiter.check('old', 'api')
        monotonic_clock.advance(3000)
        limiter.check('recent', 'api')
        monotonic_clock.advance(601)

        assert limiter.sweep() == 1
        assert len(limiter) == 1

    def test_keeps_blocked_entries_until_grace_passes(self, limiter, monotonic_clock):
        for _ in range(6):
            limiter.check('courier', 'auth')

        monotonic_clock.advance(1800 + 30)
        assert limiter.sweep() == 0

        monotonic_clock.advance(31)
        assert limiter.sweep() == 1
        assert len(limiter) == 0

    def test_sweep_with_explicit_time(self, limiter, monotonic_clock):
        limiter.check('courier', 'api')

        assert limiter.sweep(now=monotonic_clock.now + 3601) == 1


class TestProfiles:

    def test_defaults(self):
        assert DEFAULT_PROFILES['auth'] == RateLimitProfile('auth', 900, 5, 1800)
        assert DEFAULT_PROFILES['api'] == RateLimitProfile('api', 60, 100, 60)

    def test_override(self):
        profiles = load_profiles({'api': {'window_seconds': 10, 'max_attempts': 3, 'block_seconds': 30}})

        assert profiles['api'].max_attempts == 3
        assert profiles['auth'] == DEFAULT_PROFILES['auth']

    @pytest.mark.parametrize('name, values', [
        ('uploads', {'window_seconds': 10, 'max_attempts': 3, 'block_seconds': 30}),
        ('api', {'window_seconds': 10, 'max_attempts': 3}),
        ('api', {'window_seconds': 10, 'max_attempts': 0, 'block_seconds': 30}),
        ('api', {'window_seconds': 'soon', 'max_attempts': 3, 'block_seconds': 30}),
        ('api', {'window_seconds': 10, 'max_attempts': 3, 'block_seconds': 30, 'burst': 5}),
    ])
    def test_invalid_profile(self, name, values):
        with pytest.raises(ImproperlyConfigured):
            RateLimitProfile.from_config(name, values)


class TestPeriodicSweeper:

    def test_run_once_sums_removed(self):
        sweeper = PeriodicSweeper(interval=60)
        sweeper.register(lambda: 2)
        sweeper.register(lambda: 0)

        assert sweeper.run_once() == 2

    def test_failing_callback_does_not_stop_others(self, caplog):
        calls = []

        def broken():
            raise RuntimeError('boom')

        sweeper = PeriodicSweeper(interval=60)
        sweeper.register(broken)
        sweeper.register(lambda: calls.append(1) or 1)

        assert sweeper.run_once() == 1
        assert calls == [1]
        assert 'boom' in caplog.text

    def test_thread_runs_and_stops(self):
        swept = threading.Event()
        sweeper = PeriodicSweeper(interval=0.01)
        sweeper.register(lambda: swept.set() or 0)

        sweeper.start()
        try:
            assert swept.wait(timeout=5)
            assert sweeper.is_running
        finally:
            sweeper.stop(timeout=5)

        assert not sweeper.is_running
