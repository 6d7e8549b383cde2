import pytest

from storefront.promotions.challenge import (
    ChallengeStatus,
    ChallengeType,
    time_challenge,
    try_now_challenge,
)


def test_new_run_is_idle_with_no_discount(fake_clock):
    run = time_challenge(clock=fake_clock)
    assert run.status is ChallengeStatus.IDLE
    assert run.status_label == "idle"
    assert run.effective_discount_percent() == 0
    assert not run.is_active()


def test_start_sets_running_state(fake_clock):
    run = time_challenge(clock=fake_clock)
    run.start(duration_seconds=30, discount_percent=30)

    assert run.status is ChallengeStatus.RUNNING
    assert run.status_label == "started"
    assert run.time_remaining == 30
    assert run.start_time == fake_clock.now
    assert run.effective_discount_percent() == 30
    assert run.is_active()


def test_sample_times_out_exactly_once(fake_clock):
    timeouts = []
    run = time_challenge(clock=fake_clock)
    run.add_timeout_listener(timeouts.append)
    run.start(duration_seconds=30, discount_percent=30)

    fake_clock.advance(29.5)
    assert run.sample() == 1
    assert run.status is ChallengeStatus.RUNNING

    fake_clock.advance(0.5)
    assert run.sample() == 0
    assert run.status is ChallengeStatus.TIMED_OUT
    assert run.status_label == "expired"

    fake_clock.advance(10)
    run.sample()
    assert len(timeouts) == 1
    assert run.effective_discount_percent() == 0


def test_complete_only_from_running(fake_clock):
    run = time_challenge(clock=fake_clock)
    assert run.complete() is False
    assert run.status is ChallengeStatus.IDLE

    run.start(duration_seconds=30, discount_percent=30)
    assert run.complete() is True
    assert run.status is ChallengeStatus.COMPLETED
    assert run.complete() is False
    assert run.effective_discount_percent() == 0


def test_complete_after_timeout_is_ignored(fake_clock):
    run = time_challenge(clock=fake_clock)
    run.start(duration_seconds=5, discount_percent=30)
    fake_clock.advance(6)
    run.sample()
    assert run.complete() is False
    assert run.status is ChallengeStatus.TIMED_OUT


def test_fail_moves_running_run_to_timed_out(fake_clock):
    run = try_now_challenge(clock=fake_clock)
    run.start(10, 15, ChallengeType.TIMER)
    assert run.fail() is True
    assert run.status is ChallengeStatus.TIMED_OUT
    assert run.status_label == "failed"
    assert run.fail() is False


def test_restart_after_timeout_reinitialises(fake_clock):
    run = time_challenge(clock=fake_clock)
    run.start(duration_seconds=30, discount_percent=30)
    fake_clock.advance(31)
    run.sample()
    assert run.status is ChallengeStatus.TIMED_OUT

    run.start(duration_seconds=30, discount_percent=30)
    assert run.status is ChallengeStatus.RUNNING
    assert run.time_remaining == 30
    assert run.start_time == fake_clock.now


def test_reset_and_dismiss(fake_clock):
    run = time_challenge(clock=fake_clock)
    run.start(duration_seconds=30, discount_percent=30)

    assert run.dismiss() is False
    assert run.status is ChallengeStatus.RUNNING

    run.complete()
    assert run.dismiss() is True
    assert run.status is ChallengeStatus.IDLE
    assert run.discount_percent == 0
    assert run.start_time is None

    run.start(duration_seconds=30, discount_percent=30)
    run.reset()
    assert run.status is ChallengeStatus.IDLE
    assert run.effective_discount_percent() == 0


def test_start_validates_terms(fake_clock):
    run = time_challenge(clock=fake_clock)
    with pytest.raises(ValueError):
        run.start(duration_seconds=0, discount_percent=30)
    with pytest.raises(ValueError):
        run.start(duration_seconds=30, discount_percent=101)
    with pytest.raises(ValueError):
        run.start(duration_seconds=30, discount_percent=-1)
    assert run.status is ChallengeStatus.IDLE


def test_try_now_requires_type_and_fires_start_hook(fake_clock):
    started = []
    run = try_now_challenge(clock=fake_clock, on_start=started.append)

    with pytest.raises(ValueError):
        run.start(duration_seconds=20, discount_percent=10)
    assert started == []

    run.start(duration_seconds=20, discount_percent=0, challenge_type="flash")
    assert started == [run]
    assert run.challenge_type is ChallengeType.FLASH
    assert run.status_label == "active"


def test_watch_is_cancelled_by_reset(fake_clock):
    run = time_challenge(clock=fake_clock)
    run.start(duration_seconds=30, discount_percent=30)
    run.watch(interval=60)
    assert run._watch is not None and run._watch.is_running
    run.reset()
    assert run._watch is None
