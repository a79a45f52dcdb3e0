"""In-process duplicate notification guard."""

from app.services.idempotency_guard import NotificationGuard, notification_key


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_key_combines_provider_id_and_merchant_ref():
    assert notification_key("OT-1", "SP-BK1") == "OT-1-SP-BK1"


def test_in_flight_key_is_rejected():
    guard = NotificationGuard(window_seconds=5, clock=FakeClock())
    assert guard.try_acquire("k") is True
    assert guard.try_acquire("k") is False


def test_released_key_expires_after_window():
    clock = FakeClock()
    guard = NotificationGuard(window_seconds=5, clock=clock)
    guard.try_acquire("k")
    guard.release("k")

    clock.now += 4.9
    assert "k" in guard
    assert guard.try_acquire("k") is False

    clock.now += 0.2
    assert "k" not in guard
    assert guard.try_acquire("k") is True


def test_distinct_keys_do_not_interfere():
    guard = NotificationGuard(window_seconds=5, clock=FakeClock())
    assert guard.try_acquire("a") is True
    assert guard.try_acquire("b") is True


def test_clear_forgets_everything():
    guard = NotificationGuard(window_seconds=5, clock=FakeClock())
    guard.try_acquire("k")
    guard.clear()
    assert guard.try_acquire("k") is True
