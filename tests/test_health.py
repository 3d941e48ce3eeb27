from __future__ import annotations

from pyhasync.health import HealthMonitor, HealthState, HealthStatus


def test_initial_state_is_degraded() -> None:
    status = HealthMonitor().status

    assert status.state is HealthState.DEGRADED
    assert status.message == "Not connected"
    assert not status.ok


def test_listeners_notified_only_on_change() -> None:
    monitor = HealthMonitor()
    seen: list[HealthStatus] = []
    monitor.add_listener(seen.append)

    monitor.set_ok("Connected")
    monitor.set_ok("Connected")
    monitor.set_degraded("Timed out")
    monitor.set_degraded("Timed out")
    monitor.set_degraded("Connection lost")

    assert [(status.state, status.message) for status in seen] == [
        (HealthState.OK, "Connected"),
        (HealthState.DEGRADED, "Timed out"),
        (HealthState.DEGRADED, "Connection lost"),
    ]


def test_failing_listener_does_not_block_others() -> None:
    monitor = HealthMonitor()
    seen: list[HealthStatus] = []

    def broken(_status: HealthStatus) -> None:
        raise RuntimeError("boom")

    monitor.add_listener(broken)
    remove = monitor.add_listener(seen.append)
    monitor.set_ok()
    remove()
    monitor.set_degraded("x")

    assert len(seen) == 1
    assert monitor.status.message == "x"
