"""Tests for the retry decorator."""

import pytest

from dotctl.infrastructure.retry import retry


class Flaky:
    def __init__(self, failures: int, exc: type[Exception] = OSError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc("boom")
        return "ok"


class TestRetry:
    def test_succeeds_after_transient_failures(self) -> None:
        flaky = Flaky(2)
        assert retry(attempts=3, delay=0)(flaky)() == "ok"
        assert flaky.calls == 3

    def test_reraises_after_last_attempt(self) -> None:
        flaky = Flaky(5)
        with pytest.raises(OSError, match="boom"):
            retry(attempts=3, delay=0)(flaky)()
        assert flaky.calls == 3

    def test_other_exceptions_propagate_immediately(self) -> None:
        flaky = Flaky(5, exc=ValueError)
        with pytest.raises(ValueError):
            retry(attempts=3, delay=0)(flaky)()
        assert flaky.calls == 1

    def test_backoff_sleeps(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []
        monkeypatch.setattr("dotctl.infrastructure.retry.time.sleep", sleeps.append)
        retry(attempts=3, delay=0.5, backoff=2.0)(Flaky(2))()
        assert sleeps == [0.5, 1.0]

    def test_preserves_name(self) -> None:
        @retry()
        def lookup() -> str:
            return "x"

        assert lookup.__name__ == "lookup"
