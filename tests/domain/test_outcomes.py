"""Tests for outcome records and tallies."""

from dotctl.domain.outcomes import CheckResult, LinkOutcome, count_actions, count_statuses
from dotctl.domain.types import CheckStatus, ErrorKind, LinkAction


def _outcome(action: LinkAction, kind: ErrorKind | None = None) -> LinkOutcome:
    return LinkOutcome("home", "/repo/home/.a", "/h/.a", action, kind=kind)


class TestLinkOutcome:
    def test_to_dict_omits_empty(self) -> None:
        data = _outcome(LinkAction.LINKED).to_dict()
        assert data == {
            "package": "home",
            "source": "/repo/home/.a",
            "target": "/h/.a",
            "action": "linked",
        }

    def test_failed_when_kind_set(self) -> None:
        outcome = _outcome(LinkAction.CONFLICT, ErrorKind.CONFLICT)
        assert outcome.failed
        assert outcome.to_dict()["kind"] == "CONFLICT"

    def test_count_actions_skips_zero(self) -> None:
        counts = count_actions(
            [
                _outcome(LinkAction.LINKED),
                _outcome(LinkAction.LINKED),
                _outcome(LinkAction.UNCHANGED),
            ]
        )
        assert counts == {"linked": 2, "unchanged": 1}


class TestCheckResult:
    def test_count_statuses_always_has_all_keys(self) -> None:
        counts = count_statuses([CheckResult("syntax", CheckStatus.FAIL, "bad")])
        assert counts == {"pass": 0, "warn": 0, "fail": 1}

    def test_to_dict(self) -> None:
        data = CheckResult("symlinks", CheckStatus.WARN, "gone", target="/h/.a").to_dict()
        assert data == {"name": "symlinks", "status": "warn", "message": "gone", "target": "/h/.a"}
