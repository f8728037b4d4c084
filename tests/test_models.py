from filterprobe.models import DomainTask, ScanOutcome, ScanResult, truncate_reason


def test_truncate_reason():
    assert truncate_reason("  short\n message ") == "short message"
    long = "e" * 200
    assert truncate_reason(long) == "e" * 120 + "..."
    assert truncate_reason(None) == ""


def test_domain_task_defaults_to_itself():
    assert DomainTask("example.com").variants == ("example.com",)


def test_dead_outcome_has_default_reason():
    assert ScanOutcome.dead("").reason == "All variants failed"


def test_record_for_non_redirect():
    result = ScanResult(DomainTask("gone.com"), ScanOutcome.dead("HTTP 410", status=410))
    assert result.as_record() == {"domain": "gone.com", "statusCode": 410, "reason": "HTTP 410"}
