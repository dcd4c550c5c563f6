from stackwire.audit import Finding, Severity, audit
from stackwire.routes import Authorization

from .builders import api_with_route, function, serverless


def _rules(findings):
    return [(f.severity, f.declaration_id, f.rule) for f in findings]


def test_reference_topology_only_reports_wildcard_cors(descriptor):
    findings = audit(serverless(descriptor))

    assert _rules(findings) == [(Severity.MEDIUM, "serverless-api", "wildcard-cors-origin")]


def test_specific_origins_have_no_findings(descriptor):
    findings = audit(serverless(descriptor, allow_origins=["https://example.com"]))

    assert findings == []


def test_open_routes_are_high_severity(descriptor):
    findings = audit(serverless(descriptor, authorization=Authorization.none()))

    high = [f for f in findings if f.severity is Severity.HIGH]
    assert len(high) == 4
    assert {f.rule for f in high} == {"unauthenticated-route"}
    assert str(high[0]) == (
        "HIGH [serverless-api] unauthenticated-route: "
        "GET /items invokes 'main-lambda' without authorization"
    )


def test_findings_are_sorted_by_severity(descriptor):
    function(descriptor)
    descriptor.storage("site", public_access=True)
    descriptor.table("orders", partition_key_name="id", partition_key_type="STRING")
    api_with_route(descriptor, authorization="none", cors=True)

    findings = audit(descriptor)

    assert _rules(findings) == [
        (Severity.HIGH, "api", "unauthenticated-route"),
        (Severity.HIGH, "site", "public-storage"),
        (Severity.MEDIUM, "api", "wildcard-cors-origin"),
        (Severity.LOW, "orders", "no-point-in-time-recovery"),
        (Severity.LOW, "handler", "tracing-disabled"),
    ]


def test_findings_compare_by_value():
    finding = Finding(Severity.LOW, "orders", "no-point-in-time-recovery", "msg")

    assert finding == Finding(Severity.LOW, "orders", "no-point-in-time-recovery", "msg")
    assert Severity.HIGH > Severity.MEDIUM > Severity.LOW
