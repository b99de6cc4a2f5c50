"""Tests for iamtrust.resolver."""
import threading

import pytest

from iamtrust.context import RunContext
from iamtrust.errors import CancellationError, DecodeError, EnumerationError
from iamtrust.models import RoleRecord
from iamtrust.resolver import resolve_role_trust, scan_trust

from conftest import ACCOUNT, encode_policy, make_role

INVALID_ARN = f"arn:aws:iam::{ACCOUNT}:role/test"
SSO_ARN = (
    f"arn:aws:iam::{ACCOUNT}:role/aws-reserved/sso.amazonaws.com/AWSReservedSSO_FullAdmin"
)
_SSO_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {
                "Federated": [
                    f"arn:aws:iam::{ACCOUNT}:saml-provider/AWSSSO_42_DO_NOT_DELETE",
                    f"arn:aws:iam::{ACCOUNT}:saml-provider/AWSSSO_24_DO_NOT_DELETE",
                ]
            },
            "Action": ["sts:AssumeRoleWithSAML", "sts:TagSession"],
        }
    ],
}


def _invalid_role(raw: str = "invalid policy") -> RoleRecord:
    return RoleRecord(arn=INVALID_ARN, trust_document_raw=raw)


class _ListPager:
    def __init__(self, *pages, error=None):
        self.pages = list(pages)
        self.error = error

    def has_more_pages(self):
        return self.error is not None or bool(self.pages)

    def next_page(self, ctx):
        if self.error is not None:
            raise self.error
        return self.pages.pop(0)


# ---------------------------------------------------------------------------
# resolve_role_trust
# ---------------------------------------------------------------------------

def test_resolve_no_roles():
    result = resolve_role_trust([], RunContext())
    assert result == {}
    assert result is not None


def test_resolve_no_roles_with_expired_context():
    assert resolve_role_trust([], RunContext.with_timeout(-1)) == {}


def test_resolve_sso_role():
    role = RoleRecord(arn=SSO_ARN, trust_document_raw=encode_policy(_SSO_POLICY))
    assert resolve_role_trust([role], RunContext()) == {
        SSO_ARN: [
            f"arn:aws:iam::{ACCOUNT}:saml-provider/AWSSSO_24_DO_NOT_DELETE",
            f"arn:aws:iam::{ACCOUNT}:saml-provider/AWSSSO_42_DO_NOT_DELETE",
        ]
    }


def test_resolve_empty_policy_gives_empty_list():
    role = RoleRecord(arn=INVALID_ARN, trust_document_raw=encode_policy("{}"))
    assert resolve_role_trust([role], RunContext()) == {INVALID_ARN: []}


def test_resolve_invalid_policy_raises_decode_error():
    with pytest.raises(DecodeError) as excinfo:
        resolve_role_trust([_invalid_role()], RunContext())
    assert excinfo.value.role_arn == INVALID_ARN


def test_resolve_expired_context_raises_cancellation():
    with pytest.raises(CancellationError):
        resolve_role_trust([_invalid_role()], RunContext.with_timeout(-1))


def test_resolve_cancelled_context_skips_valid_roles():
    ctx = RunContext()
    ctx.cancel()
    roles = [make_role(f"R{i}", {"Service": "ec2.amazonaws.com"}) for i in range(10)]
    with pytest.raises(CancellationError):
        resolve_role_trust(roles, ctx)


def test_resolve_many_roles_concurrently():
    n = 250
    roles = [
        make_role(f"Role{i}", {"AWS": f"arn:aws:iam::{i:012d}:root"}, {"Service": "ec2.amazonaws.com"})
        for i in range(n)
    ]
    result = resolve_role_trust(roles, RunContext())
    assert len(result) == n
    assert set(result) == {r.arn for r in roles}
    for i, role in enumerate(roles):
        assert result[role.arn] == [f"arn:aws:iam::{i:012d}:root", "ec2.amazonaws.com"]


def test_resolve_one_malformed_role_fails_whole_run():
    roles = [make_role(f"Role{i}", {"Service": "ec2.amazonaws.com"}) for i in range(120)]
    roles.insert(57, _invalid_role("%7B%ZZ"))
    with pytest.raises(DecodeError) as excinfo:
        resolve_role_trust(roles, RunContext())
    assert excinfo.value.role_arn == INVALID_ARN


def test_resolve_does_not_cancel_callers_context():
    ctx = RunContext()
    with pytest.raises(DecodeError):
        resolve_role_trust([_invalid_role()], ctx)
    assert not ctx.cancelled()


def test_resolve_waits_for_in_flight_task_after_failure(monkeypatch):
    import iamtrust.resolver as resolver_mod

    real_decode = resolver_mod.decode_trust_document
    in_flight = threading.Event()
    release = threading.Event()
    finished = []

    def gated_decode(raw, role_arn=None):
        if role_arn == INVALID_ARN:
            # Fail only once the other task is past its entry check
            in_flight.wait(timeout=5)
            return real_decode(raw, role_arn=role_arn)
        in_flight.set()
        release.wait(timeout=5)
        doc = real_decode(raw, role_arn=role_arn)
        finished.append(role_arn)
        return doc

    monkeypatch.setattr(resolver_mod, "decode_trust_document", gated_decode)
    slow = make_role("InFlight", {"Service": "ec2.amazonaws.com"})
    timer = threading.Timer(0.2, release.set)
    timer.start()
    try:
        with pytest.raises(DecodeError):
            resolve_role_trust([_invalid_role(), slow], RunContext())
    finally:
        timer.cancel()
        release.set()

    assert finished == [slow.arn]


def test_task_group_keeps_first_error_and_skips_pending():
    from concurrent.futures import ThreadPoolExecutor

    from iamtrust.resolver import _TaskGroup

    group = _TaskGroup(RunContext())
    ran = []

    def fail(msg):
        group.ctx.check()
        ran.append(msg)
        raise DecodeError(msg)

    with ThreadPoolExecutor(max_workers=1) as pool:
        group.go(pool, fail, "first")
        group.go(pool, fail, "second")
        group.wait()

    assert ran == ["first"]
    assert str(group.error) == "first"
    assert group.ctx.cancelled()


# ---------------------------------------------------------------------------
# scan_trust
# ---------------------------------------------------------------------------

def test_scan_two_roles_share_a_principal():
    r1 = make_role("R1", {"AWS": "arn:aws:iam::999999999999:root"})
    r2 = make_role("R2", {"AWS": "arn:aws:iam::999999999999:root"})
    pager = _ListPager([r1], [r2])

    result = scan_trust(pager, RunContext())

    assert set(result) == {"arn:aws:iam::999999999999:root"}
    assert sorted(result["arn:aws:iam::999999999999:root"]) == [r1.arn, r2.arn]


def test_scan_no_roles():
    assert scan_trust(_ListPager(), RunContext()) == {}


def test_scan_enumeration_error_propagates():
    pager = _ListPager(error=RuntimeError("boom"))
    with pytest.raises(EnumerationError):
        scan_trust(pager, RunContext())


def test_scan_decode_error_propagates():
    pager = _ListPager([make_role("Ok", {"Service": "ec2.amazonaws.com"}), _invalid_role()])
    with pytest.raises(DecodeError):
        scan_trust(pager, RunContext())
