"""Tests for submission validation, dispatch and reconciliation."""
import json
from unittest import mock

import pytest
import requests

from conftest import FakeAuthority, record
from verification.authority import VerificationAuthorityClient
from verification.documents import DocumentSet
from verification.errors import AuthorityError, IncompleteDocuments, SubmissionFailed
from verification.models import NormalizedImage, Side, StatusTier, VerificationKind
from verification.submission import SubmissionCoordinator

REQUIRED_DRIVER_GROUPS = ("license", "vehicleRegistration")


def _fill(docs, make_asset, group, sides=(Side.FRONT, Side.BACK)):
    for side in sides:
        docs.put(group, side, make_asset(f"{group}_{side.value}.jpg"))


@pytest.fixture
def driver_docs(make_asset):
    docs = DocumentSet.for_kind(VerificationKind.DRIVER)
    for group in REQUIRED_DRIVER_GROUPS:
        _fill(docs, make_asset, group)
    return docs


@pytest.fixture
def student_docs(make_asset):
    docs = DocumentSet.for_kind(VerificationKind.STUDENT)
    _fill(docs, make_asset, "studentId")
    return docs


@pytest.mark.parametrize("group", REQUIRED_DRIVER_GROUPS)
@pytest.mark.parametrize("empty_side", [Side.FRONT, Side.BACK])
def test_missing_required_side_blocks_without_network(make_asset, group, empty_side):
    authority = FakeAuthority()
    docs = DocumentSet.for_kind(VerificationKind.DRIVER)
    for name in REQUIRED_DRIVER_GROUPS:
        sides = [s for s in Side if not (name == group and s is empty_side)]
        _fill(docs, make_asset, name, sides)

    with pytest.raises(IncompleteDocuments) as exc:
        SubmissionCoordinator(authority).try_submit(VerificationKind.DRIVER, docs)

    assert exc.value.missing == [group]
    assert authority.calls == []


def test_vehicle_registration_missing_back(make_asset):
    authority = FakeAuthority()
    docs = DocumentSet.for_kind(VerificationKind.DRIVER)
    _fill(docs, make_asset, "license")
    _fill(docs, make_asset, "vehicleRegistration", [Side.FRONT])

    with pytest.raises(IncompleteDocuments) as exc:
        SubmissionCoordinator(authority).try_submit(VerificationKind.DRIVER, docs)

    assert exc.value.missing == ["vehicleRegistration"]
    assert exc.value.retryable
    assert authority.calls == []


def test_optional_group_with_front_only_is_omitted(driver_docs, make_asset):
    authority = FakeAuthority()
    driver_docs.put("vehicleAuthorization", Side.FRONT, make_asset("auth_front.jpg"))

    result = SubmissionCoordinator(authority).try_submit(VerificationKind.DRIVER, driver_docs)

    [(_, kind, payload)] = authority.submissions
    assert kind is VerificationKind.DRIVER
    assert set(payload) == {"license", "vehicleRegistration"}
    assert result.tier is StatusTier.PENDING
    assert result.message == "Documents received"


def test_student_dispatch_sends_front_and_back(student_docs):
    authority = FakeAuthority()

    result = SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)

    [(_, kind, documents)] = authority.submissions
    assert kind is VerificationKind.STUDENT
    assert [d.file_name for d in documents] == ["studentId_front.jpg", "studentId_back.jpg"]
    assert result.record.raw_status == "pending"


def test_exactly_one_dispatch_then_one_refresh(student_docs):
    authority = FakeAuthority()
    SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)
    assert [c[0] for c in authority.calls] == ["submit", "current"]


def test_dispatch_failure_surfaces_server_message(student_docs):
    authority = FakeAuthority()
    authority.submit_error = AuthorityError("Student ID already under review", status_code=409)

    with pytest.raises(SubmissionFailed) as exc:
        SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)

    assert exc.value.message == "Student ID already under review"
    assert isinstance(exc.value.cause, AuthorityError)
    # No retry and no refresh
    assert [c[0] for c in authority.calls] == ["submit"]


def test_dispatch_failure_without_message_uses_fallback(student_docs):
    authority = FakeAuthority()
    authority.submit_error = AuthorityError(None)

    with pytest.raises(SubmissionFailed) as exc:
        SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)

    assert exc.value.message.startswith("Could not submit verification documents")


def test_failed_attempt_leaves_documents_for_retry(student_docs):
    authority = FakeAuthority()
    authority.submit_error = AuthorityError("boom", status_code=500)
    coordinator = SubmissionCoordinator(authority)

    with pytest.raises(SubmissionFailed):
        coordinator.try_submit(VerificationKind.STUDENT, student_docs)
    assert student_docs.is_complete("studentId")

    authority.submit_error = None
    result = coordinator.try_submit(VerificationKind.STUDENT, student_docs)
    assert result.tier is StatusTier.PENDING
    assert len(authority.submissions) == 2


def test_refresh_failure_still_reports_success(student_docs):
    authority = FakeAuthority()
    authority.refresh_error = AuthorityError("timeout")

    result = SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)

    assert result.record is None
    assert result.tier is StatusTier.PENDING
    assert result.message == "Documents received"


def test_rejected_student_resubmits_and_history_is_additive(student_docs):
    rejected = record(VerificationKind.STUDENT, "rejected", reason="blurry photo", record_id="1")
    authority = FakeAuthority(student=rejected)
    assert rejected.tier is StatusTier.REJECTED

    result = SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)

    assert result.tier is StatusTier.PENDING
    assert result.record.id != rejected.id
    history = authority.get_my_verification_history()
    assert [(r.id, r.tier) for r in history] == [
        ("1", StatusTier.REJECTED),
        (result.record.id, StatusTier.PENDING),
    ]
    assert history[0].rejection_reason == "blurry photo"


def _json_response(payload):
    response = requests.Response()
    response.status_code = 200
    response.headers["Content-Type"] = "application/json"
    response._content = json.dumps(payload).encode()
    return response


@pytest.mark.parametrize("current_body", [
    [{"status": "pending"}],
    "pending",
    {"data": ["not", "a", "record"]},
])
def test_malformed_refresh_body_still_reports_success(tmp_path, current_body):
    session = mock.Mock(spec=requests.Session)
    session.request.side_effect = [
        _json_response({"message": "ok"}),
        _json_response(current_body),
    ]
    client = VerificationAuthorityClient(base_url="https://authority.test", session=session)
    docs = DocumentSet.for_kind(VerificationKind.STUDENT)
    for side in Side:
        path = tmp_path / f"studentId_{side.value}.jpg"
        path.write_bytes(b"\xff\xd8\xff\xd9")
        docs.put("studentId", side, NormalizedImage(
            uri=str(path), file_name=path.name, byte_size=4, width=1, height=1))

    result = SubmissionCoordinator(client).try_submit(VerificationKind.STUDENT, docs)

    assert result.message == "ok"
    assert result.record is None
    assert result.tier is StatusTier.PENDING
    assert session.request.call_count == 2


def test_unexpected_refresh_error_still_reports_success(student_docs):
    authority = FakeAuthority()
    authority.refresh_error = ValueError("unexpected payload")

    result = SubmissionCoordinator(authority).try_submit(VerificationKind.STUDENT, student_docs)

    assert result.tier is StatusTier.PENDING
    assert result.record is None
