"""
Tests for ApprovalSelector -- read projections.

Covers:
- get_request() / get_request_by_document(): PENDING preferred, else latest
- list_history(): causal order, restartable, unknown request
- list_comments(): creation order
- list_pending_for_approver(): only requests whose current level is the
  approver's, paging
- list_requests(): filters and paging
"""

from uuid import uuid4

import pytest

from approval_kernel.domain.approval import (
    ApprovalStatus,
    DocumentType,
    HistoryAction,
)
from approval_kernel.exceptions import ApprovalNotFoundError
from tests.conftest import purchase_order_template, quotation_template


@pytest.fixture
def start(approval_service, deterministic_clock):
    """Start a request, advancing the clock so submissions are ordered."""

    def _start(document_id, document_type=DocumentType.QUOTATION):
        deterministic_clock.advance(1)
        template = (
            quotation_template()
            if document_type == DocumentType.QUOTATION
            else purchase_order_template()
        )
        return approval_service.start(document_type, document_id, "sales", template)

    return _start


class TestGetRequest:

    def test_by_id(self, selector, start):
        request = start("Q-1")
        assert selector.get_request(request.request_id) == request

    def test_unknown_id(self, selector):
        with pytest.raises(ApprovalNotFoundError):
            selector.get_request(uuid4())

    def test_by_document_prefers_pending(self, selector, start, approval_service):
        first = start("Q-1")
        approval_service.reject(first.request_id, 1, "lead", "redo", expected_version=1)
        second = start("Q-1")

        found = selector.get_request_by_document(DocumentType.QUOTATION, "Q-1")
        assert found.request_id == second.request_id

    def test_by_document_falls_back_to_latest(self, selector, start, approval_service):
        first = start("Q-1")
        approval_service.reject(first.request_id, 1, "lead", "redo", expected_version=1)
        second = start("Q-1")
        approval_service.reject(second.request_id, 1, "lead", "again", expected_version=1)

        found = selector.get_request_by_document("QUOTATION", "Q-1")
        assert found.request_id == second.request_id
        assert found.status == ApprovalStatus.REJECTED

    def test_by_document_not_found(self, selector):
        with pytest.raises(ApprovalNotFoundError):
            selector.get_request_by_document(DocumentType.PURCHASE_ORDER, "PO-404")


class TestListHistory:

    def test_causal_order(self, selector, start, history_recorder, deterministic_clock):
        request = start("Q-1")
        rid = request.request_id
        # Recorded out of order on purpose.
        history_recorder.append(rid, HistoryAction.APPROVED, "ceo", level_order=2)
        deterministic_clock.advance(5)
        history_recorder.append(rid, HistoryAction.APPROVED, "lead", level_order=1)
        history_recorder.append(rid, HistoryAction.SUBMITTED, "sales")

        history = selector.list_history(rid)
        assert [(h.action, h.level_order) for h in history] == [
            (HistoryAction.SUBMITTED, None),
            (HistoryAction.APPROVED, 1),
            (HistoryAction.APPROVED, 2),
        ]
        assert selector.list_history(rid) == history

    def test_unknown_request_is_empty(self, selector):
        assert selector.list_history(uuid4()) == []


class TestListComments:

    def test_creation_order(self, selector, start, comment_service, deterministic_clock):
        request = start("Q-1")
        comment_service.add(request.request_id, "lead", "first")
        deterministic_clock.advance(1)
        comment_service.add(request.request_id, "ceo", "second")

        texts = [c.text for c in selector.list_comments(request.request_id)]
        assert texts == ["first", "second"]


class TestListPendingForApprover:

    def test_only_current_level_assignments(self, selector, start, approval_service):
        at_lead = start("Q-1")
        moved_on = start("Q-2")
        approval_service.approve(moved_on.request_id, 1, "lead", expected_version=1)
        done = start("Q-3")
        approval_service.reject(done.request_id, 1, "lead", "no", expected_version=1)

        lead_page = selector.list_pending_for_approver("lead")
        assert [r.request_id for r in lead_page.items] == [at_lead.request_id]
        assert lead_page.total == 1

        ceo_page = selector.list_pending_for_approver("ceo")
        assert [r.request_id for r in ceo_page.items] == [moved_on.request_id]

    def test_paging(self, selector, start):
        ids = [start(f"Q-{i}").request_id for i in range(5)]

        page = selector.list_pending_for_approver("lead", limit=2, offset=2)
        assert [r.request_id for r in page.items] == ids[2:4]
        assert page.total == 5
        assert page.has_more


class TestListRequests:

    def test_filters(self, selector, start, approval_service):
        q = start("Q-1")
        start("PO-1", DocumentType.PURCHASE_ORDER)
        approval_service.reject(q.request_id, 1, "lead", "no", expected_version=1)

        assert selector.list_requests().total == 2
        by_type = selector.list_requests(document_type=DocumentType.PURCHASE_ORDER)
        assert [r.document_id for r in by_type.items] == ["PO-1"]
        rejected = selector.list_requests(status="REJECTED")
        assert [r.request_id for r in rejected.items] == [q.request_id]
        assert selector.list_requests(
            document_type=DocumentType.QUOTATION, status=ApprovalStatus.PENDING,
        ).total == 0

    def test_newest_first(self, selector, start):
        first = start("Q-1")
        second = start("Q-2")
        page = selector.list_requests()
        assert [r.request_id for r in page.items] == [second.request_id, first.request_id]
        assert not page.has_more
