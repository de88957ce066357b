"""
Tests for sync_chain_templates -- applying configured chains to the store.

Covers:
- First sync creates every template
- Re-running with the same configuration changes nothing
- Changed levels are replaced; in-flight requests keep their snapshot
- Dry run reports and logs the plan without writing
- is_active from configuration is applied together with the levels
"""

from dataclasses import replace

from approval_config import get_active_config
from approval_config.bridges import to_chain_templates
from approval_kernel.domain.approval import ChainLevel, DocumentType
from approval_services.engine import ApprovalEngine
from approval_services.template_sync import SyncAction, sync_chain_templates
from tests.conftest import purchase_order_template, quotation_template


def _actions(results):
    return {r.document_type: r.action for r in results}


class TestSyncChainTemplates:

    def test_first_sync_creates(self, approval_engine):
        results = sync_chain_templates(
            approval_engine, [quotation_template(), purchase_order_template()],
        )

        assert _actions(results) == {
            "QUOTATION": SyncAction.CREATE,
            "PURCHASE_ORDER": SyncAction.CREATE,
        }
        assert approval_engine.get_active_template(DocumentType.PURCHASE_ORDER).level_count == 3

    def test_second_sync_unchanged(self, approval_engine, captured_logs):
        templates = [quotation_template(), purchase_order_template()]
        sync_chain_templates(approval_engine, templates)

        results = sync_chain_templates(approval_engine, templates)

        assert set(_actions(results).values()) == {SyncAction.UNCHANGED}
        summaries = [r for r in captured_logs() if r["message"] == "chain_templates_synced"]
        assert summaries[-1]["unchanged_count"] == 2
        assert summaries[-1]["created_count"] == 0

    def test_changed_levels_replaced(self, approval_engine):
        sync_chain_templates(approval_engine, [quotation_template()])
        request_id = approval_engine.start_approval(DocumentType.QUOTATION, "Q-1", "sales")

        single = quotation_template(
            (ChainLevel(order=1, display_name="Director", approver="director"),),
        )
        results = sync_chain_templates(approval_engine, [single])

        assert results[0].action == SyncAction.REPLACE
        assert results[0].level_count == 1
        assert approval_engine.get_active_template(DocumentType.QUOTATION).levels == single.levels
        assert approval_engine.get_request(request_id).total_levels == 2

    def test_dry_run_writes_nothing(self, approval_engine):
        results = sync_chain_templates(
            approval_engine, [quotation_template()], dry_run=True,
        )

        assert results[0].action == SyncAction.CREATE
        assert approval_engine.list_templates() == []

    def test_dry_run_logs_plan(self, approval_engine, captured_logs):
        sync_chain_templates(approval_engine, [quotation_template()])
        changed = quotation_template(
            (ChainLevel(order=1, display_name="Director", approver="director"),),
        )

        sync_chain_templates(
            approval_engine, [changed, purchase_order_template()], dry_run=True,
        )

        summary = [r for r in captured_logs() if r["message"] == "chain_templates_synced"][-1]
        assert summary["dry_run"] is True
        assert summary["created_count"] == 1
        assert summary["replaced_count"] == 1
        assert summary["unchanged_count"] == 0
        assert approval_engine.get_active_template(DocumentType.QUOTATION).level_count == 2

    def test_inactive_template_applied(self, approval_engine):
        inactive = replace(purchase_order_template(), is_active=False)

        sync_chain_templates(approval_engine, [inactive])

        stored = approval_engine.list_templates()
        assert [(t.document_type, t.is_active) for t in stored] == [
            (DocumentType.PURCHASE_ORDER, False),
        ]

    def test_inactive_template_written_with_its_levels(self, approval_engine, monkeypatch):
        def no_second_write(self, *args, **kwargs):
            raise AssertionError("active flag must be written with the levels")

        monkeypatch.setattr(ApprovalEngine, "set_template_active", no_second_write)
        sync_chain_templates(approval_engine, [quotation_template()])

        results = sync_chain_templates(
            approval_engine, [replace(quotation_template(), is_active=False)],
        )

        assert results[0].action == SyncAction.REPLACE
        stored = approval_engine.list_templates()
        assert [(t.document_type, t.is_active) for t in stored] == [
            (DocumentType.QUOTATION, False),
        ]

    def test_default_configuration_set(self, approval_engine, monkeypatch):
        monkeypatch.delenv("APPROVAL_DATABASE_URL", raising=False)
        templates = to_chain_templates(get_active_config())

        sync_chain_templates(approval_engine, templates)

        quotation = approval_engine.get_active_template(DocumentType.QUOTATION)
        assert [lvl.approver for lvl in quotation.levels] == ["team.lead", "ceo"]
