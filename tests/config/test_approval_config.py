"""
Tests for approval chain configuration loading and validation.

Covers:
- Loader (parse_level, parse_template, parse_configuration) -- YAML dict parsing
- Validator (validate_configuration) -- errors and warnings
- Bridges -- configuration to kernel ChainTemplate and engine kwargs
- End-to-end (get_active_config) -- shipped default set, env override,
  missing set, invalid set
"""

from __future__ import annotations

import dataclasses

import pytest
import yaml

from approval_config import DATABASE_URL_ENV, get_active_config
from approval_config.bridges import engine_kwargs, to_chain_template, to_chain_templates
from approval_config.loader import (
    compute_checksum,
    parse_configuration,
    parse_level,
    parse_template,
)
from approval_config.schema import ChainLevelDef, ChainTemplateDef
from approval_config.validator import validate_configuration
from approval_kernel.domain.approval import DocumentType


def _raw_config(**overrides):
    data = {
        "config_id": "test",
        "version": 3,
        "database": {"url": "sqlite:///test.db"},
        "chain_templates": [
            {
                "document_type": "QUOTATION",
                "name": "Quotation approval",
                "levels": [
                    {"order": 1, "display_name": "Team Lead", "approver": "lead"},
                    {"order": 2, "display_name": "CEO", "approver": "ceo"},
                ],
            },
            {
                "document_type": "PURCHASE_ORDER",
                "name": "PO approval",
                "levels": [
                    {"order": 1, "display_name": "Manager", "approver": "manager"},
                ],
            },
        ],
    }
    data.update(overrides)
    return data


def _write_set(tmp_path, data, name="custom"):
    set_dir = tmp_path / name
    set_dir.mkdir()
    (set_dir / "approval.yaml").write_text(yaml.safe_dump(data))
    return tmp_path


@pytest.fixture(autouse=True)
def _no_database_override(monkeypatch):
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)


# =========================================================================
# 1. Loader
# =========================================================================


class TestLoader:

    def test_parse_level_defaults(self):
        level = parse_level({"order": 2, "display_name": "CEO", "approver": "ceo"})
        assert level == ChainLevelDef(order=2, display_name="CEO", approver="ceo")
        assert level.is_required is True

    @pytest.mark.parametrize("order", ["1", 1.0, True])
    def test_parse_level_rejects_non_integer_order(self, order):
        with pytest.raises(ValueError):
            parse_level({"order": order, "display_name": "X", "approver": "x"})

    def test_parse_level_missing_approver(self):
        with pytest.raises(KeyError):
            parse_level({"order": 1, "display_name": "X"})

    def test_parse_template_keeps_file_order(self):
        template = parse_template({
            "document_type": "QUOTATION",
            "name": "q",
            "levels": [
                {"order": 2, "display_name": "CEO", "approver": "ceo"},
                {"order": 1, "display_name": "Lead", "approver": "lead"},
            ],
        })
        assert [lvl.order for lvl in template.levels] == [2, 1]
        assert template.is_active is True

    def test_parse_template_without_levels(self):
        template = parse_template({"document_type": "QUOTATION", "name": "q"})
        assert template.levels == ()

    def test_parse_configuration(self):
        config = parse_configuration(_raw_config())
        assert config.config_id == "test"
        assert config.version == 3
        assert config.database.url == "sqlite:///test.db"
        assert config.database.pool_size == 20
        assert len(config.chain_templates) == 2
        assert config.template_for("PURCHASE_ORDER").name == "PO approval"
        assert config.template_for("UNKNOWN") is None

    def test_checksum_deterministic(self):
        assert compute_checksum(_raw_config()) == compute_checksum(_raw_config())
        assert compute_checksum(_raw_config()) != compute_checksum(_raw_config(version=4))


# =========================================================================
# 2. Validator
# =========================================================================


class TestValidator:

    def test_valid_configuration(self):
        result = validate_configuration(parse_configuration(_raw_config()))
        assert result.is_valid
        assert result.warnings == []

    def test_unknown_document_type(self):
        data = _raw_config()
        data["chain_templates"][1]["document_type"] = "INVOICE"
        result = validate_configuration(parse_configuration(data))
        assert not result.is_valid
        assert any("INVOICE" in e for e in result.errors)
        assert any("PURCHASE_ORDER" in w for w in result.warnings)

    def test_duplicate_template(self):
        data = _raw_config()
        data["chain_templates"][1]["document_type"] = "QUOTATION"
        result = validate_configuration(parse_configuration(data))
        assert any("Duplicate chain template" in e for e in result.errors)

    def test_gap_in_levels(self):
        data = _raw_config()
        data["chain_templates"][0]["levels"][1]["order"] = 3
        result = validate_configuration(parse_configuration(data))
        assert any("contiguous" in e for e in result.errors)

    def test_duplicate_levels(self):
        data = _raw_config()
        data["chain_templates"][0]["levels"][1]["order"] = 1
        result = validate_configuration(parse_configuration(data))
        assert any("duplicate level orders" in e for e in result.errors)

    def test_blank_approver(self):
        data = _raw_config()
        data["chain_templates"][0]["levels"][0]["approver"] = "  "
        result = validate_configuration(parse_configuration(data))
        assert any("has no approver" in e for e in result.errors)

    def test_empty_chain_is_a_warning(self):
        data = _raw_config()
        data["chain_templates"][1]["levels"] = []
        result = validate_configuration(parse_configuration(data))
        assert result.is_valid
        assert any("has no levels" in w for w in result.warnings)

    def test_empty_database_url(self):
        result = validate_configuration(
            parse_configuration(_raw_config(database={"url": ""}))
        )
        assert any("database.url" in e for e in result.errors)


# =========================================================================
# 3. Bridges
# =========================================================================


class TestBridges:

    def test_to_chain_template_sorts_levels(self):
        definition = ChainTemplateDef(
            document_type="QUOTATION",
            name="q",
            levels=(
                ChainLevelDef(order=2, display_name="CEO", approver="ceo"),
                ChainLevelDef(order=1, display_name="Lead", approver="lead", is_required=False),
            ),
            description="desc",
        )
        template = to_chain_template(definition)
        assert template.document_type == DocumentType.QUOTATION
        assert [lvl.approver for lvl in template.levels] == ["lead", "ceo"]
        assert template.levels[0].is_required is False
        assert template.description == "desc"

    def test_to_chain_templates(self):
        templates = to_chain_templates(parse_configuration(_raw_config()))
        assert [t.document_type for t in templates] == [
            DocumentType.QUOTATION,
            DocumentType.PURCHASE_ORDER,
        ]

    def test_engine_kwargs(self):
        config = parse_configuration(_raw_config())
        config = dataclasses.replace(
            config, database=dataclasses.replace(config.database, pool_recycle=60),
        )
        kwargs = engine_kwargs(config)
        assert kwargs["database_url"] == "sqlite:///test.db"
        assert kwargs["pool_recycle"] == 60
        assert kwargs["echo"] is False


# =========================================================================
# 4. End-to-end
# =========================================================================


class TestGetActiveConfig:

    def test_default_set_loads(self):
        config = get_active_config()
        assert config.config_id == "default"
        quotation = config.template_for("QUOTATION")
        purchase_order = config.template_for("PURCHASE_ORDER")
        assert [lvl.display_name for lvl in quotation.levels] == ["Team Lead", "CEO"]
        assert len(purchase_order.levels) == 3
        assert len(config.checksum) == 64

    def test_config_trace_logged(self, captured_logs):
        get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "APPROVAL_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_set_id"] == "default"
        assert traces[0]["database_url_overridden"] is False

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV, "postgresql://u:p@db/approvals")
        config = get_active_config()
        assert config.database.url == "postgresql://u:p@db/approvals"

    def test_custom_set(self, tmp_path):
        config_dir = _write_set(tmp_path, _raw_config())
        config = get_active_config("custom", config_dir=config_dir)
        assert config.config_id == "test"

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("nope", config_dir=tmp_path)

    def test_invalid_set_rejected(self, tmp_path):
        data = _raw_config()
        data["chain_templates"][0]["levels"][1]["order"] = 5
        config_dir = _write_set(tmp_path, data)
        with pytest.raises(ValueError, match="Configuration validation failed"):
            get_active_config("custom", config_dir=config_dir)

    def test_warnings_logged(self, tmp_path, captured_logs):
        data = _raw_config()
        data["chain_templates"] = data["chain_templates"][:1]
        config_dir = _write_set(tmp_path, data)

        get_active_config("custom", config_dir=config_dir)

        warnings = [r for r in captured_logs() if r["message"] == "approval_config_warning"]
        assert len(warnings) == 1
        assert "PURCHASE_ORDER" in warnings[0]["detail"]
