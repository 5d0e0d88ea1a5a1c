"""Tests for routing rule review (routing_config/validator.py)."""

from routing_config.validator import RuleValidationError, validate_rules
from routing_kernel.exceptions import ConfigurationError
from routing_kernel.rules import MappingRuleStore


def _review(*entries):
    return validate_rules(MappingRuleStore.from_entries(entries))


class TestValidateRules:
    def test_clean_configuration(self):
        result = _review(
            ("billing_messages", "billing"),
            ("billing_messages.InvoicePaid, billing_messages", "payments"),
        )
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_duplicate_target_with_same_endpoint(self):
        result = _review(("billing_messages", "billing"), ("billing_messages", "billing"))
        assert result.is_valid
        assert len(result.warnings) == 1
        assert "positions 0 and 1" in result.warnings[0]

    def test_duplicate_target_with_conflicting_endpoints(self):
        result = _review(
            ("billing_messages.InvoicePaid, billing_messages", "payments"),
            ("billing_messages.InvoicePaid, billing_messages", "audit"),
        )
        assert result.is_valid
        assert "the later mapping wins" in result.warnings[0]

    def test_type_rule_declared_before_assembly_rule(self):
        result = _review(
            ("billing_messages.InvoicePaid, billing_messages", "payments"),
            ("billing_messages", "billing"),
        )
        assert result.is_valid
        assert len(result.warnings) == 1
        assert "regardless of declaration order" in result.warnings[0]

    def test_target_declared_with_both_kinds(self):
        result = _review(
            ("billing_messages", "billing", None),
            ("billing_messages", "billing", "type"),
        )
        assert not result.is_valid
        assert "declared as type but was declared as assembly" in result.errors[0]


class TestRuleValidationError:
    def test_carries_every_error(self):
        err = RuleValidationError(["first problem", "second problem"])
        assert err.code == "RULE_VALIDATION_FAILED"
        assert err.errors == ["first problem", "second problem"]
        assert "  - first problem\n  - second problem" in str(err)

    def test_is_a_configuration_error(self):
        assert isinstance(RuleValidationError([]), ConfigurationError)
