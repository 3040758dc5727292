import logging

import pytest

from tracksync.common.exceptions import RuleCompilationError
from tracksync.common.models import FieldType
from tracksync.transformers.cleaners import (
    CorrectionEngine,
    CorrectionRule,
    DEFAULT_CORRECTION_RULES,
    Literal,
    RuleSet,
    Transform,
    analyze_and_correct,
    correct,
)


def test_email_typo_and_case():
    result = correct("joão@GMAI.com", "customer_email")

    assert result.corrected_value == "joão@gmail.com"
    assert result.applied_rules == ["email-lowercase", "email-common-typos"]
    assert result.confidence == pytest.approx((0.9 + 0.5) / 2)
    assert result.changed


def test_field_type_enum_is_accepted():
    result = correct("  Foo@Gmial.COM ", FieldType.CUSTOMER_EMAIL)

    assert result.corrected_value == "foo@gmail.com"
    assert result.applied_rules == ["email-lowercase", "email-trim", "email-common-typos"]
    assert result.field == "customer_email"


@pytest.mark.parametrize("value,expected,rules", [
    ("11987654321", "(11) 98765-4321", ["phone-br-format"]),
    ("1133334444", "(11) 3333-4444", ["phone-br-format"]),
    ("+55 (11) 98765-4321", "55 (11) 98765-4321", ["phone-clean"]),
])
def test_phone_corrections(value, expected, rules):
    result = correct(value, "customer_phone")
    assert result.corrected_value == expected
    assert result.applied_rules == rules


def test_tracking_code_corrections():
    result = correct("jd 123.456.789-br", "tracking_code")

    assert result.corrected_value == "JD123456789BR"
    assert result.applied_rules == ["tracking-uppercase", "tracking-clean"]
    assert result.confidence == pytest.approx(0.8)


@pytest.mark.parametrize("value,expected", [
    ("R$ 1.234,56", "1234.56"),
    ("R$89,90", "89.90"),
    ("1234,56", "1234.56"),
    ("89.90", "89.90"),
])
def test_order_value_corrections(value, expected):
    assert correct(value, "order_value").corrected_value == expected


def test_name_corrections():
    result = correct("  joão   da silva ", "customer_name")

    assert result.corrected_value == "João Da Silva"
    assert result.applied_rules == ["name-trim", "name-collapse-spaces", "name-title-case"]


@pytest.mark.parametrize("value,expected", [
    ("01310100", "01310-100"),
    ("CEP 01310-100", "01310-100"),
    ("01310-100", "01310-100"),
])
def test_zipcode_corrections(value, expected):
    assert correct(value, "delivery_zipcode").corrected_value == expected


@pytest.mark.parametrize("field,value", [
    ("customer_email", "  Foo@Gmial.COM "),
    ("customer_email", "joão@GMAI.com"),
    ("customer_phone", "11987654321"),
    ("customer_phone", "+55 (11) 98765-4321"),
    ("tracking_code", "jd 123.456.789-br"),
    ("order_value", "R$ 1.234,56"),
    ("customer_name", "  maria   DE souza "),
    ("delivery_zipcode", "CEP 01310100"),
])
def test_corrections_are_idempotent(field, value):
    once = correct(value, field)
    twice = correct(once.corrected_value, field)

    assert twice.corrected_value == once.corrected_value
    assert twice.applied_rules == []


@pytest.mark.parametrize("value", ["", None, 42])
def test_empty_and_non_text_values_pass_through(value):
    result = correct(value, "customer_email")
    assert result.corrected_value == value
    assert result.applied_rules == []
    assert result.confidence == 1.0


def test_unknown_field_has_no_rules():
    result = correct("Anything", "notes")
    assert result.corrected_value == "Anything"
    assert not result.changed


def test_invalid_pattern_raises_on_compile():
    rule = CorrectionRule(id="broken", field="customer_email", pattern="([", replacement=Literal(""))

    with pytest.raises(RuleCompilationError) as exc_info:
        rule.compile()
    assert exc_info.value.rule_id == "broken"


def test_invalid_rule_is_skipped(caplog):
    rules = RuleSet([
        CorrectionRule(id="broken", field="customer_email", pattern="([", replacement=Literal("")),
        RuleSet().get("email-lowercase"),
    ])

    with caplog.at_level(logging.WARNING, logger="tracksync"):
        result = correct("ABC@X.COM", "customer_email", rules)

    assert result.corrected_value == "abc@x.com"
    assert result.applied_rules == ["email-lowercase"]
    assert "broken" in caplog.text


def test_invalid_template_is_skipped():
    rules = [CorrectionRule(id="bad-group", field="customer_name", pattern="a", replacement=Literal(r"\g<9>"))]
    result = correct("ana", "customer_name", rules)
    assert result.corrected_value == "ana"
    assert result.applied_rules == []


def test_transform_replacement_receives_matched_text():
    rules = [CorrectionRule(
        id="reverse",
        field="order_number",
        pattern=r"\d+",
        replacement=Transform(lambda text: text[::-1]),
        priority=3,
    )]
    result = correct("PED-123", "order_number", rules)

    assert result.corrected_value == "PED-321"
    assert result.confidence == 0.5


def test_rules_run_in_priority_order():
    rules = [
        CorrectionRule(id="second", field="generic", pattern="b", replacement=Literal("c"), priority=2),
        CorrectionRule(id="first", field="generic", pattern="a", replacement=Literal("b"), priority=1),
    ]
    result = correct("a", "generic", rules)
    assert result.corrected_value == "c"
    assert result.applied_rules == ["first", "second"]


def test_disabled_rule_does_not_fire():
    rules = RuleSet()
    assert rules.toggle("email-common-typos")
    assert not rules.get("email-common-typos").enabled

    assert correct("ana@gmai.com", "customer_email", rules).corrected_value == "ana@gmai.com"


def test_ruleset_add_update_delete():
    rules = RuleSet()
    rule_id = rules.add("order_number", r"^#", "", description="Drop leading hash")

    assert rule_id.startswith("custom-")
    assert len(rule_id) == len("custom-") + 9
    assert rule_id in rules
    assert isinstance(rules.get(rule_id).replacement, Literal)
    assert correct("#1001", "order_number", rules).corrected_value == "1001"

    assert rules.update(rule_id, priority=2, replacement=str.lower)
    assert rules.get(rule_id).priority == 2
    assert isinstance(rules.get(rule_id).replacement, Transform)
    assert not rules.update("missing", priority=3)

    assert rules.delete(rule_id)
    assert rule_id not in rules
    assert not rules.delete(rule_id)
    assert not rules.toggle(rule_id)


def test_ruleset_reset_leaves_defaults_untouched():
    rules = RuleSet()
    rules.delete("email-lowercase")
    rules.add("generic", "x", "y")
    assert len(rules) == len(DEFAULT_CORRECTION_RULES)

    rules.reset_to_defaults()
    assert [r.id for r in rules] == [r.id for r in DEFAULT_CORRECTION_RULES]
    assert "email-lowercase" in RuleSet()


def test_analyze_and_correct_batch():
    records = [
        {"customer_email": "A@GMAI.COM", "customer_name": "ana"},
        {"customer_email": "ok@x.com"},
    ]
    analysis = analyze_and_correct(records)

    assert analysis.summary.total_records == 2
    assert analysis.summary.corrected_records == 1
    assert analysis.summary.total_corrections == 3
    assert analysis.summary.confidence == pytest.approx(0.7)
    assert analysis.record_flags == [True, False]
    assert [c.field for c in analysis.corrections] == ["customer_email", "customer_name"]
    assert all(c.record_index == 1 for c in analysis.corrections)

    assert analysis.corrected_records[0] == {"customer_email": "a@gmail.com", "customer_name": "Ana"}
    assert records[0]["customer_email"] == "A@GMAI.COM"


def test_analyze_and_correct_limits_fields():
    records = [{"customer_email": "A@B.COM", "customer_name": "ana"}]
    analysis = analyze_and_correct(records, fields_to_correct=["customer_name"])

    assert analysis.corrected_records[0] == {"customer_email": "A@B.COM", "customer_name": "Ana"}


def test_engine_transform_annotates_record(make_record):
    engine = CorrectionEngine()
    record = engine.transform(make_record(customer_email="A@GMAI.COM", tracking_code="jd123456789br"))

    assert record.data == {"customer_email": "a@gmail.com", "tracking_code": "JD123456789BR"}
    assert [c.field for c in record.metadata.custom["corrections"]] == ["customer_email", "tracking_code"]
    assert engine.get_stats()["records_modified"] == 1
    assert engine.get_stats()["total_corrections"] == 3


def test_engine_transform_batch_keeps_analysis(make_record):
    engine = CorrectionEngine(fields=["customer_name"])
    records = engine.transform_batch([
        make_record(customer_name="ana souza"),
        make_record(customer_name="Bruno"),
    ])

    assert [r.data["customer_name"] for r in records] == ["Ana Souza", "Bruno"]
    assert all(r.metadata.stage == "correct" for r in records)
    assert "corrections" not in records[1].metadata.custom
    assert engine.last_analysis.summary.corrected_records == 1

    stats = engine.get_stats()
    assert stats["records_processed"] == 2
    assert stats["records_modified"] == 1
    assert stats["total_corrections"] == 1


def test_engine_uses_caller_rules():
    rules = RuleSet([])
    engine = CorrectionEngine(rules=rules)
    assert engine.correct("A@B.COM", "customer_email").corrected_value == "A@B.COM"

    rules.add("customer_email", ".+", str.lower)
    assert engine.correct("A@B.COM", "customer_email").corrected_value == "a@b.com"
