import pytest

from tracksync.common.config import Config
from tracksync.common.models import FieldType, Record
from tracksync.transformers.validators import DataQualityAnalyzer, QualityThresholds, analyze_quality
from tracksync.transformers.validators.quality_analyzer import OVERALL_METRIC_NAME, is_valid_value


def test_completeness_and_validity_of_one_column():
    report = analyze_quality([{"email": "a@b.com"}, {"email": ""}], {"email": "customer_email"})
    analysis = report.field_analysis["customer_email"]

    assert analysis.completeness == 50
    assert analysis.validity == 100
    assert analysis.consistency == 100
    assert analysis.uniqueness == 100


def test_empty_batch_is_vacuously_perfect():
    report = analyze_quality([], {"email": "customer_email", "phone": "customer_phone"})

    for analysis in report.field_analysis.values():
        assert analysis.completeness == 100
        assert analysis.validity == 100
        assert analysis.consistency == 100
        assert analysis.uniqueness == 100
    assert report.overall_score == 100
    assert report.summary.total_records == 0


def test_no_mapping_scores_100():
    report = analyze_quality([{"a": 1}], {})
    assert report.overall_score == 100
    assert [m.name for m in report.metrics] == [OVERALL_METRIC_NAME]


def test_overall_metric_comes_first():
    report = analyze_quality([{"email": "a@b.com"}], {"email": "customer_email"})

    assert report.metrics[0].name == OVERALL_METRIC_NAME
    assert report.metrics[0].weight == 3
    assert report.metrics[1].name == "email -> customer_email"
    assert report.metrics[1].weight == 2


def test_overall_score_weights_mandatory_fields_double():
    rows = [
        {"email": "a@b.com", "note": ""},
        {"email": "c@d.com", "note": "fragile"},
    ]
    report = analyze_quality(rows, {"email": "customer_email", "note": "note"})

    assert report.field_analysis["customer_email"].score == pytest.approx(100)
    # completeness 50 -> 15 + 40 + 20 + 10
    assert report.field_analysis["note"].score == pytest.approx(85)
    assert report.overall_score == pytest.approx((2 * 100 + 85) / 3)


def test_low_quality_is_flagged():
    report = analyze_quality([{"email": "bad"}, {"email": ""}], {"email": "customer_email"})

    assert report.overall_score == pytest.approx(45)
    assert report.metrics[0].issues == ["Overall quality is low, review the data"]
    assert report.summary.critical_issues == 2
    assert report.summary.valid_records == 0
    assert report.summary.invalid_records == 2
    assert report.field_analysis["customer_email"].issues == [
        "Low completeness: 50.0%",
        "Low validity: 0.0%",
    ]
    assert report.recommendations == [
        "Fill in missing values of email",
        "Fix the format of values in email",
    ]


def test_duplicate_tracking_codes_are_critical():
    rows = [{"code": "JD123456789BR"}, {"code": "JD123456789BR"}]
    report = analyze_quality(rows, {"code": "tracking_code"})
    analysis = report.field_analysis["tracking_code"]

    assert analysis.uniqueness == 50
    assert "Duplicates found: 50.0%" in analysis.issues
    assert report.summary.critical_issues == 1


def test_duplicates_in_non_identity_fields_are_not_flagged():
    rows = [{"name": "Ana"}, {"name": "Ana"}]
    report = analyze_quality(rows, {"name": "customer_name"})

    assert report.field_analysis["customer_name"].uniqueness == 50
    assert report.field_analysis["customer_name"].issues == []


def test_phone_consistency_penalty():
    rows = [{"phone": "(11) 98765-4321"}, {"phone": "11987654321"}, {"phone": "98765 4321"}]
    report = analyze_quality(rows, {"phone": "customer_phone"})

    assert report.field_analysis["customer_phone"].consistency == 60
    assert report.summary.warnings == 1


def test_order_value_consistency_penalty():
    rows = [{"value": "10,50"}, {"value": "10.50"}, {"value": "10"}]
    report = analyze_quality(rows, {"value": "order_value"})

    assert report.field_analysis["order_value"].consistency == 50
    assert report.field_analysis["order_value"].validity == 100


def test_date_validity_and_consistency():
    rows = [{"date": "2024-01-31"}, {"date": "31/01/2024"}, {"date": "not a date"}]
    report = analyze_quality(rows, {"date": "order_date"})
    analysis = report.field_analysis["order_date"]

    assert analysis.validity == pytest.approx(200 / 3)
    assert analysis.consistency == 70


def test_scores_stay_within_bounds():
    rows = [
        {"code": "??", "email": "x", "phone": "abc", "value": "R$ ,", "zip": "1", "date": "32/13/2024"},
        {"code": "??", "email": "", "phone": "(11) 98765-4321", "value": "1,5", "zip": "", "date": "2024-13-40"},
        {"code": "", "email": "x", "phone": "11987654321", "value": "1.5", "zip": "01310-100", "date": ""},
        {"code": None, "email": None, "phone": None, "value": "7", "zip": None, "date": "01-02-2024"},
    ]
    mapping = {
        "code": "tracking_code",
        "email": "customer_email",
        "phone": "customer_phone",
        "value": "order_value",
        "zip": "delivery_zipcode",
        "date": "order_date",
    }
    report = analyze_quality(rows, mapping)

    assert 0 <= report.overall_score <= 100
    for analysis in report.field_analysis.values():
        for score in (analysis.completeness, analysis.validity, analysis.consistency, analysis.uniqueness):
            assert 0 <= score <= 100
    for metric in report.metrics:
        assert 0 <= metric.score <= 100


def test_valid_record_counting():
    rows = [
        {"code": "JD123456789BR", "name": "Ana", "email": "ana@x.com"},
        {"code": "???", "name": "Bia", "email": "bia@x.com"},
        {"code": "PA987654321BR", "name": "", "email": "caio@x.com"},
    ]
    mapping = {"code": "tracking_code", "name": "customer_name", "email": "customer_email"}
    report = analyze_quality(rows, mapping)

    assert report.summary.valid_records == 1
    assert report.summary.invalid_records == 2


def test_records_are_accepted():
    records = [Record.from_dict({"email": "a@b.com"}), Record.from_dict({"email": "c@d.com"})]
    report = DataQualityAnalyzer().analyze(records, {"email": "customer_email"})

    assert report.field_analysis["customer_email"].completeness == 100
    assert report.summary.total_records == 2


def test_custom_thresholds_change_findings():
    rows = [{"email": "a@b.com"}, {"email": ""}]
    report = analyze_quality(rows, {"email": "customer_email"}, QualityThresholds(completeness=40))

    assert report.field_analysis["customer_email"].issues == []
    assert report.summary.critical_issues == 0


def test_thresholds_with_updates():
    thresholds = QualityThresholds().with_updates(validity=80, completeness=None)

    assert thresholds.validity == 80
    assert thresholds.completeness == 95
    assert QualityThresholds().validity == 90


def test_thresholds_from_config(monkeypatch):
    monkeypatch.delenv("QUALITY_THRESHOLDS_COMPLETENESS", raising=False)
    monkeypatch.setenv("QUALITY_THRESHOLDS_VALIDITY", "50")
    config = Config.from_dict({"quality": {"thresholds": {"completeness": 80}}})

    thresholds = QualityThresholds.from_config(config)

    assert thresholds.completeness == 80
    assert thresholds.validity == 50
    assert thresholds.consistency == 85


@pytest.mark.parametrize("value,field_type,expected", [
    ("a@b.com", FieldType.CUSTOMER_EMAIL, True),
    ("a@b", FieldType.CUSTOMER_EMAIL, False),
    ("01310-100", FieldType.DELIVERY_ZIPCODE, True),
    ("0131", FieldType.DELIVERY_ZIPCODE, False),
    ("R$ 1234,56", FieldType.ORDER_VALUE, True),
    ("abc", FieldType.ORDER_VALUE, False),
    ("JD123456789BR", FieldType.TRACKING_CODE, True),
    ("anything", FieldType.GENERIC, True),
])
def test_is_valid_value(value, field_type, expected):
    assert is_valid_value(value, field_type) is expected


@pytest.mark.parametrize("value", ["now", "today", " Tomorrow ", "YESTERDAY"])
def test_relative_date_words_are_not_dates(value):
    assert is_valid_value(value, FieldType.ORDER_DATE) is False
    assert is_valid_value(value, FieldType.ESTIMATED_DELIVERY) is False


def test_free_text_dates_still_parse():
    assert is_valid_value("Jan 31 2024", FieldType.ORDER_DATE) is True
