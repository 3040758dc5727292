import pytest

from tracksync.adapters.sources import CSVSource
from tracksync.common.config import Config
from tracksync.common.exceptions import PipelineError
from tracksync.orchestration import ImportPipeline, apply_transformers, collect_stats
from tracksync.sync import generate_record_id
from tracksync.transformers.cleaners import FieldMapper, RuleSet
from tracksync.transformers.validators import QualityThresholds


def _id(code):
    return generate_record_id({"tracking_code": code}, ["tracking_code"])


def test_full_import_into_store(shipment_rows, field_mapping, memory_store):
    result = (ImportPipeline("marketplace_import")
        .with_records(shipment_rows)
        .map_fields(field_mapping)
        .correct()
        .analyze()
        .classify()
        .reconcile(memory_store, {"conflict_resolution": "source_wins"}, apply=True)
        .run())

    assert result.success
    assert result.records_extracted == 3
    assert result.records_corrected == 2
    assert result.records_classified == 2
    assert result.records_unclassified == 1

    first = result.records[0]
    assert first.data["tracking_code"] == "JD123456789BR"
    assert first.data["customer_name"] == "Ana Souza"
    assert first.data["customer_email"] == "ana@gmail.com"
    assert first.data["customer_phone"] == "(11) 98765-4321"
    assert first.data["delivery_zipcode"] == "01310-100"
    assert first.data["order_value"] == "1234.56"
    assert first.data["carrier"] == "correios"
    assert first.metadata.pipeline_id == "marketplace_import"
    assert first.metadata.stage == "classify"

    assert result.quality.summary.total_records == 3
    assert "tracking_code" in result.quality.field_analysis
    assert result.correction.summary.corrected_records == 2

    summary = result.reconciliation.summary
    assert summary.new_records == 2
    assert summary.updated_records == 1
    assert result.applied.applied == 3
    assert memory_store.get(_id("JD123456789BR"))["carrier"] == "correios"
    assert _id("1Z999AA10123456784") in memory_store
    assert set(result.stage_durations) == {"extract", "correct", "analyze", "classify", "reconcile"}


def test_reconcile_against_plain_rows_does_not_write(existing_shipments):
    result = (ImportPipeline()
        .with_records([{"tracking_code": "JD123456789BR", "status": "shipped"}])
        .reconcile(existing_shipments, {"conflict_resolution": "manual"})
        .run())

    assert result.success
    assert result.applied is None
    assert len(result.reconciliation.conflicts) == 1
    assert result.reconciliation.conflicts[0].changed_fields == ["status"]


def test_apply_requires_a_sync_target(existing_shipments):
    with pytest.raises(ValueError):
        ImportPipeline().reconcile(existing_shipments, apply=True)


def test_reconciliation_errors_fail_the_run():
    result = (ImportPipeline()
        .with_records([{"tracking_code": "A"}])
        .reconcile([], {"key_fields": []})
        .run())

    assert not result.success
    assert result.errors[0].stage == "reconcile"
    assert result.errors[0].error_type == "ReconciliationError"


def test_run_without_source():
    with pytest.raises(PipelineError, match="No records configured"):
        ImportPipeline().run()


def test_stage_failure_is_wrapped(tmp_path):
    pipeline = ImportPipeline().extract(CSVSource(str(tmp_path / "missing.csv")))

    with pytest.raises(PipelineError, match="during extract"):
        pipeline.run()
    assert not pipeline.result.success
    assert pipeline.result.errors[0].error_type == "ConnectionError"


def test_csv_import(tmp_path):
    path = tmp_path / "orders.csv"
    path.write_text(
        "Codigo,E-mail\n"
        "1z999aa10123456784,BRUNO@GMIAL.COM\n",
        encoding="utf-8",
    )

    pipeline = (ImportPipeline("csv_import")
        .extract(CSVSource(str(path)))
        .map_fields({"Codigo": "tracking_code", "E-mail": "customer_email"})
        .correct()
        .classify())
    result = pipeline.run()

    assert result.records[0].data == {
        "tracking_code": "1Z999AA10123456784",
        "customer_email": "bruno@gmail.com",
        "carrier": "ups",
    }
    stats = pipeline.get_stats()
    assert stats["records_extracted"] == 1
    assert set(stats["transformers"]) == {"FieldMapper", "CorrectionEngine", "CarrierEnricher"}


def test_quality_mapping_defaults_to_known_fields():
    result = (ImportPipeline()
        .with_records([{"customer_email": "a@b.com", "notes": "x"}])
        .analyze()
        .run())

    assert list(result.quality.field_analysis) == ["customer_email"]


def test_config_supplies_defaults(monkeypatch):
    monkeypatch.delenv("QUALITY_THRESHOLDS_VALIDITY", raising=False)
    config = Config.from_dict({
        "quality": {"thresholds": {"validity": 10}},
        "reconcile": {"conflict_resolution": "manual"},
    })
    result = (ImportPipeline(config=config)
        .with_records([{"customer_email": "bad"}, {"customer_email": "a@b.com"}])
        .analyze()
        .reconcile([], None)
        .run())

    assert result.quality.field_analysis["customer_email"].issues == []

    pipeline = ImportPipeline(config=config).with_records([]).reconcile([])
    assert pipeline._reconciler.config.conflict_resolution == "manual"


def test_explicit_thresholds_win_over_config():
    config = Config.from_dict({"quality": {"thresholds": {"validity": 10}}})
    result = (ImportPipeline(config=config)
        .with_records([{"customer_email": "bad"}, {"customer_email": "a@b.com"}])
        .analyze(thresholds=QualityThresholds(validity=90))
        .run())

    assert result.quality.field_analysis["customer_email"].issues == ["Low validity: 50.0%"]


def test_custom_rule_set(shipment_rows, field_mapping):
    rules = RuleSet([])
    rules.add("customer_name", r"^\s+|\s+$", "")
    result = (ImportPipeline()
        .with_records(shipment_rows)
        .map_fields(field_mapping)
        .correct(rules=rules)
        .run())

    assert result.records[0].data["customer_name"] == "ana   souza"
    assert result.records[0].data["customer_email"] == "Ana@GMAI.com"


def test_apply_transformers_lifecycle(make_record):
    mapper = FieldMapper({"Codigo": "tracking_code", "Obs": "notes"})
    records = apply_transformers([make_record(Codigo="A")], [mapper])

    assert records[0].data == {"tracking_code": "A", "notes": ""}
    assert apply_transformers(records, []) is records
    assert collect_stats([mapper, mapper]) == {
        "FieldMapper": mapper.get_stats(),
        "FieldMapper_1": mapper.get_stats(),
    }


def test_builder_call_order_does_not_change_corrections():
    rows = [{"Email": "JOAO@GMAI.com", "Codigo": " jd123456789br "}]
    mapping = {"Email": "customer_email", "Codigo": "tracking_code"}

    mapped_first = ImportPipeline().with_records(rows).map_fields(mapping).correct().run()
    corrected_first = ImportPipeline().with_records(rows).correct().map_fields(mapping).run()

    assert mapped_first.records[0].data["customer_email"] == "joao@gmail.com"
    assert corrected_first.records[0].data == mapped_first.records[0].data
    assert corrected_first.records_corrected == 1
