"""
CSV shipment import example

This example runs a marketplace export through the whole import pipeline:
- Extract: Read orders from a CSV file
- Map/Correct: Rename columns and fix e-mails, phones, CEPs and values
- Analyze: Score the batch quality
- Classify: Detect the carrier of every tracking code
- Reconcile: Diff against the existing shipments and apply the plan
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tracksync.orchestration.pipeline import ImportPipeline
from tracksync.adapters.sources.csv_source import CSVSource
from tracksync.adapters.destinations.memory_store import InMemoryStore
from tracksync.common.config import init_config
from tracksync.common.logging import setup_logging


FIELD_MAPPING = {
    "Codigo Rastreio": "tracking_code",
    "Pedido": "order_number",
    "Cliente": "customer_name",
    "E-mail": "customer_email",
    "Telefone": "customer_phone",
    "CEP": "delivery_zipcode",
    "Valor": "order_value",
    "Data": "order_date",
}


def main():
    """Run the CSV import pipeline"""
    base_dir = Path(__file__).parent
    config = init_config(str(base_dir / "config.yaml"))

    logger = setup_logging(
        level=config.get("logging.level", "INFO"),
        format_type=config.get("logging.format", "text")
    )
    logger.info("=" * 60)
    logger.info("Starting CSV shipment import")
    logger.info("=" * 60)

    csv_file = base_dir / "data" / "orders.csv"
    if not csv_file.exists():
        logger.error(f"Sample CSV not found: {csv_file}")
        return

    # Shipments already known to the store
    store = InMemoryStore(records=[
        {"tracking_code": "JD123456789BR", "order_number": "1001", "customer_name": "Ana Souza"},
        {"tracking_code": "PA987654321BR", "order_number": "0999", "customer_name": "Fabio Reis"},
    ])

    try:
        pipeline = (ImportPipeline("orders_csv", config=config)
            .extract(CSVSource(str(csv_file)))
            .map_fields(FIELD_MAPPING)
            .correct()
            .analyze()
            .classify()
            .reconcile(store, apply=True))
        result = pipeline.run()

        logger.info("")
        logger.info("=" * 60)
        logger.info("Import Results")
        logger.info("=" * 60)
        logger.info(f"Status: {'SUCCESS' if result.success else 'FAILED'}")
        logger.info(f"Records Extracted: {result.records_extracted}")
        logger.info(f"Records Corrected: {result.records_corrected}")
        logger.info(f"Records Classified: {result.records_classified}")
        logger.info(f"Unknown Carrier: {result.records_unclassified}")
        logger.info(f"Total Duration: {result.duration_seconds:.2f}s")
        for stage, seconds in result.stage_durations.items():
            logger.info(f"  - {stage}: {seconds:.2f}s")

        quality = result.quality
        logger.info("")
        logger.info(f"Quality Score: {quality.overall_score:.1f}")
        for name, analysis in quality.field_analysis.items():
            logger.info(f"  - {name}: {analysis.score:.1f} {'; '.join(analysis.issues)}")
        for recommendation in quality.recommendations:
            logger.info(f"  * {recommendation}")

        summary = result.reconciliation.summary
        logger.info("")
        logger.info(f"New: {summary.new_records}, Updated: {summary.updated_records}, "
                    f"Deleted: {summary.deleted_records}, Conflicts: {summary.conflicted_records}")
        if result.applied is not None:
            logger.info(f"Applied Operations: {result.applied.applied}")
            for error in result.applied.errors:
                logger.warning(f"  ! {error}")

        logger.info("")
        for record in result.records:
            logger.info(f"{record.data['tracking_code'] or '(empty)'} -> {record.data['carrier'] or 'unknown'}")

        logger.info("=" * 60)
        logger.info(f"Store now holds {len(store)} shipments")

    except Exception as e:
        logger.error(f"Pipeline failed with error: {e}")
        raise


if __name__ == "__main__":
    main()
