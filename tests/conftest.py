import pytest

from tracksync.adapters.destinations.memory_store import InMemoryStore
from tracksync.common.models import Record


@pytest.fixture
def shipment_rows():
    """Raw rows as exported by a marketplace, before mapping"""
    return [
        {
            "Codigo Rastreio": "jd123456789br",
            "Cliente": "  ana   souza ",
            "E-mail": "Ana@GMAI.com",
            "Telefone": "11987654321",
            "CEP": "01310100",
            "Valor": "R$ 1.234,56",
        },
        {
            "Codigo Rastreio": "1Z999AA10123456784",
            "Cliente": "Bruno Lima",
            "E-mail": "bruno@example.com",
            "Telefone": "(21) 99876-5432",
            "CEP": "20040-002",
            "Valor": "89.90",
        },
        {
            "Codigo Rastreio": "???",
            "Cliente": "Carla",
            "E-mail": "",
            "Telefone": "",
            "CEP": "",
            "Valor": "",
        },
    ]


@pytest.fixture
def field_mapping():
    return {
        "Codigo Rastreio": "tracking_code",
        "Cliente": "customer_name",
        "E-mail": "customer_email",
        "Telefone": "customer_phone",
        "CEP": "delivery_zipcode",
        "Valor": "order_value",
    }


@pytest.fixture
def make_record():
    def factory(**data):
        return Record.from_dict(data, source_id="test")

    return factory


@pytest.fixture
def existing_shipments():
    return [
        {"tracking_code": "JD123456789BR", "status": "pending", "customer_name": "Ana Souza"},
        {"tracking_code": "PA987654321BR", "status": "delivered", "customer_name": "Davi Rocha"},
    ]


@pytest.fixture
def memory_store(existing_shipments):
    return InMemoryStore(key_fields=["tracking_code"], records=existing_shipments)
