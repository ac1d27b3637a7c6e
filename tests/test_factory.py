from backend.factory import build_backend_services
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
)


def test_build_backend_services_defaults_to_in_memory(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)

    services = build_backend_services()

    assert services.supabase_client is None
    assert isinstance(services.transaction_service.transactions_repository, InMemoryTransactionsRepository)
    services.close()


def test_build_backend_services_uses_supabase_when_configured(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role")
    monkeypatch.setenv("JWT_SECRET", "factory-secret")

    services = build_backend_services()

    assert isinstance(services.transaction_service.transactions_repository, SupabaseTransactionsRepository)
    assert services.supabase_client is not None
    services.close()
    services.close()
    assert services.supabase_client.closed is True
