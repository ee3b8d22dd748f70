from __future__ import annotations

import pytest

from depmatrix.domain.reconciliation import (
    AliasTable,
    InvalidIdentifierError,
    ServiceNameCanonicalizer,
    canonicalize,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("mysql-primary", "mysql-database"),
        ("redis-cache", "redis-service"),
        ("kafka-cluster", "kafka-service"),
        ("auth-service", "authentication-service"),
        ("user-service", "user-management-service"),
    ],
)
def test_alias_table_wins(raw: str, expected: str) -> None:
    assert canonicalize(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("web-portal", "web-portal-service"),
        ("orders-db", "orders-db-database"),
        ("customer_db", "customer_db-database"),
        ("analytics-postgres", "analytics-postgres-database"),
        ("reporting-database", "reporting-database"),
        ("checkout-gateway", "checkout-gateway"),
        ("billing-api", "billing-api"),
        ("dbadmin-portal", "dbadmin-portal-service"),
    ],
)
def test_suffix_inference(raw: str, expected: str) -> None:
    assert canonicalize(raw) == expected


def test_alias_lookup_is_case_sensitive_but_input_is_trimmed() -> None:
    assert canonicalize("  redis-cache  ") == "redis-service"
    assert canonicalize("REDIS-CACHE") == "redis-cache-service"


def test_inferred_name_resolves_through_alias_table() -> None:
    assert canonicalize("Auth-Service") == "authentication-service"


@pytest.mark.parametrize("raw", ["", "   ", "\t", None])
def test_blank_identifier_is_rejected(raw: str | None) -> None:
    with pytest.raises(InvalidIdentifierError):
        canonicalize(raw)


@pytest.mark.parametrize(
    "raw",
    [
        "web-portal",
        "mysql-primary",
        "mysql-service",
        "user-service",
        "Auth-Service",
        "orders-db",
        "10.0.0.12",
        "Payment Processor",
        "payment-service",
    ],
)
def test_canonicalization_is_idempotent(raw: str) -> None:
    once = canonicalize(raw)

    assert canonicalize(once) == once


def test_custom_alias_table_is_used() -> None:
    canonicalizer = ServiceNameCanonicalizer(AliasTable({"legacy-crm": "crm-service"}))

    assert canonicalizer("legacy-crm") == "crm-service"
    assert canonicalizer("mysql-primary") == "mysql-primary-database"


def test_alias_table_rejects_non_canonical_targets() -> None:
    with pytest.raises(ValueError, match="lacks a recognized suffix"):
        AliasTable({"crm": "crm"})


def test_alias_table_rejects_chained_aliases() -> None:
    with pytest.raises(ValueError, match="is itself an alias"):
        AliasTable({"crm": "crm-service", "crm-service": "customer-service"})


def test_alias_table_with_overrides() -> None:
    table = AliasTable().with_overrides({"orders-db": "orders-database"})

    assert table.get("orders-db") == "orders-database"
    assert "mysql-primary" in table
    assert len(table) == len(AliasTable()) + 1


@pytest.mark.parametrize("target", ["CRM-service", " crm-service", "crm-service\n"])
def test_alias_table_rejects_unfolded_targets(target: str) -> None:
    with pytest.raises(ValueError, match="trimmed and lower case"):
        AliasTable({"crm": target})


def test_suffix_table_must_keep_inferred_suffixes() -> None:
    with pytest.raises(ValueError, match="-service, -database"):
        AliasTable({}, ("-svc", "-db"))


@pytest.mark.parametrize(
    "raw",
    ["crm", "Legacy-CRM", "web-portal", "orders-db", "billing-svc", "ledger_db", "Reports"],
)
def test_custom_tables_keep_canonicalization_idempotent(raw: str) -> None:
    canonicalizer = ServiceNameCanonicalizer(
        AliasTable(
            {"crm": "crm-service", "Legacy-CRM": "crm-service", "ledger_db": "ledger-store"},
            ("-service", "-database", "-svc", "-store"),
        ),
        database_cues=("ledger",),
    )

    once = canonicalizer(raw)

    assert canonicalizer(once) == once
