"""Tests for the SQL intelligence facade."""

from __future__ import annotations

from mcesql.demo import demo_metadata_provider
from mcesql.sqlintel import (
    DataExtension,
    DataExtensionField,
    DiagnosticSeverity,
    Folder,
    SqlIntelService,
    StaticMetadataProvider,
    SuggestionType,
)


def _service(**kwargs) -> SqlIntelService:  # type: ignore[no-untyped-def]
    return SqlIntelService(demo_metadata_provider(), **kwargs)


def test_table_suggestions_after_from() -> None:
    service = _service()
    sql = "SELECT * FROM "

    suggestions = service.suggest(sql, len(sql))

    labels = [entry.label for entry in suggestions]
    assert suggestions and all(entry.type is SuggestionType.TABLE for entry in suggestions)
    assert "[_Subscribers]" in labels
    assert "ENT.[Campaign Members]" in labels


def test_table_suggestions_filter_by_partial_name() -> None:
    service = _service()
    sql = "SELECT * FROM [Purch"

    suggestions = service.suggest(sql, len(sql))

    assert [entry.name for entry in suggestions] == ["Purchases"]


def test_field_suggestions_after_alias_dot() -> None:
    service = _service()
    sql = "SELECT p. FROM [Purchases] p"

    suggestions = service.suggest(sql, len("SELECT p."))

    assert [entry.name for entry in suggestions] == ["Amount", "OrderID", "PurchaseDate", "SubscriberKey"]
    assert all(entry.type is SuggestionType.FIELD for entry in suggestions)


def test_field_suggestions_from_subquery_alias() -> None:
    service = _service()
    sql = "SELECT sub. FROM (SELECT p.OrderID, p.Amount AS Total FROM [Purchases] p) sub"

    suggestions = service.suggest(sql, len("SELECT sub."))

    assert {entry.name for entry in suggestions} == {"OrderID", "Total"}


def test_join_suggestions_after_on() -> None:
    service = _service()
    sql = "SELECT * FROM [_Sent] s JOIN [_Open] o ON "

    suggestions = service.suggest(sql, len(sql))

    assert suggestions[0].type is SuggestionType.JOIN
    assert suggestions[0].insert_text == "s.JobID = o.JobID"


def test_no_suggestions_inside_strings() -> None:
    service = _service()
    sql = "SELECT * FROM [Purchases] WHERE x = 'FROM "

    assert service.suggest(sql, len(sql)) == []
    assert service.should_suggest(sql, len(sql)) is False


def test_should_suggest_honours_trigger_rules() -> None:
    service = _service(min_trigger_chars=3)

    assert service.should_suggest("SELECT s.", 9) is True
    assert service.should_suggest("SELECT ab", 9) is False
    assert service.should_suggest("SELECT abc", 10) is True
    assert service.should_suggest("SELECT a,", 9) is False


def test_max_suggestions_is_applied() -> None:
    service = _service(max_suggestions=2)
    sql = "SELECT * FROM "

    assert len(service.suggest(sql, len(sql))) == 2


def test_lint_uses_metadata_for_unbracketed_names() -> None:
    service = _service()

    diagnostics = service.lint("SELECT * FROM Master Subscribers")

    assert any("[Master Subscribers]" in item.message for item in diagnostics)


def test_disabled_rules_are_skipped() -> None:
    service = _service(disabled_rules={"trailing-semicolon"})

    assert service.lint("SELECT a FROM [A];") == []
    service.set_disabled_rules(())
    assert [item.severity for item in service.lint("SELECT a FROM [A];")] == [DiagnosticSeverity.ERROR]


def test_analyze_includes_background_rules() -> None:
    service = _service()

    diagnostics = service.analyze("SELECT Region, COUNT(*) AS Total FROM [A]")

    assert any("Non-aggregated" in item.message for item in diagnostics)


def test_update_metadata_replaces_catalog() -> None:
    service = SqlIntelService(StaticMetadataProvider())
    service.update_metadata(
        [DataExtension(id="9", name="Fresh", customer_key="fresh", folder_id="s", fields=(DataExtensionField("Id"),))],
        [Folder(id="s", name="Shared")],
    )
    sql = "SELECT * FROM "

    suggestions = service.suggest(sql, len(sql))

    assert [entry.label for entry in suggestions] == ["ENT.[Fresh]"]


def test_update_metadata_leaves_the_previous_catalog_intact() -> None:
    service = _service()
    previous = service.metadata
    assert isinstance(previous, StaticMetadataProvider)
    before = tuple(previous.data_extensions())

    service.update_metadata([DataExtension(id="9", name="Fresh", customer_key="fresh")])

    assert service.metadata is not previous
    assert tuple(previous.data_extensions()) == before
    assert previous.find("Fresh") is None
    assert [item.name for item in service.metadata.data_extensions()] == ["Fresh"]


def test_format_delegates_to_formatter() -> None:
    service = _service()

    assert service.format("") == ""
    assert service.format("SELECT (1 FROM") == "SELECT (1 FROM"
