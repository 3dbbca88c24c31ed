"""Tests for country/sector reference data."""
from conftest import COUNTRY_DEFS, FakeResponse


def test_country_definitions_cached(service, session):
    first = service.get_country_definitions()
    second = service.get_country_definitions()
    assert first == COUNTRY_DEFS
    assert second is first
    assert session.count("definitions/countries") == 1


def test_sector_and_continent_definitions(service, session):
    assert [s["name"] for s in service.get_sector_definitions()] == ["power", "manufacturing", "transportation"]
    assert len(service.get_continent_definitions()) == 2
    assert session.count("definitions/sectors") == 1


def test_definitions_refetched_after_window(service, session, clock):
    service.get_country_definitions()
    clock.advance(1801)
    service.get_country_definitions()
    assert session.count("definitions/countries") == 2


def test_last_known_good_on_failure(service, session, clock):
    service.get_country_definitions()
    session.routes["definitions/countries"] = FakeResponse(status_code=503)
    clock.advance(1801)
    assert service.get_country_definitions() == COUNTRY_DEFS
    assert session.count("definitions/countries") == 2


def test_empty_list_when_never_loaded(down_service):
    assert down_service.get_country_definitions() == []
    assert down_service.get_sector_definitions() == []


def test_network_error_degrades_to_empty(service, session):
    import requests
    session.routes["definitions/sectors"] = requests.ConnectionError("refused")
    assert service.get_sector_definitions() == []


def test_initialize_country_names_fetches_once(service, session):
    service.initialize_country_names()
    service.initialize_country_names()
    service.get_country_emissions({"since": 2023, "to": 2023})
    assert service.registry.country_name("DEU") == "Germany"
    assert service.registry.names_loaded
    assert session.count("definitions/countries") == 1


def test_country_names_fall_back_to_codes(down_service):
    down_service.initialize_country_names()
    assert down_service.registry.country_name("CHN") == "CHN"


def test_country_codes_and_continents(service):
    registry = service.registry
    assert registry.country_codes() == ["CHN", "USA", "IND", "DEU", "BRA", "XKX"]
    continents = registry.continent_map()
    assert continents["IND"] == "Asia"
    assert "XKX" not in continents


def test_malformed_definition_rows_ignored(service, session):
    session.routes["definitions/countries"] = [
        None,
        {"alpha3": "CHN", "name": "China", "continent": "Asia"},
        {"alpha3": "ABC", "name": None, "continent": {"name": "Asia"}},
        {"alpha3": 42, "name": "Answer", "continent": "Europe"},
    ]
    registry = service.registry
    assert registry.country_codes() == ["CHN", "ABC"]
    assert registry.continent_map() == {"CHN": "Asia"}
    registry.initialize_country_names()
    assert registry.country_name("CHN") == "China"
    assert registry.country_name("ABC") == "ABC"
