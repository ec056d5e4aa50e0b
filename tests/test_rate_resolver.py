from datetime import date

import pytest

from tariffario.domain.models import (
    AmbiguousTariffMatch,
    NoTariffFound,
    Tariff,
    TariffFound,
    TariffKey,
    UnitaMisura,
)
from tariffario.domain.rate_resolver import MISSING_TARIFF_REASON, is_valid_on, resolve_tariff


def make_tariff(**kwargs) -> Tariff:
    base = dict(
        id="T1",
        client_id="C1",
        service_type="Piantonamento",
        client_rate=18.5,
        supplier_rate=15.0,
        unita_misura=UnitaMisura.ORA,
        service_point_id="P1",
        fornitore_id=None,
    )
    base.update(kwargs)
    return Tariff(**base)


KEY = TariffKey(client_id="C1", service_type="Piantonamento", service_point_id="P1")


def test_single_match_found():
    tariff = make_tariff()

    out = resolve_tariff([tariff], KEY, date(2025, 3, 1))

    assert isinstance(out, TariffFound)
    assert out.tariff is tariff


def test_service_type_whitespace_is_normalized():
    tariff = make_tariff(service_type="Servizi  Fiduciari ")
    key = TariffKey(client_id="C1", service_type="Servizi Fiduciari", service_point_id="P1")

    assert isinstance(resolve_tariff([tariff], key, date(2025, 3, 1)), TariffFound)


def test_tariff_without_point_does_not_match_key_with_point():
    tariff = make_tariff(service_point_id=None)

    out = resolve_tariff([tariff], KEY, date(2025, 3, 1), end_date=date(2025, 3, 31), service_id="RS-9")

    assert isinstance(out, NoTariffFound)
    assert out.reason == MISSING_TARIFF_REASON
    assert out.service_point_id == "P1"
    assert out.start_date == date(2025, 3, 1)
    assert out.end_date == date(2025, 3, 31)
    assert out.service_id == "RS-9"


def test_empty_fields_match_only_empty_fields():
    tariff = make_tariff(service_point_id=None, fornitore_id=None)
    key = TariffKey(client_id="C1", service_type="Piantonamento", service_point_id=None)

    assert isinstance(resolve_tariff([tariff], key, date(2025, 3, 1)), TariffFound)


def test_fornitore_must_match_exactly():
    tariff = make_tariff(fornitore_id="F1")
    key = TariffKey(client_id="C1", service_type="Piantonamento", service_point_id="P1", fornitore_id="F2")

    assert isinstance(resolve_tariff([tariff], key, date(2025, 3, 1)), NoTariffFound)


def test_other_client_does_not_match():
    tariff = make_tariff(client_id="C2")

    assert isinstance(resolve_tariff([tariff], KEY, date(2025, 3, 1)), NoTariffFound)


@pytest.mark.parametrize(
    "as_of, expected",
    [
        (date(2024, 12, 31), False),
        (date(2025, 1, 1), True),
        (date(2025, 1, 31), True),
        (date(2025, 2, 1), False),
    ],
)
def test_validity_start_inclusive_end_exclusive(as_of, expected):
    tariff = make_tariff(valid_from=date(2025, 1, 1), valid_to=date(2025, 2, 1))

    assert is_valid_on(tariff, as_of) is expected


def test_open_validity_bounds():
    tariff = make_tariff(valid_from=None, valid_to=None)

    assert is_valid_on(tariff, date(1990, 1, 1))
    assert is_valid_on(tariff, date(2100, 1, 1))


def test_consecutive_tariffs_resolve_without_ambiguity():
    old = make_tariff(id="old", valid_from=date(2024, 1, 1), valid_to=date(2025, 1, 1))
    new = make_tariff(id="new", valid_from=date(2025, 1, 1), client_rate=20.0)

    out = resolve_tariff([old, new], KEY, date(2025, 1, 1))

    assert isinstance(out, TariffFound)
    assert out.tariff.id == "new"


def test_overlapping_tariffs_are_ambiguous_latest_wins():
    older = make_tariff(id="a", valid_from=date(2024, 1, 1))
    newer = make_tariff(id="b", valid_from=date(2025, 1, 1), client_rate=20.0)

    out = resolve_tariff([older, newer], KEY, date(2025, 6, 1))

    assert isinstance(out, AmbiguousTariffMatch)
    assert out.chosen.id == "b"
    assert [t.id for t in out.candidates] == ["b", "a"]
    assert out.result is None


def test_ambiguous_choice_is_stable_on_same_valid_from():
    t1 = make_tariff(id="1", valid_from=date(2025, 1, 1))
    t2 = make_tariff(id="2", valid_from=date(2025, 1, 1))

    first = resolve_tariff([t1, t2], KEY, date(2025, 6, 1))
    second = resolve_tariff([t2, t1], KEY, date(2025, 6, 1))

    assert first.chosen.id == second.chosen.id == "2"


def test_missing_client_gives_no_tariff():
    key = TariffKey(client_id="", service_type="Piantonamento", service_point_id="P1")

    out = resolve_tariff([make_tariff()], key, date(2025, 3, 1))

    assert isinstance(out, NoTariffFound)
    assert "Cliente" in out.reason
