from datetime import date

import pytest

from fdm_app.gebruiksnormen.bereken_gebruiksnormen import (
    afronden, bepaal_fosfaatklasse, bepaal_hoofdteelt, bereken_dierlijke_mest_norm,
    bereken_fosfaatnorm, bereken_gebruiksnormen, bereken_korting, bereken_stikstofnorm,
)
from fdm_app.gebruiksnormen.tabellen import beste_jaar, STIKSTOFNORMEN
from tests.conftest import teelt


def _akker(normeninvoer, teelten, regio="zand_nwc", jaar=2025, derogatie=False):
    normeninvoer["jaar"] = jaar
    normeninvoer["perceel"]["b_region"] = regio
    normeninvoer["bedrijf"]["is_derogatie_bedrijf"] = derogatie
    normeninvoer["teelten"] = teelten
    return normeninvoer


# ---------------- Afronden en hoofdteelt ----------------

def test_afronden_is_half_up():
    assert afronden(2.5) == 3
    assert afronden(0.125, 2) == 0.13
    assert afronden(-2.5) == -3


def test_hoofdteelt_is_langste_teelt_in_venster():
    teelten = [
        teelt("nl_256", date(2025, 3, 1), date(2025, 6, 1)),
        teelt("nl_259", date(2025, 6, 2), date(2025, 10, 1)),
    ]
    assert bepaal_hoofdteelt(teelten, 2025) == "nl_259"


def test_hoofdteelt_zonder_teelt_is_groene_braak():
    assert bepaal_hoofdteelt([], 2025) == "nl_6794"


def test_beste_jaar_valt_terug_op_eerder_jaar():
    assert beste_jaar(STIKSTOFNORMEN, 2027) == 2025
    with pytest.raises(ValueError):
        beste_jaar(STIKSTOFNORMEN, 2019)


# ---------------- Stikstof ----------------

def test_grasland_beweiden_op_zand(normeninvoer):
    assert bereken_stikstofnorm(normeninvoer) == {"normValue": 250, "normSource": "Grasland (beweiden)."}


def test_grasland_beweiden_op_klei(normeninvoer):
    normeninvoer["perceel"]["b_region"] = "klei"
    assert bereken_stikstofnorm(normeninvoer) == {"normValue": 345, "normSource": "Grasland (beweiden)."}


def test_grasland_volledig_maaien(normeninvoer):
    normeninvoer["perceel"]["b_region"] = "klei"
    normeninvoer["bedrijf"]["has_grazing_intention"] = False
    norm = bereken_stikstofnorm(normeninvoer)
    assert norm["normValue"] == 385
    assert norm["normSource"] == "Grasland (volledig maaien)."


def test_nv_gebied_geeft_lagere_norm(normeninvoer):
    normeninvoer["perceel"]["b_region"] = "klei"
    normeninvoer["perceel"]["b_in_nv"] = True
    # 345 * 0.8 = 276
    assert bereken_stikstofnorm(normeninvoer)["normValue"] == 276


def test_mais_derogatie_met_vroeg_vanggewas(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_3523", date(2024, 9, 15), date(2025, 3, 1)),
        teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1)),
    ], derogatie=True)
    assert bereken_stikstofnorm(invoer) == {
        "normValue": 150,
        "normSource": "Akkerbouwgewassen, mais (derogatie). Geen korting: vanggewas gezaaid uiterlijk 1 oktober",
    }


def test_mais_na_2025_altijd_zonder_derogatie(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_3523", date(2025, 9, 15), date(2026, 3, 1)),
        teelt("nl_259", date(2026, 4, 20), date(2026, 10, 1)),
    ], jaar=2026, derogatie=True)
    norm = bereken_stikstofnorm(invoer)
    assert norm["normValue"] == 140
    assert norm["normSource"].startswith("Akkerbouwgewassen, mais (non-derogatie)")


@pytest.mark.parametrize("zaaidatum, korting", [
    (date(2024, 10, 1), 0),
    (date(2024, 10, 2), 5),
    (date(2024, 10, 14), 5),
    (date(2024, 10, 15), 5),
    (date(2024, 10, 16), 10),
    (date(2024, 10, 31), 10),
    (date(2024, 11, 1), 20),
])
def test_korting_naar_zaaidatum_vanggewas(zaaidatum, korting):
    teelten = [
        teelt("nl_3523", zaaidatum, date(2025, 3, 1)),
        teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1)),
    ]
    assert bereken_korting(teelten, "zand_nwc", 2025)[0] == korting


def test_korting_zonder_vanggewas(normeninvoer):
    invoer = _akker(normeninvoer, [teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1))])
    norm = bereken_stikstofnorm(invoer)
    assert norm["normValue"] == 140 - 20
    assert norm["normSource"].endswith("Korting: 20kg N/ha: geen vanggewas of winterteelt")


def test_korting_als_vanggewas_voor_februari_stopt():
    teelten = [
        teelt("nl_3523", date(2024, 9, 1), date(2025, 1, 15)),
        teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1)),
    ]
    assert bereken_korting(teelten, "loess", 2025) == (
        20, ". Korting: 20kg N/ha: vanggewas staat niet tot 1 februari"
    )


def test_geen_korting_op_klei():
    teelten = [teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1))]
    assert bereken_korting(teelten, "klei", 2025) == (0, ".")


def test_geen_korting_op_grasland_zand_2025(normeninvoer):
    # Blijvend grasland is geen bouwland: ook in 2025 geen korting op zand
    assert bereken_korting(normeninvoer["teelten"], "zand_nwc", 2025) == (0, ".")
    normeninvoer["perceel"]["b_in_nv"] = True
    assert bereken_stikstofnorm(normeninvoer) == {"normValue": 200, "normSource": "Grasland (beweiden)."}


def test_wintertarwe_op_zand(normeninvoer):
    invoer = _akker(normeninvoer, [teelt("nl_233", date(2024, 10, 20), date(2025, 8, 1))])
    assert bereken_stikstofnorm(invoer) == {
        "normValue": 160,
        "normSource": "Akkerbouwgewassen, Wintertarwe. Geen korting: winterteelt aanwezig",
    }


def test_suikerbieten_op_klei(normeninvoer):
    invoer = _akker(normeninvoer, [teelt("nl_256", date(2025, 3, 20), date(2025, 10, 20))], regio="klei")
    assert bereken_stikstofnorm(invoer) == {"normValue": 150, "normSource": "Akkerbouwgewassen, Suikerbieten."}


@pytest.mark.parametrize("ras, norm, omschrijving", [
    ("agria", 230, "lage norm"),
    ("Fontane", 275, "hoge norm"),
    ("Onbekend ras", 250, "overig"),
    (None, 250, "overig"),
])
def test_consumptieaardappel_naar_ras(normeninvoer, ras, norm, omschrijving):
    invoer = _akker(normeninvoer, [
        teelt("nl_2014", date(2025, 4, 1), date(2025, 9, 15), b_lu_variety=ras),
    ], regio="klei")
    uitkomst = bereken_stikstofnorm(invoer)
    assert uitkomst["normValue"] == norm
    assert f"({omschrijving})" in uitkomst["normSource"]


def test_luzerne_eerste_en_volgende_jaren(normeninvoer):
    invoer = _akker(normeninvoer, [teelt("nl_258", date(2025, 3, 1))], regio="klei")
    assert bereken_stikstofnorm(invoer)["normValue"] == 60

    invoer["teelten"] = [teelt("nl_258", date(2024, 3, 1))]
    uitkomst = bereken_stikstofnorm(invoer)
    assert uitkomst["normValue"] == 0
    assert "(volgende jaren)" in uitkomst["normSource"]


@pytest.mark.parametrize("start, eind, norm", [
    (date(2025, 1, 1), date(2025, 5, 20), 110),
    (date(2025, 1, 1), date(2025, 8, 20), 250),
    (date(2025, 4, 20), date(2025, 10, 20), 310),
])
def test_tijdelijk_grasland_naar_periode(normeninvoer, start, eind, norm):
    invoer = _akker(normeninvoer, [teelt("nl_266", start, eind)], regio="klei")
    assert bereken_stikstofnorm(invoer)["normValue"] == norm


def test_groene_braak_zonder_teelt(normeninvoer):
    invoer = _akker(normeninvoer, [], regio="klei")
    assert bereken_stikstofnorm(invoer) == {"normValue": 0, "normSource": "Groene braak, spontane opkomst."}


def test_onbekend_gewas(normeninvoer):
    invoer = _akker(normeninvoer, [teelt("nl_9999", date(2025, 3, 1), date(2025, 9, 1))])
    with pytest.raises(ValueError, match="No matching nitrogen standard found for b_lu_catalogue nl_9999"):
        bereken_stikstofnorm(invoer)


def test_onbekende_regio(normeninvoer):
    normeninvoer["perceel"]["b_region"] = "maanstof"
    with pytest.raises(ValueError, match="Unknown region maanstof"):
        bereken_stikstofnorm(normeninvoer)


# ---------------- Graslandvernieuwing en -vernietiging ----------------

def test_graslandvernieuwing_in_zomer(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_265", date(2020, 1, 1), date(2026, 7, 1)),
        teelt("nl_265", date(2026, 7, 2)),
    ], jaar=2026)
    assert bereken_stikstofnorm(invoer) == {
        "normValue": 200,
        "normSource": "Grasland (beweiden). Korting: 50kg N/ha: graslandvernieuwing",
    }


def test_graslandvernieuwing_buiten_periode(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_265", date(2020, 1, 1), date(2026, 3, 1)),
        teelt("nl_265", date(2026, 3, 2)),
    ], jaar=2026)
    with pytest.raises(ValueError, match="Graslandvernieuwing"):
        bereken_stikstofnorm(invoer)


def test_graslandvernieuwing_telt_pas_vanaf_2026(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_265", date(2020, 1, 1), date(2025, 3, 1)),
        teelt("nl_265", date(2025, 3, 2)),
    ])
    assert bereken_stikstofnorm(invoer)["normValue"] == 250


def test_graslandvernietiging_voor_mais(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_265", date(2020, 1, 1), date(2026, 4, 1)),
        teelt("nl_259", date(2026, 4, 20), date(2026, 10, 1)),
    ], jaar=2026)
    assert bereken_stikstofnorm(invoer) == {
        "normValue": 140 - 65,
        "normSource": "Akkerbouwgewassen, mais (non-derogatie). Korting: 65kg N/ha: graslandvernietiging",
    }


def test_graslandvernietiging_te_laat(normeninvoer):
    invoer = _akker(normeninvoer, [
        teelt("nl_265", date(2020, 1, 1), date(2026, 6, 1)),
        teelt("nl_259", date(2026, 6, 5), date(2026, 10, 1)),
    ], jaar=2026)
    with pytest.raises(ValueError, match="Graslandvernietiging"):
        bereken_stikstofnorm(invoer)


# ---------------- Fosfaat ----------------

def test_fosfaatnorm_grasland(normeninvoer):
    assert bereken_fosfaatnorm(normeninvoer) == {"normValue": 90, "normSource": "Grasland: Ruim"}


def test_fosfaatnorm_bouwland(normeninvoer):
    invoer = _akker(normeninvoer, [teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1))])
    assert bereken_fosfaatnorm(invoer) == {"normValue": 80, "normSource": "Bouwland: Laag"}


@pytest.mark.parametrize("a_p_cc, a_p_al, grasland, klasse", [
    (0.5, 10, True, "Arm"),
    (1.0, 50, True, "Ruim"),
    (5.0, 60, True, "Hoog"),
    (0.5, 50, False, "Laag"),
    (5.0, 50, False, "Ruim"),
    (3.0, 15, False, "Arm"),
])
def test_fosfaatklasse(a_p_cc, a_p_al, grasland, klasse):
    assert bepaal_fosfaatklasse(a_p_cc, a_p_al, grasland) == klasse


def test_fosfaatnorm_zonder_grondmonster(normeninvoer):
    normeninvoer["bodem"] = {"a_p_al": 40}
    with pytest.raises(ValueError, match="Missing soil analysis data"):
        bereken_fosfaatnorm(normeninvoer)


# ---------------- Dierlijke mest ----------------

def test_dierlijke_mest_zonder_derogatie(normeninvoer):
    assert bereken_dierlijke_mest_norm(normeninvoer) == {
        "normValue": 170, "normSource": "Standaard - geen derogatie",
    }


@pytest.mark.parametrize("kenmerk, norm, bron", [
    (None, 200, "Derogatie"),
    ("b_in_nv", 190, "Derogatie - NV Gebied"),
    ("b_in_natura2000", 170, "Derogatie - Natura2000 Gebied"),
    ("b_in_gwbg", 170, "Derogatie - Grondwaterbeschermingsgebied"),
    ("b_in_derogatievrije_zone", 170, "Derogatie - Derogatie-vrije zone"),
])
def test_dierlijke_mest_met_derogatie(normeninvoer, kenmerk, norm, bron):
    normeninvoer["bedrijf"]["is_derogatie_bedrijf"] = True
    if kenmerk:
        normeninvoer["perceel"][kenmerk] = True
    assert bereken_dierlijke_mest_norm(normeninvoer) == {"normValue": norm, "normSource": bron}


def test_bufferstrook_heeft_geen_plaatsingsruimte(normeninvoer):
    normeninvoer["perceel"]["b_bufferstrip"] = True
    normen = bereken_gebruiksnormen(normeninvoer)
    assert {soort: n["normValue"] for soort, n in normen.items()} == {
        "manure": 0, "nitrogen": 0, "phosphate": 0,
    }
