from datetime import date

import pytest

from fdm_app.gebruiksnormen.bedrijfsniveau import (
    aggregeer_normen, bereken_bedrijf, bereken_perceel, plaatsingsruimte,
)
from fdm_app.gebruiksnormen.opvulling import (
    dierlijke_mest_opvulling, fosfaat_opvulling, is_bouwland, stikstof_opvulling, werkingscoefficient,
)
from tests.conftest import teelt

DRIJFMEST = {"p_id_catalogue": "drijfmest", "p_type_rvo": "14", "p_n_rt": 4.0, "p_p_rt": 1.5}
VARKENSMEST = {"p_id_catalogue": "varkens", "p_type_rvo": "46", "p_n_rt": None, "p_p_rt": None}
KUNSTMEST = {"p_id_catalogue": "kas", "p_type_rvo": "115", "p_n_rt": 270, "p_p_rt": 0}
COMPOST = {"p_id_catalogue": "compost", "p_type_rvo": "111", "p_n_rt": 2.0, "p_p_rt": 1.0}
VASTE_MEST = {"p_id_catalogue": "vaste", "p_type_rvo": "10", "p_n_rt": 6.6, "p_p_rt": 3.8}


def bemesting(meststof, hoeveelheid, datum=date(2025, 3, 15), p_app_id=None):
    return {
        "p_app_id": p_app_id or f"app-{meststof['p_id_catalogue']}",
        "p_id_catalogue": meststof["p_id_catalogue"],
        "p_app_amount": hoeveelheid,
        "p_app_date": datum,
    }


GRAS = [teelt("nl_265", date(2020, 1, 1))]


# ---------------- Dierlijke mest ----------------

def test_dierlijke_mest_uit_gehalte():
    uit = dierlijke_mest_opvulling([bemesting(DRIJFMEST, 20000)], [DRIJFMEST])
    assert uit["normFilling"] == pytest.approx(80.0)
    assert uit["applicationFilling"] == [{"p_app_id": "app-drijfmest", "normFilling": pytest.approx(80.0)}]


def test_dierlijke_mest_forfaitair_gehalte():
    uit = dierlijke_mest_opvulling([bemesting(VARKENSMEST, 20000)], [VARKENSMEST])
    # 7.0 kg N/ton uit tabel 11
    assert uit["normFilling"] == pytest.approx(140.0)


def test_kunstmest_telt_niet_voor_dierlijke_mest():
    uit = dierlijke_mest_opvulling([bemesting(KUNSTMEST, 300)], [KUNSTMEST])
    assert uit["normFilling"] == 0


def test_dierlijke_mest_zonder_mestcode():
    meststof = dict(DRIJFMEST, p_type_rvo=None)
    with pytest.raises(ValueError, match="has no p_type_rvo"):
        dierlijke_mest_opvulling([bemesting(meststof, 1000)], [meststof])


def test_dierlijke_mest_onbekende_mestcode():
    meststof = dict(DRIJFMEST, p_type_rvo="999")
    with pytest.raises(ValueError, match="unknown p_type_rvo 999"):
        dierlijke_mest_opvulling([bemesting(meststof, 1000)], [meststof])


def test_onbekende_meststof():
    with pytest.raises(ValueError, match="Fertilizer drijfmest not found for application app-drijfmest"):
        dierlijke_mest_opvulling([bemesting(DRIJFMEST, 1000)], [])


# ---------------- Stikstof ----------------

def test_drijfmest_eigen_bedrijf_met_beweiding():
    uit = stikstof_opvulling([bemesting(DRIJFMEST, 20000)], [DRIJFMEST], GRAS, "zand_nwc", True)
    assert uit["normFilling"] == pytest.approx(36.0)
    assert uit["applicationFilling"][0]["normFillingDetails"] == (
        "Werkingscoëfficiënt: 45% - Drijfmest van graasdieren op het eigen bedrijf geproduceerd"
        " - Op bedrijf met beweiding"
    )


def test_drijfmest_zonder_beweiding_is_aangevoerd():
    uit = stikstof_opvulling([bemesting(DRIJFMEST, 20000)], [DRIJFMEST], GRAS, "zand_nwc", False)
    assert uit["normFilling"] == pytest.approx(48.0)


def test_kunstmest_telt_volledig():
    uit = stikstof_opvulling([bemesting(KUNSTMEST, 300)], [KUNSTMEST], GRAS, "klei", False)
    assert uit["normFilling"] == pytest.approx(81.0)


def test_vaste_mest_op_bouwland_in_najaar():
    teelten = [teelt("nl_233", date(2025, 10, 1), date(2026, 8, 1))]
    uit = stikstof_opvulling(
        [bemesting(VASTE_MEST, 10000, date(2025, 10, 10))], [VASTE_MEST], teelten, "klei", False,
    )
    assert uit["normFilling"] == pytest.approx(19.8)


def test_stikstof_gehalte_nul_valt_terug_op_tabel():
    meststof = dict(DRIJFMEST, p_n_rt=0)
    uit = stikstof_opvulling([bemesting(meststof, 20000)], [meststof], GRAS, "klei", False)
    assert uit["normFilling"] == pytest.approx(20000 * 4.0 * 0.6 / 1000)


def test_werkingscoefficient_varkensdrijfmest_per_regio():
    assert werkingscoefficient("46", "klei", False, True, date(2025, 4, 1), False)["p_n_wcl"] == 0.6
    assert werkingscoefficient("46", "zand_zuid", False, True, date(2025, 4, 1), False)["p_n_wcl"] == 0.8


def test_is_bouwland():
    teelten = [teelt("nl_259", date(2025, 4, 20), date(2025, 10, 1))]
    assert is_bouwland(teelten, date(2025, 6, 1))
    assert not is_bouwland(teelten, date(2025, 11, 1))
    assert not is_bouwland(GRAS, date(2025, 6, 1))


# ---------------- Fosfaat ----------------

def test_fosfaat_standaard():
    uit = fosfaat_opvulling([bemesting(DRIJFMEST, 20000)], [DRIJFMEST], False, 90)
    assert uit["normFilling"] == pytest.approx(30.0)


def test_compost_telt_voor_een_kwart():
    uit = fosfaat_opvulling([bemesting(COMPOST, 40000)], [COMPOST], False, 90)
    assert uit["normFilling"] == pytest.approx(10.0)


def test_compost_boven_de_norm_telt_volledig():
    uit = fosfaat_opvulling([bemesting(COMPOST, 40000)], [COMPOST], False, 20)
    # 20 kg met 25%, de overige 20 kg voor 100%
    assert uit["normFilling"] == pytest.approx(25.0)
    assert "boven de kortingslimiet" in uit["applicationFilling"][0]["normFillingDetails"]


def test_compost_onder_drempel_telt_volledig():
    uit = fosfaat_opvulling([bemesting(COMPOST, 10000)], [COMPOST], False, 90)
    assert uit["normFilling"] == pytest.approx(10.0)
    assert "minimumdrempel niet gehaald" in uit["applicationFilling"][0]["normFillingDetails"]


def test_biologische_varkensmest_telt_driekwart():
    meststof = {"p_id_catalogue": "bio-varkens", "p_type_rvo": "40", "p_p_rt": 7.5}
    bemestingen = [bemesting(meststof, 4000)]
    assert fosfaat_opvulling(bemestingen, [meststof], True, 90)["normFilling"] == pytest.approx(22.5)
    assert fosfaat_opvulling(bemestingen, [meststof], False, 90)["normFilling"] == pytest.approx(30.0)


def test_fosfaat_volgorde_per_bemesting_blijft_behouden():
    bemestingen = [bemesting(COMPOST, 40000), bemesting(DRIJFMEST, 20000)]
    uit = fosfaat_opvulling(bemestingen, [COMPOST, DRIJFMEST], False, 90)
    assert [a["p_app_id"] for a in uit["applicationFilling"]] == ["app-compost", "app-drijfmest"]



def test_fosfaat_onbekende_meststof_telt_als_nul():
    onbekend_type = dict(DRIJFMEST, p_id_catalogue="onbekend", p_type_rvo="999", p_p_rt=None)
    bemestingen = [bemesting(onbekend_type, 10000), bemesting(DRIJFMEST, 20000)]
    uit = fosfaat_opvulling(bemestingen, [onbekend_type], False, 90)
    assert uit["normFilling"] == 0
    assert [a["normFilling"] for a in uit["applicationFilling"]] == [0, 0]

# ---------------- Bedrijfsniveau ----------------

def _perceelresultaat(b_area, manure, nitrogen, phosphate):
    return {
        "b_area": b_area,
        "norms": {
            "manure": {"normValue": manure},
            "nitrogen": {"normValue": nitrogen},
            "phosphate": {"normValue": phosphate},
        },
    }


def test_aggregeer_normen_naar_kg():
    percelen = [_perceelresultaat(10.0, 170, 250, 90), _perceelresultaat(2.5, 170, 140, 80)]
    assert aggregeer_normen(percelen) == {"manure": 2125, "nitrogen": 2850, "phosphate": 1100}


def test_ruimte_dierlijke_mest_begrensd_door_stikstof():
    ruimte = plaatsingsruimte(
        {"manure": 1700, "nitrogen": 1000, "phosphate": 900},
        {"manure": 200, "nitrogen": 400, "phosphate": 1000},
    )
    assert ruimte["manure"]["room"] == 600
    assert ruimte["nitrogen"] == {"norm": 1000, "filling": 400, "room": 600, "surplus": 0}
    assert ruimte["phosphate"] == {"norm": 900, "filling": 1000, "room": 0, "surplus": 100}


def test_bereken_perceel(normeninvoer):
    normeninvoer["bemestingen"] = [bemesting(DRIJFMEST, 20000)]
    normeninvoer["meststoffen"] = [DRIJFMEST]
    uit = bereken_perceel(normeninvoer)
    assert uit["b_id"] == "perceel-1"
    assert uit["norms"]["nitrogen"]["normValue"] == 250
    assert uit["normsFilling"]["manure"]["normFilling"] == pytest.approx(80.0)
    assert uit["normsFilling"]["nitrogen"]["normFilling"] == pytest.approx(36.0)


def test_bedrijf_slaat_foute_percelen_over(normeninvoer):
    fout = {**normeninvoer, "perceel": dict(normeninvoer["perceel"], b_id="perceel-2"), "bodem": {}}
    uit = bereken_bedrijf([normeninvoer, fout])
    assert [p["b_id"] for p in uit["fields"]] == ["perceel-1"]
    assert uit["errors"][0]["b_id"] == "perceel-2"
    assert "Missing soil analysis data" in uit["errors"][0]["message"]
    assert uit["farm"]["norms"] == {"manure": 1700, "nitrogen": 2500, "phosphate": 900}
    assert uit["farm"]["room"]["manure"]["room"] == 1700
