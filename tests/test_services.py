import json
from datetime import date

import pytest
import requests
from werkzeug.datastructures import MultiDict

from fdm_app.balans.doseringen import bereken_dosering
from fdm_app.grondmonsters.conversies import (
    bereken_cn_ratio, bereken_dichtheid, bereken_organische_koolstof, bereken_organische_stof,
)
from fdm_app.models.formulier import naar_json, parse_datum, parse_tijdvak, safe_float, safe_int
from fdm_app.percelen.geometrie import bereken_centroid, bereken_oppervlakte_ha, lees_geometrie
from fdm_app.services import gebieden, nmi_advies
from fdm_app.services.pdok_gewaspercelen import parse_brp_features
from fdm_app.services.rvo_grondsoorten import map_grondsoort_naar_regio

POLYGOON = {
    "type": "Polygon",
    "coordinates": [[[5.0, 52.0], [5.01, 52.0], [5.01, 52.01], [5.0, 52.01], [5.0, 52.0]]],
}


class FakeResponse:
    def __init__(self, status_code=200, data=None, reason="OK"):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = reason
        self._data = data or {}

    def json(self):
        return self._data


class FakeSession:
    def __init__(self, response=None, fout=None):
        self.response = response
        self.fout = fout
        self.calls = []

    def _antwoord(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.fout:
            raise self.fout
        return self.response

    def post(self, url, **kwargs):
        return self._antwoord("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._antwoord("GET", url, **kwargs)


# ---------------- Formulier ----------------

def test_safe_float_en_int():
    assert safe_float("12,5") == 12.5
    assert safe_float("", 0) == 0
    assert safe_float("abc") is None
    assert safe_int("2025.0") == 2025
    assert safe_int(None, 7) == 7


def test_parse_datum():
    assert parse_datum("2025-03-01") == date(2025, 3, 1)
    assert parse_datum("01-03-2025") == date(2025, 3, 1)
    assert parse_datum("") is None
    with pytest.raises(ValueError, match="Ongeldige datum"):
        parse_datum("morgen")


def test_parse_tijdvak():
    assert parse_tijdvak(MultiDict({"jaar": "2024"})) == (date(2024, 1, 1), date(2024, 12, 31))
    assert parse_tijdvak(MultiDict({"start": "2024-03-01"})) == (date(2024, 3, 1), None)
    with pytest.raises(ValueError, match="Einddatum ligt voor de startdatum"):
        parse_tijdvak(MultiDict({"start": "2024-03-01", "end": "2024-02-01"}))


def test_naar_json_zet_datums_om():
    assert naar_json({"d": date(2025, 1, 2), "l": [(1, date(2025, 1, 3))]}) == {
        "d": "2025-01-02", "l": [[1, "2025-01-03"]],
    }


# ---------------- Conversies ----------------

def test_conversies_organische_stof():
    assert bereken_organische_koolstof(4.0) == pytest.approx(20.0)
    assert bereken_organische_stof(20.0) == pytest.approx(4.0)
    assert bereken_organische_koolstof(None) is None


def test_cn_ratio_begrensd():
    assert bereken_cn_ratio(20.0, 2000) == pytest.approx(10.0)
    assert bereken_cn_ratio(20.0, 100) == 40
    assert bereken_cn_ratio(None, 2000) is None


def test_dichtheid_zand_en_klei():
    assert bereken_dichtheid(3.0, "dekzand") == pytest.approx(1 / (3.0 * 0.02525 + 0.6541))
    assert 0.5 <= bereken_dichtheid(3.0, "zeeklei") <= 3
    assert bereken_dichtheid(3.0, None) is None


# ---------------- Doseringen ----------------

def test_dosering_uit_meststoffen():
    meststoffen = [{"p_id_catalogue": "drijfmest", "p_n_rt": 4.0, "p_p_rt": 1.5, "p_n_wc": 0.6, "p_zn_rt": 20}]
    bemestingen = [
        {"p_app_id": "a", "p_id_catalogue": "drijfmest", "p_app_amount": 20000},
        {"p_app_id": "b", "p_id_catalogue": "drijfmest", "p_app_amount": 10000},
    ]
    uit = bereken_dosering(bemestingen, meststoffen)
    assert uit["dose"]["p_dose_n"] == pytest.approx(120.0)
    assert uit["dose"]["p_dose_nw"] == pytest.approx(72.0)
    assert uit["dose"]["p_dose_p"] == pytest.approx(45.0)
    assert uit["dose"]["p_dose_zn"] == pytest.approx(0.6)
    assert [a["p_app_id"] for a in uit["applications"]] == ["a", "b"]


def test_dosering_zonder_werkingscoefficient_telt_volledig():
    uit = bereken_dosering([{"p_app_id": "a", "p_app_amount": 100, "p_n_rt": 270}])
    assert uit["dose"]["p_dose_nw"] == pytest.approx(27.0)


def test_dosering_negatieve_hoeveelheid():
    with pytest.raises(ValueError, match="non-negative"):
        bereken_dosering([{"p_app_id": "a", "p_app_amount": -1, "p_n_rt": 4}])


def test_dosering_onbekende_meststof():
    with pytest.raises(ValueError, match="Fertilizer x not found for application a"):
        bereken_dosering([{"p_app_id": "a", "p_id_catalogue": "x", "p_app_amount": 1}], [])


# ---------------- Geometrie ----------------

def test_lees_geometrie_accepteert_feature_en_string():
    assert lees_geometrie({"type": "Feature", "geometry": POLYGOON}) == POLYGOON
    assert lees_geometrie(json.dumps(POLYGOON)) == POLYGOON


def test_lees_geometrie_weigert_punt():
    with pytest.raises(ValueError, match="Polygon"):
        lees_geometrie({"type": "Point", "coordinates": [5.0, 52.0]})


def test_oppervlakte_en_centroid():
    # ca. 685 m x 1113 m
    assert 70 < bereken_oppervlakte_ha(POLYGOON) < 80
    assert bereken_centroid(POLYGOON) == [5.005, 52.005]


# ---------------- Gebieden ----------------

def test_ligging_in_gebieden(tmp_path):
    gebieden.leeg_cache()
    fc = {"type": "FeatureCollection", "features": [{"type": "Feature", "geometry": POLYGOON, "properties": {}}]}
    (tmp_path / "nv_gebieden.geojson").write_text(json.dumps(fc), encoding="utf-8")

    vlaggen = gebieden.bepaal_gebiedsvlaggen(5.005, 52.005, tmp_path)
    assert vlaggen == {
        "nv_gebied": True,
        "grondwaterbeschermingsgebied": False,
        "natura2000": False,
        "derogatievrije_zone": False,
    }
    assert not gebieden.ligt_in_gebied("nv_gebied", 6.0, 52.5, tmp_path)
    gebieden.leeg_cache()


def test_onbekende_gebiedslaag(tmp_path):
    with pytest.raises(ValueError, match="Onbekende gebiedslaag"):
        gebieden.ligt_in_gebied("maan", 5.0, 52.0, tmp_path)


# ---------------- RVO regio ----------------

@pytest.mark.parametrize("hoofdgrondsoort, zuid, regio", [
    ("Löss", False, "loess"),
    ("Veen", False, "veen"),
    ("Zavel", False, "klei"),
    ("Zand", False, "zand_nwc"),
    ("Zand", True, "zand_zuid"),
    ("", False, None),
])
def test_grondsoort_naar_regio(hoofdgrondsoort, zuid, regio):
    assert map_grondsoort_naar_regio(hoofdgrondsoort, zuid) == regio


# ---------------- PDOK ----------------

def test_parse_brp_features_slaat_multipolygon_over():
    fc = {"features": [
        {"id": "brp-1", "geometry": POLYGOON, "properties": {"gewascode": 265, "gewas": "Grasland, blijvend"}},
        {"id": "brp-2", "geometry": {"type": "MultiPolygon", "coordinates": []}, "properties": {}},
    ]}
    percelen = parse_brp_features(fc)
    assert len(percelen) == 1
    assert percelen[0]["b_id_source"] == "brp-1"
    assert percelen[0]["b_lu_catalogue"] == "nl_265"
    assert percelen[0]["b_centroid"] == [5.005, 52.005]


# ---------------- NMI ----------------

BODEMDATA = [
    {"parameter": "a_p_al", "value": 40},
    {"parameter": "a_nmin_cc", "value": 12, "a_depth_lower": 30},
    {"parameter": "a_nmin_cc", "value": 8, "a_depth_lower": 60},
]


def test_advies_verzoek():
    body = nmi_advies.advies_verzoek("nl_265", [5.0, 52.0], BODEMDATA)
    assert body == {
        "a_lon": 5.0, "a_lat": 52.0, "b_lu_brp": ["265"],
        "a_nmin_cc_d30": 12, "a_nmin_cc_d60": 8, "a_p_al": 40,
    }


def test_brp_code_ongeldig():
    with pytest.raises(ValueError, match="Invalid b_lu_catalogue"):
        nmi_advies.brp_code("")


def test_bemestingsadvies(monkeypatch):
    sessie = FakeSession(FakeResponse(data={"data": {"year": {"d_n_req": 250}}}))
    monkeypatch.setattr(nmi_advies, "_session", lambda: sessie)

    assert nmi_advies.vraag_bemestingsadvies("nl_265", [5.0, 52.0], BODEMDATA, "sleutel") == {"d_n_req": 250}
    methode, url, kwargs = sessie.calls[0]
    assert methode == "POST"
    assert url.endswith("/bemestingsplan/nutrients")
    assert kwargs["headers"]["Authorization"] == "Bearer sleutel"


def test_bemestingsadvies_zonder_sleutel():
    with pytest.raises(ValueError, match="NMI API key not provided"):
        nmi_advies.vraag_bemestingsadvies("nl_265", [5.0, 52.0], [], None)


def test_bemestingsadvies_api_fout(monkeypatch):
    monkeypatch.setattr(nmi_advies, "_session", lambda: FakeSession(FakeResponse(500, reason="Server Error")))
    with pytest.raises(RuntimeError, match="status 500"):
        nmi_advies.vraag_bemestingsadvies("nl_265", [5.0, 52.0], [], "sleutel")


def test_bemestingsadvies_niet_bereikbaar(monkeypatch):
    monkeypatch.setattr(nmi_advies, "_session", lambda: FakeSession(fout=requests.ConnectionError("weg")))
    with pytest.raises(RuntimeError, match="Request to NMI API failed"):
        nmi_advies.vraag_bemestingsadvies("nl_265", [5.0, 52.0], [], "sleutel")


def test_bodemschatting(monkeypatch):
    sessie = FakeSession(FakeResponse(data={"data": {"a_clay_mi": 12.0}}))
    monkeypatch.setattr(nmi_advies, "_session", lambda: sessie)

    uit = nmi_advies.haal_bodemschatting(POLYGOON, "sleutel")
    assert uit == {"a_clay_mi": 12.0, "a_source": "nl-other-nmi", "a_depth_upper": 0}
    assert sessie.calls[0][2]["params"] == {"a_lat": 52.005, "a_lon": 5.005}
