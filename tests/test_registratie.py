from datetime import date

import pytest

from fdm_app.bedrijven.bedrijfsstatus import (
    is_geldig_skal_nummer, is_geldig_traces_nummer, voeg_bio_certificering_toe, voeg_derogatie_toe,
)
from fdm_app.grondmonsters.bodemdata import (
    bodemwaarden, combineer_bodemdata, controleer_grondmonster, schatting_naar_grondmonster,
)
from fdm_app.teelten.teeltplan import (
    bereken_standaard_datums, controleer_catalogus_item, controleer_oogstdatum, controleer_teeltdatums,
    upsert_catalogus_item,
)
from tests.conftest import FakeCursor


# ---------------- Teelten en oogsten ----------------

def test_standaard_datums():
    item = {"b_lu_start_default": "04-01", "b_date_harvest_default": "10-15", "b_lu_harvestable": "once"}
    assert bereken_standaard_datums(item, 2025) == (date(2025, 4, 1), date(2025, 10, 15))


def test_standaard_datums_zaai_in_vorig_jaar():
    item = {"b_lu_start_default": "10-15", "b_date_harvest_default": "08-01", "b_lu_harvestable": "once"}
    assert bereken_standaard_datums(item, 2025) == (date(2024, 10, 15), date(2025, 8, 1))


def test_standaard_datums_meerdere_oogsten_zonder_einde():
    assert bereken_standaard_datums({"b_lu_harvestable": "multiple"}, 2025) == (date(2025, 3, 15), None)


def test_standaard_datums_ongeldig_jaar():
    with pytest.raises(ValueError, match="Ongeldig jaar"):
        bereken_standaard_datums({}, 1900)


def test_teeltdatums():
    controleer_teeltdatums(date(2025, 3, 1), None)
    with pytest.raises(ValueError, match="Einddatum moet na de zaaidatum liggen"):
        controleer_teeltdatums(date(2025, 3, 1), date(2025, 3, 1))


def test_oogst_eenmalig_op_einddatum():
    assert controleer_oogstdatum("once", date(2025, 3, 1), date(2025, 9, 1), date(2025, 9, 1)) == "once"
    with pytest.raises(ValueError, match="gelijk zijn aan de einddatum"):
        controleer_oogstdatum("once", date(2025, 3, 1), date(2025, 9, 1), date(2025, 8, 1))
    with pytest.raises(ValueError, match="maar één keer"):
        controleer_oogstdatum("once", date(2025, 3, 1), None, date(2025, 8, 1), aantal_oogsten=1)


def test_oogst_meerdere_keren():
    assert controleer_oogstdatum("multiple", date(2020, 1, 1), None, date(2025, 6, 1), 4) == "multiple"
    with pytest.raises(ValueError, match="voor de einddatum"):
        controleer_oogstdatum("multiple", date(2020, 1, 1), date(2025, 5, 1), date(2025, 6, 1))


def test_oogst_niet_oogstbaar_of_voor_zaai():
    with pytest.raises(ValueError, match="kan niet geoogst worden"):
        controleer_oogstdatum("none", date(2025, 3, 1), None, date(2025, 6, 1))
    with pytest.raises(ValueError, match="op of na de zaaidatum"):
        controleer_oogstdatum("multiple", date(2025, 3, 1), None, date(2025, 2, 1))


# ---------------- Gewascatalogus ----------------

@pytest.mark.parametrize("item, melding", [
    ({"b_lu_name": "Gras"}, "b_lu_catalogue ontbreekt"),
    ({"b_lu_catalogue": "eigen_1", "b_lu_name": "Gras", "b_lu_harvestable": "vaak"}, "Onbekende oogstbaarheid"),
    ({"b_lu_catalogue": "eigen_1", "b_lu_name": "Gras", "b_lu_croprotation": "bos"}, "Onbekende gewasrotatie"),
    ({"b_lu_catalogue": "eigen_1", "b_lu_name": "Gras", "b_lu_yield": -1}, "b_lu_yield mag niet negatief"),
    ({"b_lu_catalogue": "eigen_1", "b_lu_name": "Gras", "b_lu_hi": 1.5}, "b_lu_hi moet tussen 0 en 1"),
])
def test_catalogus_item_ongeldig(item, melding):
    with pytest.raises(ValueError, match=melding):
        controleer_catalogus_item(item)


def test_catalogus_upsert():
    c = FakeCursor()
    upsert_catalogus_item(c, {
        "b_lu_catalogue": "eigen_1", "b_lu_name": "Eigen gras", "b_lu_croprotation": "grass",
        "b_lu_variety_options": ["Rasa"], "b_lu_rest_oravib": True,
    })
    query, params = c.queries[0]
    assert "ON CONFLICT (b_lu_catalogue) DO UPDATE" in query
    assert params[:5] == ["eigen_1", "custom", "Eigen gras", None, "once"]
    assert '["Rasa"]' in params
    assert 1 in params


# ---------------- Grondmonsters ----------------

def test_grondmonster_diepte():
    controleer_grondmonster({"a_depth_upper": 0, "a_depth_lower": 30})
    with pytest.raises(ValueError, match="a_depth_lower must be greater than a_depth_upper"):
        controleer_grondmonster({"a_depth_upper": 30, "a_depth_lower": 30})


@pytest.mark.parametrize("data, melding", [
    ({"a_source": "lab"}, "Onbekende bron"),
    ({"b_soiltype_agr": "kiezel"}, "Onbekende grondsoort"),
    ({"b_gwl_class": "XII"}, "Onbekende grondwatertrap"),
    ({"a_p_al": -3}, "a_p_al mag niet negatief zijn"),
])
def test_grondmonster_ongeldig(data, melding):
    with pytest.raises(ValueError, match=melding):
        controleer_grondmonster(data)


def test_huidige_bodemdata_nieuwste_waarde_per_parameter():
    monsters = [
        {"a_id": "oud", "b_sampling_date": date(2020, 3, 1), "a_p_al": 30, "a_som_loi": 4.0},
        {"a_id": "nieuw", "b_sampling_date": date(2024, 3, 1), "a_p_al": 45, "a_som_loi": None},
        {"a_id": "later", "b_sampling_date": date(2026, 3, 1), "a_p_al": 60},
    ]
    huidig = {h["parameter"]: h for h in combineer_bodemdata(monsters, end=date(2025, 12, 31))}
    assert huidig["a_p_al"]["value"] == 45
    assert huidig["a_p_al"]["a_id"] == "nieuw"
    assert huidig["a_som_loi"]["a_id"] == "oud"


def test_bodemwaarden_leidt_ontbrekende_waarden_af():
    waarden = bodemwaarden([
        {"parameter": "a_som_loi", "value": 4.0},
        {"parameter": "b_soiltype_agr", "value": "dekzand"},
    ])
    assert waarden["a_c_of"] == pytest.approx(20.0)
    assert waarden["a_density_sa"] == pytest.approx(1 / (4.0 * 0.02525 + 0.6541))


def test_schatting_naar_grondmonster():
    data = schatting_naar_grondmonster(
        {"a_som_loi": 4.0, "b_soiltype_agr": "onbekend", "a_p_al": 40, "a_depth_lower": None},
        date(2025, 5, 1),
    )
    assert "b_soiltype_agr" not in data
    assert data["a_source"] == "nl-other-nmi"
    assert data["b_sampling_date"] == date(2025, 5, 1)
    assert data["a_depth_lower"] == 30


# ---------------- Bedrijfsstatus ----------------

def test_traces_en_skal_nummers():
    assert is_geldig_traces_nummer("NL-BIO-01.528-0002967.2024.001")
    assert not is_geldig_traces_nummer("NL-BIO-1.528")
    assert is_geldig_skal_nummer("026281")
    assert not is_geldig_skal_nummer("12345")


def test_derogatie_jaar_buiten_bereik():
    with pytest.raises(ValueError, match="Derogatiejaar"):
        voeg_derogatie_toe(FakeCursor(), "bedrijf-1", 2026)


def test_derogatie_dubbel():
    c = FakeCursor()
    c.rows = [{"?column?": 1}]
    with pytest.raises(ValueError, match="al verleend"):
        voeg_derogatie_toe(c, "bedrijf-1", 2024)


def test_bio_certificering_datums():
    with pytest.raises(ValueError, match="Uitgiftedatum moet voor de vervaldatum liggen"):
        voeg_bio_certificering_toe(FakeCursor(), "bedrijf-1", None, "026281", date(2025, 1, 1), date(2024, 1, 1))
