import io
from datetime import date

import pandas as pd
import pytest

import fdm_app.advies.routes as advies_routes
import fdm_app.balans.routes as balans_routes
import fdm_app.dashboard.routes as dashboard_routes
import fdm_app.gebruiksnormen.routes as normen_routes
import fdm_app.oogsten.routes as oogsten_routes
import fdm_app.percelen.routes as percelen_routes
from fdm_app.gebruiksnormen.bedrijfsniveau import bereken_bedrijf
from fdm_app.rapportage.routes import KOLOMMEN, export_excel, export_pdf, rapport_rij
from fdm_app.universele_data.routes import spreadsheet_naar_items


@pytest.fixture
def eigen_perceel(monkeypatch):
    """Elke gebruiker heeft toegang tot elk perceel en bedrijf."""
    for module in (normen_routes, balans_routes, advies_routes):
        monkeypatch.setattr(module, "perceel_van_gebruiker", lambda c, perceel_id, user_id: "bedrijf-1")
    for module in (normen_routes, balans_routes):
        monkeypatch.setattr(module, "bedrijf_van_gebruiker", lambda c, bedrijf_id, user_id: True)


# ---------------- Inloggen en toegang ----------------

def test_zonder_login_401(client):
    response = client.get("/gebruiksnormen/perceel/perceel-1")
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_perceel_van_ander_403(ingelogd):
    # De fake database geeft geen rijen terug: geen eigenaar gevonden
    response = ingelogd.get("/gebruiksnormen/perceel/perceel-1?jaar=2025")
    assert response.status_code == 403
    assert response.get_json()["message"] == "Geen toegang tot dit perceel"


# ---------------- Gebruiksnormen ----------------

def test_normen_perceel(ingelogd, eigen_perceel, monkeypatch, normeninvoer):
    monkeypatch.setattr(normen_routes, "invoer_voor_perceel", lambda c, perceel_id, jaar: normeninvoer)
    response = ingelogd.get("/gebruiksnormen/perceel/perceel-1?jaar=2025")
    assert response.status_code == 200
    data = response.get_json()
    assert data["jaar"] == 2025
    assert data["norms"]["nitrogen"] == {"normValue": 250, "normSource": "Grasland (beweiden)."}
    assert data["norms"]["phosphate"]["normValue"] == 90


def test_normen_perceel_zonder_grondmonster_400(ingelogd, eigen_perceel, monkeypatch, normeninvoer):
    normeninvoer["bodem"] = {}
    monkeypatch.setattr(normen_routes, "invoer_voor_perceel", lambda c, perceel_id, jaar: normeninvoer)
    response = ingelogd.get("/gebruiksnormen/perceel/perceel-1?jaar=2025")
    assert response.status_code == 400
    assert "Missing soil analysis data" in response.get_json()["message"]


def test_normen_perceel_ongeldige_invoer_400(ingelogd, eigen_perceel, monkeypatch):
    def ongeldig(c, perceel_id, jaar):
        raise ValueError("Onbekend gewas: nl_9999")
    monkeypatch.setattr(normen_routes, "invoer_voor_perceel", ongeldig)
    response = ingelogd.get("/gebruiksnormen/perceel/perceel-1?jaar=2025")
    assert response.status_code == 400
    assert response.get_json() == {"success": False, "message": "Onbekend gewas: nl_9999"}


def test_normen_bedrijf(ingelogd, eigen_perceel, monkeypatch, normeninvoer):
    monkeypatch.setattr(normen_routes, "invoer_voor_bedrijf", lambda c, bedrijf_id, jaar: [normeninvoer])
    data = ingelogd.get("/gebruiksnormen/bedrijf/bedrijf-1?jaar=2025").get_json()
    assert data["b_id_farm"] == "bedrijf-1"
    assert data["farm"]["norms"] == {"manure": 1700, "nitrogen": 2500, "phosphate": 900}
    assert data["errors"] == []


# ---------------- Balansen ----------------

def _balansinvoer(perceel, bodem):
    return {
        "tijdvak": {"start": date(2023, 1, 1), "end": date(2023, 12, 31)},
        "velden": [{"perceel": perceel, "teelten": [], "oogsten": [], "bemestingen": [], "bodem": bodem}],
        "meststoffen": [],
        "gewassen": [],
    }


def test_onbekende_balans_404(ingelogd):
    assert ingelogd.get("/balans/fosfor/perceel/perceel-1").status_code == 404


def test_balans_ongeldig_tijdvak_400(ingelogd):
    response = ingelogd.get("/balans/stikstof/perceel/perceel-1?start=2023-06-01&end=2023-01-01")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Einddatum ligt voor de startdatum"


def test_stikstofbalans_perceel(ingelogd, eigen_perceel, monkeypatch, perceel):
    invoer = _balansinvoer(perceel, {"b_soiltype_agr": "dekzand", "b_gwl_class": "V"})
    ontvangen = {}

    def balansinvoer(c, perceel_id, start, end):
        ontvangen.update(start=start, end=end)
        return invoer

    monkeypatch.setattr(balans_routes, "balansinvoer_perceel", balansinvoer)
    response = ingelogd.get("/balans/stikstof/perceel/perceel-1?start=2023-01-01")
    assert response.status_code == 200
    assert ontvangen == {"start": date(2023, 1, 1), "end": date(2023, 12, 31)}
    data = response.get_json()
    assert data["b_id"] == "perceel-1"
    assert data["balance"]["supply"]["deposition"]["total"] == 20


def test_stikstofbalans_perceel_met_fout_400(ingelogd, eigen_perceel, monkeypatch, perceel):
    invoer = _balansinvoer(perceel, {"b_soiltype_agr": "dekzand"})
    monkeypatch.setattr(balans_routes, "balansinvoer_perceel", lambda c, perceel_id, start, end: invoer)
    response = ingelogd.get("/balans/stikstof/perceel/perceel-1?jaar=2023")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Missing required soil parameters: b_gwl_class"


def test_os_balans_bedrijf(ingelogd, eigen_perceel, monkeypatch, perceel):
    invoer = _balansinvoer(perceel, {"a_som_loi": 45, "a_density_sa": 1.0})
    monkeypatch.setattr(balans_routes, "balansinvoer_bedrijf", lambda c, bedrijf_id, start, end: invoer)
    data = ingelogd.get("/balans/organische-stof/bedrijf/bedrijf-1?jaar=2023").get_json()
    assert data["degradation"] == -3500
    assert data["start"] == "2023-01-01"


# ---------------- Bemestingsadvies ----------------

@pytest.fixture
def advies_db(monkeypatch, perceel):
    monkeypatch.setattr(advies_routes, "get_teelt", lambda c, b_lu: {
        "b_lu": b_lu, "b_id": "perceel-1", "b_lu_catalogue": "nl_265",
    })
    monkeypatch.setattr(advies_routes, "get_perceel", lambda c, perceel_id: perceel)
    monkeypatch.setattr(advies_routes, "get_huidige_bodemdata", lambda c, perceel_id, end=None: [])


def test_advies_teelt(ingelogd, eigen_perceel, advies_db, monkeypatch):
    aanroepen = []

    def advies(b_lu_catalogue, b_centroid, bodemdata, api_key):
        aanroepen.append((b_lu_catalogue, b_centroid, api_key))
        return {"d_n_req": 250}

    monkeypatch.setattr(advies_routes, "vraag_bemestingsadvies", advies)
    data = ingelogd.get("/advies/teelt/teelt-1").get_json()
    assert data == {"b_lu": "teelt-1", "b_lu_catalogue": "nl_265", "advice": {"d_n_req": 250}}
    assert aanroepen == [("nl_265", [5.005, 52.005], "test-key")]


def test_advies_api_fout_502(ingelogd, eigen_perceel, advies_db, monkeypatch):
    def advies(*args):
        raise RuntimeError("Request to NMI API failed")

    monkeypatch.setattr(advies_routes, "vraag_bemestingsadvies", advies)
    assert ingelogd.get("/advies/teelt/teelt-1").status_code == 502


def test_advies_zonder_locatie_400(ingelogd, eigen_perceel, advies_db, monkeypatch, perceel):
    perceel["b_centroid"] = None
    response = ingelogd.get("/advies/teelt/teelt-1")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Perceel heeft geen locatie"


def test_advies_perceel_met_dosering(ingelogd, eigen_perceel, advies_db, monkeypatch):
    monkeypatch.setattr(advies_routes, "lijst_teelten", lambda c, perceel_id, start, end: [
        {"b_lu": "teelt-1", "b_lu_catalogue": "nl_265", "b_lu_name": "Grasland, blijvend"},
    ])
    monkeypatch.setattr(advies_routes, "lijst_bemestingen", lambda c, perceel_id, start, end: [
        {"p_app_id": "app-1", "p_app_amount": 100, "p_n_rt": 270},
    ])
    monkeypatch.setattr(advies_routes, "vraag_bemestingsadvies", lambda *args: {"d_n_req": 250})

    data = ingelogd.get("/advies/perceel/perceel-1?jaar=2025").get_json()
    assert data["cultivations"][0]["advice"] == {"d_n_req": 250}
    assert data["dose"]["p_dose_n"] == pytest.approx(27.0)
    assert data["end"] == "2025-12-31"


# ---------------- Dashboard ----------------

def test_dashboard_ongeldig_jaar(ingelogd):
    assert ingelogd.get("/dashboard/stats?jaar=1999").status_code == 400


def test_dashboard_stats_en_kaart(ingelogd, monkeypatch, normeninvoer):
    bedrijf = {"id": "bedrijf-1", "naam": "De Hoeve"}
    monkeypatch.setattr(dashboard_routes, "_bedrijven_met_normen", lambda user_id, jaar: [
        (bedrijf, [normeninvoer], bereken_bedrijf([normeninvoer])),
    ])

    stats = ingelogd.get("/dashboard/stats?jaar=2025").get_json()
    assert stats["bedrijf_stats"][0]["percelen_count"] == 1
    assert stats["bedrijf_stats"][0]["oppervlakte_per_rotatie"] == {"other": 10.0}
    assert stats["totaal_stats"]["norms"]["nitrogen"] == 2500
    assert stats["totaal_stats"]["percentages"]["nitrogen"] == 0

    kaart = ingelogd.get("/dashboard/kaart?jaar=2025").get_json()
    assert kaart["type"] == "FeatureCollection"
    eigenschappen = kaart["features"][0]["properties"]
    assert eigenschappen["bedrijf_naam"] == "De Hoeve"
    assert eigenschappen["norm_nitrogen_totaal"] == 2500.0


# ---------------- Rapportage ----------------

RUIMTE = {
    "nitrogen": {"norm": 2500, "filling": 800, "room": 1700, "surplus": 0},
    "manure": {"norm": 1700, "filling": 400, "room": 1300, "surplus": 0},
    "phosphate": {"norm": 900, "filling": 1000, "room": 0, "surplus": 100},
}


def test_rapport_rij():
    rij = rapport_rij("De Hoeve", 2025, RUIMTE)
    assert list(rij) == [sleutel for sleutel, _ in KOLOMMEN]
    assert rij["n_over"] == 1700
    assert rij["p_af_te_voeren"] == 100


def test_rapport_exports():
    rows = [rapport_rij("De Hoeve", 2025, RUIMTE)]
    excel = export_excel(rows)
    assert excel.read(2) == b"PK"

    df = pd.read_excel(export_excel(rows))
    assert list(df.columns) == [kop for _, kop in KOLOMMEN]
    assert df.loc[0, "N over"] == 1700

    assert export_pdf(rows, 2025).startswith(b"%PDF")


def test_rapportage_view(ingelogd, monkeypatch):
    import fdm_app.rapportage.routes as rapportage_routes
    monkeypatch.setattr(rapportage_routes, "_get_bedrijven", lambda user_id: [
        {"id": "bedrijf-1", "naam": "De Hoeve"}, {"id": "bedrijf-2", "naam": "Het Veld"},
    ])
    monkeypatch.setattr(rapportage_routes, "_rapport_rijen", lambda bedrijven, jaar: (
        [rapport_rij(b["naam"], jaar, RUIMTE) for b in bedrijven], [],
    ))
    data = ingelogd.get("/rapportage/?jaar=2025&bedrijf_ids=bedrijf-2").get_json()
    assert [r["bedrijf_naam"] for r in data["rows"]] == ["Het Veld"]

    response = ingelogd.get("/rapportage/?jaar=2025&action=pdf")
    assert response.headers["Content-Type"] == "application/pdf"


# ---------------- Universele data ----------------

def test_universele_data_alleen_voor_admin(ingelogd):
    assert ingelogd.get("/universele_data/meststoffen").status_code == 403


def test_universele_data_zonder_login(client):
    assert client.get("/universele_data/meststoffen").status_code == 401


def test_spreadsheet_naar_items():
    df = pd.DataFrame([
        {"p_id_catalogue": "eigen_1", "p_name_nl": "Eigen drijfmest", "p_type": "manure",
         "p_type_rvo": 14.0, "p_n_rt": "4,2", "p_app_method_options": "injection, narrowband"},
        {"p_id_catalogue": None, "p_name_nl": None, "p_type": None,
         "p_type_rvo": None, "p_n_rt": None, "p_app_method_options": None},
    ])
    items = spreadsheet_naar_items(df, "meststoffen")
    assert len(items) == 1
    rij, item = items[0]
    assert rij == 2
    assert item["p_type_rvo"] == "14"
    assert item["p_n_rt"] == 4.2
    assert item["p_app_method_options"] == ["injection", "narrowband"]


def test_spreadsheet_mist_kolommen():
    with pytest.raises(ValueError, match="Kolommen ontbreken in Excel: p_type"):
        spreadsheet_naar_items(pd.DataFrame([{"p_id_catalogue": "x", "p_name_nl": "X"}]), "meststoffen")


def _excel(rijen):
    buffer = io.BytesIO()
    pd.DataFrame(rijen).to_excel(buffer, index=False)
    buffer.seek(0)
    return buffer


def test_import_meststoffen(admin, fake_db):
    bestand = _excel([
        {"p_id_catalogue": "eigen_1", "p_name_nl": "Eigen drijfmest", "p_type": "manure", "p_n_rt": 4.2},
        {"p_id_catalogue": "eigen_2", "p_name_nl": "Eigen compost", "p_type": "compost", "p_n_rt": 6.0},
    ])
    response = admin.post(
        "/universele_data/meststoffen/import",
        data={"excel_file": (bestand, "meststoffen.xlsx")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    assert response.get_json()["success"] is True
    assert len(fake_db.cursor_obj.queries) == 2
    assert fake_db.commits == 1


def test_import_fout_draait_alles_terug(admin, fake_db):
    bestand = _excel([
        {"p_id_catalogue": "eigen_1", "p_name_nl": "Eigen drijfmest", "p_type": "manure", "p_n_rt": 4.2},
        {"p_id_catalogue": "eigen_2", "p_name_nl": "Fout", "p_type": "manure", "p_n_rt": -1},
    ])
    response = admin.post(
        "/universele_data/meststoffen/import",
        data={"excel_file": (bestand, "meststoffen.xlsx")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    data = response.get_json()
    assert data["row"] == 3
    assert "p_n_rt mag niet negatief zijn" in data["message"]
    assert fake_db.rollbacks == 1
    assert fake_db.commits == 0


def test_import_verkeerd_bestandstype(admin):
    response = admin.post(
        "/universele_data/gewassen/import",
        data={"excel_file": (io.BytesIO(b"a,b"), "gewassen.csv")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
    assert "Bestandstype niet ondersteund" in response.get_json()["message"]


# ---------------- Registratie ----------------

def _oogst_rij(harvestable):
    return {
        "b_id_harvesting": "oogst-1", "b_lu": "teelt-1", "b_lu_catalogue": "nl_233",
        "b_lu_harvestable": harvestable, "b_lu_start": date(2025, 3, 1),
        "b_lu_end": date(2025, 8, 1), "m_cropresidue": None,
    }


def test_oogst_verwijderen_eenmalig_wist_einddatum(ingelogd, fake_db, monkeypatch):
    monkeypatch.setattr(oogsten_routes, "teelt_van_gebruiker", lambda c, b_lu, user_id: "perceel-1")
    fake_db.cursor_obj.rows = [_oogst_rij("once")]
    response = ingelogd.post("/oogsten/oogst-1/delete")
    assert response.status_code == 200

    queries = fake_db.cursor_obj.queries
    assert ("DELETE FROM oogsten WHERE id=%s", ("oogst-1",)) in queries
    assert ("UPDATE teelten SET b_lu_end=NULL WHERE id=%s", ("teelt-1",)) in queries
    assert fake_db.commits == 1


def test_oogst_verwijderen_meerdere_keren_houdt_einddatum(ingelogd, fake_db, monkeypatch):
    monkeypatch.setattr(oogsten_routes, "teelt_van_gebruiker", lambda c, b_lu, user_id: "perceel-1")
    fake_db.cursor_obj.rows = [_oogst_rij("multiple")]
    assert ingelogd.post("/oogsten/oogst-1/delete").status_code == 200
    assert not any(q.startswith("UPDATE teelten") for q, _ in fake_db.cursor_obj.queries)
    assert fake_db.commits == 1


def _perceel_bewerken(monkeypatch, perceel, auto):
    perceel = {**perceel, "b_acquiring_method": "nl_01", "b_id_source": None, "b_in_nv": True}
    monkeypatch.setattr(percelen_routes, "perceel_van_gebruiker", lambda c, perceel_id, user_id: "bedrijf-1")
    monkeypatch.setattr(percelen_routes, "get_perceel", lambda c, perceel_id: perceel)
    monkeypatch.setattr(percelen_routes, "bepaal_gebiedsvlaggen", lambda lon, lat, data_dir: auto)


def _update_params(fake_db):
    (query, params), = [(q, p) for q, p in fake_db.cursor_obj.queries if q.startswith("UPDATE percelen")]
    kolommen = [deel.split(" = ")[0] for deel in query.split(" SET ")[1].split(" WHERE ")[0].split(", ")]
    return dict(zip(kolommen, params))


def test_perceel_hernoemen_houdt_handmatige_gebiedsvlag(ingelogd, fake_db, monkeypatch, perceel):
    # Handmatig in NV-gebied gezet, de kaart zegt van niet
    _perceel_bewerken(monkeypatch, perceel, auto={"nv_gebied": False})
    response = ingelogd.post("/percelen/perceel-1/edit", json={"b_name": "Nieuwe naam"})
    assert response.status_code == 200

    params = _update_params(fake_db)
    assert params["perceelnaam"] == "Nieuwe naam"
    assert params["nv_gebied"] == 1
    assert params["regio"] == "zand_nwc"
    assert fake_db.commits == 1


def test_perceel_nieuwe_geometrie_bepaalt_gebiedsvlaggen_opnieuw(ingelogd, fake_db, monkeypatch, perceel):
    _perceel_bewerken(monkeypatch, perceel, auto={"nv_gebied": False, "natura2000": True})
    response = ingelogd.post("/percelen/perceel-1/edit", json={"b_geometry": perceel["b_geometry"]})
    assert response.status_code == 200

    params = _update_params(fake_db)
    assert params["nv_gebied"] == 0
    assert params["natura2000"] == 1
