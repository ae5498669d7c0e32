# fdm_app/balans/organische_stof.py
"""
Organischestofbalans (kg EOM/ha): aanvoer van effectieve organische stof
min de afbraak van bodemorganische stof.
"""
import logging
import math

from fdm_app.balans.gedeeld import (
    afgerond, als_datum, dagen, gewas_van, gewogen_gemiddelde, is_grasland,
    meststof_van, overlapt, tijdvak_perceel, vereiste_bodem,
)

logger = logging.getLogger(__name__)

MAX_AFBRAAK_PER_JAAR = 3500
BOUWVOOR_DIEPTE = 0.3  # m

# Beginleeftijd (jaar) van de organische stof in het afbraakmodel van Janssen
BEGINLEEFTIJD_BOUWLAND = 24
BEGINLEEFTIJD_GRASLAND = 30
# Organischestofgehalte (%) waarboven geen netto afbraak meer optreedt
SOM_ZONDER_AFBRAAK = 75


# ============== AANVOER ==============

def aanvoer_meststoffen(bemestingen, meststoffen: dict) -> dict:
    uit = {"total": 0.0}
    for soort in ("manure", "compost", "other"):
        uit[soort] = {"total": 0.0, "applications": []}

    for bemesting in bemestingen:
        meststof = meststof_van(bemesting, meststoffen)
        if meststof.get("p_eom") is None:
            continue
        waarde = (bemesting.get("p_app_amount") or 0) * meststof["p_eom"] / 1000
        soort = meststof.get("p_type") if meststof.get("p_type") in ("manure", "compost") else "other"
        uit[soort]["total"] += waarde
        uit[soort]["applications"].append({"id": bemesting.get("p_app_id"), "value": waarde})
        uit["total"] += waarde
    return uit


def aanvoer_teelten(teelten, gewassen: dict, tijdvak: dict) -> dict:
    """EOM uit wortels en stoppels van elke teelt in het tijdvak."""
    uit = {"total": 0.0, "cultivations": []}
    for teelt in teelten:
        if not overlapt(teelt, tijdvak["start"], tijdvak["end"]):
            continue
        waarde = gewas_van(teelt, gewassen).get("b_lu_eom") or 0
        uit["total"] += waarde
        uit["cultivations"].append({"id": teelt.get("b_lu"), "value": waarde})
    return uit


def aanvoer_gewasresten(teelten, gewassen: dict, tijdvak: dict) -> dict:
    """Gewasresten die achterblijven, voor teelten die binnen het tijdvak eindigen."""
    uit = {"total": 0.0, "cultivations": []}
    for teelt in teelten:
        einde = als_datum(teelt.get("b_lu_end"))
        if not teelt.get("m_cropresidue") or einde is None:
            continue
        if not tijdvak["start"] <= einde <= tijdvak["end"]:
            continue
        waarde = gewas_van(teelt, gewassen).get("b_lu_eom_residues")
        if waarde is None:
            continue
        uit["total"] += waarde
        uit["cultivations"].append({"id": teelt.get("b_lu"), "value": waarde})
    return uit


def bereken_aanvoer(teelten, bemestingen, meststoffen, gewassen, tijdvak) -> dict:
    meststof = aanvoer_meststoffen(bemestingen, meststoffen)
    teelt = aanvoer_teelten(teelten, gewassen, tijdvak)
    resten = aanvoer_gewasresten(teelten, gewassen, tijdvak)
    return {
        "total": meststof["total"] + teelt["total"] + resten["total"],
        "fertilizers": meststof,
        "cultivations": teelt,
        "residues": resten,
    }


# ============== AFBRAAK ==============

def afbraak_per_jaar(a_som_loi, a_density_sa, grasland: bool) -> float:
    """
    Jaarlijkse afbraak (kg OS/ha) van de organische stof in de bouwvoor,
    begrensd op 0 tot 3500 kg/ha.

    De afbraakfractie volgt Janssen en neemt af naarmate de grond organischer
    is; vanaf SOM_ZONDER_AFBRAAK % is de uitkomst negatief en dus 0.
    """
    # kg OS/ha = % OS x dichtheid (kg/m3) x diepte x 10.000 m2
    voorraad = a_som_loi / 100 * a_density_sa * 1000 * BOUWVOOR_DIEPTE * 10000
    leeftijd = BEGINLEEFTIJD_GRASLAND if grasland else BEGINLEEFTIJD_BOUWLAND
    fractie = 1 - math.exp(4.7 * ((leeftijd + 1) ** -0.6 - leeftijd ** -0.6))
    fractie *= 1 - a_som_loi / SOM_ZONDER_AFBRAAK
    return max(0.0, min(voorraad * fractie, MAX_AFBRAAK_PER_JAAR))


def bereken_afbraak(bodem, teelten, gewassen, tijdvak) -> dict:
    grasland = is_grasland(teelten, gewassen, tijdvak["start"].year)
    per_jaar = afbraak_per_jaar(bodem["a_som_loi"], bodem["a_density_sa"], grasland)
    return {"total": -per_jaar * dagen(tijdvak["start"], tijdvak["end"]) / 365}


# ============== PERCEEL / BEDRIJF ==============

def bereken_os_balans_perceel(veld: dict, meststoffen: dict, gewassen: dict, tijdvak: dict) -> dict:
    perceel = veld["perceel"]
    try:
        periode = tijdvak_perceel(perceel, tijdvak)
        bodem = vereiste_bodem(veld.get("bodem"), ("a_som_loi", "a_density_sa"))
        teelten = veld.get("teelten") or []
        aanvoer = bereken_aanvoer(teelten, veld.get("bemestingen") or [], meststoffen, gewassen, periode)
        afbraak = bereken_afbraak(bodem, teelten, gewassen, periode)
        balans = {
            "b_id": perceel["b_id"],
            "balance": aanvoer["total"] + afbraak["total"],
            "supply": aanvoer,
            "degradation": afbraak,
        }
    except ValueError as e:
        return {"b_id": perceel["b_id"], "b_area": perceel.get("b_area") or 0, "errorMessage": str(e)}
    return {"b_id": perceel["b_id"], "b_area": perceel.get("b_area") or 0, "balance": balans}


def bereken_os_balans(invoer: dict) -> dict:
    """Zelfde invoer als de stikstofbalans; oogsten worden niet gebruikt."""
    meststoffen = {m["p_id_catalogue"]: m for m in invoer.get("meststoffen") or []}
    gewassen = {g["b_lu_catalogue"]: g for g in invoer.get("gewassen") or []}
    tijdvak = {"start": als_datum(invoer["tijdvak"]["start"]), "end": als_datum(invoer["tijdvak"]["end"])}

    resultaten = [
        bereken_os_balans_perceel(veld, meststoffen, gewassen, tijdvak)
        for veld in invoer.get("velden") or []
    ]
    geslaagd = [r for r in resultaten if "balance" in r]
    fouten = [f"[{r['b_id']}] {r['errorMessage']}" for r in resultaten if "errorMessage" in r]
    for fout in fouten:
        logger.warning(f"Organischestofbalans niet te berekenen voor perceel {fout}")

    aanvoer = gewogen_gemiddelde(geslaagd, ("supply", "total"))
    afbraak = gewogen_gemiddelde(geslaagd, ("degradation", "total"))
    return afgerond({
        "balance": aanvoer + afbraak,
        "supply": aanvoer,
        "degradation": afbraak,
        "fields": resultaten,
        "hasErrors": bool(fouten),
        "fieldErrorMessages": fouten,
    })
