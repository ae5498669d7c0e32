# fdm_app/dashboard/dashboard_stats.py
"""
Samenvatting per bedrijf en jaar: percelen, oppervlakte (ook per gewasrotatie),
en normen tegenover de opvulling. Werkt op de invoer en uitkomst van de
normberekening, zodat het dashboard dezelfde cijfers toont als de rapportage.
"""
from fdm_app.gebruiksnormen.bedrijfsniveau import NORM_SOORTEN
from fdm_app.gebruiksnormen.bereken_gebruiksnormen import bepaal_hoofdteelt

GEEN_ROTATIE = "other"


def _percentage(deel, geheel):
    return deel / geheel * 100.0 if geheel else 0.0


def hoofdteelt_van(teelten, jaar):
    """Teelt-dict van de hoofdteelt, of None bij braak zonder teelt."""
    code = bepaal_hoofdteelt(teelten, jaar)
    return next((t for t in teelten if t["b_lu_catalogue"] == code), None)


def oppervlakte_per_rotatie(invoeren, jaar) -> dict:
    per_rotatie = {}
    for invoer in invoeren:
        teelt = hoofdteelt_van(invoer["teelten"], jaar)
        rotatie = (teelt or {}).get("b_lu_croprotation") or GEEN_ROTATIE
        per_rotatie[rotatie] = per_rotatie.get(rotatie, 0.0) + float(invoer["perceel"].get("b_area") or 0)
    return per_rotatie


def bedrijf_stats(bedrijf: dict, invoeren, resultaat: dict, jaar) -> dict:
    """
    bedrijf: {id, naam}; invoeren uit invoer_voor_bedrijf();
    resultaat uit bereken_bedrijf().
    """
    normen = resultaat["farm"]["norms"]
    opvulling = resultaat["farm"]["filling"]
    return {
        "bedrijf_id": bedrijf["id"],
        "bedrijf_naam": bedrijf["naam"],
        "percelen_count": len(invoeren),
        "oppervlakte_totaal": sum(float(i["perceel"].get("b_area") or 0) for i in invoeren),
        "oppervlakte_per_rotatie": oppervlakte_per_rotatie(invoeren, jaar),
        "norms": normen,
        "filling": opvulling,
        "percentages": {s: _percentage(opvulling[s], normen[s]) for s in NORM_SOORTEN},
        "errors": resultaat["errors"],
    }


def totaal_stats(stats) -> dict:
    totaal = {
        "percelen_count": 0,
        "oppervlakte_totaal": 0.0,
        "oppervlakte_per_rotatie": {},
        "norms": {s: 0 for s in NORM_SOORTEN},
        "filling": {s: 0 for s in NORM_SOORTEN},
    }
    for b in stats:
        totaal["percelen_count"] += b["percelen_count"]
        totaal["oppervlakte_totaal"] += b["oppervlakte_totaal"]
        for rotatie, oppervlakte in b["oppervlakte_per_rotatie"].items():
            totaal["oppervlakte_per_rotatie"][rotatie] = totaal["oppervlakte_per_rotatie"].get(rotatie, 0.0) + oppervlakte
        for s in NORM_SOORTEN:
            totaal["norms"][s] += b["norms"][s]
            totaal["filling"][s] += b["filling"][s]
    totaal["percentages"] = {s: _percentage(totaal["filling"][s], totaal["norms"][s]) for s in NORM_SOORTEN}
    return totaal


def perceel_feature(invoer: dict, perceelresultaat, bedrijf_naam, jaar):
    """GeoJSON-feature voor de kaart; None zonder geometrie."""
    perceel = invoer["perceel"]
    if not perceel.get("b_geometry"):
        return None
    teelt = hoofdteelt_van(invoer["teelten"], jaar)
    oppervlakte = float(perceel.get("b_area") or 0)

    properties = {
        "b_id": perceel["b_id"],
        "b_name": perceel.get("b_name"),
        "b_id_farm": perceel.get("b_id_farm"),
        "bedrijf_naam": bedrijf_naam,
        "b_area": round(oppervlakte, 2),
        "b_lu_name": (teelt or {}).get("b_lu_name") or "Onbekend",
        "b_lu_croprotation": (teelt or {}).get("b_lu_croprotation") or GEEN_ROTATIE,
        "b_region": perceel.get("b_region"),
        "b_in_nv": perceel.get("b_in_nv"),
    }
    if perceelresultaat is not None:
        for s in NORM_SOORTEN:
            norm = perceelresultaat["norms"][s]["normValue"] * oppervlakte
            vulling = perceelresultaat["normsFilling"][s]["normFilling"] * oppervlakte
            properties[f"norm_{s}_totaal"] = round(norm, 1)
            properties[f"filling_{s}_totaal"] = round(vulling, 1)
            properties[f"usage_{s}_percent"] = round(_percentage(vulling, norm), 1)

    return {"type": "Feature", "geometry": perceel["b_geometry"], "properties": properties}
