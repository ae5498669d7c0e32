# fdm_app/gebruiksnormen/bedrijfsniveau.py
"""Normen en opvulling per perceel (kg/ha) -> bedrijfstotaal (kg)."""
from decimal import Decimal, ROUND_HALF_UP

from fdm_app.gebruiksnormen.bereken_gebruiksnormen import bereken_gebruiksnormen
from fdm_app.gebruiksnormen.opvulling import bereken_opvulling

NORM_SOORTEN = ("manure", "nitrogen", "phosphate")


def _totaal(percelen, sleutel, veld):
    totalen = {soort: Decimal(0) for soort in NORM_SOORTEN}
    for perceel in percelen:
        oppervlakte = Decimal(str(perceel["b_area"] or 0))
        for soort in NORM_SOORTEN:
            waarde = perceel[sleutel][soort][veld] or 0
            totalen[soort] += Decimal(str(waarde)) * oppervlakte
    return {
        soort: int(totaal.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        for soort, totaal in totalen.items()
    }


def aggregeer_normen(percelen) -> dict:
    """percelen: [{b_id, b_area, norms: {manure, nitrogen, phosphate}}]"""
    return _totaal(percelen, "norms", "normValue")


def aggregeer_opvulling(percelen) -> dict:
    """percelen: [{b_id, b_area, normsFilling: {manure, nitrogen, phosphate}}]"""
    return _totaal(percelen, "normsFilling", "normFilling")


def plaatsingsruimte(normen: dict, opvulling: dict) -> dict:
    """
    Ruimte en overschot per norm op bedrijfsniveau. De ruimte voor stikstof
    uit dierlijke mest is nooit groter dan de totale stikstofruimte.
    """
    uit = {}
    for soort in NORM_SOORTEN:
        ruimte = normen[soort] - opvulling[soort]
        uit[soort] = {
            "norm": normen[soort],
            "filling": opvulling[soort],
            "room": max(ruimte, 0),
            "surplus": max(-ruimte, 0),
        }
    uit["manure"]["room"] = min(uit["manure"]["room"], uit["nitrogen"]["room"])
    return uit


def bereken_perceel(invoer: dict) -> dict:
    """Normen en opvulling van één perceel (invoer uit invoer.py)."""
    normen = bereken_gebruiksnormen(invoer)
    return {
        "b_id": invoer["perceel"]["b_id"],
        "b_name": invoer["perceel"].get("b_name"),
        "b_area": invoer["perceel"].get("b_area"),
        "norms": normen,
        "normsFilling": bereken_opvulling(invoer, normen["phosphate"]["normValue"]),
    }


def bereken_bedrijf(invoeren) -> dict:
    """
    Alle percelen van een bedrijf. Een perceel waarvoor de berekening faalt
    (bv. geen grondmonster) komt in 'errors' en telt niet mee in het totaal.
    """
    percelen, fouten = [], []
    for invoer in invoeren:
        try:
            percelen.append(bereken_perceel(invoer))
        except ValueError as e:
            fouten.append({
                "b_id": invoer["perceel"]["b_id"],
                "b_name": invoer["perceel"].get("b_name"),
                "message": str(e),
            })

    normen = aggregeer_normen(percelen)
    opvulling = aggregeer_opvulling(percelen)
    return {
        "fields": percelen,
        "errors": fouten,
        "farm": {
            "norms": normen,
            "filling": opvulling,
            "room": plaatsingsruimte(normen, opvulling),
        },
    }
