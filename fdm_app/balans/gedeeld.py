# fdm_app/balans/gedeeld.py
"""Hulpfuncties die de stikstof- en organischestofbalans delen."""
from datetime import date, datetime

from fdm_app.gebruiksnormen.bereken_gebruiksnormen import afronden
from fdm_app.grondmonsters.conversies import bereken_cn_ratio

GRAS_ROTATIES = ("grass",)


def als_datum(waarde):
    return waarde.date() if isinstance(waarde, datetime) else waarde


def dagen(start, end) -> int:
    """Aantal dagen van start t/m end."""
    return (als_datum(end) - als_datum(start)).days + 1


def tijdvak_perceel(perceel: dict, tijdvak: dict) -> dict:
    """Het tijdvak, ingeperkt tot de periode dat het perceel in gebruik is."""
    start, end = als_datum(tijdvak["start"]), als_datum(tijdvak["end"])
    if perceel.get("b_start") and als_datum(perceel["b_start"]) > start:
        start = als_datum(perceel["b_start"])
    if perceel.get("b_end") and als_datum(perceel["b_end"]) < end:
        end = als_datum(perceel["b_end"])
    if end < start:
        end = start
    return {"start": start, "end": end}


def overlapt(teelt: dict, start, end) -> bool:
    b_lu_start = als_datum(teelt.get("b_lu_start"))
    b_lu_end = als_datum(teelt.get("b_lu_end"))
    return (b_lu_start is None or b_lu_start <= end) and (b_lu_end is None or b_lu_end >= start)


def is_grasland(teelten, gewassen: dict, jaar: int) -> bool:
    """Staat er tussen 15 mei en 15 juli een teelt uit de grasrotatie?"""
    begin, einde = date(jaar, 5, 15), date(jaar, 7, 15)
    for teelt in teelten:
        gewas = gewassen.get(teelt.get("b_lu_catalogue")) or {}
        if gewas.get("b_lu_croprotation") in GRAS_ROTATIES and overlapt(teelt, begin, einde):
            return True
    return False


def gewas_van(teelt: dict, gewassen: dict) -> dict:
    gewas = gewassen.get(teelt.get("b_lu_catalogue"))
    if gewas is None:
        raise ValueError(f"Cultivation {teelt.get('b_lu')} has no cultivationDetails")
    return gewas


def meststof_van(bemesting: dict, meststoffen: dict) -> dict:
    meststof = meststoffen.get(bemesting.get("p_id_catalogue"))
    if meststof is None:
        raise ValueError(f"Fertilizer application {bemesting.get('p_app_id')} has no fertilizerDetails")
    return meststof


def vereiste_bodem(bodem: dict, parameters) -> dict:
    """
    Bodemwaarden (uit bodemwaarden()) aangevuld met de C/N-ratio.
    Ontbreekt een van de parameters dan volgt een ValueError.
    """
    bodem = dict(bodem or {})
    if bodem.get("a_cn_fr") is None:
        bodem["a_cn_fr"] = bereken_cn_ratio(bodem.get("a_c_of"), bodem.get("a_n_rt"))
    ontbrekend = [p for p in parameters if bodem.get(p) is None]
    if ontbrekend:
        raise ValueError(f"Missing required soil parameters: {', '.join(ontbrekend)}")
    return bodem


def gewogen_gemiddelde(resultaten, pad) -> float:
    """Oppervlaktegewogen gemiddelde van balance[pad...] over geslaagde percelen."""
    totaal = oppervlakte = 0.0
    for r in resultaten:
        waarde = r["balance"]
        for sleutel in pad:
            waarde = waarde[sleutel]
        area = r.get("b_area") or 0
        totaal += waarde * area
        oppervlakte += area
    return totaal / oppervlakte if oppervlakte else 0.0


def afgerond(obj, decimalen=0):
    """Alle getallen in een (geneste) uitkomst afronden voor weergave, behalve de oppervlakte."""
    if isinstance(obj, dict):
        return {k: v if k == "b_area" else afgerond(v, decimalen) for k, v in obj.items()}
    if isinstance(obj, list):
        return [afgerond(v, decimalen) for v in obj]
    if isinstance(obj, float):
        return afronden(obj, decimalen)
    return obj
