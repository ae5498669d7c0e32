# fdm_app/balans/invoer.py
"""Verzamelt de invoer voor de stikstof- en organischestofbalans uit de database."""
import fdm_app.models.database_beheer as db
from fdm_app.bemestingen.bemestingdata import lijst_bemestingen
from fdm_app.grondmonsters.bodemdata import bodemwaarden, get_huidige_bodemdata
from fdm_app.percelen.perceeldata import get_perceel, lijst_percelen
from fdm_app.teelten.teeltplan import get_catalogus_item, lijst_oogsten, lijst_teelten


def _veld(c, perceel: dict, start, end) -> dict:
    teelten = lijst_teelten(c, perceel["b_id"], start, end)
    oogsten = [
        dict(o)
        for teelt in teelten
        for o in lijst_oogsten(c, teelt["b_lu"])
        if start <= o["b_lu_harvest_date"] <= end
    ]
    return {
        "perceel": perceel,
        "teelten": teelten,
        "oogsten": oogsten,
        "bemestingen": [dict(b) for b in lijst_bemestingen(c, perceel["b_id"], start, end)],
        "bodem": bodemwaarden(get_huidige_bodemdata(c, perceel["b_id"], end)),
    }


def _meststoffen(velden):
    meststoffen = {}
    for veld in velden:
        for b in veld["bemestingen"]:
            meststoffen.setdefault(b["p_id_catalogue"], {
                "p_id_catalogue": b["p_id_catalogue"],
                "p_name_nl": b.get("p_name_nl"),
                "p_type": b.get("p_type"),
                **{g: b.get(g) for g in db.MESTSTOF_GEHALTES},
            })
    return list(meststoffen.values())


def _gewassen(c, velden):
    codes = {t["b_lu_catalogue"] for veld in velden for t in veld["teelten"]}
    return [item for item in (get_catalogus_item(c, code) for code in sorted(codes)) if item]


def balansinvoer(c, percelen, start, end) -> dict:
    velden = [_veld(c, perceel, start, end) for perceel in percelen]
    return {
        "tijdvak": {"start": start, "end": end},
        "velden": velden,
        "meststoffen": _meststoffen(velden),
        "gewassen": _gewassen(c, velden),
    }


def balansinvoer_bedrijf(c, bedrijf_id, start, end) -> dict:
    return balansinvoer(c, lijst_percelen(c, bedrijf_id, start, end), start, end)


def balansinvoer_perceel(c, perceel_id, start, end):
    perceel = get_perceel(c, perceel_id)
    if not perceel:
        return None
    return balansinvoer(c, [perceel], start, end)
