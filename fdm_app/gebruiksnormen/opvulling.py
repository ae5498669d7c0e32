# fdm_app/gebruiksnormen/opvulling.py
"""
Opvulling van de gebruiksnormen door bemestingen.

Invoer: bemestingen [{p_app_id, p_id_catalogue, p_app_amount (kg/ha), p_app_date}]
en meststoffen [{p_id_catalogue, p_type_rvo, p_n_rt, p_p_rt}] (gehalten in g/kg).
Uitvoer: {"normFilling": kg/ha, "applicationFilling": [{p_app_id, normFilling, normFillingDetails?}]}
"""
from datetime import datetime

from fdm_app.gebruiksnormen.tabellen import NIET_BOUWLAND_CODES, SEPT_T_M_JAN, TABEL_9, TABEL_11

# Organische-stofrijke meststoffen: deel dat meetelt voor de fosfaatnorm
OS_RIJK_25 = ("111", "112")
OS_RIJK_75 = ("110", "10", "61", "25", "56")
OS_RIJK_75_BIOLOGISCH = ("40",)
OS_RIJK_MINIMUM_P = 20


def _meststoffen_per_catalogus(meststoffen):
    return {m["p_id_catalogue"]: m for m in meststoffen}


def _meststof_voor(bemesting, per_catalogus):
    meststof = per_catalogus.get(bemesting.get("p_id_catalogue"))
    if meststof is None:
        raise ValueError(
            f"Fertilizer {bemesting.get('p_id_catalogue')} not found for application {bemesting.get('p_app_id')}"
        )
    return meststof


def _als_datum(waarde):
    return waarde.date() if isinstance(waarde, datetime) else waarde


# ============== STIKSTOF ==============

def is_bouwland(teelten, p_app_date) -> bool:
    """Staat er op de toedieningsdatum een teelt die geen grasland is?"""
    p_app_date = _als_datum(p_app_date)
    actief = next(
        (t for t in teelten
         if _als_datum(t["b_lu_start"]) <= p_app_date
         and (t.get("b_lu_end") is None or p_app_date <= _als_datum(t["b_lu_end"]))),
        None
    )
    return actief is not None and actief["b_lu_catalogue"] not in NIET_BOUWLAND_CODES


def _in_periode(periode, p_app_date) -> bool:
    if periode == SEPT_T_M_JAN:
        return p_app_date.month >= 9 or p_app_date.month == 1
    return True


def werkingscoefficient(p_type_rvo, regio, beweiden: bool, bouwland: bool, p_app_date, eigen_bedrijf: bool) -> dict:
    """
    Werkingscoëfficiënt uit tabel 9: {"p_n_wcl", "description", "subTypeDescription"?}.
    Niet in de tabel (kunstmest e.d.) -> 100%.
    """
    standaard = {"p_n_wcl": 1.0, "description": "Kunstmest"}
    if not p_type_rvo:
        return standaard

    for rij in TABEL_9:
        if p_type_rvo not in rij["p_type_rvo"]:
            continue
        if "onFarmProduced" in rij and rij["onFarmProduced"] != eigen_bedrijf:
            continue

        if "subTypes" in rij:
            for sub in rij["subTypes"]:
                if "b_grazing_intention" in sub and sub["b_grazing_intention"] != beweiden:
                    continue
                if "grondsoortCode" in sub and regio not in sub["grondsoortCode"]:
                    continue
                if "isBouwland" in sub and sub["isBouwland"] != bouwland:
                    continue
                if "applicationPeriod" in sub and not _in_periode(sub["applicationPeriod"], p_app_date):
                    continue
                return {
                    "p_n_wcl": sub["p_n_wcl"],
                    "description": rij["description"],
                    "subTypeDescription": sub["description"],
                }
        elif "p_n_wcl" in rij:
            return {"p_n_wcl": rij["p_n_wcl"], "description": rij["description"]}
    return standaard


def stikstof_opvulling(bemestingen, meststoffen, teelten, regio, beweiden: bool) -> dict:
    per_catalogus = _meststoffen_per_catalogus(meststoffen)
    totaal = 0.0
    per_bemesting = []

    for bemesting in bemestingen:
        meststof = _meststof_voor(bemesting, per_catalogus)

        # Gehalte onbekend (0 of leeg): forfaitair gehalte uit tabel 11
        p_n_rt = meststof.get("p_n_rt")
        if not p_n_rt:
            p_n_rt = (TABEL_11.get(meststof.get("p_type_rvo")) or {}).get("p_n_rt") or 0

        p_app_date = _als_datum(bemesting["p_app_date"])
        # Met beweiding wordt aangenomen dat de mest van het eigen bedrijf komt
        wc = werkingscoefficient(
            meststof.get("p_type_rvo"), regio, beweiden,
            is_bouwland(teelten, p_app_date), p_app_date, eigen_bedrijf=beweiden,
        )

        vulling = (bemesting.get("p_app_amount") or 0) * p_n_rt * wc["p_n_wcl"] / 1000
        totaal += vulling

        onderdelen = [wc["description"]]
        if wc.get("subTypeDescription"):
            onderdelen.append(wc["subTypeDescription"])
        per_bemesting.append({
            "p_app_id": bemesting.get("p_app_id"),
            "normFilling": vulling,
            "normFillingDetails": f"Werkingscoëfficiënt: {wc['p_n_wcl'] * 100:g}% - {' - '.join(onderdelen)}",
        })

    return {"normFilling": totaal, "applicationFilling": per_bemesting}


# ============== FOSFAAT ==============

def _fosfaatgehalte(meststof):
    p_p_rt = meststof.get("p_p_rt")
    if p_p_rt is None:
        p_p_rt = (TABEL_11.get(meststof.get("p_type_rvo")) or {}).get("p_p_rt")
    return p_p_rt or 0


def _os_rijke_factor(p_type_rvo, biologisch: bool):
    if p_type_rvo in OS_RIJK_25:
        return 0.25
    if p_type_rvo in OS_RIJK_75 or (biologisch and p_type_rvo in OS_RIJK_75_BIOLOGISCH):
        return 0.75
    return None


def fosfaat_opvulling(bemestingen, meststoffen, biologisch: bool, fosfaatgebruiksnorm) -> dict:
    """
    Organische-stofrijke meststoffen tellen met korting, zolang er minstens
    20 kg P2O5/ha mee wordt gegeven en tot het totaal de fosfaatnorm bereikt.
    Wat daarboven komt telt voor 100%.
    """
    per_catalogus = _meststoffen_per_catalogus(meststoffen)

    standaard, os_rijk = [], []
    for index, bemesting in enumerate(bemestingen):
        # Onbekende meststof: geen fosfaatgehalte, telt als 0
        meststof = per_catalogus.get(bemesting.get("p_id_catalogue")) or {}
        fosfaat = (bemesting.get("p_app_amount") or 0) * _fosfaatgehalte(meststof) / 1000
        factor = _os_rijke_factor(meststof.get("p_type_rvo") or "", biologisch)
        if factor is None:
            standaard.append((index, bemesting, fosfaat))
        else:
            os_rijk.append((index, bemesting, fosfaat, factor))

    voldoende_os_rijk = sum(f for _, _, f, _ in os_rijk) >= OS_RIJK_MINIMUM_P

    per_bemesting = [None] * len(bemestingen)
    totaal = 0.0
    for index, bemesting, fosfaat in standaard:
        totaal += fosfaat
        per_bemesting[index] = {"p_app_id": bemesting.get("p_app_id"), "normFilling": fosfaat}

    # 25%-meststoffen gaan voor op de 75%-meststoffen
    os_rijk.sort(key=lambda r: r[3])
    ruimte = float(fosfaatgebruiksnorm or 0)
    for index, bemesting, fosfaat, factor in os_rijk:
        if not voldoende_os_rijk:
            vulling = fosfaat
            details = "OS-rijke meststof, minimumdrempel niet gehaald, 100% geteld."
        else:
            met_korting = min(fosfaat, ruimte)
            vulling = 0.0
            if met_korting > 0:
                vulling += met_korting * factor
                ruimte -= met_korting
                details = (f"OS-rijke meststof ({factor * 100:g}% korting) draagt "
                           f"{met_korting * factor:.2f}kg bij aan de norm.")
            else:
                details = "OS-rijke meststof, geen korting toegepast."
            boven_limiet = fosfaat - max(met_korting, 0)
            if boven_limiet > 0:
                vulling += boven_limiet
                details += f" Plus {boven_limiet:.2f}kg (100% geteld) boven de kortingslimiet."

        totaal += vulling
        per_bemesting[index] = {
            "p_app_id": bemesting.get("p_app_id"),
            "normFilling": vulling,
            "normFillingDetails": details,
        }

    return {"normFilling": totaal, "applicationFilling": per_bemesting}


# ============== DIERLIJKE MEST ==============

def dierlijke_mest_opvulling(bemestingen, meststoffen) -> dict:
    """Stikstof uit dierlijke mest; andere meststoffen tellen niet mee."""
    per_catalogus = _meststoffen_per_catalogus(meststoffen)
    totaal = 0.0
    per_bemesting = []

    for bemesting in bemestingen:
        meststof = _meststof_voor(bemesting, per_catalogus)
        p_type_rvo = meststof.get("p_type_rvo")
        if not p_type_rvo:
            raise ValueError(f"Fertilizer {meststof['p_id_catalogue']} has no p_type_rvo")
        mestcode = TABEL_11.get(p_type_rvo)
        if mestcode is None:
            raise ValueError(f"Fertilizer {meststof['p_id_catalogue']} has unknown p_type_rvo {p_type_rvo}")

        vulling = 0.0
        if mestcode["dierlijk"]:
            p_n_rt = meststof.get("p_n_rt")
            if p_n_rt is None:
                p_n_rt = mestcode["p_n_rt"] or 0
            vulling = (bemesting.get("p_app_amount") or 0) * p_n_rt / 1000

        totaal += vulling
        per_bemesting.append({"p_app_id": bemesting.get("p_app_id"), "normFilling": vulling})

    return {"normFilling": totaal, "applicationFilling": per_bemesting}


def bereken_opvulling(invoer: dict, fosfaatgebruiksnorm) -> dict:
    """Opvulling van alle drie de normen voor één perceel (invoer uit invoer.py)."""
    bedrijf = invoer.get("bedrijf") or {}
    bemestingen = invoer.get("bemestingen") or []
    meststoffen = invoer.get("meststoffen") or []
    return {
        "manure": dierlijke_mest_opvulling(bemestingen, meststoffen),
        "nitrogen": stikstof_opvulling(
            bemestingen, meststoffen, invoer.get("teelten") or [],
            invoer["perceel"].get("b_region"), bool(bedrijf.get("has_grazing_intention")),
        ),
        "phosphate": fosfaat_opvulling(
            bemestingen, meststoffen, bool(bedrijf.get("has_organic_certification")), fosfaatgebruiksnorm,
        ),
    }
